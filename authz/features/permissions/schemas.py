"""
Access decision model.

An AccessDecision is the outcome of authorize(): allow, or deny with a
reason naming what was required. It carries everything an audit event needs.
"""
import enum
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict


class DenyReason(str, enum.Enum):
    """Why an access decision denied."""
    UNAUTHENTICATED = "unauthenticated"
    MISSING_ROLE = "missing_required_role"
    MISSING_PERMISSION = "missing_required_permission"


class AccessDecision(BaseModel):
    """Allow/deny outcome for a single protected action."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[DenyReason] = None
    message: Optional[str] = None
    required_roles: Tuple[str, ...] = ()
    required_permissions: Tuple[str, ...] = ()
    missing_permissions: Tuple[str, ...] = ()

    @classmethod
    def allow(
        cls,
        required_roles: Tuple[str, ...] = (),
        required_permissions: Tuple[str, ...] = (),
    ) -> "AccessDecision":
        return cls(
            allowed=True,
            required_roles=required_roles,
            required_permissions=required_permissions,
        )

    @classmethod
    def deny(cls, reason: DenyReason, message: str, **kwargs) -> "AccessDecision":
        return cls(allowed=False, reason=reason, message=message, **kwargs)
