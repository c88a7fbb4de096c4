"""
Pydantic schemas for audit events.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field

from authz.features.audit.models import (
    ACTION_MAX_LENGTH,
    IP_ADDRESS_MAX_LENGTH,
    RESOURCE_MAX_LENGTH,
    USER_AGENT_MAX_LENGTH,
    AuditStatus,
)


ANONYMOUS_ACTOR = "anonymous"


class AuditEventCreate(BaseModel):
    """Audit event built from an access decision or a scoped data access."""
    user_id: Optional[int] = None
    action: str = Field(..., min_length=1, max_length=ACTION_MAX_LENGTH)
    resource: str = Field(..., min_length=1, max_length=RESOURCE_MAX_LENGTH)
    status: AuditStatus = AuditStatus.SUCCESS
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = Field(None, max_length=IP_ADDRESS_MAX_LENGTH)
    user_agent: Optional[str] = Field(None, max_length=USER_AGENT_MAX_LENGTH)

    @computed_field
    @property
    def actor(self) -> str:
        return str(self.user_id) if self.user_id is not None else ANONYMOUS_ACTOR


class AuditLogRead(AuditEventCreate):
    """Stored audit log entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
