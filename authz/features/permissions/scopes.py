"""
Access scopes and the role-to-scope policy.

Scope string format: "own", "sub" or "all".

- own: users of the acting user's organization
- sub: own plus users of direct child organizations
- all: every user, gated on a privileged role
"""
import enum
from collections.abc import Iterable
from typing import NamedTuple, Optional


class Scope(str, enum.Enum):
    """Closed set of access scopes."""
    OWN = "own"
    SUB = "sub"
    ALL = "all"

    @classmethod
    def parse(cls, value: "Scope | str | None") -> Optional["Scope"]:
        """Return the matching Scope, or None for any other value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


OWNER_ROLE = "owner"
ADMIN_ROLE = "admin"
VIEWER_ROLE = "viewer"

# Roles allowed to resolve the "all" scope
PRIVILEGED_ROLES: frozenset[str] = frozenset([OWNER_ROLE, ADMIN_ROLE])


class RoleScopeRule(NamedTuple):
    """Users holding `role` get `scope`."""
    role: str
    scope: Scope


# Evaluated top-down; first matching rule wins
DEFAULT_ROLE_SCOPE_POLICY: tuple[RoleScopeRule, ...] = (
    RoleScopeRule(OWNER_ROLE, Scope.ALL),
    RoleScopeRule(ADMIN_ROLE, Scope.SUB),
)

DEFAULT_SCOPE = Scope.OWN


def resolve_effective_scope(
    role_names: Iterable[str],
    policy: Iterable[RoleScopeRule] = DEFAULT_ROLE_SCOPE_POLICY,
    default: Scope = DEFAULT_SCOPE,
) -> Scope:
    """
    Pick the scope granted by the first policy rule whose role the user holds.

    Args:
        role_names: Names of the user's roles
        policy: Ordered (role, scope) rules
        default: Scope used when no rule matches

    Returns:
        Effective Scope
    """
    held = set(role_names)
    for rule in policy:
        if rule.role in held:
            return rule.scope
    return default
