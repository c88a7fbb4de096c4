"""
Permission management feature module.

Implements Role-Based Access Control (RBAC) with organization scopes
(own / sub / all) over a two-level organization hierarchy.
"""
from authz.features.permissions.decisions import authorize
from authz.features.permissions.schemas import AccessDecision, DenyReason
from authz.features.permissions.scopes import Scope, RoleScopeRule, DEFAULT_ROLE_SCOPE_POLICY
from authz.features.permissions.service import RbacService

__all__ = [
    "authorize",
    "AccessDecision",
    "DenyReason",
    "Scope",
    "RoleScopeRule",
    "DEFAULT_ROLE_SCOPE_POLICY",
    "RbacService",
]
