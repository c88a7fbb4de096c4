"""
Exceptions raised by the authorization engine.

Routine lookups never raise: unknown users and organizations resolve to
empty / false / self-only results. These exceptions cover store failures
and hierarchy integrity problems.
"""


class AuthzError(Exception):
    """Base class for authorization engine errors."""


class DirectoryStoreError(AuthzError):
    """A directory store could not answer a query (I/O error, corrupted data)."""


class OrganizationNotFound(AuthzError):
    """Referenced organization does not exist."""

    def __init__(self, organization_id: int):
        self.organization_id = organization_id
        super().__init__(f"Organization {organization_id} not found")


class HierarchyDepthError(AuthzError):
    """Organization hierarchy would exceed (or exceeds) two levels."""

    def __init__(self, organization_id: int, parent_id: int | None = None):
        self.organization_id = organization_id
        self.parent_id = parent_id
        if parent_id is None:
            message = f"Organization {organization_id} is nested deeper than two levels"
        else:
            message = (
                f"Organization {organization_id} cannot be a parent: "
                f"it is already a sub-organization of {parent_id}"
            )
        super().__init__(message)
