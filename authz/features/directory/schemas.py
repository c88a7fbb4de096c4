"""
Pydantic schemas for directory read models.

Projections returned by the organization scope resolver and the
management authorization operations.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class OrganizationRead(BaseModel):
    """Organization as returned by hierarchy lookups."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None


class OrganizationSummary(BaseModel):
    """Organization id and name; id is None for the no-organization label."""
    id: Optional[int] = None
    name: str


class OrganizationHierarchy(BaseModel):
    """A user's organization with its parent and direct children."""
    own_org: Optional[OrganizationRead] = None
    sub_orgs: List[OrganizationRead] = Field(default_factory=list)
    parent_org: Optional[OrganizationRead] = None


class AssignableUser(BaseModel):
    """User the acting user may assign work to."""
    id: int
    name: str
    email: str
    organization: OrganizationSummary
