"""
Directory models: users, organizations, roles and permissions.

The authorization engine only reads these records. They are written by the
external provisioning process (see seed.py for the default data set).

Relationships:
- User -(0..1)-> Organization
- Organization -(0..1)-> Organization (parent, one level)
- User <-(N..N)-> Role <-(N..N)-> Permission
"""
from typing import Optional
from sqlalchemy import String, ForeignKey, Table, Column, Text, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authz.core.database.base import Base, TimestampMixin


# ============================================================================
# Association Tables for Many-to-Many Relationships
# ============================================================================

user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)

role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


# ============================================================================
# Core Models
# ============================================================================

class Organization(Base, TimestampMixin):
    """
    Organization in a two-level hierarchy.

    A root organization has no parent and zero or more children.
    A sub-organization has exactly one (root) parent and no children.
    """
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Self-referencing parent for the 2-level hierarchy (null = root)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Relationships
    parent: Mapped[Optional["Organization"]] = relationship(
        "Organization",
        remote_side="Organization.id",
        back_populates="children",
        lazy="selectin"
    )

    # Loaded explicitly by the directory store
    children: Mapped[list["Organization"]] = relationship(
        "Organization",
        back_populates="parent",
        lazy="raise"
    )

    def is_root(self) -> bool:
        return self.parent_id is None

    def is_sub_organization(self) -> bool:
        return self.parent_id is not None

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r}, parent_id={self.parent_id})>"


class Permission(Base, TimestampMixin):
    """
    Atomic named capability, e.g. "create_task".

    Permission names are opaque strings to the engine.
    """
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, name={self.name!r})>"


class Role(Base, TimestampMixin):
    """
    Named bundle of permissions.

    Seeded roles are owner, admin and viewer; any other name is valid.
    """
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    permissions: Mapped[list["Permission"]] = relationship(
        "Permission",
        secondary=role_permissions,
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name!r})>"


class User(Base, TimestampMixin):
    """
    Directory user.

    The password hash is opaque to the engine; credential checks belong
    to the external authentication layer.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Owning organization (null = unaffiliated)
    organization_id: Mapped[int | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Relationships
    organization: Mapped[Optional["Organization"]] = relationship(
        "Organization",
        lazy="selectin"
    )

    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary=user_roles,
        lazy="selectin"
    )

    @property
    def role_names(self) -> set[str]:
        return {role.name for role in self.roles}

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"
