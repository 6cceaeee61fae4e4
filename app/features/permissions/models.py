"""
Role assignment model.

An identity (the hosted auth service's user id) may hold several role rows;
the effective role is resolved by priority in ``policy.resolve_role``. Roles
are stored as plain strings so legacy values survive until migrated.
"""
from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_uuid


class UserRole(Base, TimestampMixin):
    """
    A single role held by an identity.

    Created and replaced through the admin role management routes, deleted
    only by explicit admin action.
    """
    __tablename__ = "user_roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Auth service user id
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Stored role value (see policy.AppRole and policy.LEGACY_ROLE_MIGRATIONS)
    role: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )

    def __repr__(self) -> str:
        return f"<UserRole(id={self.id}, user_id={self.user_id}, role={self.role!r})>"
