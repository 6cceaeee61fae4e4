"""
Member SQLAlchemy model for the primary directory store.
"""
from datetime import date
from sqlalchemy import String, Text, Boolean, Date, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_uuid


class Member(Base, TimestampMixin):
    """
    A church member in the directory.

    ``id`` is the only key shared with the secondary store; no other column is
    assumed unique.

    Attributes:
        id: UUID primary key, identical in both stores
        family_id: Reference to the member's family
        user_id: Linked auth account, if the member signs in
        church_groups: Group memberships, stored as a JSON list
    """
    __tablename__ = "members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    # Contact
    email: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)

    # Demographics
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    gender: Mapped[str | None] = mapped_column(Text)
    baptized: Mapped[bool | None] = mapped_column(Boolean, default=False)

    # Organization
    department: Mapped[str | None] = mapped_column(Text)
    position: Mapped[str | None] = mapped_column(Text)
    service_year: Mapped[str | None] = mapped_column(Text)

    profile_image_url: Mapped[str | None] = mapped_column(Text)
    family_id: Mapped[str | None] = mapped_column(String(36), index=True)
    user_id: Mapped[str | None] = mapped_column(String(255), index=True)
    church_groups: Mapped[list[str] | None] = mapped_column(JSON)

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, name={self.name!r})>"
