"""
SQLAlchemy declarative base and common model utilities.

All primary-store models inherit from Base. The secondary store's tables are
plain Core tables on their own MetaData and never touch Base.metadata.
"""
import uuid
from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def generate_uuid() -> str:
    """Generate a new UUID4 string (36 chars), the id format shared by both stores."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.
    
    Usage:
        from app.core.database.base import Base
        
        class Member(Base):
            __tablename__ = "members"
            
            id: Mapped[str] = mapped_column(String(36), primary_key=True)
            name: Mapped[str] = mapped_column(Text)
    """
    pass


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.
    
    Usage:
        class UserRole(Base, TimestampMixin):
            __tablename__ = "user_roles"
            id: Mapped[str] = mapped_column(String(36), primary_key=True)
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
