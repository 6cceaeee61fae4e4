"""
Pydantic schemas for member API requests/responses and the store-neutral
member record used by the directory sync.
"""
from datetime import date, datetime
from pydantic import BaseModel, Field, ConfigDict, EmailStr


class MemberBase(BaseModel):
    """Base schema for member."""
    name: str = Field(..., min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    baptized: bool | None = None
    department: str | None = None
    position: str | None = None
    service_year: str | None = None
    profile_image_url: str | None = None
    family_id: str | None = Field(None, max_length=36)
    user_id: str | None = Field(None, max_length=255)
    church_groups: list[str] | None = None


class MemberCreate(MemberBase):
    """Schema for creating a member. The id is generated when omitted."""
    id: str | None = Field(None, min_length=1, max_length=36)


class MemberUpdate(BaseModel):
    """Schema for updating a member. Only provided fields change."""
    name: str | None = Field(None, min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    baptized: bool | None = None
    department: str | None = None
    position: str | None = None
    service_year: str | None = None
    profile_image_url: str | None = None
    family_id: str | None = Field(None, max_length=36)
    user_id: str | None = Field(None, max_length=255)
    church_groups: list[str] | None = None


class MemberResponse(MemberBase):
    """Schema for member response."""
    # Stored data is not re-validated as an email address
    email: str | None = None
    id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberRecord(BaseModel):
    """
    A member row in neutral form, independent of either store's encoding.

    No email validation; every field but id and name is optional.
    """
    id: str = Field(..., min_length=1, max_length=36)
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    baptized: bool | None = None
    department: str | None = None
    position: str | None = None
    service_year: str | None = None
    profile_image_url: str | None = None
    family_id: str | None = None
    user_id: str | None = None
    church_groups: list[str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
