"""
Pydantic schemas for permission and role management API requests/responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator

from app.features.permissions.policy import ASSIGNABLE_ROLES, AppRole, Capability


class RoleDefinition(BaseModel):
    """A role and the capabilities it grants."""
    role: AppRole
    display_name: str
    capabilities: list[Capability]


class CurrentPermissionsResponse(BaseModel):
    """Caller's resolved role and capabilities."""
    user_id: str
    role: AppRole | None = None
    display_name: str | None = None
    capabilities: list[Capability] = []


class PermissionCheckRequest(BaseModel):
    """Capabilities to test for the caller."""
    capabilities: list[Capability] = Field(..., min_length=1)


class PermissionCheckResponse(BaseModel):
    """Per-capability result plus whether any was granted."""
    role: AppRole | None = None
    results: dict[Capability, bool]
    any_granted: bool


class RoleAssignment(BaseModel):
    """Stored role row."""
    id: str
    user_id: str
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserRolesResponse(BaseModel):
    """All stored role rows of an identity and the role they resolve to."""
    user_id: str
    assignments: list[RoleAssignment]
    resolved_role: AppRole | None = None


class AssignRoleRequest(BaseModel):
    """Replace an identity's roles with a single role."""
    role: AppRole

    @field_validator("role")
    @classmethod
    def must_be_assignable(cls, value: AppRole) -> AppRole:
        if value not in ASSIGNABLE_ROLES:
            raise ValueError(
                f"Role '{value.value}' cannot be assigned; choose one of "
                f"{', '.join(role.value for role in ASSIGNABLE_ROLES)}"
            )
        return value
