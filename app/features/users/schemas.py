"""
Pydantic schemas for authenticated identities.
"""
from pydantic import BaseModel

from app.features.permissions.policy import AppRole, Capability


class Identity(BaseModel):
    """A caller verified against the auth service."""
    id: str
    email: str | None = None
    name: str | None = None


class IdentityResponse(Identity):
    """Identity plus its resolved role, for the admin UI."""
    role: AppRole | None = None
    capabilities: list[Capability] = []
