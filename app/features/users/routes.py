"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from app.features.users.schemas import Identity, IdentityResponse
from app.features.users.dependencies import get_current_identity
from app.features.permissions.dependencies import get_permission_resolver
from app.features.permissions.policy import PermissionResolver


router = APIRouter(tags=["users"])


@router.get("/me", response_model=IdentityResponse)
async def get_current_user_profile(
    identity: Annotated[Identity, Depends(get_current_identity)],
    resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)]
):
    """Get the verified identity of the caller with its resolved role."""
    return IdentityResponse(
        **identity.model_dump(),
        role=resolver.role,
        capabilities=resolver.capabilities,
    )
