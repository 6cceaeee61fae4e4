"""
Role lookup utilities and dependencies for capability checks.

Implements:
- Fetching and resolving an identity's stored role rows
- FastAPI dependencies for route protection
- Role assignment helpers shared by the routes and operator scripts
"""
from typing import Annotated, Optional, List
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.users.dependencies import get_current_identity
from app.features.users.schemas import Identity
from app.features.permissions.models import UserRole
from app.features.permissions.policy import (
    AppRole,
    Capability,
    PermissionResolver,
    resolve_role,
)
from app.utils import get_logger


log = get_logger(__name__)


# ============================================================================
# Role Lookup
# ============================================================================

async def fetch_role_names(db: AsyncSession, user_id: str) -> List[str]:
    """Return the raw stored role values for an identity."""
    result = await db.execute(
        select(UserRole.role).where(UserRole.user_id == user_id)
    )
    return list(result.scalars().all())


async def resolve_user_role(db: AsyncSession, user_id: str) -> Optional[AppRole]:
    """
    Resolve an identity's effective role.

    A failing lookup degrades to "no role" rather than an error.
    """
    try:
        stored = await fetch_role_names(db, user_id)
    except SQLAlchemyError as e:
        log.error(f"Failed to fetch roles for user {user_id}: {e}")
        return None
    return resolve_role(stored)


async def replace_user_role(db: AsyncSession, user_id: str, role: AppRole) -> UserRole:
    """
    Replace every stored role of an identity with ``role``.

    Deletes and inserts in the caller's transaction; the caller commits.
    """
    await db.execute(delete(UserRole).where(UserRole.user_id == user_id))
    assignment = UserRole(user_id=user_id, role=role.value)
    db.add(assignment)
    await db.flush()
    return assignment


# ============================================================================
# FastAPI Dependencies
# ============================================================================

async def get_current_role(
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[AppRole]:
    """Resolved role of the caller, re-read from the primary store on every request."""
    return await resolve_user_role(db, identity.id)


async def get_permission_resolver(
    role: Annotated[Optional[AppRole], Depends(get_current_role)],
) -> PermissionResolver:
    return PermissionResolver(role)


def require_capability(capability: Capability):
    """
    FastAPI dependency to require a specific capability.

    Usage:
        @router.post("/members")
        async def create_member(
            resolver: PermissionResolver = Depends(require_capability(Capability.MANAGE_MEMBERS))
        ):
            ...

    Raises:
        HTTPException: 403 if the caller's role does not grant the capability
    """
    async def capability_dependency(
        resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
    ) -> PermissionResolver:
        if not resolver.can(capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {capability.value}"
            )
        return resolver

    return capability_dependency


def require_any_capability(capabilities: List[Capability]):
    """
    FastAPI dependency to require ANY of the specified capabilities.

    Usage:
        @router.get("/reports")
        async def get_reports(
            resolver: PermissionResolver = Depends(require_any_capability(
                [Capability.MANAGE_MEMBERS, Capability.MANAGE_STAFF]
            ))
        ):
            pass
    """
    async def capability_dependency(
        resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
    ) -> PermissionResolver:
        if not resolver.can_any(capabilities):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: requires one of {[c.value for c in capabilities]}"
            )
        return resolver

    return capability_dependency


async def require_administrator(
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Identity:
    """
    Require a server-verified administrator.

    Unlike ``get_current_role`` a failed role lookup is an error here, never a
    silent downgrade.

    Raises:
        HTTPException: 500 if roles cannot be read, 403 if not an administrator

    Only a stored ``administrator`` row qualifies; the legacy ``admin`` role
    keeps its capabilities but not this gate.
    """
    try:
        stored = await fetch_role_names(db, identity.id)
    except SQLAlchemyError as e:
        log.error(f"Failed to fetch roles for user {identity.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to verify user permissions",
        )

    if not PermissionResolver.from_stored_roles(stored).is_administrator:
        log.warning(f"User {identity.id} is not an administrator. Roles: {stored}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Administrator role required.",
        )

    log.info(f"Administrator access verified for user {identity.id}")
    return identity
