"""
Permission and role management API routes.

Provides endpoints for reading the caller's capabilities, the static role
definitions, and managing role assignments (administrators only).
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.users.dependencies import get_current_identity
from app.features.users.schemas import Identity
from app.features.permissions.models import UserRole
from app.features.permissions.policy import (
    ASSIGNABLE_ROLES,
    ROLE_CAPABILITIES,
    Capability,
    PermissionResolver,
    resolve_role,
    role_display_name,
)
from app.features.permissions.schemas import (
    AssignRoleRequest,
    CurrentPermissionsResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    RoleAssignment,
    RoleDefinition,
    UserRolesResponse,
)
from app.features.permissions.dependencies import (
    get_permission_resolver,
    replace_user_role,
    require_administrator,
    require_any_capability,
)
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Caller Permissions
# ============================================================================

@router.get("/me", response_model=CurrentPermissionsResponse)
async def get_my_permissions(
    identity: Identity = Depends(get_current_identity),
    resolver: PermissionResolver = Depends(get_permission_resolver)
):
    """Get the caller's resolved role and every capability it grants."""
    return CurrentPermissionsResponse(
        user_id=identity.id,
        role=resolver.role,
        display_name=role_display_name(resolver.role) if resolver.role else None,
        capabilities=resolver.capabilities,
    )


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permissions(
    check: PermissionCheckRequest,
    resolver: PermissionResolver = Depends(get_permission_resolver)
):
    """Check whether the caller holds each of the given capabilities."""
    return PermissionCheckResponse(
        role=resolver.role,
        results={capability: resolver.can(capability) for capability in check.capabilities},
        any_granted=resolver.can_any(check.capabilities),
    )


@router.get("/roles", response_model=List[RoleDefinition])
async def list_roles(
    identity: Identity = Depends(get_current_identity)
):
    """List the assignable roles with their display names and capabilities."""
    return [
        RoleDefinition(
            role=role,
            display_name=role_display_name(role),
            capabilities=sorted(ROLE_CAPABILITIES.get(role, frozenset()), key=lambda c: c.value),
        )
        for role in ASSIGNABLE_ROLES
    ]


# ============================================================================
# Role Assignment Routes
# ============================================================================

@router.get("/users/{user_id}/roles", response_model=UserRolesResponse)
async def get_user_roles(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(require_any_capability(
        [Capability.MANAGE_ROLES, Capability.MANAGE_USERS]
    ))
):
    """Get the stored role rows of a user and the role they resolve to."""
    result = await db.execute(
        select(UserRole)
        .where(UserRole.user_id == user_id)
        .order_by(UserRole.created_at)
    )
    assignments = result.scalars().all()

    return UserRolesResponse(
        user_id=user_id,
        assignments=[RoleAssignment.model_validate(a) for a in assignments],
        resolved_role=resolve_role(a.role for a in assignments),
    )


@router.put("/users/{user_id}/role", response_model=RoleAssignment)
async def assign_user_role(
    user_id: str,
    assignment: AssignRoleRequest,
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_administrator)
):
    """Replace all roles of a user with a single role (administrators only)."""
    # Prevent self-demotion
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot modify your own role"
        )

    user_role = await replace_user_role(db, user_id, assignment.role)
    await db.commit()
    await db.refresh(user_role)

    log.info(f"User {admin.id} set role of {user_id} to {assignment.role.value}")
    return user_role


@router.delete("/users/{user_id}/roles/{role}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user_role(
    user_id: str,
    role: str,
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_administrator)
):
    """Delete one stored role row of a user (administrators only)."""
    condition = and_(UserRole.user_id == user_id, UserRole.role == role)

    check_result = await db.execute(select(UserRole.id).where(condition))
    if not check_result.first():
        raise HTTPException(status_code=404, detail="Role assignment not found")

    await db.execute(delete(UserRole).where(condition))
    await db.commit()

    log.info(f"User {admin.id} removed role {role!r} from {user_id}")
    return None
