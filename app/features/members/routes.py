"""
Member directory API routes on the primary store.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.members.models import Member
from app.features.members.schemas import MemberCreate, MemberResponse, MemberUpdate
from app.features.permissions.dependencies import require_capability
from app.features.permissions.policy import Capability, PermissionResolver
from app.utils import get_logger

log = get_logger(__name__)
router = APIRouter()

can_view = require_capability(Capability.VIEW_MEMBER_DIRECTORY)
can_manage = require_capability(Capability.MANAGE_MEMBERS)


async def _get_member_or_404(db: AsyncSession, member_id: str) -> Member:
    member = await db.scalar(select(Member).where(Member.id == member_id))
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


@router.get("", response_model=list[MemberResponse])
async def list_members(
    q: str | None = None,
    department: str | None = None,
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(can_view)
):
    """
    List members ordered by name.

    Parameters:
        q (str | None): Case-insensitive substring match on the member name.
        department (str | None): Only members of this department.
        skip (int): Number of records to skip for pagination.
        limit (int): Maximum number of records to return.
    """
    query = select(Member)
    if q:
        query = query.where(Member.name.ilike(f"%{q.strip()}%"))
    if department:
        query = query.where(Member.department == department)
    query = query.order_by(Member.name).offset(skip).limit(limit)

    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{member_id}", response_model=MemberResponse)
async def get_member(
    member_id: str,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(can_view)
):
    """
    Retrieve a member by id.

    Raises:
        HTTPException: 404 if no member with the given id exists.
    """
    return await _get_member_or_404(db, member_id)


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def create_member(
    member_data: MemberCreate,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(can_manage)
):
    """Create a member. A UUID is generated when no id is supplied."""
    values = member_data.model_dump(exclude_none=True)
    member = Member(**values)
    db.add(member)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Member {member_data.id} already exists"
        )
    await db.refresh(member)
    log.info(f"Created member {member.id}")
    return member


@router.patch("/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: str,
    update_data: MemberUpdate,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(can_manage)
):
    """Update only the provided fields of a member."""
    member = await _get_member_or_404(db, member_id)

    changes = update_data.model_dump(exclude_unset=True)
    if changes.get("name", "") is None:
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    for field, value in changes.items():
        setattr(member, field, value)

    await db.commit()
    await db.refresh(member)
    return member


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_member(
    member_id: str,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(can_manage)
):
    """Delete a member from the primary store. The secondary copy is left alone."""
    member = await _get_member_or_404(db, member_id)
    await db.delete(member)
    await db.commit()
    log.info(f"Deleted member {member_id}")
    return None
