"""
Directory sync API routes.

Both routes require a server-verified administrator: the role is re-read from
the primary store's ``user_roles`` table before any member data is touched.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core import config
from app.core.rate_limit import limiter
from app.features.users.schemas import Identity
from app.features.permissions.dependencies import require_administrator
from app.features.directory_sync.dependencies import (
    get_directory_sync_job,
    get_primary_store,
    get_secondary_store,
)
from app.features.directory_sync.schemas import (
    StoreStatus,
    SyncRequest,
    SyncResponse,
    SyncStatusResponse,
)
from app.features.directory_sync.service import DirectorySyncJob
from app.features.directory_sync.stores import MemberStore, PrimaryMemberStore, SecondaryMemberStore
from app.utils import get_logger

log = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=SyncResponse)
@limiter.limit(config.SYNC_RATE_LIMIT)
async def run_directory_sync(
    request: Request,
    sync_request: SyncRequest,
    admin: Identity = Depends(require_administrator),
    job: DirectorySyncJob = Depends(get_directory_sync_job)
):
    """
    Synchronize the member directory between the primary and secondary stores.

    Returns a pass/fail result. Rows that fail individually are logged for
    operators and do not fail the run; a store that cannot be reached does.
    """
    log.info(f"User {admin.id} started directory sync ({sync_request.direction.value})")
    outcome = await job.run(sync_request.direction)

    for transfer in outcome.transfers:
        log.info(
            f"{transfer.source} -> {transfer.destination}: read={transfer.rows_read} "
            f"written={transfer.rows_written} failed={transfer.rows_failed}"
        )

    response = SyncResponse(success=outcome.success, message=outcome.message, error=outcome.error)
    if not outcome.success:
        return JSONResponse(status_code=500, content=response.model_dump())
    return response


async def _store_status(store: MemberStore) -> StoreStatus:
    status = StoreStatus(name=store.name, dialect=store.dialect_name)
    try:
        status.members = await store.count_rows()
    except SQLAlchemyError as e:
        log.error(f"Failed to read {store.name} store status: {e}")
        status.error = str(getattr(e, "orig", None) or e)
    return status


@router.get("/status", response_model=SyncStatusResponse)
async def get_directory_sync_status(
    admin: Identity = Depends(require_administrator),
    primary: PrimaryMemberStore = Depends(get_primary_store),
    secondary: SecondaryMemberStore = Depends(get_secondary_store)
):
    """Get the number of members held by each store."""
    return SyncStatusResponse(
        primary=await _store_status(primary),
        secondary=await _store_status(secondary),
    )
