"""
Dependencies that hand explicit store handles to the sync routes.
"""
from typing import Annotated
from fastapi import Depends, HTTPException, Request, status

from app.core import config
from app.core.database.engine import engine
from app.features.directory_sync.service import DirectorySyncJob
from app.features.directory_sync.stores import PrimaryMemberStore, SecondaryMemberStore


def get_primary_store() -> PrimaryMemberStore:
    return PrimaryMemberStore(engine, batch_size=config.SYNC_BATCH_SIZE)


def get_secondary_store(request: Request) -> SecondaryMemberStore:
    """
    Wrap the secondary engine created at startup.

    Raises:
        HTTPException: 503 if the secondary store is not configured
    """
    secondary_engine = getattr(request.app.state, "secondary_engine", None)
    if secondary_engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Secondary database is not configured",
        )
    return SecondaryMemberStore(secondary_engine, batch_size=config.SYNC_BATCH_SIZE)


def get_directory_sync_job(
    primary: Annotated[PrimaryMemberStore, Depends(get_primary_store)],
    secondary: Annotated[SecondaryMemberStore, Depends(get_secondary_store)],
) -> DirectorySyncJob:
    return DirectorySyncJob(primary, secondary)
