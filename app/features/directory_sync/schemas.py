"""
Pydantic schemas for directory sync API requests/responses.
"""
from pydantic import BaseModel, field_validator

from app.features.directory_sync.service import SyncDirection


class SyncRequest(BaseModel):
    """Which way to copy member rows."""
    direction: SyncDirection = SyncDirection.BIDIRECTIONAL

    @field_validator("direction", mode="before")
    @classmethod
    def accept_legacy_names(cls, value):
        # Routes legacy names through SyncDirection._missing_
        if isinstance(value, str):
            return SyncDirection(value)
        return value


class SyncResponse(BaseModel):
    """Pass/fail result of a sync run. Per-row failures are only logged."""
    success: bool
    message: str | None = None
    error: str | None = None


class StoreStatus(BaseModel):
    name: str
    dialect: str
    members: int | None = None
    error: str | None = None


class SyncStatusResponse(BaseModel):
    """Member counts in both stores."""
    primary: StoreStatus
    secondary: StoreStatus
