"""
The directory sync job.

Copies member rows between the primary and secondary stores with upsert
semantics keyed by member id:

- ``source-to-dest``: primary → secondary
- ``dest-to-source``: secondary → primary
- ``bidirectional``: primary → secondary, then secondary → primary

The job never deletes. Per-row failures are logged and skipped; failing to
reach either store aborts the run with a single error. A row missing a
timestamp is backfilled in both stores during the transfer that reads it.
"""
import enum
from dataclasses import dataclass, field
from typing import Optional

from app.features.directory_sync import codec
from app.features.directory_sync.stores import MemberStore, RowFailure
from app.utils import get_logger


log = get_logger(__name__)


class SyncDirection(str, enum.Enum):
    BIDIRECTIONAL = "bidirectional"
    SOURCE_TO_DEST = "source-to-dest"
    DEST_TO_SOURCE = "dest-to-source"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return LEGACY_DIRECTIONS.get(normalized)

    @property
    def pushes(self) -> bool:
        """Whether primary rows are written to the secondary store."""
        return self in (SyncDirection.BIDIRECTIONAL, SyncDirection.SOURCE_TO_DEST)

    @property
    def pulls(self) -> bool:
        """Whether secondary rows are written to the primary store."""
        return self in (SyncDirection.BIDIRECTIONAL, SyncDirection.DEST_TO_SOURCE)


# Direction names used by the earlier admin screen
LEGACY_DIRECTIONS: dict[str, SyncDirection] = {
    "supabase-to-mysql": SyncDirection.SOURCE_TO_DEST,
    "mysql-to-supabase": SyncDirection.DEST_TO_SOURCE,
}


@dataclass
class TransferReport:
    """What happened while copying one direction."""
    source: str
    destination: str
    rows_read: int = 0
    rows_written: int = 0
    failures: list[RowFailure] = field(default_factory=list)

    @property
    def rows_failed(self) -> int:
        return len(self.failures)


@dataclass
class SyncOutcome:
    """Result of a sync run. ``error`` is set exactly when ``success`` is false."""
    success: bool
    direction: SyncDirection
    message: Optional[str] = None
    error: Optional[str] = None
    transfers: list[TransferReport] = field(default_factory=list)


class DirectorySyncJob:
    """
    One-shot member sync between two explicitly supplied stores.

    Usage:
        job = DirectorySyncJob(PrimaryMemberStore(engine), SecondaryMemberStore(mysql_engine))
        outcome = await job.run(SyncDirection.BIDIRECTIONAL)
    """

    def __init__(self, primary: MemberStore, secondary: MemberStore) -> None:
        self.primary = primary
        self.secondary = secondary

    async def run(self, direction: SyncDirection) -> SyncOutcome:
        """
        Run the sync in the given direction.

        Never raises; failures come back as ``SyncOutcome(success=False)``.
        """
        direction = SyncDirection(direction)
        transfers: list[TransferReport] = []
        try:
            await self.primary.prepare()
            await self.secondary.prepare()

            if direction.pushes:
                transfers.append(await self._transfer(self.primary, self.secondary))
            if direction.pulls:
                transfers.append(await self._transfer(self.secondary, self.primary))
        except Exception as e:  # noqa: BLE001
            log.exception(f"Directory sync ({direction.value}) failed")
            return SyncOutcome(
                success=False,
                direction=direction,
                error=str(getattr(e, "orig", None) or e) or type(e).__name__,
                transfers=transfers,
            )

        return SyncOutcome(
            success=True,
            direction=direction,
            message=f"Sync completed successfully ({direction.value})",
            transfers=transfers,
        )

    async def _transfer(self, source: MemberStore, destination: MemberStore) -> TransferReport:
        log.info(f"Syncing members from {source.name} to {destination.name}...")
        report = TransferReport(source=source.name, destination=destination.name)

        rows = await source.fetch_rows()
        report.rows_read = len(rows)
        log.info(f"Found {report.rows_read} members in {source.name}")

        pending = []
        backfills = []
        for row in rows:
            try:
                record = source.decode(row)
                backfilled = codec.fill_timestamps(record)
                pending.append(destination.encode(record))
                if backfilled:
                    backfills.append(source.encode(record))
            except ValueError as e:
                # pydantic.ValidationError and json.JSONDecodeError are ValueErrors
                log.error(f"Skipping member {row.get('id')} from {source.name}: {e}")
                report.failures.append(RowFailure(member_id=row.get("id"), error=str(e)))

        write_failures = await destination.upsert_rows(pending)
        report.failures.extend(write_failures)
        report.rows_written = len(pending) - len(write_failures)

        if backfills:
            log.info(f"Backfilling timestamps of {len(backfills)} members in {source.name}")
            await source.upsert_rows(backfills)

        log.info(
            f"Sync from {source.name} to {destination.name} completed: "
            f"{report.rows_written} written, {report.rows_failed} failed"
        )
        return report
