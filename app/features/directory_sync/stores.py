"""
Member stores taking part in the directory sync.

Each store wraps an explicitly injected ``AsyncEngine`` and a ``members``
table. Stores only ever read everything or upsert by id; they never delete.
"""
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    func,
    inspect,
    select,
    text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from app.core.database.upsert import build_upsert
from app.features.directory_sync import codec
from app.features.members.models import Member
from app.features.members.schemas import MemberRecord
from app.utils import get_logger


log = get_logger(__name__)


# Secondary store schema, created on demand by SecondaryMemberStore.prepare()
secondary_metadata = MetaData()

secondary_members = Table(
    "members",
    secondary_metadata,
    Column("id", String(36), primary_key=True),
    Column("name", Text, nullable=False),
    Column("email", Text),
    Column("phone", Text),
    Column("address", Text),
    Column("date_of_birth", Date),
    Column("gender", Text),
    Column("baptized", Boolean, server_default=text("0")),
    Column("department", Text),
    Column("position", Text),
    Column("service_year", Text),
    Column("profile_image_url", Text),
    Column("family_id", String(36)),
    Column("user_id", String(36)),
    # JSON-encoded list of group names
    Column("church_groups", Text),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
)


@dataclass
class RowFailure:
    """A member row that could not be translated or written."""
    member_id: str | None
    error: str


class MemberStore:
    """
    Base class for a store holding a ``members`` table.

    Subclasses provide the table and the translation to and from
    ``MemberRecord``.
    """

    name = "store"
    table: Table

    def __init__(self, engine: AsyncEngine, batch_size: int = 200) -> None:
        self.engine = engine
        self.batch_size = max(1, batch_size)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    async def prepare(self) -> None:
        """
        Verify the store is reachable.

        Raises:
            SQLAlchemyError: if no connection can be made
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def fetch_rows(self) -> list[dict[str, Any]]:
        """Read every member row in the store's own representation."""
        async with self.engine.connect() as conn:
            result = await conn.execute(select(self.table))
            return [dict(row) for row in result.mappings()]

    async def count_rows(self) -> int | None:
        """Number of member rows, or None when the table does not exist yet."""
        async with self.engine.connect() as conn:
            exists = await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table(self.table.name))
            if not exists:
                return None
            return await conn.scalar(select(func.count()).select_from(self.table))

    def decode(self, row: Mapping[str, Any]) -> MemberRecord:
        raise NotImplementedError

    def encode(self, record: MemberRecord) -> dict[str, Any]:
        raise NotImplementedError

    async def upsert_rows(self, rows: Sequence[dict[str, Any]]) -> list[RowFailure]:
        """
        Upsert rows by id, ``batch_size`` rows per statement.

        A failed batch is rolled back and its rows written one at a time, so
        a bad row is logged and skipped while the rest still land.

        Returns:
            The rows that could not be written.
        """
        failures: list[RowFailure] = []
        if not rows:
            return failures

        # Connection errors propagate and abort the run
        async with self.engine.connect() as conn:
            for start in range(0, len(rows), self.batch_size):
                batch = rows[start:start + self.batch_size]
                try:
                    await self._write(conn, batch)
                except SQLAlchemyError as e:
                    _raise_if_disconnected(e)
                    if len(batch) == 1:
                        failures.append(self._failure(batch[0], e))
                        continue
                    log.warning(
                        f"Batch upsert of {len(batch)} rows into {self.name} failed, "
                        f"retrying row by row: {_describe(e)}"
                    )
                    for row in batch:
                        try:
                            await self._write(conn, [row])
                        except SQLAlchemyError as row_error:
                            _raise_if_disconnected(row_error)
                            failures.append(self._failure(row, row_error))
        return failures

    async def _write(self, conn: AsyncConnection, rows: Sequence[dict[str, Any]]) -> None:
        stmt = build_upsert(self.table, rows, self.dialect_name)
        async with conn.begin():
            await conn.execute(stmt)

    def _failure(self, row: Mapping[str, Any], error: Exception) -> RowFailure:
        member_id = row.get("id")
        log.error(f"Failed to upsert member {member_id} into {self.name}: {_describe(error)}")
        return RowFailure(member_id=member_id, error=_describe(error))

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(dialect={self.dialect_name})>"


class PrimaryMemberStore(MemberStore):
    """The hosted primary store. Its schema is owned by ``init_db``."""

    name = "primary"
    table = Member.__table__

    def decode(self, row: Mapping[str, Any]) -> MemberRecord:
        return codec.decode_primary(row)

    def encode(self, record: MemberRecord) -> dict[str, Any]:
        return codec.encode_primary(record)


class SecondaryMemberStore(MemberStore):
    """The self-hosted MySQL store. Never authoritative; only the sync writes it."""

    name = "secondary"
    table = secondary_members

    async def prepare(self) -> None:
        """Connect and create the ``members`` table when it does not exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(secondary_metadata.create_all, checkfirst=True)
        log.info("Members table ready in secondary store")

    def decode(self, row: Mapping[str, Any]) -> MemberRecord:
        return codec.decode_secondary(row)

    def encode(self, record: MemberRecord) -> dict[str, Any]:
        return codec.encode_secondary(record)


def _describe(error: Exception) -> str:
    """Short error text; SQLAlchemy wraps the driver error in ``orig``."""
    orig = getattr(error, "orig", None)
    return str(orig) if orig is not None else str(error)


def _raise_if_disconnected(error: SQLAlchemyError) -> None:
    if getattr(error, "connection_invalidated", False):
        raise error
