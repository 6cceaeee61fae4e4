"""
Dialect-aware multi-row upsert statements.

Both directory stores write with "insert, or overwrite on key conflict". MySQL
spells it ``INSERT ... ON DUPLICATE KEY UPDATE``; Postgres and SQLite spell it
``INSERT ... ON CONFLICT (key) DO UPDATE``.
"""
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Table
from sqlalchemy.dialects import mysql, postgresql, sqlite


def build_upsert(
    table: Table,
    rows: Sequence[dict[str, Any]],
    dialect_name: str,
    key: str = "id",
):
    """
    Build an upsert of ``rows`` into ``table`` keyed by ``key``.

    Every column present in the rows except the key is overwritten on conflict.
    All rows must carry the same keys.

    Raises:
        ValueError: if ``rows`` is empty or the dialect has no upsert form.
    """
    if not rows:
        raise ValueError("Cannot build an upsert without rows")

    update_columns = [name for name in rows[0] if name != key]

    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql.insert(table).values(list(rows))
        return stmt.on_duplicate_key_update(
            {name: stmt.inserted[name] for name in update_columns}
        )

    if dialect_name == "postgresql":
        stmt = postgresql.insert(table).values(list(rows))
    elif dialect_name == "sqlite":
        stmt = sqlite.insert(table).values(list(rows))
    else:
        raise ValueError(f"Upsert is not supported for dialect {dialect_name!r}")

    return stmt.on_conflict_do_update(
        index_elements=[table.c[key]],
        set_={name: stmt.excluded[name] for name in update_columns},
    )
