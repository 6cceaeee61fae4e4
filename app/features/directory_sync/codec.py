"""
Translation of member rows between store representations.

The primary store keeps ``church_groups`` as a native JSON list; the secondary
store keeps it as a JSON-encoded string. Everything else is passed through.
"""
import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from app.features.members.schemas import MemberRecord


TIMESTAMP_FIELDS = ("created_at", "updated_at")


def dump_groups(groups: list[str] | None) -> str | None:
    if groups is None:
        return None
    return json.dumps(list(groups))


def load_groups(raw: Any) -> list[str] | None:
    """
    Parse a stored group list.

    Accepts the JSON string written by ``dump_groups`` and, for drivers that
    decode JSON columns themselves, an already decoded list.

    Raises:
        ValueError: if the value is not a JSON array
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    value = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(value, list):
        raise ValueError(f"church_groups is not a JSON array: {raw!r}")
    return [str(group) for group in value]


def fill_timestamps(record: MemberRecord) -> bool:
    """
    Give a record with a missing timestamp a value.

    A missing timestamp takes the other one, or the current time (whole
    seconds, UTC) when both are missing. The same record is then written to
    both stores so every later sync carries the same value.

    Returns:
        True when anything was filled.
    """
    if record.created_at is not None and record.updated_at is not None:
        return False
    fallback = record.created_at or record.updated_at or datetime.now(timezone.utc).replace(microsecond=0)
    record.created_at = record.created_at or fallback
    record.updated_at = record.updated_at or fallback
    return True


def _with_timestamps(values: dict[str, Any], aware: bool) -> dict[str, Any]:
    # Timestamps are UTC. The primary stores them zone-aware, the secondary
    # stores naive UTC wall time.
    for field in TIMESTAMP_FIELDS:
        value = values.get(field)
        if value is None:
            continue
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        else:
            value = value.astimezone(timezone.utc)
        values[field] = value if aware else value.replace(tzinfo=None)
    return values


def decode_primary(row: Mapping[str, Any]) -> MemberRecord:
    return MemberRecord.model_validate(dict(row))


def encode_primary(record: MemberRecord) -> dict[str, Any]:
    return _with_timestamps(record.model_dump(), aware=True)


def decode_secondary(row: Mapping[str, Any]) -> MemberRecord:
    values = dict(row)
    values["church_groups"] = load_groups(values.get("church_groups"))
    return MemberRecord.model_validate(values)


def encode_secondary(record: MemberRecord) -> dict[str, Any]:
    values = record.model_dump()
    values["church_groups"] = dump_groups(record.church_groups)
    return _with_timestamps(values, aware=False)
