"""
CSV utility functions for member data parsing and formatting.
"""
from datetime import date
from typing import Any


def parse_bool(value: str | None) -> bool | None:
    """
    Interpret a CSV cell as a yes/no answer.
    
    Recognizes 'true', 'yes', '1', 't' and 'y' as true and 'false', 'no', '0',
    'f' and 'n' as false (case-insensitive, surrounding whitespace ignored).
    
    Returns:
        True or False, or None for a blank or unrecognised cell.
    """
    if not value or not value.strip():
        return None
    normalized = value.strip().lower()
    if normalized in ('true', 'yes', '1', 't', 'y'):
        return True
    if normalized in ('false', 'no', '0', 'f', 'n'):
        return False
    return None


def format_bool(value: bool | None) -> str:
    if value is None:
        return ""
    return "Yes" if value else "No"


def parse_date(value: str | None) -> date | None:
    """
    Parse an ISO (YYYY-MM-DD) date cell.
    
    Raises:
        ValueError: if the cell is not blank and not an ISO date.
    """
    if not value or not value.strip():
        return None
    return date.fromisoformat(value.strip())


def parse_list(value: str | None) -> list[str] | None:
    """Split a comma separated cell into trimmed, non-empty items."""
    if not value or not value.strip():
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def safe_get(row: dict, key: str, default: Any = None) -> Any:
    """
    Safely get a value from CSV row, returning default if missing or empty.
    """
    value = row.get(key, default)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
    return value


def validate_required_fields(row: dict, required_fields: list[str], row_number: int) -> list[str]:
    """
    Check that each required field in a CSV row exists and contains a non-empty value.
    
    Returns:
        list[str]: Error messages of the form "Row {row_number}: Missing required field '{field}'" for each required field that is missing or blank.
    """
    errors = []
    for field in required_fields:
        value = row.get(field)
        if not value or (isinstance(value, str) and not value.strip()):
            errors.append(f"Row {row_number}: Missing required field '{field}'")
    return errors
