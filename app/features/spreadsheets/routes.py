"""
Member spreadsheet routes: export of the directory, an import template and
bulk import, as CSV or Excel (.xlsx) workbooks.

Import features:
- Rows carrying a known Id update that member, other rows create one
- Row-level validation with detailed error reporting
- Single transaction; rows that fail validation are skipped, not written
"""
import csv
from datetime import date, datetime
from io import BytesIO, StringIO
from typing import Literal
from zipfile import BadZipFile

from fastapi import APIRouter, Depends, UploadFile, HTTPException, File, Query
from fastapi.responses import Response
from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.members.models import Member
from app.features.permissions.dependencies import require_capability
from app.features.permissions.policy import Capability, PermissionResolver
from app.features.spreadsheets.schemas import CSVImportResult, CSVRowError, CSVColumnMapping
from app.features.spreadsheets.utils import (
    format_bool, parse_bool, parse_date, parse_list, safe_get, validate_required_fields
)
from app.utils import get_logger

logger = get_logger(__name__)
router = APIRouter()

can_manage = require_capability(Capability.MANAGE_MEMBERS)
email_adapter = TypeAdapter(EmailStr)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
TEMPLATE_FILE_NAME = "member_import_template.xlsx"


def _attachment(content: bytes | str, media_type: str, file_name: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


def _workbook_bytes(title: str, rows: list[list]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(row)
    output = BytesIO()
    wb.save(output)
    return output.getvalue()


def _export_row(member: Member) -> list:
    return [
        member.id,
        member.name,
        member.email,
        member.gender,
        format_bool(member.baptized),
        member.phone,
        member.address,
        member.date_of_birth,
        member.position,
        member.department,
        member.service_year,
        ", ".join(member.church_groups or []),
    ]


@router.get("/members/export")
async def export_members(
    format: Literal["csv", "xlsx"] = Query("csv", description="csv or xlsx"),
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(can_manage)
):
    """
    Export the whole member directory as a CSV or Excel attachment.

    Columns follow CSVColumnMapping; the file can be edited and re-imported.
    """
    mapping = CSVColumnMapping()
    result = await db.execute(select(Member).order_by(Member.name))
    members = result.scalars().all()
    rows = [_export_row(member) for member in members]

    file_name = f"members_export_{date.today().isoformat()}.{format}"
    logger.info(f"Exported {len(members)} members to {file_name}")

    if format == "xlsx":
        content = _workbook_bytes("Members", [mapping.headers(), *rows])
        return _attachment(content, XLSX_MEDIA_TYPE, file_name)

    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(mapping.headers())
    writer.writerows(rows)
    return _attachment(buffer.getvalue(), "text/csv", file_name)


@router.get("/members/template")
async def download_import_template(
    resolver: PermissionResolver = Depends(can_manage)
):
    """Excel workbook with the import headers and one example row."""
    mapping = CSVColumnMapping()
    headers = [header for header in mapping.headers() if header != mapping.id]
    example = {
        mapping.name: "John Doe",
        mapping.email: "john@example.com",
        mapping.gender: "Male",
        mapping.baptized: "Yes",
        mapping.phone: "123-4567890",
        mapping.address: "123 Main St, Anytown, MD 12345",
        mapping.date_of_birth: "1990-01-15",
        mapping.position: "Member",
        mapping.department: "",
        mapping.service_year: "2024",
        mapping.church_groups: "Volunteer, Youth",
    }
    content = _workbook_bytes("Template", [headers, [example[header] for header in headers]])
    return _attachment(content, XLSX_MEDIA_TYPE, TEMPLATE_FILE_NAME)


def _read_csv(content: bytes) -> list[tuple[int, dict]]:
    # utf-8-sig also accepts files without a BOM
    try:
        text_content = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded")

    reader = csv.DictReader(StringIO(text_content))
    return list(enumerate(reader, start=2))  # Start at 2 (header is row 1)


def _cell_text(value) -> str:
    """Render a workbook cell the way the same cell reads in a CSV file."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return format_bool(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _read_xlsx(content: bytes) -> list[tuple[int, dict]]:
    """Rows of the first worksheet keyed by the header row; blank rows are skipped."""
    try:
        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError):
        raise HTTPException(status_code=400, detail="File is not a readable Excel workbook")

    try:
        rows = list(workbook.worksheets[0].iter_rows(values_only=True))
    finally:
        workbook.close()

    if not rows:
        return []

    headers = [_cell_text(cell).strip() for cell in rows[0]]
    records = []
    for row_number, row in enumerate(rows[1:], start=2):
        values = [_cell_text(cell) for cell in row]
        if not any(value.strip() for value in values):
            continue
        records.append((row_number, dict(zip(headers, values))))
    return records


def _row_values(row: dict, mapping: CSVColumnMapping) -> dict:
    """
    Convert one spreadsheet row into member field values.

    Raises:
        ValueError: for a malformed date or email cell
    """
    email = safe_get(row, mapping.email)
    if email is not None:
        try:
            email = str(email_adapter.validate_python(email))
        except ValidationError:
            raise ValueError(f"Invalid email address '{email}'")

    date_of_birth = safe_get(row, mapping.date_of_birth)
    try:
        date_of_birth = parse_date(date_of_birth)
    except ValueError:
        raise ValueError(f"Invalid date of birth '{date_of_birth}', expected YYYY-MM-DD")

    return {
        "name": safe_get(row, mapping.name),
        "email": email,
        "gender": safe_get(row, mapping.gender),
        "baptized": parse_bool(safe_get(row, mapping.baptized)),
        "phone": safe_get(row, mapping.phone),
        "address": safe_get(row, mapping.address),
        "date_of_birth": date_of_birth,
        "position": safe_get(row, mapping.position),
        "department": safe_get(row, mapping.department),
        "service_year": safe_get(row, mapping.service_year),
        "church_groups": parse_list(safe_get(row, mapping.church_groups)),
    }


@router.post("/members/import", response_model=CSVImportResult)
async def import_members(
    file: UploadFile = File(..., description="CSV or Excel file containing members"),
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(can_manage)
):
    """
    Import members from a CSV or Excel (.xlsx) file.

    The file should contain columns matching the CSVColumnMapping schema;
    only Name is required. For workbooks the first worksheet is read and its
    first row holds the headers. A row whose Id matches an existing member
    updates that member, any other row creates a new member (keeping the Id
    if given).

    Returns detailed results including success/failure counts and error details.
    """
    file_name = (file.filename or "").lower()
    if file_name.endswith(".csv"):
        reader = _read_csv
    elif file_name.endswith(".xlsx"):
        reader = _read_xlsx
    else:
        raise HTTPException(status_code=400, detail="File must be a CSV (.csv) or Excel workbook (.xlsx)")

    rows = reader(await file.read())
    mapping = CSVColumnMapping()

    records_processed = 0
    records_inserted = 0
    records_updated = 0
    records_failed = 0
    errors: list[CSVRowError] = []

    # Members already created or updated by this file, by id
    member_cache: dict[str, Member] = {}

    for row_number, row in rows:
        records_processed += 1
        member_id = safe_get(row, mapping.id)

        field_errors = validate_required_fields(row, [mapping.name], row_number)
        if field_errors:
            errors.extend(
                CSVRowError(row_number=row_number, member_id=member_id, error=err)
                for err in field_errors
            )
            records_failed += 1
            continue

        if member_id is not None and len(member_id) > 36:
            errors.append(CSVRowError(
                row_number=row_number, member_id=member_id, error=f"Row {row_number}: Id is longer than 36 characters"
            ))
            records_failed += 1
            continue

        try:
            values = _row_values(row, mapping)
        except ValueError as e:
            errors.append(CSVRowError(row_number=row_number, member_id=member_id, error=f"Row {row_number}: {e}"))
            records_failed += 1
            continue

        member = None
        if member_id is not None:
            member = member_cache.get(member_id)
            if member is None:
                member = await db.scalar(select(Member).where(Member.id == member_id))

        if member is not None:
            for field, value in values.items():
                setattr(member, field, value)
            records_updated += 1
            logger.debug(f"Updated member {member.id} from row {row_number}")
        else:
            member = Member(**values)
            if member_id is not None:
                member.id = member_id
            db.add(member)
            await db.flush()
            records_inserted += 1
            logger.debug(f"Created member {member.id} from row {row_number}")

        member_cache[member.id] = member

    await db.commit()

    if records_failed == 0:
        status = "success"
    elif records_failed < records_processed:
        status = "partial"
    else:
        status = "failed"

    logger.info(
        f"Member import {status}: processed={records_processed} inserted={records_inserted} "
        f"updated={records_updated} failed={records_failed}"
    )

    return CSVImportResult(
        status=status,
        records_processed=records_processed,
        records_inserted=records_inserted,
        records_updated=records_updated,
        records_failed=records_failed,
        errors=errors,
    )
