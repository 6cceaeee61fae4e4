"""
Pydantic schemas for member spreadsheet import/export.
"""
from pydantic import BaseModel, Field


class CSVImportResult(BaseModel):
    """Response schema for CSV import operations."""
    status: str = Field(..., description="Import status: success, partial, or failed")
    records_processed: int = Field(..., description="Total number of records processed")
    records_inserted: int = Field(..., description="Number of new members created")
    records_updated: int = Field(..., description="Number of existing members updated")
    records_failed: int = Field(..., description="Number of records that failed validation")
    errors: list["CSVRowError"] = Field(default_factory=list, description="List of errors encountered")


class CSVRowError(BaseModel):
    """Error details for a failed CSV row."""
    row_number: int
    member_id: str | None = None
    error: str


class CSVColumnMapping(BaseModel):
    """Spreadsheet column headers for each member field."""
    id: str = "Id"
    name: str = "Name"
    email: str = "Email"
    gender: str = "Gender"
    baptized: str = "Baptized"
    phone: str = "Phone"
    address: str = "Address"
    date_of_birth: str = "Date of Birth"
    position: str = "Position"
    department: str = "Department"
    service_year: str = "Service Year"
    church_groups: str = "Groups"

    def headers(self) -> list[str]:
        return list(self.model_dump().values())


CSVImportResult.model_rebuild()
