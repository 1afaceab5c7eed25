"""
Response and transfer schemas shared by the API, the import service and the client.

Field names follow the JSON wire format (camelCase) used by the HTTP API.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RowValidationError(BaseModel):
    """
    A single validation failure for a spreadsheet row.

    Attributes:
        row: 1-based row position within its sheet, or -1 when not yet assigned
        description: Human readable rule failure
    """
    row: int = -1
    description: str

    def at_row(self, row: int) -> "RowValidationError":
        """Return a copy attributed to the given 1-based row."""
        return self.model_copy(update={"row": row})


class RecordOut(BaseModel):
    """A persisted record as returned by ``GET /api/records``."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    name: str
    amount: float
    date: datetime
    verified: str
    sheetName: str = Field(validation_alias=AliasChoices("sheetName", "sheet_name"))
    importedAt: datetime = Field(validation_alias=AliasChoices("importedAt", "imported_at"))


class RecordPage(BaseModel):
    records: List[RecordOut]
    totalPages: int
    currentPage: int


class ImportSummary(BaseModel):
    """
    Outcome of one import request.

    Attributes:
        message: Summary message
        importedCount: Rows persisted as records
        skippedCount: Rows rejected by validation or persistence
        errors: Persistence error messages; None (and omitted on the wire) when empty
    """
    message: str
    importedCount: int = 0
    skippedCount: int = 0
    errors: Optional[List[str]] = None

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ImportStatus(BaseModel):
    """Client-side view of a submission, as shown to the user."""
    success: bool
    message: str
    importedCount: Optional[int] = None
    skippedCount: Optional[int] = None
    errors: Optional[List[str]] = None


class SheetPreview(BaseModel):
    name: str
    columns: List[str] = []
    rows: List[Dict[str, Any]] = []
    errors: List[RowValidationError] = []


class UploadResponse(BaseModel):
    """
    Decoded and validated workbook returned by ``POST /api/upload``.

    Attributes:
        sheets: Every sheet with its rows and decode-time validation errors
        activeSheet: Index of the sheet that starts out active
        errors: Validation errors to show immediately after upload
    """
    sheets: List[SheetPreview]
    activeSheet: int = 0
    errors: List[RowValidationError] = []


class ErrorResponse(BaseModel):
    """Standard error body"""
    message: str
    error: Optional[str] = None
