"""
Server-side import of submitted sheet rows.

Rows are re-validated independently of the client and persisted one at a time.
A row that fails validation is skipped silently; a row that fails while being
stored is skipped and its message reported. Nothing spans the whole batch, so
earlier rows stay stored when a later one fails.
"""
import logging
from datetime import date, timezone
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from record_store import Record, RecordStore
from row_validator import parse_row_date, rejection_reason
from schemas import ImportSummary
from sheet_processor import LogContext

logger = logging.getLogger(__name__)

IMPORT_COMPLETED_MESSAGE = "Import completed successfully"
INVALID_REQUEST_MESSAGE = "Invalid request format"


class RequestFormatError(ValueError):
    """The import request is structurally invalid; no row was processed."""


class PersistenceError(Exception):
    """A valid-looking row could not be stored."""


def _to_record(row: Dict[str, Any], sheet_name: str) -> Record:
    parsed = parse_row_date(row.get("Date"))
    if parsed is None:
        raise PersistenceError(f"Cast to date failed for value {row.get('Date')!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)

    verified = row.get("Verified")
    return Record(
        name=row.get("Name"),
        amount=row.get("Amount"),
        date=parsed,
        verified=verified if verified else "No",
        sheet_name=sheet_name,
    )


class ImportService:
    """Validates and persists the rows of one sheet."""

    def __init__(self, session: Session):
        self.store = RecordStore(session)

    @staticmethod
    def check_request(data: Any, sheet_name: Any) -> None:
        """Raise RequestFormatError unless ``data`` is a list and a sheet name is given."""
        if not isinstance(data, list) or sheet_name is None or sheet_name == "":
            raise RequestFormatError(INVALID_REQUEST_MESSAGE)

    def import_rows(self, data: Any, sheet_name: Any, reference_date: date) -> ImportSummary:
        """
        Import the submitted rows of one sheet.

        Args:
            data: Row mappings as submitted by the client
            sheet_name: Name of the sheet the rows came from
            reference_date: Server date defining the current month

        Returns:
            ImportSummary: Imported and skipped counts, plus persistence errors

        Raises:
            RequestFormatError: If the request is structurally invalid
        """
        self.check_request(data, sheet_name)
        sheet_name = str(sheet_name)

        imported_count = 0
        skipped_count = 0
        errors: List[str] = []

        with LogContext("row import", sheet=sheet_name, row_count=len(data)):
            for index, row in enumerate(data, start=1):
                try:
                    if not isinstance(row, dict):
                        raise PersistenceError(f"Row {index} is not an object")

                    reason = rejection_reason(row, reference_date)
                    if reason is not None:
                        logger.debug(f"Skipping row {index}: {reason}", extra={"sheet": sheet_name})
                        skipped_count += 1
                        continue

                    self.store.add(_to_record(row, sheet_name))
                    imported_count += 1
                except Exception as e:
                    logger.error(f"Error processing row {index}: {e}", extra={"sheet": sheet_name, "row": index})
                    skipped_count += 1
                    errors.append(str(e))

        logger.info(
            f"Imported {imported_count} rows, skipped {skipped_count}",
            extra={"sheet": sheet_name, "imported": imported_count, "skipped": skipped_count}
        )
        return ImportSummary(
            message=IMPORT_COMPLETED_MESSAGE,
            importedCount=imported_count,
            skippedCount=skipped_count,
            errors=errors or None,
        )
