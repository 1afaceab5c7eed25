import logging
import time
import uuid
from datetime import date
from http import HTTPStatus
from typing import List

from pydantic import BaseModel

from schemas import RowValidationError
from row_validator import validate_row
from spreadsheet_decoder import DECODE_ERROR_MESSAGE, DecodeError, Sheet, decode_workbook
from utils.result import Result

logger = logging.getLogger(__name__)

class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.pop('request_id', None) or str(uuid.uuid4())[:8]
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={"request_id": self.request_id, "duration": duration, **self.extra},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={"request_id": self.request_id, "duration": duration, **self.extra}
            )

class ProcessedWorkbook(BaseModel):
    """
    Validated workbook ready for editing.

    Attributes:
        sheets: Every decoded sheet with its row-attributed validation errors
        active_sheet_index: Sheet that starts out active (always the first)
        errors_to_surface: Errors shown to the user right after loading
    """
    sheets: List[Sheet]
    active_sheet_index: int = 0
    errors_to_surface: List[RowValidationError] = []

    @property
    def has_errors(self) -> bool:
        return any(sheet.errors for sheet in self.sheets)

class SheetProcessor:
    """
    Runs the row rules over every decoded sheet.

    This class contains methods to:
    - Validate each row and attribute errors to 1-based row positions
    - Pick the initially active sheet and the errors to show on load
    - Decode and process an upload in one step
    """

    @staticmethod
    def validate_sheet(sheet: Sheet, reference_date: date) -> Sheet:
        """
        Validate every row of one sheet in order.

        Args:
            sheet: Decoded sheet
            reference_date: Date defining the current month

        Returns:
            Sheet: The same rows with the collected errors
        """
        errors: List[RowValidationError] = []
        for index, row in enumerate(sheet.rows, start=1):
            errors.extend(error.at_row(index) for error in validate_row(row, reference_date))

        if errors:
            logger.info(
                f"Sheet has {len(errors)} validation errors",
                extra={"sheet": sheet.name, "row_count": len(sheet.rows), "error_count": len(errors)}
            )
        return Sheet(name=sheet.name, rows=sheet.rows, errors=errors)

    @staticmethod
    def process_sheets(sheets: List[Sheet], reference_date: date) -> ProcessedWorkbook:
        """
        Validate all sheets and select what the user sees first.

        The first sheet is active. If any sheet has errors, the errors of the
        first sheet that has any are surfaced.
        """
        validated = [SheetProcessor.validate_sheet(sheet, reference_date) for sheet in sheets]
        to_surface = next((sheet.errors for sheet in validated if sheet.errors), [])
        return ProcessedWorkbook(sheets=validated, active_sheet_index=0, errors_to_surface=to_surface)

    @staticmethod
    def process_upload(data: bytes, reference_date: date) -> Result[ProcessedWorkbook]:
        """
        Decode spreadsheet bytes and validate the result.

        Args:
            data: Raw workbook bytes, already size-checked by the caller
            reference_date: Date defining the current month

        Returns:
            Result[ProcessedWorkbook]: The processed workbook, a 400 failure for
            undecodable bytes, or a 500 failure for anything unexpected
        """
        log_context = {"size": len(data), "reference_date": reference_date.isoformat()}

        try:
            with LogContext("workbook decoding", **log_context):
                sheets = decode_workbook(data)
        except DecodeError as e:
            logger.warning(f"Workbook could not be decoded: {e}", extra=log_context)
            return Result.invalid_input(DECODE_ERROR_MESSAGE)
        except Exception as e:
            logger.exception("Unexpected error while decoding workbook", extra={**log_context, "error": str(e)})
            return Result.server_error(f"Processing error: {str(e)}")

        with LogContext("sheet validation", sheet_count=len(sheets), **log_context):
            workbook = SheetProcessor.process_sheets(sheets, reference_date)

        return Result.ok(workbook, status_code=HTTPStatus.OK)
