"""
Turn uploaded spreadsheet bytes into named sheets of row mappings.

The first row of every tab is the header; each following row becomes a dict
keyed by those headers. Blank cells are left out of the row, fully blank rows
are dropped.
"""
import io
import logging
import os
import time
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel

from config import config
from schemas import RowValidationError
from utils.result import Result

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".xlsx", ".xls"}
ALLOWED_CONTENT_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
}
# Browsers and curl fall back to these when they do not know the type
GENERIC_CONTENT_TYPES = {"", "application/octet-stream"}

DECODE_ERROR_MESSAGE = "Error processing file. Please ensure it's a valid Excel file."


class DecodeError(Exception):
    """Raised when bytes cannot be read as an Excel workbook."""


class Sheet(BaseModel):
    """
    One tab of a workbook.

    Attributes:
        name: Tab name
        rows: Data rows keyed by header, in sheet order
        errors: Validation errors captured when the workbook was loaded
    """
    name: str
    rows: List[Dict[str, Any]] = []
    errors: List[RowValidationError] = []


def check_upload(filename: Optional[str], content_type: Optional[str], size: int,
                 max_bytes: Optional[int] = None) -> Result[None]:
    """
    Accept or reject an upload before it is decoded.

    Args:
        filename: Client supplied file name
        content_type: Client supplied MIME type
        size: Size of the upload in bytes
        max_bytes: Size limit, defaults to the configured MAX_UPLOAD_BYTES

    Returns:
        Result: success, or a 413/415 failure describing the rejection
    """
    limit = config.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    if size > limit:
        logger.warning("Upload rejected: too large", extra={"file_name": filename, "size": size, "limit": limit})
        return Result.too_large(f"File size must be less than {limit // (1024 * 1024)}MB")

    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        logger.warning("Upload rejected: extension", extra={"file_name": filename})
        return Result.unsupported_type("Only .xlsx and .xls files are supported")

    mime = (content_type or "").split(";")[0].strip().lower()
    if mime not in ALLOWED_CONTENT_TYPES and mime not in GENERIC_CONTENT_TYPES:
        logger.warning("Upload rejected: content type", extra={"file_name": filename, "content_type": mime})
        return Result.unsupported_type(f"Unsupported content type: {mime}")

    return Result.ok(None)


def _cell_value(value: Any) -> Any:
    """Convert a pandas cell to a plain Python value."""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def _frame_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    headers = [str(c) for c in df.columns]
    rows = []
    for raw in df.itertuples(index=False, name=None):
        row = {
            header: _cell_value(value)
            for header, value in zip(headers, raw)
            if not pd.isna(value)
        }
        if row:
            rows.append(row)
    return rows


def decode_workbook(data: bytes) -> List[Sheet]:
    """
    Decode an Excel workbook into its sheets.

    Args:
        data: Raw bytes of an .xlsx or .xls file

    Returns:
        Sheets in workbook tab order, each with its data rows

    Raises:
        DecodeError: If the bytes are empty or not a readable workbook
    """
    if not data:
        raise DecodeError("Uploaded file is empty")

    start_time = time.time()
    try:
        frames = pd.read_excel(io.BytesIO(data), sheet_name=None, header=0)
    except Exception as e:
        logger.error(
            "Failed to read Excel file",
            extra={"error": str(e), "error_type": type(e).__name__, "size": len(data)}
        )
        raise DecodeError(str(e)) from e

    sheets = [Sheet(name=str(name), rows=_frame_to_rows(df)) for name, df in frames.items()]
    logger.info(
        "Successfully read Excel file",
        extra={
            "sheet_count": len(sheets),
            "row_count": sum(len(s.rows) for s in sheets),
            "read_time_seconds": f"{time.time() - start_time:.2f}",
        }
    )
    return sheets
