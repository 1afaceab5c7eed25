"""
Business rules for a single spreadsheet row.

The same rules run in the preview (before a sheet is submitted) and in the
import service (before a row is persisted). The reference date is always passed
in by the caller so both sides can be pinned to the same month in tests.
"""
import logging
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from schemas import RowValidationError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

REQUIRED_FIELDS = ("Name", "Amount", "Date")

MSG_REQUIRED = "Name, Amount, and Date are mandatory."
MSG_CURRENT_MONTH = "Date must be within the current month."
MSG_POSITIVE_AMOUNT = "Amount must be greater than zero."

# Excel stores dates as days since 1899-12-30
EXCEL_EPOCH = "1899-12-30"


def is_blank(value: Any) -> bool:
    """True for values a spreadsheet user would consider empty (None, "", 0, False, NaN)."""
    if value is None or value is pd.NaT:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return not value


def is_number(value: Any) -> bool:
    """True for finite real numbers; booleans, NaN and infinities are not amounts."""
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)


def parse_row_date(value: Any) -> Optional[datetime]:
    """
    Interpret a cell value as a calendar date.

    Datetimes and dates are used as-is, numbers are Excel serial dates and
    strings are parsed by pandas. Returns None when the value is not a date.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    try:
        if is_number(value):
            parsed = pd.to_datetime(value, unit="D", origin=EXCEL_EPOCH)
        elif isinstance(value, str) and value.strip():
            parsed = pd.to_datetime(value.strip(), errors="coerce")
        else:
            return None
    except (ValueError, OverflowError, TypeError, pd.errors.OutOfBoundsDatetime):
        return None

    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def is_in_month(value: Any, reference_date: date) -> bool:
    parsed = parse_row_date(value)
    if parsed is None:
        return False
    return parsed.year == reference_date.year and parsed.month == reference_date.month


def validate_row(row: Row, reference_date: date) -> List[RowValidationError]:
    """
    Check one row against the import rules.

    Every rule runs; failures are collected rather than short-circuited.
    Errors carry row -1, the caller attributes them to a position.

    Args:
        row: Mapping of column header to cell value
        reference_date: Date whose month and year define "current month"

    Returns:
        List of validation errors, empty when the row passes
    """
    errors: List[RowValidationError] = []

    if any(is_blank(row.get(field)) for field in REQUIRED_FIELDS):
        errors.append(RowValidationError(description=MSG_REQUIRED))

    if not is_in_month(row.get("Date"), reference_date):
        errors.append(RowValidationError(description=MSG_CURRENT_MONTH))

    # Non-numeric amounts are left to the required-field rule here
    amount = row.get("Amount")
    if is_number(amount) and amount <= 0:
        errors.append(RowValidationError(description=MSG_POSITIVE_AMOUNT))

    return errors


def rejection_reason(row: Row, reference_date: date) -> Optional[str]:
    """
    Server-side acceptance check, in rule order.

    Unlike ``validate_row`` this requires the amount to be numeric and stops at
    the first failing rule. Returns the failure description, or None when the
    row can be persisted.
    """
    if any(is_blank(row.get(field)) for field in REQUIRED_FIELDS):
        return MSG_REQUIRED
    if not is_in_month(row.get("Date"), reference_date):
        return MSG_CURRENT_MONTH
    amount = row.get("Amount")
    if not is_number(amount) or amount <= 0:
        return MSG_POSITIVE_AMOUNT
    return None
