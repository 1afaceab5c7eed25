"""
In-memory editing of a loaded workbook before it is imported.

Only the active sheet's rows are shown and edited. Validation errors are those
captured when the workbook was loaded; deleting rows does not recompute them.
"""
import logging
import math
from typing import Any, Callable, Dict, List, Optional

from config import config
from schemas import RowValidationError
from sheet_processor import ProcessedWorkbook
from spreadsheet_decoder import Sheet

logger = logging.getLogger(__name__)

PAGE_SIZE = config.PAGE_SIZE


class EditSession:
    """Holds the sheets of one upload and the user's position within them."""

    def __init__(self, sheets: Optional[List[Sheet]] = None, active_sheet_index: int = 0,
                 page_size: int = PAGE_SIZE):
        self.sheets: List[Sheet] = list(sheets or [])
        self.active_sheet_index = active_sheet_index
        self.page_size = page_size
        self.current_page = 1

    @classmethod
    def from_workbook(cls, workbook: ProcessedWorkbook, page_size: int = PAGE_SIZE) -> "EditSession":
        return cls(workbook.sheets, workbook.active_sheet_index, page_size=page_size)

    @property
    def is_loaded(self) -> bool:
        return bool(self.sheets)

    @property
    def active_sheet(self) -> Optional[Sheet]:
        if not self.sheets:
            return None
        return self.sheets[self.active_sheet_index]

    @property
    def rows(self) -> List[Dict[str, Any]]:
        sheet = self.active_sheet
        return sheet.rows if sheet is not None else []

    @property
    def errors(self) -> List[RowValidationError]:
        sheet = self.active_sheet
        return sheet.errors if sheet is not None else []

    @property
    def columns(self) -> List[str]:
        """Table columns: the keys of the first row, in order."""
        rows = self.rows
        return list(rows[0].keys()) if rows else []

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.rows) / self.page_size)

    @property
    def can_import(self) -> bool:
        return bool(self.rows) and not self.errors

    def select_sheet(self, index: int) -> None:
        """Switch the active sheet. Raises IndexError for an unknown sheet."""
        if not 0 <= index < len(self.sheets):
            raise IndexError(f"sheet index {index} out of range")
        self.active_sheet_index = index
        self._clamp_page()

    def delete_row(self, position: int, confirm: Optional[Callable[[], bool]] = None) -> bool:
        """
        Remove the row at a 0-based position of the active sheet.

        The position is absolute within the sheet, i.e. the page start plus the
        row's offset on the page. Out-of-range positions and declined
        confirmations leave the rows untouched.

        Args:
            position: Absolute row position
            confirm: Optional callable asking the user to confirm the deletion

        Returns:
            bool: True if a row was removed
        """
        rows = self.rows
        if not 0 <= position < len(rows):
            return False
        if confirm is not None and not confirm():
            return False

        rows.pop(position)
        logger.debug(
            "Deleted row",
            extra={"sheet": self.active_sheet.name, "position": position, "remaining": len(rows)}
        )
        self._clamp_page()
        return True

    def position_on_page(self, row_index: int) -> int:
        """Absolute position of the ``row_index``-th row of the current page."""
        return (self.current_page - 1) * self.page_size + row_index

    def get_page(self, page_number: int, page_size: Optional[int] = None) -> List[Dict[str, Any]]:
        if page_number < 1:
            return []
        size = page_size or self.page_size
        start = (page_number - 1) * size
        return self.rows[start:start + size]

    def next_page(self) -> int:
        if self.current_page < self.total_pages:
            self.current_page += 1
        return self.current_page

    def previous_page(self) -> int:
        if self.current_page > 1:
            self.current_page -= 1
        return self.current_page

    def page_summary(self) -> str:
        total = len(self.rows)
        if not total:
            return "No data available"
        start = (self.current_page - 1) * self.page_size
        end = min(start + self.page_size, total)
        return f"Showing {start + 1} to {end} of {total} entries"

    def reset(self) -> None:
        """Discard the loaded workbook."""
        self.sheets = []
        self.active_sheet_index = 0
        self.current_page = 1

    def _clamp_page(self) -> None:
        if self.current_page > self.total_pages:
            self.current_page = 1
