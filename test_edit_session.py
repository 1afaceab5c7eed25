import pytest

from edit_session import EditSession
from schemas import RowValidationError
from sheet_processor import SheetProcessor
from spreadsheet_decoder import Sheet


def make_rows(count):
    return [{"Name": f"Row {i}", "Amount": i + 1, "Date": "2026-10-01"} for i in range(count)]


@pytest.fixture
def session():
    return EditSession([
        Sheet(name="Big", rows=make_rows(25)),
        Sheet(name="Small", rows=make_rows(3), errors=[RowValidationError(row=2, description="bad")]),
    ])


class TestPagination:
    """
    Tests for paging through the active sheet.
    """

    @pytest.mark.parametrize(
        "page, expected",
        [(1, 10), (2, 10), (3, 5), (4, 0)],
        ids=["first", "second", "partial", "past-end"]
    )
    def test_page_sizes_over_25_rows(self, session, page, expected):
        assert len(session.get_page(page, 10)) == expected

    @pytest.mark.parametrize("page", [0, -1], ids=["zero", "negative"])
    def test_non_positive_page_is_empty(self, session, page):
        assert session.get_page(page) == []

    def test_page_contents(self, session):
        page = session.get_page(2)

        assert page[0]["Name"] == "Row 10"
        assert page[-1]["Name"] == "Row 19"

    def test_default_page_size_is_ten(self, session):
        assert session.page_size == 10
        assert session.total_pages == 3

    def test_next_and_previous_stay_in_range(self, session):
        assert session.previous_page() == 1
        assert session.next_page() == 2
        assert session.next_page() == 3
        assert session.next_page() == 3
        assert session.previous_page() == 2

    def test_page_summary(self, session):
        session.next_page()
        session.next_page()

        assert session.page_summary() == "Showing 21 to 25 of 25 entries"

    def test_position_on_page(self, session):
        session.next_page()

        assert session.position_on_page(3) == 13


class TestDeleteRow:
    """
    Tests for removing rows before import.
    """

    def test_removes_row_at_absolute_position(self, session):
        assert session.delete_row(12)

        assert len(session.rows) == 24
        assert session.rows[12]["Name"] == "Row 13"

    @pytest.mark.parametrize("position", [25, 100, -1], ids=["end", "far", "negative"])
    def test_out_of_range_position_is_a_no_op(self, session, position):
        assert not session.delete_row(position)
        assert len(session.rows) == 25

    def test_declined_confirmation_keeps_row(self, session):
        assert not session.delete_row(0, confirm=lambda: False)
        assert len(session.rows) == 25

    def test_accepted_confirmation_removes_row(self, session):
        assert session.delete_row(0, confirm=lambda: True)
        assert session.rows[0]["Name"] == "Row 1"

    def test_only_active_sheet_changes(self, session):
        session.delete_row(0)

        assert len(session.sheets[1].rows) == 3

    def test_page_resets_when_it_disappears(self, session):
        session.next_page()
        session.next_page()
        for _ in range(5):
            session.delete_row(20)

        assert session.total_pages == 2
        assert session.current_page == 1

    def test_deletion_does_not_revalidate(self, reference_date):
        rows = [
            {"Name": "ok", "Amount": 5, "Date": "2026-10-01"},
            {"Name": "bad", "Amount": -5, "Date": "2026-10-01"},
        ]
        workbook = SheetProcessor.process_sheets([Sheet(name="Jan", rows=rows)], reference_date)
        session = EditSession.from_workbook(workbook)

        session.delete_row(1)

        assert len(session.rows) == 1
        assert [e.row for e in session.errors] == [2]
        assert not session.can_import


class TestSheetSelection:

    def test_select_sheet_switches_rows_and_errors(self, session):
        session.select_sheet(1)

        assert session.active_sheet.name == "Small"
        assert len(session.rows) == 3
        assert session.errors[0].description == "bad"

    def test_select_sheet_resets_page_past_end(self, session):
        session.next_page()
        session.select_sheet(1)

        assert session.current_page == 1

    def test_unknown_sheet_raises(self, session):
        with pytest.raises(IndexError):
            session.select_sheet(2)

    def test_columns_come_from_first_row(self, session):
        session.active_sheet.rows[0] = {"Date": "2026-10-01", "Name": "x", "Amount": 1}

        assert session.columns == ["Date", "Name", "Amount"]

    def test_can_import_requires_rows_and_no_errors(self, session):
        assert session.can_import
        session.select_sheet(1)
        assert not session.can_import

    def test_reset_discards_workbook(self, session):
        session.reset()

        assert not session.is_loaded
        assert session.rows == []
        assert session.columns == []
        assert session.page_summary() == "No data available"
