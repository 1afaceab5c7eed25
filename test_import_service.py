from datetime import datetime
from unittest.mock import patch

import pytest

import import_service
from import_service import ImportService, RequestFormatError
from record_store import Record


def stored(db_session):
    return db_session.query(Record).order_by(Record.id).all()


class TestImportRows:
    """
    Tests for server-side re-validation and persistence.
    """

    def test_single_valid_row_is_imported(self, db_session, reference_date):
        data = [{"Name": "Bob", "Amount": 50, "Date": reference_date.isoformat()}]

        summary = ImportService(db_session).import_rows(data, "Jan", reference_date)

        assert summary.importedCount == 1
        assert summary.skippedCount == 0
        assert summary.errors is None
        records = stored(db_session)
        assert len(records) == 1
        assert records[0].verified == "No"
        assert records[0].sheet_name == "Jan"
        assert records[0].date == datetime(2026, 10, 19)
        assert records[0].imported_at is not None

    def test_negative_amount_is_skipped(self, db_session, reference_date):
        data = [{"Name": "Bob", "Amount": -5, "Date": reference_date.isoformat()}]

        summary = ImportService(db_session).import_rows(data, "Jan", reference_date)

        assert (summary.importedCount, summary.skippedCount) == (0, 1)
        assert summary.errors is None
        assert stored(db_session) == []

    def test_row_missing_name_is_skipped(self, db_session, reference_date, valid_rows):
        data = valid_rows + [{"Amount": 10, "Date": "2026-10-02"}]

        summary = ImportService(db_session).import_rows(data, "Jan", reference_date)

        assert (summary.importedCount, summary.skippedCount) == (3, 1)
        assert [r.name for r in stored(db_session)] == ["Alice", "Bob", "Carol"]

    @pytest.mark.parametrize(
        "row",
        [
            {"Name": "Bob", "Amount": 5, "Date": "2026-09-30"},
            {"Name": "Bob", "Amount": "5", "Date": "2026-10-02"},
            {"Name": "Bob", "Amount": 0, "Date": "2026-10-02"},
            {"Name": "Bob", "Amount": True, "Date": "2026-10-02"},
        ],
        ids=["previous-month", "string-amount", "zero-amount", "bool-amount"]
    )
    def test_invalid_rows_are_skipped_without_errors(self, db_session, reference_date, row):
        summary = ImportService(db_session).import_rows([row], "Jan", reference_date)

        assert (summary.importedCount, summary.skippedCount) == (0, 1)
        assert summary.errors is None

    def test_verified_and_name_are_normalised(self, db_session, reference_date):
        data = [{"Name": "  Alice  ", "Amount": 1.5, "Date": "2026-10-02", "Verified": "Yes"}]

        ImportService(db_session).import_rows(data, "Jan", reference_date)

        record = stored(db_session)[0]
        assert record.name == "Alice"
        assert record.verified == "Yes"
        assert record.amount == 1.5

    def test_persistence_error_is_reported_and_batch_continues(self, db_session, reference_date):
        data = [
            {"Name": "Alice", "Amount": 5, "Date": "2026-10-02", "Verified": "Maybe"},
            {"Name": "Bob", "Amount": 5, "Date": "2026-10-03"},
        ]

        with patch.object(import_service.logger, "error"):
            summary = ImportService(db_session).import_rows(data, "Jan", reference_date)

        assert (summary.importedCount, summary.skippedCount) == (1, 1)
        assert summary.errors == ["`Maybe` is not a valid value for verified"]
        assert [r.name for r in stored(db_session)] == ["Bob"]

    def test_store_failure_does_not_undo_earlier_rows(self, db_session, reference_date, valid_rows):
        service = ImportService(db_session)
        original_add = service.store.add
        calls = []

        def flaky_add(record):
            calls.append(record.name)
            if len(calls) == 2:
                raise RuntimeError("disk full")
            return original_add(record)

        with patch.object(service.store, "add", side_effect=flaky_add), \
             patch.object(import_service.logger, "error"):
            summary = service.import_rows(valid_rows, "Jan", reference_date)

        assert (summary.importedCount, summary.skippedCount) == (2, 1)
        assert summary.errors == ["disk full"]
        assert [r.name for r in stored(db_session)] == ["Alice", "Carol"]

    def test_non_object_row_is_reported(self, db_session, reference_date):
        with patch.object(import_service.logger, "error"):
            summary = ImportService(db_session).import_rows([None], "Jan", reference_date)

        assert summary.skippedCount == 1
        assert summary.errors == ["Row 1 is not an object"]

    def test_summary_response_omits_empty_errors(self, db_session, reference_date, valid_rows):
        summary = ImportService(db_session).import_rows(valid_rows, "Jan", reference_date)

        assert summary.to_response() == {
            "message": "Import completed successfully",
            "importedCount": 3,
            "skippedCount": 0,
        }


class TestRequestFormat:

    @pytest.mark.parametrize(
        "data, sheet_name",
        [
            ({"Name": "Bob"}, "Jan"),
            ("rows", "Jan"),
            (None, "Jan"),
            ([], None),
            ([], ""),
        ],
        ids=["dict-data", "string-data", "no-data", "no-sheet", "empty-sheet"]
    )
    def test_malformed_requests_are_rejected(self, db_session, reference_date, data, sheet_name):
        with pytest.raises(RequestFormatError, match="Invalid request format"):
            ImportService(db_session).import_rows(data, sheet_name, reference_date)

        assert stored(db_session) == []
