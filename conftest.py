"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It adds the project directory to the Python path, points the application at an
in-memory SQLite database and provides shared fixtures.
"""
import io
import os
import sys
from datetime import date

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

# Must be set before config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from record_store import Database, get_session


REFERENCE_DATE = date(2026, 10, 19)


@pytest.fixture
def reference_date():
    """Fixed "today" used by every validation in the tests."""
    return REFERENCE_DATE


@pytest.fixture
def database():
    """Fresh in-memory database per test."""
    db = Database("sqlite:///:memory:")
    assert db.init()
    yield db
    db.close()


@pytest.fixture
def db_session(database):
    session = database.get_session()
    yield session
    session.close()


@pytest.fixture
def api_client(db_session, reference_date):
    """
    TestClient bound to the test database and reference date.

    The lifespan is not entered, so the global database is never touched.
    """
    import main

    def override_session():
        yield db_session

    main.app.dependency_overrides[get_session] = override_session
    main.app.dependency_overrides[main.get_reference_date] = lambda: reference_date
    client = TestClient(main.app)
    yield client
    main.app.dependency_overrides.clear()


@pytest.fixture
def make_workbook():
    """
    Factory building .xlsx bytes from ``{sheet_name: [row dict, ...]}``.

    Sheets are written in the given order, headers from the row keys.
    """
    def _make(sheets):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            for name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False)
        return buffer.getvalue()
    return _make


@pytest.fixture
def valid_rows():
    return [
        {"Name": "Alice", "Amount": 120, "Date": "2026-10-01", "Verified": "Yes"},
        {"Name": "Bob", "Amount": 50, "Date": "2026-10-15"},
        {"Name": "Carol", "Amount": 75.5, "Date": "2026-10-19", "Verified": "No"},
    ]
