"""
Record store: persisted import records and database lifecycle.

Supports both SQLite and PostgreSQL through SQLAlchemy. The engine is
process-wide state created by ``Database.init()`` on application startup and
released by ``Database.close()`` on shutdown.
"""
import logging
import math
import os
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional
from urllib.parse import urlparse

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    create_engine,
    func,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker, validates
from sqlalchemy.pool import QueuePool, StaticPool

from config import config
from schemas import RecordOut, RecordPage

logger = logging.getLogger(__name__)

Base = declarative_base()

VERIFIED_VALUES = ("Yes", "No")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Record(Base):
    """A validated spreadsheet row stored by an import."""

    __tablename__ = "records"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_records_amount_non_negative"),
        Index("ix_records_date_sheet_name", "date", "sheet_name"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False)
    verified = Column(
        Enum(*VERIFIED_VALUES, name="verified_status", create_constraint=True),
        nullable=False,
        default="No",
    )
    sheet_name = Column(String(255), nullable=False)
    imported_at = Column(DateTime, nullable=False, default=_utcnow)

    @validates("name")
    def _validate_name(self, key, value):
        if value is None:
            raise ValueError("name is required")
        value = str(value).strip()
        if not value:
            raise ValueError("name is required")
        return value

    @validates("amount")
    def _validate_amount(self, key, value):
        if value is None or isinstance(value, bool):
            raise ValueError("amount is required")
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"amount must be a number, got {value!r}")
        if not math.isfinite(value):
            raise ValueError(f"amount must be a finite number, got {value!r}")
        if value < 0:
            raise ValueError(f"amount ({value}) is less than minimum allowed value (0)")
        return value

    @validates("verified")
    def _validate_verified(self, key, value):
        if value is None:
            return "No"
        if value not in VERIFIED_VALUES:
            raise ValueError(f"`{value}` is not a valid value for verified")
        return value

    @validates("sheet_name")
    def _validate_sheet_name(self, key, value):
        if value is None or not str(value):
            raise ValueError("sheet_name is required")
        return str(value)

    def __repr__(self) -> str:
        return f"Record(id={self.id!r}, name={self.name!r}, sheet_name={self.sheet_name!r})"


class DatabaseConfig:
    """Database configuration handler"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or config.DATABASE_URL
        self._parse_url()

    def _parse_url(self):
        """Parse database URL to determine type and settings"""
        parsed = urlparse(self.database_url)
        self.db_type = parsed.scheme.split("+")[0]  # Remove driver suffix

        self.is_postgres = self.db_type in ["postgresql", "postgres"]
        self.is_sqlite = self.db_type == "sqlite"
        self.is_memory = self.is_sqlite and parsed.path in ("", "/", "/:memory:")

    def get_engine_kwargs(self) -> dict:
        """Get engine configuration based on database type"""
        if self.is_sqlite:
            # A single shared connection keeps an in-memory database alive
            return {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        elif self.is_postgres:
            return {
                "poolclass": QueuePool,
                "pool_size": 10,
                "max_overflow": 20,
                "pool_pre_ping": True,
                "pool_recycle": 3600,
            }
        return {}

    def ensure_sqlite_directory(self) -> None:
        if not self.is_sqlite or self.is_memory:
            return
        path = urlparse(self.database_url).path
        # sqlite:///./data/x.db -> ./data/x.db
        if path.startswith("/./"):
            path = path[1:]
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)


class Database:
    """Database connection manager with explicit init/close"""

    def __init__(
        self,
        database_url: Optional[str] = None,
        connect_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        self.config = DatabaseConfig(database_url)
        self.connect_retries = config.DB_CONNECT_RETRIES if connect_retries is None else connect_retries
        self.retry_delay = config.DB_RETRY_DELAY if retry_delay is None else retry_delay
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self.connected = False

    def init(self) -> bool:
        """
        Create the engine and tables, then probe connectivity.

        Failed attempts are retried ``connect_retries`` times, waiting
        ``retry_delay`` seconds between attempts. A bootstrap that still fails
        is logged and reported as ``False``; it never raises.
        """
        if self.engine is None:
            try:
                self.config.ensure_sqlite_directory()
                self.engine = create_engine(
                    self.config.database_url,
                    echo=config.DB_ECHO,
                    **self.config.get_engine_kwargs()
                )
            except Exception as e:
                logger.error(
                    f"Failed to create database engine: {e}",
                    extra={"db_type": self.config.db_type, "error_type": type(e).__name__},
                )
                self.connected = False
                return False
            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine,
            )

        attempts = self.connect_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                Base.metadata.create_all(self.engine)
                with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                self.connected = True
                logger.info("Connected to database", extra={"db_type": self.config.db_type})
                return True
            except Exception as e:
                logger.error(
                    f"Database connection error (attempt {attempt}/{attempts}): {e}",
                    extra={"db_type": self.config.db_type, "attempt": attempt},
                )
                if attempt < attempts:
                    time.sleep(self.retry_delay)

        self.connected = False
        return False

    def get_session(self) -> Session:
        """Get a new database session"""
        if not self.SessionLocal:
            raise RuntimeError("Database not initialized")
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Usage:
            with db.session_scope() as session:
                session.add(record)
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Dispose of the engine"""
        if self.engine:
            self.engine.dispose()
        self.engine = None
        self.SessionLocal = None
        self.connected = False


class RecordStore:
    """Query side of the persisted records."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, record: Record) -> Record:
        """Persist a single record in its own transaction."""
        self.session.add(record)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return record

    def list(self, sheet_name: Optional[str] = None, page: int = 1, limit: int = 10) -> RecordPage:
        """
        List records newest date first.

        Args:
            sheet_name: Exact sheet name to filter on, or None for all records
            page: 1-based page number
            limit: Records per page

        Returns:
            RecordPage with the page of records, total page count and current page
        """
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive integers")

        query = select(Record)
        count_query = select(func.count()).select_from(Record)
        if sheet_name:
            query = query.where(Record.sheet_name == sheet_name)
            count_query = count_query.where(Record.sheet_name == sheet_name)

        query = query.order_by(Record.date.desc(), Record.id.desc()).offset((page - 1) * limit).limit(limit)
        records = self.session.execute(query).scalars().all()
        count = self.session.execute(count_query).scalar_one()

        return RecordPage(
            records=[RecordOut.model_validate(r) for r in records],
            totalPages=math.ceil(count / limit),
            currentPage=page,
        )


# Global database instance (singleton pattern)
_db_instance: Optional[Database] = None


def get_database() -> Database:
    """Get global database instance"""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database()
    return _db_instance


def get_session() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database session

    Usage in FastAPI:
        @app.get("/api/records")
        def list_records(db: Session = Depends(get_session)):
            ...
    """
    session = get_database().get_session()
    try:
        yield session
    finally:
        session.close()
