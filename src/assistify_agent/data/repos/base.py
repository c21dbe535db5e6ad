"""
Base Repository

Abstract base class for SQLite-backed repositories.

Each call opens its own connection so concurrent writers are serialized
by SQLite itself (WAL journal) rather than by an application lock.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generic, Iterator, Optional, Sequence, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Fixed-width UTC text format; lexicographic order equals time order
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class StoreError(Exception):
    """Audit store could not persist or read records"""


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class Repository(ABC, Generic[T]):
    """
    Abstract repository base class.

    Subclasses declare the table, the model class and the DDL; the base
    owns connection handling, schema creation and error translation.
    """

    def __init__(self, db_path: str | Path):
        """
        Initialize repository.

        Args:
            db_path: SQLite database file (parent directories are created)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    @abstractmethod
    def table_name(self) -> str:
        """Get the database table name for this repository."""
        pass

    @property
    @abstractmethod
    def model_class(self) -> type[T]:
        """Get the Pydantic model class for this repository."""
        pass

    @property
    @abstractmethod
    def schema(self) -> Sequence[str]:
        """DDL statements creating the table and its indexes."""
        pass

    @abstractmethod
    def _row_to_model(self, row: sqlite3.Row) -> T:
        """Convert a database row into the model."""
        pass

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, always close."""
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            self._prepare(conn)
            yield conn
            conn.commit()
        except (sqlite3.Error, OverflowError, ValueError) as e:
            # OverflowError: integer outside SQLite's 64-bit range
            conn.rollback()
            raise StoreError(f"{self.table_name}: {e}") from e
        finally:
            conn.close()

    def _prepare(self, conn: sqlite3.Connection) -> None:
        """Per-connection setup hook (SQL functions, pragmas)."""

    def _init_schema(self) -> None:
        with self._conn() as conn:
            for statement in self.schema:
                conn.execute(statement)
        logger.debug(f"Schema ready: {self.table_name} at {self.db_path}")

    def _fetch_all(self, sql: str, params: Any = ()) -> list[sqlite3.Row]:
        with self._conn() as conn:
            return conn.execute(sql, params).fetchall()

    def _fetch_one(self, sql: str, params: Any = ()) -> Optional[sqlite3.Row]:
        with self._conn() as conn:
            return conn.execute(sql, params).fetchone()

    def _scalar(self, sql: str, params: Any = ()) -> Any:
        row = self._fetch_one(sql, params)
        return row[0] if row is not None else None
