"""SQLite management utilities."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

from term_occurrences.core.errors import PersistenceError

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
    "PRAGMA temp_store=MEMORY;",
)


@contextmanager
def _driver_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise PersistenceError(f"{action}: {exc}") from exc


class SQLiteDatabase:
    """Thin wrapper around sqlite3 providing pragmatic defaults.

    A connection is opened lazily by the first thread that touches the
    database, so a background job must be handed its own instance.
    Driver errors surface as :class:`PersistenceError` with the original
    exception chained.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path).expanduser()
        self._connection: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with _driver_errors(f"Cannot open database {self.db_path}"):
                connection = sqlite3.connect(self.db_path)
                connection.row_factory = sqlite3.Row
                for pragma in DEFAULT_PRAGMAS:
                    connection.execute(pragma)
            self._connection = connection
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        conn = self.connect()
        with _driver_errors("Query failed"):
            return conn.execute(sql, params or [])

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        cursor = self.execute(sql, params)
        with _driver_errors("Fetch failed"):
            return cursor.fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run a unit of work; commit on success, roll back on any error."""
        conn = self.connect()
        cursor = conn.cursor()
        try:
            with _driver_errors("Transaction failed"):
                yield cursor
                conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def ensure_schema(self, schema_sql: str | None = None) -> None:
        """Create missing tables from ``schema.sql`` (or the given script)."""
        if schema_sql is None:
            schema_sql = Path(__file__).with_name("schema.sql").read_text(encoding="utf-8")
        conn = self.connect()
        with _driver_errors("Schema setup failed"):
            conn.executescript(schema_sql)


def placeholders(values: Iterable[Any]) -> str:
    """Return a ``?, ?, ...`` list matching ``values``."""
    return ",".join("?" for _ in values)


__all__ = ["SQLiteDatabase", "placeholders"]
