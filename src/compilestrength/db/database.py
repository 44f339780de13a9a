"""SQLite plumbing shared by the repositories."""

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union

from .schema import SCHEMA


def get_default_db_path() -> Path:
    """Get the default database path."""
    # Check environment variable first
    env_path = os.environ.get("COMPILESTRENGTH_DB_PATH")
    if env_path:
        return Path(env_path)

    from ..config import get_settings
    return Path(get_settings().database_path)


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for storage (fixed-width UTC ISO-8601)."""
    if value is None:
        return None
    return to_utc(value).isoformat(timespec="microseconds")


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(value))


class SQLiteRepository:
    """Base class for SQLite-backed repositories.

    Every repository points at the same database file and makes sure the
    full schema exists on construction.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the repository.

        Args:
            db_path: Path to SQLite database file. If not provided,
                     uses COMPILESTRENGTH_DB_PATH env var or the configured path.
        """
        if db_path:
            self.db_path = Path(db_path)
        else:
            self.db_path = get_default_db_path()

        self._ensure_tables_exist()

    @contextmanager
    def _get_connection(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """Get database connection with context manager.

        Args:
            immediate: Take the write lock up front (BEGIN IMMEDIATE) so a
                read-then-write sequence cannot interleave with another writer.
        """
        conn = sqlite3.connect(str(self.db_path), timeout=10.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            if immediate:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_tables_exist(self) -> None:
        """Ensure all tables exist."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)
