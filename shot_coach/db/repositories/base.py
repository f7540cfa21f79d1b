"""
Base repository providing shared SQLite execution helpers.

Repositories receive a ``sqlite3.Connection`` at construction time; the
connection is opened and committed by the caller (``get_connection()``).

  - No ORM: all SQL is explicit and lives in repository methods.
  - Repositories speak pydantic models, not raw dicts.
  - Repositories raise ``sqlite3.Error``; converting failures into typed
    results is the coaching layer's job (``errors.storage_call``).
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

logger = logging.getLogger(__name__)


class BaseRepository:
    """Shared SQL execution helpers for all repository classes.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Cursor:
        """Execute a single SQL statement with ``?`` or ``:name`` placeholders."""
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params)

    def fetchone(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> Optional[sqlite3.Row]:
        """Execute a query and return the first row, or ``None``."""
        return self.execute(sql, params).fetchone()

    def fetchall(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[sqlite3.Row]:
        """Execute a query and return all rows."""
        return self.execute(sql, params).fetchall()

    def last_insert_rowid(self) -> int:
        """Return the rowid of the last successful INSERT."""
        row = self.fetchone("SELECT last_insert_rowid() AS rowid;")
        assert row is not None
        return int(row["rowid"])
