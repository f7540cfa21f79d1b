"""
SQLite connection management.

``get_connection()`` is a context manager that:
  - Enables foreign key enforcement (OFF by default in SQLite).
  - Enables WAL journal mode unless disabled.
  - Sets a busy timeout.
  - Uses ``sqlite3.Row`` factory so rows behave like dicts.
  - Commits on clean exit, rolls back on exception.

Usage::

    from shot_coach.db.connection import get_connection

    with get_connection(config.database.db_path) as conn:
        ShotRepository(conn).get_by_id(shot_id)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.
        wal_mode: If ``True``, enable WAL journal mode.
        busy_timeout_ms: Milliseconds to wait on a locked database before
            raising ``OperationalError``.

    Yields:
        An open, configured ``sqlite3.Connection``.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row

    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
        if wal_mode and db_path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        logger.debug("Rolled back transaction on %s", db_path)
        raise

    finally:
        conn.close()
