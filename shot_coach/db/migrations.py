"""
Sequential schema migrations.

Not a migration framework (no down migrations):

  1. A ``schema_versions`` table tracks applied migration IDs.
  2. Each migration is a function taking a ``sqlite3.Connection``.
  3. ``run_migrations()`` applies any migrations not yet recorded, in
     ``MIGRATIONS`` insertion order.

The initial schema is applied by ``apply_schema()`` in ``schema.py`` before
any migrations run. Schema changes after the baseline are added here as
new entries in ``MIGRATIONS``.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable

logger = logging.getLogger(__name__)

MigrationFn = Callable[[sqlite3.Connection], None]


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    """Create the ``schema_versions`` tracking table if it does not exist."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_versions (
            version_id  TEXT    NOT NULL PRIMARY KEY,
            applied_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
            description TEXT
        );
    """)
    conn.commit()


def _get_applied_versions(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT version_id FROM schema_versions;").fetchall()
    return {row["version_id"] for row in rows}


def _mark_applied(conn: sqlite3.Connection, version_id: str, description: str) -> None:
    conn.execute(
        "INSERT INTO schema_versions(version_id, description) VALUES (?, ?);",
        (version_id, description),
    )
    conn.commit()


# ── Migration functions ────────────────────────────────────────────────────────


def migration_0001_bootstrap(conn: sqlite3.Connection) -> None:
    """Baseline marker; ``schema_versions`` is created by ``_ensure_version_table``."""


# ── Registry ──────────────────────────────────────────────────────────────────

MIGRATIONS: dict[str, tuple[MigrationFn, str]] = {
    "0001_bootstrap": (
        migration_0001_bootstrap,
        "Baseline: schema_versions table created",
    ),
}


def run_migrations(conn: sqlite3.Connection) -> int:
    """Apply all pending migrations.

    Args:
        conn: An open ``sqlite3.Connection`` with the base schema applied.

    Returns:
        Number of migrations applied in this call.
    """
    _ensure_version_table(conn)
    applied = _get_applied_versions(conn)

    count = 0
    for version_id, (fn, description) in MIGRATIONS.items():
        if version_id in applied:
            logger.debug("Migration %s already applied; skipping.", version_id)
            continue

        logger.info("Applying migration %s: %s", version_id, description)
        try:
            fn(conn)
            _mark_applied(conn, version_id, description)
            count += 1
        except Exception as exc:
            conn.rollback()
            logger.error("Migration %s FAILED: %s", version_id, exc)
            raise

    if count:
        logger.info("Applied %d migration(s).", count)
    else:
        logger.debug("No pending migrations.")

    return count
