"""
SQLite schema DDL: all CREATE TABLE and CREATE INDEX statements.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is **idempotent**:
safe to call on an already-initialized database (e.g. after restart or in tests).

Table creation order respects foreign key dependencies:
  1. beans                  (no FKs)
  2. shots                  (→ beans)
  3. grinder_profiles       (no FKs)
  4. grind_recommendations  (no FKs; keyed by bean_id, one live row per bean)

``grind_recommendations`` has no FK to ``beans``; it may hold a record for
any bean id.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_BEANS = """
CREATE TABLE IF NOT EXISTS beans (
    bean_id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name                 TEXT    NOT NULL,
    roast_date           TEXT    NOT NULL,
    notes                TEXT,
    is_active            INTEGER NOT NULL DEFAULT 1,
    last_grinder_setting TEXT,
    created_at           TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_SHOTS = """
CREATE TABLE IF NOT EXISTS shots (
    shot_id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    bean_id                 INTEGER NOT NULL REFERENCES beans(bean_id),
    coffee_weight_in        REAL    NOT NULL,
    coffee_weight_out       REAL    NOT NULL,
    extraction_time_seconds INTEGER NOT NULL,
    grinder_setting         TEXT    NOT NULL,
    timestamp               TEXT    NOT NULL,
    taste_primary           TEXT,
    taste_secondary         TEXT,
    notes                   TEXT,
    created_at              TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_SHOTS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_shots_bean_time
    ON shots(bean_id, timestamp);

CREATE INDEX IF NOT EXISTS idx_shots_time
    ON shots(timestamp);
"""

_DDL_GRINDER_PROFILES = """
CREATE TABLE IF NOT EXISTS grinder_profiles (
    profile_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    scale_min   INTEGER NOT NULL,
    scale_max   INTEGER NOT NULL,
    step_size   REAL    NOT NULL,
    created_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_GRIND_RECOMMENDATIONS = """
CREATE TABLE IF NOT EXISTS grind_recommendations (
    bean_id         INTEGER PRIMARY KEY,
    record_json     TEXT    NOT NULL,
    record_version  INTEGER NOT NULL DEFAULT 1,
    updated_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

# ── Ordered list of all DDL to apply ──────────────────────────────────────────

_ALL_DDL: list[str] = [
    _DDL_BEANS,
    _DDL_SHOTS,
    _DDL_SHOTS_INDEXES,
    _DDL_GRINDER_PROFILES,
    _DDL_GRIND_RECOMMENDATIONS,
]

# Table names for introspection / tests
ALL_TABLE_NAMES = [
    "beans",
    "shots",
    "grinder_profiles",
    "grind_recommendations",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent; safe to call on an already-initialized database.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return the table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return the index names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
