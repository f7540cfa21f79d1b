"""
Tests for shot_coach/db/migrations.py.

What we test
------------
run_migrations():
  - Applies every migration once on a fresh database, then nothing.
  - Records each applied version in schema_versions.
  - A failing migration raises and is not recorded.
"""

from __future__ import annotations

import sqlite3

import pytest

from shot_coach.db import migrations
from shot_coach.db.migrations import MIGRATIONS, run_migrations


class TestRunMigrations:
    def test_fresh_database(self, in_memory_db):
        assert run_migrations(in_memory_db) == len(MIGRATIONS)
        assert run_migrations(in_memory_db) == 0

    def test_versions_recorded(self, in_memory_db):
        run_migrations(in_memory_db)
        rows = in_memory_db.execute("SELECT version_id FROM schema_versions;").fetchall()
        assert {r["version_id"] for r in rows} == set(MIGRATIONS)

    def test_failing_migration_not_recorded(self, in_memory_db, monkeypatch):
        def _broken(conn):
            conn.execute("ALTER TABLE no_such_table ADD COLUMN x INTEGER;")

        patched = dict(MIGRATIONS)
        patched["9999_broken"] = (_broken, "Always fails")
        monkeypatch.setattr(migrations, "MIGRATIONS", patched)

        with pytest.raises(sqlite3.OperationalError):
            run_migrations(in_memory_db)

        rows = in_memory_db.execute("SELECT version_id FROM schema_versions;").fetchall()
        assert "9999_broken" not in {r["version_id"] for r in rows}
