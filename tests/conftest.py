"""
Shared pytest fixtures for the Shot Coach test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``make_shot`` / ``make_bean``: factories for valid domain objects with
    per-test overrides.
  - ``sample_profile``: the default 1-10 / 0.5 grinder profile.
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timedelta
from typing import Callable, Generator

import pytest

from shot_coach.db.schema import apply_schema
from shot_coach.models.grinder import GrinderProfile
from shot_coach.models.shot import Bean, Shot

BASE_TIME = datetime(2026, 10, 18, 7, 30, 0)


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Schema is applied idempotently.
    Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Sample domain object factories ────────────────────────────────────────────

@pytest.fixture
def make_shot() -> Callable[..., Shot]:
    """Factory for a valid ``Shot``: 18g -> 36g in 27s at grind 15.0.

    ``minutes`` offsets the timestamp from a fixed base time so tests can
    build ordered histories without touching the clock.
    """

    def _make(minutes: int = 0, **overrides) -> Shot:
        fields = dict(
            bean_id=1,
            coffee_weight_in=18.0,
            coffee_weight_out=36.0,
            extraction_time_seconds=27,
            grinder_setting="15.0",
            timestamp=BASE_TIME + timedelta(minutes=minutes),
        )
        fields.update(overrides)
        return Shot(**fields)

    return _make


@pytest.fixture
def make_bean() -> Callable[..., Bean]:
    """Factory for a valid ``Bean`` roasted on 2026-10-08."""

    def _make(**overrides) -> Bean:
        fields = dict(name="Ethiopia Guji", roast_date=date(2026, 10, 8))
        fields.update(overrides)
        return Bean(**fields)

    return _make


@pytest.fixture
def sample_profile() -> GrinderProfile:
    """Grinder with a 1-10 scale in half steps."""
    return GrinderProfile(scale_min=1, scale_max=10, step_size=0.5)


@pytest.fixture
def wide_profile() -> GrinderProfile:
    """Grinder with a 0-30 scale in half steps."""
    return GrinderProfile(scale_min=0, scale_max=30, step_size=0.5)
