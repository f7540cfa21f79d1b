"""
Repository for espresso shots.

Shots are always returned in ascending ``(timestamp, shot_id)`` order so
"previous" and "next" are well defined even when two shots share a
timestamp.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from shot_coach.db.repositories.base import BaseRepository
from shot_coach.models.shot import Shot
from shot_coach.taxonomy.shot_taxonomy import TastePrimary, TasteSecondary

logger = logging.getLogger(__name__)

_ORDER = " ORDER BY timestamp ASC, shot_id ASC"


class ShotRepository(BaseRepository):
    """Read/write access to the ``shots`` table."""

    def insert(self, shot: Shot) -> int:
        """Insert a shot and return its auto-assigned ``shot_id``."""
        self.execute(
            """
            INSERT INTO shots (
                bean_id, coffee_weight_in, coffee_weight_out,
                extraction_time_seconds, grinder_setting, timestamp,
                taste_primary, taste_secondary, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                shot.bean_id,
                shot.coffee_weight_in,
                shot.coffee_weight_out,
                shot.extraction_time_seconds,
                shot.grinder_setting,
                shot.timestamp.isoformat(),
                shot.taste_primary.value if shot.taste_primary else None,
                shot.taste_secondary.value if shot.taste_secondary else None,
                shot.notes,
            ),
        )
        return self.last_insert_rowid()

    def get_by_id(self, shot_id: int) -> Optional[Shot]:
        row = self.fetchone("SELECT * FROM shots WHERE shot_id = ?;", (shot_id,))
        return _row_to_shot(row) if row else None

    def get_by_bean(self, bean_id: int) -> list[Shot]:
        rows = self.fetchall("SELECT * FROM shots WHERE bean_id = ?" + _ORDER + ";", (bean_id,))
        return [_row_to_shot(r) for r in rows]

    def get_last_for_bean(self, bean_id: int) -> Optional[Shot]:
        row = self.fetchone(
            "SELECT * FROM shots WHERE bean_id = ?"
            " ORDER BY timestamp DESC, shot_id DESC LIMIT 1;",
            (bean_id,),
        )
        return _row_to_shot(row) if row else None

    def get_all(self) -> list[Shot]:
        return [_row_to_shot(r) for r in self.fetchall("SELECT * FROM shots" + _ORDER + ";")]

    def get_between(self, start: datetime, end: datetime) -> list[Shot]:
        """Shots with ``start <= timestamp <= end``."""
        rows = self.fetchall(
            "SELECT * FROM shots WHERE timestamp >= ? AND timestamp <= ?" + _ORDER + ";",
            (start.isoformat(), end.isoformat()),
        )
        return [_row_to_shot(r) for r in rows]

    def update_taste(
        self,
        shot_id: int,
        taste_primary: Optional[TastePrimary],
        taste_secondary: Optional[TasteSecondary],
    ) -> int:
        """Set taste feedback on a shot. Returns the number of rows updated."""
        cursor = self.execute(
            "UPDATE shots SET taste_primary = ?, taste_secondary = ? WHERE shot_id = ?;",
            (
                taste_primary.value if taste_primary else None,
                taste_secondary.value if taste_secondary else None,
                shot_id,
            ),
        )
        return cursor.rowcount


def _row_to_shot(row: sqlite3.Row) -> Shot:
    return Shot(
        shot_id=row["shot_id"],
        bean_id=row["bean_id"],
        coffee_weight_in=row["coffee_weight_in"],
        coffee_weight_out=row["coffee_weight_out"],
        extraction_time_seconds=row["extraction_time_seconds"],
        grinder_setting=row["grinder_setting"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
        taste_primary=TastePrimary(row["taste_primary"]) if row["taste_primary"] else None,
        taste_secondary=TasteSecondary(row["taste_secondary"]) if row["taste_secondary"] else None,
        notes=row["notes"] or "",
    )
