"""
Repository for coffee beans.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Optional

from shot_coach.db.repositories.base import BaseRepository
from shot_coach.models.shot import Bean

logger = logging.getLogger(__name__)


class BeanRepository(BaseRepository):
    """Read/write access to the ``beans`` table."""

    def insert(self, bean: Bean) -> int:
        """Insert a bean and return its auto-assigned ``bean_id``."""
        self.execute(
            """
            INSERT INTO beans (name, roast_date, notes, is_active, last_grinder_setting)
            VALUES (?, ?, ?, ?, ?);
            """,
            (
                bean.name,
                bean.roast_date.isoformat(),
                bean.notes,
                int(bean.is_active),
                bean.last_grinder_setting,
            ),
        )
        bean_id = self.last_insert_rowid()
        logger.info("Added bean %d (%s)", bean_id, bean.name)
        return bean_id

    def get_by_id(self, bean_id: int) -> Optional[Bean]:
        row = self.fetchone("SELECT * FROM beans WHERE bean_id = ?;", (bean_id,))
        return _row_to_bean(row) if row else None

    def get_all(self, active_only: bool = False) -> list[Bean]:
        """Return beans ordered by roast date (newest first)."""
        sql = "SELECT * FROM beans"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY roast_date DESC, bean_id DESC;"
        return [_row_to_bean(r) for r in self.fetchall(sql)]

    def update_last_grinder_setting(self, bean_id: int, grinder_setting: str) -> None:
        self.execute(
            "UPDATE beans SET last_grinder_setting = ? WHERE bean_id = ?;",
            (grinder_setting, bean_id),
        )

    def set_active(self, bean_id: int, is_active: bool) -> None:
        self.execute(
            "UPDATE beans SET is_active = ? WHERE bean_id = ?;",
            (int(is_active), bean_id),
        )


def _row_to_bean(row: sqlite3.Row) -> Bean:
    return Bean(
        bean_id=row["bean_id"],
        name=row["name"],
        roast_date=date.fromisoformat(row["roast_date"]),
        notes=row["notes"] or "",
        is_active=bool(row["is_active"]),
        last_grinder_setting=row["last_grinder_setting"],
    )
