"""
Key/value storage for per-bean grind recommendation records.

Rows hold the record's JSON text (see ``PersistentRecommendation``) and the
record version it was written with. This repository does not parse JSON:
decoding and corrupt-record handling belong to the recommendation store.
"""

from __future__ import annotations

import logging
from typing import Optional

from shot_coach.db.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class RecommendationRecordRepository(BaseRepository):
    """Read/write access to the ``grind_recommendations`` table."""

    def upsert(self, bean_id: int, record_json: str, record_version: int) -> None:
        """Insert or replace the record for ``bean_id`` (last write wins)."""
        self.execute(
            """
            INSERT INTO grind_recommendations (bean_id, record_json, record_version, updated_at)
            VALUES (?, ?, ?, strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
            ON CONFLICT(bean_id) DO UPDATE SET
                record_json    = excluded.record_json,
                record_version = excluded.record_version,
                updated_at     = excluded.updated_at;
            """,
            (bean_id, record_json, record_version),
        )

    def get(self, bean_id: int) -> Optional[str]:
        """Return the raw JSON record for ``bean_id``, or ``None``."""
        row = self.fetchone(
            "SELECT record_json FROM grind_recommendations WHERE bean_id = ?;",
            (bean_id,),
        )
        return row["record_json"] if row else None

    def delete(self, bean_id: int) -> int:
        cursor = self.execute(
            "DELETE FROM grind_recommendations WHERE bean_id = ?;", (bean_id,)
        )
        return cursor.rowcount

    def delete_all(self) -> int:
        return self.execute("DELETE FROM grind_recommendations;").rowcount

    def list_bean_ids(self) -> list[int]:
        rows = self.fetchall("SELECT bean_id FROM grind_recommendations ORDER BY bean_id;")
        return [int(r["bean_id"]) for r in rows]
