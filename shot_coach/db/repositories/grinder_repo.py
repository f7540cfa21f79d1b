"""
Repository for grinder profiles.

Profiles are append-only: ``set-grinder`` inserts a new row and the most
recent one is the current profile.
"""

from __future__ import annotations

import logging
from typing import Optional

from shot_coach.db.repositories.base import BaseRepository
from shot_coach.models.grinder import GrinderProfile

logger = logging.getLogger(__name__)


class GrinderProfileRepository(BaseRepository):
    """Read/write access to the ``grinder_profiles`` table."""

    def insert(self, profile: GrinderProfile) -> int:
        self.execute(
            "INSERT INTO grinder_profiles (scale_min, scale_max, step_size) VALUES (?, ?, ?);",
            (profile.scale_min, profile.scale_max, profile.step_size),
        )
        profile_id = self.last_insert_rowid()
        logger.info(
            "Grinder profile %d saved: %d-%d step %s",
            profile_id, profile.scale_min, profile.scale_max, profile.step_size,
        )
        return profile_id

    def get_current(self) -> Optional[GrinderProfile]:
        """Return the most recently saved profile, or ``None`` if none exists."""
        row = self.fetchone(
            "SELECT * FROM grinder_profiles ORDER BY profile_id DESC LIMIT 1;"
        )
        if row is None:
            return None
        return GrinderProfile(
            profile_id=row["profile_id"],
            scale_min=row["scale_min"],
            scale_max=row["scale_max"],
            step_size=row["step_size"],
        )
