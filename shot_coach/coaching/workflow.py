"""
Coaching workflow: the record → advise → persist loop.

``record_shot``
    1. Insert the shot through the catalog.
    2. Ask the advisor for the next setting using the current grinder profile.
    3. Save the recommendation for the shot's bean (always, taste or not).

``add_taste_feedback``
    1. Update the shot's taste through the catalog.
    2. Recompute the advice with the new taste.
    3. ``store.update`` the bean's record, keeping its timestamp and
       followed flag.

Failures from the catalog, advisor or store are returned unmodified. A
shot that was recorded stays recorded when a later step fails.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from shot_coach.coaching.advisor import calculate_adjustment
from shot_coach.coaching.catalog import ShotCatalog
from shot_coach.coaching.store import RecommendationStore
from shot_coach.config import DEFAULT_THRESHOLDS, CoachingThresholds
from shot_coach.errors import Ok, Result, storage_call
from shot_coach.models.grinder import GrinderProfile
from shot_coach.models.recommendation import (
    GrindAdjustmentRecommendation,
    PersistentRecommendation,
)
from shot_coach.models.shot import Shot
from shot_coach.taxonomy.shot_taxonomy import TastePrimary, TasteSecondary

logger = logging.getLogger(__name__)

ProfileProvider = Callable[[], Optional[GrinderProfile]]


@dataclass(frozen=True)
class RecordedShot:
    """Outcome of recording a shot or its taste feedback."""

    shot:           Shot
    recommendation: GrindAdjustmentRecommendation
    persisted:      PersistentRecommendation


class CoachingWorkflow:
    """Wires catalog, advisor and store together.

    Args:
        catalog:          Shot/bean persistence.
        store:            Per-bean recommendation store.
        profile_provider: Returns the current grinder profile (or ``None``).
        thresholds:       Coaching thresholds.
    """

    def __init__(
        self,
        catalog: ShotCatalog,
        store: RecommendationStore,
        profile_provider: ProfileProvider,
        thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.profile_provider = profile_provider
        self.thresholds = thresholds

    def record_shot(self, shot: Shot) -> Result[RecordedShot]:
        recorded = self.catalog.record_shot(shot)
        if not recorded.is_ok:
            return recorded
        return self._advise_and_persist(recorded.value, update=False)

    def add_taste_feedback(
        self,
        shot_id: int,
        taste_primary: Optional[TastePrimary],
        taste_secondary: Optional[TasteSecondary] = None,
    ) -> Result[RecordedShot]:
        updated = self.catalog.update_taste_feedback(shot_id, taste_primary, taste_secondary)
        if not updated.is_ok:
            return updated
        return self._advise_and_persist(updated.value, update=True)

    def _advise_and_persist(self, shot: Shot, update: bool) -> Result[RecordedShot]:
        profile = storage_call(self.profile_provider, message="Failed to load grinder profile")
        if not profile.is_ok:
            return profile

        advice = calculate_adjustment(
            shot.grinder_setting,
            shot.extraction_time_seconds,
            shot.taste_primary,
            profile.value,
            self.thresholds,
        )
        if not advice.is_ok:
            logger.warning("No grind advice for shot %s: %s", shot.shot_id, advice.error)
            return advice

        if update:
            persisted = self.store.update(shot.bean_id, advice.value, shot)
        else:
            persisted = self.store.save(shot.bean_id, advice.value, shot)
        if not persisted.is_ok:
            return persisted

        return Ok(RecordedShot(shot=shot, recommendation=advice.value, persisted=persisted.value))
