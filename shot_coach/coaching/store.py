"""
Recommendation store: the persisted next-shot guidance, one record per bean.

Lifecycle per bean::

    absent ──save──▶ saved ──mark_followed──▶ followed
                       │ ▲                        │
                       │ └────save / update───────┘
                       └──clear──▶ absent

``save`` always writes a fresh record (new timestamp, not followed).
``update`` rewrites the suggestion after taste feedback but keeps the
original timestamp, followed flag, dose and target window; it falls back to
``save`` when there is no readable record.

A stored record that fails to parse is deleted and reported as absent.
All operations return ``Result``; SQLite and OS errors map to STORAGE.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from shot_coach.config import (
    DEFAULT_THRESHOLDS,
    CoachingThresholds,
    RecommendationConfig,
)
from shot_coach.db.repositories.recommendation_repo import RecommendationRecordRepository
from shot_coach.errors import Ok, Result, storage_call
from shot_coach.models.recommendation import (
    RECORD_VERSION,
    GrindAdjustmentRecommendation,
    PersistentRecommendation,
)
from shot_coach.models.shot import Shot
from shot_coach.taxonomy.shot_taxonomy import TastePrimary

logger = logging.getLogger(__name__)


def build_reason(
    extraction_time_seconds: int,
    taste_feedback: Optional[TastePrimary],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> str:
    """Human-readable reason for a recommendation; taste wins over timing."""
    t = extraction_time_seconds
    if taste_feedback is not None:
        return f"Last shot was {taste_feedback.value} ({t}s)"
    if t < thresholds.optimal_time_min:
        return f"Last shot ran too fast ({t}s)"
    if t > thresholds.optimal_time_max:
        return f"Last shot ran too slow ({t}s)"
    return f"Based on previous shot ({t}s)"


class RecommendationStore:
    """Persists the latest ``PersistentRecommendation`` per bean.

    Args:
        repo:       Key/value record repository.
        settings:   Dose and recency settings.
        thresholds: Source of the target extraction window.
        clock:      Returns "now"; injectable for tests.
    """

    def __init__(
        self,
        repo: RecommendationRecordRepository,
        settings: RecommendationConfig = RecommendationConfig(),
        thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.repo = repo
        self.settings = settings
        self.thresholds = thresholds
        self._clock = clock

    def save(
        self,
        bean_id: int,
        recommendation: GrindAdjustmentRecommendation,
        triggering_shot: Shot,
    ) -> Result[PersistentRecommendation]:
        """Replace the bean's record with a fresh one derived from ``recommendation``."""
        record = PersistentRecommendation(
            bean_id=bean_id,
            suggested_grind_setting=recommendation.suggested_grind_setting,
            adjustment_direction=recommendation.adjustment_direction,
            reason=build_reason(
                triggering_shot.extraction_time_seconds,
                triggering_shot.taste_primary,
                self.thresholds,
            ),
            recommended_dose=self.settings.default_dose_g,
            target_extraction_time_min=self.thresholds.optimal_time_min,
            target_extraction_time_max=self.thresholds.optimal_time_max,
            timestamp=self._clock().replace(microsecond=0),
            was_followed=False,
            based_on_taste=triggering_shot.taste_primary is not None,
            confidence=recommendation.confidence,
        )
        result = self._write(record)
        if result.is_ok:
            logger.info(
                "Saved recommendation for bean %d: %s → %s (%s)",
                bean_id, record.adjustment_direction.name, record.suggested_grind_setting,
                record.reason,
            )
        return result

    def get(self, bean_id: int) -> Result[Optional[PersistentRecommendation]]:
        """The bean's live record, ``Ok(None)`` when absent or corrupt."""
        raw = storage_call(
            self.repo.get, bean_id, message=f"Failed to read recommendation for bean {bean_id}"
        )
        if not raw.is_ok or raw.value is None:
            return raw

        try:
            return Ok(PersistentRecommendation.from_record_json(raw.value))
        except (ValidationError, ValueError) as exc:
            logger.warning("Corrupt recommendation record for bean %d cleared: %s", bean_id, exc)
            cleared = self.clear(bean_id)
            if not cleared.is_ok:
                return cleared
            return Ok(None)

    def mark_followed(self, bean_id: int) -> Result[None]:
        """Flag the bean's record as followed; no-op when there is none."""
        current = self.get(bean_id)
        if not current.is_ok:
            return current
        if current.value is None:
            logger.debug("No recommendation to mark followed for bean %d", bean_id)
            return Ok(None)

        written = self._write(current.value.mark_followed())
        if not written.is_ok:
            return written
        logger.info("Recommendation for bean %d marked as followed", bean_id)
        return Ok(None)

    def update(
        self,
        bean_id: int,
        new_recommendation: GrindAdjustmentRecommendation,
        updated_shot: Shot,
    ) -> Result[PersistentRecommendation]:
        """Rewrite the suggestion after new feedback, keeping history fields.

        Preserves ``timestamp``, ``was_followed``, ``recommended_dose`` and
        the target window. Falls back to ``save`` when no record exists or
        the existing one could not be read.
        """
        current = self.get(bean_id)
        if not current.is_ok or current.value is None:
            if not current.is_ok:
                logger.warning(
                    "Could not read recommendation for bean %d (%s); saving a new one",
                    bean_id, current.error,
                )
            return self.save(bean_id, new_recommendation, updated_shot)

        record = current.value.model_copy(
            update={
                "suggested_grind_setting": new_recommendation.suggested_grind_setting,
                "adjustment_direction": new_recommendation.adjustment_direction,
                "reason": build_reason(
                    updated_shot.extraction_time_seconds,
                    updated_shot.taste_primary,
                    self.thresholds,
                ),
                "based_on_taste": updated_shot.taste_primary is not None,
                "confidence": new_recommendation.confidence,
            }
        )
        result = self._write(record)
        if result.is_ok:
            logger.info(
                "Updated recommendation for bean %d: %s → %s",
                bean_id, record.adjustment_direction.name, record.suggested_grind_setting,
            )
        return result

    def clear(self, bean_id: int) -> Result[None]:
        result = storage_call(
            self.repo.delete, bean_id, message=f"Failed to clear recommendation for bean {bean_id}"
        )
        if not result.is_ok:
            return result
        if result.value:
            logger.info("Cleared recommendation for bean %d", bean_id)
        return Ok(None)

    def clear_all(self) -> Result[None]:
        result = storage_call(self.repo.delete_all, message="Failed to clear recommendations")
        if not result.is_ok:
            return result
        logger.info("Cleared %d recommendation(s)", result.value)
        return Ok(None)

    def list_bean_ids_with_recommendations(self) -> Result[list[int]]:
        return storage_call(self.repo.list_bean_ids, message="Failed to list recommendations")

    def is_recent(self, record: PersistentRecommendation) -> bool:
        """``record.is_recent`` using this store's clock and recency window."""
        return record.is_recent(now=self._clock(), days=self.settings.recent_days)

    def _write(self, record: PersistentRecommendation) -> Result[PersistentRecommendation]:
        result = storage_call(
            self.repo.upsert,
            record.bean_id,
            record.to_record_json(),
            RECORD_VERSION,
            message=f"Failed to write recommendation for bean {record.bean_id}",
        )
        if not result.is_ok:
            return result
        return Ok(record)
