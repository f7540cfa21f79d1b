"""
Per-shot detail report.

``ShotDetailAnalyzer.get_shot_details(shot_id)`` composes:

  - the shot and its bean (days since roast),
  - previous / next shot of the same bean in timestamp order,
  - a ``ShotAnalysis``: quality breakdown (from ``scorer.score_shot``),
    deviations from the bean averages, informational recommendations and
    an improvement path,
  - ranking among the bean's shots, only when the bean has more than three.

Failure handling
----------------
    shot missing                 → NOT_FOUND
    shot found, bean missing     → ASSOCIATED_BEAN_NOT_FOUND
    catalog returned an Err      → the same Err, unmodified
    related shots failed to load → report degrades to an empty related list
    anything else raised         → UNKNOWN with the exception as cause
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Optional

from shot_coach.coaching.catalog import ShotCatalog
from shot_coach.coaching.scorer import (
    is_optimal_time,
    is_typical_ratio,
    score_shot,
)
from shot_coach.config import DEFAULT_THRESHOLDS, CoachingThresholds
from shot_coach.errors import ErrorKind, Ok, Result, failure, unexpected
from shot_coach.models.analysis import (
    ImprovementPath,
    QualityBreakdown,
    ShotAnalysis,
    ShotComparison,
    ShotDetails,
    ShotRecommendation,
)
from shot_coach.models.shot import Bean, Shot
from shot_coach.taxonomy.shot_taxonomy import (
    ImprovementAction,
    QualityTier,
    RecommendationPriority,
    RecommendationType,
    TastePrimary,
)

logger = logging.getLogger(__name__)

# Component scores below these mark the component as worth improving
_TIME_IMPROVEMENT_POINTS = 20
_TASTE_IMPROVEMENT_POINTS = 20
_RATIO_IMPROVEMENT_POINTS = 15


class ShotDetailAnalyzer:
    """Builds ``ShotDetails`` reports from a ``ShotCatalog``.

    Args:
        catalog:    Source of shots and beans.
        thresholds: Coaching thresholds.
    """

    def __init__(
        self,
        catalog: ShotCatalog,
        thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self.catalog = catalog
        self.thresholds = thresholds

    def get_shot_details(self, shot_id: int, today: Optional[date] = None) -> Result[ShotDetails]:
        """Full report for one shot.

        Args:
            shot_id: Shot to report on.
            today:   Reference date for ``days_since_roast`` (defaults to today).
        """
        try:
            return self._build_details(shot_id, today or date.today())
        except Exception as exc:
            return unexpected(f"Unexpected error getting details for shot {shot_id}", exc)

    def compare_shots(self, shot_id_1: int, shot_id_2: int) -> Result[ShotComparison]:
        """Differences ``shot2 - shot1`` between two shots."""
        try:
            first = self.get_shot_details(shot_id_1)
            if not first.is_ok:
                return first
            second = self.get_shot_details(shot_id_2)
            if not second.is_ok:
                return second

            shot1, shot2 = first.value.shot, second.value.shot
            return Ok(
                ShotComparison(
                    shot1=shot1,
                    shot2=shot2,
                    weight_in_difference=shot2.coffee_weight_in - shot1.coffee_weight_in,
                    weight_out_difference=shot2.coffee_weight_out - shot1.coffee_weight_out,
                    time_difference=shot2.extraction_time_seconds - shot1.extraction_time_seconds,
                    ratio_difference=shot2.brew_ratio - shot1.brew_ratio,
                    same_bean=first.value.bean.bean_id == second.value.bean.bean_id,
                    same_grind=shot1.grinder_setting == shot2.grinder_setting,
                )
            )
        except Exception as exc:
            return unexpected("Unexpected error comparing shots", exc)

    def get_last_shot_details(
        self, bean_id: int, today: Optional[date] = None
    ) -> Result[Optional[ShotDetails]]:
        """Report for the bean's most recent shot; ``Ok(None)`` if it has none."""
        last = self.catalog.get_last_shot_for_bean(bean_id)
        if not last.is_ok:
            return last
        if last.value is None or last.value.shot_id is None:
            return Ok(None)
        return self.get_shot_details(last.value.shot_id, today)

    # ── Internals ────────────────────────────────────────────────────────────

    def _build_details(self, shot_id: int, today: date) -> Result[ShotDetails]:
        shot_result = self.catalog.get_shot(shot_id)
        if not shot_result.is_ok:
            return shot_result
        shot = shot_result.value
        if shot is None:
            return failure(ErrorKind.NOT_FOUND, f"Shot {shot_id} not found")

        bean_result = self.catalog.get_bean(shot.bean_id)
        if not bean_result.is_ok:
            return bean_result
        bean = bean_result.value
        if bean is None:
            return failure(
                ErrorKind.ASSOCIATED_BEAN_NOT_FOUND,
                f"Bean {shot.bean_id} for shot {shot_id} not found",
            )

        related_result = self.catalog.get_shots_for_bean(shot.bean_id)
        if related_result.is_ok:
            related = list(related_result.value)
        else:
            logger.warning(
                "Could not load related shots for bean %d: %s", shot.bean_id, related_result.error
            )
            related = []

        ordered = sorted(related, key=lambda s: s.timestamp)
        index = next((i for i, s in enumerate(ordered) if s.shot_id == shot.shot_id), -1)
        previous_shot = ordered[index - 1] if index > 0 else None
        next_shot = ordered[index + 1] if 0 <= index < len(ordered) - 1 else None

        analysis = analyze_shot(shot, bean, related, self.thresholds)

        ranking: Optional[int] = None
        if len(related) > self.thresholds.min_shots_for_ranking:
            scores = [(s.shot_id, score_shot(s, related, self.thresholds).score) for s in related]
            by_score = sorted(scores, key=lambda pair: pair[1], reverse=True)
            ranking = next(
                (pos for pos, (sid, _) in enumerate(by_score, start=1) if sid == shot.shot_id),
                None,
            )

        return Ok(
            ShotDetails(
                shot=shot,
                bean=bean,
                days_since_roast=bean.days_since_roast(today),
                previous_shot=previous_shot,
                next_shot=next_shot,
                analysis=analysis,
                related_shots_count=len(related),
                shot_ranking=ranking,
                is_personal_best=ranking == 1,
            )
        )


def analyze_shot(
    shot: Shot,
    bean: Bean,
    related_shots: Sequence[Shot],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> ShotAnalysis:
    """Quality breakdown, bean-relative deviations and advice for ``shot``.

    Averages are taken over ``related_shots`` belonging to ``bean`` and are
    all zero when there are none.
    """
    bean_shots = [s for s in related_shots if s.bean_id == bean.bean_id]
    count = len(bean_shots)
    if count:
        avg_ratio = sum(s.brew_ratio for s in bean_shots) / count
        avg_time = sum(s.extraction_time_seconds for s in bean_shots) / count
        avg_in = sum(s.coffee_weight_in for s in bean_shots) / count
        avg_out = sum(s.coffee_weight_out for s in bean_shots) / count
    else:
        avg_ratio = avg_time = avg_in = avg_out = 0.0

    ratio_dev = shot.brew_ratio - avg_ratio
    time_dev = shot.extraction_time_seconds - avg_time

    quality = score_shot(shot, related_shots, thresholds)
    consistent = (
        abs(ratio_dev) < thresholds.consistency_ratio_deviation
        and abs(time_dev) < thresholds.consistency_time_deviation
    )

    recommendations = _recommendations(shot, ratio_dev, avg_ratio, count > 0, thresholds)

    return ShotAnalysis(
        quality=quality,
        brew_ratio_deviation=ratio_dev,
        extraction_time_deviation=time_dev,
        weight_in_deviation=shot.coffee_weight_in - avg_in,
        weight_out_deviation=shot.coffee_weight_out - avg_out,
        avg_brew_ratio=avg_ratio,
        avg_extraction_time=avg_time,
        avg_weight_in=avg_in,
        avg_weight_out=avg_out,
        is_optimal_extraction=is_optimal_time(shot.extraction_time_seconds, thresholds),
        is_typical_ratio=is_typical_ratio(shot.brew_ratio, thresholds),
        is_consistent_with_bean=consistent,
        recommendations=recommendations,
        improvement_path=improvement_path(shot, quality, thresholds),
    )


def improvement_path(
    shot: Shot,
    quality: QualityBreakdown,
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> Optional[ImprovementPath]:
    """Single most impactful next step, or ``None`` for excellent shots.

    Priority: extraction time, then taste, then brew ratio.
    """
    score = quality.score
    if score >= thresholds.excellent_score:
        return None

    action: Optional[ImprovementAction] = None
    if quality.time_points < _TIME_IMPROVEMENT_POINTS and not is_optimal_time(
        shot.extraction_time_seconds, thresholds
    ):
        if shot.extraction_time_seconds < thresholds.optimal_time_min:
            action = ImprovementAction.GRIND_FINER
        else:
            action = ImprovementAction.GRIND_COARSER
    elif (
        quality.taste_points < _TASTE_IMPROVEMENT_POINTS
        and shot.taste_primary != TastePrimary.PERFECT
    ):
        action = ImprovementAction.DIAL_IN_BASED_ON_TASTE
    elif quality.ratio_points < _RATIO_IMPROVEMENT_POINTS and not is_typical_ratio(
        shot.brew_ratio, thresholds
    ):
        action = ImprovementAction.ADJUST_BREW_RATIO

    if action is None:
        return None

    target = QualityTier.EXCELLENT if score >= thresholds.good_score else QualityTier.GOOD
    return ImprovementPath(
        action=action,
        points_needed=thresholds.excellent_score - score,
        target_tier=target,
    )


def _recommendations(
    shot: Shot,
    ratio_dev: float,
    avg_ratio: float,
    has_history: bool,
    thresholds: CoachingThresholds,
) -> list[ShotRecommendation]:
    recs: list[ShotRecommendation] = []
    time_window = (float(thresholds.optimal_time_min), float(thresholds.optimal_time_max))
    ratio_window = (thresholds.typical_ratio_min, thresholds.typical_ratio_max)

    if not is_optimal_time(shot.extraction_time_seconds, thresholds):
        too_fast = shot.extraction_time_seconds < thresholds.optimal_time_min
        recs.append(
            ShotRecommendation(
                type=RecommendationType.GRIND_FINER if too_fast else RecommendationType.GRIND_COARSER,
                priority=RecommendationPriority.HIGH,
                current_value=float(shot.extraction_time_seconds),
                target_value=time_window,
                context={"currentTime": str(shot.extraction_time_seconds)},
            )
        )

    if not is_typical_ratio(shot.brew_ratio, thresholds):
        too_short = shot.brew_ratio < thresholds.typical_ratio_min
        recs.append(
            ShotRecommendation(
                type=RecommendationType.INCREASE_YIELD if too_short else RecommendationType.DECREASE_YIELD,
                priority=RecommendationPriority.MEDIUM,
                current_value=shot.brew_ratio,
                target_value=ratio_window,
                context={"currentRatio": f"{shot.brew_ratio:.2f}"},
            )
        )

    if has_history and abs(ratio_dev) > thresholds.ratio_inconsistency_deviation:
        band = thresholds.ratio_target_band
        recs.append(
            ShotRecommendation(
                type=RecommendationType.RATIO_INCONSISTENCY,
                priority=RecommendationPriority.LOW,
                current_value=shot.brew_ratio,
                target_value=(avg_ratio - band, avg_ratio + band),
                context={"deviation": f"{ratio_dev:.2f}", "avgRatio": f"{avg_ratio:.2f}"},
            )
        )

    return recs
