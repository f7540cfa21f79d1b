"""
Shot quality scoring: the single source of truth for "how good was this shot".

Score formula (additive, clamped to 0-100)
------------------------------------------
    total = time_points + ratio_points + taste_points
            + consistency_points + bonus_points

Components
----------
time_points (25 / 15 / 5):
    25 inside the optimal window [25, 30] s, 15 inside the acceptable window
    [20, 35] s, 5 otherwise.

ratio_points (20 / 12 / 4):
    Brew ratio = yield / dose. 20 inside the typical band [1.5, 3.0],
    12 inside the acceptable band [1.3, 2.8], 4 otherwise.

taste_points (30 / 10 / 15):
    PERFECT 30, SOUR or BITTER 10, no feedback 15 (neutral).

consistency_points (15 / 5):
    Averages of brew ratio and time over the comparison shots of the SAME
    bean (falling back to the shot's own values when there are none).
    15 if |ratio − avg| < 0.3 and |time − avg| < 5, else 5.

bonus_points (0 / 5 / 10):
    +5 if |ratio − avg| < 0.1, +5 if |time − avg| < 2.

Pure and deterministic: same inputs, same score.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from shot_coach.config import DEFAULT_THRESHOLDS, CoachingThresholds
from shot_coach.models.analysis import QualityBreakdown
from shot_coach.models.shot import Shot
from shot_coach.taxonomy.shot_taxonomy import QualityTier, TastePrimary

logger = logging.getLogger(__name__)

# Component point values
_TIME_POINTS = (25, 15, 5)
_RATIO_POINTS = (20, 12, 4)
_TASTE_POINTS: dict[Optional[TastePrimary], int] = {
    TastePrimary.PERFECT: 30,
    TastePrimary.SOUR:    10,
    TastePrimary.BITTER:  10,
    None:                 15,
}
_CONSISTENCY_POINTS = (15, 5)
_BONUS_POINTS = 5


def score_shot(
    shot: Shot,
    comparison_shots: Sequence[Shot],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> QualityBreakdown:
    """Score ``shot`` against the same-bean shots in ``comparison_shots``.

    Args:
        shot:             Shot to score.
        comparison_shots: Context shots; only those with ``shot.bean_id`` are
            used for the consistency averages. May include ``shot`` itself.
        thresholds:       Coaching thresholds.

    Returns:
        ``QualityBreakdown`` with all components and the averages used.
    """
    avg_ratio, avg_time = bean_averages(shot, comparison_shots)
    ratio_dev = shot.brew_ratio - avg_ratio
    time_dev = shot.extraction_time_seconds - avg_time

    consistent = (
        abs(ratio_dev) < thresholds.consistency_ratio_deviation
        and abs(time_dev) < thresholds.consistency_time_deviation
    )

    bonus = 0
    if abs(ratio_dev) < thresholds.tight_ratio_deviation:
        bonus += _BONUS_POINTS
    if abs(time_dev) < thresholds.tight_time_deviation:
        bonus += _BONUS_POINTS

    return QualityBreakdown(
        time_points=time_points(shot.extraction_time_seconds, thresholds),
        ratio_points=ratio_points(shot.brew_ratio, thresholds),
        taste_points=_TASTE_POINTS[shot.taste_primary],
        consistency_points=_CONSISTENCY_POINTS[0] if consistent else _CONSISTENCY_POINTS[1],
        bonus_points=bonus,
        avg_brew_ratio=avg_ratio,
        avg_extraction_time=avg_time,
        ratio_deviation=ratio_dev,
        time_deviation=time_dev,
    )


def calculate_shot_quality_score(
    shot: Shot,
    comparison_shots: Sequence[Shot],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> int:
    """Integer 0-100 quality score for ``shot``."""
    return score_shot(shot, comparison_shots, thresholds).score


def bean_averages(shot: Shot, comparison_shots: Sequence[Shot]) -> tuple[float, float]:
    """Mean (brew ratio, extraction time) over same-bean comparison shots.

    Falls back to the shot's own values when no comparison shot shares its bean.
    """
    same_bean = [s for s in comparison_shots if s.bean_id == shot.bean_id]
    if not same_bean:
        return shot.brew_ratio, float(shot.extraction_time_seconds)
    avg_ratio = sum(s.brew_ratio for s in same_bean) / len(same_bean)
    avg_time = sum(s.extraction_time_seconds for s in same_bean) / len(same_bean)
    return avg_ratio, avg_time


def time_points(
    extraction_time_seconds: int,
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> int:
    if is_optimal_time(extraction_time_seconds, thresholds):
        return _TIME_POINTS[0]
    if thresholds.acceptable_time_min <= extraction_time_seconds <= thresholds.acceptable_time_max:
        return _TIME_POINTS[1]
    return _TIME_POINTS[2]


def ratio_points(
    brew_ratio: float,
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> int:
    if is_typical_ratio(brew_ratio, thresholds):
        return _RATIO_POINTS[0]
    if thresholds.acceptable_ratio_min <= brew_ratio <= thresholds.acceptable_ratio_max:
        return _RATIO_POINTS[1]
    return _RATIO_POINTS[2]


def is_optimal_time(
    extraction_time_seconds: int,
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    return thresholds.optimal_time_min <= extraction_time_seconds <= thresholds.optimal_time_max


def is_typical_ratio(
    brew_ratio: float,
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    return thresholds.typical_ratio_min <= brew_ratio <= thresholds.typical_ratio_max


def quality_tier(score: int, thresholds: CoachingThresholds = DEFAULT_THRESHOLDS) -> QualityTier:
    """EXCELLENT at or above 85, GOOD at or above 60, else NEEDS_WORK."""
    if score >= thresholds.excellent_score:
        return QualityTier.EXCELLENT
    if score >= thresholds.good_score:
        return QualityTier.GOOD
    return QualityTier.NEEDS_WORK
