"""
Aggregate quality analysis across a set of shots.

Steps
-----
1. Score every shot against ``context_shots`` (``scorer.score_shot``).
2. Bucket: excellent >= 85, good [60, 85), needs work < 60.
3. overall_average = int(mean of all scores)          (truncation)
   recent_average  = int(mean of the 5 latest scores) (by timestamp)
4. Trend: IMPROVING if recent > overall + 5, DECLINING if recent < overall − 5,
   else STABLE.
5. improvement_rate  = (recent − overall) / overall × 100   (0 when overall is 0)
   consistency_score = int(clamp(100 − pstdev / overall × 100, 0, 100))
                                                            (0 when overall is 0)
6. Tier and ``overall_quality_score`` follow ``recent_average``.
"""

from __future__ import annotations

import logging
import statistics
from collections.abc import Sequence

from shot_coach.coaching.scorer import calculate_shot_quality_score, quality_tier
from shot_coach.config import DEFAULT_THRESHOLDS, CoachingThresholds
from shot_coach.models.analysis import AggregateQualityAnalysis
from shot_coach.models.shot import Shot
from shot_coach.taxonomy.shot_taxonomy import QualityTier, TrendDirection

logger = logging.getLogger(__name__)


def analyze_quality(
    shots: Sequence[Shot],
    context_shots: Sequence[Shot],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> AggregateQualityAnalysis:
    """Distribution, trend and consistency of ``shots``.

    Args:
        shots:         Shots to analyse (any order).
        context_shots: Comparison set for per-shot consistency scoring.
        thresholds:    Coaching thresholds.

    Returns:
        ``AggregateQualityAnalysis``; ``AggregateQualityAnalysis.empty()``
        when ``shots`` is empty.
    """
    if not shots:
        return AggregateQualityAnalysis.empty()

    scored = [(s, calculate_shot_quality_score(s, context_shots, thresholds)) for s in shots]
    scores = [score for _, score in scored]

    tiers = [quality_tier(score, thresholds) for score in scores]
    excellent = tiers.count(QualityTier.EXCELLENT)
    good = tiers.count(QualityTier.GOOD)
    needs_work = tiers.count(QualityTier.NEEDS_WORK)

    overall_avg = int(statistics.fmean(scores))
    latest = sorted(scored, key=lambda pair: pair[0].timestamp, reverse=True)
    recent_scores = [score for _, score in latest[: thresholds.recent_shot_count]]
    recent_avg = int(statistics.fmean(recent_scores))

    analysis = AggregateQualityAnalysis(
        total_shots=len(shots),
        overall_quality_score=recent_avg,
        quality_tier=quality_tier(recent_avg, thresholds),
        excellent_count=excellent,
        good_count=good,
        needs_work_count=needs_work,
        trend_direction=_trend(recent_avg, overall_avg, thresholds),
        recent_average=recent_avg,
        overall_average=overall_avg,
        improvement_rate=_improvement_rate(recent_avg, overall_avg),
        consistency_score=_consistency_score(scores, overall_avg),
    )
    logger.debug(
        "Aggregate over %d shots: overall=%d recent=%d trend=%s",
        analysis.total_shots, overall_avg, recent_avg, analysis.trend_direction,
    )
    return analysis


def _trend(recent: int, overall: int, thresholds: CoachingThresholds) -> TrendDirection:
    if recent > overall + thresholds.trend_threshold:
        return TrendDirection.IMPROVING
    if recent < overall - thresholds.trend_threshold:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def _improvement_rate(recent: int, overall: int) -> float:
    if overall <= 0:
        return 0.0
    return (recent - overall) / overall * 100.0


def _consistency_score(scores: list[int], overall: int) -> int:
    """100 minus the coefficient of variation (%), clamped to [0, 100]."""
    if overall <= 0:
        return 0
    std_dev = statistics.pstdev(scores)
    return int(max(0.0, min(100.0, 100.0 - std_dev / overall * 100.0)))
