"""
Ephemeral analysis results.

Everything here is recomputed on demand from shots and never persisted, so
these are plain frozen dataclasses rather than pydantic models.

  QualityBreakdown          per-shot score with its five components
  ShotRecommendation        one informational piece of advice for a shot
  ImprovementPath           single next step for a below-excellent shot
  ShotAnalysis              breakdown + deviations + advice for one shot
  ShotDetails               the full per-shot report
  ShotComparison            side-by-side differences between two shots
  AggregateQualityAnalysis  distribution, trend and consistency over many shots
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from shot_coach.models.shot import Bean, Shot
from shot_coach.taxonomy.shot_taxonomy import (
    ImprovementAction,
    QualityTier,
    RecommendationPriority,
    RecommendationType,
    TrendDirection,
)


@dataclass(frozen=True)
class QualityBreakdown:
    """A shot's 0-100 quality score and where the points came from.

    Attributes:
        time_points:         25 / 15 / 5 for optimal / acceptable / other time.
        ratio_points:        20 / 12 / 4 for typical / acceptable / other ratio.
        taste_points:        30 perfect, 10 sour or bitter, 15 when absent.
        consistency_points:  15 when close to the bean averages, else 5.
        bonus_points:        0, 5 or 10 for very tight ratio / time deviation.
        avg_brew_ratio:      Bean-average brew ratio used for the comparison.
        avg_extraction_time: Bean-average extraction time (seconds).
        ratio_deviation:     shot ratio minus bean average.
        time_deviation:      shot time minus bean average (seconds).
    """

    time_points:         int
    ratio_points:        int
    taste_points:        int
    consistency_points:  int
    bonus_points:        int
    avg_brew_ratio:      float
    avg_extraction_time: float
    ratio_deviation:     float
    time_deviation:      float

    @property
    def raw_total(self) -> int:
        return (
            self.time_points
            + self.ratio_points
            + self.taste_points
            + self.consistency_points
            + self.bonus_points
        )

    @property
    def score(self) -> int:
        """Total clamped to [0, 100]."""
        return max(0, min(100, self.raw_total))


@dataclass(frozen=True)
class ShotRecommendation:
    """Informational advice attached to a shot analysis.

    ``target_value`` is an inclusive (low, high) range; ``context`` carries
    a few pre-formatted strings for display (``currentTime``, ``currentRatio``,
    ``deviation``, ``avgRatio``).
    """

    type:          RecommendationType
    priority:      RecommendationPriority
    current_value: float
    target_value:  tuple[float, float]
    context:       dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ImprovementPath:
    """Most impactful next step for a shot scoring below excellent."""

    action:         ImprovementAction
    points_needed:  int
    target_tier:    QualityTier


@dataclass(frozen=True)
class ShotAnalysis:
    """Quality breakdown plus bean-relative context for one shot."""

    quality:                   QualityBreakdown
    brew_ratio_deviation:      float
    extraction_time_deviation: float
    weight_in_deviation:       float
    weight_out_deviation:      float
    avg_brew_ratio:            float
    avg_extraction_time:       float
    avg_weight_in:             float
    avg_weight_out:            float
    is_optimal_extraction:     bool
    is_typical_ratio:          bool
    is_consistent_with_bean:   bool
    recommendations:           list[ShotRecommendation] = field(default_factory=list)
    improvement_path:          Optional[ImprovementPath] = None

    @property
    def quality_score(self) -> int:
        return self.quality.score


@dataclass(frozen=True)
class ShotDetails:
    """Everything the shot details view shows for one shot.

    ``shot_ranking`` (1 = best) and ``is_personal_best`` are only populated
    when the bean has more than three shots; otherwise they are ``None`` and
    ``False``.
    """

    shot:                Shot
    bean:                Bean
    days_since_roast:    int
    previous_shot:       Optional[Shot]
    next_shot:           Optional[Shot]
    analysis:            ShotAnalysis
    related_shots_count: int
    shot_ranking:        Optional[int] = None
    is_personal_best:    bool = False


@dataclass(frozen=True)
class ShotComparison:
    """Differences between two shots, computed as ``shot2 - shot1``."""

    shot1:                 Shot
    shot2:                 Shot
    weight_in_difference:  float
    weight_out_difference: float
    time_difference:       int
    ratio_difference:      float
    same_bean:             bool
    same_grind:            bool

    @property
    def formatted_weight_in_difference(self) -> str:
        return _signed(f"{self.weight_in_difference:.1f}", self.weight_in_difference) + "g"

    @property
    def formatted_weight_out_difference(self) -> str:
        return _signed(f"{self.weight_out_difference:.1f}", self.weight_out_difference) + "g"

    @property
    def formatted_time_difference(self) -> str:
        return _signed(str(self.time_difference), self.time_difference) + "s"

    @property
    def formatted_ratio_difference(self) -> str:
        return _signed(f"{self.ratio_difference:.2f}", self.ratio_difference)


def _signed(text: str, value: float) -> str:
    return f"+{text}" if value > 0 else text


@dataclass(frozen=True)
class AggregateQualityAnalysis:
    """Quality across a set of shots.

    ``overall_quality_score`` mirrors ``recent_average`` so the headline
    number follows what the user has been pulling lately.
    """

    total_shots:           int
    overall_quality_score: int
    quality_tier:          QualityTier
    excellent_count:       int
    good_count:            int
    needs_work_count:      int
    trend_direction:       TrendDirection
    recent_average:        int
    overall_average:       int
    improvement_rate:      float
    consistency_score:     int

    @classmethod
    def empty(cls) -> "AggregateQualityAnalysis":
        return cls(
            total_shots=0,
            overall_quality_score=0,
            quality_tier=QualityTier.NEEDS_WORK,
            excellent_count=0,
            good_count=0,
            needs_work_count=0,
            trend_direction=TrendDirection.STABLE,
            recent_average=0,
            overall_average=0,
            improvement_rate=0.0,
            consistency_score=0,
        )
