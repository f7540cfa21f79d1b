"""
Tests for shot_coach/coaching/aggregate.py.

What we test
------------
analyze_quality():
  - Empty input returns the neutral empty analysis.
  - Tier buckets, truncated averages and the 5-shot recent window.
  - The recent window follows timestamps, not input order.
  - Trend and improvement rate in both directions.
  - Consistency score: 100 for identical scores, coefficient-of-variation
    based otherwise.

Scores are computed with an empty context, so each shot is compared with
itself: a 27 s 1:2 perfect shot scores 100, a 15 s 1:1.1 sour shot 44.
"""

from __future__ import annotations

import pytest

from shot_coach.coaching.aggregate import analyze_quality
from shot_coach.models.analysis import AggregateQualityAnalysis
from shot_coach.taxonomy.shot_taxonomy import QualityTier, TastePrimary, TrendDirection


def _good(make_shot, minutes: int):
    return make_shot(shot_id=minutes + 1, minutes=minutes, taste_primary=TastePrimary.PERFECT)


def _bad(make_shot, minutes: int):
    return make_shot(
        shot_id=minutes + 1,
        minutes=minutes,
        extraction_time_seconds=15,
        coffee_weight_out=20.0,
        taste_primary=TastePrimary.SOUR,
    )


class TestAnalyzeQuality:
    def test_empty(self):
        assert analyze_quality([], []) == AggregateQualityAnalysis.empty()

    def test_uniform_excellent_shots(self, make_shot):
        shots = [_good(make_shot, i) for i in range(4)]
        a = analyze_quality(shots, [])
        assert a.total_shots == 4
        assert a.overall_average == 100
        assert a.recent_average == 100
        assert a.excellent_count == 4
        assert a.quality_tier == QualityTier.EXCELLENT
        assert a.trend_direction == TrendDirection.STABLE
        assert a.improvement_rate == pytest.approx(0.0)
        assert a.consistency_score == 100

    def test_improving(self, make_shot):
        shots = [_bad(make_shot, i) for i in range(5)] + [_good(make_shot, i) for i in range(5, 10)]
        a = analyze_quality(shots, [])
        assert a.overall_average == 72
        assert a.recent_average == 100
        assert a.overall_quality_score == 100
        assert a.trend_direction == TrendDirection.IMPROVING
        assert a.improvement_rate == pytest.approx(28 / 72 * 100)
        assert a.excellent_count == 5
        assert a.good_count == 0
        assert a.needs_work_count == 5
        assert a.consistency_score == 61

    def test_declining(self, make_shot):
        shots = [_good(make_shot, i) for i in range(5)] + [_bad(make_shot, i) for i in range(5, 10)]
        a = analyze_quality(shots, [])
        assert a.recent_average == 44
        assert a.trend_direction == TrendDirection.DECLINING
        assert a.improvement_rate == pytest.approx(-28 / 72 * 100)
        assert a.quality_tier == QualityTier.NEEDS_WORK

    def test_recent_window_uses_timestamps(self, make_shot):
        shots = [_bad(make_shot, i) for i in range(5)] + [_good(make_shot, i) for i in range(5, 10)]
        shuffled = shots[::2] + shots[1::2]
        assert analyze_quality(shuffled, []).recent_average == 100

    def test_averages_truncate(self, make_shot):
        shots = [_good(make_shot, 0), _bad(make_shot, 1), _bad(make_shot, 2)]
        a = analyze_quality(shots, [])
        # mean(100, 44, 44) = 62.67
        assert a.overall_average == 62
        assert a.recent_average == 62
        assert a.trend_direction == TrendDirection.STABLE

    def test_single_shot(self, make_shot):
        a = analyze_quality([_bad(make_shot, 0)], [])
        assert a.total_shots == 1
        assert a.consistency_score == 100
        assert a.needs_work_count == 1
