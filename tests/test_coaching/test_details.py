"""
Tests for shot_coach/coaching/details.py.

What we test
------------
ShotDetailAnalyzer (real SQLite catalog):
  - Days since roast, previous / next neighbours, related shot count.
  - Ranking only when the bean has more than three shots; personal best.
  - NOT_FOUND for a missing shot.
  - compare_shots(): signed differences, same bean / grind flags.
  - get_last_shot_details(): Ok(None) for a bean without shots.

ShotDetailAnalyzer (fake catalog):
  - ASSOCIATED_BEAN_NOT_FOUND when the bean is missing.
  - Catalog Errs pass through as the same object.
  - Related-shot failures degrade to an empty history.
  - Unexpected exceptions become UNKNOWN with the cause attached.

analyze_shot() / improvement_path():
  - Informational recommendations and their targets.
  - RATIO_INCONSISTENCY needs bean history.
  - Improvement priority: time, then taste, then ratio.
"""

from __future__ import annotations

from datetime import date

import pytest

from shot_coach.coaching.catalog import SqliteShotCatalog
from shot_coach.coaching.details import ShotDetailAnalyzer, analyze_shot, improvement_path
from shot_coach.coaching.scorer import score_shot
from shot_coach.db.repositories.bean_repo import BeanRepository
from shot_coach.errors import ErrorKind, Ok, failure
from shot_coach.taxonomy.shot_taxonomy import (
    ImprovementAction,
    QualityTier,
    RecommendationPriority,
    RecommendationType,
    TastePrimary,
)

TODAY = date(2026, 10, 18)


def _seed(conn, make_bean, make_shot, shot_overrides: list[dict]) -> tuple[SqliteShotCatalog, list]:
    bean_id = BeanRepository(conn).insert(make_bean())
    catalog = SqliteShotCatalog(conn)
    shots = [
        catalog.record_shot(make_shot(minutes=i, bean_id=bean_id, **overrides)).unwrap()
        for i, overrides in enumerate(shot_overrides)
    ]
    return catalog, shots


class _FakeCatalog:
    """Minimal ShotCatalog returning canned results."""

    def __init__(self, shot=None, bean=None, related=None, shot_result=None, bean_result=None):
        self.shot_result = shot_result or Ok(shot)
        self.bean_result = bean_result or Ok(bean)
        self.related_result = related if related is not None else Ok([shot] if shot else [])

    def get_shot(self, shot_id):
        return self.shot_result

    def get_bean(self, bean_id):
        if isinstance(self.bean_result, Exception):
            raise self.bean_result
        return self.bean_result

    def get_shots_for_bean(self, bean_id):
        return self.related_result

    def get_last_shot_for_bean(self, bean_id):
        return self.shot_result


class TestShotDetails:
    def test_single_shot(self, in_memory_db, make_bean, make_shot):
        catalog, shots = _seed(in_memory_db, make_bean, make_shot, [{}])
        details = ShotDetailAnalyzer(catalog).get_shot_details(shots[0].shot_id, TODAY).unwrap()
        assert details.shot.shot_id == shots[0].shot_id
        assert details.bean.name == "Ethiopia Guji"
        assert details.days_since_roast == 10
        assert details.previous_shot is None
        assert details.next_shot is None
        assert details.related_shots_count == 1
        assert details.shot_ranking is None
        assert not details.is_personal_best
        assert details.analysis.avg_brew_ratio == pytest.approx(2.0)
        assert details.analysis.quality_score == 85

    def test_neighbours(self, in_memory_db, make_bean, make_shot):
        catalog, shots = _seed(in_memory_db, make_bean, make_shot, [{}, {}, {}])
        details = ShotDetailAnalyzer(catalog).get_shot_details(shots[1].shot_id, TODAY).unwrap()
        assert details.previous_shot.shot_id == shots[0].shot_id
        assert details.next_shot.shot_id == shots[2].shot_id

    def test_no_ranking_with_three_shots(self, in_memory_db, make_bean, make_shot):
        catalog, shots = _seed(in_memory_db, make_bean, make_shot, [{}, {}, {}])
        details = ShotDetailAnalyzer(catalog).get_shot_details(shots[0].shot_id, TODAY).unwrap()
        assert details.shot_ranking is None

    def test_ranking_with_four_shots(self, in_memory_db, make_bean, make_shot):
        overrides = [{}, {"taste_primary": TastePrimary.PERFECT}, {}, {}]
        catalog, shots = _seed(in_memory_db, make_bean, make_shot, overrides)
        analyzer = ShotDetailAnalyzer(catalog)

        best = analyzer.get_shot_details(shots[1].shot_id, TODAY).unwrap()
        assert best.shot_ranking == 1
        assert best.is_personal_best

        other = analyzer.get_shot_details(shots[0].shot_id, TODAY).unwrap()
        assert other.shot_ranking == 2
        assert not other.is_personal_best

    def test_missing_shot(self, in_memory_db):
        result = ShotDetailAnalyzer(SqliteShotCatalog(in_memory_db)).get_shot_details(999)
        assert result.kind == ErrorKind.NOT_FOUND
        assert result.kind.is_not_found


class TestCompareShots:
    def test_differences_are_second_minus_first(self, in_memory_db, make_bean, make_shot):
        overrides = [{}, {"coffee_weight_out": 40.0, "extraction_time_seconds": 30, "grinder_setting": "14.5"}]
        catalog, shots = _seed(in_memory_db, make_bean, make_shot, overrides)
        comparison = ShotDetailAnalyzer(catalog).compare_shots(shots[0].shot_id, shots[1].shot_id).unwrap()
        assert comparison.weight_in_difference == pytest.approx(0.0)
        assert comparison.weight_out_difference == pytest.approx(4.0)
        assert comparison.time_difference == 3
        assert comparison.ratio_difference == pytest.approx(0.22)
        assert comparison.same_bean
        assert not comparison.same_grind
        assert comparison.formatted_weight_out_difference == "+4.0g"
        assert comparison.formatted_time_difference == "+3s"
        assert comparison.formatted_weight_in_difference == "0.0g"

    def test_missing_shot_fails(self, in_memory_db, make_bean, make_shot):
        catalog, shots = _seed(in_memory_db, make_bean, make_shot, [{}])
        result = ShotDetailAnalyzer(catalog).compare_shots(shots[0].shot_id, 999)
        assert result.kind == ErrorKind.NOT_FOUND


class TestLastShotDetails:
    def test_bean_without_shots(self, in_memory_db, make_bean):
        bean_id = BeanRepository(in_memory_db).insert(make_bean())
        result = ShotDetailAnalyzer(SqliteShotCatalog(in_memory_db)).get_last_shot_details(bean_id)
        assert result.is_ok
        assert result.value is None

    def test_returns_latest(self, in_memory_db, make_bean, make_shot):
        catalog, shots = _seed(in_memory_db, make_bean, make_shot, [{}, {}])
        details = ShotDetailAnalyzer(catalog).get_last_shot_details(shots[0].bean_id, TODAY).unwrap()
        assert details.shot.shot_id == shots[1].shot_id


class TestFailureHandling:
    def test_missing_bean(self, make_shot):
        catalog = _FakeCatalog(shot=make_shot(shot_id=1), bean=None)
        result = ShotDetailAnalyzer(catalog).get_shot_details(1)
        assert result.kind == ErrorKind.ASSOCIATED_BEAN_NOT_FOUND
        assert result.kind.is_not_found

    def test_shot_error_passes_through(self):
        err = failure(ErrorKind.STORAGE, "disk on fire")
        result = ShotDetailAnalyzer(_FakeCatalog(shot_result=err)).get_shot_details(1)
        assert result is err

    def test_bean_error_passes_through(self, make_shot):
        err = failure(ErrorKind.STORAGE, "locked")
        catalog = _FakeCatalog(shot=make_shot(shot_id=1), bean_result=err)
        assert ShotDetailAnalyzer(catalog).get_shot_details(1) is err

    def test_related_failure_degrades(self, make_shot, make_bean):
        catalog = _FakeCatalog(
            shot=make_shot(shot_id=1),
            bean=make_bean(bean_id=1),
            related=failure(ErrorKind.STORAGE, "busy"),
        )
        details = ShotDetailAnalyzer(catalog).get_shot_details(1, TODAY).unwrap()
        assert details.related_shots_count == 0
        assert details.analysis.avg_brew_ratio == 0.0
        assert details.shot_ranking is None

    def test_unexpected_exception_is_unknown(self, make_shot):
        boom = RuntimeError("boom")
        catalog = _FakeCatalog(shot=make_shot(shot_id=1), bean_result=boom)
        result = ShotDetailAnalyzer(catalog).get_shot_details(1)
        assert result.kind == ErrorKind.UNKNOWN
        assert result.error.cause is boom


class TestAnalyzeShot:
    def test_fast_short_shot_recommendations(self, make_shot, make_bean):
        shot = make_shot(shot_id=1, extraction_time_seconds=22, coffee_weight_out=21.6)
        analysis = analyze_shot(shot, make_bean(bean_id=1), [shot])
        types = [r.type for r in analysis.recommendations]
        assert types == [RecommendationType.GRIND_FINER, RecommendationType.INCREASE_YIELD]

        grind, yield_ = analysis.recommendations
        assert grind.priority == RecommendationPriority.HIGH
        assert grind.target_value == (25.0, 30.0)
        assert grind.context == {"currentTime": "22"}
        assert yield_.priority == RecommendationPriority.MEDIUM
        assert yield_.target_value == (1.5, 3.0)
        assert yield_.context == {"currentRatio": "1.20"}

    def test_long_shot_recommendations(self, make_shot, make_bean):
        shot = make_shot(shot_id=1, extraction_time_seconds=33, coffee_weight_out=60.0)
        types = [r.type for r in analyze_shot(shot, make_bean(bean_id=1), [shot]).recommendations]
        assert types == [RecommendationType.GRIND_COARSER, RecommendationType.DECREASE_YIELD]

    def test_ratio_inconsistency_with_history(self, make_shot, make_bean):
        shot = make_shot(shot_id=1, coffee_weight_out=54.0)
        history = [shot, make_shot(shot_id=2), make_shot(shot_id=3)]
        analysis = analyze_shot(shot, make_bean(bean_id=1), history)
        assert analysis.avg_brew_ratio == pytest.approx(7.0 / 3)
        rec = analysis.recommendations[-1]
        assert rec.type == RecommendationType.RATIO_INCONSISTENCY
        assert rec.priority == RecommendationPriority.LOW
        assert rec.target_value == pytest.approx((7.0 / 3 - 0.3, 7.0 / 3 + 0.3))
        assert not analysis.is_consistent_with_bean

    def test_no_ratio_inconsistency_without_history(self, make_shot, make_bean):
        shot = make_shot(shot_id=1)
        analysis = analyze_shot(shot, make_bean(bean_id=1), [])
        assert analysis.avg_brew_ratio == 0.0
        assert analysis.avg_extraction_time == 0.0
        assert analysis.brew_ratio_deviation == pytest.approx(2.0)
        assert analysis.recommendations == []

    def test_flags(self, make_shot, make_bean):
        shot = make_shot(shot_id=1)
        analysis = analyze_shot(shot, make_bean(bean_id=1), [shot])
        assert analysis.is_optimal_extraction
        assert analysis.is_typical_ratio
        assert analysis.is_consistent_with_bean


class TestImprovementPath:
    def _path(self, shot):
        return improvement_path(shot, score_shot(shot, []))

    def test_excellent_shot_has_no_path(self, make_shot):
        assert self._path(make_shot(taste_primary=TastePrimary.PERFECT)) is None

    def test_fast_shot_grinds_finer(self, make_shot):
        path = self._path(make_shot(extraction_time_seconds=22))
        assert path.action == ImprovementAction.GRIND_FINER
        assert path.points_needed == 10
        assert path.target_tier == QualityTier.EXCELLENT

    def test_slow_shot_grinds_coarser(self, make_shot):
        path = self._path(make_shot(extraction_time_seconds=33))
        assert path.action == ImprovementAction.GRIND_COARSER

    def test_in_window_without_taste_dials_in_by_taste(self, make_shot):
        path = self._path(make_shot(taste_primary=TastePrimary.SOUR))
        assert path.action == ImprovementAction.DIAL_IN_BASED_ON_TASTE

    def test_bad_ratio_adjusts_ratio(self, make_shot):
        path = self._path(make_shot(coffee_weight_out=20.0, taste_primary=TastePrimary.PERFECT))
        assert path.action == ImprovementAction.ADJUST_BREW_RATIO
        assert path.points_needed == 1

    def test_poor_shot_targets_good(self, make_shot):
        shot = make_shot(extraction_time_seconds=15, coffee_weight_out=20.0, taste_primary=TastePrimary.SOUR)
        path = self._path(shot)
        assert path.action == ImprovementAction.GRIND_FINER
        assert path.target_tier == QualityTier.GOOD
        assert path.points_needed == 41
