"""
Tests for shot_coach/coaching/advisor.py.

What we test
------------
calculate_adjustment():
  - Taste dominates timing (bitter → coarser even on a fast shot).
  - Step count scales with the deviation outside the 25-30 s window.
  - Suggestions are clamped to the grinder scale; steps report what is
    achievable (0 when already at the limit).
  - Suggestions are whole steps from scale_min, even from an off-grid
    setting; settings outside the scale are rejected.
  - Confidence: HIGH / MEDIUM / LOW combinations, HIGH for NO_CHANGE.
  - Grind values are formatted with the profile's precision.
  - Error kinds: CONFIGURATION, VALIDATION (including nan / inf settings),
    in that precedence.

time_deviation(), adjustment_steps_for(), preselect_taste():
  - Window boundaries are inclusive.
"""

from __future__ import annotations

import pytest

from shot_coach.coaching.advisor import (
    adjustment_steps_for,
    calculate_adjustment,
    preselect_taste,
    time_deviation,
)
from shot_coach.config import CoachingThresholds
from shot_coach.errors import CoachFailure, ErrorKind
from shot_coach.models.grinder import GrinderProfile
from shot_coach.taxonomy.shot_taxonomy import (
    AdjustmentDirection,
    ConfidenceLevel,
    TastePrimary,
)


def _advise(grind="15.0", seconds=27, taste=None, profile=None):
    profile = profile or GrinderProfile(scale_min=0, scale_max=30, step_size=0.5)
    return calculate_adjustment(grind, seconds, taste, profile).unwrap()


class TestDirection:
    def test_sour_fast_shot_goes_finer(self):
        rec = _advise(seconds=22, taste=TastePrimary.SOUR)
        assert rec.adjustment_direction == AdjustmentDirection.FINER
        assert rec.current_grind_setting == "15.0"
        assert rec.suggested_grind_setting == "14.5"
        assert rec.adjustment_steps == 1
        assert rec.extraction_time_deviation == -3
        assert rec.taste_issue == TastePrimary.SOUR
        assert rec.confidence == ConfidenceLevel.HIGH

    def test_bitter_wins_over_fast_time(self):
        rec = _advise(seconds=20, taste=TastePrimary.BITTER)
        assert rec.adjustment_direction == AdjustmentDirection.COARSER
        assert rec.suggested_grind_setting == "16.0"
        assert rec.adjustment_steps == 2

    def test_sour_inside_window_still_goes_finer(self):
        rec = _advise(seconds=27, taste=TastePrimary.SOUR)
        assert rec.adjustment_direction == AdjustmentDirection.FINER
        assert rec.extraction_time_deviation == 0
        assert rec.adjustment_steps == 1
        assert rec.confidence == ConfidenceLevel.MEDIUM

    def test_no_taste_fast_goes_finer(self):
        rec = _advise(seconds=24)
        assert rec.adjustment_direction == AdjustmentDirection.FINER
        assert rec.suggested_grind_setting == "14.5"

    def test_perfect_slow_goes_coarser(self):
        rec = _advise(seconds=33, taste=TastePrimary.PERFECT)
        assert rec.adjustment_direction == AdjustmentDirection.COARSER
        assert rec.suggested_grind_setting == "15.5"

    @pytest.mark.parametrize("seconds", [25, 27, 30])
    @pytest.mark.parametrize("taste", [None, TastePrimary.PERFECT])
    def test_in_window_without_issue_is_no_change(self, seconds, taste):
        rec = _advise(seconds=seconds, taste=taste)
        assert rec.adjustment_direction == AdjustmentDirection.NO_CHANGE
        assert rec.adjustment_steps == 0
        assert rec.suggested_grind_setting == rec.current_grind_setting == "15.0"
        assert rec.confidence == ConfidenceLevel.HIGH
        assert not rec.has_adjustment


class TestStepScaling:
    @pytest.mark.parametrize(
        "seconds, expected",
        [(22, "14.5"), (21, "14.0"), (19, "14.0"), (18, "13.5"), (10, "13.5")],
    )
    def test_finer_steps(self, seconds, expected):
        assert _advise(seconds=seconds).suggested_grind_setting == expected

    @pytest.mark.parametrize(
        "seconds, expected",
        [(31, "15.5"), (33, "15.5"), (34, "16.0"), (36, "16.0"), (37, "16.5")],
    )
    def test_coarser_steps(self, seconds, expected):
        assert _advise(seconds=seconds).suggested_grind_setting == expected


class TestClamping:
    def test_at_max_yields_zero_steps(self):
        profile = GrinderProfile(scale_min=0, scale_max=20, step_size=0.5)
        rec = _advise(grind="20.0", seconds=35, taste=TastePrimary.BITTER, profile=profile)
        assert rec.adjustment_direction == AdjustmentDirection.COARSER
        assert rec.suggested_grind_setting == "20.0"
        assert rec.adjustment_steps == 0
        assert "already at its limit" in rec.explanation

    def test_at_min_yields_zero_steps(self, sample_profile):
        rec = _advise(grind="1.0", seconds=18, taste=TastePrimary.SOUR, profile=sample_profile)
        assert rec.adjustment_direction == AdjustmentDirection.FINER
        assert rec.suggested_grind_setting == "1.0"
        assert rec.adjustment_steps == 0

    def test_partial_clamp_reports_achieved_steps(self, sample_profile):
        # 3 steps requested (1.5), only 0.5 available above scale_min.
        rec = _advise(grind="1.5", seconds=15, profile=sample_profile)
        assert rec.suggested_grind_setting == "1.0"
        assert rec.adjustment_steps == 1

    def test_suggestion_always_inside_scale(self, sample_profile):
        for seconds in (5, 15, 22, 33, 45, 90):
            for grind in ("1.0", "5.5", "10.0"):
                rec = _advise(grind=grind, seconds=seconds, profile=sample_profile)
                assert 1.0 <= float(rec.suggested_grind_setting) <= 10.0
                assert rec.adjustment_steps >= 0


class TestStepGrid:
    @pytest.fixture
    def profile(self):
        return GrinderProfile(scale_min=10, scale_max=20, step_size=0.5)

    def test_off_grid_setting_moves_to_grid(self, profile):
        rec = _advise(grind="15.3", seconds=22, taste=TastePrimary.SOUR, profile=profile)
        assert rec.current_grind_setting == "15.3"
        assert rec.suggested_grind_setting == "15.0"
        assert rec.adjustment_steps == 1

    def test_off_grid_no_change_snaps_to_nearest_step(self, profile):
        rec = _advise(grind="15.3", seconds=27, profile=profile)
        assert rec.adjustment_direction == AdjustmentDirection.NO_CHANGE
        assert rec.suggested_grind_setting == "15.5"

    def test_partial_last_step_stays_on_grid(self):
        profile = GrinderProfile(scale_min=0, scale_max=10, step_size=3.0)
        rec = _advise(grind="9", seconds=40, profile=profile)
        assert rec.suggested_grind_setting == "9"
        assert rec.adjustment_steps == 0

    def test_every_suggestion_is_a_grid_value(self, profile):
        grid = {profile.format_grind_value(v) for v in profile.valid_grind_values()}
        for grind in ("10", "10.2", "13.7", "15.3", "19.9", "20"):
            for seconds in (10, 22, 27, 33, 45):
                for taste in (None, TastePrimary.SOUR, TastePrimary.BITTER):
                    rec = _advise(grind=grind, seconds=seconds, taste=taste, profile=profile)
                    assert rec.suggested_grind_setting in grid
                    assert 0 <= rec.adjustment_steps <= 3

    @pytest.mark.parametrize(
        "grind, seconds, taste",
        [("25", 22, TastePrimary.SOUR), ("25", 27, None), ("9.5", 35, None)],
    )
    def test_setting_outside_scale_is_validation_error(self, profile, grind, seconds, taste):
        result = calculate_adjustment(grind, seconds, taste, profile)
        assert result.kind == ErrorKind.VALIDATION
        assert "outside the grinder scale 10-20" in result.error.message


class TestConfidence:
    def test_strong_deviation_without_taste_is_medium(self):
        assert _advise(seconds=40).confidence == ConfidenceLevel.MEDIUM

    def test_small_deviation_without_taste_is_low(self):
        assert _advise(seconds=24).confidence == ConfidenceLevel.LOW

    def test_perfect_taste_does_not_count_as_taste_issue(self):
        assert _advise(seconds=31, taste=TastePrimary.PERFECT).confidence == ConfidenceLevel.LOW

    def test_taste_with_small_deviation_is_medium(self):
        assert _advise(seconds=31, taste=TastePrimary.BITTER).confidence == ConfidenceLevel.MEDIUM


class TestFormatting:
    def test_whole_step_profile_has_no_decimals(self):
        profile = GrinderProfile(scale_min=0, scale_max=30, step_size=1.0)
        rec = _advise(grind="15", seconds=22, taste=TastePrimary.SOUR, profile=profile)
        assert rec.current_grind_setting == "15"
        assert rec.suggested_grind_setting == "14"

    def test_fine_step_profile_has_two_decimals(self):
        profile = GrinderProfile(scale_min=0, scale_max=30, step_size=0.05)
        rec = _advise(grind="15", seconds=22, taste=TastePrimary.SOUR, profile=profile)
        assert rec.current_grind_setting == "15.00"
        assert rec.suggested_grind_setting == "14.95"

    def test_quarter_step_rounds_half_up_to_one_decimal(self):
        profile = GrinderProfile(scale_min=0, scale_max=30, step_size=0.25)
        rec = _advise(grind="15", seconds=22, taste=TastePrimary.SOUR, profile=profile)
        assert rec.current_grind_setting == "15.0"
        assert rec.suggested_grind_setting == "14.8"

    def test_whitespace_around_setting_is_accepted(self):
        assert _advise(grind=" 15.0 ", seconds=22).suggested_grind_setting == "14.5"

    def test_explanation_mentions_deviation_and_taste(self):
        rec = _advise(seconds=22, taste=TastePrimary.SOUR)
        assert rec.explanation == "Grind finer by 1 step (3s fast, tasted sour)"


class TestErrors:
    def test_missing_profile_is_configuration_error(self):
        result = calculate_adjustment("15.0", 27, None, None)
        assert not result.is_ok
        assert result.kind == ErrorKind.CONFIGURATION

    def test_non_numeric_setting_is_validation_error(self):
        result = calculate_adjustment("abc", 27, None, GrinderProfile(scale_min=0, scale_max=30))
        assert result.kind == ErrorKind.VALIDATION
        assert "abc" in result.error.message

    @pytest.mark.parametrize("grind", ["nan", "inf", "-inf", "1e400"])
    def test_non_finite_setting_is_validation_error(self, grind):
        result = calculate_adjustment(grind, 22, None, GrinderProfile(scale_min=0, scale_max=30))
        assert result.kind == ErrorKind.VALIDATION
        assert "finite" in result.error.message

    def test_negative_time_is_validation_error(self):
        result = calculate_adjustment("15.0", -1, None, GrinderProfile(scale_min=0, scale_max=30))
        assert result.kind == ErrorKind.VALIDATION

    def test_missing_profile_checked_before_setting(self):
        assert calculate_adjustment("abc", -5, None, None).kind == ErrorKind.CONFIGURATION

    def test_unwrap_raises_coach_failure(self):
        with pytest.raises(CoachFailure) as excinfo:
            calculate_adjustment("15.0", 27, None, None).unwrap()
        assert excinfo.value.error.kind == ErrorKind.CONFIGURATION


class TestHelpers:
    @pytest.mark.parametrize(
        "seconds, expected", [(10, -15), (24, -1), (25, 0), (30, 0), (31, 1), (45, 15)]
    )
    def test_time_deviation(self, seconds, expected):
        assert time_deviation(seconds) == expected

    @pytest.mark.parametrize(
        "deviation, expected", [(0, 1), (3, 1), (-3, 1), (4, 2), (6, 2), (-7, 3), (20, 3)]
    )
    def test_adjustment_steps_for(self, deviation, expected):
        assert adjustment_steps_for(deviation) == expected

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (None, None),
            (0, None),
            (-3, None),
            (20, TastePrimary.SOUR),
            (25, TastePrimary.PERFECT),
            (30, TastePrimary.PERFECT),
            (31, TastePrimary.BITTER),
        ],
    )
    def test_preselect_taste(self, seconds, expected):
        assert preselect_taste(seconds) == expected

    def test_custom_window_is_respected(self):
        thresholds = CoachingThresholds(optimal_time_min=22, optimal_time_max=28)
        profile = GrinderProfile(scale_min=0, scale_max=30, step_size=0.5)
        rec = calculate_adjustment("15.0", 23, None, profile, thresholds).unwrap()
        assert rec.adjustment_direction == AdjustmentDirection.NO_CHANGE
