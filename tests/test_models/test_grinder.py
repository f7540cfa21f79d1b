"""
Tests for shot_coach/models/grinder.py.

What we test
------------
GrinderProfile:
  - Construction invariants (min < max, 0 < step <= range).
  - validation_errors() sanity limits for user-entered profiles.
  - format_grind_value(): precision from step size, half-up rounding.
  - max_steps, steps_from_min(), is_in_range(), round_to_nearest_step(),
    valid_grind_values(); snapped values stay on the step grid.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from shot_coach.models.grinder import GrinderProfile


class TestConstruction:
    def test_defaults(self):
        profile = GrinderProfile(scale_min=1, scale_max=10)
        assert profile.step_size == pytest.approx(0.5)
        assert profile.range_size == 9

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"scale_min": 10, "scale_max": 10},
            {"scale_min": 10, "scale_max": 1},
            {"scale_min": 1, "scale_max": 10, "step_size": 0},
            {"scale_min": 1, "scale_max": 10, "step_size": -0.5},
            {"scale_min": 1, "scale_max": 4, "step_size": 5},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            GrinderProfile(**kwargs)

    def test_frozen(self, sample_profile):
        with pytest.raises(ValidationError):
            sample_profile.step_size = 1.0


class TestValidationErrors:
    def test_sensible_profile(self, sample_profile):
        assert sample_profile.validation_errors() == []

    @pytest.mark.parametrize(
        "kwargs, fragment",
        [
            ({"scale_min": -5, "scale_max": 10}, "cannot be negative"),
            ({"scale_min": 950, "scale_max": 1001}, "cannot exceed 1000"),
            ({"scale_min": 1, "scale_max": 3, "step_size": 0.5}, "at least 3"),
            ({"scale_min": 0, "scale_max": 150}, "cannot exceed 100"),
            ({"scale_min": 0, "scale_max": 10, "step_size": 0.001}, "at least 0.01"),
            ({"scale_min": 0, "scale_max": 50, "step_size": 12}, "cannot exceed 10.0"),
        ],
    )
    def test_limits(self, kwargs, fragment):
        errors = GrinderProfile(**kwargs).validation_errors()
        assert any(fragment in e for e in errors), errors


class TestFormatting:
    @pytest.mark.parametrize(
        "step, value, expected",
        [
            (1.0, 15.0, "15"),
            (2.0, 14.5, "15"),
            (0.5, 14.5, "14.5"),
            (0.5, 15.0, "15.0"),
            (0.1, 5.55, "5.6"),
            (0.1, 5.25, "5.3"),
            (0.05, 14.95, "14.95"),
            (0.01, 3.005, "3.01"),
        ],
    )
    def test_format_grind_value(self, step, value, expected):
        profile = GrinderProfile(scale_min=0, scale_max=30, step_size=step)
        assert profile.format_grind_value(value) == expected


class TestScaleHelpers:
    def test_max_steps(self, sample_profile):
        assert sample_profile.max_steps == 18
        assert GrinderProfile(scale_min=0, scale_max=10, step_size=3.0).max_steps == 3

    def test_steps_from_min_stays_inside_scale(self, sample_profile):
        assert sample_profile.steps_from_min(5.3) == 9
        assert sample_profile.steps_from_min(-4) == 0
        assert sample_profile.steps_from_min(42) == 18

    def test_is_in_range(self, sample_profile):
        assert sample_profile.is_in_range(1)
        assert sample_profile.is_in_range(10)
        assert not sample_profile.is_in_range(10.5)

    def test_round_to_nearest_step(self, sample_profile):
        assert sample_profile.round_to_nearest_step(5.3) == pytest.approx(5.5)
        assert sample_profile.round_to_nearest_step(5.2) == pytest.approx(5.0)
        assert sample_profile.round_to_nearest_step(42) == pytest.approx(10.0)

    def test_round_to_nearest_step_stays_on_grid_at_max(self):
        profile = GrinderProfile(scale_min=0, scale_max=10, step_size=3.0)
        assert profile.round_to_nearest_step(10) == pytest.approx(9.0)

    def test_valid_grind_values(self):
        profile = GrinderProfile(scale_min=1, scale_max=4, step_size=0.5)
        assert profile.valid_grind_values() == pytest.approx([1.0, 1.5, 2.0, 2.5, 3.0, 3.5, 4.0])

    def test_valid_grind_values_partial_last_step(self):
        profile = GrinderProfile(scale_min=0, scale_max=10, step_size=3.0)
        assert profile.valid_grind_values() == pytest.approx([0.0, 3.0, 6.0, 9.0])
