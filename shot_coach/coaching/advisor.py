"""
Grind adjustment advisor.

Given the grind setting a shot was pulled at, its extraction time, optional
taste feedback and the grinder profile, recommend the setting for the next
shot.

Direction (taste dominates timing)
----------------------------------
    BITTER                       → COARSER
    SOUR                         → FINER
    PERFECT / no taste, t < 25   → FINER
    PERFECT / no taste, t > 30   → COARSER
    otherwise                    → NO_CHANGE

Step count from |time deviation| (seconds outside the 25-30 s window)
---------------------------------------------------------------------
    <= 3 → 1 step,  <= 6 → 2 steps,  > 6 → 3 steps

The current setting must lie on the grinder scale. It is snapped to the
nearest step, moved by the step count and clamped to the scale, so every
suggestion is a whole number of steps from ``scale_min``.
``adjustment_steps`` reports what is actually achievable, so a grinder
already at its coarsest setting yields COARSER with 0 steps.

Confidence
----------
    strong = |deviation| >= 3      taste = taste given and not PERFECT
    NO_CHANGE              → HIGH
    strong and taste       → HIGH
    strong or taste        → MEDIUM
    neither                → LOW
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from shot_coach.config import DEFAULT_THRESHOLDS, CoachingThresholds
from shot_coach.errors import ErrorKind, Ok, Result, failure, unexpected
from shot_coach.models.grinder import GrinderProfile
from shot_coach.models.recommendation import GrindAdjustmentRecommendation
from shot_coach.taxonomy.shot_taxonomy import (
    AdjustmentDirection,
    ConfidenceLevel,
    TastePrimary,
)

logger = logging.getLogger(__name__)


def calculate_adjustment(
    current_grind_setting: str,
    extraction_time_seconds: int,
    taste_feedback: Optional[TastePrimary],
    profile: Optional[GrinderProfile],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> Result[GrindAdjustmentRecommendation]:
    """Recommend the grind setting for the next shot.

    Args:
        current_grind_setting:   Setting the shot was pulled at (numeric string).
        extraction_time_seconds: Shot time in whole seconds.
        taste_feedback:          Primary taste, or ``None`` if not given.
        profile:                 Current grinder profile; ``None`` if unconfigured.
        thresholds:              Coaching thresholds.

    Returns:
        ``Ok(GrindAdjustmentRecommendation)``, or ``Err`` with kind
        CONFIGURATION (no profile), VALIDATION (non-numeric, non-finite or
        out-of-scale setting, negative time) or UNKNOWN (unexpected exception, cause attached).
    """
    if profile is None:
        return failure(ErrorKind.CONFIGURATION, "No grinder profile configured")

    try:
        current_value = float(current_grind_setting.strip())
    except (AttributeError, ValueError):
        return failure(
            ErrorKind.VALIDATION,
            f"Invalid grind setting: {current_grind_setting!r} is not a number",
        )

    if not math.isfinite(current_value):
        return failure(
            ErrorKind.VALIDATION,
            f"Invalid grind setting: {current_grind_setting!r} is not a finite number",
        )

    if not profile.is_in_range(current_value):
        return failure(
            ErrorKind.VALIDATION,
            f"Grind setting {current_grind_setting.strip()} is outside the grinder scale "
            f"{profile.scale_min}-{profile.scale_max}",
        )

    if extraction_time_seconds < 0:
        return failure(
            ErrorKind.VALIDATION,
            f"Extraction time cannot be negative, got {extraction_time_seconds}",
        )

    try:
        recommendation = _recommend(
            current_value, extraction_time_seconds, taste_feedback, profile, thresholds
        )
    except Exception as exc:
        return unexpected("Failed to calculate grind adjustment", exc)

    logger.debug(
        "Advice for %s @ %ds (%s): %s %s (%d steps, %s)",
        current_grind_setting,
        extraction_time_seconds,
        taste_feedback or "no taste",
        recommendation.adjustment_direction,
        recommendation.suggested_grind_setting,
        recommendation.adjustment_steps,
        recommendation.confidence,
    )
    return Ok(recommendation)


def time_deviation(
    extraction_time_seconds: int,
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> int:
    """Signed seconds outside the optimal window; 0 inside it."""
    if extraction_time_seconds < thresholds.optimal_time_min:
        return extraction_time_seconds - thresholds.optimal_time_min
    if extraction_time_seconds > thresholds.optimal_time_max:
        return extraction_time_seconds - thresholds.optimal_time_max
    return 0


def adjustment_steps_for(
    deviation: int,
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> int:
    """Nominal step count for a time deviation of ``deviation`` seconds."""
    magnitude = abs(deviation)
    if magnitude <= thresholds.minor_deviation_seconds:
        return thresholds.minor_adjustment_steps
    if magnitude <= thresholds.moderate_deviation_seconds:
        return thresholds.moderate_adjustment_steps
    return thresholds.major_adjustment_steps


def preselect_taste(
    extraction_time_seconds: Optional[int],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> Optional[TastePrimary]:
    """Likely taste for a shot time, used to pre-fill taste feedback prompts.

    ``None`` for missing or non-positive times.
    """
    if extraction_time_seconds is None or extraction_time_seconds <= 0:
        return None
    if extraction_time_seconds < thresholds.optimal_time_min:
        return TastePrimary.SOUR
    if extraction_time_seconds <= thresholds.optimal_time_max:
        return TastePrimary.PERFECT
    return TastePrimary.BITTER


# ── Internals ─────────────────────────────────────────────────────────────────


def _direction(
    extraction_time_seconds: int,
    taste_feedback: Optional[TastePrimary],
    thresholds: CoachingThresholds,
) -> AdjustmentDirection:
    if taste_feedback == TastePrimary.BITTER:
        return AdjustmentDirection.COARSER
    if taste_feedback == TastePrimary.SOUR:
        return AdjustmentDirection.FINER
    if extraction_time_seconds < thresholds.optimal_time_min:
        return AdjustmentDirection.FINER
    if extraction_time_seconds > thresholds.optimal_time_max:
        return AdjustmentDirection.COARSER
    return AdjustmentDirection.NO_CHANGE


def _confidence(
    deviation: int,
    taste_feedback: Optional[TastePrimary],
    thresholds: CoachingThresholds,
) -> ConfidenceLevel:
    strong = abs(deviation) >= thresholds.minor_deviation_seconds
    has_taste = taste_feedback is not None and taste_feedback != TastePrimary.PERFECT
    if strong and has_taste:
        return ConfidenceLevel.HIGH
    if strong or has_taste:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _recommend(
    current_value: float,
    extraction_time_seconds: int,
    taste_feedback: Optional[TastePrimary],
    profile: GrinderProfile,
    thresholds: CoachingThresholds,
) -> GrindAdjustmentRecommendation:
    deviation = time_deviation(extraction_time_seconds, thresholds)
    direction = _direction(extraction_time_seconds, taste_feedback, thresholds)
    current_text = profile.format_grind_value(current_value)

    # Positions are whole steps from scale_min.
    base_steps = profile.steps_from_min(current_value)

    if direction == AdjustmentDirection.NO_CHANGE:
        return GrindAdjustmentRecommendation(
            current_grind_setting=current_text,
            suggested_grind_setting=profile.format_grind_value(
                profile.round_to_nearest_step(current_value)
            ),
            adjustment_direction=direction,
            adjustment_steps=0,
            extraction_time_deviation=deviation,
            taste_issue=taste_feedback,
            confidence=ConfidenceLevel.HIGH,
        )

    requested = adjustment_steps_for(deviation, thresholds)
    if direction == AdjustmentDirection.FINER:
        target_steps = max(0, base_steps - requested)
    else:
        target_steps = min(profile.max_steps, base_steps + requested)
    new_value = profile.scale_min + target_steps * profile.step_size

    return GrindAdjustmentRecommendation(
        current_grind_setting=current_text,
        suggested_grind_setting=profile.format_grind_value(new_value),
        adjustment_direction=direction,
        adjustment_steps=abs(target_steps - base_steps),
        extraction_time_deviation=deviation,
        taste_issue=taste_feedback,
        confidence=_confidence(deviation, taste_feedback, thresholds),
    )
