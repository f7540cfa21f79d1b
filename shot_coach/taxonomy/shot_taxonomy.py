"""
Shot taxonomy: the closed vocabularies used by the coaching core.

Two groups of enums:
  - Inputs the user reports: ``TastePrimary`` and ``TasteSecondary``.
  - Outputs the coaching core produces: ``AdjustmentDirection``,
    ``ConfidenceLevel``, ``QualityTier``, ``TrendDirection``,
    ``RecommendationType``, ``RecommendationPriority``, ``ImprovementAction``
    and ``MilestoneType``.

Enum *values* are lowercase slugs (CLI input, SQLite columns). The persisted
recommendation record stores enum *names* (``"FINER"``, ``"HIGH"``) so that
stored records stay stable if a slug is ever renamed.

This module has NO imports from any other ``shot_coach`` package.
"""

from enum import StrEnum


class TastePrimary(StrEnum):
    """Primary taste outcome reported for a shot."""

    SOUR = "sour"
    """Under-extracted, acidic. Strongest signal to grind finer."""

    PERFECT = "perfect"
    """Balanced extraction. Neutral for adjustment purposes."""

    BITTER = "bitter"
    """Over-extracted, harsh. Strongest signal to grind coarser."""


class TasteSecondary(StrEnum):
    """Optional intensity qualifier for the primary taste."""

    WEAK = "weak"
    """Low intensity, watery."""

    STRONG = "strong"
    """High intensity, concentrated."""


class AdjustmentDirection(StrEnum):
    """Direction of a grind adjustment recommendation."""

    FINER = "finer"
    """Grind finer to increase extraction (sour / fast shots)."""

    COARSER = "coarser"
    """Grind coarser to decrease extraction (bitter / slow shots)."""

    NO_CHANGE = "no_change"
    """Keep the current setting."""


class ConfidenceLevel(StrEnum):
    """Certainty attached to a grind recommendation."""

    HIGH = "high"
    """Strong timing evidence and informative taste, or no change needed."""

    MEDIUM = "medium"
    """Exactly one of strong timing evidence or informative taste."""

    LOW = "low"
    """Neither: small timing deviation and no informative taste."""


class QualityTier(StrEnum):
    """Coarse quality bucket derived from a 0-100 score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_WORK = "needs_work"


class TrendDirection(StrEnum):
    """Recent-vs-overall quality trend."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class RecommendationType(StrEnum):
    """Kinds of informational advice attached to a shot analysis."""

    GRIND_FINER = "grind_finer"
    GRIND_COARSER = "grind_coarser"
    INCREASE_YIELD = "increase_yield"
    DECREASE_YIELD = "decrease_yield"
    RATIO_INCONSISTENCY = "ratio_inconsistency"


class RecommendationPriority(StrEnum):
    """How urgently a piece of shot advice should be surfaced."""

    HIGH = "high"
    """Critical for shot quality."""

    MEDIUM = "medium"
    """Important for consistency."""

    LOW = "low"
    """Nice-to-have refinement."""


class ImprovementAction(StrEnum):
    """Single most impactful next step for a below-excellent shot."""

    GRIND_FINER = "grind_finer"
    GRIND_COARSER = "grind_coarser"
    ADJUST_BREW_RATIO = "adjust_brew_ratio"
    DIAL_IN_BASED_ON_TASTE = "dial_in_based_on_taste"


class MilestoneType(StrEnum):
    """Bean-scoped achievements detected in shot history."""

    FIRST_PERFECT = "first_perfect"
    """First shot of a bean to reach the perfect-score threshold."""

    DIALED_IN = "dialed_in"
    """Third consecutive good shot of a bean, for the first time in a row."""

    CONSISTENCY = "consistency"
    """A notable streak (3, 5, 10, 15, ...) of consecutive good shots."""
