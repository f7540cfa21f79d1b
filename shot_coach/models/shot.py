"""
Shot and bean models.

``Shot`` is the single brew record every coaching component reads. It is
frozen: the only mutation the coaching core performs is a taste-feedback
update, expressed as ``shot.with_taste(...)`` returning a new instance.

Two layers of validation:
  - Model invariants (pydantic validators, raise ``ValueError``): weights
    strictly positive, extraction time non-negative. The grind setting is
    free text here; the advisor reports a non-numeric one as VALIDATION.
  - Recording limits (``validation_errors()``, returns messages): the ranges
    a user-entered shot must satisfy before it is persisted. The catalog
    turns a non-empty list into a VALIDATION failure.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from shot_coach.taxonomy.shot_taxonomy import TastePrimary, TasteSecondary

# ── Recording limits ──────────────────────────────────────────────────────────

MIN_WEIGHT_G = 0.1
MAX_WEIGHT_IN_G = 50.0
MAX_WEIGHT_OUT_G = 100.0
MIN_EXTRACTION_SECONDS = 5
MAX_EXTRACTION_SECONDS = 120
MAX_GRINDER_SETTING_LENGTH = 50
MAX_NOTES_LENGTH = 500
MAX_BEAN_NAME_LENGTH = 100
MAX_ROAST_AGE_DAYS = 365
FRESH_WINDOW_DAYS = (4, 21)


class Shot(BaseModel):
    """One espresso shot.

    Attributes:
        shot_id: Auto-assigned DB PK; ``None`` before insertion.
        bean_id: FK to ``beans``.
        coffee_weight_in: Dose in grams (> 0).
        coffee_weight_out: Yield in grams (> 0).
        extraction_time_seconds: Whole seconds, >= 0.
        grinder_setting: Grind setting as entered, normally a numeric string.
        timestamp: When the shot was pulled (naive local time).
        taste_primary: Optional primary taste feedback.
        taste_secondary: Optional intensity qualifier.
        notes: Free-form notes.
    """

    model_config = ConfigDict(frozen=True)

    shot_id: Optional[int] = None
    bean_id: int
    coffee_weight_in: float
    coffee_weight_out: float
    extraction_time_seconds: int
    grinder_setting: str
    timestamp: datetime
    taste_primary: Optional[TastePrimary] = None
    taste_secondary: Optional[TasteSecondary] = None
    notes: str = ""

    @field_validator("coffee_weight_in", "coffee_weight_out")
    @classmethod
    def validate_weight_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Coffee weights must be > 0 g, got {v}.")
        return v

    @field_validator("extraction_time_seconds")
    @classmethod
    def validate_time_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"extraction_time_seconds must be >= 0, got {v}.")
        return v

    @property
    def brew_ratio(self) -> float:
        """Yield divided by dose, rounded to 2 decimals."""
        return round(self.coffee_weight_out / self.coffee_weight_in, 2)

    @property
    def formatted_brew_ratio(self) -> str:
        return f"1:{self.brew_ratio:.1f}"

    @property
    def formatted_extraction_time(self) -> str:
        """``"27s"`` under a minute, ``"MM:SS"`` otherwise."""
        total = max(0, self.extraction_time_seconds)
        if total < 60:
            return f"{total}s"
        return f"{total // 60:02d}:{total % 60:02d}"

    def with_taste(
        self,
        taste_primary: Optional[TastePrimary],
        taste_secondary: Optional[TasteSecondary] = None,
    ) -> "Shot":
        """Return a copy with the taste feedback replaced."""
        return self.model_copy(
            update={"taste_primary": taste_primary, "taste_secondary": taste_secondary}
        )

    def validation_errors(self) -> list[str]:
        """Return human-readable recording-limit violations (empty when valid)."""
        errors: list[str] = []
        if self.coffee_weight_in < MIN_WEIGHT_G:
            errors.append(f"Coffee input weight must be at least {MIN_WEIGHT_G}g")
        if self.coffee_weight_in > MAX_WEIGHT_IN_G:
            errors.append(f"Coffee input weight cannot exceed {MAX_WEIGHT_IN_G}g")
        if self.coffee_weight_out < MIN_WEIGHT_G:
            errors.append(f"Coffee output weight must be at least {MIN_WEIGHT_G}g")
        if self.coffee_weight_out > MAX_WEIGHT_OUT_G:
            errors.append(f"Coffee output weight cannot exceed {MAX_WEIGHT_OUT_G}g")
        if self.extraction_time_seconds < MIN_EXTRACTION_SECONDS:
            errors.append(f"Extraction time must be at least {MIN_EXTRACTION_SECONDS} seconds")
        if self.extraction_time_seconds > MAX_EXTRACTION_SECONDS:
            errors.append(f"Extraction time cannot exceed {MAX_EXTRACTION_SECONDS} seconds")
        if not self.grinder_setting.strip():
            errors.append("Grinder setting cannot be empty")
        elif len(self.grinder_setting) > MAX_GRINDER_SETTING_LENGTH:
            errors.append(
                f"Grinder setting cannot exceed {MAX_GRINDER_SETTING_LENGTH} characters"
            )
        if self.bean_id <= 0:
            errors.append("Bean ID must be a positive integer")
        if len(self.notes) > MAX_NOTES_LENGTH:
            errors.append(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
        return errors


class Bean(BaseModel):
    """A coffee bean (one bag / roast).

    Attributes:
        bean_id: Auto-assigned DB PK; ``None`` before insertion.
        name: Display name.
        roast_date: Date the beans were roasted.
        notes: Free-form notes.
        is_active: Inactive beans are hidden from default listings.
        last_grinder_setting: Grind setting of the most recent shot, if any.
    """

    model_config = ConfigDict(frozen=True)

    bean_id: Optional[int] = None
    name: str
    roast_date: date
    notes: str = ""
    is_active: bool = True
    last_grinder_setting: Optional[str] = None

    def days_since_roast(self, today: Optional[date] = None) -> int:
        """Whole days between ``roast_date`` and ``today`` (defaults to today)."""
        today = today or date.today()
        return (today - self.roast_date).days

    def is_fresh(self, today: Optional[date] = None) -> bool:
        """True inside the usual 4-21 day espresso resting window."""
        low, high = FRESH_WINDOW_DAYS
        return low <= self.days_since_roast(today) <= high

    def validation_errors(self, today: Optional[date] = None) -> list[str]:
        """Return human-readable violations (empty when valid)."""
        today = today or date.today()
        errors: list[str] = []
        if not self.name.strip():
            errors.append("Bean name cannot be empty")
        elif len(self.name) > MAX_BEAN_NAME_LENGTH:
            errors.append(f"Bean name cannot exceed {MAX_BEAN_NAME_LENGTH} characters")
        if self.roast_date > today:
            errors.append("Roast date cannot be in the future")
        elif (today - self.roast_date).days > MAX_ROAST_AGE_DAYS:
            errors.append(f"Roast date cannot be more than {MAX_ROAST_AGE_DAYS} days ago")
        if len(self.notes) > MAX_NOTES_LENGTH:
            errors.append(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
        return errors
