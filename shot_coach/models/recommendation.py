"""
Grind recommendation models.

``GrindAdjustmentRecommendation`` is the advisor's one-shot answer and is
never stored. ``PersistentRecommendation`` is the per-bean "next shot"
guidance kept across sessions by the recommendation store.

Persisted record format
-----------------------
``PersistentRecommendation.to_record_json()`` writes a JSON object with
camelCase keys::

    {"beanId": 3, "suggestedGrindSetting": "14.5", "adjustmentDirection": "FINER",
     "reason": "Last shot was sour (22s)", "recommendedDose": 18.0,
     "targetExtractionTimeMin": 25, "targetExtractionTimeMax": 30,
     "timestamp": "2026-10-18T07:42:10", "wasFollowed": false,
     "basedOnTaste": true, "confidence": "HIGH"}

Enum fields are stored by NAME. ``timestamp`` is an ISO-8601 local
date-time. ``RECORD_VERSION`` is stored next to the JSON by the repository
and bumped whenever the key set changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from shot_coach.taxonomy.shot_taxonomy import (
    AdjustmentDirection,
    ConfidenceLevel,
    TastePrimary,
)

RECORD_VERSION = 1
RECENT_DAYS = 7

_ADJUSTMENT_DESCRIPTIONS: dict[AdjustmentDirection, str] = {
    AdjustmentDirection.FINER: "Grind finer",
    AdjustmentDirection.COARSER: "Grind coarser",
    AdjustmentDirection.NO_CHANGE: "No change needed",
}

_CONFIDENCE_DESCRIPTIONS: dict[ConfidenceLevel, str] = {
    ConfidenceLevel.HIGH: "High confidence",
    ConfidenceLevel.MEDIUM: "Medium confidence",
    ConfidenceLevel.LOW: "Low confidence",
}


@dataclass(frozen=True)
class GrindAdjustmentRecommendation:
    """Advisor output for a single shot.

    Attributes:
        current_grind_setting: Current setting, formatted for the profile.
        suggested_grind_setting: Suggested setting, formatted; always inside
            the profile's scale.
        adjustment_direction: FINER, COARSER or NO_CHANGE.
        adjustment_steps: Steps actually achievable after clamping (>= 0).
        extraction_time_deviation: Signed seconds outside the optimal window
            (0 inside it).
        taste_issue: Taste that drove the decision, if any.
        confidence: HIGH, MEDIUM or LOW.
    """

    current_grind_setting: str
    suggested_grind_setting: str
    adjustment_direction: AdjustmentDirection
    adjustment_steps: int
    extraction_time_deviation: int
    taste_issue: Optional[TastePrimary]
    confidence: ConfidenceLevel

    @property
    def has_adjustment(self) -> bool:
        return self.adjustment_direction != AdjustmentDirection.NO_CHANGE

    @property
    def explanation(self) -> str:
        """One-line human summary, e.g. ``"Grind finer by 1 step (3s fast, tasted sour)"``."""
        if not self.has_adjustment:
            return "No change needed: extraction time is in the optimal window"

        action = _ADJUSTMENT_DESCRIPTIONS[self.adjustment_direction]
        if self.adjustment_steps == 0:
            head = f"{action}, but the grinder is already at its limit"
        else:
            plural = "" if self.adjustment_steps == 1 else "s"
            head = f"{action} by {self.adjustment_steps} step{plural}"

        details: list[str] = []
        if self.extraction_time_deviation < 0:
            details.append(f"{-self.extraction_time_deviation}s fast")
        elif self.extraction_time_deviation > 0:
            details.append(f"{self.extraction_time_deviation}s slow")
        if self.taste_issue is not None and self.taste_issue != TastePrimary.PERFECT:
            details.append(f"tasted {self.taste_issue.value}")
        return f"{head} ({', '.join(details)})" if details else head


class PersistentRecommendation(BaseModel):
    """The live next-shot recommendation for one bean.

    Attributes:
        bean_id: Bean the recommendation applies to (store key).
        suggested_grind_setting: Formatted grind setting to use next.
        adjustment_direction: Direction relative to the triggering shot.
        reason: Human-readable explanation, e.g. ``"Last shot was sour (22s)"``.
        recommended_dose: Dose in grams for the next shot.
        target_extraction_time_min: Lower bound of the target window (s).
        target_extraction_time_max: Upper bound of the target window (s).
        timestamp: When the recommendation was first created.
        was_followed: Whether the user applied it.
        based_on_taste: Whether taste feedback contributed.
        confidence: Confidence carried over from the advisor.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    bean_id: int
    suggested_grind_setting: str
    adjustment_direction: AdjustmentDirection
    reason: str
    recommended_dose: float
    target_extraction_time_min: int = 25
    target_extraction_time_max: int = 30
    timestamp: datetime
    was_followed: bool = False
    based_on_taste: bool
    confidence: ConfidenceLevel

    @field_validator("adjustment_direction", mode="before")
    @classmethod
    def parse_direction(cls, v: Any) -> Any:
        if isinstance(v, str) and v in AdjustmentDirection.__members__:
            return AdjustmentDirection[v].value
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def parse_confidence(cls, v: Any) -> Any:
        if isinstance(v, str) and v in ConfidenceLevel.__members__:
            return ConfidenceLevel[v].value
        return v

    @model_validator(mode="after")
    def validate_target_window(self) -> "PersistentRecommendation":
        if self.target_extraction_time_min > self.target_extraction_time_max:
            raise ValueError(
                f"targetExtractionTimeMin ({self.target_extraction_time_min}) must be "
                f"<= targetExtractionTimeMax ({self.target_extraction_time_max})."
            )
        return self

    @field_serializer("adjustment_direction", "confidence")
    def serialize_enum_name(self, v: AdjustmentDirection | ConfidenceLevel) -> str:
        return v.name

    # ── Display helpers ──────────────────────────────────────────────────────

    @property
    def has_adjustment(self) -> bool:
        return self.adjustment_direction != AdjustmentDirection.NO_CHANGE

    @property
    def adjustment_description(self) -> str:
        return _ADJUSTMENT_DESCRIPTIONS[self.adjustment_direction]

    @property
    def formatted_target_time(self) -> str:
        return f"{self.target_extraction_time_min}-{self.target_extraction_time_max}s"

    @property
    def confidence_description(self) -> str:
        return _CONFIDENCE_DESCRIPTIONS[self.confidence]

    def is_recent(self, now: Optional[datetime] = None, days: int = RECENT_DAYS) -> bool:
        """True if created less than ``days`` days before ``now``."""
        now = now or datetime.now()
        return self.timestamp > now - timedelta(days=days)

    def mark_followed(self) -> "PersistentRecommendation":
        """Return a copy with ``was_followed`` set."""
        return self.model_copy(update={"was_followed": True})

    # ── Record (de)serialization ─────────────────────────────────────────────

    def to_record_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_record_json(cls, payload: str) -> "PersistentRecommendation":
        """Parse a stored record.

        Raises:
            pydantic.ValidationError: If the payload is malformed or incomplete.
        """
        return cls.model_validate_json(payload)
