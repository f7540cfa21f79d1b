"""
Grinder profile: the numeric scale a grinder exposes.

Invariants enforced on construction: ``scale_min < scale_max`` and
``0 < step_size <= scale_max - scale_min``. Looser sanity limits for
user-entered profiles (``validation_errors()``) are checked by ``set-grinder``
before a profile is stored.

Formatting rule for grind values (``format_grind_value``):
  step >= 1    →  0 decimals  ("15")
  step >= 0.1  →  1 decimal   ("14.5")
  otherwise    →  2 decimals  ("14.25")
Rounding is half-up on the decimal representation, so 5.55 at step 0.1
formats as ``"5.6"``.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

MIN_STEP_SIZE = 0.01
MAX_STEP_SIZE = 10.0
MAX_SCALE_VALUE = 1000
MIN_RANGE = 3
MAX_RANGE = 100


class GrinderProfile(BaseModel):
    """Scale bounds and step size of the user's grinder.

    Attributes:
        profile_id: Auto-assigned DB PK; ``None`` before insertion.
        scale_min: Finest setting on the dial.
        scale_max: Coarsest setting on the dial.
        step_size: Smallest adjustment the dial supports.
    """

    model_config = ConfigDict(frozen=True)

    profile_id: Optional[int] = None
    scale_min: int
    scale_max: int
    step_size: float = 0.5

    @model_validator(mode="after")
    def validate_scale(self) -> "GrinderProfile":
        if self.scale_min >= self.scale_max:
            raise ValueError(
                f"scale_min ({self.scale_min}) must be < scale_max ({self.scale_max})."
            )
        if self.step_size <= 0:
            raise ValueError(f"step_size must be > 0, got {self.step_size}.")
        if self.step_size > self.range_size:
            raise ValueError(
                f"step_size ({self.step_size}) cannot exceed the scale range ({self.range_size})."
            )
        return self

    @property
    def range_size(self) -> int:
        return self.scale_max - self.scale_min

    @property
    def decimal_places(self) -> int:
        if self.step_size >= 1.0:
            return 0
        if self.step_size >= 0.1:
            return 1
        return 2

    def validation_errors(self) -> list[str]:
        """Sanity limits for a user-entered profile (empty when acceptable)."""
        errors: list[str] = []
        if self.scale_min < 0:
            errors.append("Minimum scale value cannot be negative")
        if self.scale_max > MAX_SCALE_VALUE:
            errors.append(f"Maximum scale value cannot exceed {MAX_SCALE_VALUE}")
        if self.range_size < MIN_RANGE:
            errors.append(f"Scale range must be at least {MIN_RANGE}")
        if self.range_size > MAX_RANGE:
            errors.append(f"Scale range cannot exceed {MAX_RANGE}")
        if self.step_size < MIN_STEP_SIZE:
            errors.append(f"Step size must be at least {MIN_STEP_SIZE}")
        if self.step_size > MAX_STEP_SIZE:
            errors.append(f"Step size cannot exceed {MAX_STEP_SIZE}")
        return errors

    def is_in_range(self, value: float) -> bool:
        return self.scale_min <= value <= self.scale_max

    @property
    def max_steps(self) -> int:
        """Whole steps that fit between ``scale_min`` and ``scale_max``."""
        return int(math.floor(self.range_size / self.step_size + 1e-9))

    def steps_from_min(self, value: float) -> int:
        """Nearest whole step offset of ``value`` from ``scale_min``, inside the scale."""
        steps = round((value - self.scale_min) / self.step_size)
        return max(0, min(self.max_steps, steps))

    def round_to_nearest_step(self, value: float) -> float:
        """Snap ``value`` to the nearest grid value inside the scale."""
        return self.scale_min + self.steps_from_min(value) * self.step_size

    def valid_grind_values(self) -> list[float]:
        """Every reachable setting from ``scale_min`` to ``scale_max`` inclusive."""
        return [self.scale_min + i * self.step_size for i in range(self.max_steps + 1)]

    def format_grind_value(self, value: float) -> str:
        """Format ``value`` with the precision implied by ``step_size``."""
        quantum = Decimal(1).scaleb(-self.decimal_places)
        return str(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
