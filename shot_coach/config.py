"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      committed static defaults
  2. ``config/local.toml``        optional local overrides (gitignored)
  3. ``.env``                     local env overrides (gitignored)
  4. Environment variables        ``SHOT_COACH_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Every coaching threshold (optimal extraction window, ratio bands, deviation
bands, score tiers) lives in ``CoachingThresholds``. Algorithms take it as a
parameter and default to ``DEFAULT_THRESHOLDS``; no module hard-codes them.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/shot_coach.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/shot_coach.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class CoachingThresholds(BaseModel):
    """Every constant the advisor, scorer and analyzers depend on.

    Extraction windows are inclusive, in whole seconds. Brew ratio bands are
    inclusive on ``weight_out / weight_in``. Deviation bands are strict
    (``abs(deviation) < band``).
    """

    model_config = ConfigDict(frozen=True)

    # Extraction time windows (seconds)
    optimal_time_min: int = 25
    optimal_time_max: int = 30
    acceptable_time_min: int = 20
    acceptable_time_max: int = 35

    # Brew ratio bands
    typical_ratio_min: float = 1.5
    typical_ratio_max: float = 3.0
    acceptable_ratio_min: float = 1.3
    acceptable_ratio_max: float = 2.8

    # Deviation from bean averages
    tight_ratio_deviation: float = 0.1
    tight_time_deviation: float = 2.0
    consistency_ratio_deviation: float = 0.3
    consistency_time_deviation: float = 5.0
    ratio_inconsistency_deviation: float = 0.5
    ratio_target_band: float = 0.3

    # Grind adjustment step scaling (|time deviation| in seconds)
    minor_deviation_seconds: int = 3
    moderate_deviation_seconds: int = 6
    minor_adjustment_steps: int = 1
    moderate_adjustment_steps: int = 2
    major_adjustment_steps: int = 3

    # Score tiers
    excellent_score: int = 85
    good_score: int = 60

    # Aggregate analysis
    trend_threshold: int = 5
    recent_shot_count: int = 5
    min_shots_for_ranking: int = 3

    # Milestones
    dial_in_min_score: int = 60
    dial_in_consistency_score: int = 70
    perfect_score: int = 80
    dial_in_shot_count: int = 3

    @model_validator(mode="after")
    def validate_windows(self) -> "CoachingThresholds":
        if not self.acceptable_time_min <= self.optimal_time_min <= self.optimal_time_max:
            raise ValueError("Optimal extraction window must sit inside the acceptable window.")
        if self.optimal_time_max > self.acceptable_time_max:
            raise ValueError("Optimal extraction window must sit inside the acceptable window.")
        if self.typical_ratio_min > self.typical_ratio_max:
            raise ValueError("typical_ratio_min must be <= typical_ratio_max.")
        if not 0 <= self.good_score < self.excellent_score <= 100:
            raise ValueError(
                f"Score tiers must satisfy 0 <= good ({self.good_score}) < "
                f"excellent ({self.excellent_score}) <= 100."
            )
        return self


DEFAULT_THRESHOLDS = CoachingThresholds()


class RecommendationConfig(BaseModel):
    """Settings for persisted next-shot recommendations."""

    model_config = ConfigDict(frozen=True)

    default_dose_g: float = 18.0
    recent_days: int = 7

    @field_validator("default_dose_g")
    @classmethod
    def validate_dose(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"default_dose_g must be > 0, got {v}.")
        return v


class GrinderDefaultsConfig(BaseModel):
    """Grinder profile seeded by ``init-db`` when none is configured."""

    model_config = ConfigDict(frozen=True)

    scale_min: int = 1
    scale_max: int = 10
    step_size: float = 0.5
    seed_on_init: bool = False


class AppConfig(BaseModel):
    """Complete application configuration.

    All CLI commands receive an ``AppConfig`` instance. It is constructed by
    ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    coaching: CoachingThresholds = DEFAULT_THRESHOLDS
    recommendations: RecommendationConfig = RecommendationConfig()
    grinder: GrinderDefaultsConfig = GrinderDefaultsConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    # Also merge local.toml if present (gitignored local overrides)
    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply SHOT_COACH_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply SHOT_COACH_* env vars to the raw config dict.

    Supported overrides:
      SHOT_COACH_DB_PATH    → raw["database"]["db_path"]
      SHOT_COACH_LOG_LEVEL  → raw["logging"]["level"]
      SHOT_COACH_DEBUG      → raw["debug"]
    """
    if db_path := os.environ.get("SHOT_COACH_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("SHOT_COACH_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("SHOT_COACH_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        coaching=CoachingThresholds(**raw.get("coaching", {})),
        recommendations=RecommendationConfig(**raw.get("recommendations", {})),
        grinder=GrinderDefaultsConfig(**raw.get("grinder", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
