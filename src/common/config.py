# ABOUTME: Holds scoring, pressure, and progression settings loaded from YAML.
# ABOUTME: Defaults reproduce the calibrated CP-2025 constants when no file is given.

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


@dataclass(frozen=True)
class ScoreWeights:
    precision: float = 0.35
    speed: float = 0.20
    fluidity: float = 0.25
    inclination: float = 0.15
    pressure: float = 0.05

    def __post_init__(self) -> None:
        total = self.precision + self.speed + self.fluidity + self.inclination + self.pressure
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Score weights must sum to 1.0, got {total:.4f}.")


@dataclass(frozen=True)
class PressureConfig:
    ideal_center: float = 0.5
    tolerance: float = 0.15
    absent_threshold: float = 0.1
    consistency_variance: float = 0.02
    # Fewer non-absent samples than this scores pressure as neutral.
    min_samples: int = 6


@dataclass(frozen=True)
class ScoringConfig:
    resample_points: int = 20
    # Fluidity resamples at a fixed pixel spacing, capped at fluidity_points samples.
    fluidity_points: int = 32
    fluidity_spacing_px: float = 6.0
    fluidity_smoothing_window: int = 3
    fluidity_turning_ceiling_deg: float = 360.0
    min_user_points: int = 5
    speed_tolerance_ratio: float = 0.25
    inclination_tolerance_deg: float = 5.0
    inclination_penalty_per_deg: float = 4.0
    weights: ScoreWeights = field(default_factory=ScoreWeights)


@dataclass(frozen=True)
class ProgressionConfig:
    # None keeps retries unlimited.
    max_attempts_per_letter: Optional[int] = None


@dataclass(frozen=True)
class EngineConfig:
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    pressure: PressureConfig = field(default_factory=PressureConfig)
    progression: ProgressionConfig = field(default_factory=ProgressionConfig)


def engine_config_from_dict(cfg: Optional[Mapping[str, Any]]) -> EngineConfig:
    """Build an EngineConfig from the parsed YAML mapping; missing keys keep their defaults."""

    cfg = cfg or {}
    scoring_cfg = dict(cfg.get("scoring") or {})
    weights = ScoreWeights(**(scoring_cfg.pop("weights", None) or {}))
    scoring = ScoringConfig(weights=weights, **scoring_cfg)
    pressure = PressureConfig(**(cfg.get("pressure") or {}))
    progression = ProgressionConfig(**(cfg.get("progression") or {}))

    if scoring.resample_points < 2 or scoring.fluidity_points < 3:
        raise ValueError("resample_points must be >= 2 and fluidity_points >= 3.")
    if scoring.fluidity_spacing_px <= 0 or scoring.fluidity_turning_ceiling_deg <= 0:
        raise ValueError("fluidity_spacing_px and fluidity_turning_ceiling_deg must be positive.")
    if scoring.min_user_points < 2:
        raise ValueError("min_user_points must be >= 2.")
    if progression.max_attempts_per_letter is not None and progression.max_attempts_per_letter < 1:
        raise ValueError("max_attempts_per_letter must be positive when set.")

    return EngineConfig(scoring=scoring, pressure=pressure, progression=progression)


def load_engine_config(config_path: Optional[Path] = None) -> EngineConfig:
    if config_path is None:
        return EngineConfig()
    with open(config_path) as f:
        cfg = yaml.safe_load(f)
    return engine_config_from_dict(cfg)
