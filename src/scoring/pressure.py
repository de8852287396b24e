# ABOUTME: Classifies stylus pressure samples into quality bands with advisory messages.
# ABOUTME: Summarizes a whole trace's pressure series for the consistency bonus and sub-score.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

import numpy as np

from src.common.config import PressureConfig


class PressureBand(str, Enum):
    ABSENT = "absent"
    TOO_LIGHT = "too_light"
    IDEAL = "ideal"
    TOO_HEAVY = "too_heavy"


ADVISORY_MESSAGES = {
    PressureBand.ABSENT: "No pressure detected. Use the stylus to write.",
    PressureBand.TOO_LIGHT: "Press a little harder.",
    PressureBand.IDEAL: "Perfect pressure!",
    PressureBand.TOO_HEAVY: "Press more gently.",
}


@dataclass(frozen=True)
class PressureState:
    band: PressureBand
    deviation: float
    advisory_message: str


@dataclass(frozen=True)
class PressureSummary:
    sample_count: int
    mean: float
    variance: float
    consistent: bool
    absent_ratio: float


def classify_pressure(
    pressure: float,
    ideal_center: float = 0.5,
    tolerance: float = 0.15,
    absent_threshold: float = 0.1,
) -> PressureState:
    """Classify one sample; runs on every pointer-move so it stays branch-only."""

    if pressure <= absent_threshold:
        band = PressureBand.ABSENT
    elif pressure < ideal_center - tolerance:
        band = PressureBand.TOO_LIGHT
    elif pressure > ideal_center + tolerance:
        band = PressureBand.TOO_HEAVY
    else:
        band = PressureBand.IDEAL
    return PressureState(band=band, deviation=pressure - ideal_center, advisory_message=ADVISORY_MESSAGES[band])


def classify_with_config(pressure: float, config: PressureConfig) -> PressureState:
    return classify_pressure(pressure, config.ideal_center, config.tolerance, config.absent_threshold)


def classify_series(
    pressures: Iterable[float],
    ideal_center: float = 0.5,
    tolerance: float = 0.15,
    absent_threshold: float = 0.1,
    consistency_variance: float = 0.02,
) -> PressureSummary:
    """
    Mean and variance of the non-absent samples of a trace.

    A series is consistent when its variance stays under `consistency_variance`
    and its mean lies within `tolerance` of the ideal center.
    """

    values = np.asarray(list(pressures), dtype=np.float64)
    total = len(values)
    present = values[values > absent_threshold]
    if len(present) == 0:
        return PressureSummary(
            sample_count=0,
            mean=0.0,
            variance=0.0,
            consistent=False,
            absent_ratio=1.0 if total else 0.0,
        )

    mean = float(present.mean())
    variance = float(present.var())
    consistent = variance < consistency_variance and abs(mean - ideal_center) <= tolerance
    return PressureSummary(
        sample_count=int(len(present)),
        mean=mean,
        variance=variance,
        consistent=consistent,
        absent_ratio=float(1.0 - len(present) / total),
    )


def summarize_with_config(pressures: Iterable[float], config: PressureConfig) -> PressureSummary:
    return classify_series(
        pressures,
        ideal_center=config.ideal_center,
        tolerance=config.tolerance,
        absent_threshold=config.absent_threshold,
        consistency_variance=config.consistency_variance,
    )
