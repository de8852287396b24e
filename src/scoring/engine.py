# ABOUTME: Scores a finalized user trace against a reference trace on five criteria.
# ABOUTME: Produces the aggregate score, threshold verdict, commentary tags, and next action.

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from src.common.config import EngineConfig, PressureConfig, ScoreWeights
from src.common.errors import DegenerateReference, InsufficientTrace, InvalidState, MissingReference
from src.common.schemas import Competence, Evaluation, LetterTarget, MasteryThresholds, NextAction, SubScores
from src.common.trace import Trace

from .geometry import (
    angular_difference,
    dominant_stroke_angle,
    mean_pointwise_distance,
    polyline_length,
    resample_by_arc_length,
    sample_count_for_spacing,
    smooth_polyline,
    total_turning,
)
from .pressure import PressureSummary, summarize_with_config

logger = logging.getLogger(__name__)

NEUTRAL_PRESSURE_SCORE = 50.0
RETRY_ALMOST_AGGREGATE = 70


class TagBands:
    """Score bands that select commentary tags; a tag is a pure function of the scores."""

    IMPRECISE = 50
    FOLLOW_MODEL = 70
    VERY_PRECISE = 90
    SPEED_OFF = 60
    GOOD_PACE = 90
    JERKY = 70
    FLUID = 90
    SLANT_OFF = 60
    GOOD_SLANT = 85
    IRREGULAR_PRESSURE = 60
    STEADY_PRESSURE = 85


def _to_percent(value: float) -> int:
    return int(round(min(100.0, max(0.0, float(value)))))


def precision_score(user_xy: np.ndarray, reference_xy: np.ndarray, tolerance_px: float, n_points: int = 20) -> float:
    """Linear falloff of the mean distance between arc-length-matched control points."""

    if tolerance_px <= 0:
        raise ValueError(f"precision tolerance must be positive, got {tolerance_px}.")
    user = resample_by_arc_length(user_xy, n_points)
    reference = resample_by_arc_length(reference_xy, n_points)
    distance = mean_pointwise_distance(user, reference)
    return 100.0 * max(0.0, 1.0 - distance / tolerance_px)


def speed_score(duration_ms: float, target_ms: float, tolerance_ratio: float = 0.25) -> float:
    """
    Symmetric speed score around the target duration.

    Inside +/- tolerance_ratio of the target the score is 100; beyond it the
    score decays linearly and reaches 0 at a 100% relative deviation, whether
    the trace was too fast or too slow.
    """

    if target_ms <= 0:
        raise ValueError(f"speed target must be positive, got {target_ms}.")
    deviation = abs(float(duration_ms) - float(target_ms)) / float(target_ms)
    if deviation <= tolerance_ratio:
        return 100.0
    span = 1.0 - tolerance_ratio
    if span <= 0:
        return 0.0
    return 100.0 * max(0.0, 1.0 - (deviation - tolerance_ratio) / span)


def fluidity_score(
    user_xy: np.ndarray,
    reference_xy: np.ndarray,
    spacing_px: float = 6.0,
    max_points: int = 32,
    smoothing_window: int = 3,
    turning_ceiling_deg: float = 360.0,
) -> float:
    """
    Penalize turning in excess of the reference letter's own turns.

    Both traces are resampled to the same count, chosen so that samples sit
    about `spacing_px` apart along the reference, then smoothed. Pixel-level
    noise stays well below a sample spacing and barely adds turning, while
    hesitations and direction reversals add their full swing.
    """

    n_points = sample_count_for_spacing(polyline_length(reference_xy), spacing_px, max_points)
    user = smooth_polyline(resample_by_arc_length(user_xy, n_points), smoothing_window)
    reference = smooth_polyline(resample_by_arc_length(reference_xy, n_points), smoothing_window)
    excess = max(0.0, total_turning(user) - total_turning(reference))
    return 100.0 * max(0.0, 1.0 - excess / turning_ceiling_deg)


def inclination_score(
    user_xy: np.ndarray,
    target_angle: float,
    tolerance_deg: float = 5.0,
    penalty_per_deg: float = 4.0,
) -> float:
    deviation = angular_difference(dominant_stroke_angle(user_xy), target_angle)
    if deviation <= tolerance_deg:
        return 100.0
    return max(0.0, 100.0 - (deviation - tolerance_deg) * penalty_per_deg)


def pressure_score(summary: PressureSummary, config: PressureConfig) -> float:
    """Average of on-target quality and constancy; neutral when the device reports no pressure."""

    if summary.sample_count < config.min_samples:
        return NEUTRAL_PRESSURE_SCORE
    quality = max(0.0, 100.0 - abs(summary.mean - config.ideal_center) * 200.0)
    constancy = max(0.0, 100.0 - summary.variance * 1000.0)
    return (quality + constancy) / 2.0


def aggregate_score(scores: SubScores, weights: ScoreWeights) -> int:
    total = (
        scores.precision * weights.precision
        + scores.speed * weights.speed
        + scores.fluidity * weights.fluidity
        + scores.inclination * weights.inclination
        + scores.pressure * weights.pressure
    )
    return _to_percent(total)


def is_validated(scores: SubScores, aggregate: int, thresholds: MasteryThresholds) -> bool:
    """Every sub-score must reach its own floor; a high aggregate never compensates."""

    if scores.precision < thresholds.precision:
        return False
    if scores.speed < thresholds.speed:
        return False
    if scores.fluidity < thresholds.fluidity:
        return False
    if scores.inclination < thresholds.inclination:
        return False
    if thresholds.pressure is not None and scores.pressure < thresholds.pressure:
        return False
    if thresholds.aggregate is not None and aggregate < thresholds.aggregate:
        return False
    return True


def select_tags(
    scores: SubScores,
    too_fast: bool,
    pressure_summary: PressureSummary,
    pressure_config: PressureConfig,
) -> Tuple[str, ...]:
    tags: List[str] = []

    if scores.precision < TagBands.IMPRECISE:
        tags.append("imprecise")
    elif scores.precision < TagBands.FOLLOW_MODEL:
        tags.append("follow_model")
    elif scores.precision >= TagBands.VERY_PRECISE:
        tags.append("very_precise")

    if scores.speed < TagBands.SPEED_OFF:
        tags.append("too_fast" if too_fast else "too_slow")
    elif scores.speed >= TagBands.GOOD_PACE:
        tags.append("good_pace")

    if scores.fluidity < TagBands.JERKY:
        tags.append("jerky")
    elif scores.fluidity >= TagBands.FLUID:
        tags.append("fluid")

    if scores.inclination < TagBands.SLANT_OFF:
        tags.append("slant_off")
    elif scores.inclination >= TagBands.GOOD_SLANT:
        tags.append("good_slant")

    if pressure_summary.sample_count < pressure_config.min_samples:
        tags.append("no_pressure")
    elif scores.pressure < TagBands.IRREGULAR_PRESSURE:
        tags.append("irregular_pressure")
    elif scores.pressure >= TagBands.STEADY_PRESSURE or pressure_summary.consistent:
        tags.append("steady_pressure")

    return tuple(tags)


def select_next_action(validated: bool, aggregate: int) -> NextAction:
    if validated:
        return NextAction.ADVANCE
    if aggregate >= RETRY_ALMOST_AGGREGATE:
        return NextAction.RETRY_ALMOST
    return NextAction.RETRY_WITH_ADVICE


def check_reference(reference_trace: Optional[Trace], letter_id: str) -> np.ndarray:
    """Return the reference points, or raise when they cannot be resampled."""

    if reference_trace is None:
        raise MissingReference(f"No reference trace for letter '{letter_id}'.", {"letter_id": letter_id})
    reference_xy = reference_trace.xy()
    if len(reference_xy) < 2:
        raise DegenerateReference(
            f"Reference trace for '{letter_id}' has too few points to resample.",
            {"letter_id": letter_id, "points": len(reference_xy)},
        )
    if polyline_length(reference_xy) <= 0.0:
        raise DegenerateReference(
            f"Reference trace for '{letter_id}' has zero length.",
            {"letter_id": letter_id, "points": len(reference_xy)},
        )
    return reference_xy


def evaluate(
    user_trace: Trace,
    reference_trace: Optional[Trace],
    letter_target: LetterTarget,
    trace_start_ms: int,
    competence: Competence,
    config: Optional[EngineConfig] = None,
) -> Evaluation:
    """
    Score one finalized user trace against the reference trace of its letter.

    Args:
        user_trace: Finalized user trace with at least `min_user_points` points.
        reference_trace: Canonical trace of the target letter.
        letter_target: Per-letter speed, precision, and slant goals.
        trace_start_ms: Wall-clock time of pen-down, used to stamp the evaluation.
        competence: Competence whose thresholds gate validation.
        config: Engine settings; defaults to the calibrated constants.

    Raises:
        InvalidState: the user trace is still open.
        InsufficientTrace: too few user points.
        MissingReference / DegenerateReference: the reference cannot be scored against.
    """

    config = config or EngineConfig()
    scoring = config.scoring

    if not user_trace.finalized:
        raise InvalidState("User trace must be finalized before evaluation.")
    if len(user_trace) < scoring.min_user_points:
        raise InsufficientTrace(
            "Trace too short, try again.",
            {"points": len(user_trace), "required": scoring.min_user_points},
        )
    reference_xy = check_reference(reference_trace, letter_target.letter_id)
    user_xy = user_trace.xy()

    duration_ms = user_trace.duration_ms()
    precision = precision_score(user_xy, reference_xy, letter_target.precision_tolerance_px, scoring.resample_points)
    speed = speed_score(duration_ms, letter_target.speed_target_ms, scoring.speed_tolerance_ratio)
    fluidity = fluidity_score(
        user_xy,
        reference_xy,
        scoring.fluidity_spacing_px,
        scoring.fluidity_points,
        scoring.fluidity_smoothing_window,
        scoring.fluidity_turning_ceiling_deg,
    )

    if letter_target.is_cursive:
        target_angle = letter_target.inclination_angle
        if target_angle is None:
            target_angle = dominant_stroke_angle(reference_xy)
        inclination = inclination_score(
            user_xy, target_angle, scoring.inclination_tolerance_deg, scoring.inclination_penalty_per_deg
        )
    else:
        inclination = 100.0

    summary = summarize_with_config(user_trace.pressures(), config.pressure)
    pressure = pressure_score(summary, config.pressure)

    scores = SubScores(
        precision=_to_percent(precision),
        speed=_to_percent(speed),
        fluidity=_to_percent(fluidity),
        inclination=_to_percent(inclination),
        pressure=_to_percent(pressure),
    )
    aggregate = aggregate_score(scores, scoring.weights)
    validated = is_validated(scores, aggregate, competence.thresholds)
    tags = select_tags(scores, duration_ms < letter_target.speed_target_ms, summary, config.pressure)

    logger.debug(
        "Scored letter %s for %s: %s aggregate=%d validated=%s",
        letter_target.letter_id,
        competence.code,
        dict(scores.as_dict()),
        aggregate,
        validated,
    )

    return Evaluation(
        competence_code=competence.code,
        letter_id=letter_target.letter_id,
        scores=scores,
        aggregate=aggregate,
        validated=validated,
        tags=tags,
        next_action=select_next_action(validated, aggregate),
        started_at_ms=int(trace_start_ms),
        finished_at_ms=int(trace_start_ms) + int(user_trace.points[-1].timestamp_ms),
        duration_ms=duration_ms,
        pressure_consistent=summary.consistent,
    )
