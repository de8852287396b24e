# ABOUTME: Generates canonical cursive reference traces from a data table of letter shapes.
# ABOUTME: Shapes are unit-space polylines scaled and translated to an anchor at generation time.

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

import yaml

from src.common.errors import UnknownLetter
from src.common.trace import Trace, TracePoint

logger = logging.getLogger(__name__)

DEFAULT_STEP_MS = 100
DEFAULT_PRESSURE = 0.5


@dataclass(frozen=True)
class LetterShape:
    """
    Hand-authored control polyline of one letter.

    Offsets are in unit space: one unit is one canvas pixel at scale 1, x to
    the right and y downward from the anchor (the baseline start point).
    """

    letter_id: str
    offsets: Tuple[Tuple[float, float], ...]
    step_ms: int = DEFAULT_STEP_MS
    pressure: float = DEFAULT_PRESSURE


def _shape(letter_id: str, *offsets: Tuple[float, float]) -> LetterShape:
    return LetterShape(letter_id=letter_id, offsets=tuple((float(u), float(v)) for u, v in offsets))


# French school cursive, lower case, single stroke per letter.
LETTER_SHAPES: Mapping[str, LetterShape] = {
    shape.letter_id: shape
    for shape in (
        # Vowels
        _shape("a", (0, 0), (8, -15), (15, -20), (22, -15), (25, -5), (22, 2), (15, 5), (8, 2), (5, -5), (8, -10), (22, -12), (25, 0)),
        _shape("e", (0, 0), (7, -4), (12, -10), (12, -16), (8, -18), (4, -14), (4, -6), (8, 0), (16, 0)),
        _shape("i", (0, 0), (2, -8), (5, -18), (8, -15), (10, -5), (12, 0)),
        _shape("o", (0, 0), (5, -15), (12, -20), (20, -15), (22, -5), (20, 2), (12, 5), (5, 2), (2, -5), (25, 0)),
        _shape("u", (0, 0), (2, -10), (4, -18), (4, -8), (8, 0), (14, -4), (18, -18), (18, -6), (22, 0)),
        # Consonants
        _shape("c", (0, 0), (8, -12), (14, -18), (10, -19), (5, -15), (4, -6), (8, 0), (16, 0)),
        _shape("l", (0, 0), (2, -10), (5, -30), (8, -35), (10, -30), (12, -15), (15, -5), (18, 0)),
        _shape("m", (0, 0), (0, -15), (3, -18), (8, -15), (12, -18), (15, -15), (18, -18), (22, -15), (25, -10), (28, 0)),
        _shape("n", (0, 0), (2, -12), (4, -18), (4, 0), (6, -12), (11, -18), (15, -14), (16, -5), (20, 0)),
        _shape("t", (0, 0), (3, -12), (6, -30), (7, -15), (8, -4), (12, 0), (16, 0)),
    )
}


def supported_letters(shapes: Optional[Mapping[str, LetterShape]] = None) -> Sequence[str]:
    return sorted((shapes if shapes is not None else LETTER_SHAPES).keys())


def generate_reference_trace(
    letter_id: str,
    anchor_x: float,
    anchor_y: float,
    scale: float = 1.0,
    shapes: Optional[Mapping[str, LetterShape]] = None,
) -> Trace:
    """
    Build the canonical reference trace of `letter_id` anchored at (anchor_x, anchor_y).

    Pure: identical arguments always produce the same point sequence. Raises
    UnknownLetter when the letter has no shape in the table.
    """

    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}.")
    table = shapes if shapes is not None else LETTER_SHAPES
    shape = table.get(letter_id)
    if shape is None:
        raise UnknownLetter(
            f"No reference shape for letter '{letter_id}'.",
            {"letter_id": letter_id, "supported": list(supported_letters(table))},
        )

    points = [
        TracePoint(
            x=anchor_x + u * scale,
            y=anchor_y + v * scale,
            timestamp_ms=i * shape.step_ms,
            pressure=shape.pressure,
        )
        for i, (u, v) in enumerate(shape.offsets)
    ]
    return Trace.reference(points)


def placeholder_trace(anchor_x: float, anchor_y: float) -> Trace:
    """Single-point trace used when a letter has no authored shape."""
    return Trace.reference([TracePoint(x=anchor_x, y=anchor_y, timestamp_ms=0, pressure=DEFAULT_PRESSURE)])


def reference_or_placeholder(
    letter_id: str,
    anchor_x: float,
    anchor_y: float,
    scale: float = 1.0,
    shapes: Optional[Mapping[str, LetterShape]] = None,
) -> Tuple[Trace, Optional[UnknownLetter]]:
    """
    Generate a reference trace, falling back to a single-point placeholder.

    The error is returned alongside the placeholder so callers can surface it;
    scoring against the placeholder raises DegenerateReference.
    """

    try:
        return generate_reference_trace(letter_id, anchor_x, anchor_y, scale, shapes), None
    except UnknownLetter as exc:
        logger.warning("Letter '%s' not available; using a single-point placeholder", letter_id)
        return placeholder_trace(anchor_x, anchor_y), exc


def load_letter_shapes(path: Path, base: Optional[Mapping[str, LetterShape]] = None) -> Dict[str, LetterShape]:
    """
    Extend the shape table from a YAML file.

    Expected layout::

        letters:
          b:
            offsets: [[0, 0], [2, -30], ...]
            step_ms: 100      # optional
            pressure: 0.5     # optional
    """

    with open(path) as f:
        cfg = yaml.safe_load(f) or {}

    table: Dict[str, LetterShape] = dict(base if base is not None else LETTER_SHAPES)
    for letter_id, entry in (cfg.get("letters") or {}).items():
        offsets = entry.get("offsets") or []
        if len(offsets) < 2:
            raise ValueError(f"Letter '{letter_id}' needs at least two control points.")
        table[str(letter_id)] = LetterShape(
            letter_id=str(letter_id),
            offsets=tuple((float(u), float(v)) for u, v in offsets),
            step_ms=int(entry.get("step_ms", DEFAULT_STEP_MS)),
            pressure=float(entry.get("pressure", DEFAULT_PRESSURE)),
        )
    return table
