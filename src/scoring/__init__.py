# ABOUTME: Groups the handwriting scoring engine: reference letters, pressure, and evaluation.
# ABOUTME: Re-exports the public entrypoints consumed by the progression layer and the UI.

from .capture import StrokeRecorder
from .engine import evaluate
from .feedback import render_feedback
from .letters import LETTER_SHAPES, generate_reference_trace, reference_or_placeholder
from .pressure import PressureBand, classify_pressure, classify_series

__all__ = [
    "StrokeRecorder",
    "evaluate",
    "render_feedback",
    "LETTER_SHAPES",
    "generate_reference_trace",
    "reference_or_placeholder",
    "PressureBand",
    "classify_pressure",
    "classify_series",
]
