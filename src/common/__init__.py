# ABOUTME: Makes the shared common package importable across the scoring and progression engines.
# ABOUTME: Re-exports trace, schema, error, and config types for convenience.

from .config import EngineConfig, load_engine_config
from .errors import (
    DegenerateReference,
    EmptyTrace,
    HandwritingError,
    InsufficientTrace,
    InvalidState,
    MissingReference,
    UnknownLetter,
)
from .schemas import Competence, Evaluation, Exercise, ExerciseTarget, LetterTarget, MasteryThresholds, SubScores
from .trace import Trace, TracePoint

__all__ = [
    "EngineConfig",
    "load_engine_config",
    "DegenerateReference",
    "EmptyTrace",
    "HandwritingError",
    "InsufficientTrace",
    "InvalidState",
    "MissingReference",
    "UnknownLetter",
    "Competence",
    "Evaluation",
    "Exercise",
    "ExerciseTarget",
    "LetterTarget",
    "MasteryThresholds",
    "SubScores",
    "Trace",
    "TracePoint",
]
