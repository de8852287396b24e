# ABOUTME: Defines canonical curriculum and evaluation structures shared by scoring and progression.
# ABOUTME: Centralizes competence, exercise, letter target, and evaluation record definitions.

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Mapping, Optional, Tuple

from .trace import Trace


@dataclass(frozen=True)
class MasteryThresholds:
    """Minimum percentage each sub-score must reach for a competence to validate."""

    precision: int
    speed: int
    fluidity: int
    inclination: int
    pressure: Optional[int] = None
    aggregate: Optional[int] = None


@dataclass(frozen=True)
class Competence:
    """Curriculum skill unit, loaded once from the catalog and never mutated."""

    code: str
    thresholds: MasteryThresholds
    prerequisites: FrozenSet[str] = frozenset()
    title: str = ""
    domain: str = "ECRITURE"
    period: str = "P1"


@dataclass(frozen=True)
class LetterTarget:
    """Per-letter goals used when scoring one traced letter."""

    letter_id: str
    speed_target_ms: int
    precision_tolerance_px: float = 30.0
    # Degrees; None derives the target from the reference trace itself.
    inclination_angle: Optional[float] = None
    is_cursive: bool = True


@dataclass(frozen=True)
class ExerciseTarget:
    """One ordered slot of an exercise together with its pre-built reference trace."""

    letter: LetterTarget
    anchor_x: float
    anchor_y: float
    scale: float = 1.0
    reference: Optional[Trace] = field(default=None, compare=False)


@dataclass(frozen=True)
class Exercise:
    id: str
    competence_code: str
    targets: Tuple[ExerciseTarget, ...]
    points: int = 0
    title: str = ""
    kind: str = "entrainement"

    @property
    def letters(self) -> Tuple[str, ...]:
        return tuple(t.letter.letter_id for t in self.targets)


class NextAction(str, Enum):
    ADVANCE = "advance"
    RETRY_ALMOST = "retry_almost"
    RETRY_WITH_ADVICE = "retry_with_advice"


@dataclass(frozen=True)
class SubScores:
    precision: int
    speed: int
    fluidity: int
    inclination: int
    pressure: int

    def as_dict(self) -> Mapping[str, int]:
        return {
            "precision": self.precision,
            "speed": self.speed,
            "fluidity": self.fluidity,
            "inclination": self.inclination,
            "pressure": self.pressure,
        }


@dataclass(frozen=True)
class Evaluation:
    """Result of one scoring pass; created once per submission and never mutated."""

    competence_code: str
    letter_id: str
    scores: SubScores
    aggregate: int
    validated: bool
    tags: Tuple[str, ...]
    next_action: NextAction
    started_at_ms: int = 0
    finished_at_ms: int = 0
    duration_ms: int = 0
    pressure_consistent: bool = False
