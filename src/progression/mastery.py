# ABOUTME: Tracks per-competence mastery state from evaluation verdicts.
# ABOUTME: Pure transition function plus a small per-session tracker that owns one snapshot.

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Callable, FrozenSet, Iterator, List, Mapping, Optional, Tuple

from src.common.schemas import Evaluation

logger = logging.getLogger(__name__)

EvaluationSink = Callable[[str, Evaluation], None]

# (exercise_id, position of the letter inside the exercise)
TargetKey = Tuple[str, int]


class MasteryStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    MASTERED = "mastered"


@dataclass(frozen=True)
class CompetenceMastery:
    """
    Mastery state of one competence.

    Letter progress is keyed by exercise target, so a letter that appears
    twice in a word is practised twice. `validated_letters` only records
    which letter ids were ever validated.
    """

    code: str
    status: MasteryStatus = MasteryStatus.NOT_STARTED
    attempts: int = 0
    best_score: int = 0
    mastered_at_ms: Optional[int] = None
    validated_letters: FrozenSet[str] = frozenset()
    validated_targets: FrozenSet[TargetKey] = frozenset()
    target_attempts: Mapping[TargetKey, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "target_attempts", MappingProxyType(dict(self.target_attempts)))

    @property
    def mastered(self) -> bool:
        return self.status is MasteryStatus.MASTERED

    def is_target_validated(self, exercise_id: str, index: int) -> bool:
        return (exercise_id, index) in self.validated_targets

    def attempts_for(self, exercise_id: str, index: int) -> int:
        return int(self.target_attempts.get((exercise_id, index), 0))


def apply_evaluation(
    state: CompetenceMastery,
    evaluation: Evaluation,
    target: Optional[TargetKey] = None,
) -> CompetenceMastery:
    """
    Advance one competence's state machine with a completed evaluation.

    NOT_STARTED -> IN_PROGRESS on the first evaluation; IN_PROGRESS -> MASTERED
    on the first validated one. MASTERED is terminal: later evaluations still
    count as attempts but never un-master the competence.

    `target` names the exercise position the evaluation was made for; without
    it only the competence-level counters move.
    """

    target_attempts = dict(state.target_attempts)
    validated_targets = state.validated_targets
    if target is not None:
        target_attempts[target] = target_attempts.get(target, 0) + 1
        if evaluation.validated:
            validated_targets = validated_targets | {target}
    validated_letters = state.validated_letters
    if evaluation.validated:
        validated_letters = validated_letters | {evaluation.letter_id}

    status = state.status
    mastered_at_ms = state.mastered_at_ms
    if status is not MasteryStatus.MASTERED:
        if evaluation.validated:
            status = MasteryStatus.MASTERED
            mastered_at_ms = evaluation.finished_at_ms
        else:
            status = MasteryStatus.IN_PROGRESS

    return replace(
        state,
        status=status,
        attempts=state.attempts + 1,
        best_score=max(state.best_score, evaluation.aggregate),
        mastered_at_ms=mastered_at_ms,
        validated_letters=validated_letters,
        validated_targets=validated_targets,
        target_attempts=target_attempts,
    )


@dataclass(frozen=True)
class MasteryBook:
    """Immutable snapshot of every competence's mastery state for one learner."""

    states: Mapping[str, CompetenceMastery] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "states", MappingProxyType(dict(self.states)))

    def get(self, code: str) -> CompetenceMastery:
        state = self.states.get(code)
        return state if state is not None else CompetenceMastery(code=code)

    def is_mastered(self, code: str) -> bool:
        return self.get(code).mastered

    def with_state(self, state: CompetenceMastery) -> "MasteryBook":
        states = dict(self.states)
        states[state.code] = state
        return MasteryBook(states=states)

    def mastered_codes(self) -> FrozenSet[str]:
        return frozenset(code for code, state in self.states.items() if state.mastered)

    def __iter__(self) -> Iterator[CompetenceMastery]:
        return iter(self.states[code] for code in sorted(self.states))


class ProgressionTracker:
    """
    Owns the mastery snapshot of one session.

    Each learner session gets its own tracker; trackers never share state.
    The snapshot only changes when a completed Evaluation is recorded.
    """

    def __init__(self, book: Optional[MasteryBook] = None, sinks: Optional[List[EvaluationSink]] = None):
        self._book = book or MasteryBook()
        self._sinks: List[EvaluationSink] = list(sinks or [])

    def snapshot(self) -> MasteryBook:
        return self._book

    def add_sink(self, sink: EvaluationSink) -> None:
        self._sinks.append(sink)

    def record_evaluation(
        self,
        competence_code: str,
        evaluation: Evaluation,
        target: Optional[TargetKey] = None,
    ) -> CompetenceMastery:
        if evaluation.competence_code != competence_code:
            raise ValueError(
                f"Evaluation belongs to '{evaluation.competence_code}', not '{competence_code}'."
            )
        before = self._book.get(competence_code)
        after = apply_evaluation(before, evaluation, target)
        self._book = self._book.with_state(after)

        if after.status is not before.status:
            logger.info("Competence %s: %s -> %s", competence_code, before.status.value, after.status.value)
        self._publish(competence_code, evaluation)
        return after

    def _publish(self, competence_code: str, evaluation: Evaluation) -> None:
        # Reporting is fire-and-forget; a failing sink never blocks progression.
        for sink in self._sinks:
            try:
                sink(competence_code, evaluation)
            except Exception:
                logger.warning("Evaluation sink %r failed", sink, exc_info=True)
