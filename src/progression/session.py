# ABOUTME: Runs one learner's practice loop: capture, evaluate, record mastery, pick the next letter.
# ABOUTME: Converts recoverable engine errors into retry prompts without touching mastery state.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from src.common.config import EngineConfig
from src.common.errors import HandwritingError, InvalidState
from src.common.schemas import Competence, Evaluation, Exercise, ExerciseTarget
from src.common.trace import Trace
from src.scoring.capture import StrokeRecorder
from src.scoring.engine import evaluate
from src.scoring.feedback import error_message, render_feedback

from .catalog import Catalog
from .mastery import CompetenceMastery, ProgressionTracker
from .selection import CurriculumComplete, NextExercise, NextStep, next_exercise

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    evaluation: Optional[Evaluation]
    mastery: Optional[CompetenceMastery]
    next_step: NextStep
    message: str
    error_tag: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_tag is None


class PracticeSession:
    """
    One learner working through the catalog.

    The session owns its tracker and stroke recorder; nothing is shared with
    other sessions, so several learners can practise side by side.
    """

    def __init__(
        self,
        catalog: Catalog,
        config: Optional[EngineConfig] = None,
        tracker: Optional[ProgressionTracker] = None,
    ):
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.tracker = tracker or ProgressionTracker()
        self.recorder = StrokeRecorder(self.config.pressure)
        self._step = self._select(None)

    @property
    def current_step(self) -> NextStep:
        return self._step

    @property
    def complete(self) -> bool:
        return isinstance(self._step, CurriculumComplete)

    def current_target(self) -> Tuple[Exercise, ExerciseTarget, Competence]:
        if not isinstance(self._step, NextExercise):
            raise InvalidState("Curriculum complete; no letter to practise.")
        exercise = self.catalog.exercise(self._step.exercise_id)
        target = exercise.targets[self._step.letter_index]
        return exercise, target, self.catalog.competence(exercise.competence_code)

    def submit(self, trace: Trace, trace_start_ms: int) -> SubmissionResult:
        """Score `trace` for the current letter and advance the curriculum."""

        exercise, target, competence = self.current_target()
        try:
            evaluation = evaluate(trace, target.reference, target.letter, trace_start_ms, competence, self.config)
        except HandwritingError as exc:
            logger.info("Submission for %s/%s rejected: %s", exercise.id, target.letter.letter_id, exc.tag)
            return self._rejected(exc)

        mastery = self.tracker.record_evaluation(
            competence.code, evaluation, (exercise.id, self._step.letter_index)
        )
        self._step = self._select(exercise.id)
        return SubmissionResult(
            evaluation=evaluation,
            mastery=mastery,
            next_step=self._step,
            message=render_feedback(evaluation).next_step,
        )

    def finish_stroke(self) -> SubmissionResult:
        """Pen-up: finalize the recorder's trace and submit it."""

        started_at_ms = self.recorder.started_at_ms
        try:
            trace = self.recorder.pen_up()
        except HandwritingError as exc:
            logger.info("Pen-up without a recorded stroke: %s", exc.tag)
            return self._rejected(exc)
        return self.submit(trace, started_at_ms or 0)

    def _rejected(self, exc: HandwritingError) -> SubmissionResult:
        return SubmissionResult(
            evaluation=None,
            mastery=None,
            next_step=self._step,
            message=error_message(exc),
            error_tag=exc.tag,
        )

    def _select(self, current_exercise_id: Optional[str]) -> NextStep:
        return next_exercise(
            self.tracker.snapshot(),
            self.catalog,
            current_exercise_id=current_exercise_id,
            max_attempts_per_letter=self.config.progression.max_attempts_per_letter,
        )
