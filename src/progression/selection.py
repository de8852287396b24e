# ABOUTME: Picks the next exercise and letter to present from a mastery snapshot.
# ABOUTME: Deterministic: same snapshot and catalog always give the same next step.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from src.common.schemas import Competence, Exercise

from .catalog import Catalog
from .mastery import CompetenceMastery, MasteryBook


@dataclass(frozen=True)
class NextExercise:
    exercise_id: str
    letter_index: int
    letter_id: str


@dataclass(frozen=True)
class CurriculumComplete:
    """Returned when no exercise is left to present."""


CURRICULUM_COMPLETE = CurriculumComplete()

NextStep = Union[NextExercise, CurriculumComplete]


def prerequisites_met(competence: Competence, book: MasteryBook) -> bool:
    return all(book.is_mastered(code) for code in competence.prerequisites)


def pending_letter_index(
    exercise: Exercise,
    state: CompetenceMastery,
    max_attempts_per_letter: Optional[int] = None,
) -> Optional[int]:
    """
    Index of the first letter of `exercise` still to practise.

    A letter is done once validated at its position, or once it used up its
    attempts when a retry cap is configured. A repeated letter is practised
    at each position.
    """

    for idx in range(len(exercise.targets)):
        if state.is_target_validated(exercise.id, idx):
            continue
        if max_attempts_per_letter is not None and state.attempts_for(exercise.id, idx) >= max_attempts_per_letter:
            continue
        return idx
    return None


def _first_pending(
    candidates: Sequence[Exercise],
    book: MasteryBook,
    catalog: Catalog,
    max_attempts_per_letter: Optional[int],
) -> NextStep:
    for exercise in candidates:
        if not prerequisites_met(catalog.competence(exercise.competence_code), book):
            continue
        idx = pending_letter_index(exercise, book.get(exercise.competence_code), max_attempts_per_letter)
        if idx is not None:
            return NextExercise(exercise.id, idx, exercise.targets[idx].letter.letter_id)
    return CURRICULUM_COMPLETE


def next_exercise(
    book: MasteryBook,
    catalog: Catalog,
    current_exercise_id: Optional[str] = None,
    max_attempts_per_letter: Optional[int] = None,
) -> NextStep:
    """
    Choose what to present next.

    1. The next pending letter of the current exercise.
    2. Otherwise the next exercise in catalog order (wrapping around) whose
       competence prerequisites are all mastered and which has a pending letter.
    3. Otherwise CURRICULUM_COMPLETE.
    """

    exercises = list(catalog.exercises)
    if current_exercise_id is None:
        return _first_pending(exercises, book, catalog, max_attempts_per_letter)

    current = catalog.exercise(current_exercise_id)
    idx = pending_letter_index(current, book.get(current.competence_code), max_attempts_per_letter)
    if idx is not None:
        return NextExercise(current.id, idx, current.targets[idx].letter.letter_id)

    position = catalog.index_of(current_exercise_id)
    ordered = exercises[position + 1 :] + exercises[:position]
    return _first_pending(ordered, book, catalog, max_attempts_per_letter)
