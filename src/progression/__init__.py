# ABOUTME: Groups competence mastery tracking, next-exercise selection, and practice sessions.
# ABOUTME: Re-exports the tracker, selection policy, catalog loader, and reporting helpers.

from .catalog import Catalog, load_catalog
from .mastery import CompetenceMastery, MasteryBook, MasteryStatus, ProgressionTracker, apply_evaluation
from .reporting import EvaluationLog, summarize_competences
from .selection import CURRICULUM_COMPLETE, NextExercise, next_exercise
from .session import PracticeSession, SubmissionResult

__all__ = [
    "Catalog",
    "load_catalog",
    "CompetenceMastery",
    "MasteryBook",
    "MasteryStatus",
    "ProgressionTracker",
    "apply_evaluation",
    "EvaluationLog",
    "summarize_competences",
    "CURRICULUM_COMPLETE",
    "NextExercise",
    "next_exercise",
    "PracticeSession",
    "SubmissionResult",
]
