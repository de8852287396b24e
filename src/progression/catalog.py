# ABOUTME: Loads the static competence and exercise catalog from YAML.
# ABOUTME: Builds each exercise target's reference trace once and validates prerequisites.

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from src.common.schemas import Competence, Exercise, ExerciseTarget, LetterTarget, MasteryThresholds
from src.scoring.letters import LetterShape, reference_or_placeholder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Catalog:
    """Read-only curriculum: competences by code and exercises in presentation order."""

    competences: Mapping[str, Competence]
    exercises: Tuple[Exercise, ...]

    def competence(self, code: str) -> Competence:
        try:
            return self.competences[code]
        except KeyError:
            raise KeyError(f"Unknown competence '{code}'.") from None

    def exercise(self, exercise_id: str) -> Exercise:
        for exercise in self.exercises:
            if exercise.id == exercise_id:
                return exercise
        raise KeyError(f"Unknown exercise '{exercise_id}'.")

    def index_of(self, exercise_id: str) -> int:
        for idx, exercise in enumerate(self.exercises):
            if exercise.id == exercise_id:
                return idx
        raise KeyError(f"Unknown exercise '{exercise_id}'.")


def _build_competence(code: str, entry: Mapping[str, Any]) -> Competence:
    thresholds = MasteryThresholds(**entry["thresholds"])
    return Competence(
        code=code,
        thresholds=thresholds,
        prerequisites=frozenset(entry.get("prerequisites") or []),
        title=entry.get("title", ""),
        domain=entry.get("domain", "ECRITURE"),
        period=entry.get("period", "P1"),
    )


def _build_target(entry: Mapping[str, Any], shapes: Optional[Mapping[str, LetterShape]]) -> ExerciseTarget:
    angle = entry.get("inclination_angle")
    letter = LetterTarget(
        letter_id=str(entry["letter"]),
        speed_target_ms=int(entry["speed_target_ms"]),
        precision_tolerance_px=float(entry.get("precision_tolerance_px", 30.0)),
        inclination_angle=float(angle) if angle is not None else None,
        is_cursive=bool(entry.get("is_cursive", True)),
    )
    if letter.speed_target_ms <= 0:
        raise ValueError(f"Letter '{letter.letter_id}' needs a positive speed_target_ms.")
    anchor = entry.get("anchor") or [0.0, 0.0]
    scale = float(entry.get("scale", 1.0))
    reference, _ = reference_or_placeholder(letter.letter_id, float(anchor[0]), float(anchor[1]), scale, shapes)
    return ExerciseTarget(
        letter=letter,
        anchor_x=float(anchor[0]),
        anchor_y=float(anchor[1]),
        scale=scale,
        reference=reference,
    )


def _check_prerequisite_cycles(competences: Mapping[str, Competence]) -> None:
    visiting: Dict[str, bool] = {}

    def visit(code: str, path: List[str]) -> None:
        state = visiting.get(code)
        if state is True:
            raise ValueError(f"Prerequisite cycle: {' -> '.join(path + [code])}")
        if state is False:
            return
        visiting[code] = True
        for prereq in sorted(competences[code].prerequisites):
            visit(prereq, path + [code])
        visiting[code] = False

    for code in sorted(competences):
        visit(code, [])


def catalog_from_dict(cfg: Mapping[str, Any], shapes: Optional[Mapping[str, LetterShape]] = None) -> Catalog:
    competences = {
        str(code): _build_competence(str(code), entry) for code, entry in (cfg.get("competences") or {}).items()
    }
    for competence in competences.values():
        missing = sorted(competence.prerequisites - competences.keys())
        if missing:
            raise ValueError(f"Competence '{competence.code}' has unknown prerequisites: {missing}")
    _check_prerequisite_cycles(competences)

    exercises: List[Exercise] = []
    seen = set()
    for entry in cfg.get("exercises") or []:
        exercise_id = str(entry["id"])
        if exercise_id in seen:
            raise ValueError(f"Duplicate exercise id '{exercise_id}'.")
        seen.add(exercise_id)
        competence_code = str(entry["competence"])
        if competence_code not in competences:
            raise ValueError(f"Exercise '{exercise_id}' references unknown competence '{competence_code}'.")
        targets = tuple(_build_target(t, shapes) for t in entry.get("targets") or [])
        if not targets:
            raise ValueError(f"Exercise '{exercise_id}' has no targets.")
        exercises.append(
            Exercise(
                id=exercise_id,
                competence_code=competence_code,
                targets=targets,
                points=int(entry.get("points", 0)),
                title=entry.get("title", ""),
                kind=entry.get("kind", "entrainement"),
            )
        )

    return Catalog(competences=competences, exercises=tuple(exercises))


def load_catalog(path: Path, shapes: Optional[Mapping[str, LetterShape]] = None) -> Catalog:
    with open(path, encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    catalog = catalog_from_dict(cfg, shapes)
    logger.info(
        "Loaded catalog %s: %d competences, %d exercises", path, len(catalog.competences), len(catalog.exercises)
    )
    return catalog
