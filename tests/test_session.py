# ABOUTME: Tests the practice session loop over the bundled curriculum.
# ABOUTME: Replays reference letters as submissions and checks mastery, errors, and completion.

import pytest

from src.common.config import EngineConfig, ProgressionConfig
from src.common.errors import InvalidState
from src.common.trace import Trace
from src.progression.catalog import catalog_from_dict
from src.progression.mastery import MasteryStatus
from src.progression.selection import NextExercise
from src.progression.session import PracticeSession
from src.scoring.letters import generate_reference_trace


def _submit_replay(session, replay, clock_ms=0, **kwargs):
    _, target, _ = session.current_target()
    trace = replay(target.reference, duration_ms=target.letter.speed_target_ms, **kwargs)
    return session.submit(trace, clock_ms)


def test_session_starts_at_first_letter(catalog):
    session = PracticeSession(catalog)
    assert session.current_step == NextExercise("cp_fr_l1_1_vowels", 0, "a")
    exercise, target, competence = session.current_target()
    assert exercise.id == "cp_fr_l1_1_vowels"
    assert target.letter.letter_id == "a"
    assert competence.code == "CP.FR.L1.1"


def test_exact_replay_validates_and_advances(catalog, replay):
    session = PracticeSession(catalog)
    result = _submit_replay(session, replay, clock_ms=2000)

    assert result.ok
    assert result.evaluation.validated
    assert result.mastery.status is MasteryStatus.MASTERED
    assert result.mastery.mastered_at_ms == 2000 + 3000
    assert result.next_step == NextExercise("cp_fr_l1_1_vowels", 1, "i")
    assert result.message == "Skill validated! On to the next one."


def test_far_replay_stays_on_the_letter(catalog, replay):
    session = PracticeSession(catalog)
    result = _submit_replay(session, replay, dx=60.0)

    assert result.ok
    assert not result.evaluation.validated
    assert result.mastery.status is MasteryStatus.IN_PROGRESS
    assert result.next_step == NextExercise("cp_fr_l1_1_vowels", 0, "a")


def test_short_trace_is_rejected_without_touching_mastery(catalog):
    session = PracticeSession(catalog)
    _, target, _ = session.current_target()
    result = session.submit(Trace.from_points(target.reference.points[:3]), 0)

    assert not result.ok
    assert result.error_tag == "trace_too_short"
    assert result.message == "Trace too short, try again."
    assert result.evaluation is None
    assert session.tracker.snapshot().get("CP.FR.L1.1").attempts == 0
    assert session.current_step == NextExercise("cp_fr_l1_1_vowels", 0, "a")


def test_perfect_replays_complete_the_curriculum(catalog, replay):
    session = PracticeSession(catalog)
    visited = []
    while not session.complete:
        step = session.current_step
        visited.append((step.exercise_id, step.letter_id))
        result = _submit_replay(session, replay, clock_ms=len(visited) * 10_000)
        assert result.evaluation.validated, (step, result.evaluation)
        assert len(visited) < 20

    assert [letter for _, letter in visited] == ["a", "i", "o", "l", "m", "e", "u", "n", "c", "t"]
    assert session.tracker.snapshot().mastered_codes() == frozenset(catalog.competences)
    with pytest.raises(InvalidState):
        session.current_target()


def test_retry_cap_moves_past_a_failing_letter(catalog, replay):
    config = EngineConfig(progression=ProgressionConfig(max_attempts_per_letter=2))
    session = PracticeSession(catalog, config)
    _submit_replay(session, replay, dx=60.0)
    result = _submit_replay(session, replay, dx=60.0)

    assert result.next_step == NextExercise("cp_fr_l1_1_vowels", 1, "i")


def test_finish_stroke_uses_recorder(catalog):
    session = PracticeSession(catalog)
    _, target, _ = session.current_target()
    points = target.reference.points
    step = target.letter.speed_target_ms // (len(points) - 1)

    session.recorder.pen_down(points[0].x, points[0].y, 50_000, 0.5)
    for i, point in enumerate(points[1:], start=1):
        session.recorder.pen_move(point.x, point.y, 50_000 + i * step, 0.5)
    result = session.finish_stroke()

    assert result.ok
    assert result.evaluation.started_at_ms == 50_000
    assert result.evaluation.scores.precision == 100
    assert result.evaluation.validated


THRESHOLDS = {"precision": 80, "speed": 60, "fluidity": 70, "inclination": 70}


def _word_catalog(*letters):
    return catalog_from_dict(
        {
            "competences": {"A": {"thresholds": THRESHOLDS}},
            "exercises": [
                {
                    "id": "word_" + "".join(letters),
                    "competence": "A",
                    "targets": [
                        {"letter": letter, "anchor": [20 + 30 * i, 100], "speed_target_ms": 700}
                        for i, letter in enumerate(letters)
                    ],
                }
            ],
        }
    )


def test_repeated_letter_is_practised_at_each_position(replay):
    session = PracticeSession(_word_catalog("l", "l", "e"))
    assert session.current_step == NextExercise("word_lle", 0, "l")

    first = _submit_replay(session, replay)
    assert first.evaluation.validated
    assert first.next_step == NextExercise("word_lle", 1, "l")

    second = _submit_replay(session, replay)
    assert second.evaluation.validated
    assert second.next_step == NextExercise("word_lle", 2, "e")
    assert session.tracker.snapshot().get("A").attempts_for("word_lle", 1) == 1


def test_unknown_letter_is_a_retry_not_a_crash(replay):
    session = PracticeSession(_word_catalog("ß"))
    _, target, _ = session.current_target()
    user = replay(generate_reference_trace("i", 20, 100))

    result = session.submit(user, 0)

    assert len(target.reference) == 1
    assert not result.ok
    assert result.error_tag == "degenerate_reference"
    assert session.tracker.snapshot().get("A").attempts == 0


def test_pen_up_without_a_stroke_is_a_retry(catalog):
    session = PracticeSession(catalog)
    result = session.finish_stroke()

    assert not result.ok
    assert result.error_tag == "invalid_trace_state"
    assert result.evaluation is None
    assert result.next_step == NextExercise("cp_fr_l1_1_vowels", 0, "a")
    assert session.tracker.snapshot().get("CP.FR.L1.1").attempts == 0
