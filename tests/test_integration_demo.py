# ABOUTME: End-to-end pipeline test from pen events to the competence summary.
# ABOUTME: Ensures capture, scoring, mastery tracking, selection, and reporting fit together.

from src.progression.mastery import ProgressionTracker
from src.progression.reporting import EvaluationLog, summarize_competences
from src.progression.selection import NextExercise
from src.progression.session import PracticeSession


def _draw(session, offset, start_ms):
    _, target, _ = session.current_target()
    points = target.reference.points
    step = target.letter.speed_target_ms // (len(points) - 1)
    session.recorder.pen_down(points[0].x + offset, points[0].y, start_ms, 0.5)
    for i, point in enumerate(points[1:], start=1):
        session.recorder.pen_move(point.x + offset, point.y, start_ms + i * step, 0.5)
    return session.finish_stroke()


def test_capture_to_summary_pipeline(catalog):
    log = EvaluationLog(session_id="learner-1")
    session = PracticeSession(catalog, tracker=ProgressionTracker(sinks=[log]))

    first = _draw(session, offset=45.0, start_ms=1_000)
    assert not first.evaluation.validated
    assert first.next_step == NextExercise("cp_fr_l1_1_vowels", 0, "a")

    second = _draw(session, offset=0.0, start_ms=10_000)
    assert second.evaluation.validated
    assert second.next_step == NextExercise("cp_fr_l1_1_vowels", 1, "i")

    summary = summarize_competences(log.to_frame())
    row = summary.set_index("competence_code").loc["CP.FR.L1.1"]
    assert row["attempts"] == 2
    assert row["validated_count"] == 1
    assert row["first_validated_ms"] == second.evaluation.finished_at_ms
    assert session.tracker.snapshot().get("CP.FR.L1.1").mastered_at_ms == second.evaluation.finished_at_ms
