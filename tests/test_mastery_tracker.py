# ABOUTME: Tests the per-competence mastery state machine and the session tracker.
# ABOUTME: Covers transitions, mastery monotonicity, session isolation, and sink failures.

import unittest

import pytest

from src.common.schemas import Evaluation, NextAction, SubScores
from src.progression.mastery import (
    CompetenceMastery,
    MasteryBook,
    MasteryStatus,
    ProgressionTracker,
    apply_evaluation,
)

CODE = "CP.FR.L1.1"


def _evaluation(letter="a", aggregate=60, validated=False, finished_at_ms=1000, code=CODE):
    return Evaluation(
        competence_code=code,
        letter_id=letter,
        scores=SubScores(aggregate, aggregate, aggregate, aggregate, aggregate),
        aggregate=aggregate,
        validated=validated,
        tags=(),
        next_action=NextAction.ADVANCE if validated else NextAction.RETRY_WITH_ADVICE,
        finished_at_ms=finished_at_ms,
    )


class ApplyEvaluationTests(unittest.TestCase):
    def test_first_attempt_starts_progress(self):
        state = apply_evaluation(CompetenceMastery(code=CODE), _evaluation(aggregate=55), ("ex_a", 0))
        self.assertIs(state.status, MasteryStatus.IN_PROGRESS)
        self.assertEqual(state.attempts, 1)
        self.assertEqual(state.best_score, 55)
        self.assertEqual(state.attempts_for("ex_a", 0), 1)
        self.assertEqual(state.attempts_for("ex_a", 1), 0)
        self.assertIsNone(state.mastered_at_ms)

    def test_best_score_never_decreases(self):
        state = CompetenceMastery(code=CODE)
        for aggregate in (50, 72, 64):
            state = apply_evaluation(state, _evaluation(aggregate=aggregate))
        self.assertEqual(state.best_score, 72)
        self.assertEqual(state.attempts, 3)

    def test_validation_masters_with_timestamp(self):
        state = apply_evaluation(CompetenceMastery(code=CODE), _evaluation(aggregate=50))
        state = apply_evaluation(state, _evaluation(aggregate=92, validated=True, finished_at_ms=4200), ("ex_a", 0))
        self.assertIs(state.status, MasteryStatus.MASTERED)
        self.assertEqual(state.mastered_at_ms, 4200)
        self.assertEqual(state.validated_letters, frozenset({"a"}))
        self.assertTrue(state.is_target_validated("ex_a", 0))

    def test_mastery_is_terminal(self):
        state = apply_evaluation(
            CompetenceMastery(code=CODE), _evaluation(aggregate=90, validated=True, finished_at_ms=100)
        )
        state = apply_evaluation(state, _evaluation(letter="i", aggregate=20, finished_at_ms=900))
        self.assertTrue(state.mastered)
        self.assertEqual(state.mastered_at_ms, 100)
        self.assertEqual(state.attempts, 2)
        self.assertEqual(state.best_score, 90)
        self.assertNotIn("i", state.validated_letters)

    def test_input_state_is_not_mutated(self):
        before = CompetenceMastery(code=CODE)
        apply_evaluation(before, _evaluation(), ("ex_a", 0))
        self.assertEqual(before.attempts, 0)
        self.assertEqual(dict(before.target_attempts), {})

    def test_repeated_letter_positions_are_tracked_apart(self):
        state = apply_evaluation(CompetenceMastery(code=CODE), _evaluation(letter="l", validated=True), ("word_ll", 0))
        state = apply_evaluation(state, _evaluation(letter="l"), ("word_ll", 1))
        self.assertTrue(state.is_target_validated("word_ll", 0))
        self.assertFalse(state.is_target_validated("word_ll", 1))
        self.assertEqual(state.attempts_for("word_ll", 1), 1)
        self.assertEqual(state.validated_letters, frozenset({"l"}))

    def test_without_target_only_competence_counters_move(self):
        state = apply_evaluation(CompetenceMastery(code=CODE), _evaluation(validated=True))
        self.assertTrue(state.mastered)
        self.assertEqual(state.attempts, 1)
        self.assertEqual(state.validated_targets, frozenset())
        self.assertEqual(dict(state.target_attempts), {})


def test_book_defaults_to_not_started():
    book = MasteryBook()
    assert book.get("X").status is MasteryStatus.NOT_STARTED
    assert not book.is_mastered("X")
    assert book.mastered_codes() == frozenset()


def test_tracker_snapshots_are_immutable():
    tracker = ProgressionTracker()
    before = tracker.snapshot()
    tracker.record_evaluation(CODE, _evaluation(validated=True))

    assert before.get(CODE).status is MasteryStatus.NOT_STARTED
    assert tracker.snapshot().is_mastered(CODE)
    assert tracker.snapshot().mastered_codes() == frozenset({CODE})
    assert [s.code for s in tracker.snapshot()] == [CODE]


def test_trackers_do_not_share_state():
    first, second = ProgressionTracker(), ProgressionTracker()
    first.record_evaluation(CODE, _evaluation(validated=True))
    assert first.snapshot().is_mastered(CODE)
    assert second.snapshot().get(CODE).attempts == 0


def test_code_mismatch_rejected():
    tracker = ProgressionTracker()
    with pytest.raises(ValueError):
        tracker.record_evaluation("CP.FR.E1.1", _evaluation())
    assert tracker.snapshot().get("CP.FR.E1.1").attempts == 0


def test_failing_sink_does_not_block_progression():
    received = []

    def broken(code, evaluation):
        raise RuntimeError("analytics offline")

    tracker = ProgressionTracker(sinks=[broken])
    tracker.add_sink(lambda code, evaluation: received.append((code, evaluation.letter_id)))
    state = tracker.record_evaluation(CODE, _evaluation(validated=True))

    assert state.mastered
    assert received == [(CODE, "a")]


def test_tracker_records_target_position():
    tracker = ProgressionTracker()
    state = tracker.record_evaluation(CODE, _evaluation(letter="l"), ("word_ll", 1))

    assert state.attempts_for("word_ll", 1) == 1
    assert tracker.snapshot().get(CODE).attempts_for("word_ll", 0) == 0


def test_snapshot_mappings_are_read_only():
    tracker = ProgressionTracker()
    tracker.record_evaluation(CODE, _evaluation(), ("ex_a", 0))
    snapshot = tracker.snapshot()
    state = snapshot.get(CODE)

    with pytest.raises(TypeError):
        snapshot.states["CP.FR.E1.1"] = CompetenceMastery(code="CP.FR.E1.1")
    with pytest.raises(TypeError):
        state.target_attempts[("ex_a", 0)] = 99

    assert "CP.FR.E1.1" not in tracker.snapshot().states
    assert tracker.snapshot().get(CODE).attempts_for("ex_a", 0) == 1


def test_book_copies_the_mapping_it_is_given():
    states = {CODE: CompetenceMastery(code=CODE, status=MasteryStatus.MASTERED)}
    book = MasteryBook(states=states)
    states.clear()

    assert book.is_mastered(CODE)
