# ABOUTME: Tests rendering of evaluation tags into comments, advice, and next-step text.
# ABOUTME: Also checks the retry messages shown for recoverable engine errors.

from src.common.errors import DegenerateReference, EmptyTrace, HandwritingError, InsufficientTrace
from src.common.schemas import Evaluation, NextAction, SubScores
from src.scoring.feedback import NEXT_STEP_MESSAGES, TAG_MESSAGES, error_message, render_feedback


def _evaluation(tags, next_action=NextAction.RETRY_WITH_ADVICE):
    return Evaluation(
        competence_code="CP.FR.E1.1",
        letter_id="l",
        scores=SubScores(40, 50, 60, 90, 50),
        aggregate=55,
        validated=False,
        tags=tuple(tags),
        next_action=next_action,
    )


def test_praise_tags_have_no_advice():
    feedback = render_feedback(_evaluation(["very_precise", "fluid"], NextAction.ADVANCE))
    assert feedback.comments == (TAG_MESSAGES["very_precise"][0], TAG_MESSAGES["fluid"][0])
    assert feedback.advice == ()
    assert feedback.next_step == "Skill validated! On to the next one."


def test_problem_tags_add_advice_in_order():
    feedback = render_feedback(_evaluation(["imprecise", "too_fast", "jerky", "good_slant"]))
    assert len(feedback.comments) == 4
    assert feedback.advice == (
        "Trace slowly over the model letter.",
        "Take your time on each curve.",
        "Write more smoothly, without stopping.",
    )
    assert feedback.next_step == NEXT_STEP_MESSAGES[NextAction.RETRY_WITH_ADVICE]


def test_unknown_tag_falls_back_to_readable_text():
    feedback = render_feedback(_evaluation(["new_tag"], NextAction.RETRY_ALMOST))
    assert feedback.comments == ("new tag",)
    assert feedback.next_step == "Almost there! One more try."


def test_every_tag_emitted_by_the_engine_has_a_message():
    engine_tags = {
        "imprecise", "follow_model", "very_precise", "too_fast", "too_slow", "good_pace", "jerky",
        "fluid", "slant_off", "good_slant", "irregular_pressure", "steady_pressure", "no_pressure",
    }
    assert engine_tags <= set(TAG_MESSAGES)


def test_error_messages():
    assert error_message(InsufficientTrace("short")) == "Trace too short, try again."
    assert error_message(EmptyTrace("empty")) == "Nothing was drawn, try again."
    assert error_message(DegenerateReference("bad")) == "This letter is not available yet."
    assert error_message(HandwritingError("other")) == "Try again."
