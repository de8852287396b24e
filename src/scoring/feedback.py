# ABOUTME: Turns evaluation tags into child-facing comments, advice, and a next-step line.
# ABOUTME: Pure function of the Evaluation so feedback never depends on engine state.

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from src.common.errors import HandwritingError
from src.common.schemas import Evaluation, NextAction

# tag -> (comment, advice); advice is None for praise tags.
TAG_MESSAGES = {
    "imprecise": ("Your letter is far from the model.", "Trace slowly over the model letter."),
    "follow_model": ("The shape needs work.", "Follow the model more closely."),
    "very_precise": ("Very precise tracing!", None),
    "too_fast": ("A bit too fast.", "Take your time on each curve."),
    "too_slow": ("A bit slow.", "Try to write in one smooth go."),
    "good_pace": ("Great speed!", None),
    "jerky": ("The movement is jerky.", "Write more smoothly, without stopping."),
    "fluid": ("Very fluid movement!", None),
    "slant_off": ("The slant needs fixing.", "Lean your letter a little to the right."),
    "good_slant": ("Perfect cursive slant!", None),
    "irregular_pressure": ("Pressure is irregular.", "Keep the same pressure all along."),
    "steady_pressure": ("Excellent stylus control!", None),
    "no_pressure": ("No pen pressure was detected.", "Use the stylus if you have one."),
}

NEXT_STEP_MESSAGES = {
    NextAction.ADVANCE: "Skill validated! On to the next one.",
    NextAction.RETRY_ALMOST: "Almost there! One more try.",
    NextAction.RETRY_WITH_ADVICE: "Try again using the tips.",
}

ERROR_MESSAGES = {
    "trace_too_short": "Trace too short, try again.",
    "empty_trace": "Nothing was drawn, try again.",
    "invalid_trace_state": "Something went wrong with the trace, try again.",
    "unknown_letter": "This letter is not available yet.",
    "missing_reference": "This letter is not available yet.",
    "degenerate_reference": "This letter is not available yet.",
}


@dataclass(frozen=True)
class Feedback:
    comments: Tuple[str, ...]
    advice: Tuple[str, ...]
    next_step: str


def render_feedback(evaluation: Evaluation) -> Feedback:
    comments: List[str] = []
    advice: List[str] = []
    for tag in evaluation.tags:
        comment, tip = TAG_MESSAGES.get(tag, (tag.replace("_", " "), None))
        comments.append(comment)
        if tip:
            advice.append(tip)
    return Feedback(
        comments=tuple(comments),
        advice=tuple(advice),
        next_step=NEXT_STEP_MESSAGES[evaluation.next_action],
    )


def error_message(error: HandwritingError) -> str:
    return ERROR_MESSAGES.get(error.tag, "Try again.")
