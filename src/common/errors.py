# ABOUTME: Declares the recoverable error taxonomy raised by the handwriting core.
# ABOUTME: Each error carries a UI tag so callers can prompt a retry instead of crashing.

from __future__ import annotations

from typing import Dict, Optional


class HandwritingError(Exception):
    """Base class for every error raised by the trace and scoring layers.

    Attributes:
        message: Human-readable description.
        details: Extra context (letter id, point counts, ...).
        tag: Stable identifier the UI maps to a retry message.
    """

    tag = "handwriting_error"

    def __init__(self, message: str, details: Optional[Dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class InvalidState(HandwritingError):
    """A trace was appended to or evaluated in the wrong lifecycle state."""

    tag = "invalid_trace_state"


class EmptyTrace(InvalidState):
    """Finalize was called on a trace without any point."""

    tag = "empty_trace"


class InsufficientTrace(HandwritingError):
    """The user gesture has too few points to be scored."""

    tag = "trace_too_short"


class UnknownLetter(HandwritingError):
    tag = "unknown_letter"


class MissingReference(HandwritingError):
    tag = "missing_reference"


class DegenerateReference(HandwritingError):
    """The reference trace cannot be resampled (too few points or zero length)."""

    tag = "degenerate_reference"
