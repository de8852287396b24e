# ABOUTME: Defines the timestamped, pressure-tagged point sequence shared by every engine.
# ABOUTME: Reference traces are frozen at construction; user traces are appended then finalized.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Tuple

import numpy as np

from .errors import EmptyTrace, InvalidState


@dataclass(frozen=True)
class TracePoint:
    """One pen sample in canvas space."""

    x: float
    y: float
    timestamp_ms: int
    pressure: float = 0.5


class TraceKind(str, Enum):
    REFERENCE = "reference"
    USER = "user"


class Trace:
    """
    Ordered sequence of TracePoint.

    A user trace is created open at pen-down, grows with `append` on every
    pen-move and is frozen by `finalize` at pen-up. Reference traces are built
    already frozen and can be shared between evaluations.
    """

    def __init__(self, kind: TraceKind, points: Iterable[TracePoint] = (), finalized: bool = False):
        self.kind = kind
        self._points: List[TracePoint] = []
        self._finalized = False
        for point in points:
            self._push(point)
        if finalized:
            self.finalize()

    @classmethod
    def open(cls) -> "Trace":
        return cls(TraceKind.USER)

    @classmethod
    def reference(cls, points: Iterable[TracePoint]) -> "Trace":
        return cls(TraceKind.REFERENCE, points, finalized=True)

    @classmethod
    def from_points(cls, points: Iterable[TracePoint]) -> "Trace":
        """Build an already finalized user trace, e.g. when replaying stored samples."""
        return cls(TraceKind.USER, points, finalized=True)

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def points(self) -> Tuple[TracePoint, ...]:
        return tuple(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self):
        return iter(self._points)

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else "open"
        return f"Trace(kind={self.kind.value}, points={len(self._points)}, {state})"

    def append(self, point: TracePoint) -> None:
        if self.kind is TraceKind.REFERENCE:
            raise InvalidState("Reference traces are immutable.")
        if self._finalized:
            raise InvalidState("Cannot append to a finalized trace.", {"points": len(self._points)})
        self._push(point)

    def finalize(self) -> "Trace":
        if self._finalized:
            return self
        if not self._points:
            raise EmptyTrace("Cannot finalize a trace without points.")
        self._finalized = True
        return self

    def _push(self, point: TracePoint) -> None:
        if self._points and point.timestamp_ms < self._points[-1].timestamp_ms:
            raise InvalidState(
                "Trace timestamps must be non-decreasing.",
                {"previous_ms": self._points[-1].timestamp_ms, "timestamp_ms": point.timestamp_ms},
            )
        self._points.append(point)

    # numpy views used by the scoring engine

    def xy(self) -> np.ndarray:
        if not self._points:
            return np.zeros((0, 2), dtype=np.float64)
        return np.array([(p.x, p.y) for p in self._points], dtype=np.float64)

    def timestamps(self) -> np.ndarray:
        return np.array([p.timestamp_ms for p in self._points], dtype=np.int64)

    def pressures(self) -> np.ndarray:
        return np.array([p.pressure for p in self._points], dtype=np.float64)

    def duration_ms(self) -> int:
        if not self._points:
            return 0
        return int(self._points[-1].timestamp_ms - self._points[0].timestamp_ms)
