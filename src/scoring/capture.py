# ABOUTME: Records pen-down/move/up samples from the stylus layer into a user trace.
# ABOUTME: Rebases device timestamps to the pen-down time and classifies pressure live.

from __future__ import annotations

import logging
from typing import Optional

from src.common.config import PressureConfig
from src.common.errors import InvalidState
from src.common.trace import Trace, TracePoint

from .pressure import PressureState, classify_with_config

logger = logging.getLogger(__name__)


class StrokeRecorder:
    """
    Builds one user trace per pen gesture.

    Only one trace is open at a time. The recorder can be cancelled at any
    point (pen lift outside the canvas, device disconnect) without side
    effects: nothing is scored until `pen_up` hands back a finalized trace.
    """

    def __init__(self, pressure_config: Optional[PressureConfig] = None):
        self.pressure_config = pressure_config or PressureConfig()
        self._trace: Optional[Trace] = None
        self._started_at_ms: Optional[int] = None
        self._last_ms = 0

    @property
    def recording(self) -> bool:
        return self._trace is not None

    @property
    def started_at_ms(self) -> Optional[int]:
        return self._started_at_ms

    def pen_down(self, x: float, y: float, timestamp_ms: int, pressure: float) -> PressureState:
        if self._trace is not None:
            logger.debug("pen_down while recording; discarding the unfinished trace")
        self._trace = Trace.open()
        self._started_at_ms = int(timestamp_ms)
        self._last_ms = 0
        return self._add(x, y, timestamp_ms, pressure)

    def pen_move(self, x: float, y: float, timestamp_ms: int, pressure: float) -> PressureState:
        if self._trace is None:
            raise InvalidState("pen_move received before pen_down.")
        return self._add(x, y, timestamp_ms, pressure)

    def pen_up(self) -> Trace:
        if self._trace is None:
            raise InvalidState("pen_up received before pen_down.")
        trace = self._trace
        self._trace = None
        return trace.finalize()

    def cancel(self) -> None:
        self._trace = None
        self._started_at_ms = None
        self._last_ms = 0

    def _add(self, x: float, y: float, timestamp_ms: int, pressure: float) -> PressureState:
        relative = int(timestamp_ms) - int(self._started_at_ms)
        # Device clocks occasionally step back by a frame; keep the trace monotonic.
        relative = max(relative, self._last_ms)
        self._last_ms = relative
        pressure = min(1.0, max(0.0, float(pressure)))
        self._trace.append(TracePoint(x=float(x), y=float(y), timestamp_ms=relative, pressure=pressure))
        return classify_with_config(pressure, self.pressure_config)
