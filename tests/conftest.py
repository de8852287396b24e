# ABOUTME: Shared fixtures for the scoring and progression test suites.
# ABOUTME: Provides the bundled catalog and a helper that replays reference traces as user input.

from __future__ import annotations

from pathlib import Path

import pytest

from src.common.trace import Trace, TracePoint
from src.progression.catalog import load_catalog

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(scope="session")
def catalog_path() -> Path:
    return REPO_ROOT / "configs" / "cp2025_catalog.yaml"


@pytest.fixture(scope="session")
def engine_config_path() -> Path:
    return REPO_ROOT / "configs" / "engine.yaml"


@pytest.fixture()
def catalog(catalog_path):
    return load_catalog(catalog_path)


@pytest.fixture()
def replay():
    """Factory: finalized user copy of a reference with offset, duration and pressure."""

    def _replay(reference: Trace, dx: float = 0.0, dy: float = 0.0, duration_ms=None, pressure: float = 0.5) -> Trace:
        ref_duration = reference.duration_ms() or 1
        ratio = 1.0 if duration_ms is None else duration_ms / ref_duration
        return Trace.from_points(
            TracePoint(p.x + dx, p.y + dy, int(round(p.timestamp_ms * ratio)), pressure) for p in reference.points
        )

    return _replay
