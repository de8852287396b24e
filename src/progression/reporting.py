# ABOUTME: Collects evaluations for the external analytics layer and summarizes them per competence.
# ABOUTME: Acts as a fire-and-forget tracker sink; exports parquet like the other report artifacts.

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pandas as pd

from src.common.schemas import Evaluation

EVALUATION_COLUMNS = [
    "session_id",
    "competence_code",
    "letter_id",
    "precision",
    "speed",
    "fluidity",
    "inclination",
    "pressure",
    "aggregate",
    "validated",
    "next_action",
    "tags",
    "started_at_ms",
    "finished_at_ms",
    "duration_ms",
    "pressure_consistent",
]

SUMMARY_COLUMNS = [
    "competence_code",
    "attempts",
    "best_aggregate",
    "mean_aggregate",
    "validated_count",
    "first_validated_ms",
]


def evaluation_row(session_id: str, evaluation: Evaluation) -> Dict:
    row = {"session_id": session_id, "competence_code": evaluation.competence_code, "letter_id": evaluation.letter_id}
    row.update(evaluation.scores.as_dict())
    row.update(
        {
            "aggregate": evaluation.aggregate,
            "validated": evaluation.validated,
            "next_action": evaluation.next_action.value,
            "tags": list(evaluation.tags),
            "started_at_ms": evaluation.started_at_ms,
            "finished_at_ms": evaluation.finished_at_ms,
            "duration_ms": evaluation.duration_ms,
            "pressure_consistent": evaluation.pressure_consistent,
        }
    )
    return row


class EvaluationLog:
    """In-memory buffer of evaluation rows; register it on a ProgressionTracker as a sink."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._rows: List[Dict] = []

    def __call__(self, competence_code: str, evaluation: Evaluation) -> None:
        self._rows.append(evaluation_row(self.session_id, evaluation))

    def __len__(self) -> int:
        return len(self._rows)

    def to_frame(self) -> pd.DataFrame:
        if not self._rows:
            return pd.DataFrame(columns=EVALUATION_COLUMNS)
        return pd.DataFrame(self._rows, columns=EVALUATION_COLUMNS)

    def write_parquet(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_frame().to_parquet(path, index=False)
        return path


def summarize_competences(evaluations: pd.DataFrame) -> pd.DataFrame:
    """
    Per-competence attempt summary.

    Steps:
    - Count attempts and validated attempts per competence.
    - Keep the best and mean aggregate score.
    - Record the finish time of the first validated attempt (NaN if none).
    """

    if evaluations is None or evaluations.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    df = evaluations.copy()
    df["validated"] = df["validated"].astype(bool)
    df["validated_at_ms"] = df["finished_at_ms"].where(df["validated"])

    grouped = (
        df.groupby("competence_code")
        .agg(
            attempts=("aggregate", "count"),
            best_aggregate=("aggregate", "max"),
            mean_aggregate=("aggregate", "mean"),
            validated_count=("validated", "sum"),
            first_validated_ms=("validated_at_ms", "min"),
        )
        .reset_index()
    )
    grouped["validated_count"] = grouped["validated_count"].astype(int)
    return grouped[SUMMARY_COLUMNS]
