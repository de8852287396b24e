# ABOUTME: Provides a CLI that replays reference letters through the scoring and progression engines.
# ABOUTME: Lets contributors inspect sub-scores, pressure bands, and curriculum progression from a terminal.

import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from src.common.config import load_engine_config
from src.common.errors import HandwritingError
from src.common.schemas import Competence, LetterTarget, MasteryThresholds
from src.common.trace import Trace, TracePoint
from src.progression.catalog import load_catalog
from src.progression.mastery import ProgressionTracker
from src.progression.reporting import EvaluationLog, summarize_competences
from src.progression.selection import NextExercise
from src.progression.session import PracticeSession
from src.scoring.engine import evaluate
from src.scoring.feedback import error_message, render_feedback
from src.scoring.geometry import dominant_stroke_angle
from src.scoring.letters import LETTER_SHAPES, generate_reference_trace, supported_letters
from src.scoring.pressure import classify_pressure

console = Console()
app = typer.Typer(help="Replay cursive letters through the handwriting evaluation engine.")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show engine debug logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def replay_trace(reference: Trace, offset_x: float, offset_y: float, duration_ms: int, pressure: float) -> Trace:
    """Copy a reference trace with a uniform offset, stretched to `duration_ms`."""

    points = reference.points
    ref_duration = reference.duration_ms() or 1
    ratio = duration_ms / ref_duration
    return Trace.from_points(
        TracePoint(
            x=p.x + offset_x,
            y=p.y + offset_y,
            timestamp_ms=int(round(p.timestamp_ms * ratio)),
            pressure=pressure,
        )
        for p in points
    )


@app.command()
def letters() -> None:
    """List the authored letter shapes."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Letter")
    table.add_column("Control points")
    table.add_column("Duration (ms)")
    table.add_column("Stroke angle")
    for letter_id in supported_letters():
        trace = generate_reference_trace(letter_id, 0.0, 0.0)
        table.add_row(
            letter_id,
            str(len(LETTER_SHAPES[letter_id].offsets)),
            str(trace.duration_ms()),
            f"{dominant_stroke_angle(trace.xy()):.1f}°",
        )
    console.print(table)


@app.command()
def pressure(
    samples: List[float] = typer.Argument(..., help="Pressure samples between 0 and 1."),
    ideal: float = typer.Option(0.5, "--ideal", help="Ideal pressure center."),
    tolerance: float = typer.Option(0.15, "--tolerance", help="Half-width of the ideal band."),
) -> None:
    """Classify raw stylus pressure samples."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Sample")
    table.add_column("Band")
    table.add_column("Deviation")
    table.add_column("Advice")
    for sample in samples:
        state = classify_pressure(sample, ideal, tolerance)
        table.add_row(f"{sample:.2f}", state.band.value, f"{state.deviation:+.2f}", state.advisory_message)
    console.print(table)


@app.command()
def replay(
    letter: str = typer.Option("i", "--letter", help="Letter to replay."),
    anchor_x: float = typer.Option(120.0, "--anchor-x", help="Anchor x in canvas pixels."),
    anchor_y: float = typer.Option(180.0, "--anchor-y", help="Anchor y in canvas pixels."),
    offset_x: float = typer.Option(0.0, "--offset-x", help="Uniform x offset applied to the replay."),
    offset_y: float = typer.Option(0.0, "--offset-y", help="Uniform y offset applied to the replay."),
    duration_ms: int = typer.Option(500, "--duration-ms", help="Duration of the replayed gesture."),
    speed_target_ms: int = typer.Option(500, "--speed-target-ms", help="Target duration for the letter."),
    pen_pressure: float = typer.Option(0.5, "--pressure", help="Constant pressure of the replay."),
    config: Path = typer.Option(None, "--config", help="Engine config YAML."),
) -> None:
    """
    Score a shifted copy of a reference letter and print the evaluation.
    """
    engine_config = load_engine_config(config)
    try:
        reference = generate_reference_trace(letter, anchor_x, anchor_y)
    except HandwritingError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    user = replay_trace(reference, offset_x, offset_y, duration_ms, pen_pressure)
    competence = Competence(
        code="DEMO",
        thresholds=MasteryThresholds(precision=80, speed=60, fluidity=70, inclination=70),
    )
    target = LetterTarget(letter_id=letter, speed_target_ms=speed_target_ms)
    try:
        evaluation = evaluate(user, reference, target, 0, competence, engine_config)
    except HandwritingError as exc:
        console.print(f"[red]{error_message(exc)}[/red] ({exc.tag})")
        raise typer.Exit(code=1)

    console.rule(f"[bold blue]Letter '{letter}'[/bold blue]")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Criterion")
    table.add_column("Score")
    for name, value in evaluation.scores.as_dict().items():
        table.add_row(name, str(value))
    table.add_row("[bold]aggregate[/bold]", f"[bold]{evaluation.aggregate}[/bold]")
    console.print(table)

    color = "green" if evaluation.validated else "yellow"
    feedback = render_feedback(evaluation)
    console.print(f"[{color}]validated={evaluation.validated}[/{color}] → {feedback.next_step}")
    for comment in feedback.comments:
        console.print(f"  • {comment}")
    for tip in feedback.advice:
        console.print(f"  → {tip}")


@app.command()
def curriculum(
    catalog_path: Path = typer.Option(Path("configs/cp2025_catalog.yaml"), "--catalog", help="Catalog YAML."),
    config: Path = typer.Option(None, "--config", help="Engine config YAML."),
    offset: float = typer.Option(0.0, "--offset", help="Offset in pixels applied to every replay."),
    max_submissions: int = typer.Option(50, "--max-submissions", help="Stop after this many submissions."),
    output: Path = typer.Option(None, "--output", help="Optional parquet path for the evaluation log."),
) -> None:
    """
    Walk the curriculum by replaying each reference letter until it is complete.
    """
    engine_config = load_engine_config(config)
    catalog = load_catalog(catalog_path)
    log = EvaluationLog(session_id="demo")
    session = PracticeSession(catalog, engine_config, ProgressionTracker(sinks=[log]))

    submissions = 0
    clock_ms = 0
    while not session.complete and submissions < max_submissions:
        step = session.current_step
        if not isinstance(step, NextExercise):
            break
        _, target, _ = session.current_target()
        if target.reference is None or len(target.reference) < 2:
            console.print(f"[red]No usable reference for letter '{step.letter_id}', stopping.[/red]")
            break
        user = replay_trace(target.reference, offset, offset, target.letter.speed_target_ms, 0.5)
        result = session.submit(user, clock_ms)
        clock_ms += target.letter.speed_target_ms + 1000
        submissions += 1
        status = "[green]✓[/green]" if result.evaluation and result.evaluation.validated else "[yellow]✗[/yellow]"
        aggregate = result.evaluation.aggregate if result.evaluation else "-"
        console.print(f"{status} {step.exercise_id} / {step.letter_id}: aggregate {aggregate}: {result.message}")

    if session.complete:
        console.print("[bold green]Curriculum complete[/bold green]")

    summary = summarize_competences(log.to_frame())
    table = Table(show_header=True, header_style="bold magenta")
    for column in summary.columns:
        table.add_column(column)
    for _, row in summary.iterrows():
        table.add_row(*[str(v) for v in row.tolist()])
    console.print(table)

    if output is not None:
        log.write_parquet(output)
        console.print(f"[bold]Wrote {len(log)} evaluations to {output}[/bold]")


if __name__ == "__main__":
    app()
