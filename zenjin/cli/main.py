"""
Zenjin CLI - operator tooling around the sequencing engine.

Usage:
    zenjin levels                       # Boundary level catalogue
    zenjin init alice --difficulty 2    # Initialize a learner
    zenjin next alice                   # Where the next question comes from
    zenjin answer alice --correct --ms 1200
    zenjin rotate alice                 # Rotate the triple helix
    zenjin difficulty alice addition 3  # Set one path's difficulty
    zenjin state alice                  # Inspect helix, queues and mastery
    zenjin simulate alice --answers 200 --accuracy 0.8

State is kept in JSON files under the configured data directory between
invocations.
"""

from __future__ import annotations

import random
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from config import get_settings
from zenjin.content import InMemoryFactRepository, StaticContentProvider
from zenjin.core.errors import ZenjinError
from zenjin.core.levels import BoundaryLevel, all_levels
from zenjin.core.logging import configure_logging
from zenjin.core.models import AnswerPerformance, RotationTrigger
from zenjin.engine import SequencingFacade
from zenjin.helix.path_rotator import last_rotation_age_seconds
from zenjin.persistence import JsonStateStore

app = typer.Typer(
    name="zenjin",
    help="Zenjin Engine - adaptive mastery tracking and stitch sequencing",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", help="State directory (defaults to ZENJIN_DATA_DIR or ~/.zenjin)"),
]


# =============================================================================
# Helpers
# =============================================================================


def _store(data_dir: Path | None) -> JsonStateStore:
    settings = get_settings()
    states_dir = data_dir / "states" if data_dir else settings.states_dir
    return JsonStateStore(states_dir)


def _engine() -> SequencingFacade:
    settings = get_settings()
    return SequencingFacade(
        content=StaticContentProvider.default(),
        facts=InMemoryFactRepository.default(),
        tuning=settings.tuning,
    )


def _load(engine: SequencingFacade, store: JsonStateStore, user_id: str) -> None:
    snapshot = store.load(user_id)
    if snapshot is None:
        console.print(f"[red]No saved state for {user_id}. Run 'zenjin init {user_id}' first.[/red]")
        raise typer.Exit(1)
    try:
        engine.load_state(snapshot)
    except ZenjinError as exc:
        _fail(exc)


def _fail(exc: ZenjinError) -> None:
    console.print(f"[red]{exc.code}[/red] {escape(exc.message)}")
    raise typer.Exit(1)


# =============================================================================
# Commands
# =============================================================================


@app.command("levels")
def levels() -> None:
    """Show the five boundary levels."""
    table = Table(title="Boundary Levels", box=box.ROUNDED)
    table.add_column("Level", justify="right")
    table.add_column("Name")
    table.add_column("Description", style="dim")
    for entry in all_levels():
        color = BoundaryLevel(entry.level).color
        table.add_row(str(entry.level), f"[{color}]{entry.name}[/{color}]", entry.description)
    console.print(table)


@app.command("init")
def init_user(
    user_id: str,
    difficulty: Annotated[Optional[int], typer.Option(help="Initial difficulty (1-5)")] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Initialize a learner's helix and stitch queues."""
    store = _store(data_dir)
    engine = _engine()
    if store.load(user_id) is not None:
        console.print(f"[yellow]{user_id} is already initialized[/yellow]")
        raise typer.Exit(1)
    try:
        helix = engine.initialize_user(user_id, difficulty or get_settings().initial_difficulty)
    except ZenjinError as exc:
        _fail(exc)
        return
    store.save(user_id, engine.get_state(user_id))
    active = next(path for path in helix.paths if path.is_active)
    console.print(f"[green]Initialized {user_id}[/green] - active path: [bold]{active.name}[/bold]")


@app.command("next")
def next_question(user_id: str, data_dir: DataDirOption = None) -> None:
    """Show where the next question comes from."""
    store = _store(data_dir)
    engine = _engine()
    _load(engine, store, user_id)
    try:
        source = engine.next_question_source(user_id)
    except ZenjinError as exc:
        _fail(exc)
        return
    level = BoundaryLevel(source.boundary_level)
    console.print(
        Panel(
            f"Path: [bold]{source.path_id}[/bold]\n"
            f"Stitch: {source.stitch_id}\n"
            f"Fact: {source.fact_id}\n"
            f"Boundary: [{level.color}]{level.display_name}[/{level.color}] ({int(level)})",
            title="Next Question",
            border_style="cyan",
        )
    )


@app.command("answer")
def answer(
    user_id: str,
    correct: Annotated[bool, typer.Option("--correct/--wrong", help="First-attempt outcome")] = True,
    ms: Annotated[int, typer.Option(help="Response time in milliseconds")] = 1500,
    data_dir: DataDirOption = None,
) -> None:
    """Record an answer for the current question."""
    store = _store(data_dir)
    engine = _engine()
    _load(engine, store, user_id)
    try:
        source = engine.next_question_source(user_id)
        outcome = engine.record_answer(
            user_id,
            source.path_id,
            source.stitch_id,
            source.fact_id,
            AnswerPerformance(correct_first_attempt=correct, response_time_ms=ms),
        )
    except ZenjinError as exc:
        _fail(exc)
        return
    store.save(user_id, engine.get_state(user_id))

    change = ""
    if outcome.changed:
        arrow = "promoted" if outcome.new_level > outcome.previous_level else "demoted"
        change = f" [bold]({arrow})[/bold]"
    console.print(
        f"{source.fact_id}: level {outcome.previous_level} -> {outcome.new_level}{change}, "
        f"score {outcome.mastery_score:.2f}, "
        f"stitch {source.stitch_id} moved {outcome.previous_position} -> {outcome.new_position} "
        f"(skip {outcome.skip_number})"
    )


@app.command("rotate")
def rotate(user_id: str, data_dir: DataDirOption = None) -> None:
    """Rotate the learner's triple helix."""
    store = _store(data_dir)
    engine = _engine()
    _load(engine, store, user_id)
    try:
        result = engine.rotate(user_id)
    except ZenjinError as exc:
        _fail(exc)
        return
    store.save(user_id, engine.get_state(user_id))
    console.print(
        f"Rotation #{result.rotation_count}: "
        f"{result.previous_active.name} -> [bold]{result.new_active.name}[/bold]"
    )


@app.command("difficulty")
def difficulty(user_id: str, path_id: str, level: int, data_dir: DataDirOption = None) -> None:
    """Set one path's difficulty (1-5)."""
    store = _store(data_dir)
    engine = _engine()
    _load(engine, store, user_id)
    try:
        path = engine.set_difficulty(user_id, path_id, level)
    except ZenjinError as exc:
        _fail(exc)
        return
    store.save(user_id, engine.get_state(user_id))
    console.print(f"{path.name} difficulty set to {path.difficulty}")


@app.command("state")
def state(
    user_id: str,
    queue_preview: Annotated[int, typer.Option(help="Stitches to show per queue")] = 5,
    data_dir: DataDirOption = None,
) -> None:
    """Inspect a learner's helix, queues and mastery records."""
    store = _store(data_dir)
    engine = _engine()
    _load(engine, store, user_id)

    helix = engine.get_helix(user_id)
    age = last_rotation_age_seconds(helix, datetime.now(timezone.utc))
    subtitle = f"rotations: {helix.rotation_count}"
    if age is not None:
        subtitle += f", last {age / 60:.0f} min ago"

    paths = Table(title=f"Triple Helix - {user_id}", caption=subtitle, box=box.ROUNDED)
    paths.add_column("Path")
    paths.add_column("Status")
    paths.add_column("Difficulty", justify="right")
    paths.add_column("Waiting", justify="right")
    paths.add_column("Current")
    paths.add_column("Next")
    paths.add_column("Queue", style="dim")
    for path in helix.paths:
        queue = engine.get_stitch_queue(user_id, path.path_id)
        preview = ", ".join(stitch_id for stitch_id, _ in queue[:queue_preview])
        status = "[green]active[/green]" if path.is_active else "[dim]preparing[/dim]"
        paths.add_row(
            path.name,
            status,
            str(path.difficulty),
            str(path.rotations_since_active),
            path.current_stitch_id or "-",
            path.next_stitch_id or "-",
            preview,
        )
    console.print(paths)

    records = engine.list_mastery(user_id)
    if not records:
        console.print("[dim]No facts answered yet.[/dim]")
        return
    mastery = Table(title="Fact Mastery", box=box.SIMPLE)
    mastery.add_column("Fact")
    mastery.add_column("Level")
    mastery.add_column("Score", justify="right")
    mastery.add_column("Streak", justify="right")
    for record in records:
        level = BoundaryLevel(record.current_level)
        mastery.add_row(
            record.fact_id,
            f"[{level.color}]{int(level)} {level.display_name}[/{level.color}]",
            f"{record.mastery_score:.2f}",
            str(record.consecutive_correct),
        )
    console.print(mastery)


@app.command("simulate")
def simulate(
    user_id: str,
    answers: Annotated[int, typer.Option(help="Questions to answer")] = 100,
    accuracy: Annotated[float, typer.Option(min=0.0, max=1.0, help="Probability of a correct answer")] = 0.8,
    seed: Annotated[int, typer.Option(help="Random seed")] = 7,
    save: Annotated[bool, typer.Option(help="Persist the simulated state")] = False,
    data_dir: DataDirOption = None,
) -> None:
    """Drive a simulated learner through the engine and summarize the run."""
    rng = random.Random(seed)
    engine = _engine()
    try:
        engine.initialize_user(user_id, get_settings().initial_difficulty)
    except ZenjinError as exc:
        _fail(exc)
        return

    changes: Counter[str] = Counter()
    for _ in range(answers):
        source = engine.next_question_source(user_id)
        correct = rng.random() < accuracy
        outcome = engine.record_answer(
            user_id,
            source.path_id,
            source.stitch_id,
            source.fact_id,
            AnswerPerformance(correct_first_attempt=correct, response_time_ms=rng.randint(800, 4500)),
        )
        if outcome.changed:
            changes["promotions" if outcome.new_level > outcome.previous_level else "demotions"] += 1
        if engine.maybe_rotate(user_id, RotationTrigger.CADENCE):
            changes["rotations"] += 1

    distribution = Counter(record.current_level for record in engine.list_mastery(user_id))

    table = Table(title=f"Simulation - {user_id}", box=box.ROUNDED)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Answers", str(answers))
    table.add_row("Promotions", str(changes["promotions"]))
    table.add_row("Demotions", str(changes["demotions"]))
    table.add_row("Rotations", str(changes["rotations"]))
    table.add_row("Facts seen", str(sum(distribution.values())))
    for level in BoundaryLevel:
        table.add_row(f"  at {level.display_name}", str(distribution.get(int(level), 0)))
    console.print(table)

    if save:
        _store(data_dir).save(user_id, engine.get_state(user_id))
        console.print(f"[green]Saved simulated state for {user_id}[/green]")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)
    app()


if __name__ == "__main__":
    main()
