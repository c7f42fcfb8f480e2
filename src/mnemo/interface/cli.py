"""mnemo CLI: manage a deck and run review sessions from the terminal."""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from pydantic import TypeAdapter

from mnemo.application.config import resolve_config
from mnemo.application.engine import SrsEngine
from mnemo.domain.errors import SessionExpired
from mnemo.domain.models import (
    Card,
    CardContext,
    ReviewSession,
    SessionType,
    StatisticsSnapshot,
)
from mnemo.interface._common import _resolve_with_overrides, humanize_error, run_with_engine

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="mnemo: spaced-repetition vocabulary trainer.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage mnemo configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger(__name__)

LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    data_file: Annotated[
        Path | None, typer.Option("--data-file", help="Deck file. Defaults to config.")
    ] = None,
):
    """Global settings for mnemo."""
    logging.basicConfig(
        level=LOG_LEVELS.get(verbose, logging.DEBUG),
        format="%(levelname)s:%(name)s:%(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["data_file"] = data_file


def _config(ctx: typer.Context):
    obj = ctx.obj or {}
    return _resolve_with_overrides(data_file=obj.get("data_file"), verbose=obj.get("verbose"))


def _card_line(card: Card) -> str:
    due = card.next_review_date.strftime("%Y-%m-%d %H:%M")
    flag = " [suspended]" if card.suspended else ""
    return (
        f"{card.id}  {card.word} = {card.translation}  "
        f"({card.status.value}, every {card.interval}d, due {due}){flag}"
    )


def _print_session(session: ReviewSession) -> None:
    typer.echo(f"Session {session.id} ({session.type.value})")
    typer.echo(
        f"Reviewed {session.cards_reviewed}/{session.target_card_count}, "
        f"correct {session.correct_count}"
    )
    typer.echo(
        f"Accuracy {session.accuracy_rate:.0%}  Completion {session.completion_rate:.0%}  "
        f"Avg {session.average_response_time_ms / 1000:.1f}s"
    )
    if session.quality is not None:
        typer.echo(f"Quality: {session.quality.value}")


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    keyword_id: Annotated[str, typer.Argument(help="Source keyword id (unique).")],
    word: Annotated[str, typer.Argument(help="Word or phrase to learn.")],
    translation: Annotated[str, typer.Argument(help="Translation shown on the back.")],
    audio: Annotated[str, typer.Option(help="Audio asset reference.")] = "",
    tag: Annotated[str | None, typer.Option(help="Grouping such as a topic.")] = None,
    difficulty: Annotated[int, typer.Option(min=1, max=5, help="Difficulty hint.")] = 3,
):
    """[bold green]Add[/bold green] a card to the deck."""
    context = CardContext(difficulty_hint=difficulty, source_tag=tag)

    async def action(engine: SrsEngine) -> Card:
        return await engine.add_card(keyword_id, word, translation, audio, context)

    card = run_with_engine(_config(ctx), action)
    typer.secho(f"Added {card.id}", fg="green")


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="YAML deck file.", exists=True, dir_okay=False)],
):
    """Import cards from a YAML deck file."""

    async def action(engine: SrsEngine):
        return await engine.import_deck(path)

    result = run_with_engine(_config(ctx), action)
    typer.secho(f"Imported {len(result.added)} cards.", fg="green")
    if result.skipped:
        typer.secho(f"Skipped {len(result.skipped)} existing keywords.", fg="yellow")


@app.command()
def due(
    ctx: typer.Context,
    limit: Annotated[int | None, typer.Option(help="Maximum cards to list.")] = None,
):
    """List cards due for review, most overdue first."""
    config = _config(ctx)

    async def action(engine: SrsEngine) -> list[Card]:
        return engine.get_due_cards(limit if limit is not None else config.default_due_limit)

    cards = run_with_engine(config, action)
    if not cards:
        typer.secho("Nothing due.", fg="green")
    for card in cards:
        typer.echo(_card_line(card))


@app.command()
def new(
    ctx: typer.Context,
    limit: Annotated[int | None, typer.Option(help="Maximum cards to list.")] = None,
):
    """List cards that were never reviewed, oldest first."""
    config = _config(ctx)

    async def action(engine: SrsEngine) -> list[Card]:
        return engine.get_new_cards(limit if limit is not None else config.default_new_limit)

    cards = run_with_engine(config, action)
    if not cards:
        typer.secho("No new cards.", fg="yellow")
    for card in cards:
        typer.echo(_card_line(card))


def _set_suspended(ctx: typer.Context, card_id: str, suspended: bool) -> Card:
    async def action(engine: SrsEngine) -> Card:
        if suspended:
            return await engine.suspend_card(card_id)
        return await engine.unsuspend_card(card_id)

    return run_with_engine(_config(ctx), action)


@app.command()
def suspend(ctx: typer.Context, card_id: Annotated[str, typer.Argument()]):
    """Exclude a card from reviews until it is unsuspended."""
    card = _set_suspended(ctx, card_id, True)
    typer.echo(_card_line(card))


@app.command()
def unsuspend(ctx: typer.Context, card_id: Annotated[str, typer.Argument()]):
    """Return a suspended card to the review pool."""
    card = _set_suspended(ctx, card_id, False)
    typer.echo(_card_line(card))


@app.command()
def delete(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument()],
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation.")] = False,
):
    """Delete a card and its scheduling state."""
    if not force:
        typer.confirm(f"Delete {card_id}?", abort=True)

    async def action(engine: SrsEngine) -> Card:
        return await engine.delete_card(card_id)

    card = run_with_engine(_config(ctx), action)
    typer.secho(f"Deleted {card.word} ({card.id})", fg="green")


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


@app.command()
def review(
    ctx: typer.Context,
    session_type: Annotated[
        SessionType, typer.Option("--type", help="Session type.")
    ] = SessionType.DAILY,
    target: Annotated[int | None, typer.Option(min=1, help="Cards to review.")] = None,
    max_minutes: Annotated[int | None, typer.Option(min=1, help="Time limit.")] = None,
):
    """[bold green]Review[/bold green] cards interactively.

    Each card shows its word; press Enter to reveal the translation, then rate
    your recall. Type 'q' at the rating prompt to stop early.
    """
    config = _config(ctx)

    async def action(engine: SrsEngine) -> ReviewSession:
        session = engine.start_session(
            session_type,
            target or config.default_target_cards,
            max_minutes or config.default_max_duration,
        )
        if not session.card_ids:
            typer.secho("Nothing to review right now.", fg="yellow")
            return await engine.end_session()

        while (card := engine.next_card()) is not None:
            typer.secho(f"\n{card.word}", bold=True)
            shown = time.monotonic()
            typer.prompt("Press Enter to reveal", default="", show_default=False)
            response_time_ms = int((time.monotonic() - shown) * 1000)
            typer.echo(f"  {card.translation}")

            rating = typer.prompt("Rating [forgot/hard/good/easy/perfect, q to stop]")
            if rating.strip().lower() == "q":
                break
            try:
                updated = await engine.record_outcome(card.id, rating, response_time_ms)
            except SessionExpired as e:
                typer.secho(humanize_error(e), fg="yellow")
                return e.session
            except ValueError as e:
                typer.secho(humanize_error(e), fg="red")
                continue
            typer.echo(f"  next review in {updated.interval} day(s)")

        return await engine.end_session()

    session = run_with_engine(config, action)
    typer.echo("")
    _print_session(session)


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show deck and review statistics."""

    async def action(engine: SrsEngine) -> StatisticsSnapshot:
        return engine.get_statistics()

    snapshot = run_with_engine(_config(ctx), action)

    if json_output:
        data = TypeAdapter(StatisticsSnapshot).dump_python(snapshot, mode="json")
        typer.echo(json.dumps(data, indent=2))
        return

    typer.echo(
        f"Cards: {snapshot.total_cards}  New: {snapshot.new_cards}  "
        f"Learning: {snapshot.learning_cards}  Review: {snapshot.review_cards}  "
        f"Mastered: {snapshot.mastered_cards}"
    )
    typer.echo(f"Due now: {snapshot.due_cards}")
    typer.echo(
        f"Reviews today: {snapshot.today_reviews}  this week: {snapshot.weekly_reviews}  "
        f"this month: {snapshot.monthly_reviews}"
    )
    typer.echo(f"Accuracy: {snapshot.overall_accuracy:.0%}")
    typer.echo(
        f"Streak: {snapshot.current_streak_days} day(s) "
        f"(longest {snapshot.longest_streak_days})"
    )


@app.command()
def history(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option(help="Sessions to show.")] = 10,
):
    """List recent review sessions, newest first."""

    async def action(engine: SrsEngine) -> list[ReviewSession]:
        return engine.get_session_history(limit)

    sessions = run_with_engine(_config(ctx), action)
    if not sessions:
        typer.secho("No sessions yet.", fg="yellow")
    for s in sessions:
        started = s.started_at.strftime("%Y-%m-%d %H:%M")
        typer.echo(
            f"{started}  {s.type.value:<9} reviewed={s.cards_reviewed} "
            f"accuracy={s.accuracy_rate:.0%}"
            + ("  (timed out)" if s.timed_out else "")
        )


@app.command()
def calendar(
    ctx: typer.Context,
    year: Annotated[int | None, typer.Argument(help="Year, defaults to current.")] = None,
    month: Annotated[
        int | None, typer.Argument(min=1, max=12, help="Month, defaults to current.")
    ] = None,
):
    """Reviews per day for one month."""
    config = _config(ctx)
    today = datetime.now(config.zone)

    async def action(engine: SrsEngine):
        return engine.get_calendar(year or today.year, month or today.month)

    counts = run_with_engine(config, action)
    if not counts:
        typer.secho("No reviews in that month.", fg="yellow")
    for day, count in counts.items():
        typer.echo(f"{day.isoformat()}  {count}")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


def main():
    app()


if __name__ == "__main__":
    main()
