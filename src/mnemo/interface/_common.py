"""Helpers shared by CLI commands."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer

from mnemo.application.config import AppConfig, resolve_config
from mnemo.application.engine import SrsEngine
from mnemo.application.factory import create_engine
from mnemo.domain.errors import (
    CardNotFound,
    CardNotInQueue,
    DuplicateKeyword,
    InvalidAssessment,
    InvalidDeck,
    NoActiveSession,
    SessionAlreadyActive,
    SessionExpired,
    SrsError,
    StorageError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    """Resolve config, ignoring options the user did not pass."""
    return resolve_config({k: v for k, v in overrides.items() if v is not None})


def humanize_error(e: Exception) -> str:
    """Turn an engine error into a one-line message for the terminal."""
    if isinstance(e, DuplicateKeyword):
        return f"'{e.keyword_id}' is already in your deck."
    if isinstance(e, CardNotFound):
        return f"No card with id {e.card_id}."
    if isinstance(e, SessionAlreadyActive):
        return "A review session is already running. Finish it first."
    if isinstance(e, SessionExpired):
        return (
            f"Time is up: the session passed {e.session.max_duration_minutes} minutes "
            "and was saved."
        )
    if isinstance(e, NoActiveSession):
        return "There is no review session running."
    if isinstance(e, CardNotInQueue):
        return "That card is not part of the current session."
    if isinstance(e, InvalidAssessment):
        return f"'{e.value}' is not a rating. Use forgot, hard, good, easy or perfect."
    if isinstance(e, InvalidDeck):
        return f"Could not read deck {e.source}: {e.reason}"
    if isinstance(e, StorageError):
        return f"Could not access your saved deck: {e}"
    return str(e)


def run_with_engine(config: AppConfig, action: Callable[[SrsEngine], Awaitable[T]]) -> T:
    """
    Load the engine and run one action against it.

    Engine errors are printed in plain words and exit with status 1.
    """

    async def run() -> T:
        engine = await create_engine(config)
        return await action(engine)

    try:
        return asyncio.run(run())
    except SrsError as e:
        logger.debug(f"Command failed: {e!r}")
        typer.secho(humanize_error(e), fg="red", err=True)
        raise typer.Exit(1) from e
