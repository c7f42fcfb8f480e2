"""
Engine Factory
Centralizes the logic for selecting the persistence backend and wiring an engine.
"""

import logging
import random

from mnemo.application.config import AppConfig
from mnemo.application.engine import SrsEngine
from mnemo.application.scheduler import Scheduler
from mnemo.domain.ports import Clock, PersistenceGateway
from mnemo.infrastructure.clock import SystemClock
from mnemo.infrastructure.persistence import JsonFileGateway, JsonStateCodec, MemoryGateway

logger = logging.getLogger(__name__)


def get_gateway(config: AppConfig) -> PersistenceGateway:
    """
    Returns the appropriate PersistenceGateway implementation based on config.
    """
    if config.backend == "memory":
        return MemoryGateway()
    return JsonFileGateway(config.data_file)


def build_scheduler(config: AppConfig) -> Scheduler:
    return Scheduler(
        mastery_threshold=config.mastery_threshold,
        min_ease_factor=config.min_ease_factor,
        max_ease_factor=config.max_ease_factor,
        perfect_bonus=config.perfect_bonus,
    )


async def create_engine(
    config: AppConfig,
    gateway: PersistenceGateway | None = None,
    clock: Clock | None = None,
) -> SrsEngine:
    """
    Build an engine from config and load its saved state.
    """
    gateway = gateway or get_gateway(config)
    engine = SrsEngine(
        gateway=gateway,
        clock=clock or SystemClock(),
        codec=JsonStateCodec(),
        scheduler=build_scheduler(config),
        rng=random.Random(config.shuffle_seed),
        zone=config.zone,
        due_share=config.due_share,
        initial_ease_factor=config.initial_ease_factor,
        include_mastered_in_due=config.include_mastered_in_due,
    )
    await engine.load()
    logger.debug(f"Engine ready: backend={config.backend} cards={len(engine.cards)}")
    return engine
