"""Execution strategies for batches of sync operations."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from ...storage.engine import EngineClient
from ..retry import Retrier
from .base import SyncStrategy
from .parallel import ParallelStrategy
from .standard import StandardStrategy

__all__ = [
    "ParallelStrategy",
    "StandardStrategy",
    "SyncStrategy",
    "create_strategy",
]


def create_strategy(
    *,
    concurrency: int,
    engine: EngineClient,
    retrier: Retrier,
    logger: BoundLogger,
) -> SyncStrategy:
    """Select the execution strategy for the configured concurrency.

    Parameters
    ----------
    concurrency
        Configured number of images to sync at once.
    engine
        Client for the container engine.
    retrier
        Retry policy for pulls and pushes.
    logger
        Logger to use.

    Returns
    -------
    SyncStrategy
        Parallel strategy if ``concurrency`` is greater than one, otherwise
        the sequential strategy.
    """
    if concurrency > 1:
        return ParallelStrategy(
            concurrency=concurrency,
            engine=engine,
            retrier=retrier,
            logger=logger,
        )
    return StandardStrategy(engine=engine, retrier=retrier, logger=logger)
