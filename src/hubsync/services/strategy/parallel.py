"""Bounded worker pool execution strategy."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import override

from structlog.stdlib import BoundLogger

from ...constants import DEFAULT_PARALLEL_WORKERS
from ...models.domain.sync import ExecutionResult, SyncOperation, SyncResult
from ...storage.engine import EngineClient
from ...timeout import Timeout
from ..retry import Retrier
from .base import SyncStrategy

__all__ = ["ParallelStrategy"]


class ParallelStrategy(SyncStrategy):
    """Execute operations with a fixed number of concurrent workers.

    Workers take operations from a shared queue and report results to a
    single collector, so results are returned in completion order. Once the
    run is cancelled, no new operations are started, but operations already
    in progress run to completion.

    Parameters
    ----------
    concurrency
        Number of workers. Values below one select the default.
    engine
        Client for the container engine.
    retrier
        Retry policy for pulls and pushes.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        concurrency: int,
        engine: EngineClient,
        retrier: Retrier,
        logger: BoundLogger,
    ) -> None:
        super().__init__(engine=engine, retrier=retrier, logger=logger)
        if concurrency <= 0:
            concurrency = DEFAULT_PARALLEL_WORKERS
        self._concurrency = concurrency

    @property
    @override
    def name(self) -> str:
        return "parallel"

    @property
    def concurrency(self) -> int:
        """Number of workers used for a batch."""
        return self._concurrency

    @override
    async def execute(
        self, operations: Sequence[SyncOperation], timeout: Timeout
    ) -> ExecutionResult:
        jobs: asyncio.Queue[SyncOperation] = asyncio.Queue(
            maxsize=max(len(operations), 1)
        )
        outcomes: asyncio.Queue[SyncResult | None] = asyncio.Queue()
        results: list[SyncResult] = []
        for operation in operations:
            if timeout.cancelled:
                break
            jobs.put_nowait(operation)

        workers = min(self._concurrency, max(len(operations), 1))
        self._logger.debug("Starting workers", workers=workers)
        async with asyncio.TaskGroup() as tg:
            collector = tg.create_task(self._collect(outcomes, results))
            worker_tasks = [
                tg.create_task(self._work(n, jobs, outcomes, timeout))
                for n in range(1, workers + 1)
            ]
            await asyncio.gather(*worker_tasks)
            outcomes.put_nowait(None)
            await collector

        if timeout.cancelled:
            self._logger.warning(
                "Sync cancelled",
                completed=len(results),
                total=len(operations),
                reason=timeout.reason,
            )
            error = timeout.error("sync cancelled")
            return ExecutionResult(results=results, error=error)
        return ExecutionResult(results=results)

    async def _collect(
        self,
        outcomes: asyncio.Queue[SyncResult | None],
        results: list[SyncResult],
    ) -> None:
        """Gather results from workers until told to stop."""
        while (result := await outcomes.get()) is not None:
            results.append(result)

    async def _work(
        self,
        worker: int,
        jobs: asyncio.Queue[SyncOperation],
        outcomes: asyncio.Queue[SyncResult | None],
        timeout: Timeout,
    ) -> None:
        """Run operations from the queue until it is empty or cancelled."""
        logger = self._logger.bind(worker=worker)
        logger.debug("Worker started")
        while not timeout.cancelled:
            try:
                operation = jobs.get_nowait()
            except asyncio.QueueEmpty:
                break
            result = await self._run_operation(
                operation, timeout, worker=worker
            )
            outcomes.put_nowait(result)
        logger.debug("Worker finished")
