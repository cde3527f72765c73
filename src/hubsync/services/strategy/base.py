"""Base class for execution strategies."""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from collections.abc import Sequence

from structlog.stdlib import BoundLogger

from ...exceptions import HubSyncError, OperationError
from ...models.domain.sync import (
    ExecutionResult,
    SyncOperation,
    SyncResult,
    SyncStep,
)
from ...storage.engine import EngineClient
from ...timeout import Timeout
from ..retry import Retrier

__all__ = ["SyncStrategy"]


class SyncStrategy(metaclass=ABCMeta):
    """Execute a batch of sync operations against the container engine.

    Subclasses decide how operations are scheduled. The work done for a
    single operation is shared: a dry run only logs what would be done, and
    a real run pulls the source, tags it with the target name, and pushes
    the target. The first failing step ends the operation, and its error is
    recorded in the result rather than raised.

    Parameters
    ----------
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
        engine: EngineClient,
        retrier: Retrier,
        logger: BoundLogger,
    ) -> None:
        self._engine = engine
        self._retrier = retrier
        self._logger = logger

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the strategy, for logging and reports."""

    @abstractmethod
    async def execute(
        self, operations: Sequence[SyncOperation], timeout: Timeout
    ) -> ExecutionResult:
        """Execute all operations unless the run is cancelled.

        Parameters
        ----------
        operations
            Operations to execute.
        timeout
            Run cancellation state.

        Returns
        -------
        ExecutionResult
            One result per operation that was started, and a
            `~hubsync.exceptions.ContextError` if the run was cancelled
            before all of them were.
        """

    async def _run_operation(
        self,
        operation: SyncOperation,
        timeout: Timeout,
        *,
        worker: int | None = None,
    ) -> SyncResult:
        """Execute one operation and record its outcome."""
        result = SyncResult(operation=operation, worker=worker)
        source = operation.source.full_name
        target = operation.target.full_name
        logger = self._logger.bind(source=source, target=target)
        if worker is not None:
            logger = logger.bind(worker=worker)

        if operation.dry_run:
            logger.info(f"Dry run: would sync from {source} to {target}")
            result.log(f"Dry run: would sync from {source} to {target}")
            result.finish()
            return result

        prefix = f"worker {worker}: " if worker is not None else ""
        step = SyncStep.PULL
        try:
            result.log(f"Pulling {source}")
            await self._retrier.run(
                lambda: self._engine.pull(operation.source),
                step=SyncStep.PULL,
                description=f"{prefix}failed to pull source image {source}",
                image=source,
                timeout=timeout,
            )
            step = SyncStep.TAG
            result.log(f"Tagging {source} as {target}")
            try:
                await self._engine.tag(operation.source, operation.target)
            except HubSyncError as e:
                msg = f"{prefix}failed to tag image {source} as {target}: {e}"
                raise OperationError(
                    msg, step=SyncStep.TAG, image=target
                ) from e
            step = SyncStep.PUSH
            result.log(f"Pushing {target}")
            await self._retrier.run(
                lambda: self._engine.push(operation.target),
                step=SyncStep.PUSH,
                description=f"{prefix}failed to push target image {target}",
                image=target,
                timeout=timeout,
            )
        except HubSyncError as e:
            result.log(f"Failed: {e}")
            result.finish(e)
            logger.warning("Image sync failed", error=str(e))
            return result
        except Exception as e:
            image = source if step == SyncStep.PULL else target
            msg = (
                f"{prefix}unexpected error during {step.value} of {image}: {e}"
            )
            error = OperationError(msg, step=step, image=image)
            result.log(f"Failed: {error}")
            result.finish(error)
            logger.exception("Image sync failed", step=step.value)
            return result

        result.log(f"Synced {source} to {target}")
        result.finish()
        logger.info(
            "Image synced", duration=result.duration.total_seconds()
        )
        return result
