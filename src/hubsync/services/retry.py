"""Retry engine calls with exponential backoff."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import timedelta

from structlog.stdlib import BoundLogger

from ..constants import MAX_BACKOFF_EXPONENT
from ..exceptions import ContextError, HubSyncError, OperationError
from ..models.domain.sync import SyncStep
from ..timeout import Timeout

__all__ = ["Retrier"]


class Retrier:
    """Run an engine call, retrying it on failure.

    The first attempt is made immediately. Each later attempt is preceded by
    a wait of ``retry_delay * 2 ** (n - 2)`` for attempt ``n``, with the
    exponent capped at `~hubsync.constants.MAX_BACKOFF_EXPONENT`. Waits end
    early if the run is cancelled.

    Parameters
    ----------
    retry_count
        Number of additional attempts made after the first failure.
    retry_delay
        Base delay before the first retry.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        retry_count: int,
        retry_delay: timedelta,
        logger: BoundLogger,
    ) -> None:
        self._retry_count = max(retry_count, 0)
        self._retry_delay = retry_delay
        self._logger = logger

    def backoff(self, attempt: int) -> timedelta:
        """Delay to wait before the given attempt.

        Parameters
        ----------
        attempt
            Attempt number, starting with 1 for the first attempt.

        Returns
        -------
        datetime.timedelta
            Delay, zero for the first attempt.
        """
        if attempt <= 1:
            return timedelta(0)
        exponent = min(attempt - 2, MAX_BACKOFF_EXPONENT)
        return self._retry_delay * (2**exponent)

    async def run(
        self,
        call: Callable[[], Awaitable[None]],
        *,
        step: SyncStep,
        description: str,
        image: str,
        timeout: Timeout,
    ) -> None:
        """Run the call until it succeeds or the attempts are exhausted.

        Parameters
        ----------
        call
            Engine call to make. Called once per attempt.
        step
            Engine step being performed, for error reporting.
        description
            Human-readable description of the step, used as the prefix of
            the final error message.
        image
            Image the step acts on.
        timeout
            Run cancellation state, consulted while waiting between
            attempts.

        Raises
        ------
        ContextError
            Raised if the run is cancelled while waiting to retry.
        OperationError
            Raised if every attempt failed.
        """
        attempts = self._retry_count + 1
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            if attempt > 1:
                delay = self.backoff(attempt)
                self._logger.info(
                    f"Retrying {step.value}",
                    image=image,
                    attempt=attempt,
                    max_attempts=attempts,
                    delay=delay.total_seconds(),
                )
                await timeout.sleep(delay.total_seconds())
            try:
                await call()
            except ContextError:
                raise
            except HubSyncError as e:
                last_error = e
                self._logger.warning(
                    f"Attempt to {step.value} image failed",
                    image=image,
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(e),
                )
            else:
                return
        msg = f"{description} after {attempts} attempts: {last_error}"
        raise OperationError(msg, step=step, image=image, attempts=attempts)
