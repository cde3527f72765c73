"""Time budget and cancellation for a sync run."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from types import TracebackType
from typing import Self

from safir.datetime import current_datetime

from .exceptions import ContextError

__all__ = ["Timeout"]


class Timeout:
    """Track the overall time budget of a run and whether it was cancelled.

    One of these is threaded through a whole sync run. It is cancelled either
    when the budget expires (once entered as an async context manager) or
    explicitly with `cancel`, for example from a signal handler. Cancellation
    only changes state: work that is already waiting on the container engine
    is not interrupted, but workers stop picking up new operations and retry
    backoff waits end early.

    Parameters
    ----------
    operation
        Human-readable name of the operation, for error reporting.
    timeout
        Duration of the budget, or `None` for no limit.
    """

    def __init__(
        self, operation: str, timeout: timedelta | None = None
    ) -> None:
        self._operation = operation
        self._timeout = timeout
        self._start = current_datetime(microseconds=True)
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._handle: asyncio.TimerHandle | None = None

    async def __aenter__(self) -> Self:
        if self._timeout is not None:
            loop = asyncio.get_running_loop()
            delay = self._timeout.total_seconds()
            reason = f"timed out after {delay}s"
            self._handle = loop.call_later(delay, self.cancel, reason)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._handle:
            self._handle.cancel()
            self._handle = None

    @property
    def cancelled(self) -> bool:
        """Whether the run has been cancelled or has timed out."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Why the run was cancelled, if it was."""
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel the run.

        Only the first reason given is kept.

        Parameters
        ----------
        reason
            Human-readable reason for the cancellation.
        """
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def elapsed(self) -> float:
        """Elapsed time since the timeout started.

        Returns
        -------
        float
            Seconds elapsed since the object was created.
        """
        now = current_datetime(microseconds=True)
        return (now - self._start).total_seconds()

    def error(self, message: str | None = None) -> ContextError:
        """Build the exception describing the cancellation.

        Parameters
        ----------
        message
            What was interrupted. Defaults to the operation name.

        Returns
        -------
        ContextError
            Exception to raise or record.
        """
        return ContextError(message or self._operation, self._reason)

    async def sleep(self, delay: float) -> None:
        """Wait for the given number of seconds unless cancelled first.

        Parameters
        ----------
        delay
            Seconds to wait.

        Raises
        ------
        ContextError
            Raised if the run is cancelled before or during the wait.
        """
        if self.cancelled:
            raise self.error(f"{self._operation} cancelled while waiting")
        try:
            async with asyncio.timeout(delay):
                await self._event.wait()
        except TimeoutError:
            return
        raise self.error(f"{self._operation} cancelled while waiting")
