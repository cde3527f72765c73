"""Internal models for sync operations and their outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from safir.datetime import current_datetime

from .image import ImageReference

__all__ = [
    "ExecutionResult",
    "SyncOperation",
    "SyncResult",
    "SyncStatistics",
    "SyncStep",
]


class SyncStep(StrEnum):
    """Steps performed against the container engine for one image."""

    PULL = "pull"
    TAG = "tag"
    PUSH = "push"


@dataclass(frozen=True, slots=True)
class SyncOperation:
    """One image to mirror.

    Created once from an entry of the content list and consumed exactly once
    by an execution strategy.
    """

    source: ImageReference
    """Image to pull, tag-normalized."""

    target: ImageReference
    """Namespace- and repository-qualified image to push."""

    validate_target: bool = True
    """Whether target existence should be checked before syncing."""

    force: bool = False
    """Overwrite the target even if it is already present."""

    dry_run: bool = False
    """Only report what would be done, without calling the engine."""


@dataclass(slots=True)
class SyncResult:
    """Outcome of a single `SyncOperation`.

    Only the worker running the operation mutates this object.
    """

    operation: SyncOperation
    """Operation this is the result of."""

    success: bool = False
    """Whether the image was mirrored (or would have been, for dry runs)."""

    error: Exception | None = None
    """Cause of the failure, if ``success`` is false."""

    worker: int | None = None
    """Identity of the parallel worker that ran the operation, if any."""

    start_time: datetime = field(
        default_factory=lambda: current_datetime(microseconds=True)
    )
    """When execution of the operation started."""

    end_time: datetime | None = None
    """When execution of the operation finished."""

    detailed_logs: list[str] = field(default_factory=list)
    """Ordered trace lines for the operation."""

    @property
    def duration(self) -> timedelta:
        """Time spent on the operation, zero while it is still running."""
        if self.end_time is None:
            return timedelta(0)
        return self.end_time - self.start_time

    def log(self, message: str) -> None:
        """Append a trace line, prefixed with the worker identity if any."""
        if self.worker is not None:
            message = f"Worker-{self.worker}: {message}"
        self.detailed_logs.append(message)

    def finish(self, error: Exception | None = None) -> None:
        """Record the end of the operation.

        Parameters
        ----------
        error
            Cause of failure, or `None` if the operation succeeded.
        """
        self.end_time = current_datetime(microseconds=True)
        self.error = error
        self.success = error is None


@dataclass(slots=True)
class ExecutionResult:
    """Everything an execution strategy hands back for a batch."""

    results: list[SyncResult]
    """One result per operation that was started."""

    error: Exception | None = None
    """Batch-level error, such as cancellation, if the batch was cut short."""


@dataclass(frozen=True, slots=True)
class SyncStatistics:
    """Aggregate counts and timings for one run."""

    total_images: int = 0
    """Number of entries in the content list, including skipped ones."""

    successful: int = 0
    """Images mirrored successfully."""

    failed: int = 0
    """Images whose sync failed."""

    skipped: int = 0
    """Entries skipped because they were empty or malformed."""

    total_duration: timedelta = timedelta(0)
    """Wall-clock duration of the whole run."""

    average_duration: timedelta = timedelta(0)
    """Total duration divided by the number of successes."""
