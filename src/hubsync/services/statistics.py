"""Aggregate per-image results into run statistics."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta

from ..models.domain.sync import SyncResult, SyncStatistics

__all__ = ["aggregate_statistics"]


def aggregate_statistics(
    results: Sequence[SyncResult],
    *,
    total_images: int,
    skipped: int,
    duration: timedelta,
) -> SyncStatistics:
    """Summarize the results of a run.

    Parameters
    ----------
    results
        Results returned by the execution strategy, possibly partial.
    total_images
        Number of entries in the content list.
    skipped
        Entries skipped while building operations.
    duration
        Wall-clock duration of the run.

    Returns
    -------
    SyncStatistics
        Counts and timings. The average duration is zero if nothing
        succeeded.
    """
    successful = sum(1 for r in results if r.success)
    failed = len(results) - successful
    average = duration / successful if successful else timedelta(0)
    return SyncStatistics(
        total_images=total_images,
        successful=successful,
        failed=failed,
        skipped=skipped,
        total_duration=duration,
        average_duration=average,
    )
