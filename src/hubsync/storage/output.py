"""Write the results of a sync run to the output log.

The output log is a shell-style file with one ``docker pull`` command per
mirrored image, for downstream consumers to pull the mirrored copies.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path

from jinja2 import Environment, PackageLoader, TemplateError
from safir.datetime import current_datetime
from structlog.stdlib import BoundLogger

from ..exceptions import OperationError
from ..models.domain.sync import SyncResult, SyncStatistics

__all__ = ["OutputWriter"]

_environment = Environment(
    loader=PackageLoader("hubsync", package_path="templates"),
    autoescape=False,
)
"""Template environment for the output log."""


def _format_seconds(delta: timedelta) -> str:
    """Format a `~datetime.timedelta` as fractional seconds.

    Parameters
    ----------
    delta
        Duration to format.

    Returns
    -------
    str
        Duration in seconds with two decimal places, such as ``1.25s``.
    """
    return f"{delta.total_seconds():.2f}s"


def _one_line(value: object) -> str:
    """Collapse a multi-line message so it stays inside a comment."""
    return " ".join(str(value).split())


_environment.filters["format_seconds"] = _format_seconds
_environment.filters["one_line"] = _one_line


class OutputWriter:
    """Render sync results into the output log.

    Parameters
    ----------
    path
        Path of the output log. It is replaced if it already exists.
    repository
        Target registry, used to add a login hint to the output. The empty
        string means the default public registry, for which no hint is
        added.
    logger
        Logger to use.
    """

    def __init__(
        self, path: Path, *, repository: str = "", logger: BoundLogger
    ) -> None:
        self._path = path
        self._repository = repository
        self._logger = logger

    @property
    def path(self) -> Path:
        """Path of the output log."""
        return self._path

    def render(
        self,
        results: Sequence[SyncResult],
        statistics: SyncStatistics,
        *,
        correlation_id: str,
    ) -> str:
        """Render the output log without writing it.

        Parameters
        ----------
        results
            Per-image results, in the order they should be listed.
        statistics
            Aggregate statistics for the run.
        correlation_id
            Identifier of the run.

        Returns
        -------
        str
            Contents of the output log.
        """
        template = _environment.get_template("output.log.jinja")
        timestamp = current_datetime().isoformat()
        return template.render(
            repository=self._repository,
            timestamp=timestamp,
            statistics=statistics,
            correlation_id=correlation_id,
            results=results,
            failures=[r for r in results if not r.success],
        )

    def write(
        self,
        results: Sequence[SyncResult],
        statistics: SyncStatistics,
        *,
        correlation_id: str,
    ) -> None:
        """Write the output log.

        Parameters
        ----------
        results
            Per-image results, in the order they should be listed.
        statistics
            Aggregate statistics for the run.
        correlation_id
            Identifier of the run.

        Raises
        ------
        OperationError
            Raised if the output log could not be rendered or written.
        """
        try:
            output = self.render(
                results, statistics, correlation_id=correlation_id
            )
            self._path.write_text(output)
        except (OSError, TemplateError) as e:
            msg = f"failed to generate output file {self._path}: {e}"
            raise OperationError(msg) from e
        self._logger.info(
            "Output file generated",
            path=str(self._path),
            count=len(results),
            successful=statistics.successful,
            failed=statistics.failed,
            skipped=statistics.skipped,
        )
