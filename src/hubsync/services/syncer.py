"""Orchestrate a complete sync run."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from safir.datetime import current_datetime
from safir.slack.webhook import SlackWebhookClient
from structlog.stdlib import BoundLogger

from ..config import Config
from ..exceptions import SyncFailuresError
from ..models.domain.sync import SyncResult, SyncStatistics
from ..models.v1.content import SyncContent
from ..storage.engine import EngineClient
from ..storage.output import OutputWriter
from ..timeout import Timeout
from .builder import OperationBuilder
from .retry import Retrier
from .statistics import aggregate_statistics
from .strategy import create_strategy

__all__ = ["SyncReport", "Syncer"]


@dataclass(slots=True)
class SyncReport:
    """Outcome of a sync run."""

    correlation_id: str
    """Identifier of the run, also written to the output log."""

    strategy: str
    """Name of the execution strategy used."""

    results: list[SyncResult]
    """Per-image results, in the order they were written to the output."""

    statistics: SyncStatistics
    """Aggregate statistics for the run."""

    error: Exception | None = None
    """Batch-level error from the strategy, such as a cancellation."""


class Syncer:
    """Mirror the images listed in the configured content.

    A run parses the content, builds one operation per image, checks the
    registry credentials unless this is a dry run, executes the operations
    with the strategy matching the configured concurrency, and writes the
    output log. Individual image failures are recorded in the report and
    the output log rather than raised.

    Parameters
    ----------
    config
        Configuration for the run.
    engine
        Client for the container engine.
    output_writer
        Writer for the output log.
    logger
        Logger to use.
    slack_client
        If set, failures of individual images are reported to Slack.
    """

    def __init__(
        self,
        *,
        config: Config,
        engine: EngineClient,
        output_writer: OutputWriter,
        logger: BoundLogger,
        slack_client: SlackWebhookClient | None = None,
    ) -> None:
        self._config = config
        self._engine = engine
        self._output = output_writer
        self._logger = logger
        self._slack = slack_client

    async def run(self, timeout: Timeout | None = None) -> SyncReport:
        """Run one sync.

        Parameters
        ----------
        timeout
            Cancellation state for the run. If not given, one is created
            from the configured timeout.

        Returns
        -------
        SyncReport
            Results and statistics of the run.

        Raises
        ------
        ConfigError
            Raised if the content is malformed or lists too many images. No
            engine call has been made in this case.
        ClientError
            Raised if the registry credentials are rejected.
        OperationError
            Raised if the output log could not be written.
        """
        if timeout is None:
            timeout = Timeout("sync", self._config.timeout)
        async with timeout:
            return await self._run(timeout)

    async def _run(self, timeout: Timeout) -> SyncReport:
        correlation_id = f"sync-{uuid4().hex}"
        logger = self._logger.bind(correlation_id=correlation_id)
        start = current_datetime(microseconds=True)

        content = SyncContent.from_json(
            self._config.content, max_content=self._config.max_content
        )
        builder = OperationBuilder(
            repository=self._config.repository,
            namespace=self._config.namespace,
            force=self._config.force,
            dry_run=self._config.dry_run,
            logger=logger,
        )
        plan = builder.build(content.hubsync)
        retrier = Retrier(
            retry_count=self._config.retry_count,
            retry_delay=self._config.retry_delay,
            logger=logger,
        )
        strategy = create_strategy(
            concurrency=self._config.concurrency,
            engine=self._engine,
            retrier=retrier,
            logger=logger,
        )
        logger.info(
            "Starting sync",
            total_images=len(content.hubsync),
            operations=len(plan.operations),
            concurrency=self._config.concurrency,
            strategy=strategy.name,
            dry_run=self._config.dry_run,
        )
        if plan.operations and not self._config.dry_run:
            await self._engine.verify_credentials()

        execution = await strategy.execute(plan.operations, timeout)
        if execution.error:
            logger.error(
                "Sync did not complete",
                error=str(execution.error),
                completed=len(execution.results),
                total=len(plan.operations),
            )
        total = len(execution.results)
        for processed, result in enumerate(execution.results, start=1):
            logger.debug(
                "Image processed",
                source=result.operation.source.full_name,
                target=result.operation.target.full_name,
                success=result.success,
                processed=processed,
                total=total,
                progress_pct=round(processed * 100 / total, 1),
            )

        duration = current_datetime(microseconds=True) - start
        statistics = aggregate_statistics(
            execution.results,
            total_images=len(content.hubsync),
            skipped=plan.skipped,
            duration=duration,
        )
        logger.info(
            "Sync completed",
            total_images=statistics.total_images,
            successful=statistics.successful,
            failed=statistics.failed,
            skipped=statistics.skipped,
            duration=statistics.total_duration.total_seconds(),
            average_duration=statistics.average_duration.total_seconds(),
        )

        self._output.write(
            execution.results, statistics, correlation_id=correlation_id
        )
        if statistics.failed:
            await self._report_failures(execution.results, correlation_id)
        return SyncReport(
            correlation_id=correlation_id,
            strategy=strategy.name,
            results=execution.results,
            statistics=statistics,
            error=execution.error,
        )

    async def _report_failures(
        self, results: list[SyncResult], correlation_id: str
    ) -> None:
        """Post a summary of failed images to Slack."""
        if not self._slack:
            return
        failed = {
            f"{r.operation.source} -> {r.operation.target}": str(r.error)
            for r in results
            if not r.success
        }
        msg = f"{len(failed)} images failed to sync in {correlation_id}"
        await self._slack.post_exception(SyncFailuresError(msg, failed))
