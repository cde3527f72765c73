"""Command-line interface for hubsync."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
from datetime import timedelta
from pathlib import Path

import click
from safir.asyncio import run_with_asyncio
from safir.datetime import parse_timedelta
from safir.sentry import initialize_sentry, report_exception
from safir.slack.webhook import SlackWebhookClient
from structlog.stdlib import get_logger

from . import __version__
from .config import Config
from .constants import ALERT_HOOK_ENV_VAR, ROOT_LOGGER
from .exceptions import HubSyncError
from .factory import Factory
from .timeout import Timeout

__all__ = ["main", "main_with_sentry"]


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(message="%(version)s", package_name="hubsync")
@click.option("--username", "-u", default=None, help="Registry user name")
@click.option(
    "--password", "-p", default=None, help="Registry password or token"
)
@click.option(
    "--repository",
    "-r",
    default=None,
    help="Target registry, empty for the default public registry",
)
@click.option("--namespace", "-n", default=None, help="Target namespace")
@click.option(
    "--content",
    default=None,
    help='Images to mirror, as JSON: {"hubsync": ["image", ...]}',
)
@click.option(
    "--max-content",
    type=int,
    default=None,
    help="Maximum number of images in the content",
)
@click.option(
    "--output",
    "-o",
    "output_path",
    type=Path,
    default=None,
    help="Path of the output log",
)
@click.option(
    "--concurrency",
    type=int,
    default=None,
    help="Number of images to sync at the same time",
)
@click.option(
    "--timeout",
    type=parse_timedelta,
    default=None,
    help="Time budget for the whole run, such as 10m",
)
@click.option(
    "--retry-count",
    type=int,
    default=None,
    help="Retries for a failed pull or push",
)
@click.option(
    "--retry-delay",
    type=parse_timedelta,
    default=None,
    help="Base delay between retries, such as 2s",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=None,
    help="Overwrite target images without checking them",
)
@click.option(
    "--dry-run",
    "-x",
    is_flag=True,
    default=None,
    help="Do not act, but report what would be done",
)
@click.option(
    "--debug",
    "-d",
    is_flag=True,
    default=None,
    help="Enable debug logging",
)
@click.option(
    "--log-level",
    type=click.Choice(
        ["debug", "info", "warn", "warning", "error", "fatal", "critical"],
        case_sensitive=False,
    ),
    default=None,
    help="Log level",
)
@click.option(
    "--profile",
    default=None,
    help="Profile from the configuration file to apply",
)
@click.option(
    "--config-file",
    "-c",
    type=Path,
    default=None,
    help="Application configuration file",
)
@run_with_asyncio
async def main(
    *,
    username: str | None,
    password: str | None,
    repository: str | None,
    namespace: str | None,
    content: str | None,
    max_content: int | None,
    output_path: Path | None,
    concurrency: int | None,
    timeout: timedelta | None,
    retry_count: int | None,
    retry_delay: timedelta | None,
    force: bool | None,
    dry_run: bool | None,
    debug: bool | None,
    log_level: str | None,
    profile: str | None,
    config_file: Path | None,
) -> None:
    """Mirror container images into a target registry namespace.

    Settings not given on the command line are taken from the environment,
    .env files, or the configuration file.
    """
    logger = get_logger(ROOT_LOGGER)
    if alert_hook := os.environ.get(ALERT_HOOK_ENV_VAR):
        slack_client = SlackWebhookClient(alert_hook, "hubsync", logger=logger)
    else:
        slack_client = None

    try:
        config = Config.load(
            config_file,
            username=username,
            password=password,
            repository=repository,
            namespace=namespace,
            content=content,
            max_content=max_content,
            output_path=output_path,
            concurrency=concurrency,
            timeout=timeout,
            retry_count=retry_count,
            retry_delay=retry_delay,
            force=force,
            dry_run=dry_run,
            debug=debug,
            log_level=log_level,
            profile=profile,
        )
        config.configure_logging()
        await _sync(config)
    except HubSyncError as e:
        await report_exception(e, slack_client)
        raise click.ClickException(str(e)) from e
    except Exception as e:
        await report_exception(e, slack_client)
        raise


async def _sync(config: Config) -> None:
    """Run a sync, cancelling it on SIGINT or SIGTERM."""
    logger = get_logger(ROOT_LOGGER)
    timeout = Timeout("sync", config.timeout)
    loop = asyncio.get_running_loop()
    signals = (signal.SIGINT, signal.SIGTERM)
    for signum in signals:
        reason = f"received {signal.Signals(signum).name}"
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, timeout.cancel, reason)
    try:
        async with Factory.standalone(config) as factory:
            syncer = factory.create_syncer()
            report = await syncer.run(timeout)
    finally:
        for signum in signals:
            with contextlib.suppress(NotImplementedError):
                loop.remove_signal_handler(signum)
    logger.info(
        "Output written",
        path=str(config.output_path),
        correlation_id=report.correlation_id,
    )


def main_with_sentry() -> None:
    """Call the main command after initializing Sentry."""
    initialize_sentry(release=__version__)
    main()
