"""Tests for complete sync runs."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest
from safir.testing.slack import MockSlackWebhook
from structlog.stdlib import BoundLogger

from hubsync.config import Config
from hubsync.exceptions import ClientError, ConfigError, ContextError
from hubsync.factory import Factory
from hubsync.timeout import Timeout

from .support.engine import MockEngineClient


@pytest.mark.asyncio
async def test_run(
    config: Config, mock_engine: MockEngineClient, logger: BoundLogger
) -> None:
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()
    report = await syncer.run()

    assert report.error is None
    assert report.strategy == "standard"
    assert report.correlation_id.startswith("sync-")
    assert report.statistics.total_images == 3
    assert report.statistics.successful == 3
    assert report.statistics.failed == 0
    assert mock_engine.verified == 1
    assert mock_engine.pushes == [
        "yugasun/nginx:1.19",
        "yugasun/redis:latest",
        "yugasun/yugasun.alpine:latest",
    ]

    output = config.output_path.read_text()
    assert f"# Correlation ID: {report.correlation_id}\n" in output
    assert "# Summary: 3 successful, 0 failed, 0 skipped\n" in output
    for target in mock_engine.pushes:
        assert f"docker pull {target} # (from " in output
    assert "failed to sync" not in output
    assert "docker login" not in output


@pytest.mark.asyncio
async def test_too_many_images(
    config: Config, mock_engine: MockEngineClient, logger: BoundLogger
) -> None:
    config.max_content = 2
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()

    with pytest.raises(ConfigError, match="too many images in content: 3 > 2"):
        await syncer.run()

    assert mock_engine.call_count == 0
    assert mock_engine.verified == 0
    assert not config.output_path.exists()


@pytest.mark.asyncio
async def test_partial_failure(
    config: Config, mock_engine: MockEngineClient, logger: BoundLogger
) -> None:
    mock_engine.fail_push("yugasun/redis:latest")
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()

    report = await syncer.run()

    assert report.error is None
    assert len(report.results) == 3
    assert report.statistics.successful == 2
    assert report.statistics.failed == 1

    output = config.output_path.read_text()
    assert "# Summary: 2 successful, 1 failed, 0 skipped\n" in output
    assert "docker pull yugasun/nginx:1.19 # (from nginx:1.19 in " in output
    assert "docker pull yugasun/redis:latest" not in output
    assert "# The following images failed to sync:\n" in output
    assert "# redis:latest -> yugasun/redis:latest (failed to push" in output


@pytest.mark.asyncio
async def test_skipped(
    config: Config, mock_engine: MockEngineClient, logger: BoundLogger
) -> None:
    config.content = json.dumps({"hubsync": ["", "nginx:1.19", " "]})
    config.concurrency = 2
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()

    report = await syncer.run()

    assert report.strategy == "parallel"
    assert report.statistics.total_images == 3
    assert report.statistics.successful == 1
    assert report.statistics.skipped == 2
    output = config.output_path.read_text()
    assert "# Summary: 1 successful, 0 failed, 2 skipped\n" in output


@pytest.mark.asyncio
async def test_dry_run(
    config: Config, mock_engine: MockEngineClient, logger: BoundLogger
) -> None:
    config.dry_run = True
    config.repository = "registry.example.com"
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()

    report = await syncer.run()

    assert report.statistics.successful == 3
    assert mock_engine.call_count == 0
    assert mock_engine.verified == 0
    output = config.output_path.read_text()
    assert output.startswith(
        "# If your repository is private, please login first...\n"
        "# docker login registry.example.com --username={your username}\n"
        "\n# HubSync completed at "
    )
    assert "docker pull registry.example.com/yugasun/nginx:1.19 #" in output


@pytest.mark.asyncio
async def test_bad_credentials(
    config: Config, mock_engine: MockEngineClient, logger: BoundLogger
) -> None:
    mock_engine.reject_credentials = True
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()

    with pytest.raises(ClientError):
        await syncer.run()
    assert mock_engine.call_count == 0


@pytest.mark.asyncio
async def test_cancel(config: Config, logger: BoundLogger) -> None:
    timeout = Timeout("sync")
    mock_engine = MockEngineClient(on_pull=lambda _: timeout.cancel("stop"))
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()

    report = await syncer.run(timeout)

    assert isinstance(report.error, ContextError)
    assert len(report.results) == 1
    assert report.statistics.successful == 1
    output = config.output_path.read_text()
    assert "# Summary: 1 successful, 0 failed, 0 skipped\n" in output
    assert "docker pull yugasun/nginx:1.19 #" in output


@pytest.mark.asyncio
async def test_slack_report(
    config: Config,
    mock_engine: MockEngineClient,
    mock_slack: MockSlackWebhook,
    logger: BoundLogger,
) -> None:
    mock_engine.fail_pull("redis:latest")
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()

    report = await syncer.run()

    assert report.statistics.failed == 1
    assert len(mock_slack.messages) == 1
    message = json.dumps(mock_slack.messages[0])
    assert f"1 images failed to sync in {report.correlation_id}" in message
    assert "yugasun/redis:latest" in message
    assert "SyncFailuresError" in message


@pytest.mark.asyncio
async def test_no_slack_on_success(
    config: Config,
    mock_engine: MockEngineClient,
    mock_slack: MockSlackWebhook,
    logger: BoundLogger,
) -> None:
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()
    await syncer.run()
    assert mock_slack.messages == []


@pytest.mark.asyncio
async def test_standalone(config: Config) -> None:
    mock_engine = MockEngineClient()
    async with Factory.standalone(config, engine=mock_engine) as factory:
        syncer = factory.create_syncer()
        await syncer.run()
    assert mock_engine.closed


@pytest.mark.asyncio
async def test_time_budget(config: Config, logger: BoundLogger) -> None:
    config.timeout = timedelta(seconds=0.05)
    mock_engine = MockEngineClient(delay=0.04)
    syncer = Factory(config, logger, engine=mock_engine).create_syncer()

    report = await syncer.run()

    assert isinstance(report.error, ContextError)
    assert report.error.reason == "timed out after 0.05s"
    assert len(report.results) == 1
    assert report.results[0].success
    assert mock_engine.pulls == ["nginx:1.19"]
    output = config.output_path.read_text()
    assert "# Summary: 1 successful, 0 failed, 0 skipped\n" in output
    assert "docker pull yugasun/nginx:1.19 #" in output
