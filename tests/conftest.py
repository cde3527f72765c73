"""Test fixtures for hubsync tests."""

from __future__ import annotations

import json
from collections.abc import Iterator
from datetime import timedelta
from pathlib import Path

import pytest
import respx
import structlog
from pydantic import SecretStr
from safir.testing.slack import MockSlackWebhook, mock_slack_webhook
from structlog.stdlib import BoundLogger

from hubsync.config import Config
from hubsync.constants import ROOT_LOGGER

from .support.engine import MockEngineClient

_ENVIRONMENT = (
    "DOCKER_USERNAME",
    "DOCKER_PASSWORD",
    "DOCKER_REPOSITORY",
    "DOCKER_NAMESPACE",
    "CONTENT",
    "MAX_CONTENT",
    "OUTPUT_PATH",
    "CONCURRENCY",
    "TIMEOUT",
    "RETRY_COUNT",
    "RETRY_DELAY",
    "ENGINE_TIMEOUT",
    "FORCE",
    "DRY_RUN",
    "LOG_LEVEL",
    "HUBSYNC_ALERT_HOOK",
    "HUBSYNC_CONFIG_FILE",
    "HUBSYNC_DEBUG",
    "HUBSYNC_LOG_PROFILE",
    "HUBSYNC_ADD_TIMESTAMP",
    "PROFILE",
)


@pytest.fixture(autouse=True)
def environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Iterator[Path]:
    """Isolate tests from the settings of the user running them."""
    for variable in _ENVIRONMENT:
        monkeypatch.delenv(variable, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("hubsync.config.CONFIG_SEARCH_PATHS", (Path(),))
    yield tmp_path


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Construct default configuration for tests."""
    return Config(
        username="someuser",
        password="some-token",
        content=json.dumps(
            {"hubsync": ["nginx:1.19", "redis", "yugasun/alpine$alpine"]}
        ),
        output_path=tmp_path / "output.log",
        concurrency=1,
        retry_count=2,
        retry_delay=timedelta(0),
    )


@pytest.fixture
def logger() -> BoundLogger:
    return structlog.get_logger(ROOT_LOGGER)


@pytest.fixture
def mock_engine() -> MockEngineClient:
    return MockEngineClient()


@pytest.fixture
def mock_slack(
    config: Config, respx_mock: respx.Router
) -> Iterator[MockSlackWebhook]:
    config.alert_hook = SecretStr("https://slack.example.com/webhook")
    yield mock_slack_webhook("https://slack.example.com/webhook", respx_mock)
    config.alert_hook = None
