"""Tests for the output log."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from structlog.stdlib import BoundLogger

from hubsync.exceptions import OperationError
from hubsync.models.domain.image import ImageReference
from hubsync.models.domain.sync import SyncOperation, SyncResult
from hubsync.services.statistics import aggregate_statistics
from hubsync.storage.output import OutputWriter


def _result(
    source: str, target: str, error: Exception | None = None
) -> SyncResult:
    operation = SyncOperation(
        source=ImageReference.from_str(source),
        target=ImageReference.from_str(target),
    )
    start = datetime(2026, 1, 1, tzinfo=UTC)
    result = SyncResult(operation=operation, start_time=start)
    result.finish(error)
    result.end_time = start + timedelta(seconds=1.5)
    return result


def test_write(tmp_path: Path, logger: BoundLogger) -> None:
    results = [
        _result("nginx:1.19", "yugasun/nginx:1.19"),
        _result(
            "redis:latest",
            "yugasun/redis:latest",
            OperationError("failed to push target image"),
        ),
        _result("mysql:8", "yugasun/mysql:8"),
    ]
    statistics = aggregate_statistics(
        results, total_images=4, skipped=1, duration=timedelta(seconds=4)
    )
    path = tmp_path / "output.log"
    writer = OutputWriter(path, logger=logger)

    writer.write(results, statistics, correlation_id="sync-1234")

    lines = path.read_text().splitlines()
    assert lines[0].startswith("# HubSync completed at ")
    assert lines[1:] == [
        "# Summary: 2 successful, 1 failed, 1 skipped",
        "# Total duration: 4.00s",
        "# Correlation ID: sync-1234",
        "",
        "docker pull yugasun/nginx:1.19 # (from nginx:1.19 in 1.50s)",
        "docker pull yugasun/mysql:8 # (from mysql:8 in 1.50s)",
        "",
        "# The following images failed to sync:",
        "# redis:latest -> yugasun/redis:latest"
        " (failed to push target image)",
    ]


def test_login_hint(tmp_path: Path, logger: BoundLogger) -> None:
    results = [
        _result("nginx:1.19", "registry.example.com/yugasun/nginx:1.19")
    ]
    statistics = aggregate_statistics(
        results, total_images=1, skipped=0, duration=timedelta(seconds=2)
    )
    writer = OutputWriter(
        tmp_path / "output.log",
        repository="registry.example.com",
        logger=logger,
    )

    output = writer.render(results, statistics, correlation_id="sync-1")

    lines = output.splitlines()
    assert lines[:3] == [
        "# If your repository is private, please login first...",
        "# docker login registry.example.com --username={your username}",
        "",
    ]
    assert "failed to sync" not in output
    assert output.endswith(
        "docker pull registry.example.com/yugasun/nginx:1.19"
        " # (from nginx:1.19 in 1.50s)\n"
    )


def test_no_results(tmp_path: Path, logger: BoundLogger) -> None:
    statistics = aggregate_statistics(
        [], total_images=1, skipped=1, duration=timedelta(0)
    )
    path = tmp_path / "output.log"
    OutputWriter(path, logger=logger).write(
        [], statistics, correlation_id="sync-1"
    )
    output = path.read_text()
    assert "# Summary: 0 successful, 0 failed, 1 skipped\n" in output
    assert "docker pull" not in output


def test_write_error(tmp_path: Path, logger: BoundLogger) -> None:
    statistics = aggregate_statistics(
        [], total_images=0, skipped=0, duration=timedelta(0)
    )
    path = tmp_path / "missing" / "output.log"
    writer = OutputWriter(path, logger=logger)

    with pytest.raises(OperationError, match="failed to generate output"):
        writer.write([], statistics, correlation_id="sync-1")


def test_multiline_error(tmp_path: Path, logger: BoundLogger) -> None:
    error = OperationError(
        "failed to pull source image redis:latest after 1 attempts:"
        " redis:latest: Get https://registry-1.docker.io/v2/:\n"
        "  net/http: request canceled\n"
    )
    results = [_result("redis:latest", "yugasun/redis:latest", error)]
    statistics = aggregate_statistics(
        results, total_images=1, skipped=0, duration=timedelta(seconds=1)
    )
    writer = OutputWriter(tmp_path / "output.log", logger=logger)

    output = writer.render(results, statistics, correlation_id="sync-1")

    failures = output.split("# The following images failed to sync:\n")[1]
    assert failures.splitlines() == [
        "# redis:latest -> yugasun/redis:latest (failed to pull source image"
        " redis:latest after 1 attempts: redis:latest: Get"
        " https://registry-1.docker.io/v2/: net/http: request canceled)"
    ]
