"""Tests for hubsync configuration."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest
import yaml
from safir.logging import LogLevel

from hubsync.config import Config
from hubsync.exceptions import ConfigError

CONTENT = json.dumps({"hubsync": ["nginx:1.19"]})


def test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOCKER_USERNAME", "someuser")
    monkeypatch.setenv("DOCKER_PASSWORD", "some-token")
    monkeypatch.setenv("DOCKER_REPOSITORY", "registry.example.com")
    monkeypatch.setenv("DOCKER_NAMESPACE", "mirror")
    monkeypatch.setenv("CONTENT", CONTENT)
    monkeypatch.setenv("CONCURRENCY", "5")
    monkeypatch.setenv("TIMEOUT", "1h30m")
    monkeypatch.setenv("RETRY_DELAY", "5")
    monkeypatch.setenv("DRY_RUN", "true")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = Config.load()

    assert config.username == "someuser"
    assert config.password.get_secret_value() == "some-token"
    assert config.repository == "registry.example.com"
    assert config.namespace == "mirror"
    assert config.content == CONTENT
    assert config.concurrency == 5
    assert config.timeout == timedelta(hours=1, minutes=30)
    assert config.retry_delay == timedelta(seconds=5)
    assert config.dry_run
    assert config.log_level == LogLevel.DEBUG


def test_defaults() -> None:
    config = Config.load(username="u", password="p", content=CONTENT)

    assert config.repository == ""
    assert config.namespace == "yugasun"
    assert config.max_content == 10
    assert config.output_path == Path("output.log")
    assert config.concurrency == 3
    assert config.timeout == timedelta(minutes=10)
    assert config.retry_count == 3
    assert config.retry_delay == timedelta(seconds=2)
    assert not config.force
    assert not config.dry_run
    assert config.alert_hook is None


def test_precedence(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        yaml.dump(
            {
                "username": "file-user",
                "password": "file-token",
                "namespace": "file-namespace",
                "concurrency": 2,
                "content": {"hubsync": ["redis"]},
            }
        )
    )
    monkeypatch.setenv("DOCKER_NAMESPACE", "env-namespace")
    monkeypatch.setenv("CONCURRENCY", "4")

    config = Config.load(config_file, concurrency=8, username=None)

    assert config.username == "file-user"
    assert config.namespace == "env-namespace"
    assert config.concurrency == 8
    assert json.loads(config.content) == {"hubsync": ["redis"]}

    monkeypatch.setenv("HUBSYNC_CONFIG_FILE", str(config_file))
    config = Config.load()
    assert config.username == "file-user"
    assert config.concurrency == 4


def test_dotenv(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text(
        f"DOCKER_USERNAME=dotenv-user\nDOCKER_PASSWORD=secret\n"
        f"CONTENT='{CONTENT}'\nUNRELATED=value\n"
    )
    config = Config.load()
    assert config.username == "dotenv-user"
    assert config.content == CONTENT


def test_missing() -> None:
    with pytest.raises(ConfigError) as excinfo:
        Config.load(username="someuser")
    assert "password" in str(excinfo.value)
    assert "content" in str(excinfo.value)
    assert "username" not in str(excinfo.value)


@pytest.mark.parametrize(
    "overrides",
    [{"concurrency": 0}, {"retry_count": -1}, {"timeout": "soon"}],
)
def test_invalid(overrides: dict[str, object]) -> None:
    with pytest.raises(ConfigError, match="^invalid configuration: "):
        Config.load(username="u", password="p", content=CONTENT, **overrides)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="does not exist"):
        Config.load(tmp_path / "missing.yaml")


def test_search_path(tmp_path: Path) -> None:
    (tmp_path / "hubsync.yaml").write_text(
        yaml.dump(
            {
                "username": "file-user",
                "password": "file-token",
                "content": {"hubsync": ["redis"]},
            }
        )
    )

    config = Config.load()

    assert config.config_file == Path("hubsync.yaml")
    assert config.username == "file-user"


def test_profile(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        yaml.dump(
            {
                "username": "file-user",
                "password": "file-token",
                "content": CONTENT,
                "namespace": "file-namespace",
                "concurrency": 2,
                "profiles": {
                    "fast": {"concurrency": 8, "retry_count": 0},
                    "staging": {"namespace": "staging"},
                },
            }
        )
    )

    config = Config.load(config_file)
    assert config.profile == "default"
    assert config.concurrency == 2
    assert config.namespace == "file-namespace"

    config = Config.load(config_file, profile="fast")
    assert config.profile == "fast"
    assert config.concurrency == 8
    assert config.retry_count == 0
    assert config.namespace == "file-namespace"

    # The environment still wins over the profile.
    monkeypatch.setenv("PROFILE", "staging")
    monkeypatch.setenv("DOCKER_NAMESPACE", "env-namespace")
    config = Config.load(config_file)
    assert config.profile == "staging"
    assert config.namespace == "env-namespace"

    monkeypatch.delenv("DOCKER_NAMESPACE")
    config = Config.load(config_file)
    assert config.namespace == "staging"

    config = Config.load(config_file, profile="missing")
    assert config.concurrency == 2


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("debug", LogLevel.DEBUG),
        ("warn", LogLevel.WARNING),
        ("Error", LogLevel.ERROR),
        ("fatal", LogLevel.CRITICAL),
    ],
)
def test_log_level(value: str, expected: LogLevel) -> None:
    config = Config.load(
        username="u", password="p", content=CONTENT, log_level=value
    )
    assert config.log_level == expected
