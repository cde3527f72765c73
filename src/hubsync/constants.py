"""Constants for hubsync.  Overrideable for testing."""

from datetime import timedelta
from pathlib import Path

__all__ = [
    "ALERT_HOOK_ENV_VAR",
    "CONFIG_FILE_ENV_VAR",
    "CONFIG_FILE_NAMES",
    "CONFIG_SEARCH_PATHS",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_ENGINE_TIMEOUT",
    "DEFAULT_MAX_CONTENT",
    "DEFAULT_NAMESPACE",
    "DEFAULT_OUTPUT_PATH",
    "DEFAULT_PARALLEL_WORKERS",
    "DEFAULT_PROFILE",
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TAG",
    "DEFAULT_TIMEOUT",
    "ENV_FILES",
    "ENV_PREFIX",
    "MAX_BACKOFF_EXPONENT",
    "ROOT_LOGGER",
]

ENV_PREFIX = "HUBSYNC_"
"""Prefix for environment variables specific to hubsync itself.

Settings shared with other Docker Hub mirroring tools (``DOCKER_USERNAME``,
``CONTENT``, and so forth) are read without this prefix.
"""

ALERT_HOOK_ENV_VAR = f"{ENV_PREFIX}ALERT_HOOK"
"""Name of environment variable specifying Slack alert webhook."""

CONFIG_FILE_ENV_VAR = f"{ENV_PREFIX}CONFIG_FILE"
"""Name of environment variable pointing to a YAML configuration file."""

CONFIG_FILE_NAMES = ("hubsync.yaml", "hubsync.yml")
"""Names of configuration files looked for when none is given."""

CONFIG_SEARCH_PATHS = (
    Path(),
    Path.home() / ".hubsync",
    Path("/etc/hubsync"),
)
"""Directories searched for a configuration file, in order."""

DEFAULT_PROFILE = "default"
"""Profile name meaning that no profile from the file is applied."""

ENV_FILES = (Path(".env"), Path.home() / ".hubsync" / ".env")
"""Dotenv files consulted for settings, in increasing priority."""

ROOT_LOGGER = "hubsync"
"""Root logger name."""

DEFAULT_TAG = "latest"
"""Tag assumed for image references without one."""

DEFAULT_NAMESPACE = "yugasun"
"""Target namespace when none is configured."""

DEFAULT_MAX_CONTENT = 10
"""Maximum number of images accepted in one content payload."""

DEFAULT_OUTPUT_PATH = Path("output.log")
"""Where the rendered pull commands are written."""

DEFAULT_CONCURRENCY = 3
"""Number of images synchronized at the same time."""

DEFAULT_PARALLEL_WORKERS = 4
"""Worker count used by the parallel strategy if given a nonsensical one."""

DEFAULT_TIMEOUT = timedelta(minutes=10)
"""Overall time budget for one sync run."""

DEFAULT_ENGINE_TIMEOUT = timedelta(minutes=10)
"""Timeout for a single call to the container engine."""

DEFAULT_RETRY_COUNT = 3
"""Additional attempts made for a failed pull or push."""

DEFAULT_RETRY_DELAY = timedelta(seconds=2)
"""Base delay before the first retry, doubled on each further retry."""

MAX_BACKOFF_EXPONENT = 10
"""Largest power of two applied to the retry delay."""
