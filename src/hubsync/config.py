"""Application configuration for hubsync."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any, Self, override

import structlog
from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    InitSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)
from safir.logging import LogLevel, Profile, configure_logging
from safir.pydantic import HumanTimedelta

from .constants import (
    ALERT_HOOK_ENV_VAR,
    CONFIG_FILE_ENV_VAR,
    CONFIG_FILE_NAMES,
    CONFIG_SEARCH_PATHS,
    DEFAULT_CONCURRENCY,
    DEFAULT_ENGINE_TIMEOUT,
    DEFAULT_MAX_CONTENT,
    DEFAULT_NAMESPACE,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_PROFILE,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    ENV_FILES,
    ENV_PREFIX,
    ROOT_LOGGER,
)
from .exceptions import ConfigError

__all__ = ["Config"]

_LOG_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


def _find_config_file() -> Path | None:
    """Find a configuration file in the default locations, if any."""
    for directory in CONFIG_SEARCH_PATHS:
        for name in CONFIG_FILE_NAMES:
            path = directory / name
            if path.is_file():
                return path
    return None


class _ProfileYamlSettingsSource(YamlConfigSettingsSource):
    """YAML settings source that applies a named profile from the file.

    The file may contain a ``profiles`` mapping from profile names to
    settings. The settings of the selected profile override the top-level
    settings of the file, but not settings from any other source. The
    profile is chosen by the other sources or by the file itself.
    """

    @override
    def __call__(self) -> dict[str, Any]:
        data = dict(super().__call__())
        profiles = data.pop("profiles", None) or {}
        state = self.current_state
        name = (
            state.get("PROFILE")
            or state.get("profile")
            or data.get("PROFILE")
            or data.get("profile")
            or DEFAULT_PROFILE
        )
        if name == DEFAULT_PROFILE:
            return data
        settings = profiles.get(name) if isinstance(profiles, dict) else None
        if not isinstance(settings, dict):
            logger = structlog.get_logger(ROOT_LOGGER)
            logger.warning("Configuration profile not found", profile=name)
            return data
        profile = InitSettingsSource(self.settings_cls, settings)
        return {**data, **profile()}


class Config(BaseSettings):
    """Configuration for a sync run.

    Settings are taken, in decreasing order of priority, from constructor
    arguments (command-line flags), environment variables, :file:`.env`
    files, and an optional YAML configuration file. Settings shared with
    other Docker Hub mirroring tools use their unprefixed environment
    variable names, such as ``DOCKER_USERNAME`` and ``CONTENT``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=ENV_FILES,
        extra="ignore",
        validate_by_name=True,
    )

    config_file: Annotated[
        Path | None,
        Field(
            title="Configuration file",
            description="YAML file providing lower-priority settings.",
            validation_alias=AliasChoices(CONFIG_FILE_ENV_VAR, "configFile"),
        ),
    ] = None

    username: Annotated[
        str,
        Field(
            title="Registry user name",
            validation_alias=AliasChoices("DOCKER_USERNAME", "dockerUsername"),
        ),
    ] = ""

    password: Annotated[
        SecretStr,
        Field(
            title="Registry password or token",
            validation_alias=AliasChoices("DOCKER_PASSWORD", "dockerPassword"),
        ),
    ] = SecretStr("")

    repository: Annotated[
        str,
        Field(
            title="Target registry",
            description=(
                "Registry host and optional path prefix for mirrored images."
                " Empty to mirror into the default public registry."
            ),
            validation_alias=AliasChoices(
                "DOCKER_REPOSITORY", "dockerRepository"
            ),
        ),
    ] = ""

    namespace: Annotated[
        str,
        Field(
            title="Target namespace",
            validation_alias=AliasChoices(
                "DOCKER_NAMESPACE", "dockerNamespace"
            ),
        ),
    ] = DEFAULT_NAMESPACE

    content: Annotated[
        str,
        Field(
            title="Images to mirror",
            description=(
                'JSON document of the form {"hubsync": ["image", ...]}.'
                " A mapping in the YAML configuration file is also accepted."
            ),
            validation_alias=AliasChoices("CONTENT"),
        ),
    ] = ""

    max_content: Annotated[
        int,
        Field(
            title="Maximum number of images per run",
            ge=1,
            validation_alias=AliasChoices("MAX_CONTENT", "maxContent"),
        ),
    ] = DEFAULT_MAX_CONTENT

    output_path: Annotated[
        Path,
        Field(
            title="Output log path",
            validation_alias=AliasChoices("OUTPUT_PATH", "outputPath"),
        ),
    ] = DEFAULT_OUTPUT_PATH

    concurrency: Annotated[
        int,
        Field(
            title="Images synced at the same time",
            ge=1,
            validation_alias=AliasChoices("CONCURRENCY"),
        ),
    ] = DEFAULT_CONCURRENCY

    timeout: Annotated[
        HumanTimedelta,
        Field(
            title="Time budget for the whole run",
            validation_alias=AliasChoices("TIMEOUT"),
        ),
    ] = DEFAULT_TIMEOUT

    retry_count: Annotated[
        int,
        Field(
            title="Retries for a failed pull or push",
            ge=0,
            validation_alias=AliasChoices("RETRY_COUNT", "retryCount"),
        ),
    ] = DEFAULT_RETRY_COUNT

    retry_delay: Annotated[
        HumanTimedelta,
        Field(
            title="Base delay between retries",
            description="Doubled for each further retry.",
            validation_alias=AliasChoices("RETRY_DELAY", "retryDelay"),
        ),
    ] = DEFAULT_RETRY_DELAY

    engine_timeout: Annotated[
        HumanTimedelta,
        Field(
            title="Timeout for one call to the container engine",
            validation_alias=AliasChoices(
                "ENGINE_TIMEOUT", "engineTimeout"
            ),
        ),
    ] = DEFAULT_ENGINE_TIMEOUT

    force: Annotated[
        bool,
        Field(
            title="Overwrite existing target images",
            validation_alias=AliasChoices("FORCE"),
        ),
    ] = False

    dry_run: Annotated[
        bool,
        Field(
            title="Report rather than sync",
            validation_alias=AliasChoices("DRY_RUN", "dryRun"),
        ),
    ] = False

    debug: Annotated[
        bool,
        Field(
            title="Show debug output and log style",
            description=(
                "If True, then log level will be set to debug and will"
                " use non-structured, human-readable output."
            ),
            validation_alias=AliasChoices(ENV_PREFIX + "DEBUG"),
        ),
    ] = False

    log_level: Annotated[
        LogLevel,
        Field(
            title="Log level",
            validation_alias=AliasChoices("LOG_LEVEL", "logLevel"),
        ),
    ] = LogLevel.INFO

    profile: Annotated[
        str,
        Field(
            title="Configuration profile",
            description=(
                "Name of an entry under ``profiles`` in the configuration"
                " file whose settings override the rest of that file."
            ),
            validation_alias=AliasChoices("PROFILE"),
        ),
    ] = DEFAULT_PROFILE

    log_profile: Annotated[
        Profile,
        Field(
            title="Logging profile",
            validation_alias=AliasChoices(
                ENV_PREFIX + "LOG_PROFILE", "logProfile"
            ),
        ),
    ] = Profile.development

    add_timestamp: Annotated[
        bool,
        Field(
            title="Add timestamp to log lines",
            validation_alias=AliasChoices(
                ENV_PREFIX + "ADD_TIMESTAMP", "addTimestamp"
            ),
        ),
    ] = False

    alert_hook: Annotated[
        SecretStr | None,
        Field(
            title="Slack webhook URL used for sending alerts",
            description=(
                "An https URL, which should be considered secret."
                " If not set or set to `None`, this feature will be disabled."
            ),
            validation_alias=AliasChoices(ALERT_HOOK_ENV_VAR, "alertHook"),
        ),
    ] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Override the sources of settings.

        Deactivate secret file support. Init parameters come from
        command-line flags, so they take precedence over the environment,
        which in turn overrides the YAML configuration file if one was
        given. A profile selected by any source is applied to the file.
        """
        sources = [init_settings, env_settings, dotenv_settings]
        path = None
        if isinstance(init_settings, InitSettingsSource):
            kwargs = init_settings.init_kwargs
            path = kwargs.get(CONFIG_FILE_ENV_VAR) or kwargs.get("config_file")
        path = path or os.getenv(CONFIG_FILE_ENV_VAR)
        if path:
            sources.append(_ProfileYamlSettingsSource(settings_cls, path))
        return tuple(sources)

    @classmethod
    def load(cls, config_file: Path | None = None, **overrides: Any) -> Self:
        """Load and validate the configuration.

        Parameters
        ----------
        config_file
            Optional YAML configuration file. If not given, the file named
            by ``HUBSYNC_CONFIG_FILE`` is used, if set, and otherwise the
            first ``hubsync.yaml`` found in the working directory,
            ``~/.hubsync`` or ``/etc/hubsync``.
        **overrides
            Settings from the command line, by field name. Values of `None`
            are ignored.

        Returns
        -------
        Config
            Validated configuration.

        Raises
        ------
        ConfigError
            Raised if the configuration file does not exist or if the
            settings are invalid or incomplete.
        """
        if env_config_path := os.getenv(CONFIG_FILE_ENV_VAR):
            config_file = config_file or Path(env_config_path)
        if config_file and not config_file.exists():
            raise ConfigError(f"config file {config_file} does not exist")
        config_file = config_file or _find_config_file()
        if config_file:
            overrides["config_file"] = config_file
        settings = {
            cls._init_key(k): v for k, v in overrides.items() if v is not None
        }
        try:
            return cls(**settings)
        except ValidationError as e:
            raise ConfigError.from_validation_error(
                "invalid configuration", e
            ) from e

    @classmethod
    def _init_key(cls, name: str) -> str:
        """Map a field name to the key used for it by the other sources.

        Environment sources report values under the first validation
        alias. Passing flags under the same key makes them override those
        values rather than compete with them during validation.
        """
        alias = cls.model_fields[name].validation_alias
        if isinstance(alias, AliasChoices):
            return str(alias.choices[0])
        return name

    @field_validator("content", mode="before")
    @classmethod
    def _serialize_content(cls, v: Any) -> Any:
        if isinstance(v, dict | list):
            return json.dumps(v)
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            level = v.upper()
            return _LOG_LEVEL_ALIASES.get(level, level)
        return v

    @model_validator(mode="after")
    def _check_required(self) -> Self:
        missing = []
        if not self.username:
            missing.append("username")
        if not self.password.get_secret_value():
            missing.append("password")
        if not self.content:
            missing.append("content")
        if missing:
            msg = f"missing required settings: {', '.join(missing)}"
            raise ValueError(msg)
        return self

    def configure_logging(self) -> None:
        """Configure logging based on the hubsync configuration."""
        if self.debug:
            log_level = LogLevel.DEBUG
            log_profile = Profile.development
        else:
            log_level = self.log_level
            log_profile = self.log_profile

        configure_logging(
            profile=log_profile,
            log_level=log_level,
            add_timestamp=self.add_timestamp,
            name=ROOT_LOGGER,
        )
