"""Component factory for hubsync."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from typing import Self

import structlog
from safir.slack.webhook import SlackWebhookClient
from structlog.stdlib import BoundLogger

from .config import Config
from .constants import ROOT_LOGGER
from .services.syncer import Syncer
from .storage.docker import DockerEngineClient
from .storage.engine import EngineClient
from .storage.output import OutputWriter

__all__ = ["Factory"]


class Factory:
    """Build hubsync components from the configuration.

    Every component is created explicitly for one run. The container engine
    client is created once and shared by everything the factory builds.

    Parameters
    ----------
    config
        Configuration for the run.
    logger
        Logger to use for messages.
    engine
        Container engine client to use instead of the Docker client, mostly
        for testing.
    """

    @classmethod
    @asynccontextmanager
    async def standalone(
        cls, config: Config, *, engine: EngineClient | None = None
    ) -> AsyncIterator[Self]:
        """Async context manager for hubsync components.

        Parameters
        ----------
        config
            Configuration for the run.
        engine
            Container engine client to use instead of the Docker client.

        Yields
        ------
        Factory
            Newly-created factory. Must be used as a context manager.
        """
        logger = structlog.get_logger(ROOT_LOGGER)
        factory = cls(config, logger, engine=engine)
        async with aclosing(factory):
            yield factory

    def __init__(
        self,
        config: Config,
        logger: BoundLogger,
        *,
        engine: EngineClient | None = None,
    ) -> None:
        self._config = config
        self._logger = logger
        self._engine = engine

    async def aclose(self) -> None:
        """Shut down any resources the factory created."""
        if self._engine:
            await self._engine.close()
            self._engine = None

    def create_engine_client(self) -> EngineClient:
        """Get the container engine client, creating it if needed.

        Returns
        -------
        EngineClient
            Shared engine client. The connection to the daemon is only made
            when it is first used.
        """
        if not self._engine:
            self._engine = DockerEngineClient(
                username=self._config.username,
                password=self._config.password.get_secret_value(),
                repository=self._config.repository,
                timeout=self._config.engine_timeout,
                logger=self._logger,
            )
        return self._engine

    def create_output_writer(self) -> OutputWriter:
        """Create a writer for the configured output log."""
        return OutputWriter(
            self._config.output_path,
            repository=self._config.repository,
            logger=self._logger,
        )

    def create_slack_client(self) -> SlackWebhookClient | None:
        """Create a Slack client if an alert hook is configured."""
        if not self._config.alert_hook:
            return None
        return SlackWebhookClient(
            self._config.alert_hook.get_secret_value(),
            "hubsync",
            logger=self._logger,
        )

    def create_syncer(self) -> Syncer:
        """Create the orchestrator for a sync run."""
        return Syncer(
            config=self._config,
            engine=self.create_engine_client(),
            output_writer=self.create_output_writer(),
            logger=self._logger,
            slack_client=self.create_slack_client(),
        )
