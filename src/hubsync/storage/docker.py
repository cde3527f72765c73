"""Container engine client using the Docker SDK."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Iterable
from datetime import timedelta
from typing import Any, override

import docker
from docker.errors import DockerException
from requests import RequestException
from structlog.stdlib import BoundLogger

from ..exceptions import ClientError, EngineError
from ..models.domain.image import ImageReference
from .engine import EngineClient

__all__ = ["DockerEngineClient"]


class DockerEngineClient(EngineClient):
    """Pull, tag, and push images through the local Docker daemon.

    The connection to the daemon is created on first use, so constructing
    this object never fails and dry runs never contact the daemon. All
    Docker SDK calls block, so they are run in a worker thread.

    Parameters
    ----------
    username
        Registry user name used to log in and push.
    password
        Registry password or access token.
    repository
        Registry to authenticate to, or the empty string for Docker Hub.
    timeout
        Timeout for each call to the Docker daemon.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        username: str,
        password: str,
        repository: str = "",
        timeout: timedelta,
        logger: BoundLogger,
    ) -> None:
        self._username = username
        self._password = password
        self._registry = repository.split("/", 1)[0] if repository else None
        self._timeout = timeout
        self._logger = logger
        self._client: docker.DockerClient | None = None
        self._client_lock = threading.Lock()

    @override
    async def pull(self, image: ImageReference) -> None:
        self._logger.debug("Pulling image", image=image.full_name)
        await asyncio.to_thread(self._pull, image)

    @override
    async def tag(
        self, source: ImageReference, target: ImageReference
    ) -> None:
        self._logger.debug(
            "Tagging image", source=source.full_name, target=target.full_name
        )
        await asyncio.to_thread(self._tag, source, target)

    @override
    async def push(self, image: ImageReference) -> None:
        self._logger.debug("Pushing image", image=image.full_name)
        await asyncio.to_thread(self._push, image)

    @override
    async def verify_credentials(self) -> None:
        """Log in to the registry with the configured credentials.

        Raises
        ------
        ClientError
            Raised if the daemon cannot be reached or the registry rejects
            the credentials.
        """
        await asyncio.to_thread(self._login)
        self._logger.debug("Registry credentials verified")

    @override
    async def close(self) -> None:
        if self._client:
            await asyncio.to_thread(self._client.close)
            self._client = None

    def _get_client(self) -> docker.DockerClient:
        """Connect to the Docker daemon if not already connected.

        Called from worker threads, so creation is serialized.
        """
        with self._client_lock:
            if not self._client:
                try:
                    self._client = docker.from_env(
                        timeout=int(self._timeout.total_seconds())
                    )
                except DockerException as e:
                    msg = f"failed to create Docker client: {e}"
                    raise ClientError(msg) from e
            return self._client

    def _auth_config(self) -> dict[str, str]:
        """Credentials in the form the Docker API expects."""
        auth = {"username": self._username, "password": self._password}
        if self._registry:
            auth["serveraddress"] = self._registry
        return auth

    def _login(self) -> None:
        client = self._get_client()
        try:
            client.login(
                username=self._username,
                password=self._password,
                registry=self._registry,
            )
        except (DockerException, RequestException) as e:
            msg = f"failed to verify Docker credentials: {e}"
            raise ClientError(msg) from e

    def _pull(self, image: ImageReference) -> None:
        client = self._get_client()
        repository, tag = self._split(image)
        try:
            stream = client.api.pull(
                repository, tag=tag, stream=True, decode=True
            )
            self._consume(stream, image)
        except (DockerException, RequestException, ValueError) as e:
            raise EngineError(f"pull of {image} failed: {e}") from e

    def _tag(self, source: ImageReference, target: ImageReference) -> None:
        client = self._get_client()
        repository, tag = self._split(target)
        try:
            if not client.api.tag(source.full_name, repository, tag=tag):
                msg = f"Docker refused to tag {source} as {target}"
                raise EngineError(msg)
        except (DockerException, RequestException) as e:
            msg = f"tag of {source} as {target} failed: {e}"
            raise EngineError(msg) from e

    def _push(self, image: ImageReference) -> None:
        client = self._get_client()
        repository, tag = self._split(image)
        try:
            stream = client.api.push(
                repository,
                tag=tag,
                stream=True,
                decode=True,
                auth_config=self._auth_config(),
            )
            self._consume(stream, image)
        except (DockerException, RequestException, ValueError) as e:
            raise EngineError(f"push of {image} failed: {e}") from e

    def _consume(
        self, stream: Iterable[dict[str, Any]], image: ImageReference
    ) -> None:
        """Read a progress stream, raising on any error it reports."""
        for event in stream:
            if "error" in event:
                error = event.get("errorDetail", {}).get("message")
                raise EngineError(f"{image}: {error or event['error']}")
            if status := event.get("status"):
                self._logger.debug(
                    status, image=image.full_name, layer=event.get("id")
                )

    @staticmethod
    def _split(image: ImageReference) -> tuple[str, str]:
        """Split a reference into the repository and tag Docker wants."""
        prefix = f"{image.repository}/" if image.repository else ""
        return f"{prefix}{image.name}", image.tag
