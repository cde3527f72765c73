"""Interface to the container engine."""

from __future__ import annotations

from abc import ABCMeta, abstractmethod

from ..models.domain.image import ImageReference

__all__ = ["EngineClient"]


class EngineClient(metaclass=ABCMeta):
    """Operations on a local container engine.

    Implementations must be safe to use from several workers at once. Every
    method raises `~hubsync.exceptions.EngineError` if the engine reports a
    failure, except `verify_credentials`, which raises
    `~hubsync.exceptions.ClientError`.
    """

    @abstractmethod
    async def pull(self, image: ImageReference) -> None:
        """Pull an image into the local engine."""

    @abstractmethod
    async def tag(
        self, source: ImageReference, target: ImageReference
    ) -> None:
        """Give a local image an additional name."""

    @abstractmethod
    async def push(self, image: ImageReference) -> None:
        """Push a local image to its registry."""

    @abstractmethod
    async def verify_credentials(self) -> None:
        """Check that the configured registry credentials are accepted."""

    @abstractmethod
    async def close(self) -> None:
        """Release any connection to the engine."""
