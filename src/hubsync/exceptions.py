"""Exceptions for hubsync."""

from __future__ import annotations

from typing import override

from pydantic import ValidationError
from safir.slack.blockkit import (
    SlackBaseField,
    SlackException,
    SlackMessage,
    SlackTextBlock,
    SlackTextField,
)
from safir.slack.sentry import SentryEventInfo

from .models.domain.sync import SyncStep

__all__ = [
    "ClientError",
    "ConfigError",
    "ContextError",
    "EngineError",
    "HubSyncError",
    "OperationError",
    "SyncFailuresError",
]


class HubSyncError(SlackException):
    """Base class for all hubsync errors."""


class ConfigError(HubSyncError):
    """Settings or content are invalid.

    Raised before any call to the container engine is made.
    """

    @classmethod
    def from_validation_error(
        cls, message: str, error: ValidationError
    ) -> ConfigError:
        """Summarize a Pydantic validation error.

        Parameters
        ----------
        message
            Prefix describing what was being validated.
        error
            Validation error from Pydantic.

        Returns
        -------
        ConfigError
            Exception with one line per validation failure.
        """
        problems = []
        for detail in error.errors():
            location = ".".join(str(p) for p in detail["loc"])
            if location:
                problems.append(f"{location}: {detail['msg']}")
            else:
                problems.append(detail["msg"])
        return cls(f"{message}: {'; '.join(problems)}")


class ClientError(HubSyncError):
    """The container engine client could not be created or authenticated."""


class EngineError(HubSyncError):
    """A single call to the container engine failed."""


class ContextError(HubSyncError):
    """The run was cancelled or ran out of time.

    Parameters
    ----------
    message
        Summary of what was interrupted.
    reason
        Why the run was cancelled, such as an expired timeout or a signal.
    """

    def __init__(self, message: str, reason: str | None = None) -> None:
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.reason = reason


class OperationError(HubSyncError):
    """An engine step failed, or the output file could not be written.

    Parameters
    ----------
    message
        Summary of the error.
    step
        Engine step that failed, if the error is about one image.
    image
        Image reference the step was acting on.
    attempts
        Number of attempts made before giving up, if the step was retried.
    """

    def __init__(
        self,
        message: str,
        *,
        step: SyncStep | None = None,
        image: str | None = None,
        attempts: int | None = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.image = image
        self.attempts = attempts

    @override
    def to_slack(self) -> SlackMessage:
        """Format this exception as a Slack message."""
        message = super().to_slack()
        fields: list[SlackBaseField] = []
        if self.step:
            fields.append(SlackTextField(heading="Step", text=self.step.value))
        if self.image:
            fields.append(SlackTextField(heading="Image", text=self.image))
        message.fields.extend(fields)
        return message

    @override
    def to_sentry(self) -> SentryEventInfo:
        """Return Sentry metadata for this exception."""
        info = super().to_sentry()
        if self.step:
            info.tags["step"] = self.step.value
        if self.image:
            info.tags["image"] = self.image
        return info


class SyncFailuresError(HubSyncError):
    """Some images in a run failed to sync.

    This is never raised. It is used to report partial failures to Slack,
    since those do not fail the run.

    Parameters
    ----------
    message
        Summary of the failures.
    failed_images
        Mapping of ``source -> target`` descriptions to error messages.
    """

    def __init__(self, message: str, failed_images: dict[str, str]) -> None:
        super().__init__(message)
        self.failed_images = failed_images
        self.report = "\n".join(
            f"{image}: {error}" for image, error in failed_images.items()
        )

    @override
    def to_slack(self) -> SlackMessage:
        """Format this exception as a Slack message."""
        message = super().to_slack()
        attachment = SlackTextBlock(heading="Failed images", text=self.report)
        message.attachments.append(attachment)
        return message

    @override
    def to_sentry(self) -> SentryEventInfo:
        """Return Sentry metadata for this exception."""
        info = super().to_sentry()
        info.contexts["failed_images"] = self.failed_images
        return info
