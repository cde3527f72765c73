"""Model for the content payload listing the images to mirror."""

from __future__ import annotations

from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...exceptions import ConfigError

__all__ = ["SyncContent"]


class SyncContent(BaseModel):
    """Images to mirror, as given in the ``content`` setting.

    For example: ``{"hubsync": ["nginx:1.19", "org/tool:v2$tool"]}``.
    """

    model_config = ConfigDict(extra="ignore")

    hubsync: Annotated[
        list[str],
        Field(
            title="Images to mirror",
            description=(
                "Source image references, each optionally followed by $ and"
                " a custom name for the mirrored image. Empty entries are"
                " skipped."
            ),
            examples=[["nginx:1.19", "yugasun/alpine$alpine"]],
        ),
    ]

    @classmethod
    def from_json(cls, content: str, *, max_content: int) -> Self:
        """Parse and check the content payload.

        Parameters
        ----------
        content
            JSON document with a ``hubsync`` list.
        max_content
            Maximum number of entries allowed.

        Returns
        -------
        SyncContent
            Parsed content.

        Raises
        ------
        ConfigError
            Raised if the JSON is malformed or has the wrong shape, or if it
            lists more than ``max_content`` entries.
        """
        try:
            parsed = cls.model_validate_json(content)
        except ValidationError as e:
            raise ConfigError.from_validation_error(
                "failed to parse content", e
            ) from e
        count = len(parsed.hubsync)
        if count > max_content:
            msg = f"too many images in content: {count} > {max_content}"
            raise ConfigError(msg)
        return parsed
