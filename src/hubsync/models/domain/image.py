"""Domain model for container image references."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from ...constants import DEFAULT_TAG

__all__ = ["ImageReference"]


@dataclass(frozen=True, slots=True)
class ImageReference:
    """A container image reference split into its parts.

    Unlike a full Docker reference parser, this treats everything before the
    last ``/`` as an opaque repository prefix (which may include a registry
    host) and everything after the last ``:`` as the tag. Image references
    are only ever built from already-normalized strings that carry a tag.
    """

    repository: str
    """Registry and path prefix, or the empty string for the default."""

    name: str
    """Image name without path or tag."""

    tag: str = DEFAULT_TAG
    """Image tag."""

    @classmethod
    def from_str(cls, reference: str) -> Self:
        """Split a normalized reference string into its components.

        Parameters
        ----------
        reference
            Reference such as ``registry.example.com/library/nginx:1.19``.

        Returns
        -------
        ImageReference
            Parsed reference. ``full_name`` of the result reproduces the
            input whenever the input contains a ``:``.
        """
        path, sep, tag = reference.rpartition(":")
        if not sep:
            path = reference
            tag = DEFAULT_TAG
        repository, _, name = path.rpartition("/")
        return cls(repository=repository, name=name, tag=tag)

    @property
    def full_name(self) -> str:
        """Canonical form passed to pull, tag and push."""
        prefix = f"{self.repository}/" if self.repository else ""
        return f"{prefix}{self.name}:{self.tag}"

    def __str__(self) -> str:
        return self.full_name
