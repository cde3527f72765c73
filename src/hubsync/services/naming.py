"""Derive source and target image names from content entries.

Each content entry is an image reference, optionally followed by ``$`` and a
custom name for the mirrored copy. The rules here are deliberately kept
compatible with the names earlier releases produced, including some
surprising ones:

- A target is always reduced to its last path segment before it is placed
  under ``repository/namespace/``, so ``ghcr.io/org/tool`` becomes
  ``<repository>/<namespace>/tool``.
- Without a repository, entries with a custom-name marker have their path
  flattened with dots (``org/tool$cli`` becomes ``<namespace>/org.cli``),
  except when the entry contains ``:v``, in which case the target is the
  source itself and no namespace is added.
- Without a repository or a marker, a source that already starts with
  ``<namespace>/`` is used unchanged, path and all.
"""

from __future__ import annotations

from ..constants import DEFAULT_TAG
from ..models.domain.image import ImageReference

__all__ = [
    "CUSTOM_NAME_SEPARATOR",
    "generate_image_references",
    "generate_target_name",
]

CUSTOM_NAME_SEPARATOR = "$"
"""Separates a source image from the custom name of its mirror."""


def generate_image_references(
    image: str, *, repository: str, namespace: str
) -> tuple[ImageReference, ImageReference]:
    """Build the source and target references for a content entry.

    Parameters
    ----------
    image
        Content entry, such as ``nginx:1.19`` or ``org/tool:v2$tool``.
    repository
        Target registry host and path prefix, or the empty string for the
        default public registry.
    namespace
        Target namespace.

    Returns
    -------
    tuple of ImageReference
        Source and target references.
    """
    source, target = generate_target_name(
        image, repository=repository, namespace=namespace
    )
    return ImageReference.from_str(source), ImageReference.from_str(target)


def generate_target_name(
    image: str, *, repository: str, namespace: str
) -> tuple[str, str]:
    """Compute the normalized source name and the target name of an entry.

    This never fails. Empty entries must be filtered out by the caller.

    Parameters
    ----------
    image
        Content entry, such as ``nginx:1.19`` or ``org/tool:v2$tool``.
    repository
        Target registry host and path prefix, or the empty string for the
        default public registry.
    namespace
        Target namespace.

    Returns
    -------
    tuple of str
        Source name with a tag and the target name to tag and push.
    """
    has_marker = CUSTOM_NAME_SEPARATOR in image
    custom_name = ""
    base = image
    if has_marker:
        # Only the first two fields matter if the separator is repeated.
        parts = image.split(CUSTOM_NAME_SEPARATOR)
        base = parts[0]
        custom_name = parts[1]

    source = base if ":" in base else f"{base}:{DEFAULT_TAG}"
    tag = _split_tag(source)[1]
    is_versioned = has_marker and ":v" in image

    if repository:
        if custom_name:
            target = _with_tag(custom_name, tag)
        else:
            target = source
        return source, f"{repository}/{namespace}/{_basename(target)}"

    if is_versioned:
        return source, source
    if has_marker:
        return source, f"{namespace}/{_flatten(source, custom_name)}"
    if source.startswith(f"{namespace}/"):
        return source, source
    return source, f"{namespace}/{_basename(source)}"


def _basename(name: str) -> str:
    """Strip everything up to and including the last ``/``."""
    return name.rsplit("/", 1)[-1]


def _flatten(source: str, custom_name: str) -> str:
    """Collapse a path into one segment, renaming the image if requested."""
    path, tag = _split_tag(source)
    if custom_name:
        segments = path.split("/")[:-1]
        custom_path, custom_tag = _split_tag(_with_tag(custom_name, tag))
        segments.append(custom_path)
        path, tag = "/".join(segments), custom_tag
    return f"{path}:{tag}".replace("/", ".")


def _split_tag(name: str) -> tuple[str, str]:
    """Split a name on its last ``:``, defaulting the tag."""
    path, sep, tag = name.rpartition(":")
    if not sep:
        return name, DEFAULT_TAG
    return path, tag


def _with_tag(name: str, tag: str) -> str:
    """Append a tag unless the name already has one."""
    return name if ":" in name else f"{name}:{tag}"
