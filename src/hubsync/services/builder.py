"""Turn content entries into sync operations."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from structlog.stdlib import BoundLogger

from ..models.domain.sync import SyncOperation
from .naming import CUSTOM_NAME_SEPARATOR, generate_image_references

__all__ = ["OperationBuilder", "OperationPlan"]


@dataclass(slots=True)
class OperationPlan:
    """Operations built from a content list."""

    operations: list[SyncOperation] = field(default_factory=list)
    """Operations in content order."""

    skipped: int = 0
    """Entries that were empty or malformed and produced no operation."""


class OperationBuilder:
    """Build sync operations from content entries.

    Parameters
    ----------
    repository
        Target registry host and path prefix, or the empty string for the
        default public registry.
    namespace
        Target namespace.
    force
        Whether to overwrite targets without validating them first.
    dry_run
        Whether operations should only report what they would do.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        repository: str,
        namespace: str,
        force: bool = False,
        dry_run: bool = False,
        logger: BoundLogger,
    ) -> None:
        self._repository = repository
        self._namespace = namespace
        self._force = force
        self._dry_run = dry_run
        self._logger = logger

    def build(self, images: Sequence[str]) -> OperationPlan:
        """Build one operation per usable entry, preserving order.

        Parameters
        ----------
        images
            Content entries. The caller is responsible for rejecting lists
            that are too long.

        Returns
        -------
        OperationPlan
            Operations plus the number of skipped entries.
        """
        plan = OperationPlan()
        total = len(images)
        for index, image in enumerate(images, start=1):
            base = image.split(CUSTOM_NAME_SEPARATOR, 1)[0]
            if not base.strip():
                plan.skipped += 1
                self._logger.warning(
                    "Empty image name skipped",
                    index=index,
                    total=total,
                    image=image,
                )
                continue
            source, target = generate_image_references(
                image.strip(),
                repository=self._repository,
                namespace=self._namespace,
            )
            self._logger.debug(
                "Image mapping generated",
                source=source.full_name,
                target=target.full_name,
            )
            operation = SyncOperation(
                source=source,
                target=target,
                validate_target=not self._force,
                force=self._force,
                dry_run=self._dry_run,
            )
            plan.operations.append(operation)
        return plan
