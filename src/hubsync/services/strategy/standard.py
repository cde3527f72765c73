"""Sequential execution strategy."""

from __future__ import annotations

from collections.abc import Sequence
from typing import override

from ...models.domain.sync import ExecutionResult, SyncOperation, SyncResult
from ...timeout import Timeout
from .base import SyncStrategy

__all__ = ["StandardStrategy"]


class StandardStrategy(SyncStrategy):
    """Execute operations one at a time, in order.

    Results are returned in the order of the operations.
    """

    @property
    @override
    def name(self) -> str:
        return "standard"

    @override
    async def execute(
        self, operations: Sequence[SyncOperation], timeout: Timeout
    ) -> ExecutionResult:
        results: list[SyncResult] = []
        for operation in operations:
            if timeout.cancelled:
                error = timeout.error("sync cancelled")
                self._logger.warning(
                    "Sync cancelled",
                    completed=len(results),
                    total=len(operations),
                    reason=timeout.reason,
                )
                return ExecutionResult(results=results, error=error)
            result = await self._run_operation(operation, timeout)
            results.append(result)
        return ExecutionResult(results=results)
