from __future__ import annotations

from typing import Protocol

from checker.app.schemas.results import FailureRow


class FailureSink(Protocol):
    """
    Append-only destination for failure rows.

    Every write must be a single indivisible operation: rows written by
    concurrent workers may interleave with each other but never within
    a row.
    """

    async def write(self, row: FailureRow) -> None:
        ...

    def close(self) -> None:
        ...
