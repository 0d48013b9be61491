from __future__ import annotations

from typing import Protocol

from checker.app.schemas.results import VerificationResult


class Checker(Protocol):
    """
    A verification run against a single content identifier.

    Implementations must record failures as rows and must not raise for
    per-item problems: one identifier's failure never affects another.
    """

    name: str

    async def check(self, content_id: str) -> VerificationResult:
        ...
