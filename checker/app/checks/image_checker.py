"""
Image referential-integrity check.

For one article this walks the fixed dependency chain

    article -> image-set(s) -> image-model(s) -> binary

and records one FailureRow per broken path. Each hop fails independently:
a broken image-set never prevents its siblings from being checked, so a
single pass surfaces every broken link of an article.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from checker.app.checks.references import resolve_image_set_references
from checker.app.clients.content import BinaryProbe, ContentFetcher
from checker.app.errors import CheckerError
from checker.app.schemas.results import FailureRow, Hop, VerificationResult

logger = logging.getLogger(__name__)


class ImageChecker:
    """
    Verifies that every image an article references is reachable.

    Fetch failures and markup failures are recorded, never raised.
    """

    name = "image"

    def __init__(self, fetcher: ContentFetcher, probe: BinaryProbe) -> None:
        self._fetcher = fetcher
        self._probe = probe

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def check(self, content_id: str) -> VerificationResult:
        try:
            article = await self._fetcher.fetch(content_id)
            image_sets = resolve_image_set_references(article)
        except CheckerError as exc:
            logger.warning("Unable to check content %s: %s", content_id, exc)
            return VerificationResult(
                content_id=content_id,
                checker=self.name,
                rows=[
                    FailureRow(
                        hop=Hop.CONTENT,
                        content_id=content_id,
                        error=str(exc),
                        error_kind=type(exc).__name__,
                    )
                ],
                error=str(exc),
            )

        logger.debug("Content %s references image sets %s", content_id, sorted(image_sets))

        rows: List[FailureRow] = []
        for image_set_id in image_sets:
            rows.extend(await self._check_image_set(content_id, image_set_id))

        return VerificationResult(
            content_id=content_id,
            checker=self.name,
            rows=rows,
        )

    # ------------------------------------------------------------------
    # Hops
    # ------------------------------------------------------------------

    async def _check_image_set(
        self,
        content_id: str,
        image_set_id: str,
    ) -> List[FailureRow]:
        try:
            image_set = await self._fetcher.fetch(image_set_id)
        except CheckerError as exc:
            logger.warning(
                "Error retrieving image set %s for %s: %s",
                image_set_id,
                content_id,
                exc,
            )
            return [
                FailureRow(
                    hop=Hop.IMAGE_SET,
                    content_id=content_id,
                    image_set_id=image_set_id,
                    error=str(exc),
                    error_kind=type(exc).__name__,
                )
            ]

        rows: List[FailureRow] = []
        for member in image_set.members:
            image_model_id = member.uuid()
            if image_model_id is None:
                continue

            row = await self._check_image_model(content_id, image_set_id, image_model_id)
            if row is not None:
                rows.append(row)

        return rows

    async def _check_image_model(
        self,
        content_id: str,
        image_set_id: str,
        image_model_id: str,
    ) -> Optional[FailureRow]:
        try:
            image_model = await self._fetcher.fetch(image_model_id)
        except CheckerError as exc:
            logger.warning("Error retrieving image model %s: %s", image_model_id, exc)
            return FailureRow(
                hop=Hop.IMAGE_MODEL,
                content_id=content_id,
                image_set_id=image_set_id,
                image_model_id=image_model_id,
                error=str(exc),
                error_kind=type(exc).__name__,
            )

        binary_url = image_model.binary_url
        try:
            await self._probe.probe(binary_url)
        except CheckerError as exc:
            logger.warning("Error retrieving binary for %s: %s", image_model_id, exc)
            return FailureRow(
                hop=Hop.BINARY,
                content_id=content_id,
                image_set_id=image_set_id,
                image_model_id=image_model_id,
                binary_url=binary_url,
                error=str(exc),
                error_kind=type(exc).__name__,
            )

        return None
