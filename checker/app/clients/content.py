"""
Content read API client and binary asset probe.

Every response is consumed inside an ``async with client.stream(...)``
block, so the connection is released back to the pool (or discarded)
on every exit path: success, non-200, decode failure or cancellation.

No retries are performed here. Failures surface as typed errors and
are recorded by the caller.
"""

from __future__ import annotations

import json
import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx
from pydantic import ValidationError

from checker.app.errors import (
    BinaryUnreachable,
    ContentNotFound,
    DecodeFailed,
    FetchFailed,
)
from checker.app.schemas.content import ContentRecord

logger = logging.getLogger(__name__)


class ContentFetcher:
    """
    Authenticated reader for ``GET {content_url}/{id}``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        content_url: str,
        auth: Optional[httpx.Auth] = None,
    ) -> None:
        self.client = client
        self.content_url = content_url.rstrip("/")
        self.auth = auth

    def url_for(self, content_id: str) -> str:
        return f"{self.content_url}/{content_id}"

    async def fetch(self, content_id: str) -> ContentRecord:
        url = self.url_for(content_id)

        try:
            async with self.client.stream("GET", url, auth=self.auth) as response:
                # Drain first: the body must be consumed before the
                # connection goes back to the pool, whatever the status.
                body = await response.aread()
                status_code = response.status_code
        except httpx.RequestError as exc:
            logger.warning("Unable to fetch content: %s: %s", url, exc)
            raise FetchFailed(f"Could not fetch content {content_id}: {exc}") from exc

        if status_code != httpx.codes.OK:
            logger.debug("Unexpected HTTP response %d for %s", status_code, url)
            raise ContentNotFound(
                f"Could not fetch content {content_id}",
                status_code=status_code,
            )

        try:
            return ContentRecord.model_validate(json.loads(body))
        except (ValueError, ValidationError) as exc:
            logger.warning("Unable to deserialize content %s: %s", content_id, exc)
            raise DecodeFailed(f"Could not decode content {content_id}") from exc


class BinaryProbe:
    """
    Unauthenticated existence check for binary assets.

    Only the status code matters. The streamed response is closed without
    reading the asset body, which discards the underlying connection.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def probe(self, binary_url: str) -> None:
        if urlsplit(binary_url).scheme not in {"http", "https"}:
            raise BinaryUnreachable(f"Invalid binary URL: {binary_url!r}")

        try:
            async with self.client.stream("GET", binary_url, auth=None) as response:
                status_code = response.status_code
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            logger.warning("Error retrieving binary %s: %s", binary_url, exc)
            raise BinaryUnreachable(f"Could not retrieve binary {binary_url}: {exc}") from exc

        if status_code != httpx.codes.OK:
            raise BinaryUnreachable(
                f"Unexpected HTTP response {status_code} for binary {binary_url}",
                status_code=status_code,
            )
