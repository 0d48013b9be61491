"""
Notifications (change feed) API client.

Any failure reading a page is fatal to the run and surfaces as
FeedFetchFailed. Feed requests are not retried.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from checker.app.errors import FeedFetchFailed
from checker.app.schemas.notifications import NotificationPage

logger = logging.getLogger(__name__)


class NotificationsClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        notifications_url: str,
        auth: Optional[httpx.Auth] = None,
    ) -> None:
        self.client = client
        self.notifications_url = notifications_url.rstrip("/")
        self.auth = auth

    def url_for(self, since: str) -> str:
        # The cursor is opaque and is sent back exactly as the feed issued it
        return f"{self.notifications_url}?since={since}"

    async def fetch_page(self, since: str) -> NotificationPage:
        url = self.url_for(since)

        try:
            async with self.client.stream("GET", url, auth=self.auth) as response:
                body = await response.aread()
                status_code = response.status_code
        except httpx.RequestError as exc:
            logger.error("Unable to fetch notifications %s: %s", url, exc)
            raise FeedFetchFailed(f"Could not fetch notifications page {url}: {exc}") from exc

        if status_code != httpx.codes.OK:
            logger.error("Unexpected HTTP response %d for %s", status_code, url)
            raise FeedFetchFailed(
                f"Unexpected HTTP response {status_code} for notifications page {url}"
            )

        try:
            return NotificationPage.model_validate(json.loads(body))
        except (ValueError, ValidationError) as exc:
            logger.error("Unable to deserialize notifications page %s: %s", url, exc)
            raise FeedFetchFailed(f"Could not decode notifications page {url}") from exc
