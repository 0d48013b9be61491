"""
Change-feed poller.

Pages through the notifications feed using the cursor carried in each
page's ``next`` link and yields the identifiers worth checking.

TERMINATION
-----------
The loop stops when the next cursor equals the current one (an
unchanging feed) or is empty (an exhausted feed). This is the sole
termination condition.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional

from checker.app.clients.notifications import NotificationsClient
from checker.app.errors import MalformedNotification
from checker.app.events import (
    NullEventEmitter,
    RunEvent,
    RunEventEmitter,
    RunEventType,
)
from checker.app.schemas.notifications import Notification, NotificationPage
from checker.app.utils.identifiers import extract_identifier, extract_since

logger = logging.getLogger(__name__)


def notification_identifier(notification: Notification) -> str:
    content_id = extract_identifier(notification.api_url)
    if content_id is None:
        raise MalformedNotification(
            f"Unexpected URL: {notification.api_url or '<empty>'}"
        )
    return content_id


def page_identifiers(page: NotificationPage) -> List[str]:
    """
    Filter one page down to checkable identifiers, in page order.

    Entries without a trailing UUID in ``apiUrl`` and delete
    notifications are skipped with a diagnostic.
    """
    identifiers: List[str] = []

    for notification in page.notifications:
        try:
            content_id = notification_identifier(notification)
        except MalformedNotification as exc:
            logger.warning("Skipping notification: %s", exc)
            continue

        if notification.is_delete:
            logger.info("Skipping delete notification: %s", notification.api_url)
            continue

        identifiers.append(content_id)

    return identifiers


class ChangeFeedPoller:
    """
    Async producer of identifier batches, one batch per feed page.

    FeedFetchFailed propagates out of ``pages`` and ends the run.
    """

    def __init__(
        self,
        client: NotificationsClient,
        *,
        run_id: str = "",
        emitter: Optional[RunEventEmitter] = None,
    ) -> None:
        self._client = client
        self._run_id = run_id
        self._emitter = emitter or NullEventEmitter()

        self.pages_fetched = 0
        self.last_cursor: Optional[str] = None

    async def pages(self, since: str) -> AsyncIterator[List[str]]:
        cursor = since

        while True:
            page = await self._client.fetch_page(cursor)
            self.pages_fetched += 1
            self.last_cursor = cursor

            identifiers = page_identifiers(page)

            await self._emitter.emit(
                RunEvent(
                    run_id=self._run_id,
                    event_type=RunEventType.PAGE_FETCHED,
                    details={
                        "cursor": cursor,
                        "notifications": len(page.notifications),
                        "identifiers": len(identifiers),
                    },
                )
            )

            yield identifiers

            next_cursor = extract_since(page.next_link())
            if next_cursor == cursor or next_cursor == "":
                logger.info("Latest notification: %s", next_cursor)
                logger.info("No more notifications to fetch")
                return

            cursor = next_cursor
