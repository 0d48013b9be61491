"""
Check pipeline: feed poller -> bounded queue -> worker pool -> sink.

IMPORTANT:
The pipeline is a DUMB AUTHORITY. It never interprets failure rows.

Its sole responsibilities are:
- bridging poller output to a fixed pool of worker tasks
- applying back-pressure through the bounded queue
- forwarding rows to the sink and keeping counts
- shutting down cleanly once the feed is exhausted

All run state lives in an explicitly passed RunContext. There is no
module-level mutable state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence
from uuid import uuid4

import httpx

from checker.app.checks.base import Checker
from checker.app.checks.image_checker import ImageChecker
from checker.app.clients.content import BinaryProbe, ContentFetcher
from checker.app.clients.http import basic_auth
from checker.app.clients.notifications import NotificationsClient
from checker.app.config import CheckerConfig
from checker.app.coordinator.poller import ChangeFeedPoller
from checker.app.events import (
    NullEventEmitter,
    RunEvent,
    RunEventEmitter,
    RunEventType,
)
from checker.app.schemas.results import (
    FailureRow,
    Hop,
    RunMode,
    RunSummary,
    VerificationResult,
)
from checker.app.sinks.sink import FailureSink

logger = logging.getLogger(__name__)


@dataclass
class RunCounters:
    """Identifiers processed and failure rows written during a run."""

    processed: int = 0
    failures: int = 0


@dataclass
class RunContext:
    config: CheckerConfig
    sink: FailureSink
    emitter: RunEventEmitter = field(default_factory=NullEventEmitter)
    counters: RunCounters = field(default_factory=RunCounters)
    run_id: str = field(default_factory=lambda: str(uuid4()))


class CheckPipeline:
    """
    Runs every configured checker against each identifier.

    Modes:
        run_feed         identifiers discovered from the change feed,
                         checked by a bounded worker pool
        run_identifiers  an explicit list, checked sequentially
    """

    def __init__(
        self,
        context: RunContext,
        checkers: Sequence[Checker],
        poller: Optional[ChangeFeedPoller] = None,
    ) -> None:
        if not checkers:
            raise ValueError("CheckPipeline requires at least one checker")

        self._context = context
        self._checkers = list(checkers)
        self._poller = poller

    # ------------------------------------------------------------------
    # Integration constructor (composition root)
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: CheckerConfig,
        *,
        client: httpx.AsyncClient,
        sink: FailureSink,
        emitter: Optional[RunEventEmitter] = None,
    ) -> "CheckPipeline":
        context = RunContext(
            config=config,
            sink=sink,
            emitter=emitter or NullEventEmitter(),
        )
        auth = basic_auth(config)

        fetcher = ContentFetcher(client, config.content_url, auth=auth)
        checkers: List[Checker] = [ImageChecker(fetcher, BinaryProbe(client))]

        poller = ChangeFeedPoller(
            NotificationsClient(client, config.notifications_url, auth=auth),
            run_id=context.run_id,
            emitter=context.emitter,
        )

        return cls(context, checkers, poller)

    @property
    def context(self) -> RunContext:
        return self._context

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def check_one(self, content_id: str) -> None:
        """
        Run every checker for one identifier and forward its rows.

        A checker that raises is recorded as a single content-hop row so
        the worker survives and the remaining identifiers are still checked.
        """
        context = self._context
        rows_written = 0

        for checker in self._checkers:
            try:
                result = await checker.check(content_id)
            except Exception as exc:
                logger.exception(
                    "Checker %s crashed on content %s",
                    checker.name,
                    content_id,
                )
                result = self._crashed(checker, content_id, exc)

            if result.error is not None:
                logger.warning(
                    "Content: %s checker: %s rows: %s error: %s",
                    content_id,
                    checker.name,
                    [row.as_row() for row in result.rows],
                    result.error,
                )

            for row in result.rows:
                await context.sink.write(row)
            rows_written += len(result.rows)

        context.counters.processed += 1
        context.counters.failures += rows_written

        await context.emitter.emit(
            RunEvent(
                run_id=context.run_id,
                event_type=RunEventType.CONTENT_CHECKED,
                details={"content_id": content_id, "failures": rows_written},
            )
        )

    async def run_identifiers(self, identifiers: Iterable[str]) -> RunSummary:
        """Check an explicit identifier list, one at a time."""
        identifiers = list(identifiers)

        await self._emit(
            RunEventType.RUN_STARTED,
            {"mode": RunMode.IDENTIFIERS.value, "identifiers": len(identifiers)},
        )

        try:
            for content_id in identifiers:
                await self.check_one(content_id)
        except Exception as exc:
            await self._emit_failed(exc)
            raise

        return await self._complete(RunMode.IDENTIFIERS)

    async def run_feed(self, since: str) -> RunSummary:
        """
        Check everything the change feed reports from ``since`` onwards.

        The poller blocks on the bounded queue when workers fall behind.
        Once the feed is exhausted one sentinel per worker is enqueued;
        workers drain what is buffered and exit. A feed failure cancels
        the workers and propagates.
        """
        if self._poller is None:
            raise RuntimeError("run_feed requires a ChangeFeedPoller")

        config = self._context.config
        queue: asyncio.Queue[Optional[str]] = asyncio.Queue(
            maxsize=config.effective_queue_capacity
        )

        await self._emit(
            RunEventType.RUN_STARTED,
            {
                "mode": RunMode.FEED.value,
                "since": since,
                "workers": config.worker_pool_size,
            },
        )

        workers = [
            asyncio.create_task(self._worker(queue), name=f"check-worker-{i}")
            for i in range(config.worker_pool_size)
        ]
        producer = asyncio.create_task(
            self._produce(queue, since, len(workers)),
            name="feed-poller",
        )
        tasks = [producer, *workers]

        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                exc = task.exception()
                if exc is not None:
                    raise exc
        except Exception as exc:
            await self._emit_failed(exc)
            raise
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        return await self._complete(RunMode.FEED)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _produce(
        self,
        queue: "asyncio.Queue[Optional[str]]",
        since: str,
        worker_count: int,
    ) -> None:
        async for identifiers in self._poller.pages(since):
            for content_id in identifiers:
                await queue.put(content_id)

        for _ in range(worker_count):
            await queue.put(None)

    async def _worker(self, queue: "asyncio.Queue[Optional[str]]") -> None:
        while True:
            content_id = await queue.get()
            try:
                if content_id is None:
                    return
                await self.check_one(content_id)
            finally:
                queue.task_done()

    # ------------------------------------------------------------------
    # Structural helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _crashed(
        checker: Checker,
        content_id: str,
        exc: Exception,
    ) -> VerificationResult:
        error = str(exc) or type(exc).__name__
        return VerificationResult(
            content_id=content_id,
            checker=checker.name,
            rows=[
                FailureRow(
                    hop=Hop.CONTENT,
                    content_id=content_id,
                    error=error,
                    error_kind=type(exc).__name__,
                )
            ],
            error=error,
        )

    async def _complete(self, mode: RunMode) -> RunSummary:
        counters = self._context.counters
        summary = RunSummary(
            run_id=self._context.run_id,
            mode=mode,
            processed=counters.processed,
            failures=counters.failures,
            pages=self._poller.pages_fetched if self._poller is not None else 0,
            last_cursor=self._poller.last_cursor if self._poller is not None else None,
        )

        await self._emit(RunEventType.RUN_COMPLETED, summary.model_dump(mode="json"))
        return summary

    async def _emit_failed(self, exc: Exception) -> None:
        await self._emit(
            RunEventType.RUN_FAILED,
            {
                "error": str(exc),
                "exception_type": type(exc).__name__,
            },
        )

    async def _emit(self, event_type: RunEventType, details: dict) -> None:
        await self._context.emitter.emit(
            RunEvent(
                run_id=self._context.run_id,
                event_type=event_type,
                details=details,
            )
        )
