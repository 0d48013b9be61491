import asyncio
from collections import Counter

import httpx
import pytest

from checker.app.clients.http import build_http_client
from checker.app.clients.notifications import NotificationsClient
from checker.app.config import CheckerConfig
from checker.app.coordinator.pipeline import CheckPipeline, RunContext
from checker.app.coordinator.poller import ChangeFeedPoller
from checker.app.errors import FeedFetchFailed
from checker.app.events.models import RunEventType
from checker.app.schemas.results import RunMode
from checker.tests.fixtures.content_api import (
    CONTENT_URL,
    NOTIFICATIONS_URL,
    FakeContentAPI,
    binary_url,
    redirect_to_self,
    uid,
)
from checker.tests.fixtures.recorders import ListEmitter, MemorySink, RecordingChecker

pytestmark = pytest.mark.anyio

T0 = "2016-04-01T00:00:00.000Z"

note = FakeContentAPI.notification


def _config(workers: int = 5, **overrides) -> CheckerConfig:
    return CheckerConfig(
        content_url=CONTENT_URL,
        notifications_url=NOTIFICATIONS_URL,
        worker_pool_size=workers,
        **overrides,
    )


def _cursor(n: int) -> str:
    return f"2016-04-01T00:00:{n:02d}.000Z"


def _chained_feed(api: FakeContentAPI, ids, per_page: int) -> None:
    """Spread ``ids`` over pages linked by cursor, ending with a self-link."""
    pages = [ids[i:i + per_page] for i in range(0, len(ids), per_page)] or [[]]
    for n, batch in enumerate(pages):
        last = n == len(pages) - 1
        api.add_page(
            _cursor(n),
            [note(i) for i in batch],
            next_since=_cursor(n) if last else _cursor(n + 1),
        )


def _pipeline(client, checker, workers=5, emitter=None, **overrides):
    context = RunContext(
        config=_config(workers, **overrides),
        sink=MemorySink(),
        emitter=emitter or ListEmitter(),
    )
    poller = ChangeFeedPoller(
        NotificationsClient(client, NOTIFICATIONS_URL),
        run_id=context.run_id,
    )
    return CheckPipeline(context, [checker], poller)


@pytest.mark.parametrize("workers", [1, 5, 20])
async def test_every_identifier_is_checked_exactly_once(workers):
    ids = [uid(n) for n in range(1, 24)]
    broken = {uid(3), uid(7), uid(19)}
    api = FakeContentAPI()
    _chained_feed(api, ids, per_page=4)
    checker = RecordingChecker(broken=broken)

    async with httpx.AsyncClient(transport=api.transport()) as client:
        pipeline = _pipeline(client, checker, workers=workers)
        summary = await pipeline.run_feed(_cursor(0))

    assert Counter(checker.checked) == Counter(ids)
    assert summary.mode == RunMode.FEED
    assert summary.processed == len(ids)
    assert summary.failures == len(broken)
    assert summary.pages == 6
    assert sorted(pipeline.context.sink.as_rows()) == sorted(
        [[i, "Could not fetch content"] for i in broken]
    )


async def test_delete_notifications_never_reach_a_checker():
    api = FakeContentAPI()
    api.add_page(T0, [note(uid(1)), note(uid(2), delete=True), note(uid(3))])
    checker = RecordingChecker()

    async with httpx.AsyncClient(transport=api.transport()) as client:
        await _pipeline(client, checker).run_feed(T0)

    assert sorted(checker.checked) == [uid(1), uid(3)]


async def test_poller_blocks_when_workers_fall_behind():
    ids = [uid(n) for n in range(1, 7)]
    api = FakeContentAPI()
    _chained_feed(api, ids, per_page=1)
    gate = asyncio.Event()
    checker = RecordingChecker(gate=gate)

    async with httpx.AsyncClient(transport=api.transport()) as client:
        pipeline = _pipeline(client, checker, workers=1, queue_capacity=1)
        run = asyncio.create_task(pipeline.run_feed(_cursor(0)))

        for _ in range(100):
            await asyncio.sleep(0)

        # One item held by the worker, one buffered, the third page's
        # identifier is waiting on a full queue.
        assert checker.checked == [uid(1)]
        assert pipeline._poller.pages_fetched == 3

        gate.set()
        summary = await run

    assert summary.processed == len(ids)
    assert checker.checked == ids


async def test_feed_failure_cancels_workers_and_propagates():
    api = FakeContentAPI()
    api.add_page(T0, [note(uid(1))], next_since="2016-04-01T01:00:00.000Z")
    api.pages["2016-04-01T01:00:00.000Z"] = 500
    emitter = ListEmitter()
    checker = RecordingChecker()

    async with httpx.AsyncClient(transport=api.transport()) as client:
        pipeline = _pipeline(client, checker, emitter=emitter)
        with pytest.raises(FeedFetchFailed):
            await pipeline.run_feed(T0)

    assert emitter.types()[0] == RunEventType.RUN_STARTED
    assert emitter.types()[-1] == RunEventType.RUN_FAILED
    assert emitter.events[-1].details["exception_type"] == "FeedFetchFailed"


async def test_run_identifiers_checks_sequentially_without_pool():
    checker = RecordingChecker(broken={uid(2)})
    emitter = ListEmitter()
    context = RunContext(config=_config(), sink=MemorySink(), emitter=emitter)
    pipeline = CheckPipeline(context, [checker])

    summary = await pipeline.run_identifiers([uid(1), uid(2), uid(3)])

    assert checker.checked == [uid(1), uid(2), uid(3)]
    assert summary.mode == RunMode.IDENTIFIERS
    assert summary.processed == 3
    assert summary.failures == 1
    assert summary.pages == 0
    assert context.sink.as_rows() == [[uid(2), "Could not fetch content"]]
    assert emitter.types() == [
        RunEventType.RUN_STARTED,
        RunEventType.CONTENT_CHECKED,
        RunEventType.CONTENT_CHECKED,
        RunEventType.CONTENT_CHECKED,
        RunEventType.RUN_COMPLETED,
    ]


async def test_every_checker_runs_for_each_identifier():
    first, second = RecordingChecker(), RecordingChecker(broken={uid(1)})
    context = RunContext(config=_config(), sink=MemorySink())
    pipeline = CheckPipeline(context, [first, second])

    summary = await pipeline.run_identifiers([uid(1)])

    assert first.checked == second.checked == [uid(1)]
    assert summary.processed == 1
    assert summary.failures == 1


def test_pipeline_requires_a_checker():
    context = RunContext(config=_config(), sink=MemorySink())

    with pytest.raises(ValueError):
        CheckPipeline(context, [])


async def test_from_config_wires_image_checker_end_to_end():
    api = FakeContentAPI()
    api.add_page(T0, [note(uid(1)), note(uid(2))], next_since=T0)
    api.add_article(uid(1), main_image=uid(10))
    api.add_image_set(uid(10), members=[uid(11)])
    api.add_image_model(uid(11), binary_status=404)
    api.add_article(uid(2))
    sink = MemorySink()

    async with httpx.AsyncClient(transport=api.transport()) as client:
        pipeline = CheckPipeline.from_config(
            _config(workers=2, auth="user:secret"),
            client=client,
            sink=sink,
        )
        summary = await pipeline.run_feed(T0)

    assert summary.processed == 2
    assert summary.failures == 1
    assert sink.as_rows() == [[uid(1), uid(10), uid(11), binary_url(uid(11))]]
    assert all(
        "Authorization" in r.headers
        for r in api.requests
        if str(r.url).startswith(CONTENT_URL)
    )


async def test_crashing_checker_does_not_stop_other_identifiers():
    ids = [uid(n) for n in range(1, 9)]
    api = FakeContentAPI()
    _chained_feed(api, ids, per_page=3)
    checker = RecordingChecker(crash={uid(2), uid(5)})

    async with httpx.AsyncClient(transport=api.transport()) as client:
        pipeline = _pipeline(client, checker, workers=2)
        summary = await pipeline.run_feed(_cursor(0))

    assert Counter(checker.checked) == Counter(ids)
    assert summary.processed == len(ids)
    assert summary.failures == 2
    rows = sorted(pipeline.context.sink.rows, key=lambda r: r.content_id)
    assert [r.content_id for r in rows] == [uid(2), uid(5)]
    assert all(r.error_kind == "RuntimeError" for r in rows)
    assert rows[0].error == f"checker blew up on {uid(2)}"


async def test_redirect_loop_on_one_binary_is_recorded_not_fatal():
    api = FakeContentAPI()
    api.add_page(T0, [note(uid(1)), note(uid(2))], next_since=T0)
    api.add_article(uid(1), main_image=uid(10))
    api.add_image_set(uid(10), members=[uid(11)])
    api.add_image_model(uid(11), binary_status=redirect_to_self)
    api.add_article(uid(2), main_image=uid(20))
    api.add_image_set(uid(20), members=[uid(21)])
    api.add_image_model(uid(21))
    config = _config(workers=2)
    sink = MemorySink()

    async with build_http_client(config, transport=api.transport()) as client:
        pipeline = CheckPipeline.from_config(config, client=client, sink=sink)
        summary = await pipeline.run_feed(T0)

    assert summary.processed == 2
    assert summary.failures == 1
    assert sink.as_rows() == [[uid(1), uid(10), uid(11), binary_url(uid(11))]]
