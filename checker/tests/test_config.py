import pytest
from pydantic import ValidationError

from checker.app.config import DEFAULT_SINCE, CheckerConfig
from checker.tests.fixtures.content_api import uid


def test_defaults():
    config = CheckerConfig()

    assert config.content_url == "http://api.ft.com/content"
    assert config.notifications_url == "http://api.ft.com/content/notifications"
    assert config.worker_pool_size == 5
    assert config.effective_queue_capacity == 4
    assert config.start_cursor == DEFAULT_SINCE
    assert config.identifier_mode is False
    assert config.basic_auth is None
    assert config.output_path == "up-content-check.csv"


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("CHECKER_CONTENT_URL", "https://content.example/content/")
    monkeypatch.setenv("CHECKER_WORKER_POOL_SIZE", "12")
    monkeypatch.setenv("CHECKER_AUTH", "user:p:ss")

    config = CheckerConfig()

    assert config.content_url == "https://content.example/content"
    assert config.worker_pool_size == 12
    assert config.basic_auth == ("user", "p:ss")
    assert "p:ss" not in repr(config)


def test_explicit_values_override_environment(monkeypatch):
    monkeypatch.setenv("CHECKER_WORKER_POOL_SIZE", "12")

    assert CheckerConfig(worker_pool_size=2).worker_pool_size == 2


def test_identifier_mode():
    config = CheckerConfig(uuids=f"{uid(1)},{uid(2)} not-a-uuid")

    assert config.identifier_mode
    assert config.identifiers == [uid(1), uid(2)]


def test_since_and_uuids_are_mutually_exclusive():
    with pytest.raises(ValidationError):
        CheckerConfig(since="2016-04-01T00:00:00Z", uuids=uid(1))


@pytest.mark.parametrize(
    "since",
    ["yesterday", "2016-04-01", "2016-04-01T00:00:00", "2016-13-01T00:00:00Z"],
)
def test_since_must_be_rfc3339(since):
    with pytest.raises(ValidationError):
        CheckerConfig(since=since)


def test_since_accepts_offsets_and_fractions():
    assert CheckerConfig(since="2016-04-01T10:00:00.123+01:00").start_cursor == (
        "2016-04-01T10:00:00.123+01:00"
    )


@pytest.mark.parametrize(
    "field, value",
    [
        ("worker_pool_size", 0),
        ("queue_capacity", 0),
        ("request_timeout", 0),
        ("auth", "no-colon"),
        ("content_url", "ftp://example.com"),
    ],
)
def test_rejects_invalid_values(field, value):
    with pytest.raises(ValidationError):
        CheckerConfig(**{field: value})


def test_queue_capacity_can_be_set_explicitly():
    assert CheckerConfig(worker_pool_size=1).effective_queue_capacity == 1
    assert CheckerConfig(queue_capacity=10).effective_queue_capacity == 10


def test_config_is_frozen():
    config = CheckerConfig()

    with pytest.raises(ValidationError):
        config.worker_pool_size = 3


@pytest.mark.parametrize(
    "since",
    [
        "2016-03-31t00:00:00z",
        "2016-03-31T00:00:00.5Z",
        "2016-03-31T00:00:00.123456789-05:30",
    ],
)
def test_since_accepts_full_rfc3339_grammar(since):
    assert CheckerConfig(since=since).start_cursor == since


def test_since_rejects_out_of_range_offset():
    with pytest.raises(ValidationError):
        CheckerConfig(since="2016-03-31T00:00:00+24:00")
