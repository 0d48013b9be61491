import pytest

_SETTINGS = (
    "CONTENT_URL",
    "NOTIFICATIONS_URL",
    "AUTH",
    "SINCE",
    "UUIDS",
    "WORKER_POOL_SIZE",
    "QUEUE_CAPACITY",
    "REQUEST_TIMEOUT",
    "OUTPUT_PATH",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    # A developer's .env or CHECKER_* variables must not leak into tests
    monkeypatch.chdir(tmp_path)
    for name in _SETTINGS:
        monkeypatch.delenv(f"CHECKER_{name}", raising=False)


@pytest.fixture
def anyio_backend():
    return "asyncio"
