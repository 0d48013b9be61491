"""
Shared HTTP client construction.

A single httpx.AsyncClient is created per run and reused by every
worker for connection pool efficiency. Credentials are NOT attached to
the client: they are supplied per request so the same pool can serve
the unauthenticated binary probes.
"""

from __future__ import annotations

from typing import Optional

import httpx

from checker.app.config import CheckerConfig


USER_AGENT = "content-checker/0.3.0"


def build_http_client(
    config: CheckerConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build the run-scoped async HTTP client.

    The pool is sized for every worker plus the feed poller so that no
    worker ever waits for a connection held by another.
    """
    pool_size = config.worker_pool_size + 1

    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.request_timeout),
        limits=httpx.Limits(
            max_connections=pool_size,
            max_keepalive_connections=pool_size,
        ),
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        transport=transport,
    )


def basic_auth(config: CheckerConfig) -> Optional[httpx.BasicAuth]:
    credentials = config.basic_auth
    if credentials is None:
        return None
    return httpx.BasicAuth(*credentials)
