"""
Error kinds raised while checking content.

Per-article and per-hop errors are recorded as failure rows by the
checkers and never escape a worker. Only FeedFetchFailed is fatal to
a run.
"""

from __future__ import annotations

from typing import Optional


class CheckerError(RuntimeError):
    """Base class for every error raised by the content checker."""


class FetchFailed(CheckerError):
    """
    Request-level failure talking to the content read endpoint.

    Covers connection errors, timeouts, redirect loops and bodies whose
    content encoding cannot be decoded.
    """


class ContentNotFound(CheckerError):
    """
    The content read endpoint answered with a non-200 status.

    The status code is kept on the exception but is not part of the
    message, so it never leaks into a failure row.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeFailed(CheckerError):
    """A 200 response whose body is not a valid content record."""


class MarkupParseError(CheckerError):
    """The article body markup is not well-formed XML."""


class BinaryUnreachable(CheckerError):
    """Transport failure or non-200 status while probing a binary asset."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedNotification(CheckerError):
    """A change-feed entry without an extractable identifier."""


class FeedFetchFailed(CheckerError):
    """
    The notifications endpoint could not be read or decoded.

    Fatal: the feed is the sole source of work in feed mode.
    """
