"""
Identifier helpers.

Content identifiers are lowercase canonical UUIDs. References to content
are URLs whose trailing path segment is such a UUID.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

_UUID = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"

_UUID_RE = re.compile(rf"^{_UUID}$")
_UUID_PATH_RE = re.compile(rf"^.*/({_UUID})$")
_LIST_SEPARATORS_RE = re.compile(r"[\s,]+")


def is_valid_identifier(value: str) -> bool:
    """Return True iff ``value`` is exactly a lowercase canonical UUID."""
    return _UUID_RE.fullmatch(value) is not None


def extract_identifier(url: str) -> Optional[str]:
    """
    Extract the UUID held by the last path segment of ``url``.

    Only a trailing segment matches, so UUID-shaped query parameters or
    inner path segments are ignored. Returns None when nothing matches.
    """
    match = _UUID_PATH_RE.fullmatch(url)
    if match is None:
        return None
    return match.group(1)


def parse_identifier_list(text: str) -> List[str]:
    """
    Split a comma- and/or whitespace-separated identifier list.

    Invalid entries are logged and discarded. Order is preserved.
    """
    identifiers: List[str] = []

    for token in _LIST_SEPARATORS_RE.split(text):
        if not token:
            continue
        if is_valid_identifier(token):
            identifiers.append(token)
        else:
            logger.warning("Discarding invalid identifier: %s", token)

    return identifiers


def extract_since(url: str) -> str:
    """
    Return the raw ``since`` query parameter of an absolute http(s) URL.

    The value is returned undecoded: cursors are opaque and are sent back
    to the feed exactly as received. An empty string means there is no
    usable cursor.
    """
    if not url:
        return ""

    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"}:
        return ""

    for pair in parts.query.split("&"):
        name, _, value = pair.partition("=")
        if name == "since":
            return value
    return ""
