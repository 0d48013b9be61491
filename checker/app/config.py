"""
Runtime configuration for the content checker.

Settings are read from the environment (prefix ``CHECKER_``) and an
optional ``.env`` file, then overridden by command-line flags. They are
validated once at startup and are immutable for the lifetime of a run.

Two mutually exclusive modes are supported:
- feed mode: walk the notifications feed starting at ``since``
- identifier mode: check an explicit ``uuids`` list
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Annotated, List, Optional, Tuple

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from checker.app.utils.identifiers import parse_identifier_list


DEFAULT_SINCE = "2016-03-31T00:00:00Z"
DEFAULT_OUTPUT_PATH = "up-content-check.csv"


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

BaseUrl = Annotated[
    str,
    Field(
        min_length=1,
        pattern=r"^https?://",
        description="Absolute http(s) base URL",
    ),
]


_RFC3339_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(\.\d+)?"
    r"(?:[Zz]|([+-])(\d{2}):(\d{2}))"
)


def _parse_rfc3339(value: str) -> datetime:
    match = _RFC3339_RE.fullmatch(value)
    if match is None:
        raise ValueError(f"not an RFC3339 date-time: {value!r}")

    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction, sign, offset_hours, offset_minutes = match.groups()[6:]

    offset = timedelta()
    if sign is not None:
        offset = timedelta(hours=int(offset_hours), minutes=int(offset_minutes))
        if sign == "-":
            offset = -offset

    # Sub-microsecond digits are dropped
    microsecond = int(fraction[1:7].ljust(6, "0")) if fraction else 0

    return datetime(
        year, month, day, hour, minute, second, microsecond,
        tzinfo=timezone(offset),
    )


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class CheckerConfig(BaseSettings):
    """
    Content checker settings.

    Fails fast on malformed URLs, credentials or cursors.
    """

    # ---------------------------------------------------------------------
    # Endpoints
    # ---------------------------------------------------------------------

    content_url: BaseUrl = "http://api.ft.com/content"
    notifications_url: BaseUrl = "http://api.ft.com/content/notifications"

    auth: Annotated[
        SecretStr,
        Field(
            default=SecretStr(""),
            description="Basic authentication as user:password, redacted from logs",
        ),
    ]

    # ---------------------------------------------------------------------
    # Work selection (mutually exclusive)
    # ---------------------------------------------------------------------

    since: Annotated[
        Optional[str],
        Field(
            default=None,
            description=(
                "RFC3339 timestamp to start reading the notifications feed "
                f"from. Defaults to {DEFAULT_SINCE} in feed mode."
            ),
        ),
    ]

    uuids: Annotated[
        str,
        Field(
            default="",
            description=(
                "Comma- and/or whitespace-separated identifiers to check "
                "instead of reading the feed"
            ),
        ),
    ]

    # ---------------------------------------------------------------------
    # Operational Boundaries
    # ---------------------------------------------------------------------

    worker_pool_size: Annotated[
        int,
        Field(default=5, ge=1, description="Number of concurrent check workers"),
    ]

    queue_capacity: Annotated[
        Optional[int],
        Field(
            default=None,
            ge=1,
            description=(
                "Capacity of the identifier queue between the feed poller "
                "and the workers. Defaults to one less than the pool size."
            ),
        ),
    ]

    request_timeout: Annotated[
        float,
        Field(default=30.0, gt=0, description="Per-request HTTP timeout in seconds"),
    ]

    output_path: Annotated[
        str,
        Field(
            default=DEFAULT_OUTPUT_PATH,
            min_length=1,
            description="CSV file receiving failure rows",
        ),
    ]

    model_config = SettingsConfigDict(
        env_prefix="CHECKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    # ---------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ---------------------------------------------------------------------

    @field_validator("content_url", "notifications_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("auth")
    @classmethod
    def auth_must_be_user_colon_password(cls, v: SecretStr) -> SecretStr:
        raw = v.get_secret_value()
        if raw and ":" not in raw:
            raise ValueError("auth must be formatted as user:password")
        return v

    @field_validator("since")
    @classmethod
    def since_must_be_rfc3339(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            _parse_rfc3339(v)
        except ValueError as exc:
            raise ValueError(f"since is not an RFC3339 timestamp: {v!r}") from exc
        return v

    @model_validator(mode="after")
    def modes_are_mutually_exclusive(self) -> "CheckerConfig":
        if self.uuids.strip() and self.since is not None:
            raise ValueError("since and uuids cannot both be set.")
        return self

    # ---------------------------------------------------------------------
    # Derived values
    # ---------------------------------------------------------------------

    @property
    def identifier_mode(self) -> bool:
        return bool(self.uuids.strip())

    @property
    def identifiers(self) -> List[str]:
        return parse_identifier_list(self.uuids)

    @property
    def start_cursor(self) -> str:
        return self.since if self.since is not None else DEFAULT_SINCE

    @property
    def effective_queue_capacity(self) -> int:
        if self.queue_capacity is not None:
            return self.queue_capacity
        return max(1, self.worker_pool_size - 1)

    @property
    def basic_auth(self) -> Optional[Tuple[str, str]]:
        raw = self.auth.get_secret_value()
        if not raw:
            return None
        user, _, password = raw.partition(":")
        return user, password
