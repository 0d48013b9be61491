from __future__ import annotations

import logging
from typing import Protocol

from checker.app.events.models import RunEvent, RunEventType

logger = logging.getLogger(__name__)


class RunEventEmitter(Protocol):
    """
    Interface for broadcasting run progress.

    Implementations must be:
    - non-blocking (or minimally blocking)
    - fail-safe (emission failures must not crash the run)
    - observational only
    """

    async def emit(self, event: RunEvent) -> None:
        ...


class NullEventEmitter:
    """
    A safe no-op emitter.

    Used when progress reporting is not wanted, e.g. in tests that do
    not care about events.
    """

    async def emit(self, event: RunEvent) -> None:
        return


class LoggingEventEmitter:
    """
    Emits run events as log records.

    Per-item events go to DEBUG, lifecycle events to INFO.
    """

    _INFO_EVENTS = {
        RunEventType.RUN_STARTED,
        RunEventType.RUN_COMPLETED,
        RunEventType.RUN_FAILED,
        RunEventType.PAGE_FETCHED,
    }

    def __init__(self, log: logging.Logger = logger) -> None:
        self._log = log

    async def emit(self, event: RunEvent) -> None:
        level = (
            logging.INFO
            if event.event_type in self._INFO_EVENTS
            else logging.DEBUG
        )
        try:
            self._log.log(
                level,
                "run=%s event=%s details=%s",
                event.run_id,
                event.event_type.value,
                event.details or {},
            )
        except Exception:
            # Fail-safe: never let observability break the run
            return
