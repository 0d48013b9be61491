"""
CSV failure sink.

Rows are variable-length (2-4 fields), written in the order workers
produce them, with no header. Writes are serialised through an
asyncio.Lock and flushed immediately so an interrupted run keeps every
row recorded so far.
"""

from __future__ import annotations

import asyncio
import csv
import logging
from pathlib import Path
from typing import TextIO

from checker.app.schemas.results import FailureRow

logger = logging.getLogger(__name__)


class CsvFailureSink:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._writer = csv.writer(stream)
        self._lock = asyncio.Lock()
        self.rows_written = 0

    @classmethod
    def open(cls, path: str | Path) -> "CsvFailureSink":
        """Create (or truncate) ``path`` and return a sink writing to it."""
        path = Path(path)
        logger.info("Writing failures to %s", path)
        return cls(path.open("w", encoding="utf-8", newline=""))

    async def write(self, row: FailureRow) -> None:
        async with self._lock:
            self._writer.writerow(row.as_row())
            self._stream.flush()
            self.rows_written += 1

    def close(self) -> None:
        if not self._stream.closed:
            self._stream.close()
