from __future__ import annotations

from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone
from uuid import uuid4, UUID

from pydantic import BaseModel, Field, ConfigDict


# ----------------------------------------------------------------------
# Event Types
# ----------------------------------------------------------------------
class RunEventType(str, Enum):
    """
    Progress events emitted during a check run.

    Events are observational and never influence control flow.
    """

    RUN_STARTED = "run_started"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"

    PAGE_FETCHED = "page_fetched"
    CONTENT_CHECKED = "content_checked"


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class RunEvent(BaseModel):
    """An immutable observation of progress within a run."""

    event_id: UUID = Field(default_factory=uuid4)
    run_id: str = Field(..., description="The run identifier")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: RunEventType

    # Optional contextual metadata (cursor, counts, content id, etc.)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
