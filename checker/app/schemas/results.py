"""
Result schemas.

A FailureRow records how far verification of one dependency path got
before it broke. Rows are increasingly truncated the earlier the hop
that failed:

    content      [content_id, error]
    image_set    [content_id, image_set_id]
    image_model  [content_id, image_set_id, image_model_id]
    binary       [content_id, image_set_id, image_model_id, binary_url]

Success is never recorded explicitly; it is the absence of rows.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Hop(str, Enum):
    """Stage of the article -> image-set -> image-model -> binary chain."""

    CONTENT = "content"
    IMAGE_SET = "image_set"
    IMAGE_MODEL = "image_model"
    BINARY = "binary"


class FailureRow(BaseModel):
    """A single broken dependency path, the unit written to the sink."""

    hop: Hop
    content_id: str
    image_set_id: str = ""
    image_model_id: str = ""
    binary_url: str = ""

    error: str = Field(
        "",
        description="Human-readable error; only written for content-hop rows",
    )
    error_kind: Optional[str] = Field(
        None,
        description="Exception class name that caused the failure",
    )

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def enforce_hop_fields(self):
        if self.hop != Hop.CONTENT and not self.image_set_id:
            raise ValueError(f"{self.hop.value} failures require image_set_id")
        if self.hop in {Hop.IMAGE_MODEL, Hop.BINARY} and not self.image_model_id:
            raise ValueError(f"{self.hop.value} failures require image_model_id")
        return self

    def as_row(self) -> List[str]:
        if self.hop == Hop.CONTENT:
            return [self.content_id, self.error]
        if self.hop == Hop.IMAGE_SET:
            return [self.content_id, self.image_set_id]
        if self.hop == Hop.IMAGE_MODEL:
            return [self.content_id, self.image_set_id, self.image_model_id]
        return [
            self.content_id,
            self.image_set_id,
            self.image_model_id,
            self.binary_url,
        ]


class VerificationResult(BaseModel):
    """
    Outcome of one checker for one content identifier.

    ``error`` is set only when verification aborted before any image-set
    could be examined (article fetch or markup failure).
    """

    content_id: str
    checker: str
    rows: List[FailureRow] = Field(default_factory=list)
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def passed(self) -> bool:
        return not self.rows


class RunMode(str, Enum):
    FEED = "feed"
    IDENTIFIERS = "identifiers"


class RunSummary(BaseModel):
    """Final counts reported when a run completes."""

    run_id: str
    mode: RunMode
    processed: int = 0
    failures: int = 0
    pages: int = 0
    last_cursor: Optional[str] = None

    model_config = ConfigDict(frozen=True)
