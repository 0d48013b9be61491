"""
Change-feed page schemas.

One NotificationPage is decoded per notifications response and is
discarded once its identifiers and next cursor have been extracted.
"""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


DELETE_NOTIFICATION = "http://www.ft.com/thing/ThingChangeType/DELETE"


class Notification(BaseModel):
    type: str = ""
    id: str = ""
    api_url: str = Field("", alias="apiUrl")
    last_modified: str = Field("", alias="lastModified")

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("type", "id", "api_url", "last_modified", mode="before")
    @classmethod
    def empty_strings_for_null(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def is_delete(self) -> bool:
        return self.type == DELETE_NOTIFICATION


class Link(BaseModel):
    href: str = ""
    rel: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("href", "rel", mode="before")
    @classmethod
    def empty_strings_for_null(cls, v: Any) -> Any:
        return "" if v is None else v


class NotificationPage(BaseModel):
    """
    A single page of the notifications feed.

    The ``next`` link carries the cursor of the following page in its
    ``since`` query parameter.
    """

    request_url: str = Field("", alias="requestUrl")
    notifications: List[Notification] = Field(default_factory=list)
    links: List[Link] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("request_url", mode="before")
    @classmethod
    def empty_string_for_null(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("notifications", "links", mode="before")
    @classmethod
    def empty_lists_for_null(cls, v: Any) -> Any:
        return [] if v is None else v

    def next_link(self) -> str:
        """Return the href of the first ``next`` link, or an empty string."""
        for link in self.links:
            if link.rel == "next":
                return link.href
        return ""
