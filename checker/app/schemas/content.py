"""
Content record schemas.

Mirrors the subset of the content read API payload the checker relies
on. Absent or null optional fields decode to empty values so callers
never have to guard against None.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from checker.app.utils.identifiers import extract_identifier, is_valid_identifier


IMAGE_SET_TYPE = "http://www.ft.com/ontology/content/ImageSet"


def _none_to_empty_string(value: Any) -> Any:
    return "" if value is None else value


class Reference(BaseModel):
    """
    A link to another content record.

    The target identifier is the trailing UUID of ``id``. References that
    do not carry one (external or malformed) are dropped by callers.
    """

    id: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def empty_string_for_null(cls, v: Any) -> Any:
        return _none_to_empty_string(v)

    def uuid(self) -> Optional[str]:
        return extract_identifier(self.id)


class Identifier(BaseModel):
    authority: str = ""
    identifier_value: str = Field("", alias="identifierValue")

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class ContentRecord(BaseModel):
    """
    A decoded content record: article, image-set or image-model.

    Identity:
    ``id`` is always a bare, valid UUID. The API may return either the
    UUID or a thing URL ending in it; both normalise to the UUID.
    """

    id: str
    type: str = ""
    title: str = ""
    body_xml: str = Field("", alias="bodyXML")
    identifiers: List[Identifier] = Field(default_factory=list)
    main_image: Reference = Field(default_factory=Reference, alias="mainImage")
    members: List[Reference] = Field(default_factory=list)

    # Only meaningful for image-models
    binary_url: str = Field("", alias="binaryUrl")

    publish_reference: str = Field("", alias="publishReference")
    last_modified: str = Field("", alias="lastModified")

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("id", mode="before")
    @classmethod
    def normalise_id(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("content id must be a string")
        if is_valid_identifier(v):
            return v
        extracted = extract_identifier(v)
        if extracted is None:
            raise ValueError(f"content id is not a UUID reference: {v!r}")
        return extracted

    @field_validator(
        "type",
        "title",
        "body_xml",
        "binary_url",
        "publish_reference",
        "last_modified",
        mode="before",
    )
    @classmethod
    def empty_strings_for_null(cls, v: Any) -> Any:
        return _none_to_empty_string(v)

    @field_validator("identifiers", "members", mode="before")
    @classmethod
    def empty_lists_for_null(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("main_image", mode="before")
    @classmethod
    def empty_reference_for_null(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def is_image_set(self) -> bool:
        return self.type == IMAGE_SET_TYPE
