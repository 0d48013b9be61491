"""
Image-set reference resolution.

An article depends on the image-set named by its main image plus every
image-set embedded in its body as

    <ft-content type="http://www.ft.com/ontology/content/ImageSet"
                url="http://api.ft.com/content/<uuid>"></ft-content>

References without a trailing UUID are dropped silently.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import List, Set

from checker.app.errors import MarkupParseError
from checker.app.schemas.content import IMAGE_SET_TYPE, ContentRecord
from checker.app.utils.identifiers import extract_identifier


EMBEDDED_CONTENT_TAG = "ft-content"

_FRAGMENT_ROOT = "fragment"


def embedded_image_set_urls(body_xml: str) -> List[str]:
    """
    Return the ``url`` attribute of every embedded image-set element.

    The body may be a fragment with several top-level elements, so it is
    parsed under a synthetic root. Raises MarkupParseError when the body
    is not well-formed.
    """
    if not body_xml.strip():
        return []

    try:
        root = ET.fromstring(f"<{_FRAGMENT_ROOT}>{body_xml}</{_FRAGMENT_ROOT}>")
    except ET.ParseError as exc:
        raise MarkupParseError(f"Unable to parse document: {exc}") from exc

    return [
        element.get("url", "")
        for element in root.iter(EMBEDDED_CONTENT_TAG)
        if element.get("type") == IMAGE_SET_TYPE
    ]


def resolve_image_set_references(record: ContentRecord) -> Set[str]:
    """
    Collect the deduplicated image-set identifiers an article depends on.

    Iteration order of the result is not significant.
    """
    image_sets: Set[str] = set()

    main_image = record.main_image.uuid()
    if main_image is not None:
        image_sets.add(main_image)

    for url in embedded_image_set_urls(record.body_xml):
        image_set = extract_identifier(url)
        if image_set is not None:
            image_sets.add(image_set)

    return image_sets
