"""
Accept-header negotiation between the HTML and JSON error representations.

Policy:
- a missing or blank ``Accept`` header selects JSON;
- each candidate takes the ``q`` of the most specific matching media range
  (``type/subtype`` over ``type/*`` over ``*/*``), ``q=0`` excluding it;
- JSON is selected when it is acceptable and ranks at least as high as HTML,
  so a bare ``*/*`` stays JSON;
- anything else, including headers naming neither type, gets the HTML page.
"""

from __future__ import annotations

import enum
from typing import List, Optional, Tuple

HTML = "text/html"
JSON = "application/json"


class Representation(str, enum.Enum):
    HTML = "html"
    JSON = "json"


def parse_accept(header: str) -> List[Tuple[str, str, float]]:
    """Split an ``Accept`` header into ``(type, subtype, q)`` triples."""

    ranges: List[Tuple[str, str, float]] = []
    for part in header.split(","):
        media, *params = [piece.strip() for piece in part.split(";")]
        if not media or "/" not in media:
            continue
        main, _, sub = media.lower().partition("/")
        quality = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value.strip())
                except ValueError:
                    quality = 0.0
        ranges.append((main, sub, max(0.0, min(quality, 1.0))))
    return ranges


def quality_of(media_type: str, ranges: List[Tuple[str, str, float]]) -> float:
    main, _, sub = media_type.partition("/")
    best: Optional[Tuple[int, float]] = None
    for range_main, range_sub, quality in ranges:
        if (range_main, range_sub) == (main, sub):
            specificity = 2
        elif range_main == main and range_sub == "*":
            specificity = 1
        elif (range_main, range_sub) == ("*", "*"):
            specificity = 0
        else:
            continue
        if best is None or specificity > best[0]:
            best = (specificity, quality)
    return best[1] if best else 0.0


def negotiate(accept: Optional[str]) -> Representation:
    if not accept or not accept.strip():
        return Representation.JSON
    ranges = parse_accept(accept)
    json_quality = quality_of(JSON, ranges)
    if json_quality > 0 and json_quality >= quality_of(HTML, ranges):
        return Representation.JSON
    return Representation.HTML


def wants_html(accept: Optional[str]) -> bool:
    return negotiate(accept) is Representation.HTML
