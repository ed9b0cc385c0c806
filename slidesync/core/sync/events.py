"""
Parsing of the model's structured answer into SyncEvents.

The model is asked for a strict schema but not trusted to follow it. Each
item is parsed strictly first; if that fails the item is repaired with
defaults so one malformed event never costs the rest of the batch.
"""

import logging
import math
from typing import Any, Iterable, Optional

from .errors import MalformedEventError
from .models import SyncEvent

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("timestamp", "seconds", "pdfPageNumber", "slideTitle", "reasoning")


def coerce_seconds(value: Any) -> Optional[float]:
    """Return a finite float for numbers and numeric strings, otherwise None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return seconds if math.isfinite(seconds) else None


def _coerce_page(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return int(number) if math.isfinite(number) else None


def parse_sync_event(item: Any) -> SyncEvent:
    """Parse one item strictly. Raises MalformedEventError on any gap."""
    if not isinstance(item, dict):
        raise MalformedEventError(f"Event is not an object: {type(item).__name__}")

    missing = [name for name in REQUIRED_FIELDS if name not in item]
    if missing:
        raise MalformedEventError(f"Event is missing fields: {', '.join(missing)}")

    page = _coerce_page(item["pdfPageNumber"])
    if page is None:
        raise MalformedEventError(f"Invalid page number: {item['pdfPageNumber']!r}")

    return SyncEvent(
        timestamp=str(item["timestamp"]),
        seconds=coerce_seconds(item["seconds"]),
        pdf_page_number=page,
        slide_title=str(item["slideTitle"]),
        reasoning=str(item["reasoning"]),
    )


def repair_sync_event(item: Any) -> SyncEvent:
    """Build an event from whatever usable fields `item` has."""
    if not isinstance(item, dict):
        item = {}

    timestamp = item.get("timestamp")
    title = item.get("slideTitle")
    reasoning = item.get("reasoning")

    return SyncEvent(
        timestamp=timestamp if isinstance(timestamp, str) else "",
        seconds=coerce_seconds(item.get("seconds")),
        pdf_page_number=_coerce_page(item.get("pdfPageNumber")) or 0,
        slide_title=title if isinstance(title, str) else "",
        reasoning=reasoning if isinstance(reasoning, str) else "",
    )


def parse_sync_events(items: Iterable[Any]) -> list[SyncEvent]:
    """Parse every item, repairing malformed ones in place of dropping them."""
    events = []
    for index, item in enumerate(items):
        try:
            events.append(parse_sync_event(item))
        except MalformedEventError as e:
            logger.warning(
                "Repairing malformed event",
                extra={"index": index, "error": e.message},
            )
            events.append(repair_sync_event(item))
    return events
