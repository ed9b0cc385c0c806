"""
Midpoint correction of reported slide times.

When the model spots a slide change "at" a sampled frame, the real change
happened somewhere between the previous sample and that one, on average
half an interval earlier. Shifting every reported time back by half the
sampling interval removes that bias.

A video submitted inline was seen as a continuous stream, so it carries no
such bias and is left unshifted.
"""

import logging
import math
from typing import Sequence

from .models import CorrectedSyncEvent, SyncEvent, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

CORRECTION_NOTE = " (timing auto-corrected)"


def resolve_seconds(event: SyncEvent) -> float:
    """
    Numeric start time of an event.

    Prefers `seconds`, falls back to parsing `timestamp`, and finally to 0
    so a single unusable event never fails the batch.
    """
    if event.seconds is not None and math.isfinite(event.seconds):
        return float(event.seconds)

    parsed = parse_timestamp(event.timestamp)
    if parsed is not None:
        return float(parsed)

    logger.warning(
        "Event has no usable time, defaulting to 0",
        extra={"timestamp": event.timestamp, "page": event.pdf_page_number},
    )
    return 0.0


class TemporalCorrector:
    """Applies midpoint correction for one extraction run's interval."""

    def __init__(self, interval_seconds: int) -> None:
        if interval_seconds < 0:
            raise ValueError("interval_seconds cannot be negative")
        self.interval_seconds = interval_seconds

    @property
    def applies(self) -> bool:
        """Correction only applies when the video was sampled."""
        return self.interval_seconds > 0

    @property
    def offset_seconds(self) -> float:
        return self.interval_seconds / 2 if self.applies else 0.0

    def correct(self, events: Sequence[SyncEvent]) -> list[CorrectedSyncEvent]:
        """Map every event in order. Never drops or reorders."""
        if self.applies:
            logger.info(
                "Applying midpoint correction",
                extra={"interval": self.interval_seconds, "offset": self.offset_seconds},
            )
        return [self.correct_event(event) for event in events]

    def correct_event(self, event: SyncEvent) -> CorrectedSyncEvent:
        resolved = resolve_seconds(event)

        if not self.applies:
            return CorrectedSyncEvent(
                timestamp=event.timestamp or format_timestamp(resolved),
                seconds=resolved,
                pdf_page_number=event.pdf_page_number,
                slide_title=event.slide_title,
                reasoning=event.reasoning,
                original_seconds=resolved,
                offset_seconds=0.0,
            )

        corrected = max(0.0, resolved - self.offset_seconds)
        return CorrectedSyncEvent(
            timestamp=format_timestamp(corrected),
            seconds=corrected,
            pdf_page_number=event.pdf_page_number,
            slide_title=event.slide_title,
            reasoning=event.reasoning + CORRECTION_NOTE,
            original_seconds=resolved,
            offset_seconds=resolved - corrected,
        )
