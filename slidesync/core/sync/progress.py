"""Progress reporting helpers shared by the extractors."""

import logging
from typing import Optional

from .models import ProgressCallback, ProgressEvent

logger = logging.getLogger(__name__)


def report_progress(callback: Optional[ProgressCallback], event: ProgressEvent) -> None:
    """
    Deliver a progress event to an optional callback.

    Progress is a side channel: a callback that raises is logged and
    ignored so it can never abort or reorder extraction.
    """
    if callback is None:
        return
    try:
        callback(event)
    except Exception:
        logger.warning(
            "Progress callback failed",
            extra={"stage": event.stage, "current": event.current},
            exc_info=True,
        )
