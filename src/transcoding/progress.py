"""Progress normalization for engine progress events.

FFmpeg reports progress as a fraction of the input duration. While probing,
or when the duration is unknown, that fraction is transiently NaN, negative or
above one, so every value is normalized before it reaches a caller's sink.
"""

import logging
import math
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

ProgressSink = Callable[[int], None]


def normalize_progress(raw: Any) -> int | None:
    """Convert a raw progress fraction into an integer percentage.

    Returns None for readings that must be dropped (non-numeric, NaN or
    negative); otherwise the rounded percentage clamped to ``[0, 100]``.
    """
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        return None
    if math.isnan(raw) or raw < 0:
        return None
    percent = min(100.0, max(0.0, raw * 100))
    # Round half up, not to even
    return int(math.floor(percent + 0.5))


def make_progress_handler(sink: ProgressSink) -> Callable[[dict[str, Any]], None]:
    """Wrap a caller's sink as an engine ``progress`` event listener."""

    def handler(event: dict[str, Any]) -> None:
        percent = normalize_progress(event.get("progress"))
        if percent is None:
            logger.debug(f"Dropping progress reading {event.get('progress')!r}")
            return
        sink(percent)

    return handler
