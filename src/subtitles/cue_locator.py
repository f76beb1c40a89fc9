"""Active cue lookup for playback time."""

from collections.abc import Sequence

from src.subtitles.srt_codec import Cue


def locate_active_cue(cues: Sequence[Cue], current_time: float) -> int | None:
    """Find the index of the cue shown at ``current_time``.

    Binary search over the closed interval ``[start, end]`` of each cue. The
    caller guarantees that cues are sorted by start time and do not overlap;
    this is checked when cues are ingested (see
    ``src.subtitles.subtitle_validation``), not here, to keep the lookup
    logarithmic. Results for unsorted or overlapping input are undefined.

    Args:
    ----
        cues: Cues sorted ascending by start time
        current_time: Playback position in seconds

    Returns:
    -------
        Index of the containing cue, or None when the time falls in a gap or
        outside every cue

    """
    left = 0
    right = len(cues) - 1

    while left <= right:
        mid = (left + right) // 2
        cue = cues[mid]
        if cue.start_seconds <= current_time <= cue.end_seconds:
            return mid
        if current_time < cue.start_seconds:
            right = mid - 1
        else:
            left = mid + 1

    return None
