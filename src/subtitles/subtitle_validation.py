"""Subtitle validation utilities.

Validation runs when cues enter the editor (a fresh transcript or an edit),
so that downstream consumers such as the active cue lookup can rely on a
sorted, non-overlapping timeline without re-checking it.

Functions:
    validate_cue_timeline: Report timing problems in a list of cues
    normalize_cue_timeline: Drop inverted cues and sort by start time
    validate_srt_file: Validate an SRT file on disk
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import pysrt  # type: ignore[import-untyped]

from src.subtitles.srt_codec import Cue

logger = logging.getLogger(__name__)


@dataclass
class TimelineIssue:
    """A timing problem found in a cue list."""

    index: int
    kind: str  # 'inverted', 'unsorted' or 'overlap'
    message: str


def validate_cue_timeline(cues: list[Cue]) -> list[TimelineIssue]:
    """Check that cues satisfy the timeline contract.

    The contract is: ``start <= end`` for each cue, cues ascending by start,
    and no cue starting before an earlier one ends.

    Args:
    ----
        cues: Cues in their current order

    Returns:
    -------
        List of issues, empty when the timeline is valid

    """
    issues: list[TimelineIssue] = []
    previous: Cue | None = None
    latest_end = 0.0

    for i, cue in enumerate(cues):
        start, end = cue.start_seconds, cue.end_seconds
        if start > end:
            issues.append(
                TimelineIssue(
                    i, "inverted", f"Cue {cue.sequence} ends before it starts"
                )
            )
        if previous is not None:
            if start < previous.start_seconds:
                issues.append(
                    TimelineIssue(
                        i,
                        "unsorted",
                        f"Cue {cue.sequence} starts before cue {previous.sequence}",
                    )
                )
            elif start < latest_end:
                issues.append(
                    TimelineIssue(
                        i,
                        "overlap",
                        f"Cue {cue.sequence} overlaps an earlier cue",
                    )
                )
        previous = cue
        latest_end = max(latest_end, end)

    return issues


def normalize_cue_timeline(cues: list[Cue]) -> list[Cue]:
    """Return cues with inverted entries removed, stably sorted by start.

    Overlaps are left in place and only logged; they cannot be repaired
    without changing the transcript's timing.
    """
    kept = []
    for cue in cues:
        if cue.start_seconds > cue.end_seconds:
            logger.warning(
                f"Dropping cue {cue.sequence}: end {cue.end} is before "
                f"start {cue.start}"
            )
            continue
        kept.append(cue)

    ordered = sorted(kept, key=lambda c: c.start_seconds)
    if ordered != kept:
        logger.warning("Cues were not in start-time order; sorted on ingest")

    for issue in validate_cue_timeline(ordered):
        logger.warning(f"Timeline issue at index {issue.index}: {issue.message}")

    return ordered


def validate_srt_file(srt_path: Path, debug_mode: bool = False) -> bool:
    """Validate that an SRT file can be loaded and has valid content.

    Args:
    ----
        srt_path: Path to the SRT file to validate
        debug_mode: Whether to output detailed debug information

    Returns:
    -------
        True if the SRT file is valid, False otherwise

    """
    if not srt_path.exists():
        logger.error(f"SRT file not found: {srt_path}")
        return False

    try:
        subs = pysrt.open(str(srt_path), encoding="utf-8")
    except Exception as e:
        logger.error(f"SRT validation failed: {e}")
        return False

    if not subs:
        logger.warning(f"SRT file is empty: {srt_path}")
        return False

    for i, sub in enumerate(subs):
        if sub.start > sub.end:
            logger.warning(f"Invalid timing at index {i}: {sub.start} > {sub.end}")
            return False

    if debug_mode:
        logger.debug(f"SRT validation passed: {len(subs)} segments in {srt_path}")
    return True
