"""SRT (SubRip) codec for the subtitle editor.

This module converts between transcript text in the SubRip format and the
in-memory list of :class:`Cue` objects owned by the editing session. Parsing is
best-effort: a malformed block is dropped and parsing continues with the next
block, so a single bad entry returned by the transcription service never costs
the user the whole transcript.
"""

import logging
import re
from dataclasses import dataclass

import pysrt  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

SRT_TIME_SEPARATOR = " --> "
SRT_LINE_IDENTIFIER = "-->"
SRT_BLOCK_SEPARATOR = "\n\n"
SRT_TIMESTAMP_PATTERN = re.compile(r"^[0-9]+:[0-9]{2}:[0-9]{2},[0-9]{3}$")
SRT_LINE_SPLIT_PATTERN = re.compile(r"\r?\n")


@dataclass
class Cue:
    """One timed-text entry.

    Timestamps are kept in their ``HH:MM:SS,mmm`` form so that a parsed
    document serializes back byte-for-byte.
    """

    sequence: int
    start: str
    end: str
    text: str = ""

    @property
    def start_seconds(self) -> float:
        return srt_time_to_seconds(self.start)

    @property
    def end_seconds(self) -> float:
        return srt_time_to_seconds(self.end)

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds


def is_srt_timestamp(value: str) -> bool:
    """Check whether a string is a ``HH:MM:SS,mmm`` timestamp."""
    return bool(SRT_TIMESTAMP_PATTERN.match(value))


def srt_time_to_seconds(timestamp: str) -> float:
    """Convert an SRT timestamp (HH:MM:SS,mmm) to seconds.

    Raises
    ------
        ValueError: If the timestamp is not in SRT form

    """
    if not is_srt_timestamp(timestamp):
        raise ValueError(f"Invalid SRT timestamp: {timestamp!r}")
    return pysrt.SubRipTime.from_string(timestamp).ordinal / 1000


def seconds_to_srt_time(seconds: float) -> str:
    """Convert seconds to an SRT timestamp, clamping negative values to zero."""
    milliseconds = max(0, int(round(seconds * 1000)))
    return str(pysrt.SubRipTime.from_ordinal(milliseconds))


def _parse_time_line(line: str) -> tuple[str, str] | None:
    if SRT_LINE_IDENTIFIER not in line:
        return None
    start, _, end = line.partition(SRT_LINE_IDENTIFIER)
    start, end = start.strip(), end.strip()
    if not is_srt_timestamp(start) or not is_srt_timestamp(end):
        return None
    return start, end


def parse_srt(content: str) -> list[Cue]:
    """Parse SRT content into a list of cues.

    Blocks are separated by blank lines. A block whose id line is not an
    integer or whose second line is not a ``start --> end`` pair is skipped
    up to the next blank line. Cues are returned in the order they appear.

    Args:
    ----
        content: Raw SRT text

    Returns:
    -------
        List of parsed cues (possibly empty)

    """
    cues: list[Cue] = []
    lines = SRT_LINE_SPLIT_PATTERN.split(content.strip())
    skipped = 0
    i = 0

    while i < len(lines):
        if not lines[i].strip():
            i += 1
            continue

        id_line = lines[i].strip()
        i += 1

        time_range = _parse_time_line(lines[i]) if i < len(lines) else None
        if not id_line.isdecimal() or time_range is None:
            logger.debug(f"Skipping malformed SRT block starting with {id_line!r}")
            skipped += 1
            while i < len(lines) and lines[i].strip():
                i += 1
            continue
        i += 1

        text_lines = []
        while i < len(lines) and lines[i].strip():
            text_lines.append(lines[i])
            i += 1

        start, end = time_range
        cues.append(
            Cue(
                sequence=int(id_line),
                start=start,
                end=end,
                text="\n".join(text_lines).rstrip(),
            )
        )

    if skipped:
        logger.warning(f"Dropped {skipped} malformed SRT block(s), kept {len(cues)}")
    return cues


def stringify_srt(cues: list[Cue]) -> str:
    """Serialize cues back into SRT text."""
    return SRT_BLOCK_SEPARATOR.join(
        f"{cue.sequence}\n{cue.start}{SRT_TIME_SEPARATOR}{cue.end}\n{cue.text}"
        for cue in cues
    )
