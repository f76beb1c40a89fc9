"""ASS (Advanced SubStation Alpha) script compiler.

Turns the editor's SRT cues plus a style configuration into a complete ASS
script. The same script is fed to the live overlay renderer and to FFmpeg's
``ass`` filter when burning, so both paths render identical subtitles.
"""

import logging
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.subtitles.srt_codec import Cue

logger = logging.getLogger(__name__)

ASS_FALLBACK_COLOR = "&H00FFFFFF"
ASS_OPAQUE_ALPHA = "00"
ASS_SECONDARY_COLOR = "&H000000FF"
ASS_LINE_BREAK = "\\N"
HEX_COLOR_PATTERN = re.compile(r"^[0-9A-Fa-f]{6}$")

# Structural style defaults, not user-configurable
ASS_PLAY_RES_X = 1920
ASS_PLAY_RES_Y = 1080
ASS_BORDER_STYLE = 1
ASS_OUTLINE_WIDTH = 2
ASS_SHADOW_DEPTH = 1
ASS_HORIZONTAL_MARGIN = 10
ASS_ENCODING = 1

ASS_STYLE_FORMAT = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
    "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, "
    "ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, "
    "MarginR, MarginV, Encoding"
)
ASS_EVENT_FORMAT = (
    "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"
)


class HorizontalAlignment(str, Enum):
    """Horizontal placement of the subtitle block on the bottom row."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"

    @property
    def ass_code(self) -> int:
        # ASS numpad layout: 1-3 bottom row, 4-6 middle, 7-9 top
        return {"left": 1, "center": 2, "right": 3}[self.value]


class AssStyles(BaseModel):
    """User-facing subtitle styling. Immutable; replace it to restyle."""

    model_config = ConfigDict(frozen=True)

    font_name: str = Field("Roboto", min_length=1)
    font_size: int = Field(24, gt=0)
    primary_color: str = Field("#FFFFFF", description="Text fill as #RRGGBB")
    outline_color: str = Field("#000000", description="Outline as #RRGGBB")
    background_color: str = Field("#000000", description="Shadow/box as #RRGGBB")
    alignment: HorizontalAlignment = Field(HorizontalAlignment.CENTER)
    margin_v: int = Field(30, ge=0, description="Vertical margin in script pixels")


DEFAULT_ASS_STYLES = AssStyles()


def to_ass_color(hex_color: str) -> str:
    """Convert ``#RRGGBB`` to the ASS ``&HAABBGGRR`` form with opaque alpha.

    Malformed input falls back to opaque white instead of failing the compile.
    """
    clean = hex_color.strip().lstrip("#")
    if not HEX_COLOR_PATTERN.match(clean):
        logger.debug(f"Invalid color {hex_color!r}, using {ASS_FALLBACK_COLOR}")
        return ASS_FALLBACK_COLOR
    red, green, blue = clean[0:2], clean[2:4], clean[4:6]
    return f"&H{ASS_OPAQUE_ALPHA}{blue}{green}{red}"


def to_ass_time(srt_time: str) -> str:
    """Convert ``HH:MM:SS,mmm`` to ``H:MM:SS.cc``.

    Milliseconds are truncated to centiseconds, never rounded, so scripts stay
    identical to ones produced earlier for the same cues.
    """
    hours, minutes, rest = srt_time.split(":")
    seconds, milliseconds = rest.split(",")
    centiseconds = int(milliseconds) // 10
    return f"{int(hours)}:{minutes.zfill(2)}:{seconds.zfill(2)}.{centiseconds:02d}"


def escape_ass_text(text: str) -> str:
    """Escape characters that ASS treats as markup and encode line breaks.

    A literal backslash is followed by a word joiner so sequences such as
    ``\\N`` typed by the user are not read as tags; braces are escaped so they
    never open an override block.
    """
    escaped = text.replace("\\", "\\\u2060")
    escaped = escaped.replace("{", "\\{").replace("}", "\\}")
    return _encode_line_breaks(escaped)


def _encode_line_breaks(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\n", ASS_LINE_BREAK)


def _build_header(styles: AssStyles) -> list[str]:
    primary = to_ass_color(styles.primary_color)
    outline = to_ass_color(styles.outline_color)
    back = to_ass_color(styles.background_color)

    return [
        "[Script Info]",
        "Title: Generated Subtitles",
        "ScriptType: v4.00+",
        "WrapStyle: 0",
        f"PlayResX: {ASS_PLAY_RES_X}",
        f"PlayResY: {ASS_PLAY_RES_Y}",
        "",
        "[V4+ Styles]",
        ASS_STYLE_FORMAT,
        (
            f"Style: Default,{styles.font_name},{styles.font_size},{primary},"
            f"{ASS_SECONDARY_COLOR},{outline},{back},0,0,0,0,100,100,0,0,"
            f"{ASS_BORDER_STYLE},{ASS_OUTLINE_WIDTH},{ASS_SHADOW_DEPTH},"
            f"{styles.alignment.ass_code},{ASS_HORIZONTAL_MARGIN},"
            f"{ASS_HORIZONTAL_MARGIN},{styles.margin_v},{ASS_ENCODING}"
        ),
        "",
        "[Events]",
        ASS_EVENT_FORMAT,
    ]


def _build_dialogue(cue: Cue, escape_markup: bool) -> str:
    text = escape_ass_text(cue.text) if escape_markup else _encode_line_breaks(cue.text)
    start = to_ass_time(cue.start)
    end = to_ass_time(cue.end)
    return f"Dialogue: 0,{start},{end},Default,,0,0,0,,{text}"


def generate_ass(
    cues: list[Cue],
    styles: AssStyles = DEFAULT_ASS_STYLES,
    escape_markup: bool = True,
) -> str:
    """Compile cues into a complete ASS script.

    Args:
    ----
        cues: Cues in display order
        styles: Style applied to the single ``Default`` style record
        escape_markup: Escape ASS override characters in cue text. When False
            the text passes through untouched apart from line breaks.

    Returns:
    -------
        The ASS script as a string

    """
    header = "\n".join(_build_header(styles)) + "\n"
    events = "\n".join(_build_dialogue(cue, escape_markup) for cue in cues)
    logger.debug(
        f"Compiled ASS script: {len(cues)} dialogue line(s), "
        f"font={styles.font_name} size={styles.font_size}"
    )
    return header + events
