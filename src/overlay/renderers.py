"""Headless text overlay renderer.

Resolves which dialogue lines of an ASS script are visible at the element's
current playback time and reports them through ``on_render``. It draws
nothing itself; a front end decides how to paint the lines.
"""

import logging
from dataclasses import dataclass

from src.overlay.media_element import MediaElement
from src.overlay.renderer_contract import RendererOptions

logger = logging.getLogger(__name__)

DIALOGUE_PREFIX = "Dialogue:"
DIALOGUE_FIELD_COUNT = 10
WORD_JOINER = "\u2060"


@dataclass(frozen=True)
class DialogueEvent:
    start_sec: float
    end_sec: float
    text: str


def parse_ass_time(value: str) -> float:
    """Convert ``H:MM:SS.cc`` to seconds."""
    hours, minutes, seconds = value.strip().split(":")
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def unescape_ass_text(text: str) -> str:
    text = text.replace("\\N", "\n").replace("\\n", "\n")
    text = text.replace("\\{", "{").replace("\\}", "}")
    return text.replace("\\" + WORD_JOINER, "\\")


def parse_dialogue_events(script: str) -> list[DialogueEvent]:
    """Extract the dialogue events of a script, sorted by start time.

    Malformed dialogue lines are skipped.
    """
    events = []
    for line in script.splitlines():
        if not line.startswith(DIALOGUE_PREFIX):
            continue
        fields = line[len(DIALOGUE_PREFIX) :].strip().split(",", DIALOGUE_FIELD_COUNT - 1)
        if len(fields) != DIALOGUE_FIELD_COUNT:
            logger.debug(f"Skipping malformed dialogue line: {line}")
            continue
        try:
            start = parse_ass_time(fields[1])
            end = parse_ass_time(fields[2])
        except ValueError:
            logger.debug(f"Skipping dialogue line with bad timing: {line}")
            continue
        events.append(DialogueEvent(start, end, unescape_ass_text(fields[9])))
    events.sort(key=lambda event: event.start_sec)
    return events


class TextOverlayRenderer:
    """Tracks the visible dialogue lines of a script against a media element."""

    def __init__(self, options: RendererOptions):
        self.video: MediaElement | None = options.video
        self.fonts = list(options.fonts)
        self.fallback_font = options.fallback_font
        self.available_fonts = dict(options.available_fonts)
        self.use_local_fonts = options.use_local_fonts
        self._on_render = options.on_render
        self._events: list[DialogueEvent] = []
        self.visible_lines: list[str] = []
        self.destroyed = False

        self.set_script(options.sub_content)
        options.video.add_event_listener("timeupdate", self._handle_time_update)

    def set_script(self, content: str) -> None:
        """Replace the current script and re-render at the current time."""
        self._events = parse_dialogue_events(content)
        logger.debug(f"Renderer loaded script with {len(self._events)} event(s)")
        if self.video is not None:
            self.render(self.video.current_time)

    def lines_at(self, time_sec: float) -> list[str]:
        visible = []
        for event in self._events:
            if event.start_sec > time_sec:
                break
            if time_sec <= event.end_sec:
                visible.append(event.text)
        return visible

    def render(self, time_sec: float) -> None:
        lines = self.lines_at(time_sec)
        if lines == self.visible_lines:
            return
        self.visible_lines = lines
        if self._on_render:
            self._on_render(lines)

    def _handle_time_update(self, _event: str) -> None:
        if self.video is not None:
            self.render(self.video.current_time)

    def destroy(self) -> None:
        if self.destroyed:
            return
        if self.video is not None:
            self.video.remove_event_listener("timeupdate", self._handle_time_update)
        self.video = None
        self._events = []
        self.visible_lines = []
        self.destroyed = True


def create_renderer(options: RendererOptions) -> TextOverlayRenderer:
    return TextOverlayRenderer(options)
