"""Playback element model.

A small stand-in for an HTML video element: it carries the source, the ready
state, the playback clock, and dispatches the events the overlay layer relies
on (``loadedmetadata``, ``timeupdate``, ``emptied``). A player integration
drives it; the overlay session and time tracker only observe it.
"""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

HAVE_NOTHING = 0
HAVE_METADATA = 1

MediaListener = Callable[[str], None]


class MediaElement:
    """Event-dispatching playback element."""

    def __init__(self, source: str = ""):
        self.source = source
        self.ready_state = HAVE_NOTHING
        self.current_time = 0.0
        self.duration: float | None = None
        self.paused = True
        self._listeners: dict[str, list[tuple[MediaListener, bool]]] = {}

    def add_event_listener(
        self, event: str, listener: MediaListener, once: bool = False
    ) -> None:
        self._listeners.setdefault(event, []).append((listener, once))

    def remove_event_listener(self, event: str, listener: MediaListener) -> None:
        """Remove a listener; removing an unknown listener is a no-op."""
        entries = self._listeners.get(event, [])
        self._listeners[event] = [entry for entry in entries if entry[0] != listener]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def dispatch(self, event: str) -> None:
        entries = list(self._listeners.get(event, []))
        for listener, once in entries:
            if once:
                self.remove_event_listener(event, listener)
            listener(event)

    def load(self, source: str) -> None:
        """Switch to a new source; metadata must load again."""
        self.source = source
        self.ready_state = HAVE_NOTHING
        self.current_time = 0.0
        self.duration = None
        self.paused = True
        logger.debug(f"Media source changed to {source}")
        self.dispatch("emptied")

    def mark_metadata_loaded(self, duration: float | None = None) -> None:
        self.duration = duration
        self.ready_state = max(self.ready_state, HAVE_METADATA)
        self.dispatch("loadedmetadata")

    def set_current_time(self, time_sec: float) -> None:
        """Advance the playback clock, as a playing element does."""
        self.current_time = max(0.0, time_sec)
        self.dispatch("timeupdate")

    def seek_to(self, time_sec: float) -> None:
        """Jump to ``time_sec`` and start playing."""
        self.set_current_time(time_sec)
        self.play()

    def play(self) -> None:
        self.paused = False

    def pause(self) -> None:
        self.paused = True
