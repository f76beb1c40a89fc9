"""Playback time forwarding.

``timeupdate`` fires more often than the editor needs to react. The tracker
coalesces bursts into at most one pending callback per frame interval and only
forwards times that moved by more than ``min_delta_sec``.
"""

import asyncio
import logging
from collections.abc import Callable

from src.editor.editor_config import (
    DEFAULT_FRAME_INTERVAL_SEC,
    DEFAULT_TIME_UPDATE_MIN_DELTA_SEC,
    OverlaySettings,
)
from src.overlay.media_element import MediaElement

logger = logging.getLogger(__name__)


class PlaybackTimeTracker:
    def __init__(
        self,
        video: MediaElement,
        on_time_update: Callable[[float], object],
        min_delta_sec: float = DEFAULT_TIME_UPDATE_MIN_DELTA_SEC,
        frame_interval_sec: float = DEFAULT_FRAME_INTERVAL_SEC,
    ):
        self.video = video
        self.on_time_update = on_time_update
        self.min_delta_sec = min_delta_sec
        self.frame_interval_sec = frame_interval_sec
        self.last_time = 0.0
        self._pending: asyncio.TimerHandle | None = None
        self._attached = False

    @classmethod
    def from_settings(
        cls,
        video: MediaElement,
        on_time_update: Callable[[float], object],
        settings: OverlaySettings,
    ) -> "PlaybackTimeTracker":
        return cls(
            video,
            on_time_update,
            min_delta_sec=settings.time_update_min_delta_sec,
            frame_interval_sec=settings.frame_interval_sec,
        )

    def attach(self) -> None:
        if self._attached:
            return
        self.video.add_event_listener("timeupdate", self._handle_time_update)
        self._attached = True

    def detach(self) -> None:
        """Stop listening and drop any scheduled forward."""
        self.video.remove_event_listener("timeupdate", self._handle_time_update)
        self._attached = False
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _handle_time_update(self, _event: str) -> None:
        if self._pending is not None:
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self.frame_interval_sec, self._flush)

    def _flush(self) -> None:
        self._pending = None
        current = self.video.current_time
        if abs(current - self.last_time) > self.min_delta_sec:
            self.last_time = current
            self.on_time_update(current)
