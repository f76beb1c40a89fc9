"""Cooperative cancellation for overlay construction."""

import asyncio
import logging
from collections.abc import Callable

from src.overlay.media_element import HAVE_METADATA, MediaElement

logger = logging.getLogger(__name__)


class OperationSuperseded(Exception):
    """Raised inside a construction path that a newer transition replaced."""

    pass


class CancellationToken:
    """Flag shared between a transition and the construction it started.

    The owner calls :meth:`cancel`; the construction checks the flag after
    every suspension point. Callbacks let pending waits unregister themselves
    as soon as the token is cancelled.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancellation; returns a function that unregisters it."""
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    def raise_if_cancelled(self, checkpoint: str = "") -> None:
        if self._cancelled:
            raise OperationSuperseded(f"{self.name} superseded at {checkpoint}")


async def wait_for_metadata(video: MediaElement, token: CancellationToken) -> None:
    """Wait until ``video`` has loaded its metadata.

    The ``loadedmetadata`` listener is always removed again, including when the
    token is cancelled while waiting.

    Raises
    ------
        OperationSuperseded: If the token is cancelled before metadata loads

    """
    if video.ready_state >= HAVE_METADATA:
        return

    future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    def on_loaded(_event: str) -> None:
        if not future.done():
            future.set_result(None)

    def on_cancel() -> None:
        if not future.done():
            future.set_exception(
                OperationSuperseded(f"{token.name} superseded while awaiting metadata")
            )

    video.add_event_listener("loadedmetadata", on_loaded, once=True)
    unregister = token.add_callback(on_cancel)
    try:
        await future
    finally:
        video.remove_event_listener("loadedmetadata", on_loaded)
        unregister()
