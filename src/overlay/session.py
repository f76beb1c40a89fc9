"""Overlay Session Manager

Keeps a live subtitle renderer attached to a playback element and in sync with
the editor's cues, styles and font. Any change tears the current renderer down
and builds a fresh one. Building suspends several times (waiting for metadata,
loading the renderer module, reading the font), so a newer change can arrive
mid-construction. Each construction carries a :class:`CancellationToken`; the
next transition cancels it, and a cancelled construction abandons its work and
destroys anything it created. At most one renderer is ever attached.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from src.editor.editor_config import FontSettings, OverlaySettings
from src.overlay.cancellation import (
    CancellationToken,
    OperationSuperseded,
    wait_for_metadata,
)
from src.overlay.media_element import MediaElement
from src.overlay.renderer_contract import (
    OverlayRenderer,
    RendererLoader,
    RendererOptions,
    build_renderer,
    module_renderer_loader,
)
from src.subtitles.ass_compiler import DEFAULT_ASS_STYLES, AssStyles, generate_ass
from src.subtitles.srt_codec import Cue
from src.transcoding.fonts import FontAsset

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    DESTROYING = "destroying"


@dataclass(frozen=True)
class OverlayInputs:
    cues: tuple[Cue, ...]
    styles: AssStyles
    custom_font: FontAsset | None
    source: str


class OverlaySessionManager:
    """Owns the single renderer attached to a media element."""

    def __init__(
        self,
        video: MediaElement,
        overlay_settings: OverlaySettings | None = None,
        font_settings: FontSettings | None = None,
        renderer_loader: RendererLoader | None = None,
    ):
        self.video = video
        self.overlay_settings = overlay_settings or OverlaySettings()
        self.font_settings = font_settings or FontSettings()
        self._renderer_loader = renderer_loader or module_renderer_loader(
            self.overlay_settings.renderer_module,
            self.overlay_settings.renderer_factory,
        )
        self._state = SessionState.IDLE
        self._renderer: OverlayRenderer | None = None
        self._token: CancellationToken | None = None
        self._inputs: OverlayInputs | None = None
        self._init_task: asyncio.Task[None] | None = None
        self._generation = 0
        self.last_error: Exception | None = None

        video.add_event_listener("emptied", self._handle_source_change)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def renderer(self) -> OverlayRenderer | None:
        return self._renderer

    def update(
        self,
        cues: list[Cue],
        styles: AssStyles = DEFAULT_ASS_STYLES,
        custom_font: FontAsset | None = None,
    ) -> asyncio.Task[None] | None:
        """Bring the overlay in line with the given inputs.

        Unchanged inputs are a no-op. Otherwise the current session is torn
        down; with no cues the manager stays idle, else a new construction is
        scheduled on the running loop.

        Returns
        -------
            The construction task, or None when no renderer is being built

        """
        # Snapshot so later in-place edits to the caller's cues still register.
        snapshot = tuple(replace(cue) for cue in cues)
        inputs = OverlayInputs(snapshot, styles, custom_font, self.video.source)
        if inputs == self._inputs:
            return self._init_task
        self._inputs = inputs
        return self._restart()

    def _handle_source_change(self, _event: str) -> None:
        if self._inputs is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Nothing can be scheduled here; the next update() rebuilds from scratch.
            logger.warning(
                f"Media source changed to {self.video.source} outside the event loop; "
                "overlay torn down until the next update"
            )
            self.destroy()
            self._inputs = None
            self._init_task = None
            return
        logger.info(f"Media source changed to {self.video.source}; rebuilding overlay")
        self._inputs = replace(self._inputs, source=self.video.source)
        self._restart()

    def _restart(self) -> asyncio.Task[None] | None:
        self.destroy()
        inputs = self._inputs
        if inputs is None or not inputs.cues:
            logger.debug("No cues to display; overlay stays idle")
            self._init_task = None
            return None

        self._generation += 1
        token = CancellationToken(f"overlay#{self._generation}")
        self._token = token
        self._state = SessionState.INITIALIZING
        self.last_error = None

        script = generate_ass(list(inputs.cues), inputs.styles)
        self._init_task = asyncio.get_running_loop().create_task(
            self._initialize(token, script, inputs.custom_font)
        )
        return self._init_task

    def _bundled_fonts(self) -> list[Path]:
        path = self.font_settings.default_font_path
        return [path] if path.is_file() else []

    async def _initialize(
        self, token: CancellationToken, script: str, custom_font: FontAsset | None
    ) -> None:
        renderer: OverlayRenderer | None = None
        try:
            await wait_for_metadata(self.video, token)
            token.raise_if_cancelled("metadata")

            factory = await self._renderer_loader()
            token.raise_if_cancelled("renderer load")

            options = RendererOptions(
                video=self.video, sub_content=script, fonts=self._bundled_fonts()
            )
            if custom_font is not None:
                font_data = await custom_font.read_bytes()
                token.raise_if_cancelled("font read")
                options.fallback_font = custom_font.name
                options.available_fonts = {custom_font.name.lower(): font_data}
                options.use_local_fonts = False

            renderer = await build_renderer(factory, options)
            token.raise_if_cancelled("renderer construction")
        except OperationSuperseded as e:
            logger.debug(f"Overlay construction abandoned: {e}")
            if renderer is not None:
                renderer.destroy()
            return
        except Exception as e:
            if token is self._token:
                self._token = None
                self._state = SessionState.IDLE
                self.last_error = e
            logger.error(f"Overlay renderer failed to initialize: {e}", exc_info=True)
            return

        self._renderer = renderer
        self._state = SessionState.ACTIVE
        logger.info(f"Overlay renderer active ({token.name})")

    def destroy(self) -> None:
        """Tear down the current session. Safe to call repeatedly."""
        if self._token is not None:
            self._token.cancel()
            self._token = None
        renderer = self._renderer
        if renderer is not None:
            self._state = SessionState.DESTROYING
            self._renderer = None
            try:
                renderer.destroy()
            except Exception as e:
                logger.warning(f"Error destroying overlay renderer: {e}")
        self._state = SessionState.IDLE

    async def settled(self) -> None:
        """Wait until no construction is pending."""
        while self._init_task is not None and not self._init_task.done():
            await asyncio.shield(self._init_task)

    async def close(self) -> None:
        self.video.remove_event_listener("emptied", self._handle_source_change)
        self.destroy()
        self._inputs = None
        await self.settled()
