# src/editor/project.py
"""Subtitle editing session.

Holds the cue list the user is editing and ties the pieces together: ingest a
transcript, edit cue text in place, follow playback to highlight the active
cue, export SRT, and hand the compiled script to the transcoding orchestrator
for burn-in.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from src.editor.editor_config import EditorConfig
from src.overlay.media_element import MediaElement
from src.overlay.time_sync import PlaybackTimeTracker
from src.subtitles.ass_compiler import AssStyles, generate_ass
from src.subtitles.cue_locator import locate_active_cue
from src.subtitles.srt_codec import Cue, parse_srt, stringify_srt
from src.subtitles.subtitle_validation import normalize_cue_timeline
from src.transcoding.fonts import FontAsset
from src.transcoding.orchestrator import TranscodingOrchestrator
from src.transcoding.progress import ProgressSink
from src.transcoding.result_types import DownloadArtifact
from src.transcription.client import TranscriptionClient
from src.utils import timestamped_filename

logger = logging.getLogger(__name__)

SRT_MIME_TYPE = "text/plain;charset=utf-8"

ActiveCueListener = Callable[[int | None], None]


class SubtitleProject:
    """The cue list of one editing session."""

    def __init__(
        self,
        config: EditorConfig | None = None,
        on_active_change: ActiveCueListener | None = None,
    ):
        self.config = config or EditorConfig()
        self.on_active_change = on_active_change
        self._cues: list[Cue] = []
        self._active_index: int | None = None

    @property
    def cues(self) -> list[Cue]:
        """A snapshot of the current cues."""
        return list(self._cues)

    @property
    def active_index(self) -> int | None:
        return self._active_index

    def _require_cues(self, action: str) -> None:
        if not self._cues:
            raise ValueError(f"Cannot {action}: no subtitles loaded")

    def load_transcript(self, srt_content: str) -> list[Cue]:
        """Replace the cue list with a parsed transcript.

        Cues whose end precedes their start are dropped and the rest are
        sorted by start time, so the active-cue lookup can rely on order.
        """
        cues = normalize_cue_timeline(parse_srt(srt_content))
        self._cues = cues
        self._set_active(None)
        logger.info(f"Loaded transcript with {len(cues)} cue(s)")
        return self.cues

    def update_text(self, index: int, text: str) -> Cue:
        """Replace the text of the cue at ``index``; timings are unchanged."""
        if not 0 <= index < len(self._cues):
            raise IndexError(f"No cue at index {index} ({len(self._cues)} loaded)")
        if any(not line.strip() for line in text.split("\n")) and text.strip():
            logger.warning(
                f"Cue {index} text contains a blank line; SRT readers will treat "
                "it as the end of the block"
            )
        cue = replace(self._cues[index], text=text)
        self._cues[index] = cue
        return cue

    def clear(self) -> None:
        self._cues = []
        self._set_active(None)
        logger.info("Cleared subtitles")

    def locate(self, time_sec: float) -> int | None:
        return locate_active_cue(self._cues, time_sec)

    def _set_active(self, index: int | None) -> None:
        if index == self._active_index:
            return
        self._active_index = index
        if self.on_active_change:
            self.on_active_change(index)

    def set_playback_time(self, time_sec: float) -> int | None:
        """Update the highlighted cue; listeners hear only actual changes."""
        index = self.locate(time_sec)
        self._set_active(index)
        return index

    def track_playback(self, video: MediaElement) -> PlaybackTimeTracker:
        """Follow ``video`` playback, with the configured coalescing settings."""
        tracker = PlaybackTimeTracker.from_settings(
            video, self.set_playback_time, self.config.overlay_settings
        )
        tracker.attach()
        return tracker

    def seek_target(self, index: int) -> float:
        """Playback position, in seconds, that shows the cue at ``index``."""
        if not 0 <= index < len(self._cues):
            raise IndexError(f"No cue at index {index} ({len(self._cues)} loaded)")
        return self._cues[index].start_seconds

    def compile_script(self, styles: AssStyles | None = None) -> str:
        return generate_ass(self._cues, styles or self.config.default_styles)

    def export_srt(self, now: datetime | None = None) -> DownloadArtifact:
        """Serialize the cues as an SRT download."""
        self._require_cues("export")
        content = stringify_srt(self._cues)
        filename = timestamped_filename(self.config.export_filename_prefix, "srt", now)
        logger.info(f"Exporting {len(self._cues)} cue(s) as {filename}")
        return DownloadArtifact(
            data=content.encode("utf-8"), filename=filename, mime_type=SRT_MIME_TYPE
        )

    async def transcribe(
        self,
        video: bytes,
        orchestrator: TranscodingOrchestrator,
        client: TranscriptionClient,
        enable_vocal_separation: bool | None = None,
    ) -> list[Cue]:
        """Extract the audio of ``video``, transcribe it and load the result."""
        audio = await orchestrator.extract_audio(video)
        logger.info(
            f"Extracted audio via {audio.metadata.get('method')} "
            f"({audio.size_bytes} bytes)"
        )
        transcript = await client.transcribe(audio, enable_vocal_separation)
        return self.load_transcript(transcript)

    async def burn(
        self,
        video: bytes,
        video_name: str,
        orchestrator: TranscodingOrchestrator,
        styles: AssStyles | None = None,
        custom_font: FontAsset | None = None,
        on_progress: ProgressSink | None = None,
    ) -> DownloadArtifact:
        """Burn the current cues into ``video``.

        Returns
        -------
            Video artifact named after the source with the configured prefix

        """
        self._require_cues("burn subtitles")
        script = self.compile_script(styles)
        return await orchestrator.burn_subtitles(
            video,
            script,
            on_progress=on_progress,
            custom_font=custom_font,
            output_filename=f"{self.config.burn_filename_prefix}{video_name}",
        )
