"""Transcoding Pipeline Orchestrator

This module drives the shared transcoding engine through the two jobs the
editor needs: extracting the audio track for transcription, and burning a
styled subtitle script into a video.

The engine is stateful and not reentrant, and its progress events are global
to the instance. The orchestrator therefore:
- creates the engine lazily, exactly once, behind an initialization lock
- runs jobs one at a time behind a FIFO job lock
- registers a progress listener per job and always removes it afterwards
- deletes each job's working files when the job ends
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from src.editor.editor_config import FFmpegSettings, FontSettings
from src.transcoding.engine import FFmpegProcessEngine, TranscodingEngine
from src.transcoding.errors import (
    AudioExtractionError,
    EngineError,
    SubtitleBurnError,
    TranscodingError,
)
from src.transcoding.fonts import FontAsset, default_font
from src.transcoding.progress import ProgressSink, make_progress_handler
from src.transcoding.result_types import DownloadArtifact, StageReport

logger = logging.getLogger(__name__)

T = TypeVar("T")
EngineFactory = Callable[[], TranscodingEngine]

STAGE_STREAM_COPY = "stream_copy"
STAGE_REENCODE = "reencode"
STAGE_WRITE_INPUTS = "write_inputs"
STAGE_BURN = "burn"
STAGE_READ_OUTPUT = "read_output"

AUDIO_INPUT_NAME = "input"
BURN_INPUT_NAME = "input.mp4"
BURN_OUTPUT_NAME = "output.mp4"
SUBTITLE_FILE_NAME = "subtitles.ass"
FONTS_DIR_NAME = "fonts"


class TranscodingOrchestrator:
    """Serializes audio extraction and subtitle burn jobs on one engine."""

    def __init__(
        self,
        ffmpeg_settings: FFmpegSettings | None = None,
        font_settings: FontSettings | None = None,
        engine_factory: EngineFactory | None = None,
    ):
        self.ffmpeg_settings = ffmpeg_settings or FFmpegSettings()
        self.font_settings = font_settings or FontSettings()
        self._engine_factory = engine_factory or self._default_engine_factory
        self._engine: TranscodingEngine | None = None
        self._engine_lock = asyncio.Lock()
        self._job_lock = asyncio.Lock()
        self._active_job: str | None = None

    def _default_engine_factory(self) -> TranscodingEngine:
        return FFmpegProcessEngine(
            ffmpeg_path=self.ffmpeg_settings.executable_path,
            work_dir=self.ffmpeg_settings.work_dir,
            command_timeout_sec=self.ffmpeg_settings.command_timeout_sec,
        )

    @property
    def is_busy(self) -> bool:
        """Whether a job currently holds the engine."""
        return self._job_lock.locked()

    @property
    def active_job(self) -> str | None:
        return self._active_job

    async def get_engine(self) -> TranscodingEngine:
        """Get or lazily create and load the shared engine."""
        if self._engine is None:
            async with self._engine_lock:
                if self._engine is None:
                    engine = self._engine_factory()
                    await engine.load()
                    engine.on("log", self._log_engine_message)
                    self._engine = engine
        return self._engine

    @staticmethod
    def _log_engine_message(event: dict[str, Any]) -> None:
        logger.debug(f"[engine] {event.get('message', '')}")

    async def run_job(
        self, job_name: str, job: Callable[[TranscodingEngine], Awaitable[T]]
    ) -> T:
        """Run ``job`` with exclusive access to the engine.

        Jobs submitted while another is in flight wait their turn in
        submission order.
        """
        if self._job_lock.locked():
            logger.info(f"Job '{job_name}' queued behind '{self._active_job}'")
        async with self._job_lock:
            engine = await self.get_engine()
            self._active_job = job_name
            logger.info(f"Starting transcoding job '{job_name}'")
            try:
                return await job(engine)
            finally:
                self._active_job = None

    async def _cleanup(self, engine: TranscodingEngine, *names: str) -> None:
        if self.ffmpeg_settings.keep_work_files:
            return
        for name in names:
            await engine.delete_file(name)

    async def extract_audio(self, video: bytes) -> DownloadArtifact:
        """Extract the audio track of a video.

        Stream-copies the audio first to keep the original quality; if the
        codec cannot be copied into the audio container, re-encodes it.

        Args:
        ----
            video: Input video bytes

        Returns:
        -------
            Audio artifact (M4A by default)

        Raises:
        ------
            AudioExtractionError: If both stages failed

        """
        return await self.run_job(
            "extract_audio", lambda engine: self._extract_audio(engine, video)
        )

    async def _extract_audio(
        self, engine: TranscodingEngine, video: bytes
    ) -> DownloadArtifact:
        settings = self.ffmpeg_settings
        output_name = f"output.{settings.audio_container}"
        report = StageReport(job_name="extract_audio")

        stages: list[tuple[str, list[str]]] = [
            (
                STAGE_STREAM_COPY,
                [
                    "-i", AUDIO_INPUT_NAME,
                    "-map", "0:a",
                    "-vn",
                    "-acodec", "copy",
                    output_name,
                ],
            ),
            (
                STAGE_REENCODE,
                [
                    "-i", AUDIO_INPUT_NAME,
                    "-vn",
                    "-map", "0:a",
                    "-acodec", settings.audio_reencode_codec,
                    "-b:a", settings.audio_reencode_bitrate,
                    "-ar", str(settings.audio_reencode_sample_rate),
                    output_name,
                ],
            ),
        ]

        try:
            await engine.write_file(AUDIO_INPUT_NAME, video)

            for stage_name, args in stages:
                report.start_stage(stage_name)
                try:
                    await engine.exec(args)
                    data = await engine.read_file(output_name)
                except EngineError as e:
                    report.fail_stage(error=str(e))
                    logger.warning(f"Audio extraction stage '{stage_name}' failed: {e}")
                    continue

                report.complete_stage()
                if report.used_fallback:
                    logger.info(f"Audio extracted by fallback stage '{stage_name}'")
                return DownloadArtifact(
                    data=data,
                    filename=f"audio.{settings.audio_container}",
                    mime_type=settings.audio_mime_type,
                    metadata={"method": stage_name, "report": report},
                )
        except EngineError as e:
            report.fail_stage(STAGE_WRITE_INPUTS, error=str(e))
            raise AudioExtractionError(f"Could not stage input video: {e}", report) from e
        finally:
            await self._cleanup(engine, AUDIO_INPUT_NAME, output_name)

        logger.error(f"Audio extraction failed: {'; '.join(report.errors)}")
        raise AudioExtractionError("Audio extraction failed in every stage", report)

    async def burn_subtitles(
        self,
        video: bytes,
        ass_content: str,
        on_progress: ProgressSink | None = None,
        custom_font: FontAsset | None = None,
        output_filename: str = BURN_OUTPUT_NAME,
    ) -> DownloadArtifact:
        """Burn a styled subtitle script permanently into a video.

        Args:
        ----
            video: Input video bytes
            ass_content: Compiled ASS script
            on_progress: Receives integer percentages in ``[0, 100]``
            custom_font: User font; the bundled default is used when None
            output_filename: Filename given to the resulting artifact

        Returns:
        -------
            Video artifact with the subtitles rendered into its frames

        Raises:
        ------
            SubtitleBurnError: If any stage failed

        """
        return await self.run_job(
            "burn_subtitles",
            lambda engine: self._burn_subtitles(
                engine, video, ass_content, on_progress, custom_font, output_filename
            ),
        )

    def _resolve_font(self, custom_font: FontAsset | None) -> FontAsset | None:
        if custom_font is not None:
            return custom_font
        return default_font(self.font_settings.default_font_path)

    async def _burn_subtitles(
        self,
        engine: TranscodingEngine,
        video: bytes,
        ass_content: str,
        on_progress: ProgressSink | None,
        custom_font: FontAsset | None,
        output_filename: str,
    ) -> DownloadArtifact:
        settings = self.ffmpeg_settings
        report = StageReport(job_name="burn_subtitles")
        written = [BURN_INPUT_NAME, SUBTITLE_FILE_NAME]
        progress_handler = make_progress_handler(on_progress) if on_progress else None

        if progress_handler:
            engine.on("progress", progress_handler)
        try:
            report.start_stage(STAGE_WRITE_INPUTS)
            await engine.write_file(BURN_INPUT_NAME, video)
            await engine.write_file(SUBTITLE_FILE_NAME, ass_content)

            font = self._resolve_font(custom_font)
            if font is not None:
                font_file = f"{FONTS_DIR_NAME}/{font.file_name}"
                await engine.write_file(font_file, await font.read_bytes())
                written.append(font_file)
                logger.info(f"Burning with font '{font.name}' ({font.file_name})")
            report.complete_stage()

            report.start_stage(STAGE_BURN)
            await engine.exec(
                [
                    "-i", BURN_INPUT_NAME,
                    "-vf", f"ass={SUBTITLE_FILE_NAME}:fontsdir={FONTS_DIR_NAME}",
                    "-c:a", "copy",
                    "-preset", settings.burn_preset,
                    "-threads", str(settings.burn_threads),
                    BURN_OUTPUT_NAME,
                ]
            )
            report.complete_stage()

            report.start_stage(STAGE_READ_OUTPUT)
            data = await engine.read_file(BURN_OUTPUT_NAME)
            report.complete_stage()
        except TranscodingError as e:
            report.fail_stage(error=str(e))
            logger.error(f"Subtitle burn failed: {e}", exc_info=True)
            raise SubtitleBurnError(f"Subtitle burn failed: {e}", report) from e
        finally:
            if progress_handler:
                engine.off("progress", progress_handler)
            await self._cleanup(engine, *written, BURN_OUTPUT_NAME)

        logger.info(f"Subtitle burn complete: {len(data)} bytes")
        return DownloadArtifact(
            data=data,
            filename=output_filename,
            mime_type=settings.burn_output_mime_type,
            metadata={"report": report},
        )

    async def close(self) -> None:
        """Release the engine. A later job creates a fresh one."""
        async with self._job_lock:
            if self._engine is not None:
                self._engine.off("log", self._log_engine_message)
                await self._engine.close()
                self._engine = None


_global_orchestrator: TranscodingOrchestrator | None = None


def get_transcoding_orchestrator(
    ffmpeg_settings: FFmpegSettings | None = None,
    font_settings: FontSettings | None = None,
) -> TranscodingOrchestrator:
    """Get the process-wide orchestrator, creating it on first use."""
    global _global_orchestrator
    if _global_orchestrator is None:
        _global_orchestrator = TranscodingOrchestrator(ffmpeg_settings, font_settings)
    return _global_orchestrator


async def close_transcoding_orchestrator() -> None:
    """Close the process-wide orchestrator."""
    global _global_orchestrator
    if _global_orchestrator is not None:
        await _global_orchestrator.close()
        _global_orchestrator = None
