"""Pytest configuration and shared fixtures for Subtitle Studio tests."""

import asyncio
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from aioresponses import aioresponses

from src.editor.editor_config import EditorConfig, FFmpegSettings, FontSettings
from src.overlay.media_element import MediaElement
from src.overlay.renderer_contract import RendererOptions
from src.subtitles.srt_codec import Cue
from src.transcoding.engine import TranscodingEngine
from src.transcoding.errors import EngineError, EngineFileError

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,500
Hello world

2
00:00:04,000 --> 00:00:06,000
Second line
with a break

3
00:00:07,250 --> 00:00:09,000
Last cue"""


class FakeEngine(TranscodingEngine):
    """In-memory engine: a dict filesystem and scripted command outcomes.

    Each ``exec`` pops the next entry of ``exec_results``; an exception entry
    is raised, anything else succeeds and writes the last argument as the
    output file.
    """

    def __init__(self) -> None:
        super().__init__()
        self.files: dict[str, bytes] = {}
        self.commands: list[list[str]] = []
        self.exec_results: list[Exception | None] = []
        self.progress_values: list[object] = []
        self.exec_delay = 0.0
        self.load_count = 0
        self.closed = False
        self.fail_writes = False
        self._running = False

    async def load(self) -> None:
        self.load_count += 1
        self._loaded = True

    async def write_file(self, name: str, data: bytes | str) -> None:
        if self.fail_writes:
            raise EngineFileError(f"Could not write {name}")
        self.files[name] = data.encode("utf-8") if isinstance(data, str) else data

    async def read_file(self, name: str) -> bytes:
        if name not in self.files:
            raise EngineFileError(f"File not found in engine storage: {name}")
        return self.files[name]

    async def delete_file(self, name: str) -> None:
        self.files.pop(name, None)

    async def exec(self, args: list[str]) -> None:
        if self._running:
            raise EngineError("Engine is not reentrant; a command is already running")
        self._running = True
        try:
            self.commands.append(list(args))
            if self.exec_delay:
                await asyncio.sleep(self.exec_delay)
            for value in self.progress_values:
                self._emit("progress", {"progress": value, "time": 0.0})
            result = self.exec_results.pop(0) if self.exec_results else None
            if isinstance(result, Exception):
                raise result
            self.files[args[-1]] = b"output:" + args[-1].encode()
        finally:
            self._running = False

    async def close(self) -> None:
        self.closed = True
        await super().close()


class FakeRenderer:
    """Renderer double that records its options and lifecycle."""

    def __init__(self, options: RendererOptions):
        self.options = options
        self.scripts = [options.sub_content]
        self.destroyed = False

    def set_script(self, content: str) -> None:
        self.scripts.append(content)

    def destroy(self) -> None:
        self.destroyed = True


class RendererRecorder:
    """Loader plus factory pair that counts constructions."""

    def __init__(self) -> None:
        self.created: list[FakeRenderer] = []
        self.load_calls = 0
        self.load_gate: asyncio.Event | None = None
        self.error: Exception | None = None

    def factory(self, options: RendererOptions) -> FakeRenderer:
        if self.error is not None:
            raise self.error
        renderer = FakeRenderer(options)
        self.created.append(renderer)
        return renderer

    async def loader(self):
        self.load_calls += 1
        if self.load_gate is not None:
            await self.load_gate.wait()
        return self.factory

    @property
    def live(self) -> list[FakeRenderer]:
        return [r for r in self.created if not r.destroyed]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def sample_srt() -> str:
    return SAMPLE_SRT


@pytest.fixture
def sample_cues() -> list[Cue]:
    return [
        Cue(1, "00:00:01,000", "00:00:03,500", "Hello world"),
        Cue(2, "00:00:04,000", "00:00:06,000", "Second line\nwith a break"),
        Cue(3, "00:00:07,250", "00:00:09,000", "Last cue"),
    ]


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def ffmpeg_settings() -> FFmpegSettings:
    return FFmpegSettings()


@pytest.fixture
def font_settings(temp_dir: Path) -> FontSettings:
    """Font settings pointing at a default font that does not exist."""
    return FontSettings(default_font_path=temp_dir / "missing" / "default.ttf")


@pytest.fixture
def editor_config(temp_dir: Path) -> EditorConfig:
    return EditorConfig(
        log_directory=temp_dir / "logs",
        output_directory=temp_dir / "outputs",
        font_settings=FontSettings(default_font_path=temp_dir / "default.ttf"),
    )


@pytest.fixture
def media_element() -> MediaElement:
    return MediaElement("file:///videos/clip.mp4")


@pytest.fixture
def renderer_recorder() -> RendererRecorder:
    return RendererRecorder()


@pytest.fixture
def mock_aioresponses() -> Generator[aioresponses, None, None]:
    """Mock HTTP responses for testing."""
    with aioresponses() as m:
        yield m
