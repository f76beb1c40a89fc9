"""Transcoding engine boundary.

The orchestrator talks to its engine through a small contract modelled on an
in-browser FFmpeg build: a virtual filesystem (write, read and delete files by
name), execution of an FFmpeg argument list, and ``progress``/``log`` events.
:class:`FFmpegProcessEngine` implements that contract on top of a native
``ffmpeg`` executable and a private working directory.
"""

import asyncio
import logging
import re
import shutil
import tempfile
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from pathlib import Path
from typing import Any

from src.transcoding.errors import EngineError, EngineExecutionError, EngineFileError
from src.utils import cleanup_temp_dirs
from src.utils.async_io import async_run_ffmpeg

logger = logging.getLogger(__name__)

EngineListener = Callable[[dict[str, Any]], None]

ENGINE_EVENTS = ("progress", "log")
STDERR_TAIL_LINES = 20
DURATION_PATTERN = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
PROGRESS_TIME_KEY = "out_time_us"


class TranscodingEngine(ABC):
    """Stateful, non-reentrant media engine with an event channel."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[EngineListener]] = {
            event: [] for event in ENGINE_EVENTS
        }
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def on(self, event: str, listener: EngineListener) -> None:
        """Register a listener for ``progress`` or ``log`` events."""
        if event not in self._listeners:
            raise ValueError(f"Unknown engine event: {event}")
        self._listeners[event].append(listener)

    def off(self, event: str, listener: EngineListener) -> None:
        """Deregister a listener; unknown listeners are ignored."""
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def _emit(self, event: str, payload: dict[str, Any]) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception as e:
                logger.error(f"Engine {event} listener failed: {e}", exc_info=True)

    @abstractmethod
    async def load(self) -> None:
        """Prepare the engine for use. Called once before the first job."""

    @abstractmethod
    async def write_file(self, name: str, data: bytes | str) -> None:
        """Store bytes (or UTF-8 text) in the engine's working storage."""

    @abstractmethod
    async def read_file(self, name: str) -> bytes:
        """Read a file from the engine's working storage."""

    @abstractmethod
    async def delete_file(self, name: str) -> None:
        """Remove a file from working storage; missing files are ignored."""

    @abstractmethod
    async def exec(self, args: list[str]) -> None:
        """Run one FFmpeg invocation; raises EngineExecutionError on failure."""

    async def close(self) -> None:
        """Release engine resources."""
        self._loaded = False


def parse_duration_line(line: str) -> float | None:
    """Extract the input duration in seconds from an FFmpeg stderr line."""
    match = DURATION_PATTERN.search(line)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_progress_line(line: str) -> tuple[str, str] | None:
    """Split a ``key=value`` line emitted by ``-progress pipe:1``."""
    key, sep, value = line.partition("=")
    if not sep:
        return None
    return key.strip(), value.strip()


class FFmpegProcessEngine(TranscodingEngine):
    """Engine backed by a native ``ffmpeg`` binary and a working directory."""

    def __init__(
        self,
        ffmpeg_path: str | None = None,
        work_dir: Path | None = None,
        command_timeout_sec: float | None = None,
    ):
        super().__init__()
        self.ffmpeg_path = ffmpeg_path or "ffmpeg"
        self.command_timeout_sec = command_timeout_sec
        self._configured_work_dir = work_dir
        self._work_dir: Path | None = None
        self._owns_work_dir = False
        self._running = False
        self._duration_sec: float | None = None
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)

    @property
    def work_dir(self) -> Path:
        if self._work_dir is None:
            raise EngineError("Engine is not loaded")
        return self._work_dir

    async def load(self) -> None:
        if self._loaded:
            return
        if shutil.which(self.ffmpeg_path) is None:
            raise EngineError(f"FFmpeg executable not found: {self.ffmpeg_path}")

        if self._configured_work_dir is not None:
            self._configured_work_dir.mkdir(parents=True, exist_ok=True)
            self._work_dir = self._configured_work_dir.resolve()
        else:
            self._work_dir = Path(tempfile.mkdtemp(prefix="subtitle_studio_"))
            self._owns_work_dir = True

        self._loaded = True
        logger.info(
            f"FFmpeg engine loaded ({self.ffmpeg_path}), working dir: {self._work_dir}"
        )

    def _resolve(self, name: str) -> Path:
        path = (self.work_dir / name).resolve()
        if not path.is_relative_to(self.work_dir):
            raise EngineFileError(f"File name escapes engine storage: {name}")
        return path

    async def write_file(self, name: str, data: bytes | str) -> None:
        path = self._resolve(name)
        payload = data.encode("utf-8") if isinstance(data, str) else data

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise EngineFileError(f"Could not write {name}: {e}") from e
        logger.debug(f"Engine wrote {name} ({len(payload)} bytes)")

    async def read_file(self, name: str) -> bytes:
        path = self._resolve(name)
        if not path.is_file():
            raise EngineFileError(f"File not found in engine storage: {name}")
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise EngineFileError(f"Could not read {name}: {e}") from e

    async def delete_file(self, name: str) -> None:
        path = self._resolve(name)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete {name} from engine storage: {e}")

    async def exec(self, args: list[str]) -> None:
        if self._running:
            raise EngineError("Engine is not reentrant; a command is already running")

        cmd = [
            self.ffmpeg_path,
            "-hide_banner",
            "-nostats",
            "-y",
            "-progress",
            "pipe:1",
            *args,
        ]
        self._running = True
        self._duration_sec = None
        self._stderr_tail.clear()
        logger.debug(f"Engine exec: {' '.join(cmd)}")

        try:
            returncode = await async_run_ffmpeg(
                cmd,
                cwd=self.work_dir,
                on_stdout_line=self._handle_progress_line,
                on_stderr_line=self._handle_log_line,
                timeout_sec=self.command_timeout_sec,
            )
        except TimeoutError as e:
            raise EngineExecutionError(None, "command timed out") from e
        except OSError as e:
            raise EngineError(f"Could not start FFmpeg: {e}") from e
        finally:
            self._running = False

        if returncode != 0:
            raise EngineExecutionError(returncode, "\n".join(self._stderr_tail))

    def _handle_log_line(self, line: str) -> None:
        if not line:
            return
        self._stderr_tail.append(line)
        if self._duration_sec is None:
            self._duration_sec = parse_duration_line(line)
        self._emit("log", {"type": "stderr", "message": line})

    def _handle_progress_line(self, line: str) -> None:
        parsed = parse_progress_line(line)
        if parsed is None:
            return
        key, value = parsed

        if key == "progress" and value == "end":
            self._emit("progress", {"progress": 1.0, "time": self._duration_sec})
            return
        if key != PROGRESS_TIME_KEY:
            return

        try:
            time_sec = int(value) / 1_000_000
        except ValueError:
            return
        if self._duration_sec:
            fraction = time_sec / self._duration_sec
        else:
            fraction = float("nan")
        self._emit("progress", {"progress": fraction, "time": time_sec})

    async def close(self) -> None:
        if self._owns_work_dir and self._work_dir is not None:
            cleanup_temp_dirs(self._work_dir)
        self._work_dir = None
        self._owns_work_dir = False
        await super().close()
