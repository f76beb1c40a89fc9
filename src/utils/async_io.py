"""Async subprocess helpers for FFmpeg."""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)

LineHandler = Callable[[str], None]


async def _pump_lines(stream: asyncio.StreamReader | None, handler: LineHandler) -> None:
    if stream is None:
        return
    while True:
        line = await stream.readline()
        if not line:
            break
        handler(line.decode(errors="ignore").rstrip("\r\n"))


async def async_run_ffmpeg(
    cmd: list[str],
    cwd: Path | None = None,
    on_stdout_line: LineHandler | None = None,
    on_stderr_line: LineHandler | None = None,
    timeout_sec: float | None = None,
    log_path: Path | None = None,
) -> int | None:
    """Run an FFmpeg command asynchronously, streaming its output line by line.

    Args:
    ----
        cmd: FFmpeg command as list of strings
        cwd: Working directory for the process
        on_stdout_line: Called for every stdout line (e.g. ``-progress pipe:1``)
        on_stderr_line: Called for every stderr line (log output)
        timeout_sec: Optional timeout in seconds; None waits indefinitely
        log_path: Optional path to save the command line

    Returns:
    -------
        The process return code

    Raises:
    ------
        TimeoutError: If the process did not finish within ``timeout_sec``
        OSError: If the executable could not be started

    """
    if log_path:
        log_path.write_text(
            " ".join(f"'{part}'" if " " in part else part for part in cmd)
        )

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
    )

    async def _communicate() -> int:
        await asyncio.gather(
            _pump_lines(process.stdout, on_stdout_line or (lambda _line: None)),
            _pump_lines(process.stderr, on_stderr_line or (lambda _line: None)),
        )
        return await process.wait()

    try:
        return await asyncio.wait_for(_communicate(), timeout=timeout_sec)
    except (TimeoutError, asyncio.CancelledError):
        if process.returncode is None:
            logger.error(f"Terminating FFmpeg process {process.pid}")
            try:
                process.kill()
                await process.wait()
            except ProcessLookupError as e:
                logger.debug(f"Error terminating process: {e}")
        raise
