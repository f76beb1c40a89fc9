"""Utility Functions Module for Subtitle Studio

This module provides small helpers shared across the project: directory
management, temporary working directories, and filename handling for the
artifacts handed to the user.
"""

import logging
import os
import re
import shutil
from datetime import datetime
from pathlib import Path

# Constants for file handling
MAX_FILENAME_LENGTH = 200  # Maximum safe filename length
EXPORT_TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"

logger = logging.getLogger(__name__)


def ensure_dirs_exist(path: Path) -> None:
    """Ensure that the parent directories for the given path exist.
    If path is a directory, ensure the path itself exists.
    Logs an error but does not re-raise exceptions during directory creation.
    """
    try:
        if path.suffix:  # If path includes a filename, make parent dirs
            path.parent.mkdir(parents=True, exist_ok=True)
        else:  # If path is a directory path, make the path itself
            path.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        logger.error(f"Failed to create directories for {path}: {e}")


def cleanup_temp_dirs(*temp_dirs: Path, verify: bool = False) -> bool:
    """Remove temporary directories and their contents safely.

    Args:
    ----
        *temp_dirs: Paths to temporary directories to clean up
        verify: If True, verify that all directories were successfully removed

    Returns:
    -------
        bool: True if all directories were successfully cleaned up (or if verify=False)

    """
    all_cleaned = True
    for temp_dir in temp_dirs:
        if not temp_dir or not isinstance(temp_dir, Path):
            continue

        if not temp_dir.exists():
            logger.debug(f"Temporary directory does not exist: {temp_dir}")
            continue

        shutil.rmtree(temp_dir, ignore_errors=True)
        logger.info(f"Cleaned up temporary directory: {temp_dir}")

        if verify and temp_dir.exists():
            logger.warning(f"Directory still exists after cleanup: {temp_dir}")
            all_cleaned = False

    return all_cleaned if verify else True


def sanitize_filename(filename: str) -> str:
    """Make a string safe for use as a filename.

    Path components are removed, characters invalid on common filesystems are
    replaced with underscores, whitespace is collapsed and the length is
    limited while keeping the extension.

    Args:
    ----
        filename: The input string.

    Returns:
    -------
        A sanitized string suitable for filesystem use.

    """
    if not filename or not filename.strip():
        return "file"

    name = os.path.basename(filename.replace("\\", "/"))
    name = re.sub(r'[<>:"|?*\x00-\x1f]', "_", name)
    name = re.sub(r"\s+", "_", name)
    name = re.sub(r"_{3,}", "_", name)
    name = name.strip(". _")

    if not name:
        return "file"

    if len(name) > MAX_FILENAME_LENGTH:
        name_part, ext_part = os.path.splitext(name)
        name_part = name_part[: MAX_FILENAME_LENGTH - len(ext_part)].strip("._ ") or "part"
        name = name_part + ext_part

    return name


def timestamped_filename(prefix: str, extension: str, now: datetime | None = None) -> str:
    """Build a download filename such as ``subtitles-2024-05-01T10-30-00.srt``."""
    moment = now or datetime.now()
    return f"{prefix}-{moment.strftime(EXPORT_TIMESTAMP_FORMAT)}.{extension.lstrip('.')}"
