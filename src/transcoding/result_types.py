"""Result types for transcoding jobs.

A job either produces a :class:`DownloadArtifact` or raises; the
:class:`StageReport` records which stages were attempted along the way and is
attached to both outcomes.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.utils import ensure_dirs_exist, sanitize_filename


@dataclass
class StageReport:
    """Tracks the stages of a multi-stage transcoding job."""

    job_name: str
    stages_completed: list[str] = field(default_factory=list)
    stages_failed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    current_stage: str = ""

    def start_stage(self, stage_name: str) -> None:
        """Mark the start of a stage."""
        self.current_stage = stage_name

    def complete_stage(self, stage_name: str | None = None) -> None:
        """Mark completion of a stage."""
        stage = stage_name or self.current_stage
        if stage and stage not in self.stages_completed:
            self.stages_completed.append(stage)
        self.current_stage = ""

    def fail_stage(self, stage_name: str | None = None, error: str = "") -> None:
        """Mark failure of a stage."""
        stage = stage_name or self.current_stage
        if stage and stage not in self.stages_failed:
            self.stages_failed.append(stage)
        if error:
            self.errors.append(f"Stage '{stage}' failed: {error}")
        self.current_stage = ""

    @property
    def used_fallback(self) -> bool:
        """Whether a later stage completed after an earlier one failed."""
        return bool(self.stages_failed) and bool(self.stages_completed)


@dataclass
class DownloadArtifact:
    """Bytes handed to the save/download collaborator."""

    data: bytes
    filename: str
    mime_type: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def add_metadata(self, key: str, value: Any) -> None:
        """Add metadata to the artifact."""
        self.metadata[key] = value

    def save(self, directory: Path, filename: str | None = None) -> Path:
        """Write the artifact into ``directory`` and return the file path."""
        ensure_dirs_exist(directory)
        path = directory / sanitize_filename(filename or self.filename)
        path.write_bytes(self.data)
        return path
