# src/editor/editor_config.py
import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from src.subtitles.ass_compiler import AssStyles
from src.transcoding.fonts import FONT_FILE_EXTENSIONS

logger = logging.getLogger(__name__)

DEFAULT_TRANSCRIBE_ENDPOINT = "/generate_subtitle"
DEFAULT_FRAME_INTERVAL_SEC = 1 / 60
DEFAULT_TIME_UPDATE_MIN_DELTA_SEC = 0.05
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class FFmpegSettings(BaseModel):
    executable_path: str | None = Field(None)
    work_dir: Path | None = Field(
        None, description="Engine working directory; a temp dir when unset."
    )
    command_timeout_sec: float | None = Field(
        None, description="Per-command timeout. Unset means run to completion."
    )
    keep_work_files: bool = Field(False)
    burn_preset: str = Field("ultrafast")
    burn_threads: int = Field(
        4,
        gt=0,
        description="Fixed thread count; the engine misbehaves when it is unset.",
    )
    burn_output_mime_type: str = Field("video/mp4")
    audio_container: str = Field("m4a")
    audio_mime_type: str = Field("audio/mp4")
    audio_reencode_codec: str = Field("aac")
    audio_reencode_bitrate: str = Field("256k")
    audio_reencode_sample_rate: int = Field(48000, gt=0)


class FontSettings(BaseModel):
    default_font_path: Path = Field(Path("static/fonts/default.ttf"))
    allowed_extensions: list[str] = Field(default_factory=lambda: list(FONT_FILE_EXTENSIONS))

    @model_validator(mode="after")
    def resolve_default_font_path(self) -> "FontSettings":
        if not self.default_font_path.is_absolute():
            self.default_font_path = PROJECT_ROOT / self.default_font_path
        return self


class TranscriptionSettings(BaseModel):
    primary_url: str | None = Field(None)
    backup_url: str | None = Field(None)
    primary_url_env_var: str = Field("TRANSCRIBE_API_URL")
    backup_url_env_var: str = Field("BACKUP_TRANSCRIBE_API_URL")
    timeout_sec: int = Field(600, gt=0)
    retry_attempts: int = Field(2, ge=1)
    retry_min_wait_sec: int = Field(2, ge=0)
    retry_max_wait_sec: int = Field(10, ge=0)
    warmup_request: bool = Field(
        True, description="GET the service root first to wake a sleeping backend."
    )
    enable_vocal_separation: bool = Field(False)
    upload_field_name: str = Field("file")

    @model_validator(mode="after")
    def check_wait_bounds(self) -> "TranscriptionSettings":
        if self.retry_min_wait_sec > self.retry_max_wait_sec:
            raise ValueError("retry_min_wait_sec must not exceed retry_max_wait_sec")
        return self

    def resolved_endpoints(self) -> list[str]:
        """Endpoints in the order they are tried; environment overrides config."""
        endpoints = []
        for env_var, configured in (
            (self.primary_url_env_var, self.primary_url),
            (self.backup_url_env_var, self.backup_url),
        ):
            url = os.getenv(env_var) or configured
            if url and url not in endpoints:
                endpoints.append(url)
        return endpoints


class OverlaySettings(BaseModel):
    renderer_module: str = Field(
        "src.overlay.renderers", description="Module providing the overlay renderer."
    )
    renderer_factory: str = Field("create_renderer")
    time_update_min_delta_sec: float = Field(DEFAULT_TIME_UPDATE_MIN_DELTA_SEC, ge=0)
    frame_interval_sec: float = Field(DEFAULT_FRAME_INTERVAL_SEC, gt=0)


class EditorConfig(BaseModel):
    log_directory: Path = Field(Path("outputs/logs"))
    output_directory: Path = Field(Path("outputs"))
    export_filename_prefix: str = Field("subtitles")
    burn_filename_prefix: str = Field("subtitled_")
    ffmpeg_settings: FFmpegSettings = Field(default_factory=FFmpegSettings)
    font_settings: FontSettings = Field(default_factory=FontSettings)
    transcription_settings: TranscriptionSettings = Field(
        default_factory=TranscriptionSettings
    )
    overlay_settings: OverlaySettings = Field(default_factory=OverlaySettings)
    default_styles: AssStyles = Field(default_factory=AssStyles)


def load_editor_config(config_path: Path) -> EditorConfig:
    logger.info(f"Loading editor config from: {config_path}")
    if not config_path.is_file():
        raise FileNotFoundError(f"Editor config file not found: {config_path}")
    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML in {config_path}: {e}")
        raise ValueError(f"Invalid YAML in {config_path}.") from e
    if not isinstance(config_data, dict):
        raise ValueError("Config file is not a valid dictionary.")
    try:
        return EditorConfig(**config_data)
    except ValidationError as e:
        logger.error(f"Config validation error: {e}")
        raise ValueError("Config validation failed.") from e


DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "subtitle_editor.yaml"


def get_default_config(config_path: Path = DEFAULT_CONFIG_PATH) -> EditorConfig:
    """Load the default config file, falling back to built-in defaults."""
    try:
        config = load_editor_config(config_path)
        logger.info("Default editor configuration loaded successfully")
        return config
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load default configuration: {e}")
        return EditorConfig()
