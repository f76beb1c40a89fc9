"""Tests for editor configuration loading."""

from pathlib import Path

import pytest
import yaml

from src.editor.editor_config import (
    DEFAULT_CONFIG_PATH,
    PROJECT_ROOT,
    EditorConfig,
    FontSettings,
    TranscriptionSettings,
    get_default_config,
    load_editor_config,
)
from src.subtitles.ass_compiler import HorizontalAlignment


class TestLoadEditorConfig:
    """Test YAML config loading and validation."""

    def test_repository_config_loads(self):
        config = load_editor_config(DEFAULT_CONFIG_PATH)

        assert config.ffmpeg_settings.burn_preset == "ultrafast"
        assert config.ffmpeg_settings.burn_threads == 4
        assert config.default_styles.alignment is HorizontalAlignment.CENTER
        assert config.overlay_settings.renderer_module == "src.overlay.renderers"

    def test_partial_config_uses_defaults(self, temp_dir: Path):
        path = temp_dir / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "export_filename_prefix": "captions",
                    "default_styles": {"font_name": "Inter", "alignment": "left"},
                }
            )
        )

        config = load_editor_config(path)

        assert config.export_filename_prefix == "captions"
        assert config.default_styles.font_name == "Inter"
        assert config.default_styles.alignment is HorizontalAlignment.LEFT
        assert config.default_styles.font_size == 24
        assert config.ffmpeg_settings.audio_container == "m4a"

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(FileNotFoundError):
            load_editor_config(temp_dir / "missing.yaml")

    def test_invalid_yaml(self, temp_dir: Path):
        path = temp_dir / "bad.yaml"
        path.write_text("ffmpeg_settings: [unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_editor_config(path)

    def test_not_a_mapping(self, temp_dir: Path):
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="not a valid dictionary"):
            load_editor_config(path)

    def test_validation_failure(self, temp_dir: Path):
        path = temp_dir / "invalid.yaml"
        path.write_text(yaml.safe_dump({"ffmpeg_settings": {"burn_threads": 0}}))

        with pytest.raises(ValueError, match="validation failed"):
            load_editor_config(path)

    def test_get_default_config_falls_back(self, temp_dir: Path):
        config = get_default_config(temp_dir / "missing.yaml")

        assert config == EditorConfig()


class TestTranscriptionSettings:
    """Test transcription settings validation."""

    def test_wait_bounds(self):
        with pytest.raises(ValueError):
            TranscriptionSettings(retry_min_wait_sec=20, retry_max_wait_sec=10)


class TestFontSettings:
    """Test bundled font path resolution."""

    def test_relative_path_resolves_against_project_root(self):
        settings = FontSettings(default_font_path="static/fonts/default.ttf")

        assert settings.default_font_path == PROJECT_ROOT / "static" / "fonts" / "default.ttf"

    def test_absolute_path_is_kept(self, temp_dir: Path):
        settings = FontSettings(default_font_path=temp_dir / "brand.ttf")

        assert settings.default_font_path == temp_dir / "brand.ttf"

    def test_bundled_default_font_is_shipped(self):
        config = load_editor_config(DEFAULT_CONFIG_PATH)

        assert config.font_settings.default_font_path.is_file()
        assert FontSettings().default_font_path.is_file()
