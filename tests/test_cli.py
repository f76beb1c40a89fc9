"""Tests for the command-line front end."""

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from src.editor.cli import build_parser, main, setup_logging, styles_from_args
from src.editor.editor_config import EditorConfig
from src.subtitles.ass_compiler import AssStyles, HorizontalAlignment
from src.transcoding.result_types import DownloadArtifact


@pytest.fixture
def config_path(temp_dir: Path) -> Path:
    path = temp_dir / "editor.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "log_directory": str(temp_dir / "logs"),
                "output_directory": str(temp_dir / "outputs"),
                "font_settings": {"default_font_path": str(temp_dir / "none.ttf")},
            }
        )
    )
    return path


@pytest.fixture
def srt_file(temp_dir: Path, sample_srt: str) -> Path:
    path = temp_dir / "talk.srt"
    path.write_text(sample_srt, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestArguments:
    """Test argument parsing and style overrides."""

    def test_style_overrides(self):
        args = build_parser().parse_args(
            ["compile", "in.srt", "--font-size", "40", "--alignment", "right"]
        )

        styles = styles_from_args(args, AssStyles(font_name="Inter"))

        assert styles.font_name == "Inter"
        assert styles.font_size == 40
        assert styles.alignment is HorizontalAlignment.RIGHT

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestSetupLogging:
    """Test logging configuration."""

    def test_creates_log_file(self, temp_dir: Path):
        config = EditorConfig(log_directory=temp_dir / "logs")

        log_file = setup_logging(config, debug_mode=True)

        assert log_file.parent.is_dir()
        assert logging.getLogger().level == logging.DEBUG


class TestCommands:
    """Test subcommands end to end with the engine stubbed out."""

    @pytest.mark.asyncio
    async def test_compile(self, config_path: Path, srt_file: Path, temp_dir: Path):
        code = await main(
            ["--config", str(config_path), "compile", str(srt_file), "--font-size", "36"]
        )

        assert code == 0
        script = (temp_dir / "outputs" / "talk.ass").read_text(encoding="utf-8")
        assert "Style: Default,Roboto,36," in script
        assert script.count("Dialogue:") == 3

    @pytest.mark.asyncio
    async def test_locate(self, config_path: Path, srt_file: Path, capsys):
        assert await main(["--config", str(config_path), "locate", str(srt_file), "4.5"]) == 0
        assert "cue 1 [00:00:04,000 --> 00:00:06,000]" in capsys.readouterr().out

        assert await main(["--config", str(config_path), "locate", str(srt_file), "6.5"]) == 1
        assert "no active cue" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_burn(self, config_path: Path, srt_file: Path, temp_dir: Path):
        video = temp_dir / "clip.mp4"
        video.write_bytes(b"video")
        burned = DownloadArtifact(b"burned", "subtitled_clip.mp4", "video/mp4")

        with patch(
            "src.editor.cli.TranscodingOrchestrator.burn_subtitles",
            new=AsyncMock(return_value=burned),
        ) as burn:
            code = await main(
                ["--config", str(config_path), "burn", str(video), str(srt_file)]
            )

        assert code == 0
        assert burn.await_args.kwargs["output_filename"] == "subtitled_clip.mp4"
        assert (temp_dir / "outputs" / "subtitled_clip.mp4").read_bytes() == b"burned"

    @pytest.mark.asyncio
    async def test_failure_returns_nonzero(self, config_path: Path, temp_dir: Path):
        code = await main(
            ["--config", str(config_path), "compile", str(temp_dir / "missing.srt")]
        )

        assert code == 1

    @pytest.mark.asyncio
    async def test_bad_config(self, temp_dir: Path, srt_file: Path):
        code = await main(
            ["--config", str(temp_dir / "missing.yaml"), "locate", str(srt_file), "1"]
        )

        assert code == 2
