# src/editor/cli.py
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from src.editor.editor_config import (
    DEFAULT_CONFIG_PATH,
    EditorConfig,
    load_editor_config,
)
from src.editor.project import SubtitleProject
from src.subtitles.ass_compiler import AssStyles, HorizontalAlignment, generate_ass
from src.subtitles.srt_codec import parse_srt, seconds_to_srt_time
from src.transcoding.errors import TranscodingError
from src.transcoding.fonts import FontAsset
from src.transcoding.orchestrator import TranscodingOrchestrator
from src.transcription.client import TranscriptionClient, TranscriptionError
from src.utils import ensure_dirs_exist

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "subtitle_studio.log"


def setup_logging(config: EditorConfig, debug_mode: bool = False) -> Path:
    """Set up logging to both console and file.

    Args:
    ----
        config: Editor configuration containing the log directory
        debug_mode: Whether to enable debug logging

    Returns:
    -------
        Path to the log file

    """
    log_level = logging.DEBUG if debug_mode else logging.INFO

    ensure_dirs_exist(config.log_directory)
    log_file = config.log_directory / LOG_FILE_NAME

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    console_handler.setLevel(log_level)

    # Overwritten on each run
    file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        )
    )
    file_handler.setLevel(log_level)

    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    if not debug_mode:
        for lib in ["aiohttp", "urllib3", "asyncio"]:
            logging.getLogger(lib).setLevel(logging.WARNING)

    logger.info(
        f"Logging configured - Level: {logging.getLevelName(log_level)}, "
        f"File: {log_file}"
    )
    return log_file


def _add_style_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--font-name", help="Font family named in the style.")
    parser.add_argument("--font-size", type=int, help="Font size in script pixels.")
    parser.add_argument("--primary-color", help="Text color as #RRGGBB.")
    parser.add_argument("--outline-color", help="Outline color as #RRGGBB.")
    parser.add_argument("--background-color", help="Background color as #RRGGBB.")
    parser.add_argument(
        "--alignment",
        choices=[a.value for a in HorizontalAlignment],
        help="Horizontal alignment of the text.",
    )
    parser.add_argument("--margin-v", type=int, help="Vertical margin in pixels.")


def styles_from_args(args: argparse.Namespace, defaults: AssStyles) -> AssStyles:
    """Overlay the style options given on the command line onto ``defaults``."""
    overrides = {
        "font_name": args.font_name,
        "font_size": args.font_size,
        "primary_color": args.primary_color,
        "outline_color": args.outline_color,
        "background_color": args.background_color,
        "alignment": args.alignment,
        "margin_v": args.margin_v,
    }
    values = defaults.model_dump()
    values.update({key: value for key, value in overrides.items() if value is not None})
    return AssStyles(**values)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Transcribe, style and burn subtitles into videos."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the editor YAML config.",
    )
    parser.add_argument(
        "--output-dir", type=Path, help="Directory for written files (default: config)."
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser(
        "extract-audio", help="Extract a video's audio track."
    )
    extract.add_argument("video", type=Path)

    transcribe = subparsers.add_parser(
        "transcribe", help="Transcribe a video into an SRT file."
    )
    transcribe.add_argument("video", type=Path)
    transcribe.add_argument(
        "--vocal-separation",
        action="store_true",
        default=None,
        help="Ask the service to isolate vocals before transcribing.",
    )

    compile_cmd = subparsers.add_parser("compile", help="Compile an SRT file to ASS.")
    compile_cmd.add_argument("srt", type=Path)
    compile_cmd.add_argument(
        "--no-escape",
        action="store_true",
        help="Pass ASS override tags in cue text through unchanged.",
    )
    _add_style_arguments(compile_cmd)

    burn = subparsers.add_parser("burn", help="Burn an SRT file into a video.")
    burn.add_argument("video", type=Path)
    burn.add_argument("srt", type=Path)
    burn.add_argument(
        "--font", type=Path, help="Custom font file (.ttf/.otf/.woff/.woff2)."
    )
    _add_style_arguments(burn)

    locate = subparsers.add_parser("locate", help="Show the cue active at a time.")
    locate.add_argument("srt", type=Path)
    locate.add_argument("time", type=float, help="Playback position in seconds.")

    return parser


async def _extract_audio(
    args: argparse.Namespace, config: EditorConfig, output_dir: Path
) -> int:
    orchestrator = TranscodingOrchestrator(config.ffmpeg_settings, config.font_settings)
    try:
        audio = await orchestrator.extract_audio(args.video.read_bytes())
    finally:
        await orchestrator.close()
    audio_name = f"{args.video.stem}.{config.ffmpeg_settings.audio_container}"
    path = audio.save(output_dir, audio_name)
    logger.info(f"Audio written to {path} (method: {audio.metadata.get('method')})")
    return 0


async def _transcribe(
    args: argparse.Namespace, config: EditorConfig, output_dir: Path
) -> int:
    project = SubtitleProject(config)
    orchestrator = TranscodingOrchestrator(config.ffmpeg_settings, config.font_settings)
    try:
        async with TranscriptionClient(config.transcription_settings) as client:
            await project.transcribe(
                args.video.read_bytes(), orchestrator, client, args.vocal_separation
            )
    finally:
        await orchestrator.close()
    path = project.export_srt().save(output_dir)
    logger.info(f"Transcript with {len(project.cues)} cue(s) written to {path}")
    return 0


async def _compile(
    args: argparse.Namespace, config: EditorConfig, output_dir: Path
) -> int:
    cues = parse_srt(args.srt.read_text(encoding="utf-8"))
    styles = styles_from_args(args, config.default_styles)
    script = generate_ass(cues, styles, escape_markup=not args.no_escape)
    ensure_dirs_exist(output_dir)
    path = output_dir / f"{args.srt.stem}.ass"
    path.write_text(script, encoding="utf-8")
    logger.info(f"ASS script with {len(cues)} dialogue line(s) written to {path}")
    return 0


async def _burn(
    args: argparse.Namespace, config: EditorConfig, output_dir: Path
) -> int:
    project = SubtitleProject(config)
    project.load_transcript(args.srt.read_text(encoding="utf-8"))
    styles = styles_from_args(args, config.default_styles)
    custom_font = None
    if args.font:
        custom_font = FontAsset.from_file(
            args.font, allowed_extensions=tuple(config.font_settings.allowed_extensions)
        )
        styles = styles.model_copy(update={"font_name": custom_font.name})

    last_reported = -1

    def report_progress(percent: int) -> None:
        nonlocal last_reported
        if percent != last_reported:
            last_reported = percent
            logger.info(f"Burning video: {percent}%")

    orchestrator = TranscodingOrchestrator(config.ffmpeg_settings, config.font_settings)
    try:
        artifact = await project.burn(
            args.video.read_bytes(),
            args.video.name,
            orchestrator,
            styles=styles,
            custom_font=custom_font,
            on_progress=report_progress,
        )
    finally:
        await orchestrator.close()
    path = artifact.save(output_dir)
    logger.info(f"Subtitled video written to {path}")
    return 0


async def _locate(
    args: argparse.Namespace, config: EditorConfig, output_dir: Path
) -> int:
    project = SubtitleProject(config)
    project.load_transcript(args.srt.read_text(encoding="utf-8"))
    index = project.locate(args.time)
    position = seconds_to_srt_time(args.time)
    if index is None:
        print(f"{position}: no active cue")
        return 1
    cue = project.cues[index]
    print(f"{position}: cue {index} [{cue.start} --> {cue.end}] {cue.text}")
    return 0


COMMANDS = {
    "extract-audio": _extract_audio,
    "transcribe": _transcribe,
    "compile": _compile,
    "burn": _burn,
    "locate": _locate,
}


async def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    project_root = Path(__file__).resolve().parent.parent.parent
    load_dotenv(project_root / ".env")

    try:
        config = load_editor_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        logger.critical(f"Config loading failed: {e}")
        return 2

    log_file = setup_logging(config, args.debug)
    output_dir = args.output_dir or config.output_directory

    try:
        return await COMMANDS[args.command](args, config, output_dir)
    except (TranscodingError, TranscriptionError, ValueError, OSError) as e:
        logger.error(f"Command '{args.command}' failed: {e}", exc_info=args.debug)
        return 1
    finally:
        logger.info(f"Complete log saved to: {log_file}")
        for handler in logging.getLogger().handlers:
            handler.flush()


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
