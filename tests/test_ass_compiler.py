"""Tests for the ASS script compiler."""

import pytest
from pydantic import ValidationError

from src.subtitles.ass_compiler import (
    ASS_FALLBACK_COLOR,
    AssStyles,
    HorizontalAlignment,
    escape_ass_text,
    generate_ass,
    to_ass_color,
    to_ass_time,
)
from src.subtitles.srt_codec import Cue


class TestToAssColor:
    """Test #RRGGBB to &HAABBGGRR conversion."""

    @pytest.mark.parametrize(
        ("hex_color", "expected"),
        [
            ("#FFFFFF", "&H00FFFFFF"),
            ("#000000", "&H00000000"),
            ("#FF0000", "&H000000FF"),
            ("#FF8800", "&H000088FF"),
            ("#123456", "&H00563412"),
            ("123456", "&H00563412"),
            ("  #abcdef ", "&H00efcdab"),
        ],
    )
    def test_valid_colors(self, hex_color: str, expected: str):
        assert to_ass_color(hex_color) == expected

    @pytest.mark.parametrize("bad", ["", "#FFF", "#GGGGGG", "#1234567", "red"])
    def test_invalid_colors_fall_back_to_white(self, bad: str):
        assert to_ass_color(bad) == ASS_FALLBACK_COLOR


class TestToAssTime:
    """Test SRT to ASS timestamp conversion."""

    @pytest.mark.parametrize(
        ("srt_time", "expected"),
        [
            ("00:00:00,000", "0:00:00.00"),
            ("00:01:02,345", "0:01:02.34"),
            ("00:00:01,999", "0:00:01.99"),
            ("01:02:03,050", "1:02:03.05"),
            ("12:00:00,009", "12:00:00.00"),
        ],
    )
    def test_truncates_to_centiseconds(self, srt_time: str, expected: str):
        assert to_ass_time(srt_time) == expected


class TestEscapeAssText:
    """Test markup escaping of cue text."""

    def test_plain_text_is_unchanged(self):
        assert escape_ass_text("Hello, world!") == "Hello, world!"

    def test_braces_are_escaped(self):
        assert escape_ass_text("{\\b1}bold") == "\\{\\\u2060b1\\}bold"

    def test_backslash_n_typed_by_user_is_not_a_line_break(self):
        escaped = escape_ass_text("C:\\New")

        assert "\\N" not in escaped
        assert escaped == "C:\\\u2060New"

    def test_newlines_become_ass_line_breaks(self):
        assert escape_ass_text("one\ntwo\r\nthree") == "one\\Ntwo\\Nthree"


class TestAssStyles:
    """Test the style model."""

    def test_defaults(self):
        styles = AssStyles()

        assert styles.font_name == "Roboto"
        assert styles.font_size == 24
        assert styles.alignment is HorizontalAlignment.CENTER
        assert styles.margin_v == 30

    def test_is_immutable(self):
        styles = AssStyles()

        with pytest.raises(ValidationError):
            styles.font_size = 30

    def test_rejects_non_positive_font_size(self):
        with pytest.raises(ValidationError):
            AssStyles(font_size=0)

    def test_alignment_codes(self):
        assert HorizontalAlignment.LEFT.ass_code == 1
        assert HorizontalAlignment.CENTER.ass_code == 2
        assert HorizontalAlignment.RIGHT.ass_code == 3


class TestGenerateAss:
    """Test complete script generation."""

    def test_default_script_layout(self, sample_cues: list[Cue]):
        script = generate_ass(sample_cues)
        lines = script.split("\n")

        assert lines[0] == "[Script Info]"
        assert "Title: Generated Subtitles" in lines
        assert "ScriptType: v4.00+" in lines
        assert "PlayResX: 1920" in lines
        assert "PlayResY: 1080" in lines
        assert (
            "Style: Default,Roboto,24,&H00FFFFFF,&H000000FF,&H00000000,&H00000000,"
            "0,0,0,0,100,100,0,0,1,2,1,2,10,10,30,1"
        ) in lines
        assert lines[-3:] == [
            "Dialogue: 0,0:00:01.00,0:00:03.50,Default,,0,0,0,,Hello world",
            "Dialogue: 0,0:00:04.00,0:00:06.00,Default,,0,0,0,,Second line\\Nwith a break",
            "Dialogue: 0,0:00:07.25,0:00:09.00,Default,,0,0,0,,Last cue",
        ]

    def test_sections_in_order(self, sample_cues: list[Cue]):
        script = generate_ass(sample_cues)

        assert (
            script.index("[Script Info]")
            < script.index("[V4+ Styles]")
            < script.index("[Events]")
        )

    def test_custom_styles(self, sample_cues: list[Cue]):
        styles = AssStyles(
            font_name="Noto Sans",
            font_size=40,
            primary_color="#FFFF00",
            outline_color="#112233",
            background_color="#808080",
            alignment=HorizontalAlignment.LEFT,
            margin_v=55,
        )

        script = generate_ass(sample_cues, styles)

        assert (
            "Style: Default,Noto Sans,40,&H0000FFFF,&H000000FF,&H00332211,&H00808080,"
            "0,0,0,0,100,100,0,0,1,2,1,1,10,10,55,1"
        ) in script

    def test_no_cues_yields_header_only(self):
        script = generate_ass([])

        assert script.endswith(
            "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, "
            "Effect, Text\n"
        )
        assert "Dialogue:" not in script

    def test_markup_is_escaped_by_default(self):
        cues = [Cue(1, "00:00:00,000", "00:00:01,000", "{\\an8}top")]

        script = generate_ass(cues)

        assert "{\\an8}" not in script
        assert "\\{" in script

    def test_escaping_can_be_disabled(self):
        cues = [Cue(1, "00:00:00,000", "00:00:01,000", "{\\an8}top\nnext")]

        script = generate_ass(cues, escape_markup=False)

        assert script.endswith(",{\\an8}top\\Nnext")
