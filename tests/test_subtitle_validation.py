"""Test suite for subtitle timeline validation."""

from pathlib import Path

from src.subtitles.srt_codec import Cue
from src.subtitles.subtitle_validation import (
    normalize_cue_timeline,
    validate_cue_timeline,
    validate_srt_file,
)


def _cue(seq: int, start: str, end: str) -> Cue:
    return Cue(seq, f"00:00:{start}", f"00:00:{end}", f"cue {seq}")


class TestValidateCueTimeline:
    """Test cases for validate_cue_timeline."""

    def test_valid_timeline(self, sample_cues: list[Cue]):
        assert validate_cue_timeline(sample_cues) == []

    def test_touching_cues_are_valid(self):
        cues = [_cue(1, "01,000", "02,000"), _cue(2, "02,000", "03,000")]

        assert validate_cue_timeline(cues) == []

    def test_inverted_cue(self):
        issues = validate_cue_timeline([_cue(1, "05,000", "04,000")])

        assert [(i.index, i.kind) for i in issues] == [(0, "inverted")]

    def test_unsorted_cues(self):
        cues = [_cue(1, "05,000", "06,000"), _cue(2, "01,000", "02,000")]

        issues = validate_cue_timeline(cues)

        assert [(i.index, i.kind) for i in issues] == [(1, "unsorted")]

    def test_overlap_against_any_earlier_cue(self):
        cues = [
            _cue(1, "01,000", "10,000"),
            _cue(2, "02,000", "03,000"),
            _cue(3, "04,000", "05,000"),
        ]

        issues = validate_cue_timeline(cues)

        assert [(i.index, i.kind) for i in issues] == [(1, "overlap"), (2, "overlap")]


class TestNormalizeCueTimeline:
    """Test cases for normalize_cue_timeline."""

    def test_drops_inverted_and_sorts(self):
        cues = [
            _cue(1, "05,000", "06,000"),
            _cue(2, "03,000", "02,000"),
            _cue(3, "01,000", "02,000"),
        ]

        normalized = normalize_cue_timeline(cues)

        assert [c.sequence for c in normalized] == [3, 1]

    def test_sort_is_stable(self):
        cues = [_cue(1, "01,000", "01,000"), _cue(2, "01,000", "01,000")]

        assert [c.sequence for c in normalize_cue_timeline(cues)] == [1, 2]

    def test_overlaps_are_kept(self):
        cues = [_cue(1, "01,000", "03,000"), _cue(2, "02,000", "04,000")]

        assert len(normalize_cue_timeline(cues)) == 2


class TestValidateSrtFile:
    """Test cases for validate_srt_file."""

    def test_valid_srt_file(self, temp_dir: Path, sample_srt: str):
        srt_path = temp_dir / "valid.srt"
        srt_path.write_text(sample_srt, encoding="utf-8")

        assert validate_srt_file(srt_path) is True
        assert validate_srt_file(srt_path, debug_mode=True) is True

    def test_empty_srt_file(self, temp_dir: Path):
        srt_path = temp_dir / "empty.srt"
        srt_path.write_text("", encoding="utf-8")

        assert validate_srt_file(srt_path) is False

    def test_nonexistent_srt_file(self, temp_dir: Path):
        assert validate_srt_file(temp_dir / "missing.srt") is False

    def test_inverted_timing(self, temp_dir: Path):
        srt_path = temp_dir / "inverted.srt"
        srt_path.write_text(
            "1\n00:00:05,000 --> 00:00:03,000\nBackwards\n", encoding="utf-8"
        )

        assert validate_srt_file(srt_path) is False
