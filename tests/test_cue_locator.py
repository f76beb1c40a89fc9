"""Tests for the active cue lookup."""

import pytest

from src.subtitles.cue_locator import locate_active_cue
from src.subtitles.srt_codec import Cue


class TestLocateActiveCue:
    """Test binary search over cue intervals."""

    @pytest.mark.parametrize(
        ("time_sec", "expected"),
        [
            (1.0, 0),
            (2.0, 0),
            (3.5, 0),
            (4.0, 1),
            (5.999, 1),
            (8.0, 2),
            (9.0, 2),
        ],
    )
    def test_time_inside_a_cue(self, sample_cues: list[Cue], time_sec, expected):
        assert locate_active_cue(sample_cues, time_sec) == expected

    @pytest.mark.parametrize("time_sec", [0.0, 0.999, 3.6, 6.5, 7.0, 9.001, 100.0])
    def test_gaps_and_outside_range(self, sample_cues: list[Cue], time_sec):
        assert locate_active_cue(sample_cues, time_sec) is None

    def test_empty_list(self):
        assert locate_active_cue([], 1.0) is None

    def test_single_cue(self):
        cues = [Cue(1, "00:00:02,000", "00:00:04,000", "only")]

        assert locate_active_cue(cues, 3.0) == 0
        assert locate_active_cue(cues, 1.0) is None

    def test_touching_cues_prefer_a_containing_cue(self):
        cues = [
            Cue(1, "00:00:01,000", "00:00:02,000", "a"),
            Cue(2, "00:00:02,000", "00:00:03,000", "b"),
        ]

        assert locate_active_cue(cues, 2.0) in (0, 1)
        assert locate_active_cue(cues, 2.5) == 1

    def test_many_cues(self):
        cues = []
        for i in range(0, 3000, 2):
            stamp = f"00:{i // 60:02d}:{i % 60:02d}"
            cues.append(Cue(i + 1, f"{stamp},000", f"{stamp},500", str(i)))

        assert locate_active_cue(cues, 1000.25) == 500
        assert locate_active_cue(cues, 1000.75) is None

    def test_shared_boundary_resolves_to_later_cue(self):
        cues = [
            Cue(1, "00:00:00,000", "00:00:02,000", "a"),
            Cue(2, "00:00:02,000", "00:00:05,000", "b"),
            Cue(3, "00:00:06,000", "00:00:09,000", "c"),
        ]

        assert locate_active_cue(cues, 2.0) == 1
        assert locate_active_cue(cues, 5.5) is None
