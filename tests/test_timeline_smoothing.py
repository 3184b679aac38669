"""
Tests for timeline smoothing.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config_loader import AlignmentConfig
from core.timeline_smoothing import smooth_scene_timings
from core.timing_models import ProductionScene


def make_scenes(*spans):
    return [
        ProductionScene(scene_number=i + 1, narration_text=f"Scene {i + 1}.",
                        start_sec=start, end_sec=end)
        for i, (start, end) in enumerate(spans)
    ]


def bounds(scenes):
    return [(s.start_sec, s.end_sec) for s in scenes]


class TestSmoothSceneTimings:
    """Test gap and overlap removal with duration limits."""

    def test_empty(self):
        assert smooth_scene_timings([], 30.0) == []

    def test_gap_closed_by_shifting(self):
        """A gap is closed by moving the later scene, keeping its duration."""
        result = smooth_scene_timings(make_scenes((0.0, 5.0), (6.0, 10.0)), 20.0)
        assert bounds(result) == [(0.0, 5.0), (5.0, 9.0)]

    def test_overlap_resolved_by_shifting(self):
        result = smooth_scene_timings(make_scenes((0.0, 6.0), (5.0, 9.0)), 30.0)
        assert bounds(result) == [(0.0, 6.0), (6.0, 10.0)]

    def test_gap_within_tolerance_kept(self):
        result = smooth_scene_timings(make_scenes((0.0, 5.0), (5.05, 9.0)), 30.0)
        assert result[1].start_sec == 5.05

    def test_last_scene_extended_to_track_end(self):
        result = smooth_scene_timings(make_scenes((0.0, 5.0), (5.0, 9.0)), 12.0)
        assert bounds(result) == [(0.0, 5.0), (5.0, 12.0)]

    def test_last_scene_not_stretched_past_max(self):
        """The trailing gap stays when extending would exceed the clip limit."""
        result = smooth_scene_timings(make_scenes((0.0, 5.0), (5.0, 9.0)), 20.0)
        assert result[-1].end_sec == 9.0

    def test_short_trailing_gap_left_alone(self):
        result = smooth_scene_timings(make_scenes((0.0, 5.0), (5.0, 9.5)), 10.0)
        assert result[-1].end_sec == 9.5

    def test_minimum_duration_enforced(self):
        result = smooth_scene_timings(make_scenes((0.0, 5.0), (5.0, 6.5), (6.5, 12.0)), 30.0)
        assert bounds(result)[1] == (5.0, 8.0)
        assert result[2].start_sec == 8.0

    def test_minimum_capped_at_track_end(self):
        result = smooth_scene_timings(make_scenes((0.0, 5.0), (5.0, 6.0)), 6.5)
        assert bounds(result) == [(0.0, 5.0), (5.0, 6.5)]

    def test_maximum_duration_enforced(self):
        result = smooth_scene_timings(make_scenes((0.0, 12.0)), 30.0)
        assert bounds(result) == [(0.0, 10.0)]

    def test_clamped_to_track_end(self):
        result = smooth_scene_timings(make_scenes((0.0, 5.0), (5.0, 9.0)), 8.0)
        assert result[-1].end_sec == 8.0

    def test_contiguous_after_messy_input(self):
        scenes = make_scenes((0.0, 4.0), (3.0, 8.0), (9.5, 13.0), (12.0, 17.5), (20.0, 24.0))
        result = smooth_scene_timings(scenes, 40.0)

        for prev, nxt in zip(result, result[1:]):
            assert nxt.start_sec == prev.end_sec
        for scene in result:
            assert 3.0 <= scene.end_sec - scene.start_sec <= 10.0

    def test_unplaced_scene_uses_estimate(self):
        scenes = [
            ProductionScene(scene_number=1, narration_text="a", start_sec=0.0, end_sec=5.0),
            ProductionScene(scene_number=2, narration_text="b", estimated_duration_sec=4.0),
        ]
        result = smooth_scene_timings(scenes, 30.0)
        assert bounds(result)[1] == (5.0, 9.0)

    def test_custom_limits(self):
        config = AlignmentConfig(max_scene_duration_sec=8.0, min_scene_duration_sec=2.0)
        result = smooth_scene_timings(make_scenes((0.0, 9.0), (9.0, 10.0)), 30.0, config)
        assert bounds(result) == [(0.0, 8.0), (8.0, 10.0)]

    def test_inputs_not_modified(self):
        scenes = make_scenes((0.0, 5.0), (6.0, 10.0))
        scenes[0].extra["visualDescription"] = "Sunrise"

        result = smooth_scene_timings(scenes, 20.0)

        assert bounds(scenes) == [(0.0, 5.0), (6.0, 10.0)]
        assert result[0].extra == {"visualDescription": "Sunrise"}
        assert result[1].estimated_duration_sec == pytest.approx(4.0)
