"""
Tests for the scene-to-narration alignment engine.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config_loader import AlignmentConfig
from core.scene_alignment import (
    LOW_CONFIDENCE_WARNING,
    AlignmentOutcome,
    AlignmentStats,
    align_scenes_to_timestamps,
    assess_alignment_quality,
    estimate_sequential_timing,
    get_alignment_stats,
)
from core.timing_models import (
    AlignmentResult,
    NarrationTimestamps,
    ProductionScene,
    ProductionScript,
    TranscriptSegment,
    WordTimestamp,
)

WELCOME = "Welcome to our fun science show today friends."
VOLCANOES = "We are going to learn all about volcanoes."
QUIZ = "Quiz time! Can you guess what comes next?"


def make_transcript(sentences, total, slot=0.6, spoken=0.5):
    """One word every ``slot`` seconds, one segment per sentence."""
    words = []
    segments = []
    for sentence in sentences:
        segment_words = []
        for token in sentence.split():
            start = len(words) * slot
            word = WordTimestamp(word=token, start=start, end=start + spoken)
            words.append(word)
            segment_words.append(word)
        segments.append(TranscriptSegment(
            text=sentence,
            start=segment_words[0].start,
            end=segment_words[-1].end,
            words=segment_words,
        ))
    return NarrationTimestamps(words=words, segments=segments, total_duration_sec=total)


def make_script(*texts):
    return ProductionScript(scenes=[
        ProductionScene(scene_number=i + 1, narration_text=text)
        for i, text in enumerate(texts)
    ])


def result_bounds(outcome):
    return [(r.start_sec, r.end_sec) for r in outcome.alignment_results]


class TestEstimateSequentialTiming:
    """Test word-count fallback estimation."""

    def test_word_rate(self):
        scene = ProductionScene(scene_number=1, narration_text=" ".join(["word"] * 20))
        assert estimate_sequential_timing(scene, 4.0, 60.0) == (4.0, 12.0)

    def test_clamped_to_limits(self):
        short = ProductionScene(scene_number=1, narration_text="Hi")
        long = ProductionScene(scene_number=2, narration_text=" ".join(["word"] * 100))

        assert estimate_sequential_timing(short, 0.0, 60.0) == (0.0, 3.0)
        assert estimate_sequential_timing(long, 0.0, 60.0) == (0.0, 10.0)

    def test_capped_at_track_end(self):
        scene = ProductionScene(scene_number=1, narration_text=" ".join(["word"] * 20))
        assert estimate_sequential_timing(scene, 28.0, 30.0) == (28.0, 30.0)


class TestAlignScenesToTimestamps:
    """Test end-to-end alignment of scripts to transcripts."""

    def test_all_scenes_matched(self):
        timestamps = make_transcript([WELCOME, VOLCANOES, QUIZ], total=15.0)
        outcome = align_scenes_to_timestamps(make_script(WELCOME, VOLCANOES, QUIZ), timestamps)

        assert isinstance(outcome, AlignmentOutcome)
        assert [r.method for r in outcome.alignment_results] == ["fuzzy-match"] * 3
        assert [r.confidence for r in outcome.alignment_results] == [1.0, 1.0, 1.0]

        expected = [(0.0, 4.7), (4.7, 9.5), (9.5, 14.3)]
        for (start, end), (exp_start, exp_end) in zip(result_bounds(outcome), expected):
            assert start == pytest.approx(exp_start)
            assert end == pytest.approx(exp_end)

    def test_script_timings_match_results(self):
        timestamps = make_transcript([WELCOME, VOLCANOES, QUIZ], total=15.0)
        outcome = align_scenes_to_timestamps(make_script(WELCOME, VOLCANOES, QUIZ), timestamps)

        scenes = outcome.aligned_script.scenes
        assert [(s.start_sec, s.end_sec) for s in scenes] == result_bounds(outcome)
        assert [s.scene_number for s in scenes] == [r.scene_number for r in outcome.alignment_results]
        assert outcome.aligned_script.total_estimated_duration_sec == 15.0
        for prev, nxt in zip(scenes, scenes[1:]):
            assert nxt.start_sec == prev.end_sec

    def test_repeated_boilerplate_anchored_to_frontier(self):
        """A repeated line matches its later occurrence, not consumed audio."""
        quiz = "Quiz time! Can you guess the answer?"
        lava = "Volcanoes are mountains that can erupt with lava."
        timestamps = make_transcript([quiz, lava, quiz], total=14.0)

        outcome = align_scenes_to_timestamps(make_script(quiz, lava, quiz), timestamps)
        results = outcome.alignment_results

        assert [r.method for r in results] == ["fuzzy-match"] * 3
        assert results[2].start_sec == results[1].end_sec
        assert results[1].end_sec == pytest.approx(8.9)
        assert results[2].end_sec == pytest.approx(13.1)

    def test_unmatched_scene_is_estimated(self):
        timestamps = make_transcript([WELCOME], total=20.0)
        script = make_script(WELCOME, "Purple elephants dance quietly tonight.")

        outcome = align_scenes_to_timestamps(script, timestamps)
        estimated = outcome.alignment_results[1]

        assert estimated.method == "estimated"
        assert estimated.confidence == 0.0
        assert estimated.start_sec == pytest.approx(4.7)
        assert estimated.end_sec == pytest.approx(7.7)

    def test_weak_match_is_sequential(self):
        """A match below the trusted threshold is recorded as sequential."""
        config = AlignmentConfig(trusted_match_confidence=0.9)
        timestamps = make_transcript([WELCOME], total=20.0)
        script = make_script("Welcome to our fun science show tomorrow pals.")

        outcome = align_scenes_to_timestamps(script, timestamps, config)
        result = outcome.alignment_results[0]

        assert result.method == "sequential"
        assert result.confidence == 0.0
        assert (result.start_sec, result.end_sec) == (0.0, pytest.approx(3.2))

    def test_long_scene_is_split(self):
        first = "Lava comes out of the volcano and flows down slowly."
        second = "The hot rock cools and becomes brand new land again."
        timestamps = make_transcript([first, second], total=12.0)
        script = make_script(f"{first} {second}")

        outcome = align_scenes_to_timestamps(script, timestamps)
        results = outcome.alignment_results
        scenes = outcome.aligned_script.scenes

        assert len(results) == 2
        assert [r.scene_number for r in results] == [1, 1.1]
        assert all(r.method == "split" and r.was_split for r in results)
        assert all(r.original_scene_number == 1 for r in results)
        assert [r.part_index for r in results] == [0, 1]
        assert all(r.confidence == pytest.approx(0.9) for r in results)

        assert results[0].start_sec == 0.0
        assert results[0].end_sec == pytest.approx(5.9)
        assert results[1].end_sec == pytest.approx(11.9)
        assert [s.narration_text for s in scenes] == [first, second]
        assert scenes[1].transition_hint == "same-framing"

    def test_no_scene_exceeds_max(self):
        sentences = [
            "Lava comes out of the volcano and flows down slowly.",
            "The hot rock cools and becomes brand new land again.",
            "Scientists study volcanoes to keep people safe every day.",
            "Some volcanoes sleep for many years before they wake up.",
        ]
        timestamps = make_transcript(sentences, total=24.0)
        outcome = align_scenes_to_timestamps(make_script(" ".join(sentences)), timestamps)

        for result in outcome.alignment_results:
            assert 3.0 <= result.duration <= 10.0 + 1e-9
        assert outcome.alignment_results[0].start_sec == 0.0
        assert outcome.alignment_results[-1].end_sec == pytest.approx(23.3)

    def test_empty_transcript_degrades_to_estimates(self):
        timestamps = NarrationTimestamps(words=[], segments=[], total_duration_sec=30.0)
        script = make_script(" ".join(["word"] * 10), "Five words in this scene.")

        outcome = align_scenes_to_timestamps(script, timestamps)

        assert [r.method for r in outcome.alignment_results] == ["estimated", "estimated"]
        assert result_bounds(outcome) == [(0.0, 4.0), (4.0, 7.0)]

    def test_scenes_past_track_end_collapse_to_zero_length(self):
        """Narration shorter than the script leaves trailing scenes pinned at the track end."""
        timestamps = NarrationTimestamps(words=[], segments=[], total_duration_sec=8.0)
        ten_words = " ".join(["word"] * 10)
        script = make_script(ten_words, ten_words, ten_words)

        outcome = align_scenes_to_timestamps(script, timestamps)

        assert result_bounds(outcome) == [(0.0, 4.0), (4.0, 8.0), (8.0, 8.0)]
        trailing = outcome.alignment_results[-1]
        assert trailing.method == "estimated"
        assert trailing.duration == 0.0
        assert outcome.aligned_script.scenes[-1].start_sec == outcome.aligned_script.scenes[-1].end_sec

    def test_passthrough_fields_and_input_untouched(self):
        timestamps = make_transcript([WELCOME], total=6.0)
        script = ProductionScript(
            scenes=[ProductionScene(
                scene_number=1,
                narration_text=WELCOME,
                transition_hint="fade",
                extra={"visualDescription": "Kids in a lab"},
            )],
            extra={"title": "Science Fun"},
        )

        outcome = align_scenes_to_timestamps(script, timestamps)
        aligned = outcome.aligned_script

        assert aligned.extra == {"title": "Science Fun"}
        assert aligned.scenes[0].extra == {"visualDescription": "Kids in a lab"}
        assert aligned.scenes[0].transition_hint == "fade"
        assert script.scenes[0].start_sec is None
        assert script.total_estimated_duration_sec is None

    def test_outcome_serialization(self):
        timestamps = make_transcript([WELCOME], total=6.0)
        outcome = align_scenes_to_timestamps(make_script(WELCOME), timestamps)

        data = outcome.to_dict()

        assert data["alignedScript"]["scenes"][0]["sceneNumber"] == 1
        assert data["alignmentResults"][0]["method"] == "fuzzy-match"
        assert "wasSplit" not in data["alignmentResults"][0]


class TestAlignmentStats:
    """Test alignment diagnostics and quality reporting."""

    @pytest.fixture
    def results(self):
        return [
            AlignmentResult(1, 0.0, 5.0, 1.0, "fuzzy-match"),
            AlignmentResult(2, 5.0, 9.0, 0.0, "sequential"),
            AlignmentResult(3, 9.0, 13.0, 0.0, "estimated"),
            AlignmentResult(4, 13.0, 20.0, 0.9, "split", True, 4, 0),
            AlignmentResult(4.1, 20.0, 31.0, 0.9, "split", True, 4, 1),
        ]

    def test_counts(self, results):
        stats = get_alignment_stats(results)

        assert isinstance(stats, AlignmentStats)
        assert stats.total_scenes == 5
        assert stats.fuzzy_matched == 1
        assert stats.sequential == 1
        assert stats.estimated == 1
        assert stats.split == 2
        assert stats.scenes_exceeding_max == 1

    def test_averages(self, results):
        stats = get_alignment_stats(results)

        assert stats.average_confidence == pytest.approx(0.56)
        assert stats.average_duration == pytest.approx(6.2)
        assert stats.max_duration == pytest.approx(11.0)

    def test_empty_results(self):
        stats = get_alignment_stats([])
        assert stats.total_scenes == 0
        assert stats.average_confidence == 0.0
        assert assess_alignment_quality(stats) is None

    def test_quality_acceptable(self, results):
        assert assess_alignment_quality(get_alignment_stats(results)) is None

    def test_quality_warning(self, caplog):
        results = [
            AlignmentResult(1, 0.0, 4.0, 0.0, "estimated"),
            AlignmentResult(2, 4.0, 8.0, 0.6, "fuzzy-match"),
        ]
        warning = assess_alignment_quality(get_alignment_stats(results))

        assert warning == LOW_CONFIDENCE_WARNING
        assert "Scene timing may be approximate" in caplog.text
