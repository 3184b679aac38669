#!/usr/bin/env python3
"""
Scene-to-narration alignment engine.

This module places every scene of a production script onto the narration
track: fuzzy-match the scene's narration text against the word-level
transcript, fall back to a word-count estimate when no match is trusted,
split spans that exceed the video model's clip limit, and finally smooth the
whole timeline so consecutive scenes meet exactly.

Each scene is searched for starting at the end of the previous one. Scripts
repeat boilerplate lines (quiz transitions, recurring templates), and an
unanchored search would happily match those to audio that was already
consumed.
"""

import logging
import statistics
from dataclasses import dataclass, asdict, replace
from typing import Dict, List, Optional, Tuple, Any

from .config_loader import AlignmentConfig
from .scene_splitting import split_long_scene
from .text_matching import find_timestamp_range_for_text
from .timeline_smoothing import smooth_scene_timings
from .timing_models import (
    AlignmentResult,
    NarrationTimestamps,
    ProductionScene,
    ProductionScript,
)

logger = logging.getLogger(__name__)

LOW_CONFIDENCE_WARNING = "Scene timing may be approximate"


@dataclass
class AlignmentOutcome:
    """Aligned script plus one diagnostic result per output scene."""
    aligned_script: ProductionScript
    alignment_results: List[AlignmentResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alignedScript": self.aligned_script.to_dict(),
            "alignmentResults": [r.to_dict() for r in self.alignment_results],
        }


@dataclass
class AlignmentStats:
    """Summary of an alignment run for logging and quality reporting."""
    total_scenes: int
    fuzzy_matched: int
    sequential: int
    estimated: int
    split: int
    scenes_exceeding_max: int
    average_confidence: float
    average_duration: float
    max_duration: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def count_words(text: str) -> int:
    return len(text.split())


def estimate_sequential_timing(
    scene: ProductionScene,
    last_end_sec: float,
    total_duration_sec: float,
    config: Optional[AlignmentConfig] = None
) -> Tuple[float, float]:
    """
    Estimate a scene's span from its word count.

    The scene starts where the previous one ended and lasts
    ``words / words_per_second`` seconds, clamped to the clip limits and
    capped at the end of the track.
    """
    config = config or AlignmentConfig()
    estimated_duration = count_words(scene.narration_text) / config.words_per_second
    estimated_duration = max(config.min_scene_duration_sec,
                             min(config.max_scene_duration_sec, estimated_duration))

    start_sec = last_end_sec
    end_sec = min(start_sec + estimated_duration, total_duration_sec)
    return start_sec, end_sec


def align_scenes_to_timestamps(
    production_script: ProductionScript,
    timestamps: NarrationTimestamps,
    config: Optional[AlignmentConfig] = None
) -> AlignmentOutcome:
    """
    Align all scenes of a production script to the narration audio.

    Args:
        production_script: Script whose scenes carry narration text (not modified)
        timestamps: Word-level transcript of the finished narration track
        config: Alignment configuration

    Returns:
        AlignmentOutcome with the aligned script (possibly more scenes than
        the input because of splitting) and per-scene diagnostics
    """
    config = config or AlignmentConfig()
    total_duration = timestamps.total_duration_sec

    aligned_scenes = []
    pending_results = []
    last_end_sec = 0.0

    logger.info(f"Aligning {len(production_script.scenes)} scenes to "
                f"{len(timestamps.words)} transcript words ({total_duration:.1f}s)")

    for scene in production_script.scenes:
        match = find_timestamp_range_for_text(scene.narration_text, timestamps, last_end_sec, config)

        if match and match.confidence >= config.trusted_match_confidence:
            start_sec = max(match.start, last_end_sec)
            end_sec = match.end
            if end_sec <= start_sec:
                end_sec = start_sec + config.min_scene_duration_sec
            confidence = match.confidence
            method = "fuzzy-match"
        else:
            start_sec, end_sec = estimate_sequential_timing(scene, last_end_sec, total_duration, config)
            confidence = 0.0
            method = "sequential" if match else "estimated"

        logger.debug(f"Scene {scene.scene_number}: {method} "
                     f"{start_sec:.2f}s-{end_sec:.2f}s (confidence {confidence:.2f})")
        last_end_sec = end_sec

        if end_sec - start_sec > config.max_scene_duration_sec:
            parts = split_long_scene(scene, start_sec, end_sec, timestamps, config)
            for part_index, part in enumerate(parts):
                aligned_scenes.append(part)
                pending_results.append(dict(
                    scene_number=part.scene_number,
                    confidence=confidence * config.split_confidence_factor,
                    method="split",
                    was_split=True,
                    original_scene_number=scene.scene_number,
                    part_index=part_index,
                ))
        else:
            aligned_scenes.append(scene.with_timing(start_sec, end_sec))
            pending_results.append(dict(
                scene_number=scene.scene_number,
                confidence=confidence,
                method=method,
            ))

    smoothed_scenes = smooth_scene_timings(aligned_scenes, total_duration, config)

    alignment_results = [
        AlignmentResult(start_sec=smoothed.start_sec, end_sec=smoothed.end_sec, **pending)
        for smoothed, pending in zip(smoothed_scenes, pending_results)
    ]

    aligned_script = replace(
        production_script,
        scenes=smoothed_scenes,
        total_estimated_duration_sec=total_duration,
    )

    stats = get_alignment_stats(alignment_results, config)
    logger.info(f"Alignment complete: {stats.total_scenes} scenes "
                f"({stats.fuzzy_matched} matched, {stats.sequential} sequential, "
                f"{stats.estimated} estimated, {stats.split} split), "
                f"average confidence {stats.average_confidence:.2f}")

    return AlignmentOutcome(aligned_script=aligned_script, alignment_results=alignment_results)


def get_alignment_stats(results: List[AlignmentResult],
                        config: Optional[AlignmentConfig] = None) -> AlignmentStats:
    """Count methods and summarize confidence and duration across results."""
    config = config or AlignmentConfig()
    durations = [r.duration for r in results]

    def count(method):
        return sum(1 for r in results if r.method == method)

    return AlignmentStats(
        total_scenes=len(results),
        fuzzy_matched=count("fuzzy-match"),
        sequential=count("sequential"),
        estimated=count("estimated"),
        split=count("split"),
        scenes_exceeding_max=sum(1 for d in durations if d > config.max_scene_duration_sec),
        average_confidence=statistics.mean(r.confidence for r in results) if results else 0.0,
        average_duration=statistics.mean(durations) if durations else 0.0,
        max_duration=max(durations) if durations else 0.0,
    )


def assess_alignment_quality(stats: AlignmentStats,
                             config: Optional[AlignmentConfig] = None) -> Optional[str]:
    """
    Soft quality warning for the user, or None when timing looks trustworthy.

    Low confidence never blocks the pipeline: the aligned timing is always
    schedulable, it just may not line up exactly with the voice-over.
    """
    config = config or AlignmentConfig()
    if stats.total_scenes == 0:
        return None
    if stats.average_confidence < config.low_confidence_threshold:
        logger.warning(f"{LOW_CONFIDENCE_WARNING}: average confidence "
                       f"{stats.average_confidence:.2f} below {config.low_confidence_threshold:.2f}")
        return LOW_CONFIDENCE_WARNING
    return None
