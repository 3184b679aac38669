#!/usr/bin/env python3
"""
Duration-constrained scene splitting.

The downstream video model renders at most ``max_scene_duration_sec`` per
clip, so any scene whose narration span is longer is divided into bounded
sub-scenes. Boundaries prefer transcript segment ends, then the longest
pause between words, then the arithmetic point. The final part always ends
exactly where the original span ends, so no narration is ever dropped.
"""

import math
import re
import logging
from typing import List, Optional, Tuple

from .config_loader import AlignmentConfig
from .timing_models import NarrationTimestamps, ProductionScene

logger = logging.getLogger(__name__)

_SENTENCE_BOUNDARY = re.compile(r'(?<=[.!?])\s+')


def split_into_sentences(text: str) -> List[str]:
    """Split text after '.', '!' or '?' followed by whitespace."""
    if not text:
        return []
    return [s.strip() for s in _SENTENCE_BOUNDARY.split(text.strip()) if s.strip()]


def get_partial_narration_text(full_text: str, part_index: int, total_parts: int) -> str:
    """
    Approximate portion of a scene's narration for one split part.

    Sentences are distributed evenly when there are at least as many
    sentences as parts; otherwise words are. The result is not re-timed
    against the audio.
    """
    if total_parts <= 1:
        return full_text.strip()

    sentences = split_into_sentences(full_text)
    units = sentences if len(sentences) >= total_parts else full_text.split()

    start_idx = part_index * len(units) // total_parts
    end_idx = (part_index + 1) * len(units) // total_parts
    return " ".join(units[start_idx:end_idx])


def part_scene_number(scene_number: float, part_index: int) -> float:
    """Fractional identifier for a split part: 5, 5.1, 5.2, ..."""
    return round(scene_number + part_index * 0.1, 6)


def find_natural_split_point(
    current_start: float,
    end_sec: float,
    target_sec: float,
    timestamps: NarrationTimestamps,
    config: Optional[AlignmentConfig] = None
) -> float:
    """
    Pick a split point near ``target_sec`` for the part starting at ``current_start``.

    Candidates must leave the part within the duration limits and leave at
    least a minimum-length remainder before ``end_sec``.

    Args:
        current_start: Start of the part being cut
        end_sec: End of the span being split
        target_sec: Ideal boundary (current_start + ideal part duration)
        timestamps: Transcript used for segment boundaries and pauses
        config: Alignment configuration

    Returns:
        Boundary time in seconds; ``target_sec`` when nothing natural is near
    """
    config = config or AlignmentConfig()
    window_lo = current_start + config.min_scene_duration_sec
    window_hi = min(current_start + config.max_scene_duration_sec,
                    end_sec - config.min_scene_duration_sec)
    radius = config.split_search_radius_sec

    def in_window(point: float) -> bool:
        return window_lo <= point <= window_hi and abs(point - target_sec) <= radius

    # Sentence-level segment boundaries first
    segment_ends = [seg.end for seg in timestamps.segments if in_window(seg.end)]
    if segment_ends:
        point = min(segment_ends, key=lambda p: abs(p - target_sec))
        logger.debug(f"Split at segment boundary {point:.2f}s (target {target_sec:.2f}s)")
        return point

    # Then the longest pause between consecutive words
    best_gap = 0.0
    best_point = None
    words = timestamps.words
    for prev_word, word in zip(words, words[1:]):
        gap = word.start - prev_word.end
        if gap > config.min_pause_sec and gap > best_gap and in_window(prev_word.end):
            best_gap = gap
            best_point = prev_word.end

    if best_point is not None:
        logger.debug(f"Split at {best_gap:.2f}s pause {best_point:.2f}s (target {target_sec:.2f}s)")
        return best_point

    logger.debug(f"No natural boundary near {target_sec:.2f}s, splitting arithmetically")
    return target_sec


def compute_split_spans(
    start_sec: float,
    end_sec: float,
    timestamps: NarrationTimestamps,
    config: Optional[AlignmentConfig] = None
) -> List[Tuple[float, float]]:
    """
    Partition ``[start_sec, end_sec]`` into contiguous bounded spans.

    The first span starts at ``start_sec`` and the last ends exactly at
    ``end_sec``. Each span is at most the maximum duration and at least the
    minimum wherever the arithmetic allows.
    """
    config = config or AlignmentConfig()
    max_duration = config.max_scene_duration_sec
    min_duration = config.min_scene_duration_sec

    total_duration = end_sec - start_sec
    if total_duration <= max_duration:
        return [(start_sec, end_sec)]

    num_parts = math.ceil(total_duration / max_duration)
    ideal_duration = total_duration / num_parts

    spans = []
    current_start = start_sec

    for i in range(num_parts):
        remaining = end_sec - current_start

        if i == num_parts - 1 or remaining <= max_duration:
            if remaining > max_duration:
                # Oversized tail: split again, coverage holds transitively
                spans.extend(compute_split_spans(current_start, end_sec, timestamps, config))
            else:
                spans.append((current_start, end_sec))
            break

        target_end = current_start + ideal_duration

        if num_parts - i - 1 == 1 and end_sec - target_end > max_duration:
            # Keep the true last part from overflowing
            part_end = end_sec - max_duration
        else:
            part_end = find_natural_split_point(current_start, end_sec, target_end, timestamps, config)

        part_end = min(max(part_end, current_start + min_duration), current_start + max_duration)

        if end_sec - part_end < min_duration and remaining >= 2 * min_duration:
            part_end = end_sec - min_duration

        spans.append((current_start, part_end))
        current_start = part_end

    return spans


def split_long_scene(
    scene: ProductionScene,
    start_sec: float,
    end_sec: float,
    timestamps: NarrationTimestamps,
    config: Optional[AlignmentConfig] = None
) -> List[ProductionScene]:
    """
    Split a scene whose span exceeds the maximum clip duration.

    Args:
        scene: Scene being placed (not modified)
        start_sec: Start of the scene's narration span
        end_sec: End of the scene's narration span
        timestamps: Transcript used to find natural boundaries
        config: Alignment configuration

    Returns:
        Sub-scenes covering ``[start_sec, end_sec]`` exactly; a single scene
        with those bounds when no split is needed
    """
    config = config or AlignmentConfig()
    spans = compute_split_spans(start_sec, end_sec, timestamps, config)

    if len(spans) == 1:
        return [scene.with_timing(start_sec, end_sec)]

    logger.info(f"Splitting scene {scene.scene_number} ({end_sec - start_sec:.1f}s) "
                f"into {len(spans)} parts")

    parts = []
    for i, (part_start, part_end) in enumerate(spans):
        part_text = get_partial_narration_text(scene.narration_text, i, len(spans))
        parts.append(scene.with_timing(
            part_start,
            part_end,
            scene_number=part_scene_number(scene.scene_number, i),
            narration_text=part_text or scene.narration_text,
            transition_hint=scene.transition_hint if i == 0 else config.continuation_transition_hint,
        ))

    return parts
