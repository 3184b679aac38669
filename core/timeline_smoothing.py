#!/usr/bin/env python3
"""
Timeline smoothing for aligned scenes.

Closes gaps and overlaps between consecutive scenes by repositioning them,
never by stretching: each scene keeps its own duration and only its
placement moves. Duration bounds are re-asserted after the shift.
"""

import logging
from typing import List, Optional

from .config_loader import AlignmentConfig
from .timing_models import ProductionScene

logger = logging.getLogger(__name__)


def smooth_scene_timings(
    scenes: List[ProductionScene],
    total_duration_sec: float,
    config: Optional[AlignmentConfig] = None
) -> List[ProductionScene]:
    """
    Make scenes contiguous and keep them inside the duration limits.

    Args:
        scenes: Scenes in timeline order
        total_duration_sec: Length of the narration track
        config: Alignment configuration

    Returns:
        New list of scenes where each start equals the previous end
    """
    config = config or AlignmentConfig()
    if not scenes:
        return []

    max_duration = config.max_scene_duration_sec
    min_duration = config.min_scene_duration_sec

    smoothed = []
    shifted = 0

    for i, scene in enumerate(scenes):
        is_last = i == len(scenes) - 1
        start_sec = scene.start_sec or 0.0
        end_sec = scene.end_sec
        if end_sec is None:
            end_sec = start_sec + (scene.estimated_duration_sec or config.target_scene_duration_sec)
        original_duration = end_sec - start_sec

        if smoothed:
            previous_end = smoothed[-1].end_sec
            if start_sec > previous_end + config.gap_tolerance_sec or start_sec < previous_end:
                start_sec = previous_end
                shifted += 1

        if original_duration > 0:
            end_sec = start_sec + original_duration

        if end_sec - start_sec > max_duration:
            end_sec = start_sec + max_duration

        # Close the tail of the track when the last scene can absorb it
        if is_last and end_sec < total_duration_sec - config.tail_extension_threshold_sec:
            if total_duration_sec - start_sec <= max_duration:
                end_sec = total_duration_sec
            else:
                logger.debug(f"Leaving {total_duration_sec - end_sec:.2f}s trailing gap "
                             f"after scene {scene.scene_number}")

        if end_sec - start_sec < min_duration:
            end_sec = min(start_sec + min_duration, total_duration_sec)

        if end_sec > total_duration_sec:
            end_sec = total_duration_sec

        smoothed.append(scene.with_timing(start_sec, end_sec))

    if shifted:
        logger.debug(f"Repositioned {shifted} of {len(scenes)} scenes to close gaps/overlaps")

    return smoothed
