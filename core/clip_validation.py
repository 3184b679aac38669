#!/usr/bin/env python3
"""
Clip timing validation before final video assembly.

Rendered clips are trimmed and concatenated against the narration track
using their audio ranges. This pass orders the ranges and repairs overlaps
and degenerate durations, reporting each repair as a warning rather than
failing the assembly.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from .config_loader import AlignmentConfig
from .timing_models import ClipTimeRange

logger = logging.getLogger(__name__)


@dataclass
class ClipValidationResult:
    """Repaired clip ranges in playback order plus repair warnings."""
    fixed_clips: List[ClipTimeRange]
    warnings: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fixedClips": [c.to_dict() for c in self.fixed_clips],
            "warnings": list(self.warnings),
        }


def validate_and_fix_clips(
    clips: List[ClipTimeRange],
    config: Optional[AlignmentConfig] = None
) -> ClipValidationResult:
    """
    Sort clip ranges and repair overlaps and invalid durations.

    Args:
        clips: Clip ranges in any order (not modified)
        config: Alignment configuration (overlap tolerance, minimum clip length)

    Returns:
        ClipValidationResult with ascending, non-overlapping clips
    """
    config = config or AlignmentConfig()
    ordered = sorted(clips, key=lambda c: (c.audio_start_sec, c.clip_number))

    fixed_clips = []
    warnings = []
    previous_end = 0.0

    for clip in ordered:
        start_sec = clip.audio_start_sec
        end_sec = clip.audio_end_sec

        if start_sec < previous_end - config.overlap_tolerance_sec:
            duration = end_sec - start_sec
            warnings.append(
                f"Clip {clip.clip_number} overlaps with previous clip "
                f"(starts {start_sec:.2f}s, previous ends {previous_end:.2f}s); "
                f"shifted to {previous_end:.2f}s"
            )
            start_sec = previous_end
            end_sec = previous_end + duration

        if end_sec <= start_sec:
            warnings.append(
                f"Clip {clip.clip_number} has invalid duration "
                f"({start_sec:.2f}s-{end_sec:.2f}s); "
                f"using {config.min_clip_duration_sec:.1f}s minimum"
            )
            end_sec = start_sec + config.min_clip_duration_sec

        fixed_clips.append(ClipTimeRange(
            clip_number=clip.clip_number,
            audio_start_sec=start_sec,
            audio_end_sec=end_sec,
        ))
        previous_end = end_sec

    for warning in warnings:
        logger.warning(warning)
    logger.info(f"Validated {len(fixed_clips)} clips with {len(warnings)} repairs")

    return ClipValidationResult(fixed_clips=fixed_clips, warnings=warnings)
