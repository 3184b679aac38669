#!/usr/bin/env python3
"""
Timing data model for narration-to-scene alignment.

This module defines the transcript, script, alignment and clip structures
shared by the alignment engine, the clip validator and the CLI. Every type
round-trips through the camelCase JSON used by the scripting, transcription
and assembly collaborators.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Any

logger = logging.getLogger(__name__)

ALIGNMENT_METHODS = ("fuzzy-match", "sequential", "estimated", "split")

_SCENE_KEYS = (
    "sceneNumber",
    "narrationText",
    "startSec",
    "endSec",
    "estimatedDurationSec",
    "transitionHint",
)


@dataclass(frozen=True)
class WordTimestamp:
    """A single transcribed word with its timing in seconds."""
    word: str
    start: float
    end: float

    def to_dict(self) -> Dict[str, Any]:
        return {"word": self.word, "start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WordTimestamp':
        return cls(word=data["word"], start=float(data["start"]), end=float(data["end"]))


@dataclass
class TranscriptSegment:
    """A transcript-provided grouping of words, typically a sentence."""
    text: str
    start: float
    end: float
    words: List[WordTimestamp] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "words": [w.to_dict() for w in self.words],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TranscriptSegment':
        return cls(
            text=data.get("text", ""),
            start=float(data["start"]),
            end=float(data["end"]),
            words=[WordTimestamp.from_dict(w) for w in data.get("words", [])],
        )


@dataclass
class NarrationTimestamps:
    """Word and segment timing for one narration track."""
    words: List[WordTimestamp]
    segments: List[TranscriptSegment]
    total_duration_sec: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "words": [w.to_dict() for w in self.words],
            "segments": [s.to_dict() for s in self.segments],
            "totalDurationSec": self.total_duration_sec,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NarrationTimestamps':
        return cls(
            words=[WordTimestamp.from_dict(w) for w in data.get("words", [])],
            segments=[TranscriptSegment.from_dict(s) for s in data.get("segments", [])],
            total_duration_sec=float(data["totalDurationSec"]),
        )


@dataclass
class ProductionScene:
    """
    One beat of the production script.

    Only the timing, numbering, narration and transition fields are read or
    written by the alignment engine. Every other key of the incoming JSON
    object is kept in ``extra`` and written back untouched.
    """
    scene_number: float
    narration_text: str
    start_sec: Optional[float] = None
    end_sec: Optional[float] = None
    estimated_duration_sec: Optional[float] = None
    transition_hint: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        if self.start_sec is None or self.end_sec is None:
            return 0.0
        return self.end_sec - self.start_sec

    def with_timing(self, start_sec: float, end_sec: float, **changes) -> 'ProductionScene':
        """Return a copy placed at ``[start_sec, end_sec]``."""
        return replace(
            self,
            start_sec=start_sec,
            end_sec=end_sec,
            estimated_duration_sec=end_sec - start_sec,
            **changes
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data["sceneNumber"] = self.scene_number
        data["narrationText"] = self.narration_text
        if self.start_sec is not None:
            data["startSec"] = self.start_sec
        if self.end_sec is not None:
            data["endSec"] = self.end_sec
        if self.estimated_duration_sec is not None:
            data["estimatedDurationSec"] = self.estimated_duration_sec
        if self.transition_hint is not None:
            data["transitionHint"] = self.transition_hint
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductionScene':
        def _optional_float(key):
            value = data.get(key)
            return float(value) if value is not None else None

        return cls(
            scene_number=data["sceneNumber"],
            narration_text=data.get("narrationText") or "",
            start_sec=_optional_float("startSec"),
            end_sec=_optional_float("endSec"),
            estimated_duration_sec=_optional_float("estimatedDurationSec"),
            transition_hint=data.get("transitionHint"),
            extra={k: v for k, v in data.items() if k not in _SCENE_KEYS},
        )


@dataclass
class ProductionScript:
    """Ordered scenes plus the script-level duration estimate."""
    scenes: List[ProductionScene]
    total_estimated_duration_sec: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data["scenes"] = [s.to_dict() for s in self.scenes]
        if self.total_estimated_duration_sec is not None:
            data["totalEstimatedDurationSec"] = self.total_estimated_duration_sec
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductionScript':
        total = data.get("totalEstimatedDurationSec")
        return cls(
            scenes=[ProductionScene.from_dict(s) for s in data.get("scenes", [])],
            total_estimated_duration_sec=float(total) if total is not None else None,
            extra={k: v for k, v in data.items() if k not in ("scenes", "totalEstimatedDurationSec")},
        )


@dataclass
class AlignmentResult:
    """Diagnostics for one output scene of an alignment run."""
    scene_number: float
    start_sec: float
    end_sec: float
    confidence: float
    method: str
    was_split: bool = False
    original_scene_number: Optional[float] = None
    part_index: Optional[int] = None

    def __post_init__(self):
        if self.method not in ALIGNMENT_METHODS:
            raise ValueError(f"Unknown alignment method: {self.method}")
        self.confidence = max(0.0, min(1.0, self.confidence))

    @property
    def duration(self) -> float:
        return self.end_sec - self.start_sec

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "sceneNumber": self.scene_number,
            "startSec": self.start_sec,
            "endSec": self.end_sec,
            "confidence": self.confidence,
            "method": self.method,
        }
        if self.was_split:
            data["wasSplit"] = True
            data["originalSceneNumber"] = self.original_scene_number
            data["partIndex"] = self.part_index
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AlignmentResult':
        return cls(
            scene_number=data["sceneNumber"],
            start_sec=float(data["startSec"]),
            end_sec=float(data["endSec"]),
            confidence=float(data.get("confidence", 0.0)),
            method=data["method"],
            was_split=bool(data.get("wasSplit", False)),
            original_scene_number=data.get("originalSceneNumber"),
            part_index=data.get("partIndex"),
        )


@dataclass
class ClipTimeRange:
    """Audio range a rendered clip covers in the final narration track."""
    clip_number: int
    audio_start_sec: float
    audio_end_sec: float

    @property
    def duration(self) -> float:
        return self.audio_end_sec - self.audio_start_sec

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clipNumber": self.clip_number,
            "audioStartSec": self.audio_start_sec,
            "audioEndSec": self.audio_end_sec,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClipTimeRange':
        return cls(
            clip_number=data["clipNumber"],
            audio_start_sec=float(data["audioStartSec"]),
            audio_end_sec=float(data["audioEndSec"]),
        )


def renumber_scenes(script: ProductionScript) -> ProductionScript:
    """
    Assign dense integer scene numbers (1..N) in timeline order.

    Split parts carry fractional numbers (5, 5.1, 5.2) while alignment runs;
    this gives serializers a clean sequence without touching the timings.
    """
    scenes = [replace(scene, scene_number=i + 1) for i, scene in enumerate(script.scenes)]
    logger.debug(f"Renumbered {len(scenes)} scenes")
    return replace(script, scenes=scenes)
