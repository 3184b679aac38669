#!/usr/bin/env python3
"""
Transcript response parsing for narration alignment.

Whisper-style transcription services return word timing in several
incompatible shapes. Each shape has its own parser here, and all of them
produce the single NarrationTimestamps structure the alignment engine
consumes:

- chunks:   [{"text": ..., "timestamp": [start, end]}, ...]
- segments: [{"text": ..., "start": ..., "end": ..., "words": [...]}, ...]
- words:    top-level [{"word": ..., "start": ..., "end": ...}, ...]
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Any

from .timing_models import NarrationTimestamps, TranscriptSegment, WordTimestamp

logger = logging.getLogger(__name__)


class TranscriptParseError(Exception):
    """Custom exception for transcript parsing errors."""
    pass


def _word_bounds(word: Dict[str, Any]) -> Tuple[float, float]:
    """Word timing from explicit start/end or a [start, end] tuple."""
    timestamp = word.get("timestamp") or [0.0, 0.0]
    start = word.get("start")
    end = word.get("end")
    start = float(start if start is not None else (timestamp[0] or 0.0))
    end = float(end if end is not None else (timestamp[1] or 0.0))
    return start, end


def _parse_word(word: Dict[str, Any]) -> WordTimestamp:
    start, end = _word_bounds(word)
    return WordTimestamp(word=str(word.get("word", "")).strip(), start=start, end=end)


def parse_chunks(chunks: List[Dict[str, Any]]) -> Tuple[List[TranscriptSegment], List[WordTimestamp]]:
    """
    Parse chunk-level output; word timing is spread evenly across each chunk.
    """
    segments = []
    all_words = []

    for chunk in chunks:
        start, end = (chunk.get("timestamp") or [0.0, 0.0])[:2]
        start = float(start or 0.0)
        end = float(end if end is not None else start)

        chunk_text = str(chunk.get("text", "")).strip()
        tokens = chunk_text.split()
        word_duration = (end - start) / len(tokens) if tokens else 0.0

        segment_words = [
            WordTimestamp(
                word=token,
                start=start + i * word_duration,
                end=start + (i + 1) * word_duration,
            )
            for i, token in enumerate(tokens)
        ]
        all_words.extend(segment_words)
        segments.append(TranscriptSegment(text=chunk_text, start=start, end=end, words=segment_words))

    return segments, all_words


def parse_segments(raw_segments: List[Dict[str, Any]]) -> Tuple[List[TranscriptSegment], List[WordTimestamp]]:
    """Parse segment-level output with optional nested words."""
    segments = []
    all_words = []

    for segment in raw_segments:
        segment_words = [_parse_word(w) for w in segment.get("words") or []]
        all_words.extend(segment_words)
        segments.append(TranscriptSegment(
            text=str(segment.get("text", "")).strip(),
            start=float(segment.get("start", 0.0)),
            end=float(segment.get("end", 0.0)),
            words=segment_words,
        ))

    return segments, all_words


def parse_words(raw_words: List[Dict[str, Any]]) -> List[WordTimestamp]:
    """Parse a flat top-level word list."""
    return [_parse_word(w) for w in raw_words]


def parse_whisper_response(data: Dict[str, Any]) -> NarrationTimestamps:
    """
    Normalize a raw transcription response into NarrationTimestamps.

    Args:
        data: Raw response in chunk, segment or flat word shape

    Returns:
        NarrationTimestamps with total duration set to the latest end seen

    Raises:
        TranscriptParseError: If the response holds no segments or words
    """
    if not isinstance(data, dict):
        raise TranscriptParseError(f"Transcript response must be an object, got {type(data).__name__}")

    segments: List[TranscriptSegment] = []
    words: List[WordTimestamp] = []

    try:
        if data.get("chunks"):
            logger.debug(f"Parsing {len(data['chunks'])} chunks")
            segments, words = parse_chunks(data["chunks"])
        elif data.get("segments"):
            logger.debug(f"Parsing {len(data['segments'])} segments")
            segments, words = parse_segments(data["segments"])

        if data.get("words") and not words:
            logger.debug(f"Parsing {len(data['words'])} top-level words")
            words = parse_words(data["words"])
    except (TypeError, ValueError, AttributeError, IndexError) as e:
        raise TranscriptParseError(f"Malformed transcript response: {e}")

    if not segments and not words:
        raise TranscriptParseError(
            "Transcript response contains no segments or words. "
            f"Found keys: {', '.join(sorted(data.keys()))}"
        )

    ends = [s.end for s in segments] + [w.end for w in words]
    total_duration = max(ends) if ends else 0.0

    logger.info(f"Parsed {len(segments)} segments, {len(words)} words, "
                f"total duration {total_duration:.2f}s")
    return NarrationTimestamps(words=words, segments=segments, total_duration_sec=total_duration)


def load_narration_timestamps(path: str) -> NarrationTimestamps:
    """
    Load timestamps from a normalized file or a raw transcription response.

    Raises:
        TranscriptParseError: If the file is missing or cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise TranscriptParseError(f"Timestamps file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise TranscriptParseError(f"Failed to parse timestamps file {path}: {e}")

    if isinstance(data, dict) and "totalDurationSec" in data:
        try:
            return NarrationTimestamps.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise TranscriptParseError(f"Invalid timestamps file {path}: {e}")

    return parse_whisper_response(data)


def check_transcript_usable(timestamps: NarrationTimestamps) -> List[str]:
    """
    List precondition problems that make alignment meaningless.

    The alignment engine never checks these itself; it degrades to
    low-confidence estimates. Callers decide whether to proceed.
    """
    problems = []
    if not timestamps.words:
        problems.append("Transcript has no words; every scene will be estimated")
    if timestamps.total_duration_sec <= 0:
        problems.append(f"Transcript total duration is {timestamps.total_duration_sec:.2f}s")
    return problems


def with_total_duration(timestamps: NarrationTimestamps,
                        duration_sec: Optional[float]) -> NarrationTimestamps:
    """Use a probed track duration when it is longer than the transcript's."""
    if duration_sec is None or duration_sec <= timestamps.total_duration_sec:
        return timestamps
    logger.info(f"Extending total duration {timestamps.total_duration_sec:.2f}s "
                f"to probed audio length {duration_sec:.2f}s")
    return NarrationTimestamps(
        words=timestamps.words,
        segments=timestamps.segments,
        total_duration_sec=duration_sec,
    )
