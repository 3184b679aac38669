#!/usr/bin/env python3
"""
Fuzzy text-to-audio matching for narration alignment.

This module locates where a scene's narration text was spoken inside a
word-level transcript. Matching is token containment over a bounded window
rather than full edit distance: Whisper frequently splits or merges tokens
("kids'" / "kids", "ice-cream" / "icecream"), and the narration is spoken in
script order so a windowed forward search is sufficient.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Optional

from .config_loader import AlignmentConfig
from .timing_models import NarrationTimestamps

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')


@dataclass
class MatchResult:
    """Best transcript span found for a text snippet."""
    start: float
    end: float
    confidence: float


def normalize_text(text: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    text = _NON_WORD.sub('', text.lower())
    return _WHITESPACE.sub(' ', text).strip()


def tokenize(text: str) -> List[str]:
    """Split normalized text into comparison tokens."""
    normalized = normalize_text(text)
    return normalized.split(' ') if normalized else []


def words_match(search_word: str, transcript_word: str) -> bool:
    """True when either token equals or contains the other."""
    if not search_word or not transcript_word:
        return False
    return (
        transcript_word == search_word
        or search_word in transcript_word
        or transcript_word in search_word
    )


def find_search_start_index(timestamps: NarrationTimestamps,
                            min_start_sec: float,
                            backward_tolerance_sec: float = 0.5) -> Optional[int]:
    """
    Index of the first word that may open a match.

    Returns None when every word starts before the allowed bound.
    """
    bound = min_start_sec - backward_tolerance_sec
    for i, word in enumerate(timestamps.words):
        if word.start >= bound:
            return i
    return None


def find_timestamp_range_for_text(
    text: str,
    timestamps: NarrationTimestamps,
    min_start_sec: float = 0.0,
    config: Optional[AlignmentConfig] = None
) -> Optional[MatchResult]:
    """
    Find the transcript span in which ``text`` was most likely spoken.

    Args:
        text: Narration text to locate
        timestamps: Word-level transcript of the narration track
        min_start_sec: Earliest time the match may start (minus a small
            backward tolerance for boundary drift)
        config: Alignment configuration (defaults when omitted)

    Returns:
        MatchResult with confidence equal to the hit ratio, or None when no
        window reaches the minimum score
    """
    config = config or AlignmentConfig()

    if not timestamps.words:
        return None

    search_words = tokenize(text)
    if not search_words:
        return None

    start_idx = find_search_start_index(timestamps, min_start_sec, config.backward_tolerance_sec)
    if start_idx is None:
        logger.debug(f"No transcript words at or after {min_start_sec:.2f}s")
        return None

    transcript_words = [normalize_text(w.word) for w in timestamps.words]
    word_count = len(transcript_words)
    max_advance = len(search_words) * config.search_window_factor

    best_score = 0.0
    best_span = None

    for i in range(start_idx, word_count):
        match_count = 0
        j = 0  # cursor in search words
        k = i  # cursor in transcript words

        while j < len(search_words) and k < word_count:
            if words_match(search_words[j], transcript_words[k]):
                match_count += 1
                j += 1
            k += 1

            if k - i > max_advance:
                break

        score = match_count / len(search_words)
        if score >= config.min_match_score and score > best_score:
            end_idx = min(k - 1, word_count - 1)
            best_score = score
            best_span = (i, end_idx)
            if score >= 1.0:
                break

    if best_span is None:
        return None

    first, last = best_span
    return MatchResult(
        start=timestamps.words[first].start,
        end=timestamps.words[last].end,
        confidence=best_score,
    )
