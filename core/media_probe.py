"""
Narration audio probing.

Reads the real length of a narration track with ffprobe so alignment can use
it when the transcript stops before the audio does (trailing music or
silence).
"""

import logging
from pathlib import Path
from typing import Dict, Any

import ffmpeg

logger = logging.getLogger(__name__)


class MediaProbeError(Exception):
    """Custom exception for media probing errors."""
    pass


def probe_audio_stream(audio_path: str) -> Dict[str, Any]:
    """
    Probe an audio file and return its first audio stream's metadata.

    Args:
        audio_path: Path to the narration audio file

    Returns:
        Dictionary with codec, sample_rate, channels and duration

    Raises:
        MediaProbeError: If the file is missing, unreadable or has no audio
    """
    if not Path(audio_path).exists():
        raise MediaProbeError(f"Audio file not found: {audio_path}")

    try:
        probe = ffmpeg.probe(audio_path)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode() if e.stderr else str(e)
        raise MediaProbeError(f"Failed to probe media {audio_path}: {stderr}")

    audio_streams = [s for s in probe.get('streams', []) if s.get('codec_type') == 'audio']
    if not audio_streams:
        raise MediaProbeError(f"No audio stream found in {audio_path}")

    stream = audio_streams[0]
    duration = float(stream.get('duration', 0) or 0)
    if duration <= 0:
        duration = float(probe.get('format', {}).get('duration', 0) or 0)

    return {
        'codec': stream.get('codec_name'),
        'sample_rate': int(stream.get('sample_rate', 0) or 0),
        'channels': int(stream.get('channels', 0) or 0),
        'duration': duration,
    }


def probe_audio_duration(audio_path: str) -> float:
    """Duration of the narration track in seconds."""
    info = probe_audio_stream(audio_path)
    if info['duration'] <= 0:
        raise MediaProbeError(f"Could not determine duration of {audio_path}")
    logger.info(f"Audio: {audio_path} ({info['duration']:.2f}s, {info['codec']})")
    return info['duration']
