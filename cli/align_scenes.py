#!/usr/bin/env python3
"""
Scene timing alignment CLI.

Aligns a production script's scenes to the narration audio's word-level
timestamps, repairs clip ranges before assembly, and summarizes alignment
diagnostics.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

# Add the project root to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config_loader import (
    DEFAULT_CONFIG_PATH,
    AlignmentConfig,
    get_logging_level,
    load_alignment_config,
    load_alignment_config_dict,
)
from core.clip_validation import validate_and_fix_clips
from core.media_probe import probe_audio_duration
from core.scene_alignment import (
    align_scenes_to_timestamps,
    assess_alignment_quality,
    get_alignment_stats,
)
from core.timing_models import AlignmentResult, ClipTimeRange, ProductionScript, renumber_scenes
from core.transcript_parsing import (
    check_transcript_usable,
    load_narration_timestamps,
    with_total_duration,
)

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Configure root logging for CLI runs."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description="Align script scenes to narration timestamps and validate clip timing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Align scenes to a Whisper transcript
  python align_scenes.py align --script workspace/production_script.json
                               --timestamps workspace/narration_timestamps.json
                               --output workspace/aligned_script.json
                               --results workspace/alignment_results.json

  # Repair clip ranges before assembly
  python align_scenes.py validate-clips --clips workspace/clips.json
                                        --output workspace/clips_fixed.json

  # Summarize a previous alignment run
  python align_scenes.py stats --results workspace/alignment_results.json
        """
    )
    parser.add_argument('--config', default=DEFAULT_CONFIG_PATH,
                        help=f'Alignment configuration file (default: {DEFAULT_CONFIG_PATH})')
    parser.add_argument('--log-level', help='Override the configured log level')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    align_parser = subparsers.add_parser('align', help='Align scenes to narration timestamps')
    align_parser.add_argument('--script', required=True, help='Path to production script JSON')
    align_parser.add_argument('--timestamps', required=True,
                              help='Path to narration timestamps JSON (normalized or raw transcript)')
    align_parser.add_argument('--audio', help='Narration audio; its probed length extends the timeline')
    align_parser.add_argument('--output', required=True, help='Output path for aligned script JSON')
    align_parser.add_argument('--results', help='Optional output path for alignment diagnostics JSON')
    align_parser.add_argument('--renumber', action='store_true',
                              help='Write dense integer scene numbers instead of 5, 5.1, 5.2')

    clips_parser = subparsers.add_parser('validate-clips', help='Repair clip audio ranges')
    clips_parser.add_argument('--clips', required=True,
                              help='Path to JSON list of {clipNumber, audioStartSec, audioEndSec}')
    clips_parser.add_argument('--output', help='Output path for repaired clips JSON (default: stdout)')

    stats_parser = subparsers.add_parser('stats', help='Summarize alignment diagnostics')
    stats_parser.add_argument('--results', required=True, help='Path to alignment diagnostics JSON')

    return parser


def _read_json(path: str) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _write_json(data: Any, path: str):
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def run_align(args, config: AlignmentConfig) -> Dict[str, Any]:
    """Align a production script and write the results."""
    logger.info(f"Aligning script {args.script} to {args.timestamps}")

    script = ProductionScript.from_dict(_read_json(args.script))
    timestamps = load_narration_timestamps(args.timestamps)

    if args.audio:
        timestamps = with_total_duration(timestamps, probe_audio_duration(args.audio))

    for problem in check_transcript_usable(timestamps):
        logger.warning(problem)

    outcome = align_scenes_to_timestamps(script, timestamps, config)
    aligned_script = outcome.aligned_script
    if args.renumber:
        aligned_script = renumber_scenes(aligned_script)

    _write_json(aligned_script.to_dict(), args.output)
    logger.info(f"Aligned script saved: {args.output}")

    if args.results:
        _write_json([r.to_dict() for r in outcome.alignment_results], args.results)
        logger.info(f"Alignment results saved: {args.results}")

    stats = get_alignment_stats(outcome.alignment_results, config)
    quality_warning = assess_alignment_quality(stats, config)

    return {
        "output": args.output,
        "stats": stats.to_dict(),
        "quality_warning": quality_warning,
    }


def run_validate_clips(args, config: AlignmentConfig) -> Dict[str, Any]:
    """Validate and repair clip ranges."""
    raw_clips = _read_json(args.clips)
    if isinstance(raw_clips, dict):
        raw_clips = raw_clips.get("clips", [])

    clips = [ClipTimeRange.from_dict(c) for c in raw_clips]
    result = validate_and_fix_clips(clips, config)

    if args.output:
        _write_json(result.to_dict(), args.output)
        logger.info(f"Repaired clips saved: {args.output}")
    else:
        print(json.dumps(result.to_dict(), indent=2))

    return result.to_dict()


def run_stats(args, config: AlignmentConfig) -> Dict[str, Any]:
    """Print a summary of alignment diagnostics."""
    results = [AlignmentResult.from_dict(r) for r in _read_json(args.results)]
    stats = get_alignment_stats(results, config)
    quality_warning = assess_alignment_quality(stats, config)

    print(f"\n=== Scene Alignment Summary ===")
    print(f"Results file: {args.results}")
    print(f"Total scenes: {stats.total_scenes}")
    print(f"Fuzzy matched: {stats.fuzzy_matched}")
    print(f"Sequential: {stats.sequential}")
    print(f"Estimated: {stats.estimated}")
    print(f"Split parts: {stats.split}")
    print(f"Scenes over {config.max_scene_duration_sec:.0f}s: {stats.scenes_exceeding_max}")
    print(f"Average confidence: {stats.average_confidence:.2f}")
    print(f"Average duration: {stats.average_duration:.1f}s")
    print(f"Maximum duration: {stats.max_duration:.1f}s")
    if quality_warning:
        print(f"\nWarning: {quality_warning}")
    print(f"\n=== End Alignment Summary ===\n")

    return stats.to_dict()


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        print("Error: No command specified. Use --help for usage information.")
        return 1

    try:
        setup_logging(args.log_level or get_logging_level(load_alignment_config_dict(args.config)))
        config = load_alignment_config(args.config)

        if args.command == 'align':
            summary = run_align(args, config)
            print(f"Aligned script created: {summary['output']}")
            if summary['quality_warning']:
                print(f"Warning: {summary['quality_warning']}")

        elif args.command == 'validate-clips':
            run_validate_clips(args, config)

        elif args.command == 'stats':
            run_stats(args, config)

    except Exception as e:
        logger.error(f"Command failed: {e}")
        if logger.isEnabledFor(logging.DEBUG):
            import traceback
            traceback.print_exc()
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
