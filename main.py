"""
PianoCoach - Main Entry Point

Example usage:
    python main.py reference.wav recording.wav
    python main.py --config config/config.yaml --output report.json reference.wav recording.wav
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from pianocoach.comparison.engine import create_comparison_engine
from pianocoach.comparison.models import ComparisonReport
from pianocoach.core.loader import create_audio_loader
from pianocoach.core.models import AnalysisResult
from pianocoach.core.pipeline import create_analysis_pipeline
from pianocoach.utils.config import ConfigManager, load_config
from pianocoach.utils.errors import AudioAnalysisError
from pianocoach.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare a piano recording against a reference performance"
    )
    parser.add_argument(
        "reference",
        type=Path,
        help="Path to the reference performance"
    )
    parser.add_argument(
        "recording",
        type=Path,
        help="Path to the recording to grade"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to save JSON report"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )
    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point for performance comparison."""
    args = build_parser().parse_args(argv)

    # Environment variables may be referenced from the config file
    load_dotenv()

    config_path = str(args.config) if args.config else None
    try:
        config = ConfigManager(load_config(config_path))
    except AudioAnalysisError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    logging_config = config.get_section("logging")
    setup_logging(
        level="DEBUG" if args.verbose else logging_config.get("level", "INFO"),
        log_format=logging_config.get("format", "text"),
        log_file=logging_config.get("file"),
        colored=True,
        console_enabled=True,
    )

    for path in (args.reference, args.recording):
        if not path.exists():
            print(f"Error: Audio file not found: {path}", file=sys.stderr)
            return 1

    loader = create_audio_loader(config.get_section("audio"))
    comparison = create_comparison_engine(config.get_section("comparison"))

    with create_analysis_pipeline(config.to_dict()) as pipeline:
        try:
            reference_buffer = loader.load(args.reference)
            recording_buffer = loader.load(args.recording)
            reference, recording = pipeline.analyze_pair(reference_buffer, recording_buffer)
            report = comparison.compare(reference, recording)
        except AudioAnalysisError as e:
            print(f"Error: {e}", file=sys.stderr)
            if args.verbose:
                import traceback
                traceback.print_exc()
            return 1

    _print_results(args, reference, recording, report)

    if args.output:
        _save_report(args.output, reference, recording, report)
        print(f"Report saved to: {args.output}")

    return 0


def _print_results(
    args: argparse.Namespace,
    reference: AnalysisResult,
    recording: AnalysisResult,
    report: ComparisonReport,
) -> None:
    print("\n" + "=" * 60)
    print("PERFORMANCE REPORT")
    print("=" * 60)
    print(f"Reference: {args.reference.name}")
    print(f"  {reference.get_summary()}")
    print(f"Recording: {args.recording.name}")
    print(f"  {recording.get_summary()}")
    print("-" * 60)
    print(report.get_summary())
    print("-" * 60)

    for dimension in report.dimensions:
        print(f"\n{dimension.name.capitalize()}: {dimension.score:.1f}")
        print(f"  {dimension.details}")
        for issue in dimension.issues:
            print(f"  - {issue}")


def _save_report(
    output_path: Path,
    reference: AnalysisResult,
    recording: AnalysisResult,
    report: ComparisonReport,
) -> None:
    payload = {
        "report": report.to_dict(),
        "reference": reference.to_dict(),
        "recording": recording.to_dict(),
    }
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(payload, f, indent=2, default=str, allow_nan=False)


if __name__ == "__main__":
    sys.exit(main())
