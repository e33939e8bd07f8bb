"""Command-line entry point for the continuous video pipeline."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from cvgen.config import PipelineConfig
from cvgen.estimates import cost_breakdown, estimate_time, planned_segments
from cvgen.pipeline import ContinuousVideoGenerator
from cvgen.types import RunStatus


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Generate a keyframe-chained continuous video.")
    parser.add_argument("prompt", help="Scene or story description.")
    parser.add_argument(
        "--duration",
        type=float,
        default=30,
        help="Target duration for the final video (seconds).",
    )
    parser.add_argument("--style", default=None, help="Visual style preset, e.g. cinematic or anime.")
    parser.add_argument(
        "--segment-duration",
        choices=["5", "9", "5s", "9s"],
        default=None,
        help="Length of each generated clip.",
    )
    parser.add_argument(
        "--mode",
        choices=["standard", "premium"],
        default=None,
        help="premium also renders each predicted end frame as a second keyframe.",
    )
    parser.add_argument("--report", metavar="PATH", help="Write the run summary as JSON to PATH.")
    parser.add_argument("--assemble", metavar="PATH", help="Concatenate segment videos into PATH.")
    parser.add_argument("--estimate", action="store_true", help="Print time and cost estimates and exit.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def print_estimate(duration: float, segment_duration: str | int) -> None:
    segments = planned_segments(duration, segment_duration)
    breakdown = cost_breakdown(segments)
    print(f"Segments: {segments}")
    print(f"Estimated time: ~{-(-estimate_time(duration, segment_duration) // 60)} minutes")
    print(
        f"Estimated cost: ${breakdown.total:.2f} "
        f"(frames ${breakdown.frames:.2f}, vision ${breakdown.vision:.2f}, videos ${breakdown.videos:.2f})"
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point used by ``python run.py``."""
    args = parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = PipelineConfig.from_env()
    segment_duration = args.segment_duration or config.default_segment_duration

    if args.estimate:
        print_estimate(args.duration, segment_duration)
        return 0

    generator = ContinuousVideoGenerator(config)
    run = generator.run(
        args.prompt,
        target_duration_sec=args.duration,
        style=args.style,
        segment_duration=segment_duration,
        mode=args.mode,
    )
    summary = run.summary()

    print(f"Run {run.run_id} {run.status.value}: {run.achieved_duration_sec}s of {run.target_duration_sec:g}s")
    for segment in run.segments:
        detail = segment.video.url if segment.video else segment.failure
        print(f"  segment {segment.index + 1}: {segment.stage.value} {detail or ''}".rstrip())
    if args.report:
        with open(args.report, "w", encoding="utf-8") as handle:
            json.dump(summary, handle, indent=2, ensure_ascii=False, default=str)
        print(f"Report written to {args.report}")
    if args.assemble and run.completed_segments:
        print(f"Assembled output: {generator.assemble(run, args.assemble)}")
    return 0 if run.status is not RunStatus.FAILED else 1


if __name__ == "__main__":
    raise SystemExit(main())
