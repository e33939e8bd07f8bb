"""Stitch the chained segment videos of a run into one file."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, List

from .types import PipelineRun
from .utils.files import atomic_write, ensure_dir, write_text

logger = logging.getLogger(__name__)


class SegmentAssembler:
    """Downloads completed segment videos in chain order and concatenates them.

    ``download`` is any ``url -> bytes`` callable, usually the video provider's.
    When ``dry_run`` is set only the ffmpeg concat manifest is written, which is
    what mock runs produce since their URLs point nowhere.
    """

    def __init__(self, download: Callable[[str], bytes], work_dir: str | Path, *, dry_run: bool = False) -> None:
        self._download = download
        self._work_dir = Path(work_dir)
        self._dry_run = dry_run

    def assemble(self, run: PipelineRun, output_path: str | Path) -> Path:
        segments = [segment for segment in run.completed_segments if segment.video and segment.video.url]
        if not segments:
            raise ValueError(f"run {run.run_id} has no completed segment videos to assemble")

        run_dir = ensure_dir(self._work_dir / run.run_id)
        manifest_path = run_dir / "concat.txt"
        if self._dry_run:
            write_text(manifest_path, "".join(f"file '{segment.video.url}'\n" for segment in segments))
            logger.info("Run %s: wrote concat manifest for %s segments", run.run_id, len(segments))
            return manifest_path

        sources: List[Path] = []
        for segment in segments:
            path = run_dir / f"segment-{segment.index + 1:02d}.mp4"
            atomic_write(path, self._download(segment.video.url))
            sources.append(path)

        output = Path(output_path)
        ensure_dir(output.parent)
        concat_videos(sources, output, manifest_path)
        logger.info("Run %s: assembled %s segments into %s", run.run_id, len(sources), output)
        return output


def concat_videos(sources: List[Path], output_path: Path, manifest_path: Path) -> None:
    """Concatenate binary video segments using ffmpeg."""
    missing = [str(path) for path in sources if not path.exists()]
    if missing or not sources:
        raise FileNotFoundError(f"Video segments missing for concat: {', '.join(missing) or 'no sources'}")

    lines = []
    for path in sources:
        line_path = str(path.resolve()).replace("'", r"'\''")
        lines.append(f"file '{line_path}'\n")
    write_text(manifest_path, "".join(lines))

    cmd = [
        "ffmpeg",
        "-y",
        "-f",
        "concat",
        "-safe",
        "0",
        "-i",
        str(manifest_path),
        "-c",
        "copy",
        str(output_path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise RuntimeError("ffmpeg is required to assemble video segments. Please install ffmpeg and retry.") from exc
    if result.returncode != 0:
        raise RuntimeError(
            f"ffmpeg concat failed: {result.stderr.strip() or result.stdout.strip() or 'unknown error'}"
        )
