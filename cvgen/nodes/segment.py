"""Node generating one chain link per visit.

Each visit walks ``predicting -> relaying -> submitting-video -> polling ->
chained``. The segment always starts from ``run.chain_frame``, the end frame of
the last segment that succeeded (or the first frame). A failed segment is
recorded and leaves ``chain_frame`` untouched, so its successor chains from the
last good frame instead of being skipped.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import requests

from ..components.predictor import ContinuityPredictor
from ..components.relay import ImageHostingRelay
from ..components.segments import SegmentVideoSynthesizer
from ..errors import (
    HostingExhausted,
    JobTimeout,
    ProviderFailure,
    SynthesisFailed,
    UnsupportedDuration,
)
from ..types import (
    ContinuityMode,
    Job,
    KeyframeMode,
    PipelineRun,
    Prediction,
    Segment,
    SegmentStage,
)
from ..utils.prompts import load_prompt
from ..utils.run_logger import RunLogger
from .base import BaseNode, ChainState

logger = logging.getLogger(__name__)

SEGMENT_ERRORS = (
    SynthesisFailed,
    HostingExhausted,
    UnsupportedDuration,
    ProviderFailure,
    JobTimeout,
    requests.RequestException,
)


class GenerateSegment(BaseNode):
    """Predicts, relays, synthesizes and chains a single segment."""

    def __init__(
        self,
        predictor: ContinuityPredictor,
        relay: ImageHostingRelay,
        videos: SegmentVideoSynthesizer,
        run_logger: Optional[RunLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(name="GenerateSegment", run_logger=run_logger)
        self._predictor = predictor
        self._relay = relay
        self._videos = videos
        self._clock = clock

    def run(self, state: ChainState) -> ChainState:
        run = state["run"]
        deadline = state.get("deadline")
        start = run.chain_frame
        if start is None:
            raise RuntimeError("segment loop entered without a frame to chain from")

        segment = Segment(index=run.next_index, start_frame=start, requested_duration=run.segment_duration)
        run.segments.append(segment)
        step = f"{self.name}-{segment.index + 1:02d}"
        logger.info("Run %s: segment %s/%s", run.run_id, segment.index + 1, run.segment_count)

        if deadline is not None and self._clock() >= deadline:
            self._fail(run, segment, "run time budget exhausted", step)
            return state

        try:
            self._generate(run, segment, deadline, step)
        except SynthesisFailed as exc:
            self._fail(run, segment, str(exc), step, timed_out=exc.timed_out)
            return state
        except JobTimeout as exc:
            self._fail(run, segment, str(exc), step, timed_out=True)
            return state
        except SEGMENT_ERRORS as exc:
            self._fail(run, segment, f"{type(exc).__name__}: {exc}", step)
            return state

        self._chain(run, segment)
        self.log_response(run.run_id, segment.summary(), step)
        return state

    def _generate(self, run: PipelineRun, segment: Segment, deadline: Optional[float], step: str) -> None:
        segment.stage = SegmentStage.PREDICTING
        prediction = self._predictor.predict(
            segment.start_frame,
            run.prompt,
            segment.index,
            run.segment_duration,
            style=run.style,
            materialize=run.mode is ContinuityMode.PREMIUM,
            deadline=deadline,
        )
        segment.motion_description = prediction.motion_description
        segment.notes.extend(prediction.notes)
        if prediction.degraded:
            segment.notes.append(f"prediction degraded: {prediction.degraded_reason}")

        segment.stage = SegmentStage.RELAYING
        start_url = self._relay.relay_asset(segment.start_frame, deadline=deadline)
        end_url = self._relay_end_frame(segment, prediction, deadline)

        segment.stage = SegmentStage.SUBMITTING_VIDEO
        segment.keyframe_mode = KeyframeMode.DUAL if end_url else KeyframeMode.SINGLE
        segment.prompt = load_prompt(
            "segment_video",
            {
                "narrative": run.prompt,
                "motion_description": prediction.motion_description,
                "style": run.style,
                "continuity_hint": (
                    "smooth interpolation between keyframes"
                    if end_url
                    else "cinematic quality, smooth motion, consistent characters"
                ),
            },
        )
        self.log_prompt(run.run_id, segment.prompt, step)

        def _submitted(job: Job) -> None:
            segment.stage = SegmentStage.POLLING
            segment.notes.append(f"video job {job.job_id}")

        segment.video, segment.thumbnail = self._videos.synthesize(
            start_url,
            end_url,
            segment.prompt,
            run.segment_duration,
            deadline=deadline,
            on_submitted=_submitted,
        )

        if end_url:
            segment.end_frame = prediction.end_frame
        elif segment.thumbnail is not None:
            self._videos.fetch_thumbnail(segment.thumbnail)
            segment.thumbnail.description = prediction.future_description
            segment.end_frame = segment.thumbnail
        else:
            segment.notes.append("no end frame available; chaining from the start frame")
            segment.end_frame = segment.start_frame

    def _relay_end_frame(
        self, segment: Segment, prediction: Prediction, deadline: Optional[float]
    ) -> Optional[str]:
        """Host the predicted end frame, or return None to fall back to one keyframe."""
        if prediction.end_frame is None:
            return None
        try:
            return self._relay.relay_asset(prediction.end_frame, deadline=deadline)
        except HostingExhausted as exc:
            segment.notes.append(f"end frame relay failed, single keyframe: {exc}")
            logger.warning("Segment %s end frame could not be hosted: %s", segment.index + 1, exc)
            return None

    def _chain(self, run: PipelineRun, segment: Segment) -> None:
        assert segment.start_frame is run.chain_frame, "segment must start from the last good frame"
        segment.achieved_duration = int(run.segment_duration)
        segment.stage = SegmentStage.CHAINED
        run.chain_frame = segment.end_frame
        run.achieved_duration_sec += segment.achieved_duration
        logger.info(
            "Run %s: segment %s chained (%s keyframe, %ss)",
            run.run_id,
            segment.index + 1,
            segment.keyframe_mode.value if segment.keyframe_mode else "?",
            segment.achieved_duration,
        )

    def _fail(
        self, run: PipelineRun, segment: Segment, reason: str, step: str, *, timed_out: bool = False
    ) -> None:
        segment.stage = SegmentStage.FAILED
        segment.failure = reason
        if timed_out:
            logger.warning("Run %s: segment %s timed out: %s", run.run_id, segment.index + 1, reason)
        else:
            logger.warning("Run %s: segment %s failed: %s", run.run_id, segment.index + 1, reason)
        self.log_response(run.run_id, segment.summary(), step)
