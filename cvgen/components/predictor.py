"""Future-frame prediction ("Nano Banana").

Looks at the current frame, describes the same scene one segment later, and in
premium mode renders that description as the segment's end frame. Vision
failures never stop a run: they degrade to a generic style-only motion line.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import PredictionDegraded, SynthesisFailed
from ..services.base import VisionPredictionAPI
from ..types import AssetOrigin, MediaAsset, Prediction, SegmentDuration
from ..utils.images import sniff_mime
from ..utils.prompts import load_prompt
from .frames import FrameSynthesizer, ReferenceFrameSynthesizer, describe_style

logger = logging.getLogger(__name__)

GENERIC_MOTION = "Smooth cinematic movement with subtle environmental changes"


def generic_motion(style: str) -> str:
    return f"{GENERIC_MOTION}. Style: {describe_style(style)}"


class ContinuityPredictor:
    """Predicts what a frame looks like ``segment_duration`` seconds later."""

    def __init__(
        self,
        vision: VisionPredictionAPI,
        frames: Optional[FrameSynthesizer] = None,
        reference_frames: Optional[ReferenceFrameSynthesizer] = None,
    ) -> None:
        self._vision = vision
        self._frames = frames
        self._reference_frames = reference_frames

    def predict(
        self,
        current_frame: MediaAsset,
        narrative: str,
        segment_index: int,
        segment_duration: SegmentDuration | int | str,
        *,
        style: str = "cinematic",
        materialize: bool = True,
        deadline: Optional[float] = None,
    ) -> Prediction:
        seconds = int(SegmentDuration.parse(segment_duration))
        timing = {
            "narrative": narrative,
            "style": style,
            "segment_sec": seconds,
            "segment_number": segment_index + 1,
            "current_sec": segment_index * seconds,
            "target_sec": (segment_index + 1) * seconds,
        }

        try:
            future = self._analyze(current_frame, load_prompt("predict_future", timing))
        except PredictionDegraded as exc:
            logger.warning("Segment %s prediction degraded: %s", segment_index + 1, exc)
            fallback = generic_motion(style)
            return Prediction(
                future_description=fallback,
                motion_description=fallback,
                degraded=True,
                degraded_reason=str(exc),
            )
        logger.info("Segment %s future predicted: %.100s", segment_index + 1, future)

        prediction = Prediction(future_description=future, motion_description=generic_motion(style))
        try:
            prediction.motion_description = self._analyze(
                current_frame, load_prompt("predict_motion", {**timing, "future_description": future})
            )
        except PredictionDegraded as exc:
            prediction.notes.append(f"motion summary unavailable: {exc}")
            logger.warning("Segment %s motion summary unavailable: %s", segment_index + 1, exc)

        if materialize:
            prediction.end_frame = self._materialize(prediction, timing, current_frame, deadline=deadline)
        return prediction

    def _analyze(self, frame: MediaAsset, instruction: str) -> str:
        if not frame.data:
            raise PredictionDegraded("current frame has no image bytes to analyse")
        mime_type = frame.mime_type or sniff_mime(frame.data)
        try:
            text = self._vision.analyze(frame.data, instruction, mime_type)
        except Exception as exc:  # noqa: BLE001 - any vision failure degrades, never aborts
            raise PredictionDegraded(f"vision analysis failed: {exc}") from exc
        if not text or not text.strip():
            raise PredictionDegraded("vision analysis returned no text")
        return text.strip()

    def _materialize(
        self,
        prediction: Prediction,
        timing: dict,
        current_frame: MediaAsset,
        *,
        deadline: Optional[float],
    ) -> Optional[MediaAsset]:
        """Render the end frame, from the current frame's pixels when an editor is set."""
        if self._reference_frames is not None and current_frame.data:
            prompt = load_prompt(
                "end_frame_reference",
                {
                    "future_description": prediction.future_description,
                    "target_sec": timing["target_sec"],
                    "style": describe_style(timing["style"]),
                    "segment_sec": timing["segment_sec"],
                    "narrative": timing["narrative"],
                },
            )
            try:
                return self._reference_frames.synthesize_from(
                    current_frame, prompt, origin=AssetOrigin.PREDICTED, deadline=deadline
                )
            except SynthesisFailed as exc:
                prediction.notes.append(f"reference edit failed, drawing from text: {exc}")
                logger.warning("Reference end frame for segment %s failed: %s", timing["segment_number"], exc)
                if exc.timed_out:
                    return None

        if self._frames is None:
            prediction.notes.append("no frame synthesizer configured for end frames")
            return None
        prompt = load_prompt(
            "end_frame",
            {
                "future_description": prediction.future_description,
                "frame_number": timing["segment_number"],
                "style": timing["style"],
                "segment_sec": timing["segment_sec"],
                "narrative": timing["narrative"],
            },
        )
        try:
            frame = self._frames.synthesize_raw(prompt, origin=AssetOrigin.PREDICTED, deadline=deadline)
        except SynthesisFailed as exc:
            prediction.notes.append(f"end frame not materialized: {exc}")
            logger.warning("End frame for segment %s not materialized: %s", timing["segment_number"], exc)
            return None
        return frame
