"""Rough wall-clock and spend estimates for a run, shown before it starts."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .types import SegmentDuration

FIRST_FRAME_SEC = 15
SEGMENT_SEC = 65
FRAME_COST = 0.02
VISION_COST = 0.01
VIDEO_COST = 0.30


@dataclass(slots=True)
class CostBreakdown:
    frames: float
    vision: float
    videos: float

    @property
    def total(self) -> float:
        return self.frames + self.vision + self.videos


def planned_segments(target_duration_sec: float, segment_duration: SegmentDuration | int | str = 9) -> int:
    return math.ceil(target_duration_sec / int(SegmentDuration.parse(segment_duration)))


def estimate_time(target_duration_sec: float, segment_duration: SegmentDuration | int | str = 9) -> int:
    """Seconds: one first frame plus a fixed allowance per segment."""
    return FIRST_FRAME_SEC + planned_segments(target_duration_sec, segment_duration) * SEGMENT_SEC


def cost_breakdown(segments: int) -> CostBreakdown:
    # one start frame plus an end frame per segment
    return CostBreakdown(
        frames=(segments + 1) * FRAME_COST,
        vision=segments * VISION_COST,
        videos=segments * VIDEO_COST,
    )


def estimate_cost(target_duration_sec: float, segment_duration: SegmentDuration | int | str = 9) -> float:
    """US dollars for the planned number of segments."""
    return cost_breakdown(planned_segments(target_duration_sec, segment_duration)).total
