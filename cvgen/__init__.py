"""Continuous video generation package.

Chains short keyframe-anchored clips into one long video: every segment's end
frame becomes the next segment's start frame.
"""

from .config import PipelineConfig  # noqa: F401
from .pipeline import ChainOrchestrator, ContinuousVideoGenerator  # noqa: F401
from .types import ContinuityMode, PipelineRun, RunStatus, SegmentDuration  # noqa: F401

__all__ = [
    "ChainOrchestrator",
    "ContinuityMode",
    "ContinuousVideoGenerator",
    "PipelineConfig",
    "PipelineRun",
    "RunStatus",
    "SegmentDuration",
]
