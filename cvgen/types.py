"""Core data models used across the continuous video pipeline."""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from .errors import UnsupportedDuration


class SegmentDuration(IntEnum):
    """The only two clip lengths the keyframe video backend accepts."""

    FIVE = 5
    NINE = 9

    @property
    def api_value(self) -> str:
        return f"{int(self)}s"

    @classmethod
    def parse(cls, value: Any) -> "SegmentDuration":
        """Coerce ``5``, ``"9s"`` and friends into a duration, rejecting anything else."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise UnsupportedDuration(value)
        if isinstance(value, str):
            text = value.strip().lower()
            if text.endswith("s"):
                text = text[:-1]
            if not text.isdigit():
                raise UnsupportedDuration(value)
            value = int(text)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int):
            for member in cls:
                if member.value == value:
                    return member
        raise UnsupportedDuration(value)


class ContinuityMode(str, Enum):
    """How much of the future frame is materialized per segment."""

    STANDARD = "standard"
    PREMIUM = "premium"


class KeyframeMode(str, Enum):
    SINGLE = "single"
    DUAL = "dual"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIALLY_COMPLETED = "partially-completed"


class RunStage(str, Enum):
    INITIALIZING = "initializing"
    SYNTHESIZING_FIRST_FRAME = "synthesizing-first-frame"
    SEGMENT_LOOP = "segment-loop"
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially-completed"
    FAILED = "failed"


class SegmentStage(str, Enum):
    PENDING = "pending"
    PREDICTING = "predicting"
    RELAYING = "relaying"
    SUBMITTING_VIDEO = "submitting-video"
    POLLING = "polling"
    CHAINED = "chained"
    FAILED = "failed"


class JobKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class JobState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed-out"

    @property
    def terminal(self) -> bool:
        return self in {JobState.COMPLETED, JobState.FAILED, JobState.TIMED_OUT}


class AssetOrigin(str, Enum):
    SYNTHESIZED = "synthesized"
    PREDICTED = "predicted"
    RELAYED = "relayed"
    EXTRACTED = "extracted"


@dataclass(slots=True)
class MediaAsset:
    """An image or video plus every URL it can be fetched from."""

    kind: str
    origin: AssetOrigin
    data: Optional[bytes] = None
    urls: List[str] = field(default_factory=list)
    mime_type: Optional[str] = None
    description: Optional[str] = None
    asset_id: str = ""

    def __post_init__(self) -> None:
        if not self.asset_id:
            source = self.data if self.data else "".join(self.urls).encode("utf-8")
            self.asset_id = hashlib.sha256(source).hexdigest()[:16] if source else ""

    @property
    def url(self) -> Optional[str]:
        """First usable URL, if the asset is hosted anywhere."""
        return self.urls[0] if self.urls else None

    def add_url(self, url: str) -> None:
        if url and url not in self.urls:
            self.urls.append(url)

    def summary(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "kind": self.kind,
            "origin": self.origin.value,
            "urls": list(self.urls),
            "bytes": len(self.data) if self.data else 0,
        }


@dataclass(slots=True)
class Keyframes:
    """Anchor frames of a video request; ``frame1`` is optional."""

    frame0: str
    frame1: Optional[str] = None

    @property
    def mode(self) -> KeyframeMode:
        return KeyframeMode.DUAL if self.frame1 else KeyframeMode.SINGLE


@dataclass(slots=True)
class ImageRequest:
    prompt: str
    aspect_ratio: str = "16:9"
    model_hint: Optional[str] = None


@dataclass(slots=True)
class VideoRequest:
    prompt: str
    duration: SegmentDuration
    keyframes: Keyframes
    aspect_ratio: str = "16:9"
    resolution: str = "720p"
    model_hint: Optional[str] = None


@dataclass(slots=True)
class JobStatus:
    """A single poll reply normalised from the provider payload."""

    state: JobState
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    failure_reason: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class JobResult:
    url: str
    thumbnail_url: Optional[str] = None


@dataclass(slots=True)
class Job:
    """Handle for one asynchronous provider operation; never resubmitted."""

    job_id: str
    kind: JobKind
    state: JobState = JobState.SUBMITTED
    notes: List[str] = field(default_factory=list)
    result: Optional[JobResult] = None
    attempts: int = 0


@dataclass(slots=True)
class Prediction:
    """Output of the continuity predictor for one segment."""

    future_description: str
    motion_description: str
    end_frame: Optional[MediaAsset] = None
    degraded: bool = False
    degraded_reason: Optional[str] = None
    notes: List[str] = field(default_factory=list)


@dataclass(slots=True)
class Segment:
    """One chain link of the continuous video."""

    index: int
    start_frame: MediaAsset
    requested_duration: SegmentDuration
    end_frame: Optional[MediaAsset] = None
    video: Optional[MediaAsset] = None
    thumbnail: Optional[MediaAsset] = None
    motion_description: str = ""
    prompt: str = ""
    achieved_duration: int = 0
    keyframe_mode: Optional[KeyframeMode] = None
    stage: SegmentStage = SegmentStage.PENDING
    failure: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.stage is SegmentStage.CHAINED

    def summary(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "stage": self.stage.value,
            "keyframe_mode": self.keyframe_mode.value if self.keyframe_mode else None,
            "start_frame": self.start_frame.summary(),
            "end_frame": self.end_frame.summary() if self.end_frame else None,
            "video_url": self.video.url if self.video else None,
            "thumbnail_url": self.thumbnail.url if self.thumbnail else None,
            "motion_description": self.motion_description,
            "duration": self.achieved_duration,
            "failure": self.failure,
            "notes": list(self.notes),
        }


@dataclass(slots=True)
class PipelineRun:
    """One end-to-end request; owned by the orchestrator until returned."""

    run_id: str
    prompt: str
    style: str
    target_duration_sec: float
    segment_duration: SegmentDuration
    mode: ContinuityMode = ContinuityMode.PREMIUM
    segments: List[Segment] = field(default_factory=list)
    status: RunStatus = RunStatus.RUNNING
    stage: RunStage = RunStage.INITIALIZING
    first_frame: Optional[MediaAsset] = None
    chain_frame: Optional[MediaAsset] = None
    achieved_duration_sec: int = 0
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def segment_count(self) -> int:
        return math.ceil(self.target_duration_sec / int(self.segment_duration))

    @property
    def completed_segments(self) -> List[Segment]:
        return [segment for segment in self.segments if segment.succeeded]

    @property
    def next_index(self) -> int:
        return len(self.segments)

    def summary(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "prompt": self.prompt,
            "style": self.style,
            "mode": self.mode.value,
            "status": self.status.value,
            "stage": self.stage.value,
            "target_duration_sec": self.target_duration_sec,
            "segment_duration_sec": int(self.segment_duration),
            "segment_count": self.segment_count,
            "achieved_duration_sec": self.achieved_duration_sec,
            "first_frame": self.first_frame.summary() if self.first_frame else None,
            "segments": [segment.summary() for segment in self.segments],
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
