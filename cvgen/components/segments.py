"""One keyframe-anchored video clip per call."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

import requests

from ..errors import JobTimeout, ProviderFailure, SynthesisFailed
from ..polling import PollingJobClient
from ..services.base import VideoSynthesisAPI
from ..types import AssetOrigin, Job, JobKind, Keyframes, MediaAsset, SegmentDuration, VideoRequest

logger = logging.getLogger(__name__)


class SegmentVideoSynthesizer:
    """Submits a single- or dual-keyframe video job and waits for the clip.

    Dual-keyframe mode is used whenever an end frame URL is supplied. Only a
    timeout is retried (``retry_timeouts`` extra jobs); a provider-reported
    failure is final for the segment.
    """

    def __init__(
        self,
        videos: VideoSynthesisAPI,
        jobs: Optional[PollingJobClient] = None,
        *,
        aspect_ratio: str = "16:9",
        resolution: str = "720p",
        model_hint: Optional[str] = None,
        retry_timeouts: int = 0,
    ) -> None:
        self._videos = videos
        self._jobs = jobs or PollingJobClient(videos, JobKind.VIDEO, poll_interval=5.0, max_attempts=60)
        self._aspect_ratio = aspect_ratio
        self._resolution = resolution
        self._model_hint = model_hint
        self._retry_timeouts = max(0, retry_timeouts)

    def build_request(
        self,
        start_frame_url: str,
        end_frame_url: Optional[str],
        motion_description: str,
        requested_duration: SegmentDuration | int | str,
    ) -> VideoRequest:
        """Validate inputs and shape the provider request."""
        duration = SegmentDuration.parse(requested_duration)
        if not start_frame_url:
            raise ValueError("a start frame URL is required for every segment")
        return VideoRequest(
            prompt=motion_description,
            duration=duration,
            keyframes=Keyframes(frame0=start_frame_url, frame1=end_frame_url or None),
            aspect_ratio=self._aspect_ratio,
            resolution=self._resolution,
            model_hint=self._model_hint,
        )

    def synthesize(
        self,
        start_frame_url: str,
        end_frame_url: Optional[str],
        motion_description: str,
        requested_duration: SegmentDuration | int | str,
        *,
        deadline: Optional[float] = None,
        on_submitted: Optional[Callable[[Job], None]] = None,
    ) -> Tuple[MediaAsset, Optional[MediaAsset]]:
        """Return the finished clip and its thumbnail (``None`` when the provider gave none)."""
        request = self.build_request(start_frame_url, end_frame_url, motion_description, requested_duration)
        logger.info(
            "Generating %s video with %s keyframe(s)",
            request.duration.api_value,
            request.keyframes.mode.value,
        )

        for attempt in range(self._retry_timeouts + 1):
            try:
                job = self._jobs.submit(request)
                if on_submitted is not None:
                    on_submitted(job)
                result = self._jobs.await_completion(job, deadline=deadline)
                break
            except JobTimeout as exc:
                if attempt < self._retry_timeouts:
                    logger.warning("Video job timed out (%s); submitting a new job", exc)
                    continue
                raise SynthesisFailed(f"video job timed out: {exc}", timed_out=True) from exc
            except (ProviderFailure, requests.RequestException, ValueError) as exc:
                raise SynthesisFailed(f"video synthesis failed: {exc}") from exc

        video = MediaAsset(
            kind="video",
            origin=AssetOrigin.SYNTHESIZED,
            urls=[result.url],
            mime_type="video/mp4",
            description=motion_description,
        )
        thumbnail = None
        if result.thumbnail_url:
            thumbnail = MediaAsset(kind="image", origin=AssetOrigin.EXTRACTED, urls=[result.thumbnail_url])
        return video, thumbnail

    def fetch_thumbnail(self, thumbnail: MediaAsset) -> None:
        """Fill in the thumbnail bytes so the next prediction can look at them."""
        if thumbnail.data or not thumbnail.url:
            return
        try:
            thumbnail.data = self._videos.download(thumbnail.url)
        except requests.RequestException as exc:
            logger.warning("Could not fetch thumbnail %s: %s", thumbnail.url, exc)
