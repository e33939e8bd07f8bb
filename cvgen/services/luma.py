"""Luma Dream Machine client: Photon image jobs and Ray keyframe video jobs."""

from __future__ import annotations

import hashlib
import logging
from io import BytesIO
from typing import Any, Dict, Optional

import requests
from PIL import Image

from ..types import ImageRequest, JobState, JobStatus, VideoRequest
from ..utils.http import ThreadSessions

logger = logging.getLogger(__name__)

LUMA_API_BASE = "https://api.lumalabs.ai/dream-machine/v1"
MOCK_HOST = "https://mock.lumalabs.local"

_STATE_MAP = {
    "queued": JobState.POLLING,
    "dreaming": JobState.POLLING,
    "processing": JobState.POLLING,
    "completed": JobState.COMPLETED,
    "failed": JobState.FAILED,
}


class LumaClient:
    """Handles communication with Luma's generation endpoints.

    When ``use_mock`` is True the client answers every call deterministically
    without network access: job ids encode the request hash, polls complete at
    once, and downloads return a small solid-colour PNG derived from the URL.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        *,
        image_model: str = "photon-1",
        video_model: str = "ray-2",
        use_mock: bool = True,
        timeout: int = 60,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_key = api_key
        self._api_url = (api_url or LUMA_API_BASE).rstrip("/")
        self._image_model = image_model
        self._video_model = video_model
        self._use_mock = use_mock
        self._timeout = timeout
        self._sessions = ThreadSessions(session)

    @property
    def images(self) -> "LumaImageAPI":
        return LumaImageAPI(self)

    @property
    def videos(self) -> "LumaVideoAPI":
        return LumaVideoAPI(self)

    def submit_image(self, request: ImageRequest) -> str:
        payload = {
            "prompt": request.prompt,
            "model": request.model_hint or self._image_model,
            "aspect_ratio": request.aspect_ratio,
        }
        if self._use_mock:
            return self._mock_job_id("image", payload)
        data = self._post_json("generations/image", payload)
        return self._job_id(data)

    def submit_video(self, request: VideoRequest) -> str:
        keyframes: Dict[str, Any] = {"frame0": {"type": "image", "url": request.keyframes.frame0}}
        if request.keyframes.frame1:
            keyframes["frame1"] = {"type": "image", "url": request.keyframes.frame1}
        payload = {
            "prompt": request.prompt,
            "model": request.model_hint or self._video_model,
            "aspect_ratio": request.aspect_ratio,
            "resolution": request.resolution,
            "duration": request.duration.api_value,
            "loop": False,
            "keyframes": keyframes,
        }
        if self._use_mock:
            return self._mock_job_id("video", payload)
        data = self._post_json("generations", payload)
        return self._job_id(data)

    def poll(self, job_id: str) -> JobStatus:
        """Fetch the generation record and normalise its state."""
        if self._use_mock:
            return self._mock_status(job_id)
        data = self._get_json(f"generations/{job_id}")
        raw_state = str(data.get("state") or "").lower()
        logger.debug("Luma generation %s state %s", job_id, raw_state or "?")
        state = _STATE_MAP.get(raw_state, JobState.POLLING)
        assets = data.get("assets") or {}
        video_url = assets.get("video")
        image_url = assets.get("image")
        if video_url:
            url, thumbnail = video_url, image_url
        else:
            url, thumbnail = image_url, None
        return JobStatus(
            state=state,
            url=url,
            thumbnail_url=thumbnail,
            failure_reason=data.get("failure_reason"),
            raw=data,
        )

    def download(self, url: str) -> bytes:
        if self._use_mock or url.startswith(MOCK_HOST):
            return self._mock_png(url)
        response = self._sessions.current().get(url, timeout=self._timeout)
        response.raise_for_status()
        return response.content

    def _ensure_api_ready(self) -> None:
        if not self._api_key:
            raise ValueError("Luma API key is missing; cannot call real service.")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _post_json(self, path: str, payload: dict) -> dict:
        self._ensure_api_ready()
        response = self._sessions.current().post(
            f"{self._api_url}/{path}", json=payload, headers=self._headers(), timeout=self._timeout
        )
        response.raise_for_status()
        return response.json()

    def _get_json(self, path: str) -> dict:
        self._ensure_api_ready()
        session = self._sessions.current()
        response = session.get(f"{self._api_url}/{path}", headers=self._headers(), timeout=self._timeout)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _job_id(data: dict) -> str:
        job_id = data.get("id")
        if not job_id:
            raise ValueError(f"Luma API response missing generation id: {data}")
        return str(job_id)

    @staticmethod
    def _mock_job_id(kind: str, payload: dict) -> str:
        digest = hashlib.sha256(repr(sorted(payload.items())).encode("utf-8")).hexdigest()[:12]
        return f"mock-{kind}-{digest}"

    @staticmethod
    def _mock_status(job_id: str) -> JobStatus:
        _, kind, digest = job_id.split("-", 2)
        if kind == "video":
            return JobStatus(
                state=JobState.COMPLETED,
                url=f"{MOCK_HOST}/video/{digest}.mp4",
                thumbnail_url=f"{MOCK_HOST}/image/{digest}-thumb.png",
            )
        return JobStatus(state=JobState.COMPLETED, url=f"{MOCK_HOST}/image/{digest}.png")

    @staticmethod
    def _mock_png(url: str) -> bytes:
        digest = hashlib.sha256(url.encode("utf-8")).digest()
        image = Image.new("RGB", (64, 36), color=(digest[0], digest[1], digest[2]))
        output = BytesIO()
        image.save(output, format="PNG")
        return output.getvalue()


class LumaImageAPI:
    """Photon image jobs seen through the image-synthesis interface."""

    def __init__(self, client: LumaClient) -> None:
        self._client = client

    def submit(self, request: ImageRequest) -> str:
        return self._client.submit_image(request)

    def poll(self, job_id: str) -> JobStatus:
        return self._client.poll(job_id)

    def download(self, url: str) -> bytes:
        return self._client.download(url)


class LumaVideoAPI:
    """Ray keyframe video jobs seen through the video-synthesis interface."""

    def __init__(self, client: LumaClient) -> None:
        self._client = client

    def submit(self, request: VideoRequest) -> str:
        return self._client.submit_video(request)

    def poll(self, job_id: str) -> JobStatus:
        return self._client.poll(job_id)

    def download(self, url: str) -> bytes:
        return self._client.download(url)
