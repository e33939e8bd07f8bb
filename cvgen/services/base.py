"""Capability interfaces the chaining core depends on."""

from __future__ import annotations

from typing import Protocol

from ..types import ImageRequest, JobStatus, VideoRequest


class ImageSynthesisAPI(Protocol):
    """Asynchronous text-to-image jobs."""

    def submit(self, request: ImageRequest) -> str:
        ...

    def poll(self, job_id: str) -> JobStatus:
        ...

    def download(self, url: str) -> bytes:
        ...


class VideoSynthesisAPI(Protocol):
    """Asynchronous keyframe-to-video jobs."""

    def submit(self, request: VideoRequest) -> str:
        ...

    def poll(self, job_id: str) -> JobStatus:
        ...

    def download(self, url: str) -> bytes:
        ...


class VisionPredictionAPI(Protocol):
    """Synchronous multi-modal analysis of a single image."""

    def analyze(self, image_bytes: bytes, instruction: str, mime_type: str = "image/png") -> str:
        ...


class MediaHostingAPI(Protocol):
    """Uploads raw image bytes and returns a public URL."""

    name: str

    def upload(self, image_bytes: bytes) -> str:
        ...


class ReferenceImageAPI(Protocol):
    """Synchronous image-to-image redraw of a reference frame."""

    def edit(self, image_bytes: bytes, prompt: str, mime_type: str = "image/png") -> bytes:
        ...
