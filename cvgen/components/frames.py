"""Still-frame synthesis from text prompts or from a reference frame."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import requests

from ..errors import JobTimeout, ProviderFailure, SynthesisFailed
from ..polling import PollingJobClient
from ..services.base import ImageSynthesisAPI, ReferenceImageAPI
from ..types import AssetOrigin, ImageRequest, JobKind, MediaAsset
from ..utils.images import sniff_mime
from ..utils.prompts import load_prompt

logger = logging.getLogger(__name__)

STYLE_PRESETS = {
    "cinematic": "cinematic lighting, movie quality, 35mm film aesthetic, depth of field",
    "realistic": "photorealistic, hyperrealistic, 8K resolution, professional photography",
    "cartoon": "cartoon style, vibrant colors, clean lines, animated movie quality",
    "anime": "anime style, Studio Ghibli inspired, detailed, beautiful",
    "3d": "3D render, Pixar style, high quality CGI, detailed textures",
}


def describe_style(style: str) -> str:
    """Expand a preset name; free-form styles pass through unchanged."""
    key = (style or "").strip().lower()
    return STYLE_PRESETS.get(key, style.strip() if style and style.strip() else STYLE_PRESETS["cinematic"])


class FrameSynthesizer:
    """Produces exactly one still image per call.

    ``hosted_by_video_provider`` states whether the image backend's URLs can be
    handed to the video backend as keyframes without relaying.
    """

    def __init__(
        self,
        images: ImageSynthesisAPI,
        jobs: Optional[PollingJobClient] = None,
        *,
        aspect_ratio: str = "16:9",
        model_hint: Optional[str] = None,
        hosted_by_video_provider: bool = True,
    ) -> None:
        self._images = images
        self._jobs = jobs or PollingJobClient(images, JobKind.IMAGE, poll_interval=3.0, max_attempts=30)
        self._aspect_ratio = aspect_ratio
        self._model_hint = model_hint
        self._hosted_by_video_provider = hosted_by_video_provider

    def synthesize(self, prompt: str, style: str, *, deadline: Optional[float] = None) -> MediaAsset:
        """Render ``prompt`` in ``style`` as an opening frame."""
        full_prompt = load_prompt(
            "first_frame",
            {"prompt": prompt.strip(), "style_description": describe_style(style)},
        )
        return self.synthesize_raw(full_prompt, origin=AssetOrigin.SYNTHESIZED, deadline=deadline)

    def synthesize_raw(
        self,
        prompt: str,
        *,
        origin: AssetOrigin = AssetOrigin.SYNTHESIZED,
        deadline: Optional[float] = None,
    ) -> MediaAsset:
        """Render an already complete prompt."""
        request = ImageRequest(prompt=prompt, aspect_ratio=self._aspect_ratio, model_hint=self._model_hint)
        try:
            result = self._jobs.run(request, deadline=deadline)
        except JobTimeout as exc:
            raise SynthesisFailed(f"image job timed out: {exc}", timed_out=True) from exc
        except (ProviderFailure, requests.RequestException, ValueError) as exc:
            raise SynthesisFailed(f"image synthesis failed: {exc}") from exc

        data: Optional[bytes] = None
        try:
            data = self._images.download(result.url)
        except requests.RequestException as exc:
            logger.warning("Could not download synthesized frame %s: %s", result.url, exc)

        urls = [result.url] if self._hosted_by_video_provider else []
        if not data and not urls:
            raise SynthesisFailed(f"synthesized frame unavailable: {result.url}")

        return MediaAsset(
            kind="image",
            origin=origin,
            data=data,
            urls=urls,
            mime_type=sniff_mime(data) if data else None,
            description=prompt,
        )


class ReferenceFrameSynthesizer:
    """Draws a frame from a reference frame's pixels instead of from text alone.

    The returned asset carries bytes but no URL.
    """

    def __init__(self, editor: ReferenceImageAPI, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._editor = editor
        self._clock = clock

    def synthesize_from(
        self,
        reference: MediaAsset,
        prompt: str,
        *,
        origin: AssetOrigin = AssetOrigin.PREDICTED,
        deadline: Optional[float] = None,
    ) -> MediaAsset:
        if not reference.data:
            raise SynthesisFailed("reference frame has no image bytes")
        if deadline is not None and self._clock() >= deadline:
            raise SynthesisFailed("deadline passed before the reference edit started", timed_out=True)
        mime_type = reference.mime_type or sniff_mime(reference.data)
        try:
            data = self._editor.edit(reference.data, prompt, mime_type)
        except Exception as exc:  # noqa: BLE001 - SDK errors vary by vendor
            raise SynthesisFailed(f"reference edit failed: {exc}") from exc
        if not data:
            raise SynthesisFailed("reference edit returned no image")
        return MediaAsset(
            kind="image",
            origin=origin,
            data=data,
            mime_type=sniff_mime(data),
            description=prompt,
        )
