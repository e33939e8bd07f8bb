"""OpenAI image edits, used to draw an end frame from the start frame."""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from io import BytesIO
from typing import Optional

from PIL import Image

logger = logging.getLogger(__name__)


class OpenAIImageEditor:
    """Redraws a reference image from a prompt with high input fidelity.

    The result comes back as bytes only; OpenAI does not host it anywhere the
    video backend could fetch, so callers relay it before use as a keyframe.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: str = "gpt-image-1",
        size: str = "1536x1024",
        use_mock: bool = True,
        timeout: int = 120,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url
        self._model = model
        self._size = size
        self._use_mock = use_mock
        self._timeout = timeout
        self._client = None

    def edit(self, image_bytes: bytes, prompt: str, mime_type: str = "image/png") -> bytes:
        if not image_bytes:
            raise ValueError("a reference image is required")
        if self._use_mock:
            return self._mock_edit(image_bytes, prompt)
        if not self._api_key:
            raise ValueError("OpenAI API key is missing; cannot call service.")

        extension = mime_type.split("/")[-1] if mime_type else "png"
        logger.debug("OpenAI %s editing %d-byte reference frame", self._model, len(image_bytes))
        client = self._resolve_client()
        response = client.images.edit(
            model=self._model,
            image=(f"reference.{extension}", image_bytes, mime_type),
            prompt=prompt,
            input_fidelity="high",
            size=self._size,
            timeout=self._timeout,
        )
        data = getattr(response, "data", None) or []
        encoded = getattr(data[0], "b64_json", None) if data else None
        if not encoded:
            raise ValueError(f"OpenAI image edit returned no image data: {response}")
        try:
            return base64.b64decode(encoded)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"OpenAI image edit returned malformed image data: {exc}") from exc

    def _resolve_client(self):
        if self._client is not None:
            return self._client
        from openai import OpenAI

        self._client = OpenAI(api_key=self._api_key, base_url=self._api_url)
        return self._client

    @staticmethod
    def _mock_edit(image_bytes: bytes, prompt: str) -> bytes:
        digest = hashlib.sha256(image_bytes + prompt.encode("utf-8")).digest()
        image = Image.new("RGB", (64, 36), color=(digest[0], digest[1], digest[2]))
        output = BytesIO()
        image.save(output, format="PNG")
        return output.getvalue()
