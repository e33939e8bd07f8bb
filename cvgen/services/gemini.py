"""Gemini vision client used to predict how a frame evolves."""

from __future__ import annotations

import hashlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class GeminiVisionClient:
    """Analyses frames through the ``google-genai`` SDK with a mock fallback."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-2.0-flash",
        use_mock: bool = True,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._use_mock = use_mock
        self._client = None

    def analyze(self, image_bytes: bytes, instruction: str, mime_type: str = "image/png") -> str:
        """Send the frame plus instruction and return the model's text."""
        if self._use_mock:
            return mock_analysis(image_bytes, instruction)
        if not self._api_key:
            raise ValueError("Gemini API key is missing; cannot call service.")

        from google.genai import types

        logger.debug("Gemini %s analysing %d-byte frame", self._model, len(image_bytes))
        client = self._resolve_client()
        response = client.models.generate_content(
            model=self._model,
            contents=[
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                instruction,
            ],
        )
        text = getattr(response, "text", None)
        if not text or not text.strip():
            raise ValueError(f"Gemini response missing text content: {response}")
        return text.strip()

    def _resolve_client(self):
        if self._client is not None:
            return self._client
        try:
            from google import genai
        except ImportError as exc:  # pragma: no cover - dependency declared in pyproject
            raise RuntimeError(
                "google-genai package is required for Gemini calls. Install via `pip install google-genai`."
            ) from exc
        self._client = genai.Client(api_key=self._api_key)
        return self._client


def mock_analysis(image_bytes: bytes, instruction: str) -> str:
    """Deterministic local stand-in shared by the vision clients."""
    digest = hashlib.sha256(image_bytes).hexdigest()[:8]
    if "MOTION" in instruction.upper().split("\n", 1)[0]:
        return f"The camera drifts forward slowly while the subject turns toward the light (frame {digest})."
    return (
        f"Same characters and setting as frame {digest}, a few seconds later: the subject has "
        "stepped closer to the centre, the light has warmed slightly and the framing is unchanged."
    )
