"""OpenAI-compatible vision client, the alternative frame analyser."""

from __future__ import annotations

from typing import Optional

from ..utils.files import data_url
from .gemini import mock_analysis


class OpenAIVisionClient:
    """Analyses frames through chat completions with an inline image."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: str = "gpt-4o",
        use_mock: bool = True,
        timeout: int = 60,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url
        self._model = model
        self._use_mock = use_mock
        self._timeout = timeout
        self._client = None

    def analyze(self, image_bytes: bytes, instruction: str, mime_type: str = "image/png") -> str:
        if self._use_mock:
            return mock_analysis(image_bytes, instruction)
        if not self._api_key:
            raise ValueError("OpenAI API key is missing; cannot call service.")

        client = self._resolve_client()
        response = client.chat.completions.create(
            model=self._model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instruction},
                        {
                            "type": "image_url",
                            "image_url": {"url": data_url(image_bytes, mime_type)},
                        },
                    ],
                }
            ],
            temperature=0.6,
            timeout=self._timeout,
        )
        text = self._extract_text(response)
        if not text:
            raise ValueError(f"OpenAI response missing content: {response}")
        return text.strip()

    def _resolve_client(self):
        if self._client is not None:
            return self._client
        try:
            from openai import OpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - dependency declared in pyproject
            raise RuntimeError("openai package is required for OpenAI calls. Install via `pip install openai`.") from exc
        self._client = OpenAI(api_key=self._api_key, base_url=self._api_url)
        return self._client

    @staticmethod
    def _extract_text(response) -> str | None:
        """Extract assistant text content from OpenAI-compatible responses."""
        choices = getattr(response, "choices", None)
        if not choices and isinstance(response, dict):
            choices = response.get("choices")
        if isinstance(choices, list) and choices:
            choice = choices[0]
            message = getattr(choice, "message", None)
            if message is None and isinstance(choice, dict):
                message = choice.get("message")
            if message:
                content = getattr(message, "content", None)
                if content is None and isinstance(message, dict):
                    content = message.get("content")
                if isinstance(content, str):
                    return content
        return None
