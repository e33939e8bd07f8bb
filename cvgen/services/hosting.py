"""Public image hosts used to make locally held frames reachable by URL."""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

from ..errors import HostingError
from ..utils.files import b64encode
from ..utils.http import ThreadSessions

logger = logging.getLogger(__name__)

FREEIMAGE_UPLOAD_URL = "https://freeimage.host/api/1/upload"
IMGBB_UPLOAD_URL = "https://api.imgbb.com/1/upload"


class _FormUploadHost(ABC):
    """Base64 form upload shared by the hosts; subclasses pick the URL out of the reply."""

    name = "host"
    upload_url = ""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        use_mock: bool = True,
        timeout: int = 60,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_key = api_key
        self._use_mock = use_mock
        self._timeout = timeout
        self._sessions = ThreadSessions(session)

    def upload(self, image_bytes: bytes) -> str:
        if not image_bytes:
            raise HostingError(f"{self.name}: nothing to upload")
        if self._use_mock:
            digest = hashlib.sha256(image_bytes).hexdigest()[:16]
            return f"https://mock.{self.name}.local/{digest}.png"
        if not self._api_key:
            raise HostingError(f"{self.name}: API key is missing")

        try:
            response = self._sessions.current().post(
                self.upload_url,
                params={"key": self._api_key},
                data=self._form(b64encode(image_bytes)),
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise HostingError(f"{self.name}: upload failed: {exc}") from exc

        url = self._extract_url(payload)
        if not url:
            raise HostingError(f"{self.name}: response missing image URL: {payload}")
        logger.info("Uploaded frame to %s: %s", self.name, url)
        return url

    @abstractmethod
    def _form(self, encoded: str) -> dict:
        """Form fields carrying the base64 image."""

    @abstractmethod
    def _extract_url(self, payload: dict) -> Optional[str]:
        """Image URL from the decoded reply, or None."""


class FreeImageHost(_FormUploadHost):
    name = "freeimage"
    upload_url = FREEIMAGE_UPLOAD_URL

    def _form(self, encoded: str) -> dict:
        return {"source": encoded, "type": "base64", "action": "upload", "format": "json"}

    def _extract_url(self, payload: dict) -> Optional[str]:
        image = payload.get("image") or {}
        return image.get("url")


class ImgBBHost(_FormUploadHost):
    name = "imgbb"
    upload_url = IMGBB_UPLOAD_URL

    def _form(self, encoded: str) -> dict:
        return {"image": encoded}

    def _extract_url(self, payload: dict) -> Optional[str]:
        if not payload.get("success"):
            return None
        data = payload.get("data") or {}
        return data.get("url")
