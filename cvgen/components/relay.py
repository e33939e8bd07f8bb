"""Makes locally held frames addressable by the video backend.

The video backend refuses data URLs and most third-party hosts, so every frame
used as a keyframe must either come from the provider itself or be rehosted.
Strategies are tried in a fixed order and the first usable URL wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ..errors import HostingError, HostingExhausted
from ..fallback import Strategy, first_success
from ..services.base import MediaHostingAPI
from ..types import AssetOrigin, MediaAsset
from ..utils.images import prepare_for_upload
from .frames import FrameSynthesizer

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RelayPayload:
    image_bytes: bytes
    description: Optional[str] = None
    deadline: Optional[float] = None


class ProviderResynthesis:
    """Regenerates the frame from its description on the video provider's image model."""

    name = "provider"

    def __init__(self, frames: FrameSynthesizer) -> None:
        self._frames = frames

    def attempt(self, payload: RelayPayload) -> MediaAsset:
        if not payload.description:
            raise HostingError("provider: no description to regenerate the frame from")
        asset = self._frames.synthesize_raw(
            payload.description, origin=AssetOrigin.RELAYED, deadline=payload.deadline
        )
        if not asset.url:
            raise HostingError("provider: regenerated frame has no provider URL")
        return asset


class HostUpload:
    """Uploads the frame bytes to one public image host; the bytes are left as they were."""

    def __init__(self, host: MediaHostingAPI) -> None:
        self._host = host
        self.name = host.name

    def attempt(self, payload: RelayPayload) -> MediaAsset:
        if not payload.image_bytes:
            raise HostingError(f"{self.name}: no image bytes to upload")
        url = self._host.upload(prepare_for_upload(payload.image_bytes))
        if not url:
            raise HostingError(f"{self.name}: upload returned no URL")
        return MediaAsset(kind="image", origin=AssetOrigin.RELAYED, urls=[url])


class ImageHostingRelay:
    """Turns image bytes into a URL the video backend is able to fetch."""

    def __init__(self, strategies: Sequence[Strategy[RelayPayload, MediaAsset]]) -> None:
        if not strategies:
            raise ValueError("ImageHostingRelay needs at least one strategy")
        self._strategies = list(strategies)

    @classmethod
    def from_order(
        cls,
        order: Iterable[str],
        *,
        provider: Optional[FrameSynthesizer] = None,
        hosts: Iterable[MediaHostingAPI] = (),
    ) -> "ImageHostingRelay":
        """Build the strategy chain named by ``order`` (``provider`` or a host name)."""
        available: Dict[str, Strategy[RelayPayload, MediaAsset]] = {host.name: HostUpload(host) for host in hosts}
        if provider is not None:
            available[ProviderResynthesis.name] = ProviderResynthesis(provider)

        strategies: List[Strategy[RelayPayload, MediaAsset]] = []
        for name in order:
            if name not in available:
                raise ValueError(f"unknown hosting strategy: {name!r}")
            strategies.append(available[name])
        return cls(strategies)

    @property
    def strategy_names(self) -> List[str]:
        return [strategy.name for strategy in self._strategies]

    def relay(
        self,
        image_bytes: bytes,
        fallback_description: Optional[str] = None,
        *,
        deadline: Optional[float] = None,
    ) -> str:
        """Return the URL from the first strategy that succeeds.

        Raises :class:`HostingExhausted` when every strategy fails.
        """
        return self._relay(image_bytes, fallback_description, deadline).url

    def relay_asset(
        self,
        asset: MediaAsset,
        fallback_description: Optional[str] = None,
        *,
        deadline: Optional[float] = None,
    ) -> str:
        """Ensure ``asset`` has a usable URL, relaying it only when it has none.

        When the provider regenerated the frame, the regenerated picture is what
        the URL shows, so it replaces the asset's bytes.
        """
        if asset.url:
            return asset.url
        hosted = self._relay(asset.data or b"", fallback_description or asset.description, deadline)
        if hosted.data:
            asset.data = hosted.data
            asset.mime_type = hosted.mime_type
            asset.origin = AssetOrigin.RELAYED
        asset.add_url(hosted.url)
        return hosted.url

    def _relay(self, image_bytes: bytes, description: Optional[str], deadline: Optional[float]) -> MediaAsset:
        payload = RelayPayload(image_bytes=image_bytes or b"", description=description, deadline=deadline)
        name, hosted = first_success(self._strategies, payload, exhausted=HostingExhausted)
        logger.info("Frame relayed via %s: %s", name, hosted.url)
        return hosted
