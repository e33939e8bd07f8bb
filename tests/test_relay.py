"""Hosting relay ordering, idempotence and the first-success combinator."""

from __future__ import annotations

import unittest

from cvgen.components.frames import FrameSynthesizer
from cvgen.components.relay import ImageHostingRelay
from cvgen.errors import FallbackExhausted, HostingExhausted
from cvgen.fallback import first_success
from cvgen.types import AssetOrigin, MediaAsset

from fakes import FakeHost, FakeImageAPI, image_jobs, png_bytes


class NamedStrategy:
    def __init__(self, name: str, result=None, error: Exception | None = None) -> None:
        self.name = name
        self.result = result
        self.error = error
        self.calls = 0

    def attempt(self, payload):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class FirstSuccessTest(unittest.TestCase):
    def test_first_working_strategy_wins_and_later_ones_are_skipped(self) -> None:
        broken = NamedStrategy("a", error=RuntimeError("down"))
        empty = NamedStrategy("b", result="")
        good = NamedStrategy("c", result="ok")
        unused = NamedStrategy("d", result="never")

        name, result = first_success([broken, empty, good, unused], payload=None)

        self.assertEqual((name, result), ("c", "ok"))
        self.assertEqual([broken.calls, empty.calls, good.calls, unused.calls], [1, 1, 1, 0])

    def test_exhaustion_lists_every_failure(self) -> None:
        strategies = [NamedStrategy("a", error=RuntimeError("x")), NamedStrategy("b", result=None)]

        with self.assertRaises(FallbackExhausted) as ctx:
            first_success(strategies, payload=None)

        self.assertEqual([name for name, _ in ctx.exception.failures], ["a", "b"])


class ImageHostingRelayTest(unittest.TestCase):
    def setUp(self) -> None:
        self.images = FakeImageAPI()
        self.frames = FrameSynthesizer(self.images, image_jobs(self.images))

    def test_provider_resynthesis_is_tried_first(self) -> None:
        freeimage, imgbb = FakeHost("freeimage"), FakeHost("imgbb")
        relay = ImageHostingRelay.from_order(
            ["provider", "freeimage", "imgbb"], provider=self.frames, hosts=[freeimage, imgbb]
        )

        url = relay.relay(png_bytes(), "a red kite over dunes")

        self.assertEqual(url, "https://provider.test/img-1.png")
        self.assertEqual(self.images.requests[0].prompt, "a red kite over dunes")
        self.assertEqual((freeimage.uploads, imgbb.uploads), (0, 0))

    def test_falls_through_to_second_host(self) -> None:
        failing_images = FakeImageAPI(fail=True)
        frames = FrameSynthesizer(failing_images, image_jobs(failing_images))
        freeimage, imgbb = FakeHost("freeimage", fail=True), FakeHost("imgbb")
        relay = ImageHostingRelay.from_order(
            ["provider", "freeimage", "imgbb"], provider=frames, hosts=[freeimage, imgbb]
        )

        url = relay.relay(png_bytes(), "a red kite over dunes")

        self.assertEqual(url, "https://imgbb.test/1.png")
        self.assertEqual((freeimage.uploads, imgbb.uploads), (1, 1))

    def test_provider_without_description_defers_to_hosts(self) -> None:
        freeimage = FakeHost("freeimage")
        relay = ImageHostingRelay.from_order(["provider", "freeimage"], provider=self.frames, hosts=[freeimage])

        self.assertEqual(relay.relay(png_bytes()), "https://freeimage.test/1.png")
        self.assertEqual(self.images.requests, [])

    def test_all_strategies_failing_raises_hosting_exhausted(self) -> None:
        relay = ImageHostingRelay.from_order(
            ["freeimage", "imgbb"], hosts=[FakeHost("freeimage", fail=True), FakeHost("imgbb", fail=True)]
        )

        with self.assertRaises(HostingExhausted) as ctx:
            relay.relay(png_bytes())

        self.assertEqual([name for name, _ in ctx.exception.failures], ["freeimage", "imgbb"])

    def test_repeated_relays_follow_the_same_order_and_outcome(self) -> None:
        freeimage, imgbb = FakeHost("freeimage", fail=True), FakeHost("imgbb")
        relay = ImageHostingRelay.from_order(["freeimage", "imgbb"], hosts=[freeimage, imgbb])
        data = png_bytes()

        first = relay.relay(data)
        second = relay.relay(data)

        self.assertEqual(first, "https://imgbb.test/1.png")
        self.assertEqual(second, "https://imgbb.test/2.png")
        self.assertEqual((freeimage.uploads, imgbb.uploads), (2, 2))

    def test_relay_asset_skips_hosted_frames_and_records_new_urls(self) -> None:
        host = FakeHost("imgbb")
        relay = ImageHostingRelay.from_order(["imgbb"], hosts=[host])
        hosted = MediaAsset(kind="image", origin=AssetOrigin.SYNTHESIZED, urls=["https://provider.test/a.png"])
        local = MediaAsset(kind="image", origin=AssetOrigin.PREDICTED, data=png_bytes())

        self.assertEqual(relay.relay_asset(hosted), "https://provider.test/a.png")
        url = relay.relay_asset(local)
        again = relay.relay_asset(local)

        self.assertEqual(url, again)
        self.assertEqual(local.urls, [url])
        self.assertEqual(host.uploads, 1)

    def test_resynthesized_frame_replaces_the_local_bytes(self) -> None:
        untrusted = FrameSynthesizer(self.images, image_jobs(self.images), hosted_by_video_provider=False)
        relay = ImageHostingRelay.from_order(["provider", "imgbb"], provider=self.frames, hosts=[FakeHost("imgbb")])
        end_frame = untrusted.synthesize_raw("gulls settle on the pier", origin=AssetOrigin.PREDICTED)
        end_frame.data = png_bytes((250, 10, 10))

        url = relay.relay_asset(end_frame)

        self.assertEqual(url, "https://provider.test/img-2.png")
        self.assertEqual(end_frame.data, self.images.download(url))
        self.assertEqual(end_frame.mime_type, "image/png")
        self.assertIs(end_frame.origin, AssetOrigin.RELAYED)

    def test_host_upload_keeps_the_local_bytes(self) -> None:
        relay = ImageHostingRelay.from_order(["imgbb"], hosts=[FakeHost("imgbb")])
        local = MediaAsset(kind="image", origin=AssetOrigin.PREDICTED, data=png_bytes((250, 10, 10)))
        original = local.data

        relay.relay_asset(local)

        self.assertEqual(local.data, original)
        self.assertIs(local.origin, AssetOrigin.PREDICTED)

    def test_unknown_strategy_name_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ImageHostingRelay.from_order(["provider", "dropbox"], provider=self.frames)

    def test_strategy_names_follow_order(self) -> None:
        relay = ImageHostingRelay.from_order(
            ["imgbb", "provider"], provider=self.frames, hosts=[FakeHost("imgbb")]
        )
        self.assertEqual(relay.strategy_names, ["imgbb", "provider"])


if __name__ == "__main__":
    unittest.main()
