"""Configuration, estimates, assembly and vendor client plumbing."""

from __future__ import annotations

import os
import tempfile
import threading
import unittest
from io import BytesIO
from pathlib import Path
from unittest import mock

import requests
from PIL import Image

from cvgen.assembly import SegmentAssembler
from cvgen.config import PipelineConfig
from cvgen.errors import HostingError
from cvgen.estimates import cost_breakdown, estimate_cost, estimate_time, planned_segments
from cvgen.services.gemini import mock_analysis
from cvgen.services.hosting import FreeImageHost, ImgBBHost, _FormUploadHost
from cvgen.services.luma import LumaClient
from cvgen.types import (
    AssetOrigin,
    JobState,
    Keyframes,
    MediaAsset,
    PipelineRun,
    Segment,
    SegmentDuration,
    SegmentStage,
    VideoRequest,
)
from cvgen.utils.http import ThreadSessions
from cvgen.utils.images import prepare_for_upload, sniff_mime
from cvgen.utils.prompts import load_prompt

from fakes import png_bytes


class FakeResponse:
    def __init__(self, payload: dict) -> None:
        self._payload = payload
        self.content = b"bytes"

    def raise_for_status(self) -> None:
        return None

    def json(self) -> dict:
        return self._payload


class FakeSession:
    def __init__(self, payload: dict) -> None:
        self.payload = payload
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append(("post", url, kwargs))
        return FakeResponse(self.payload)

    def get(self, url, **kwargs):
        self.calls.append(("get", url, kwargs))
        return FakeResponse(self.payload)


class PipelineConfigTest(unittest.TestCase):
    def test_defaults_are_offline(self) -> None:
        config = PipelineConfig()
        self.assertTrue(config.enable_mock_generation)
        self.assertEqual(config.hosting_order, ["provider", "freeimage", "imgbb"])
        self.assertEqual(config.max_duration_sec, 60)

    def test_from_env_reads_prefixed_and_vendor_variables(self) -> None:
        env = {
            "CVGEN_ENABLE_MOCKS": "false",
            "CVGEN_HOSTING_ORDER": "imgbb, provider",
            "CVGEN_RUN_TIMEOUT_SEC": "900",
            "CVGEN_SEGMENT_DURATION": "5",
            "CVGEN_VIDEO_MAX_ATTEMPTS": "12",
            "CVGEN_VISION_PROVIDER": "openai",
            "CVGEN_END_FRAME_PROVIDER": "luma",
            "LUMA_API_KEY": "luma-key",
            "IMGBB_API_KEY": "imgbb-key",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = PipelineConfig.from_env()

        self.assertFalse(config.enable_mock_generation)
        self.assertEqual(config.hosting_order, ["imgbb", "provider"])
        self.assertEqual(config.run_timeout_sec, 900.0)
        self.assertEqual(config.default_segment_duration, 5)
        self.assertEqual(config.video_max_attempts, 12)
        self.assertEqual(config.vision_provider, "openai")
        self.assertEqual(config.end_frame_provider, "luma")
        self.assertEqual(config.luma_api_key, "luma-key")
        self.assertEqual(config.imgbb_api_key, "imgbb-key")
        self.assertIsNone(config.gemini_api_key)

    def test_from_env_without_variables_matches_defaults(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            config = PipelineConfig.from_env()
        self.assertEqual(config, PipelineConfig())


class EstimatesTest(unittest.TestCase):
    def test_thirty_seconds_of_nine_second_segments(self) -> None:
        self.assertEqual(planned_segments(30, "9s"), 4)
        self.assertEqual(estimate_time(30, 9), 15 + 4 * 65)
        self.assertAlmostEqual(estimate_cost(30, 9), 1.34)

    def test_thirty_seconds_of_five_second_segments(self) -> None:
        self.assertEqual(planned_segments(30, SegmentDuration.FIVE), 6)
        self.assertAlmostEqual(estimate_cost(30, 5), 2.00)

    def test_breakdown_counts_the_start_frame(self) -> None:
        breakdown = cost_breakdown(7)
        self.assertAlmostEqual(breakdown.frames, 0.16)
        self.assertAlmostEqual(breakdown.vision, 0.07)
        self.assertAlmostEqual(breakdown.videos, 2.10)


def _run_with_segments(stages) -> PipelineRun:
    frame = MediaAsset(kind="image", origin=AssetOrigin.SYNTHESIZED, urls=["https://provider.test/f.png"])
    run = PipelineRun(
        run_id="run-1",
        prompt="p",
        style="cinematic",
        target_duration_sec=9 * len(stages),
        segment_duration=SegmentDuration.NINE,
    )
    for index, stage in enumerate(stages):
        video = MediaAsset(kind="video", origin=AssetOrigin.SYNTHESIZED, urls=[f"https://provider.test/{index}.mp4"])
        run.segments.append(
            Segment(index=index, start_frame=frame, requested_duration=SegmentDuration.NINE, video=video, stage=stage)
        )
    return run


class SegmentAssemblerTest(unittest.TestCase):
    def test_dry_run_writes_manifest_of_completed_segments_only(self) -> None:
        run = _run_with_segments([SegmentStage.CHAINED, SegmentStage.FAILED, SegmentStage.CHAINED])
        with tempfile.TemporaryDirectory() as tmp:
            assembler = SegmentAssembler(lambda url: b"", tmp, dry_run=True)

            manifest = assembler.assemble(run, Path(tmp) / "out.mp4")

            self.assertEqual(
                manifest.read_text(encoding="utf-8").splitlines(),
                ["file 'https://provider.test/0.mp4'", "file 'https://provider.test/2.mp4'"],
            )

    def test_downloads_then_concatenates_with_ffmpeg(self) -> None:
        run = _run_with_segments([SegmentStage.CHAINED, SegmentStage.CHAINED])
        downloaded = []

        def download(url: str) -> bytes:
            downloaded.append(url)
            return b"\x00\x00\x00\x18ftypmp42"

        with tempfile.TemporaryDirectory() as tmp:
            assembler = SegmentAssembler(download, tmp)
            completed = mock.Mock(returncode=0, stdout="", stderr="")
            with mock.patch("cvgen.assembly.subprocess.run", return_value=completed) as run_ffmpeg:
                output = assembler.assemble(run, Path(tmp) / "final.mp4")

            self.assertEqual(output, Path(tmp) / "final.mp4")
            self.assertEqual(downloaded, ["https://provider.test/0.mp4", "https://provider.test/1.mp4"])
            command = run_ffmpeg.call_args.args[0]
            self.assertEqual(command[:6], ["ffmpeg", "-y", "-f", "concat", "-safe", "0"])
            manifest = (Path(tmp) / "run-1" / "concat.txt").read_text(encoding="utf-8")
            self.assertIn("segment-01.mp4", manifest)
            self.assertIn("segment-02.mp4", manifest)

    def test_ffmpeg_failure_is_reported(self) -> None:
        run = _run_with_segments([SegmentStage.CHAINED])
        with tempfile.TemporaryDirectory() as tmp:
            assembler = SegmentAssembler(lambda url: b"data", tmp)
            failed = mock.Mock(returncode=1, stdout="", stderr="Invalid data found")
            with mock.patch("cvgen.assembly.subprocess.run", return_value=failed):
                with self.assertRaises(RuntimeError) as ctx:
                    assembler.assemble(run, Path(tmp) / "final.mp4")
        self.assertIn("Invalid data found", str(ctx.exception))

    def test_nothing_to_assemble(self) -> None:
        run = _run_with_segments([SegmentStage.FAILED])
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ValueError):
                SegmentAssembler(lambda url: b"", tmp, dry_run=True).assemble(run, Path(tmp) / "x.mp4")


class LumaClientTest(unittest.TestCase):
    def test_video_submission_payload_carries_both_keyframes(self) -> None:
        session = FakeSession({"id": "gen-42"})
        client = LumaClient(api_key="k", use_mock=False, session=session)
        request = VideoRequest(
            prompt="drift",
            duration=SegmentDuration.FIVE,
            keyframes=Keyframes(frame0="https://a.test/0.png", frame1="https://a.test/1.png"),
        )

        job_id = client.videos.submit(request)

        _, url, kwargs = session.calls[0]
        payload = kwargs["json"]
        self.assertEqual(job_id, "gen-42")
        self.assertTrue(url.endswith("/generations"))
        self.assertEqual(payload["duration"], "5s")
        self.assertEqual(payload["model"], "ray-2")
        self.assertEqual(payload["keyframes"]["frame0"], {"type": "image", "url": "https://a.test/0.png"})
        self.assertEqual(payload["keyframes"]["frame1"], {"type": "image", "url": "https://a.test/1.png"})
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer k")

    def test_poll_maps_states_and_assets(self) -> None:
        dreaming = LumaClient(api_key="k", use_mock=False, session=FakeSession({"state": "dreaming"}))
        self.assertIs(dreaming.poll("gen-1").state, JobState.POLLING)

        done = LumaClient(
            api_key="k",
            use_mock=False,
            session=FakeSession(
                {"state": "completed", "assets": {"video": "https://cdn.test/v.mp4", "image": "https://cdn.test/t.jpg"}}
            ),
        )
        status = done.poll("gen-1")
        self.assertIs(status.state, JobState.COMPLETED)
        self.assertEqual((status.url, status.thumbnail_url), ("https://cdn.test/v.mp4", "https://cdn.test/t.jpg"))

        failed = LumaClient(
            api_key="k", use_mock=False, session=FakeSession({"state": "failed", "failure_reason": "moderation"})
        )
        self.assertEqual(failed.poll("gen-1").failure_reason, "moderation")

    def test_real_calls_require_a_key(self) -> None:
        client = LumaClient(use_mock=False, session=FakeSession({}))
        with self.assertRaises(ValueError):
            client.poll("gen-1")

    def test_mock_mode_is_deterministic(self) -> None:
        client = LumaClient()
        request = VideoRequest(prompt="drift", duration=SegmentDuration.NINE, keyframes=Keyframes(frame0="u"))
        first, second = client.videos.submit(request), client.videos.submit(request)
        self.assertEqual(first, second)
        status = client.videos.poll(first)
        self.assertIs(status.state, JobState.COMPLETED)
        self.assertEqual(sniff_mime(client.download(status.thumbnail_url)), "image/png")


class HostingClientTest(unittest.TestCase):
    def test_imgbb_reads_url_from_data(self) -> None:
        session = FakeSession({"success": True, "data": {"url": "https://i.ibb.co/x.png"}})
        host = ImgBBHost("key", use_mock=False, session=session)

        self.assertEqual(host.upload(png_bytes()), "https://i.ibb.co/x.png")
        _, url, kwargs = session.calls[0]
        self.assertEqual(kwargs["params"], {"key": "key"})
        self.assertIn("image", kwargs["data"])

    def test_freeimage_reads_nested_image_url(self) -> None:
        session = FakeSession({"image": {"url": "https://iili.io/x.png"}})
        host = FreeImageHost("key", use_mock=False, session=session)

        self.assertEqual(host.upload(png_bytes()), "https://iili.io/x.png")
        self.assertEqual(session.calls[0][2]["data"]["type"], "base64")

    def test_unsuccessful_reply_is_a_hosting_error(self) -> None:
        host = ImgBBHost("key", use_mock=False, session=FakeSession({"success": False}))
        with self.assertRaises(HostingError):
            host.upload(png_bytes())

    def test_missing_key_and_empty_bytes(self) -> None:
        with self.assertRaises(HostingError):
            FreeImageHost(None, use_mock=False).upload(png_bytes())
        with self.assertRaises(HostingError):
            FreeImageHost("key").upload(b"")

    def test_form_upload_base_cannot_be_instantiated(self) -> None:
        with self.assertRaises(TypeError):
            _FormUploadHost("key")

        class NoReplyParser(_FormUploadHost):
            name = "partial"

            def _form(self, encoded: str) -> dict:
                return {"image": encoded}

        with self.assertRaises(TypeError):
            NoReplyParser("key")


class ThreadSessionsTest(unittest.TestCase):
    def test_each_thread_gets_its_own_session(self) -> None:
        sessions = ThreadSessions()
        seen = []
        worker = threading.Thread(target=lambda: seen.append(sessions.current()))
        worker.start()
        worker.join()

        self.assertIs(sessions.current(), sessions.current())
        self.assertIsInstance(seen[0], requests.Session)
        self.assertIsNot(seen[0], sessions.current())

    def test_injected_session_is_shared(self) -> None:
        session = FakeSession({})
        sessions = ThreadSessions(session)
        seen = []
        worker = threading.Thread(target=lambda: seen.append(sessions.current()))
        worker.start()
        worker.join()

        self.assertIs(seen[0], session)
        self.assertIs(sessions.current(), session)


class PromptAndImageUtilsTest(unittest.TestCase):
    def test_missing_placeholder_is_reported(self) -> None:
        with self.assertRaises(KeyError):
            load_prompt("first_frame", {"prompt": "only the prompt"})

    def test_motion_prompt_is_recognised_by_mock_analysis(self) -> None:
        instruction = load_prompt(
            "predict_motion",
            {
                "narrative": "n",
                "segment_number": 1,
                "current_sec": 0,
                "target_sec": 9,
                "future_description": "f",
            },
        )
        self.assertIn("camera drifts", mock_analysis(png_bytes(), instruction))

    def test_oversized_frames_are_shrunk_for_upload(self) -> None:
        buffer = BytesIO()
        Image.new("RGB", (3000, 1500), (10, 10, 10)).save(buffer, format="PNG")

        prepared = prepare_for_upload(buffer.getvalue(), max_dim=1024)

        with Image.open(BytesIO(prepared)) as image:
            self.assertEqual(image.format, "JPEG")
            self.assertEqual(max(image.size), 1024)

    def test_small_png_is_uploaded_unchanged(self) -> None:
        data = png_bytes()
        self.assertEqual(prepare_for_upload(data), data)


if __name__ == "__main__":
    unittest.main()
