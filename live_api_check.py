#!/usr/bin/env python3
"""Run live connectivity checks against Luma, Gemini, OpenAI and the image hosts."""

from __future__ import annotations

import argparse
import sys
import textwrap
from pathlib import Path
from typing import Iterable, List, Tuple

from cvgen.polling import PollingJobClient
from cvgen.services.gemini import GeminiVisionClient
from cvgen.services.hosting import FreeImageHost, ImgBBHost
from cvgen.services.luma import LumaClient
from cvgen.services.openai_vision import OpenAIVisionClient
from cvgen.types import ImageRequest, JobKind
from cvgen.utils.images import sniff_mime

VISION_INSTRUCTION = "Describe this image in two sentences."


def _read_image(raw_path: str | None) -> bytes:
    if not raw_path:
        raise ValueError("this check requires a sample image via --image")
    path = Path(raw_path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Sample image not found: {raw_path}")
    return path.read_bytes()


def run_luma_test(api_key: str, api_url: str | None, prompt: str) -> str:
    client = LumaClient(api_key=api_key, api_url=api_url, use_mock=False)
    jobs = PollingJobClient(client.images, JobKind.IMAGE, poll_interval=3.0, max_attempts=30)
    result = jobs.run(ImageRequest(prompt=prompt))
    return result.url


def run_gemini_test(api_key: str, image_path: str | None) -> str:
    data = _read_image(image_path)
    client = GeminiVisionClient(api_key=api_key, use_mock=False)
    return client.analyze(data, VISION_INSTRUCTION, mime_type=sniff_mime(data))


def run_openai_test(api_key: str, api_url: str | None, image_path: str | None) -> str:
    data = _read_image(image_path)
    client = OpenAIVisionClient(api_key=api_key, api_url=api_url, use_mock=False)
    return client.analyze(data, VISION_INSTRUCTION, mime_type=sniff_mime(data))


def run_host_test(host: FreeImageHost | ImgBBHost, image_path: str | None) -> str:
    return host.upload(_read_image(image_path))


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            Smoke-test connectivity for Luma, Gemini, OpenAI, freeimage.host and imgbb.
            Each check only runs when the corresponding --*-key argument is supplied; otherwise it is skipped.
            """
        ),
    )
    parser.add_argument("--prompt", default="A lighthouse on a cliff at dusk, waves crashing below.", help="Prompt for the Luma image check.")
    parser.add_argument("--image", help="Sample image used by the vision and hosting checks.")

    parser.add_argument("--luma-key", help="Luma API key.")
    parser.add_argument("--luma-url", help="Optional custom Luma API URL.")
    parser.add_argument("--gemini-key", help="Gemini API key.")
    parser.add_argument("--openai-key", help="OpenAI API key.")
    parser.add_argument("--openai-url", help="Optional OpenAI-compatible base URL.")
    parser.add_argument("--freeimage-key", help="freeimage.host API key.")
    parser.add_argument("--imgbb-key", help="imgbb API key.")
    return parser.parse_args(list(argv))


def main(argv: Iterable[str]) -> int:
    args = parse_args(argv)

    checks = [
        ("Luma", args.luma_key, lambda: run_luma_test(args.luma_key, args.luma_url, args.prompt)),
        ("Gemini", args.gemini_key, lambda: run_gemini_test(args.gemini_key, args.image)),
        ("OpenAI", args.openai_key, lambda: run_openai_test(args.openai_key, args.openai_url, args.image)),
        (
            "freeimage",
            args.freeimage_key,
            lambda: run_host_test(FreeImageHost(args.freeimage_key, use_mock=False), args.image),
        ),
        ("imgbb", args.imgbb_key, lambda: run_host_test(ImgBBHost(args.imgbb_key, use_mock=False), args.image)),
    ]

    results: List[Tuple[str, bool, str]] = []
    for name, key, check in checks:
        if not key:
            flag = name.lower()
            results.append((name, False, f"Skipped (no --{flag}-key provided)"))
            continue
        try:
            results.append((name, True, check()))
        except Exception as exc:  # noqa: BLE001 - surface connectivity failures
            results.append((name, False, repr(exc)))

    any_failure = False
    for name, ok, detail in results:
        status = "SUCCESS" if ok else "FAIL"
        print(f"[{name}] {status}: {detail}")
        if not ok and "Skipped" not in detail:
            any_failure = True

    return 0 if not any_failure else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
