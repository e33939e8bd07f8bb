"""Small helpers for run artifacts and media payloads."""

from __future__ import annotations

import base64
import json
import os
from pathlib import Path
from typing import Any


def ensure_dir(path: str | Path) -> Path:
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def atomic_write(path: str | Path, content: bytes) -> Path:
    """Write ``content`` next to ``path`` first, then swap it in."""
    target = Path(path)
    ensure_dir(target.parent)
    staging = target.with_name(f".{target.name}.partial")
    staging.write_bytes(content)
    os.replace(staging, target)
    return target


def write_text(path: str | Path, content: str) -> Path:
    return atomic_write(path, content.encode("utf-8"))


def write_json(path: str | Path, data: Any) -> Path:
    """Dump ``data`` as indented JSON; datetimes and enums fall back to ``str``."""
    return write_text(path, json.dumps(data, indent=2, ensure_ascii=False, default=str))


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def data_url(data: bytes, mime_type: str) -> str:
    """Inline ``data`` as a ``data:`` URL for APIs that accept embedded images."""
    return f"data:{mime_type};base64,{b64encode(data)}"
