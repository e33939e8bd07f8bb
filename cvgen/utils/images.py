"""Pillow helpers for frames travelling between providers."""

from __future__ import annotations

from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

_FORMAT_MIME = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}

MAX_UPLOAD_DIM = 2048


def sniff_mime(data: bytes, default: str = "image/png") -> str:
    """Return the MIME type Pillow detects for ``data``."""
    try:
        with Image.open(BytesIO(data)) as image:
            return _FORMAT_MIME.get(image.format or "", default)
    except (UnidentifiedImageError, OSError):
        return default


def prepare_for_upload(data: bytes, max_dim: int = MAX_UPLOAD_DIM) -> bytes:
    """Flatten orientation and shrink oversized frames before hosting them.

    Unreadable payloads are returned untouched so the host can decide.
    """
    try:
        with Image.open(BytesIO(data)) as image:
            if max(image.size) <= max_dim and image.format in {"PNG", "JPEG"}:
                return data
            if getattr(image, "n_frames", 1) > 1:
                image.seek(0)
            image = ImageOps.exif_transpose(image)
            if image.mode not in {"RGB", "RGBA"}:
                image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
            if max(image.size) > max_dim:
                image.thumbnail((max_dim, max_dim), Image.LANCZOS)

            has_alpha = "A" in image.getbands()
            output = BytesIO()
            if has_alpha:
                image.save(output, format="PNG", optimize=True)
            else:
                image.save(output, format="JPEG", quality=90, optimize=True)
            return output.getvalue()
    except (UnidentifiedImageError, OSError):
        return data
