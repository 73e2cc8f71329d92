"""
Camera frame helpers: decode an uploaded frame, crop a region around the tap
and downscale before it is sent to the vision collaborator.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from domain.errors import FrameTooLargeError, InvalidFrameError
from domain.models import Point2D

logger = logging.getLogger(__name__)

JPEG_QUALITY = 85


def decode_frame(data: Optional[str], max_bytes: int) -> bytes:
    """
    Decode a base64 frame, accepting an optional `data:image/...;base64,` prefix.

    Raises InvalidFrameError when the payload is empty, not base64, or larger
    than max_bytes once decoded.
    """
    if not data or not data.strip():
        raise InvalidFrameError("Missing image")
    payload = data.strip()
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    # Cheap pre-check before decoding: base64 expands by 4/3.
    if len(payload) * 3 // 4 > max_bytes + 3:
        raise FrameTooLargeError("Image too large", context={"max_bytes": max_bytes})
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidFrameError("Image is not valid base64")
    if not raw:
        raise InvalidFrameError("Missing image")
    if len(raw) > max_bytes:
        raise FrameTooLargeError("Image too large", context={"max_bytes": max_bytes, "size": len(raw)})
    return raw


def _open(image_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        logger.warning("Unreadable frame: %s", exc)
        raise InvalidFrameError("Unreadable image")
    return ImageOps.exif_transpose(img).convert("RGB")


def _to_jpeg(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=JPEG_QUALITY)
    return buf.getvalue()


def roi_box(width: int, height: int, tap: Point2D, roi_size: int) -> tuple[int, int, int, int]:
    """Square box of side roi_size centered on the tap, shifted to stay inside the frame."""
    side_w = min(roi_size, width)
    side_h = min(roi_size, height)
    cx = min(max(tap.x, 0.0), 1.0) * width
    cy = min(max(tap.y, 0.0), 1.0) * height
    left = int(round(cx - side_w / 2))
    top = int(round(cy - side_h / 2))
    left = min(max(left, 0), width - side_w)
    top = min(max(top, 0), height - side_h)
    return left, top, left + side_w, top + side_h


def extract_roi(image_bytes: bytes, tap: Point2D, roi_size: int) -> bytes:
    """Crop a region of interest around a normalized tap point, returned as JPEG."""
    if roi_size <= 0:
        raise ValueError("roi_size must be positive")
    img = _open(image_bytes)
    box = roi_box(img.width, img.height, tap, roi_size)
    logger.debug("Cropping ROI %s from %dx%d frame", box, img.width, img.height)
    return _to_jpeg(img.crop(box))


def downscale_frame(image_bytes: bytes, max_dim: int) -> bytes:
    """Shrink so the longest side is at most max_dim, preserving aspect; re-encode as JPEG."""
    img = _open(image_bytes)
    if max(img.size) > max_dim > 0:
        img.thumbnail((max_dim, max_dim), resample=Image.Resampling.LANCZOS)
    return _to_jpeg(img)
