"""Raster image helpers: header probing and display scaling.

Only PNG and baseline/progressive JPEG headers are understood.  No pixel
data is decoded.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
_JPEG_SOI = b"\xff\xd8"

# SOF0..SOF15 share 0xC0-0xCF with DHT (C4), JPG (C8) and DAC (CC).
_NON_FRAME_MARKERS = frozenset({0xC4, 0xC8, 0xCC})

_MIN_HEADER_BYTES = 24


@dataclass(frozen=True)
class ImageSize:
    width: int
    height: int


def probe_image_size(data: bytes) -> Optional[ImageSize]:
    """Return the pixel size stored in a PNG or JPEG header, or ``None``."""
    if len(data) < _MIN_HEADER_BYTES:
        return None
    if data.startswith(PNG_SIGNATURE):
        width, height = struct.unpack(">II", data[16:24])
        return ImageSize(width, height)
    if data.startswith(_JPEG_SOI):
        return _probe_jpeg(data)
    return None


def _probe_jpeg(data: bytes) -> Optional[ImageSize]:
    offset = 2
    while offset + 9 < len(data):
        if data[offset] != 0xFF:
            offset += 1
            continue
        marker = data[offset + 1]
        (length,) = struct.unpack(">H", data[offset + 2:offset + 4])
        if 0xC0 <= marker <= 0xCF and marker not in _NON_FRAME_MARKERS:
            height, width = struct.unpack(">HH", data[offset + 5:offset + 9])
            return ImageSize(width, height)
        if length < 2:
            break
        offset += 2 + length
    return None


def scale_to_max_width(width: int, height: int, max_width: int) -> ImageSize:
    """Shrink (never enlarge) *width* x *height* to fit *max_width*."""
    if width <= max_width:
        return ImageSize(width, height)
    ratio = max_width / width
    return ImageSize(round(width * ratio), round(height * ratio))
