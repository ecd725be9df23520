"""
Validity and metadata checks for WebP files.

The RIFF/WEBP header check is the only part of the format parsed here;
everything else is read through Pillow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageSequence

logger = logging.getLogger(__name__)

RIFF_MAGIC = b"RIFF"
WEBP_MAGIC = b"WEBP"
HEADER_LENGTH = 12


@dataclass(frozen=True)
class WebPMetadata:
    """Image metadata. width/height describe a single frame."""
    width: int = 0
    height: int = 0
    pages: int = 1
    loop: int | None = None
    delay: tuple[int, ...] | None = None
    size: int = 0

    @property
    def is_animated(self) -> bool:
        return self.pages > 1


def is_valid_webp(buf: bytes | bytearray | memoryview | None) -> bool:
    """True if buf starts with a RIFF container holding a WEBP payload."""
    if not isinstance(buf, (bytes, bytearray, memoryview)):
        return False
    if len(buf) < HEADER_LENGTH:
        return False
    return bytes(buf[0:4]) == RIFF_MAGIC and bytes(buf[8:12]) == WEBP_MAGIC


def read_metadata(path: Path) -> WebPMetadata:
    """
    Read frame count, loop count and per-frame delays with Pillow.

    Raises OSError: file missing or not decodable
    """
    with Image.open(path) as img:
        width, height = img.size
        pages = getattr(img, "n_frames", 1)
        loop = img.info.get("loop")

        delay: tuple[int, ...] | None = None
        if pages > 1:
            durations = []
            for frame in ImageSequence.Iterator(img):
                frame.load()
                durations.append(int(frame.info.get("duration", 0)))
            delay = tuple(durations)

    logger.debug("Metadata for %s: %dx%d, %d page(s)", path.name, width, height, pages)
    return WebPMetadata(
        width=width,
        height=height,
        pages=pages,
        loop=loop,
        delay=delay,
        size=path.stat().st_size,
    )
