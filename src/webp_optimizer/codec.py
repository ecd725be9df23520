"""
Codec capability used by the optimizer.

The pipeline only talks to the Codec protocol. PillowCodec is the
default implementation:
- Metadata probing (frame count, loop count, per-frame delays)
- Static re-encoding with optional resize
- Animated re-encoding that keeps loop count and frame delays
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Protocol

from PIL import Image, ImageSequence

from .errors import CodecError
from .probe import WebPMetadata, read_metadata

logger = logging.getLogger(__name__)

_PIL_ERRORS = (OSError, ValueError, EOFError, Image.DecompressionBombError)


@dataclass(frozen=True)
class StaticParams:
    quality: int
    effort: int
    resize: tuple[int, int] | None = None


@dataclass(frozen=True)
class AnimatedParams:
    """
    Parameters for an animated encode.

    resize is the stacked-frame canvas: single-frame width by
    single-frame height times the number of pages.
    """
    quality: int
    effort: int
    loop: int = 0
    delay: tuple[int, ...] | None = None
    pages: int = 1
    resize: tuple[int, int] | None = None

    @property
    def frame_size(self) -> tuple[int, int] | None:
        if self.resize is None:
            return None
        width, canvas_height = self.resize
        return width, max(1, canvas_height // max(1, self.pages))


class Codec(Protocol):
    def probe_metadata(self, path: Path) -> WebPMetadata: ...

    def encode_static(self, data: bytes, params: StaticParams) -> bytes: ...

    def encode_animated(self, data: bytes, params: AnimatedParams) -> bytes: ...


def _frame_mode(img: Image.Image) -> str:
    has_alpha = img.mode in ("RGBA", "LA") or (
        img.mode == "P" and "transparency" in img.info
    )
    return "RGBA" if has_alpha else "RGB"


class PillowCodec:
    """Codec backed by Pillow's WebP plugin."""

    def probe_metadata(self, path: Path) -> WebPMetadata:
        try:
            return read_metadata(path)
        except _PIL_ERRORS as e:
            raise CodecError("probe", f"{path.name}: {e}") from e

    def encode_static(self, data: bytes, params: StaticParams) -> bytes:
        try:
            with Image.open(BytesIO(data)) as img:
                frame = img.convert(_frame_mode(img))

            if params.resize is not None:
                frame = frame.resize(params.resize, Image.Resampling.LANCZOS)

            out = BytesIO()
            frame.save(out, format="WEBP", quality=params.quality, method=params.effort)
        except _PIL_ERRORS as e:
            raise CodecError("static encode", str(e)) from e

        return out.getvalue()

    def encode_animated(self, data: bytes, params: AnimatedParams) -> bytes:
        frame_size = params.frame_size
        try:
            with Image.open(BytesIO(data)) as img:
                frames = []
                for frame in ImageSequence.Iterator(img):
                    frame = frame.convert("RGBA")
                    if frame_size is not None:
                        frame = frame.resize(frame_size, Image.Resampling.LANCZOS)
                    frames.append(frame)

            if not frames:
                raise CodecError("animated encode", "no frames decoded")

            save_kwargs = {
                "format": "WEBP",
                "save_all": True,
                "append_images": frames[1:],
                "quality": params.quality,
                "method": params.effort,
                "loop": params.loop,
            }
            if params.delay:
                save_kwargs["duration"] = list(params.delay)

            out = BytesIO()
            frames[0].save(out, **save_kwargs)
        except _PIL_ERRORS as e:
            raise CodecError("animated encode", str(e)) from e

        logger.debug("Encoded %d frames", len(frames))
        return out.getvalue()
