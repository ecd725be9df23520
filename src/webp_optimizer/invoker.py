"""
Codec dispatch for one asset.

Chooses the static or animated path, builds the codec parameters from
the resolved config, and runs the blocking codec call off the event loop
with a timeout.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Callable, TypeVar

from .assets import WebPAsset
from .codec import AnimatedParams, Codec, StaticParams
from .config import OptimizerConfig
from .errors import CodecError
from .probe import WebPMetadata

logger = logging.getLogger(__name__)

T = TypeVar("T")


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """
    Scale (width, height) down to fit the limits, keeping aspect ratio.

    A limit of 0 leaves that axis unconstrained. Never enlarges.
    """
    if width <= 0 or height <= 0:
        return width, height

    scale = 1.0
    if max_width > 0:
        scale = min(scale, max_width / width)
    if max_height > 0:
        scale = min(scale, max_height / height)

    return max(1, round(width * scale)), max(1, round(height * scale))


class CodecInvoker:
    """Runs codec operations for the pipeline."""

    def __init__(self, codec: Codec, config: OptimizerConfig):
        self.codec = codec
        self.config = config

    async def call(self, operation: str, fn: Callable[..., T], *args) -> T:
        """Run a blocking codec call in a worker thread, bounded by codec_timeout."""
        pending = asyncio.to_thread(functools.partial(fn, *args))
        timeout = self.config.codec_timeout
        if timeout <= 0:
            return await pending
        try:
            return await asyncio.wait_for(pending, timeout=timeout)
        except asyncio.TimeoutError:
            raise CodecError(operation, f"timed out after {timeout}s") from None

    async def probe(self, asset: WebPAsset) -> WebPMetadata:
        """Probe once per asset; the result is kept on asset.metadata."""
        if asset.metadata is None:
            asset.metadata = await self.call("probe", self.codec.probe_metadata, asset.source_path)
        return asset.metadata

    async def detect_animated(self, asset: WebPAsset) -> bool:
        """True if the asset has more than one page. Never raises."""
        try:
            meta = await self.probe(asset)
        except Exception as e:
            logger.debug("Animation probe failed for %s: %s", asset.file_name, e)
            return False
        return meta.pages > 1

    async def encode(self, asset: WebPAsset, data: bytes) -> bytes:
        """Encode data on the animated or static path."""
        if asset.is_animated and self.config.optimize_animation:
            meta = await self.probe(asset)
            params = self.animated_params(meta)
            logger.debug(
                "Animated encode %s: %d pages, loop=%s", asset.file_name, params.pages, params.loop
            )
            return await self.call("animated encode", self.codec.encode_animated, data, params)

        resize = None
        if self.config.resize_enabled:
            meta = await self.probe(asset)
            resize = self._resize_target(meta.width, meta.height)

        params = StaticParams(
            quality=self.config.quality,
            effort=self.config.effort,
            resize=resize,
        )
        return await self.call("static encode", self.codec.encode_static, data, params)

    def animated_params(self, meta: WebPMetadata) -> AnimatedParams:
        pages = max(1, meta.pages)
        loop = meta.loop if isinstance(meta.loop, int) and meta.loop >= 0 else 0

        resize = None
        if self.config.resize_enabled:
            frame = self._resize_target(meta.width, meta.height)
            if frame is not None:
                # the codec expects all pages stacked vertically
                resize = (frame[0], frame[1] * pages)

        return AnimatedParams(
            quality=self.config.animation_quality,
            effort=self.config.animation_compression,
            loop=loop,
            delay=meta.delay,
            pages=pages,
            resize=resize,
        )

    def _resize_target(self, width: int, height: int) -> tuple[int, int] | None:
        target = fit_within(width, height, self.config.max_width, self.config.max_height)
        if target == (width, height) or width <= 0 or height <= 0:
            return None
        return target
