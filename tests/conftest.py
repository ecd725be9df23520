"""Shared fixtures for optimizer tests."""

from __future__ import annotations

import struct
import threading
from pathlib import Path

import pytest
from PIL import Image, features

from webp_optimizer.codec import AnimatedParams, StaticParams
from webp_optimizer.errors import CodecError
from webp_optimizer.probe import WebPMetadata

requires_webp = pytest.mark.skipif(not features.check("webp"), reason="Pillow built without WebP")

FAIL_MARKER = b"FAIL"
ENCODED_BODY = b"VP8 encoded"

FRAME_COLORS = [
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 0),
]


def make_webp(body: bytes = b"VP8 payload", size: int = 0) -> bytes:
    """Minimal RIFF/WEBP container, padded with zeros up to size bytes."""
    data = b"RIFF" + struct.pack("<I", 4 + len(body)) + b"WEBP" + body
    if size > len(data):
        data += b"\x00" * (size - len(data))
    return data


def write_static_webp(path: Path, size: tuple[int, int] = (40, 20), color=(200, 30, 30)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format="WEBP", quality=100)
    return path


def write_animated_webp(
    path: Path,
    frames: int = 3,
    size: tuple[int, int] = (32, 24),
    durations: list[int] | None = None,
    loop: int = 0,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    images = [Image.new("RGB", size, FRAME_COLORS[i % len(FRAME_COLORS)]) for i in range(frames)]
    images[0].save(
        path,
        format="WEBP",
        save_all=True,
        append_images=images[1:],
        duration=durations or [100] * frames,
        loop=loop,
        quality=90,
    )
    return path


class FakeCodec:
    """
    Codec double that never decodes image data.

    Encoding fails for any input containing FAIL_MARKER. Metadata comes
    from the metadata dict keyed by file name.
    """

    def __init__(self, metadata: dict[str, WebPMetadata] | None = None):
        self.metadata = metadata or {}
        self.static_calls: list[StaticParams] = []
        self.animated_calls: list[AnimatedParams] = []
        self.probed: list[str] = []
        self._lock = threading.Lock()

    @property
    def encode_count(self) -> int:
        return len(self.static_calls) + len(self.animated_calls)

    def probe_metadata(self, path: Path) -> WebPMetadata:
        with self._lock:
            self.probed.append(path.name)
        if path.name not in self.metadata:
            return WebPMetadata(width=64, height=64, pages=1)
        return self.metadata[path.name]

    def encode_static(self, data: bytes, params: StaticParams) -> bytes:
        with self._lock:
            self.static_calls.append(params)
        return self._encode(data)

    def encode_animated(self, data: bytes, params: AnimatedParams) -> bytes:
        with self._lock:
            self.animated_calls.append(params)
        return self._encode(data)

    def _encode(self, data: bytes) -> bytes:
        if FAIL_MARKER in data:
            raise CodecError("encode", "fake failure")
        return make_webp(ENCODED_BODY)


@pytest.fixture
def fake_codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture
def src_dir(tmp_path: Path) -> Path:
    d = tmp_path / "src"
    d.mkdir()
    return d


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    d = tmp_path / "dist"
    d.mkdir()
    return d
