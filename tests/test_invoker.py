"""Tests for codec dispatch and parameter selection."""

import time
from pathlib import Path

import pytest

from conftest import FakeCodec, make_webp
from webp_optimizer.assets import WebPAsset
from webp_optimizer.config import OptimizerConfig
from webp_optimizer.errors import CodecError
from webp_optimizer.invoker import CodecInvoker, fit_within
from webp_optimizer.probe import WebPMetadata


def _asset(name: str, animated: bool | None) -> WebPAsset:
    return WebPAsset(
        source_path=Path("/virtual") / name,
        file_name=name,
        size=100,
        output_path=Path(name),
        is_animated=animated,
    )


@pytest.mark.parametrize(
    "size,limits,expected",
    [
        ((400, 200), (100, 0), (100, 50)),
        ((400, 200), (0, 100), (200, 100)),
        ((400, 200), (100, 100), (100, 50)),
        ((200, 400), (100, 100), (50, 100)),
        ((50, 20), (100, 100), (50, 20)),
        ((400, 200), (0, 0), (400, 200)),
        ((3000, 1), (10, 0), (10, 1)),
    ],
)
def test_fit_within(size, limits, expected):
    assert fit_within(*size, *limits) == expected


def test_animated_params_carry_loop_and_delay():
    invoker = CodecInvoker(FakeCodec(), OptimizerConfig(animation_quality=70, animation_compression=6))
    meta = WebPMetadata(width=64, height=32, pages=3, loop=2, delay=(40, 80, 120))

    params = invoker.animated_params(meta)

    assert params.quality == 70
    assert params.effort == 6
    assert params.loop == 2
    assert params.delay == (40, 80, 120)
    assert params.pages == 3
    assert params.resize is None


def test_animated_params_default_loop_is_infinite():
    invoker = CodecInvoker(FakeCodec(), OptimizerConfig())
    params = invoker.animated_params(WebPMetadata(width=10, height=10, pages=2, loop=None, delay=None))
    assert params.loop == 0
    assert params.delay is None


def test_animated_resize_uses_stacked_canvas():
    invoker = CodecInvoker(FakeCodec(), OptimizerConfig(max_width=32))
    meta = WebPMetadata(width=64, height=48, pages=5, loop=0, delay=(100,) * 5)

    params = invoker.animated_params(meta)

    assert params.resize == (32, 24 * 5)
    assert params.frame_size == (32, 24)


@pytest.mark.asyncio
async def test_dispatch_animated():
    codec = FakeCodec({"a.webp": WebPMetadata(width=8, height=8, pages=96, loop=1, delay=(50,) * 96)})
    invoker = CodecInvoker(codec, OptimizerConfig())

    await invoker.encode(_asset("a.webp", animated=True), make_webp())

    assert len(codec.animated_calls) == 1
    assert not codec.static_calls
    assert codec.animated_calls[0].delay == (50,) * 96


@pytest.mark.asyncio
async def test_dispatch_static_when_animation_disabled():
    codec = FakeCodec()
    invoker = CodecInvoker(codec, OptimizerConfig(optimize_animation=False, quality=55, effort=2))

    await invoker.encode(_asset("a.webp", animated=True), make_webp())

    assert not codec.animated_calls
    assert codec.static_calls[0].quality == 55
    assert codec.static_calls[0].effort == 2
    assert codec.static_calls[0].resize is None
    assert codec.probed == []


@pytest.mark.asyncio
async def test_static_resize_only_when_configured():
    codec = FakeCodec({"big.webp": WebPMetadata(width=800, height=600)})
    invoker = CodecInvoker(codec, OptimizerConfig(max_height=300))

    await invoker.encode(_asset("big.webp", animated=False), make_webp())

    assert codec.static_calls[0].resize == (400, 300)


@pytest.mark.asyncio
async def test_detect_animated_never_raises():
    class Broken(FakeCodec):
        def probe_metadata(self, path):
            raise OSError("corrupt")

    invoker = CodecInvoker(Broken(), OptimizerConfig())
    assert await invoker.detect_animated(_asset("x.webp", None)) is False

    codec = FakeCodec({"x.webp": WebPMetadata(pages=2)})
    assert await CodecInvoker(codec, OptimizerConfig()).detect_animated(_asset("x.webp", None)) is True


@pytest.mark.asyncio
async def test_codec_timeout():
    class Slow(FakeCodec):
        def encode_static(self, data, params):
            time.sleep(0.5)
            return data

    invoker = CodecInvoker(Slow(), OptimizerConfig(codec_timeout=0.05))
    with pytest.raises(CodecError, match="timed out"):
        await invoker.encode(_asset("x.webp", animated=False), make_webp())


@pytest.mark.asyncio
async def test_metadata_read_once_per_asset():
    codec = FakeCodec({"a.webp": WebPMetadata(width=8, height=8, pages=4, delay=(10,) * 4)})
    invoker = CodecInvoker(codec, OptimizerConfig())
    asset = _asset("a.webp", animated=None)

    asset.is_animated = await invoker.detect_animated(asset)
    await invoker.encode(asset, make_webp())

    assert codec.probed == ["a.webp"]
    assert asset.metadata.pages == 4
    assert codec.animated_calls[0].pages == 4
