"""
WebP optimization pipeline.

Each asset goes through the same checks, in order:
1. Header check (scan mode only) -> fallback copy if not a WebP
2. Size gate -> pass-through copy if small, skip if too large (scan mode)
3. Change cache (manifest mode only) -> copy if unchanged
4. Animation detection
5. Encode, then atomically replace the output
Any failure along the way copies the original bytes instead.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Literal, Mapping

from .assets import EXCLUDED_DIRS, WebPAsset, resolve_manifest, scan_directory
from .batch import run_waves
from .cache import ChangeCache, MemoryCache, lookup_fresh, remember
from .codec import Codec, PillowCodec
from .config import OptimizerConfig
from .invoker import CodecInvoker
from .materialize import Materializer
from .probe import is_valid_webp
from .results import AssetOutcome, OptimizationResult, Outcome, Progress, RunSummary, format_bytes

logger = logging.getLogger(__name__)

Mode = Literal["scan", "manifest"]


class WebPProcessor:
    """
    Runs the optimization pipeline for one build.

    The change cache belongs to the processor and is shared by every run
    made through it.
    """

    def __init__(
        self,
        config: OptimizerConfig,
        codec: Codec | None = None,
        cache: ChangeCache | None = None,
        on_progress: Callable[[Progress], None] | None = None,
    ):
        self.config = config
        self.codec = codec or PillowCodec()
        self.cache = cache if cache is not None else MemoryCache()
        self.invoker = CodecInvoker(self.codec, config)
        self._on_progress = on_progress
        self._narrate = logger.info if config.verbose else logger.debug

    async def process_directory(
        self,
        root: Path,
        out_dir: Path,
        exclude_dirs: frozenset[str] = EXCLUDED_DIRS,
    ) -> RunSummary:
        """
        Optimize every WebP under root, mirroring the tree into out_dir.

        When out_dir lies inside root it is left out of the scan.
        """
        assets = list(scan_directory(Path(root), exclude_dirs, exclude_paths=[Path(out_dir)]))
        if not assets:
            self._narrate("No WebP files found in directory: %s", root)
            return RunSummary()

        self._narrate("Found %d WebP files. Starting optimization...", len(assets))
        return await self.run(assets, out_dir, "scan")

    async def process_manifest(
        self,
        manifest: Mapping[str, Any],
        out_dir: Path,
        cwd: Path | None = None,
    ) -> RunSummary:
        """Optimize the WebP entries of a build manifest in place."""
        assets = resolve_manifest(manifest, Path(out_dir), cwd)
        return await self.process_bundle_assets(assets, out_dir)

    async def process_bundle_assets(self, assets: Iterable[WebPAsset], out_dir: Path) -> RunSummary:
        assets = list(assets)
        if not assets:
            self._narrate("No WebP assets to process.")
            return RunSummary()

        self._narrate("Processing %d WebP assets from bundle...", len(assets))
        return await self.run(assets, out_dir, "manifest")

    async def run(self, assets: list[WebPAsset], out_dir: Path, mode: Mode) -> RunSummary:
        """Process assets in waves of concurrent_images."""
        summary = RunSummary(total=len(assets))
        materializer = Materializer(Path(out_dir))
        started = time.monotonic()

        async def worker(asset: WebPAsset) -> AssetOutcome:
            outcome = await self.process_asset(asset, materializer, mode)
            summary.record(outcome)
            return outcome

        def on_wave(number: int, completed: int) -> None:
            summary.waves = number
            progress = Progress(
                wave=number,
                completed=completed,
                total=summary.total,
                processed=summary.processed,
            )
            self._narrate("Progress: %d%% (%d/%d)", progress.percent, completed, summary.total)
            if self._on_progress is not None:
                self._on_progress(progress)

        await run_waves(assets, self.config.concurrent_images, worker, on_wave)

        summary.elapsed = time.monotonic() - started
        self._narrate(
            "Optimization completed! Processed %d/%d files.", summary.processed, summary.total
        )
        return summary

    async def process_asset(
        self, asset: WebPAsset, materializer: Materializer, mode: Mode
    ) -> AssetOutcome:
        """Take one asset to a terminal state. Never raises for per-asset errors."""
        cfg = self.config
        name = asset.file_name
        self._narrate("Processing: %s (%s)", name, format_bytes(asset.size))

        try:
            data: bytes | None = None
            if mode == "scan":
                data = await asyncio.to_thread(asset.source_path.read_bytes)
                if not is_valid_webp(data):
                    return await self._fallback(asset, materializer, "invalid WebP header")

            if cfg.skip_if_smaller > 0 and asset.size < cfg.skip_if_smaller:
                self._narrate(
                    "File already small enough (%s < %s), copying: %s",
                    format_bytes(asset.size), format_bytes(cfg.skip_if_smaller), name,
                )
                await asyncio.to_thread(materializer.copy_original, asset)
                return AssetOutcome(name, Outcome.PASS_THROUGH)

            if mode == "scan" and cfg.max_file_size > 0 and asset.size > cfg.max_file_size:
                self._narrate(
                    "File too large (%s > %s), skipping: %s",
                    format_bytes(asset.size), format_bytes(cfg.max_file_size), name,
                )
                return AssetOutcome(name, Outcome.SKIP)

            if mode == "manifest" and lookup_fresh(self.cache, asset.source_path) is not None:
                self._narrate("File unchanged, using cache: %s", name)
                await asyncio.to_thread(materializer.copy_original, asset)
                return AssetOutcome(name, Outcome.CACHED)

            if asset.is_animated is None:
                asset.is_animated = await self.invoker.detect_animated(asset)

            if data is None:
                data = await asyncio.to_thread(asset.source_path.read_bytes)

            return await self._encode(asset, data, materializer, mode)

        except Exception as e:
            return await self._fallback(asset, materializer, f"{type(e).__name__}: {e}")

    async def _encode(
        self, asset: WebPAsset, data: bytes, materializer: Materializer, mode: Mode
    ) -> AssetOutcome:
        cfg = self.config
        kind = "Animated" if asset.is_animated else "Static"
        self._narrate("Starting optimization: %s (%s)", asset.file_name, kind)
        started = time.monotonic()

        with materializer.staging(asset) as temp:
            encoded = await self.invoker.encode(asset, data)
            await asyncio.to_thread(temp.write_bytes, encoded)

            if cfg.max_file_size > 0 and len(encoded) > cfg.max_file_size:
                logger.warning(
                    "File still too large: %s > %s (%s)",
                    format_bytes(len(encoded)), format_bytes(cfg.max_file_size), asset.file_name,
                )

            await asyncio.to_thread(materializer.promote, temp, materializer.final_path(asset))

        if mode == "manifest":
            remember(self.cache, asset.source_path)

        result = OptimizationResult.from_sizes(len(data), len(encoded))
        self._narrate(
            "Completed: %s in %.0fms, %s -> %s (%.1f%% saved)",
            asset.file_name,
            (time.monotonic() - started) * 1000,
            format_bytes(result.original_size),
            format_bytes(result.optimized_size),
            result.savings_percent,
        )
        return AssetOutcome(asset.file_name, Outcome.DONE, result)

    async def _fallback(self, asset: WebPAsset, materializer: Materializer, error: str) -> AssetOutcome:
        logger.warning("Copying original for %s: %s", asset.file_name, error)
        try:
            await asyncio.to_thread(materializer.copy_original, asset)
        except OSError as e:
            logger.error("Failed to copy %s to output: %s", asset.file_name, e)
        return AssetOutcome(
            asset.file_name,
            Outcome.FALLBACK,
            OptimizationResult.failed(asset.size, error),
        )
