"""
Build-tool integration.

A build tool calls close_bundle once the bundle has been written. With a
bundle manifest, the emitted WebP entries are optimized in place; without
one, the project tree is scanned and results are written to out_dir.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Mapping

from .cache import ChangeCache
from .codec import Codec
from .config import OptimizerConfig
from .errors import TOOL_NAME
from .processor import WebPProcessor
from .results import Progress, RunSummary

logger = logging.getLogger(__name__)


class WebPOptimizerPlugin:
    """Holds validated options between plugin creation and the build finishing."""

    name = TOOL_NAME

    def __init__(
        self,
        options: Mapping[str, Any] | OptimizerConfig | None = None,
        codec: Codec | None = None,
        cache: ChangeCache | None = None,
        on_progress: Callable[[Progress], None] | None = None,
    ):
        if isinstance(options, OptimizerConfig):
            self.config = options
        else:
            self.config = OptimizerConfig.from_options(options)
        self._codec = codec
        self._cache = cache
        self._on_progress = on_progress

    def processor(self) -> WebPProcessor:
        return WebPProcessor(
            self.config,
            codec=self._codec,
            cache=self._cache,
            on_progress=self._on_progress,
        )

    async def close_bundle(
        self,
        out_dir: Path,
        bundle: Mapping[str, Any] | None = None,
        root: Path | None = None,
    ) -> RunSummary:
        """Run the optimizer for a finished build."""
        out_dir = Path(out_dir)
        if self.config.verbose:
            logger.info("[%s] Processing bundle files...", self.name)

        processor = self.processor()
        if bundle is not None:
            summary = await processor.process_manifest(bundle, out_dir, cwd=root)
        else:
            summary = await processor.process_directory(Path(root or Path.cwd()), out_dir)

        if self.config.verbose:
            logger.info("[%s] Build completed.", self.name)
        return summary


def optimize_build(
    out_dir: Path,
    bundle: Mapping[str, Any] | None = None,
    root: Path | None = None,
    **options: Any,
) -> RunSummary:
    """Synchronous entry point for build scripts."""
    plugin = WebPOptimizerPlugin(options)
    return asyncio.run(plugin.close_bundle(out_dir, bundle=bundle, root=root))
