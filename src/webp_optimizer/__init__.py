"""
WebP Optimizer.

Re-encodes the WebP images of a web build to shrink them:
1. Finds assets by scanning a source tree or reading a build manifest
2. Decides per asset whether to skip, copy, or re-encode
3. Encodes in fixed-size concurrent waves
4. Atomically replaces outputs, copying the original on any failure

Deployment:
    pip install webp-optimizer
    webp-optimizer optimize public/assets -o public/assets/optimized
"""

from .assets import EXCLUDED_DIRS, ManifestEntry, WebPAsset, resolve_manifest, scan_directory
from .cache import CacheEntry, ChangeCache, MemoryCache
from .codec import AnimatedParams, Codec, PillowCodec, StaticParams
from .config import OptimizerConfig
from .errors import CodecError, MaterializeError, OptimizerError, ValidationError
from .plugin import WebPOptimizerPlugin, optimize_build
from .probe import WebPMetadata, is_valid_webp
from .processor import WebPProcessor
from .results import OptimizationResult, Outcome, Progress, RunSummary, format_bytes

__all__ = [
    # Config
    "OptimizerConfig",
    # Errors
    "OptimizerError",
    "ValidationError",
    "CodecError",
    "MaterializeError",
    # Discovery
    "EXCLUDED_DIRS",
    "WebPAsset",
    "ManifestEntry",
    "scan_directory",
    "resolve_manifest",
    # Codec
    "Codec",
    "PillowCodec",
    "StaticParams",
    "AnimatedParams",
    "WebPMetadata",
    "is_valid_webp",
    # Cache
    "CacheEntry",
    "ChangeCache",
    "MemoryCache",
    # Pipeline
    "WebPProcessor",
    "WebPOptimizerPlugin",
    "optimize_build",
    # Results
    "Outcome",
    "OptimizationResult",
    "Progress",
    "RunSummary",
    "format_bytes",
]
