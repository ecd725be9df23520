"""Configuration for the WebP optimizer."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields
from typing import Any, Mapping

from .errors import ValidationError

ENV_PREFIX = "WEBP_OPTIMIZER_"

# camelCase names used by build-tool configs
OPTION_ALIASES: dict[str, str] = {
    "animationQuality": "animation_quality",
    "animationCompression": "animation_compression",
    "optimizeAnimation": "optimize_animation",
    "maxFileSize": "max_file_size",
    "skipIfSmaller": "skip_if_smaller",
    "maxWidth": "max_width",
    "maxHeight": "max_height",
    "concurrentImages": "concurrent_images",
    "codecTimeout": "codec_timeout",
}

_INT_RANGES: dict[str, tuple[int, int | None, str]] = {
    "quality": (1, 100, "must be between 1 and 100"),
    "effort": (0, 6, "must be between 0 and 6"),
    "animation_quality": (1, 100, "must be between 1 and 100"),
    "animation_compression": (0, 6, "must be between 0 and 6"),
    "max_file_size": (0, None, "must be non-negative"),
    "skip_if_smaller": (0, None, "must be non-negative"),
    "max_width": (0, None, "must be non-negative"),
    "max_height": (0, None, "must be non-negative"),
    "concurrent_images": (1, None, "must be at least 1"),
}

_BOOL_FIELDS = ("optimize_animation", "verbose")


@dataclass(frozen=True)
class OptimizerConfig:
    """Resolved optimizer options. Validated on construction."""

    quality: int = 80
    effort: int = 4
    animation_quality: int = 80
    animation_compression: int = 4
    optimize_animation: bool = True
    max_file_size: int = 0
    skip_if_smaller: int = 0
    max_width: int = 0
    max_height: int = 0
    concurrent_images: int = 5
    verbose: bool = False
    codec_timeout: float = 120.0

    def __post_init__(self) -> None:
        for name, (low, high, message) in _INT_RANGES.items():
            value = getattr(self, name)
            if isinstance(value, float) and value.is_integer():
                value = int(value)
                object.__setattr__(self, name, value)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(name, f"must be an integer, got {value!r}")
            if value < low or (high is not None and value > high):
                raise ValidationError(name, message)

        for name in _BOOL_FIELDS:
            if not isinstance(getattr(self, name), bool):
                raise ValidationError(name, "must be a boolean")

        timeout = self.codec_timeout
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ValidationError("codec_timeout", "must be a number of seconds")
        if not math.isfinite(timeout) or timeout < 0:
            raise ValidationError("codec_timeout", "must be non-negative")

    @property
    def resize_enabled(self) -> bool:
        return self.max_width > 0 or self.max_height > 0

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any] | None = None, **overrides: Any
    ) -> OptimizerConfig:
        """
        Merge caller options over the defaults.

        Keys may be snake_case field names or their camelCase aliases.
        A value of None keeps the default for that field.

        Raises ValidationError: unknown option or invalid value
        """
        merged: dict[str, Any] = {}
        known = {f.name for f in fields(cls)}

        for key, value in {**(options or {}), **overrides}.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValidationError(key, "is not a recognised option")
            if value is not None:
                merged[name] = value

        return cls(**merged)

    @classmethod
    def load(cls, env: Mapping[str, str] | None = None) -> OptimizerConfig:
        """Load from WEBP_OPTIMIZER_* environment variables."""
        env = os.environ if env is None else env
        values: dict[str, Any] = {}

        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            values[f.name] = _parse_env_value(f.name, raw.strip())

        return cls(**values)

    def replace(self, **changes: Any) -> OptimizerConfig:
        """Return a new config with some options changed."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        return type(self).from_options(current, **changes)


def _parse_env_value(name: str, raw: str) -> Any:
    if name in _BOOL_FIELDS:
        lowered = raw.lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValidationError(name, f"must be a boolean, got {raw!r}")

    try:
        if name == "codec_timeout":
            return float(raw)
        return int(raw)
    except ValueError:
        raise ValidationError(name, f"must be a number, got {raw!r}") from None
