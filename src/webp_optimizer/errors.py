"""Exceptions raised by the WebP optimizer."""

from __future__ import annotations

TOOL_NAME = "webp-optimizer"


class OptimizerError(Exception):
    """Base exception for the optimizer."""
    pass


class ValidationError(OptimizerError, ValueError):
    """Raised when an option is out of range or unknown."""

    def __init__(self, option: str, message: str):
        self.option = option
        super().__init__(f"{TOOL_NAME}: {option} {message}")


class CodecError(OptimizerError, RuntimeError):
    """Raised when the codec fails to probe or encode an image."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class MaterializeError(OptimizerError):
    """Raised when encoded output cannot be promoted to its destination."""
    pass
