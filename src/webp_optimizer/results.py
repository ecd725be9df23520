"""
Per-asset results and run summaries.

Nothing here is persisted; results only feed logging and the
end-of-run report.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB", "PB")


def format_bytes(num: float) -> str:
    """Format a byte count for humans, e.g. 1536 -> '1.5 KB'."""
    if num == 0:
        return "0 Bytes"
    if num < 0:
        return "-" + format_bytes(-num)
    if not math.isfinite(num):
        return f"{num} Bytes"

    i = 0
    scaled = float(num)
    while scaled >= 1024:
        scaled /= 1024
        i += 1
    if i >= len(SIZE_UNITS):
        return f"{num} Bytes"

    return f"{round(scaled, 2):g} {SIZE_UNITS[i]}"


class Outcome(str, Enum):
    """Terminal state reached by one asset."""
    DONE = "done"
    PASS_THROUGH = "pass_through"
    CACHED = "cached"
    FALLBACK = "fallback"
    SKIP = "skip"

    @property
    def counted(self) -> bool:
        return self is not Outcome.SKIP


@dataclass(frozen=True)
class OptimizationResult:
    """Result of encoding one asset."""
    success: bool
    original_size: int
    optimized_size: int
    error: str | None = None

    @property
    def savings(self) -> int:
        return self.original_size - self.optimized_size

    @property
    def savings_percent(self) -> float:
        if self.original_size <= 0:
            return 0.0
        return self.savings / self.original_size * 100

    @classmethod
    def from_sizes(cls, original_size: int, optimized_size: int) -> OptimizationResult:
        return cls(success=True, original_size=original_size, optimized_size=optimized_size)

    @classmethod
    def failed(cls, original_size: int, error: str) -> OptimizationResult:
        """The fallback copy keeps the original bytes, so nothing is saved."""
        return cls(
            success=False,
            original_size=original_size,
            optimized_size=original_size,
            error=error,
        )


@dataclass(frozen=True)
class AssetOutcome:
    file_name: str
    outcome: Outcome
    result: OptimizationResult | None = None


@dataclass(frozen=True)
class Progress:
    """Progress signal emitted after each wave."""
    wave: int
    completed: int
    total: int
    processed: int

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 100
        return min(100, round(self.completed / self.total * 100))


@dataclass
class RunSummary:
    """Aggregate counters for one pipeline run."""
    total: int = 0
    processed: int = 0
    waves: int = 0
    elapsed: float = 0.0
    counts: dict[Outcome, int] = field(default_factory=lambda: {o: 0 for o in Outcome})
    original_bytes: int = 0
    optimized_bytes: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)

    def record(self, item: AssetOutcome) -> None:
        self.counts[item.outcome] += 1
        if item.outcome.counted:
            self.processed += 1

        result = item.result
        if result is None:
            return
        if result.success:
            self.original_bytes += result.original_size
            self.optimized_bytes += result.optimized_size
        elif result.error:
            self.failures.append((item.file_name, result.error))

    @property
    def optimized(self) -> int:
        return self.counts[Outcome.DONE]

    @property
    def skipped(self) -> int:
        return (
            self.counts[Outcome.SKIP]
            + self.counts[Outcome.PASS_THROUGH]
            + self.counts[Outcome.CACHED]
        )

    @property
    def failed(self) -> int:
        return self.counts[Outcome.FALLBACK]

    @property
    def savings(self) -> int:
        return self.original_bytes - self.optimized_bytes

    @property
    def savings_percent(self) -> float:
        if self.original_bytes <= 0:
            return 0.0
        return self.savings / self.original_bytes * 100

    def lines(self) -> list[str]:
        """Render the end-of-run report."""
        out = [
            "Optimization Summary:",
            f"  Processed: {self.processed}/{self.total} in {self.waves} wave(s)",
            f"  Successful: {self.optimized}",
            f"  Skipped: {self.skipped}",
            f"  Failed: {self.failed}",
            f"  Total time: {self.elapsed * 1000:.0f}ms",
        ]
        if self.optimized:
            out.append(
                f"  Total savings: {format_bytes(self.savings)} "
                f"({self.savings_percent:.1f}%)"
            )
        if self.failures:
            out.append("  Failed files:")
            out.extend(f"    - {name}: {error}" for name, error in self.failures)
        return out
