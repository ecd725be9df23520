"""
Change cache for manifest runs.

Remembers the (size, mtime) of each source that was processed so an
unchanged file is not re-encoded twice in one run. Lives in memory only.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    size: int
    mtime_ns: int

    @classmethod
    def from_stat(cls, st: os.stat_result) -> CacheEntry:
        return cls(size=st.st_size, mtime_ns=st.st_mtime_ns)

    def matches(self, st: os.stat_result) -> bool:
        return self.size == st.st_size and self.mtime_ns == st.st_mtime_ns


class ChangeCache(Protocol):
    def get(self, key: str) -> CacheEntry | None: ...

    def put(self, key: str, entry: CacheEntry) -> None: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...


class MemoryCache:
    """Dict-backed cache keyed by absolute source path."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def cache_key(path: Path) -> str:
    return str(Path(path).absolute())


def lookup_fresh(cache: ChangeCache, path: Path) -> CacheEntry | None:
    """Return the cached entry for path if it still matches the file on disk."""
    entry = cache.get(cache_key(path))
    if entry is None:
        return None
    try:
        st = os.stat(path)
    except OSError as e:
        logger.debug("Stat failed for cached %s, treating as miss: %s", path, e)
        return None
    return entry if entry.matches(st) else None


def remember(cache: ChangeCache, path: Path) -> bool:
    """Record the current stat of path. False if the file cannot be stat'ed."""
    try:
        st = os.stat(path)
    except OSError as e:
        logger.debug("Not caching %s: %s", path, e)
        return False
    cache.put(cache_key(path), CacheEntry.from_stat(st))
    return True
