"""
Asset discovery.

Two ways to find WebP assets:
- scan_directory walks a source tree
- resolve_manifest maps a build manifest back to files on disk
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from .probe import WebPMetadata

logger = logging.getLogger(__name__)

WEBP_EXT = ".webp"
ASSETS_DIR = "assets"

EXCLUDED_DIRS: frozenset[str] = frozenset({
    "node_modules",
    ".git",
    "dist",
    "coverage",
    ".vite",
    ".next",
    "build",
    "out",
})


@dataclass
class WebPAsset:
    """
    One candidate file. output_path is relative to the output root.

    metadata holds the first probe result so later steps do not decode again.
    """
    source_path: Path
    file_name: str
    size: int
    output_path: Path
    temp_path: Path | None = None
    is_animated: bool | None = None
    metadata: WebPMetadata | None = None


@dataclass(frozen=True)
class ManifestEntry:
    """An asset the build tool has emitted."""
    file_name: str
    source: bytes | str | None = None
    original_file_name: str | None = None
    size: int | None = None
    is_animated: bool | None = None

    @property
    def payload(self) -> bytes | None:
        if isinstance(self.source, (bytes, bytearray)):
            return bytes(self.source)
        return None

    @property
    def reference(self) -> str | None:
        """Declared pre-build location of the asset, if any."""
        if self.original_file_name:
            return self.original_file_name
        if isinstance(self.source, str) and self.source:
            return self.source
        return None


def is_in_dir(base: Path, target: Path) -> bool:
    """Check if target path is in base dir."""
    try:
        target.resolve().relative_to(base.resolve())
        return True
    except ValueError:
        return False


def has_extension(name: str, extension: str = WEBP_EXT) -> bool:
    return name.lower().endswith(extension.lower())


def scan_directory(
    root: Path,
    exclude_dirs: frozenset[str] = EXCLUDED_DIRS,
    extension: str = WEBP_EXT,
    exclude_paths: Iterable[Path] = (),
) -> Iterator[WebPAsset]:
    """
    Walk root depth first and yield every file ending in extension.

    Directories named in exclude_dirs, or resolving to one of
    exclude_paths, are not entered. Directory symlinks are not followed.
    A missing root yields nothing.
    """
    root = Path(root).absolute()
    if not root.is_dir():
        logger.warning("Directory not found: %s", root)
        return
    skipped = {Path(p).resolve() for p in exclude_paths}

    stack: list[Path] = [root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning("Cannot read directory %s: %s", current, e)
            continue

        subdirs: list[Path] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    path = Path(entry.path)
                    if entry.name not in exclude_dirs and path.resolve() not in skipped:
                        subdirs.append(path)
                    continue
                if not entry.is_file() or not has_extension(entry.name, extension):
                    continue
                size = entry.stat().st_size
            except OSError as e:
                logger.warning("Cannot stat %s: %s", entry.path, e)
                continue

            path = Path(entry.path)
            yield WebPAsset(
                source_path=path,
                file_name=entry.name,
                size=size,
                output_path=path.relative_to(root),
            )

        # reversed so the first subdirectory is walked first
        stack.extend(reversed(subdirs))


def parse_manifest_entry(name: str, data: ManifestEntry | Mapping[str, Any]) -> ManifestEntry:
    if isinstance(data, ManifestEntry):
        return data
    return ManifestEntry(
        file_name=data.get("fileName") or data.get("file_name") or name,
        source=data.get("source"),
        original_file_name=data.get("originalFileName") or data.get("original_file_name"),
        size=data.get("size"),
        is_animated=data.get("isAnimated", data.get("is_animated")),
    )


def resolve_source(entry: ManifestEntry, out_dir: Path, cwd: Path) -> Path:
    """
    Map an emitted asset back to its file on disk.

    Precedence:
    1. Emitted under assets/ -> out_dir/assets/<basename>
    2. Reference starting with ./ or ../ -> relative to cwd
    3. Any other reference -> literal path (relative ones against cwd)
    4. No reference -> out_dir/<file_name>
    """
    emitted = Path(entry.file_name.replace("\\", "/"))
    if emitted.parts and emitted.parts[0] == ASSETS_DIR:
        return out_dir / ASSETS_DIR / emitted.name

    ref = entry.reference
    if ref is not None:
        if ref.startswith(("./", "../", ".\\", "..\\")):
            return (cwd / ref).resolve()
        literal = Path(ref)
        return literal if literal.is_absolute() else cwd / literal

    return out_dir / emitted


def resolve_manifest(
    manifest: Mapping[str, ManifestEntry | Mapping[str, Any]],
    out_dir: Path,
    cwd: Path | None = None,
) -> list[WebPAsset]:
    """Build asset descriptors for every .webp entry in a build manifest."""
    out_dir = Path(out_dir).absolute()
    cwd = Path.cwd() if cwd is None else Path(cwd)
    assets: list[WebPAsset] = []

    for name, data in manifest.items():
        try:
            asset = _resolve_entry(parse_manifest_entry(name, data), out_dir, cwd)
        except (OSError, AttributeError, TypeError, ValueError) as e:
            logger.warning("Skipping manifest entry %s: %s", name, e)
            continue
        if asset is not None:
            assets.append(asset)

    return assets


def _resolve_entry(entry: ManifestEntry, out_dir: Path, cwd: Path) -> WebPAsset | None:
    if not has_extension(entry.file_name):
        return None

    output_path = Path(entry.file_name.replace("\\", "/"))
    if output_path.is_absolute() or not is_in_dir(out_dir, out_dir / output_path):
        logger.warning("Path traversal attempt: %s", entry.file_name)
        return None

    source = resolve_source(entry, out_dir, cwd)
    payload = entry.payload

    if not source.is_file():
        if payload is None:
            logger.warning("Cannot locate source for %s (tried %s)", entry.file_name, source)
            return None
        source = out_dir / output_path
        source.parent.mkdir(parents=True, exist_ok=True)
        source.write_bytes(payload)

    if entry.size is not None:
        size = entry.size
    elif payload is not None:
        size = len(payload)
    else:
        size = source.stat().st_size

    return WebPAsset(
        source_path=source.absolute(),
        file_name=output_path.name,
        size=size,
        output_path=output_path,
        is_animated=entry.is_animated,
    )
