"""
Writing results into the output directory.

Encoded bytes always go to a temporary file first. The final path only
ever changes through os.replace, so readers see either the old file or
the complete new one.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .assets import WebPAsset
from .errors import MaterializeError

logger = logging.getLogger(__name__)


def _sibling(path: Path, suffix: str) -> Path:
    return path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}{suffix}")


class Materializer:
    """Places encoded or original bytes at their final output path."""

    def __init__(self, out_dir: Path):
        self.out_dir = Path(out_dir).absolute()

    def final_path(self, asset: WebPAsset) -> Path:
        return self.out_dir / asset.output_path

    @contextmanager
    def staging(self, asset: WebPAsset) -> Iterator[Path]:
        """Yield a temporary output path that is removed on exit."""
        temp = asset.temp_path or _sibling(self.final_path(asset), ".tmp")
        temp.parent.mkdir(parents=True, exist_ok=True)
        try:
            yield temp
        finally:
            try:
                temp.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Failed to remove temp file %s: %s", temp, e)

    def promote(self, temp: Path, final: Path) -> None:
        """
        Move a finished temp file over the final path.

        Raises MaterializeError: temp file is missing
        """
        if not temp.is_file():
            raise MaterializeError(f"Encoded output missing: {temp}")

        final.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.replace(temp, final)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            # temp lives on another filesystem
            self._replace_with_copy(temp, final)
            temp.unlink(missing_ok=True)

    def copy_original(self, asset: WebPAsset) -> Path:
        """Copy the unmodified source to its final path."""
        final = self.final_path(asset)
        if final.exists() and os.path.samefile(asset.source_path, final):
            return final

        final.parent.mkdir(parents=True, exist_ok=True)
        self._replace_with_copy(asset.source_path, final)
        return final

    def _replace_with_copy(self, src: Path, final: Path) -> None:
        partial = _sibling(final, ".partial")
        try:
            shutil.copyfile(src, partial)
            os.replace(partial, final)
        finally:
            partial.unlink(missing_ok=True)
