"""CLI for the WebP optimizer."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any

import click

from .config import OptimizerConfig
from .errors import ValidationError
from .processor import WebPProcessor
from .results import format_bytes

logger = logging.getLogger(__name__)

FAST_PRESET = {"quality": 60, "effort": 1, "concurrent_images": 20}


class ByteSize(click.ParamType):
    """Byte count with an optional k/m/g/t suffix (1024 based)."""

    name = "size"

    def convert(self, value: Any, param, ctx) -> int:
        if isinstance(value, int):
            return value
        s = str(value).strip().lower().replace("ib", "")
        mult = 1
        for suffix, factor in (("k", 1024), ("m", 1024**2), ("g", 1024**3), ("t", 1024**4)):
            if s.endswith(suffix):
                mult = factor
                s = s[:-1]
                break
        try:
            return int(float(s) * mult)
        except ValueError:
            self.fail(f"{value!r} is not a valid size", param, ctx)


BYTE_SIZE = ByteSize()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@click.group()
def cli() -> None:
    """Optimize WebP images for web builds."""


@cli.command()
@click.argument("source", type=click.Path(file_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(file_okay=False, path_type=Path),
              required=True, help="Directory for optimized files")
@click.option("-q", "--quality", type=int, help="Static quality (1-100)")
@click.option("-e", "--effort", type=int, help="Static effort (0-6)")
@click.option("--animation-quality", type=int, help="Animated quality (1-100)")
@click.option("--animation-compression", type=int, help="Animated effort (0-6)")
@click.option("--optimize-animation/--no-optimize-animation", default=None,
              help="Re-encode animated images as animations")
@click.option("--max-file-size", type=BYTE_SIZE, help="Skip files larger than this")
@click.option("--skip-if-smaller", type=BYTE_SIZE, help="Copy files smaller than this as-is")
@click.option("--max-width", type=int, help="Resize ceiling in pixels")
@click.option("--max-height", type=int, help="Resize ceiling in pixels")
@click.option("-c", "--concurrent", "concurrent_images", type=int,
              help="Images processed per wave")
@click.option("--codec-timeout", type=float, help="Seconds before an encode is abandoned")
@click.option("--fast", is_flag=True, help="Quality 60, effort 1, 20 concurrent")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def optimize(source: Path, output: Path, fast: bool, verbose: bool, **options: Any) -> None:
    """Optimize every WebP under SOURCE into OUTPUT."""
    _setup_logging(verbose)

    overrides: dict[str, Any] = dict(FAST_PRESET) if fast else {}
    overrides.update({k: v for k, v in options.items() if v is not None})
    if verbose:
        overrides["verbose"] = True

    try:
        config = OptimizerConfig.load().replace(**overrides)
    except ValidationError as e:
        raise click.UsageError(str(e)) from e

    click.echo(f"Source: {source}")
    click.echo(f"Output: {output}")
    click.echo(f"Quality: {config.quality}, Effort: {config.effort}")
    click.echo(f"Max file size: {format_bytes(config.max_file_size)}")
    click.echo(f"Skip if smaller: {format_bytes(config.skip_if_smaller)}")
    click.echo(f"Concurrent: {config.concurrent_images}")

    output.mkdir(parents=True, exist_ok=True)
    processor = WebPProcessor(config)
    summary = asyncio.run(processor.process_directory(source, output))

    click.echo("")
    for line in summary.lines():
        click.echo(line)


def _collect_files(root: Path) -> list[Path]:
    files = []
    for dirpath, _dirnames, filenames in os.walk(root):
        files.extend(Path(dirpath) / name for name in sorted(filenames))
    return files


def _remove_empty_dirs(root: Path) -> int:
    removed = 0
    for dirpath, _dirnames, _filenames in os.walk(root, topdown=False):
        path = Path(dirpath)
        if any(path.iterdir()):
            continue
        try:
            path.rmdir()
            removed += 1
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
    return removed


@cli.command()
@click.argument("output", type=click.Path(file_okay=False, path_type=Path))
@click.option("--dry-run", is_flag=True, help="List files without deleting them")
def clean(output: Path, dry_run: bool) -> None:
    """Delete previously optimized files under OUTPUT."""
    _setup_logging(False)

    if not output.exists():
        click.echo(f"Output directory doesn't exist: {output}")
        return

    files = _collect_files(output)
    if not files:
        click.echo("Directory is already empty")
        _remove_empty_dirs(output)
        return

    total = sum(f.stat().st_size for f in files)
    click.echo(f"Found {len(files)} files ({format_bytes(total)})")

    if dry_run:
        click.echo("Files that would be deleted:")
        for f in files:
            click.echo(f"  {f.relative_to(output)} ({format_bytes(f.stat().st_size)})")
        return

    deleted = 0
    freed = 0
    for f in files:
        try:
            size = f.stat().st_size
            f.unlink()
        except OSError as e:
            click.echo(f"  Failed to delete: {f.relative_to(output)} - {e}", err=True)
            continue
        deleted += 1
        freed += size
        click.echo(f"  Deleted: {f.relative_to(output)} ({format_bytes(size)})")

    _remove_empty_dirs(output)
    click.echo(f"Deleted: {deleted} files")
    click.echo(f"Freed space: {format_bytes(freed)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
