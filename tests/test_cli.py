"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from conftest import make_webp, requires_webp, write_static_webp
from webp_optimizer.cli import BYTE_SIZE, cli
from webp_optimizer.probe import is_valid_webp


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("WEBP_OPTIMIZER_QUALITY", raising=False)
    monkeypatch.delenv("WEBP_OPTIMIZER_CONCURRENT_IMAGES", raising=False)


def test_byte_size_parsing():
    assert BYTE_SIZE.convert("1", None, None) == 1
    assert BYTE_SIZE.convert("100k", None, None) == 100 * 1024
    assert BYTE_SIZE.convert("1.5M", None, None) == int(1.5 * 1024 ** 2)
    assert BYTE_SIZE.convert("1KiB", None, None) == 1024


@requires_webp
def test_optimize_mirrors_tree(runner, tmp_path):
    src = tmp_path / "assets"
    write_static_webp(src / "a.webp")
    write_static_webp(src / "icons" / "b.webp")
    out = tmp_path / "optimized"

    result = runner.invoke(cli, ["optimize", str(src), "-o", str(out), "-q", "50", "-c", "2"])

    assert result.exit_code == 0, result.output
    assert is_valid_webp((out / "a.webp").read_bytes())
    assert is_valid_webp((out / "icons" / "b.webp").read_bytes())
    assert "Processed: 2/2" in result.output


def test_optimize_skip_if_smaller_copies(runner, tmp_path):
    src = tmp_path / "assets"
    src.mkdir()
    original = make_webp(size=2048)
    (src / "a.webp").write_bytes(original)
    out = tmp_path / "optimized"

    result = runner.invoke(cli, ["optimize", str(src), "-o", str(out), "--skip-if-smaller", "100k"])

    assert result.exit_code == 0, result.output
    assert (out / "a.webp").read_bytes() == original


def test_optimize_rejects_bad_option(runner, tmp_path):
    result = runner.invoke(cli, ["optimize", str(tmp_path), "-o", str(tmp_path / "o"), "--effort", "9"])
    assert result.exit_code == 2
    assert "effort" in result.output
    assert not (tmp_path / "o").exists()


def test_optimize_uses_env_defaults(runner, tmp_path, monkeypatch):
    monkeypatch.setenv("WEBP_OPTIMIZER_QUALITY", "0")
    result = runner.invoke(cli, ["optimize", str(tmp_path), "-o", str(tmp_path / "o")])
    assert result.exit_code == 2
    assert "quality" in result.output


def test_fast_preset(runner, tmp_path):
    (tmp_path / "src").mkdir()
    result = runner.invoke(cli, ["optimize", str(tmp_path / "src"), "-o", str(tmp_path / "o"), "--fast"])
    assert result.exit_code == 0, result.output
    assert "Quality: 60, Effort: 1" in result.output
    assert "Concurrent: 20" in result.output


def _populate(root):
    (root / "nested").mkdir(parents=True)
    (root / "a.webp").write_bytes(b"x" * 10)
    (root / "nested" / "b.webp").write_bytes(b"y" * 20)


def test_clean_dry_run(runner, tmp_path):
    out = tmp_path / "optimized"
    _populate(out)

    result = runner.invoke(cli, ["clean", str(out), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "Found 2 files (30 Bytes)" in result.output
    assert (out / "a.webp").exists()
    assert (out / "nested" / "b.webp").exists()


def test_clean_deletes(runner, tmp_path):
    out = tmp_path / "optimized"
    _populate(out)

    result = runner.invoke(cli, ["clean", str(out)])

    assert result.exit_code == 0, result.output
    assert "Deleted: 2 files" in result.output
    assert "Freed space: 30 Bytes" in result.output
    assert not out.exists()


def test_clean_missing_dir(runner, tmp_path):
    result = runner.invoke(cli, ["clean", str(tmp_path / "nothing")])
    assert result.exit_code == 0
    assert "doesn't exist" in result.output
