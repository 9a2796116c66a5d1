"""Shared fixtures for windex tests."""

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point HOME at a temp directory and clear WINDEX_* variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    for key in list(os.environ):
        if key.startswith("WINDEX_"):
            monkeypatch.delenv(key)
    return home


def set_mtime(path: Path, mtime: int) -> None:
    """Set both atime and mtime of a path to a fixed epoch value."""
    os.utime(path, (mtime, mtime))


@pytest.fixture
def sample_tree(tmp_path) -> Path:
    """
    Create a small tree with fixed mtimes.

    <root>/
    ├── docs/            (mtime 1000)
    │   ├── report.txt   (mtime 1100, 5 bytes)
    │   └── archive/     (mtime 1200)
    │       └── old.log  (mtime 1300)
    └── readme.md        (mtime 1400)
    """
    root = tmp_path / "root"
    (root / "docs" / "archive").mkdir(parents=True)
    (root / "docs" / "report.txt").write_text("hello")
    (root / "docs" / "archive" / "old.log").write_text("log line\n")
    (root / "readme.md").write_text("# readme\n")

    # Files first: creating children bumps their parent's mtime
    set_mtime(root / "docs" / "archive" / "old.log", 1300)
    set_mtime(root / "docs" / "report.txt", 1100)
    set_mtime(root / "readme.md", 1400)
    set_mtime(root / "docs" / "archive", 1200)
    set_mtime(root / "docs", 1000)
    return root
