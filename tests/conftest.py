"""
Shared fixtures for scan engine tests.
Creates isolated temporary directories with controlled test files.
"""
import os
import tempfile
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest

from dupfile.config import AppPaths, HOME_ENV_VAR
from dupfile.core.store import SQLiteDuplicateStore, close_store


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch):
    """Keeps every test away from the real index and quarantine."""
    with tempfile.TemporaryDirectory() as tmpdir:
        monkeypatch.setenv(HOME_ENV_VAR, tmpdir)
        yield Path(tmpdir)
        close_store()


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def app_paths():
    """Data, quarantine and restore folders outside the scanned tree."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield AppPaths.under(tmpdir)


@pytest.fixture
def store():
    """Fresh in-memory checksum index."""
    s = SQLiteDuplicateStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def make_file(temp_dir) -> Callable[..., Path]:
    """
    Factory: make_file("sub/a.txt", b"content", mtime=1000.0).
    A fixed mtime makes the representative of a group predictable.
    """
    def _make(relative: str, content: bytes, mtime: Optional[float] = None) -> Path:
        path = temp_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path
    return _make


@pytest.fixture
def test_files(make_file) -> Dict[str, Path]:
    """
    Creates controlled test files for duplicate scenarios:
    - 3 identical files (1KB of 'A'), one of them in a subdirectory
    - 2 identical files (2KB of 'B')
    - 1 file with the size of the 'A' group but different content
    - 1 file with a unique size
    - 1 empty file
    - 1 file with .tmp extension (for extension filters)
    """
    content_a = b"A" * 1024
    content_b = b"B" * 2048
    return {
        "dup1_a": make_file("dup1_a.txt", content_a, mtime=1000.0),
        "dup1_b": make_file("dup1_b.txt", content_a, mtime=2000.0),
        "sub_dup": make_file("subdir/dup_in_subdir.txt", content_a, mtime=3000.0),
        "dup2_a": make_file("dup2_a.txt", content_b, mtime=1500.0),
        "dup2_b": make_file("dup2_b.txt", content_b, mtime=1400.0),
        "same_size": make_file("same_size.txt", b"C" * 1024, mtime=1000.0),
        "unique": make_file("unique.txt", b"D" * 777, mtime=1000.0),
        "empty": make_file("empty.txt", b"", mtime=1000.0),
        "filtered": make_file("ignore.tmp", b"E" * 300, mtime=1000.0),
    }
