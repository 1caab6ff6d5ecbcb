"""Shared fixtures for diskdive tests."""

import time

import pytest

from diskdive.cache import ScanCache
from diskdive.config import Settings

MB = 1024 * 1024


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float | None = None):
        self.now = time.time() if now is None else now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real cache and config directories."""
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.delenv("DISKDIVE_CACHE_DIR", raising=False)
    monkeypatch.delenv("DISKDIVE_PATH", raising=False)


@pytest.fixture
def make_file():
    """Return a helper creating a (sparse) file of a given size."""

    def _make(path, size: int = 0):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.truncate(size)
        return path

    return _make


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return Settings(cache_dir=str(tmp_path / "cache"))


@pytest.fixture
def cache(tmp_path, settings, clock):
    return ScanCache(tmp_path / "cache", settings, clock=clock)


@pytest.fixture
def tree(tmp_path, make_file):
    """A small directory tree with three sized subdirectories and a file.

    Layout (sizes in bytes)::

        root/
            big/      3 x 4000
            mid/      2 x 3000
            small/    1 x 1000
            notes.txt 500
    """
    root = tmp_path / "root"
    for i in range(3):
        make_file(root / "big" / f"f{i}.bin", 4000)
    for i in range(2):
        make_file(root / "mid" / f"f{i}.bin", 3000)
    make_file(root / "small" / "f0.bin", 1000)
    make_file(root / "notes.txt", 500)
    return root
