"""
Pytest configuration and common fixtures for varcache tests.

Provides frozen time, ready-made storage backends and a mocked
ConfigManager. All fixtures follow camelCase naming convention.
"""

from pathlib import Path
from typing import Generator
from unittest.mock import Mock, patch

import pytest

from lib.varcache.storage import FileStorage, MemoryStorage

FROZEN_NOW = 1_700_000_000


class FakeClock:
    """Callable replacement for time.time() that tests can move forward."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> float:
        return float(self.now)

    def advance(self, seconds: int) -> None:
        self.now += seconds


# ============================================================================
# Time Fixtures
# ============================================================================


@pytest.fixture
def frozenClock() -> Generator[FakeClock, None, None]:
    """
    Freeze time.time() as seen by the cache facade.

    Yields:
        FakeClock: Clock starting at FROZEN_NOW, call advance() to move it

    Example:
        def testExpiry(frozenClock, memoryCache):
            memoryCache.store("key", 1, expiry=60)
            frozenClock.advance(61)
            assert memoryCache.has("key") is False
    """
    clock = FakeClock(FROZEN_NOW)
    with patch("lib.varcache.cache.time.time", new=clock):
        yield clock


# ============================================================================
# Storage Fixtures
# ============================================================================


@pytest.fixture
def cacheDir(tmp_path) -> Path:
    """Directory for FileStorage blobs."""
    path = tmp_path / "varcache"
    path.mkdir()
    return path


@pytest.fixture
def memoryStorage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def fileStorage(cacheDir) -> FileStorage:
    return FileStorage(str(cacheDir))


# ============================================================================
# Service Mock Fixtures
# ============================================================================


@pytest.fixture
def mockConfigManager(cacheDir):
    """
    Create a mock ConfigManager pointing at a file storage in cacheDir.

    Returns:
        Mock: Mocked ConfigManager instance

    Example:
        def testConfig(mockConfigManager):
            mockConfigManager.getCacheConfig.return_value = {"enabled": False}
    """
    from internal.config.manager import ConfigManager

    mock = Mock(spec=ConfigManager)
    mock.getCacheConfig.return_value = {"enabled": True, "encrypt-keys": True}
    mock.getStorageConfig.return_value = {"type": "file", "file": {"cache-dir": str(cacheDir)}}
    mock.getLoggingConfig.return_value = {}

    return mock
