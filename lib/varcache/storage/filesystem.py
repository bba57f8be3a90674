"""
Filesystem storage backend

Stores every blob as its own file `.<key>.<extension>` in a cache
directory, with advisory locking around reads and writes and optional
zlib compression.
"""

import datetime
import fcntl
import logging
import os
import tempfile
import zlib
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..exceptions import BackendUnavailableError, StorageKeyError
from .abstract import AbstractStorage
from .utils import compress, decompress, sanitizeKey

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "kcf"
INFO_DATE_FORMAT = "%Y.%m.%d. %H:%M:%S"


def defaultCacheDir() -> str:
    return os.path.join(tempfile.gettempdir(), "varcache")


class FileStorage(AbstractStorage):
    """
    File-based storage backend.

    Features:
    - One file per key, flat directory layout
    - Shared lock for reads, exclusive lock for writes (fcntl.flock)
    - zlib compression when the caller asks for it
    - Keys sanitized so that they are always safe file names

    Args:
        cacheDir: Directory for cache files, defaults to <tmpdir>/varcache
            (created if it is the default and does not exist yet)
        extension: Cache file extension
        fileLocking: Use advisory locking around reads and writes

    Example:
        >>> storage = FileStorage("/tmp/cache")
        >>> storage.init()
        >>> storage.store("key", b"data", compressed=True)
        True
        >>> storage.get("key", compressed=True)
        b'data'
    """

    storageType = "file"

    def __init__(
        self,
        cacheDir: Optional[str] = None,
        extension: str = DEFAULT_EXTENSION,
        fileLocking: bool = True,
    ):
        super().__init__()
        if not cacheDir:
            cacheDir = defaultCacheDir()
            try:
                os.makedirs(cacheDir, exist_ok=True)
            except OSError as e:
                logger.error(f"Failed to create default cache directory {cacheDir}: {e}")

        self.cacheDir = Path(cacheDir)
        self.extension = extension.lstrip(".") or DEFAULT_EXTENSION
        self.fileLocking = fileLocking

    def init(self) -> None:
        """
        Check that the cache directory is usable.

        Raises:
            BackendUnavailableError: If the directory is missing or not writable
        """
        if not self.cacheDir.is_dir():
            raise BackendUnavailableError(f"Cache directory '{self.cacheDir}' does not exist")
        if not os.access(self.cacheDir, os.W_OK):
            raise BackendUnavailableError(f"Cache directory '{self.cacheDir}' is not writable")

    def _getFilePath(self, key: str) -> Path:
        """
        Get file path for key.

        Raises:
            StorageKeyError: If the key is invalid
        """
        return self.cacheDir / f".{sanitizeKey(key)}.{self.extension}"

    def _lock(self, fd: int, write: bool = False) -> None:
        if self.fileLocking:
            fcntl.flock(fd, fcntl.LOCK_EX if write else fcntl.LOCK_SH)

    def _unlock(self, fd: int) -> None:
        if self.fileLocking:
            fcntl.flock(fd, fcntl.LOCK_UN)

    def _getAllCacheFiles(self) -> List[Path]:
        if not self.cacheDir.is_dir():
            return []
        suffix = f".{self.extension}"
        return sorted(
            path for path in self.cacheDir.iterdir() if path.is_file() and path.name.endswith(suffix)
        )

    def has(self, key: str) -> bool:
        try:
            return self._getFilePath(key).is_file()
        except StorageKeyError as e:
            logger.warning(f"Invalid key {key!r}: {e}")
            return False

    def get(self, key: str, compressed: bool = False) -> bytes | None:
        try:
            filePath = self._getFilePath(key)
        except StorageKeyError as e:
            logger.warning(f"Invalid key {key!r}: {e}")
            self.miss()
            return None

        try:
            with open(filePath, "rb") as f:
                self._lock(f.fileno())
                try:
                    data = f.read()
                finally:
                    self._unlock(f.fileno())
        except FileNotFoundError:
            self.miss()
            return None
        except OSError as e:
            logger.error(f"Failed to read cache file {filePath}: {e}")
            self.miss()
            return None

        self.hit()
        if compressed:
            try:
                data = decompress(data)
            except zlib.error as e:
                logger.error(f"Failed to decompress cache file {filePath}: {e}")
                return None

        if data:
            self._touchField(key)
        return data

    def store(self, key: str, value: bytes, compressed: bool = False) -> bool:
        try:
            filePath = self._getFilePath(key)
        except StorageKeyError as e:
            logger.error(f"Invalid key {key!r}: {e}")
            return False

        data = compress(value) if compressed else value
        try:
            # Truncate only after the lock is held so readers never see a partial file
            fd = os.open(filePath, os.O_WRONLY | os.O_CREAT, 0o644)
            try:
                self._lock(fd, write=True)
                try:
                    os.ftruncate(fd, 0)
                    written = 0
                    while written < len(data):
                        written += os.write(fd, data[written:])
                finally:
                    self._unlock(fd)
            finally:
                os.close(fd)
        except OSError as e:
            logger.error(f"Failed to write cache file {filePath}: {e}")
            return False

        self._touchField(key)
        return True

    def delete(self, key: str) -> bool:
        if key == "":
            for path in self._getAllCacheFiles():
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    logger.error(f"Failed to delete cache file {path}: {e}")
                    return False
            self._forgetField("")
            return True

        try:
            filePath = self._getFilePath(key)
        except StorageKeyError as e:
            logger.warning(f"Invalid key {key!r}: {e}")
            return False

        try:
            filePath.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to delete cache file {filePath}: {e}")
            return False

        self._forgetField(key)
        return True

    def _keyFromPath(self, path: Path) -> str:
        return path.name[1 : -(len(self.extension) + 1)]

    def _listFields(self) -> List[str]:
        return [self._keyFromPath(path) for path in self._getAllCacheFiles()]

    def _getInfo(self) -> Dict[str, Any]:
        files: Dict[str, Dict[str, Any]] = {}
        for path in self._getAllCacheFiles():
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            files[self._keyFromPath(path)] = {
                "size": stat.st_size,
                "lastModified": datetime.datetime.fromtimestamp(stat.st_mtime).strftime(INFO_DATE_FORMAT),
                "lastAccessed": datetime.datetime.fromtimestamp(stat.st_atime).strftime(INFO_DATE_FORMAT),
            }
        return {
            "cacheDir": str(self.cacheDir),
            "extension": self.extension,
            "files": files,
        }
