"""
In-memory storage backend

Process-local dict store, the stand-in for an in-memory extension cache.
"""

import logging
from threading import RLock
from typing import Any, Dict

from .abstract import AbstractStorage

logger = logging.getLogger(__name__)


class MemoryStorage(AbstractStorage):
    """
    Dict-based storage backend.

    The compression flag is accepted and ignored: values never leave the
    process, so there is nothing to gain from compressing them.

    Args:
        prefix: Optional prefix prepended to every key

    Example:
        >>> storage = MemoryStorage()
        >>> storage.store("key", b"data")
        True
        >>> storage.get("key")
        b'data'
    """

    storageType = "memory"

    def __init__(self, prefix: str = ""):
        super().__init__()
        self.prefix = prefix
        self._data: Dict[str, bytes] = {}
        self._lock = RLock()

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def init(self) -> None:
        pass

    def has(self, key: str) -> bool:
        with self._lock:
            return self._key(key) in self._data

    def get(self, key: str, compressed: bool = False) -> bytes | None:
        with self._lock:
            value = self._data.get(self._key(key))
        if value is None:
            self.miss()
            return None
        self.hit()
        self._touchField(key)
        return value

    def store(self, key: str, value: bytes, compressed: bool = False) -> bool:
        with self._lock:
            self._data[self._key(key)] = bytes(value)
        self._touchField(key)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            self._forgetField(key)
            if key == "":
                self._data.clear()
                return True
            return self._data.pop(self._key(key), None) is not None

    def _getInfo(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "prefix": self.prefix,
                "count": len(self._data),
                "size": sum(len(v) for v in self._data.values()),
            }
