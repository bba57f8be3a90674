"""
Abstract storage backend interface

This module defines the abstract base class that all cache storage backends
must implement. Backends are plain byte-blob stores: they know nothing about
expiry, tags or per-entry statistics, those live in the cache facade.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class AbstractStorage(ABC):
    """
    Abstract base class for cache storage backends.

    Subclasses implement init/has/get/store/delete. The base class owns the
    hit/miss counters and the list of keys touched by successful reads and
    writes ("fields"), and builds the generic info() report from them.

    Implementations should catch their library's I/O errors in store/delete
    and return False, and return None from get() on read failure.
    init() is the only method allowed to raise (BackendUnavailableError).
    """

    storageType: str = "abstract"

    def __init__(self) -> None:
        self._hits: int = 0
        self._misses: int = 0
        self._fields: List[str] = []

    @abstractmethod
    def init(self) -> None:
        """
        Prepare the backend for use (create directories, connect, ...).

        Must be idempotent.

        Raises:
            BackendUnavailableError: If the backend cannot be used
        """
        pass

    @abstractmethod
    def has(self, key: str) -> bool:
        """
        Check if a blob exists for the specified key.

        Args:
            key: The backend key

        Returns:
            True if the key exists, False otherwise
        """
        pass

    @abstractmethod
    def get(self, key: str, compressed: bool = False) -> bytes | None:
        """
        Retrieve blob for the specified key.

        Implementations count a hit or a miss for every call.

        Args:
            key: The backend key
            compressed: Whether the blob was stored compressed

        Returns:
            The stored bytes, None on miss
        """
        pass

    @abstractmethod
    def store(self, key: str, value: bytes, compressed: bool = False) -> bool:
        """
        Store blob under the specified key, overwriting any existing one.

        Args:
            key: The backend key
            value: Bytes to store
            compressed: Whether the backend should compress the blob

        Returns:
            True on success, False on failure
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete blob for the specified key, empty key deletes everything.

        Args:
            key: The backend key or ""

        Returns:
            True if something was deleted (or everything was cleared), False otherwise
        """
        pass

    def close(self) -> None:
        """Release backend resources, default does nothing."""
        pass

    def hit(self) -> None:
        self._hits += 1

    def miss(self) -> None:
        self._misses += 1

    def getHits(self) -> int:
        return self._hits

    def getMisses(self) -> int:
        return self._misses

    def _touchField(self, key: str) -> None:
        if key not in self._fields:
            self._fields.append(key)

    def _forgetField(self, key: str) -> None:
        if key == "":
            self._fields.clear()
        elif key in self._fields:
            self._fields.remove(key)

    def _listFields(self) -> List[str]:
        """Keys reported by info(), defaults to keys seen by this instance."""
        return list(self._fields)

    def _getInfo(self) -> Dict[str, Any]:
        """Backend specific details for info(), override in subclasses."""
        return {}

    def info(self, includeFields: bool = False) -> Dict[str, Any]:
        """
        Get backend statistics.

        Args:
            includeFields: Also dump raw bytes of every known key under "fieldContent"

        Returns:
            Dict with "type", "hits", "misses", backend details and optionally "fieldContent"
        """
        ret: Dict[str, Any] = {
            "type": self.storageType,
            "hits": self._hits,
            "misses": self._misses,
            "fields": self._listFields(),
        }
        ret.update(self._getInfo())

        if includeFields:
            fieldContent: Dict[str, bytes | None] = {}
            for key in ret["fields"]:
                fieldContent[key] = self._peek(key)
            ret["fieldContent"] = fieldContent

        return ret

    def _peek(self, key: str) -> bytes | None:
        """Read raw bytes without touching hit/miss counters."""
        hits, misses = self._hits, self._misses
        try:
            return self.get(key)
        finally:
            self._hits, self._misses = hits, misses
