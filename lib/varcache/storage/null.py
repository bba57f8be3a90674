"""
Null storage backend

Stores nothing. Useful to run the cache facade with caching effectively off
while keeping every call site unchanged, and in tests.
"""

from .abstract import AbstractStorage


class NullStorage(AbstractStorage):
    """
    Storage backend that discards every write.

    store() reports success, get() always misses, has() is always False.

    Example:
        >>> storage = NullStorage()
        >>> storage.store("key", b"data")
        True
        >>> storage.get("key") is None
        True
    """

    storageType = "null"

    def init(self) -> None:
        pass

    def has(self, key: str) -> bool:
        return False

    def get(self, key: str, compressed: bool = False) -> bytes | None:
        self.miss()
        return None

    def store(self, key: str, value: bytes, compressed: bool = False) -> bool:
        return True

    def delete(self, key: str) -> bool:
        return key == ""
