"""
Variable cache facade, dood!

VarCache stores named values in a pluggable byte-blob backend and keeps the
per-entry bookkeeping (timestamps, counters, size, codec, compression, tags,
expiry) in a MetadataIndex. The index is persisted through the very backend it
describes, under the reserved name INFO_KEY, and is bootstrapped lazily on the
first call that needs it.

The facade is not thread-safe: reads mutate counters too, so share one
instance between threads only behind a single external lock.

Example:
    >>> from lib.varcache import VarCache
    >>> from lib.varcache.storage import MemoryStorage
    >>> with VarCache(MemoryStorage()) as cache:
    ...     cache.store("answer", 42, expiry="1 hour")
    ...     cache.get("answer")
    True
    42
"""

import datetime
import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from .expiry import resolveExpiry
from .key_generator import HashKeyGenerator, StringKeyGenerator
from .metadata import EntryInfo, MetadataIndex
from .storage.abstract import AbstractStorage
from .types import INFO_KEY, CodecMethod, DefaultValue, InitState, KeyGenerator, resolveDefault
from .value_converter import DecodeError, getValueConverter

logger = logging.getLogger(__name__)


class VarCache:
    """
    Caching facade over an AbstractStorage backend, dood!

    Every public operation checks the enabled flag first: a disabled cache
    answers with its no-op value (False, None, default, 0, empty container)
    and never touches the backend. Enabled operations then run init(), which
    is idempotent.

    Args:
        storage: Backend holding the encoded blobs
        enabled: Global kill switch
        encryptKeys: Hash logical names before using them as backend keys
        keyGenerator: Hashing key generator, defaults to sha1 hex digest
    """

    __slots__ = (
        "_storage",
        "_enabled",
        "_encryptKeys",
        "_hashKeyGenerator",
        "_plainKeyGenerator",
        "_index",
        "_readKeys",
        "_initState",
    )

    def __init__(
        self,
        storage: AbstractStorage,
        enabled: bool = True,
        encryptKeys: bool = True,
        keyGenerator: Optional[KeyGenerator[str]] = None,
    ):
        self._storage = storage
        self._enabled = bool(enabled)
        self._encryptKeys = bool(encryptKeys)
        self._hashKeyGenerator: KeyGenerator[str] = keyGenerator or HashKeyGenerator()
        self._plainKeyGenerator = StringKeyGenerator()
        self._index = MetadataIndex()
        self._readKeys: List[str] = []
        self._initState = InitState.NOT_STARTED

    def __enter__(self) -> "VarCache":
        return self

    def __exit__(self, excType, excValue, traceback) -> None:
        self.close()

    @staticmethod
    def _now() -> int:
        return int(time.time())

    ###
    # Lifecycle
    ###

    def init(self) -> bool:
        """
        Lazily initialise backend and metadata index, dood!

        Loads the persisted index if the backend holds one, then reconciles
        every record carrying an expiry: records whose blob vanished are
        dropped, expired entries are deleted from the backend too.

        Returns:
            bool: Always True once initialised (or while initialising)

        Raises:
            BackendUnavailableError: If the backend cannot be initialised.
                The cache stays un-initialised and the next call retries.
        """
        if self._initState is not InitState.NOT_STARTED:
            return True

        self._initState = InitState.IN_PROGRESS
        try:
            self._storage.init()
            if self._storage.has(self.encryptKey(INFO_KEY)):
                self._index = MetadataIndex.fromDict(self._readSystemInfo())
                self._reconcile(self._now())
                logger.info(f"Loaded metadata for {len(self._index)} cache entries")
        except Exception as e:
            logger.error(f"Failed to initialise cache with {type(self._storage).__name__}: {e}")
            self._initState = InitState.NOT_STARTED
            raise

        self._initState = InitState.DONE
        return True

    def _readSystemInfo(self) -> Any:
        raw = self._storage.get(self.encryptKey(INFO_KEY), True)
        if raw is None:
            return {}
        try:
            return getValueConverter(CodecMethod.JSON).decode(raw)
        except DecodeError as e:
            logger.warning(f"Stored metadata index is unreadable, starting empty: {e}")
            return {}

    def _reconcile(self, now: int) -> None:
        for name in self._index:
            entry = self._index.getRecord(name)
            if entry is None or entry.expiry == 0:
                continue
            if not self._storage.has(self.encryptKey(name)):
                logger.debug(f"Dropping metadata of vanished entry {name}")
                self._index.deleteRecord(name)
            elif now > entry.expiry:
                logger.debug(f"Deleting expired entry {name}")
                self._deleteEntry(name)

    def writeExpirals(self) -> bool:
        """
        Persist metadata index into the backend under the reserved name, dood!

        Written with JSON codec, compressed, never expiring and without any
        metadata bookkeeping of its own. No-op if init() never completed.

        Returns:
            bool: True if the index was written
        """
        if not self._enabled or self._initState is not InitState.DONE:
            return False

        data = getValueConverter(CodecMethod.JSON).encode(self._index.toDict())
        ret = self._storage.store(self.encryptKey(INFO_KEY), data, True)
        if ret:
            logger.info(f"Persisted metadata for {len(self._index)} cache entries")
        else:
            logger.error("Failed to persist cache metadata index")
        return ret

    def close(self) -> bool:
        """Persist metadata index and release backend resources."""
        ret = self.writeExpirals()
        self._storage.close()
        return ret

    ###
    # Settings
    ###

    def isEnabled(self) -> bool:
        return self._enabled

    def setEnabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    def getEncryptKeys(self) -> bool:
        return self._encryptKeys

    def setEncryptKeys(self, encryptKeys: bool) -> None:
        """
        Toggle key hashing.

        Only affects backend keys: blobs written under the other scheme
        become unreachable, metadata stays keyed by logical name.
        """
        self._encryptKeys = bool(encryptKeys)

    def getStorage(self) -> AbstractStorage:
        return self._storage

    def setStorage(self, storage: AbstractStorage) -> None:
        """
        Switch to another backend, dood!

        The current index is persisted into the old backend first, then the
        index of the new backend is bootstrapped lazily on next use.
        """
        self.writeExpirals()
        self._storage = storage
        self._index = MetadataIndex()
        self._readKeys = []
        self._initState = InitState.NOT_STARTED

    def encryptKey(self, name: str) -> str:
        """Turn logical name into backend key (hashed unless disabled)."""
        if self._encryptKeys:
            return self._hashKeyGenerator.generateKey(name)
        return self._plainKeyGenerator.generateKey(name)

    ###
    # Core operations
    ###

    def _isExpired(self, entry: EntryInfo, now: int) -> bool:
        return entry.expiry != 0 and now > entry.expiry

    def _getLiveRecord(self, name: str, now: int) -> Optional[EntryInfo]:
        """Get record, deleting the entry if it has expired."""
        entry = self._index.getRecord(name)
        if entry is not None and self._isExpired(entry, now):
            logger.debug(f"Entry {name} expired at {entry.expiry}")
            self._deleteEntry(name)
            return None
        return entry

    def _deleteEntry(self, name: str) -> bool:
        ret = self._storage.delete(self.encryptKey(name))
        self._index.deleteRecord(name)
        return ret

    def has(self, name: str) -> bool:
        """
        Check if a live value is cached under name, dood!

        Args:
            name: Logical cache name

        Returns:
            bool: True if the backend holds the blob and the entry is known and not expired
        """
        if not self._enabled:
            return False

        self.init()
        if not name:
            return False
        if name != INFO_KEY and self._getLiveRecord(name, self._now()) is None:
            return False
        return self._storage.has(self.encryptKey(name))

    def store(
        self,
        name: str,
        value: Any,
        compressed: bool = False,
        expiry: Any = 0,
        codec: CodecMethod = CodecMethod.SERIALIZE,
    ) -> bool:
        """
        Store value under name, dood!

        Metadata is only touched after the backend reported success.

        Args:
            name: Logical cache name (non-empty, not the reserved name)
            value: Any value the codec can encode
            compressed: Ask the backend to compress the blob
            expiry: Expiry expression, see resolveExpiry()
            codec: Encoding to use, recorded for later reads

        Returns:
            bool: Backend success flag

        Raises:
            InvalidExpiryError: If expiry cannot be parsed (nothing is written then)
        """
        if not self._enabled:
            return False

        self.init()
        if not name:
            logger.warning("Refusing to store value under empty name")
            return False
        if name == INFO_KEY:
            logger.warning(f"Refusing to store value under reserved name {INFO_KEY}")
            return False

        now = self._now()
        expiryTs = resolveExpiry(expiry, now)
        codec = CodecMethod.fromValue(codec)
        data = getValueConverter(codec).encode(value)

        if not self._storage.store(self.encryptKey(name), data, compressed):
            logger.error(f"Backend failed to store {name}")
            return False

        entry = self._index.getRecord(name)
        if entry is None:
            entry = self._index.createRecord(name, now)
        self._index.touch(name, "lastAccess", "lastWrite", now=now)
        entry.expiry = expiryTs
        entry.size = len(data)
        entry.compressed = bool(compressed)
        entry.codec = codec
        self._index.increment(name, "writeCount")
        return True

    def get(self, name: str, default: DefaultValue[Any] = None) -> Any:
        """
        Get value stored under name, dood!

        A stored None decodes successfully, so it is returned as is (not the
        default) and counts as a read: lastRead, readCount and getReadKeys()
        are updated for it like for any other value. Use has() to tell a
        stored None from a miss.

        Args:
            name: Logical cache name
            default: Returned on miss, a Deferred is only resolved on miss

        Returns:
            The cached value, the default on miss, or None if the stored blob
            vanished or could not be decoded (its metadata is dropped then)
        """
        if not self._enabled:
            return resolveDefault(default)

        self.init()
        now = self._now()
        if name == INFO_KEY:
            compressed, codec = True, CodecMethod.JSON
        else:
            entry = self._getLiveRecord(name, now) if name else None
            if entry is None:
                self._storage.miss()
                return resolveDefault(default)
            compressed, codec = entry.compressed, entry.codec

        raw = self._storage.get(self.encryptKey(name), compressed)
        try:
            if raw is None:
                raise DecodeError("Blob is missing in backend")
            value = getValueConverter(codec).decode(raw)
        except DecodeError as e:
            if name != INFO_KEY:
                logger.warning(f"Dropping metadata of unreadable entry {name}: {e}")
                self._index.deleteRecord(name)
            return None

        if name != INFO_KEY:
            self._index.touch(name, "lastAccess", "lastRead", now=now)
            self._index.increment(name, "readCount")
            if name not in self._readKeys:
                self._readKeys.append(name)
        return value

    def delete(self, name: str = "") -> bool:
        """
        Delete value stored under name, or everything if name is empty.

        Returns:
            bool: Backend result of the deletion
        """
        if not self._enabled:
            return False

        self.init()
        if name == "":
            ret = self._storage.delete("")
            self._index.clear()
            return ret

        return self._deleteEntry(name)

    def flush(self) -> bool:
        """Delete every cached value and the whole metadata index."""
        return self.delete("")

    def getOrStore(
        self,
        name: str,
        default: DefaultValue[Any],
        compressed: bool = False,
        expiry: Any = 0,
        codec: CodecMethod = CodecMethod.SERIALIZE,
    ) -> Any:
        """
        Get cached value, or resolve default, store it and return it, dood!

        Returns:
            The existing value, otherwise the resolved default (also when
            storing it failed)
        """
        if not self._enabled:
            return resolveDefault(default)

        if self.has(name):
            return self.get(name)

        value = resolveDefault(default)
        self.store(name, value, compressed, expiry, codec)
        return value

    def pull(self, name: str, default: DefaultValue[Any] = None) -> Any:
        """Get value and delete it."""
        value = self.get(name, default)
        self.delete(name)
        return value

    ###
    # Expiry
    ###

    def _formatTimestamp(self, timestamp: Optional[int], fmt: Optional[str]) -> Any:
        if timestamp is None or fmt is None:
            return timestamp
        return datetime.datetime.fromtimestamp(timestamp).strftime(fmt)

    def getExpiry(self, name: str, fmt: Optional[str] = None) -> Any:
        """
        Get expiry of an entry.

        Returns:
            0 if it never expires, timestamp (or strftime(fmt) of it) otherwise,
            None if the entry is missing or the cache is disabled
        """
        if not self._enabled:
            return None

        self.init()
        expiry = self._index.getItem(name, "expiry")
        if expiry is None or expiry == 0:
            return expiry
        return self._formatTimestamp(expiry, fmt)

    def getTTL(self, name: str) -> int:
        """Get time to live in seconds counted from creation, 0 means never."""
        expiry = self.getExpiry(name)
        if not expiry:
            return 0
        return expiry - (self.getCreated(name) or 0)

    def setTTL(self, name: str, ttl: int) -> bool:
        """
        Set expiry to created + ttl, ttl <= 0 means never.

        Returns:
            bool: False if the entry does not exist or the cache is disabled
        """
        if not self._canModify(name):
            return False

        entry = self._index.getRecord(name)
        assert entry is not None
        ttl = int(ttl)
        entry.expiry = entry.created + ttl if ttl > 0 else 0
        return True

    def setExpiry(self, name: str, expiry: Any) -> bool:
        """
        Re-resolve expiry of an existing entry.

        Raises:
            InvalidExpiryError: If expiry cannot be parsed
        """
        if not self._enabled:
            return False

        expiryTs = resolveExpiry(expiry, self._now())
        if not self._canModify(name):
            return False

        self._index.setItem(name, "expiry", expiryTs)
        return True

    def _canModify(self, name: str) -> bool:
        return self._enabled and name != INFO_KEY and self.has(name)

    ###
    # Tags
    ###

    @staticmethod
    def _prepareTags(tags: str | Iterable[str]) -> set[str]:
        if isinstance(tags, str):
            tags = [tags]
        return {str(tag) for tag in tags if str(tag)}

    def storeTagged(
        self,
        name: str,
        value: Any,
        tags: str | Iterable[str],
        compressed: bool = False,
        expiry: Any = 0,
        codec: CodecMethod = CodecMethod.SERIALIZE,
    ) -> bool:
        """
        Store value and replace its tags, dood!

        Returns:
            bool: Backend success flag, tags are only set on success
        """
        if not self.store(name, value, compressed, expiry, codec):
            return False

        self._index.setItem(name, "tags", self._prepareTags(tags))
        return True

    def getTagged(self, tags: str | Iterable[str]) -> Dict[str, Any]:
        """Get every value having any of the tags, keyed by name."""
        if not self._enabled:
            return {}

        self.init()
        return {name: self.get(name) for name in self._index.filterByTags(self._prepareTags(tags))}

    def getTags(self, name: str) -> Optional[List[str]]:
        """Get sorted tags of an entry, None if it does not exist."""
        if not self._enabled:
            return None

        self.init()
        tags = self._index.getItem(name, "tags")
        return None if tags is None else sorted(tags)

    def setTags(self, name: str, tags: str | Iterable[str]) -> bool:
        """Replace tags of an existing entry."""
        if not self._canModify(name):
            return False

        self._index.setItem(name, "tags", self._prepareTags(tags))
        return True

    def addTags(self, name: str, tags: str | Iterable[str]) -> bool:
        """Add tags to an existing entry, keeping the ones it already has."""
        if not self._canModify(name):
            return False

        current = self._index.getItem(name, "tags") or set()
        self._index.setItem(name, "tags", current | self._prepareTags(tags))
        return True

    def deleteTagged(self, tags: str | Iterable[str]) -> Dict[str, bool]:
        """
        Delete every entry having any of the tags, dood!

        Returns:
            Dict[str, bool]: Deletion result per deleted name
        """
        if not self._enabled:
            return {}

        self.init()
        return {name: self.delete(name) for name in self._index.filterByTags(self._prepareTags(tags))}

    def getAllTags(self) -> List[str]:
        """Get sorted union of every entry's tags."""
        if not self._enabled:
            return []

        self.init()
        return self._index.getAllTags()

    ###
    # Metadata accessors
    ###

    def getInfo(self, name: str = "") -> Optional[Dict[str, Any]]:
        """
        Get metadata as JSON-compatible dict.

        Args:
            name: Logical name, empty for the whole index

        Returns:
            Whole index (name -> record), a single record, or None if missing
        """
        if not self._enabled:
            return None

        self.init()
        if name == "":
            return self._index.toDict()
        entry = self._index.getRecord(name)
        return None if entry is None else entry.toDict()

    def info(self, includeFields: bool = False) -> Optional[Dict[str, Any]]:
        """Get backend statistics, see AbstractStorage.info()."""
        if not self._enabled:
            return None

        self.init()
        return self._storage.info(includeFields)

    def getHits(self) -> int:
        if not self._enabled:
            return 0
        return self._storage.getHits()

    def getMisses(self) -> int:
        if not self._enabled:
            return 0
        return self._storage.getMisses()

    def _getTimestamp(self, name: str, fieldName: str, fmt: Optional[str]) -> Any:
        if not self._enabled:
            return None

        self.init()
        return self._formatTimestamp(self._index.getItem(name, fieldName), fmt)

    def getCreated(self, name: str, fmt: Optional[str] = None) -> Any:
        """Get time of first store as timestamp, or strftime(fmt) of it."""
        return self._getTimestamp(name, "created", fmt)

    def getLastAccess(self, name: str, fmt: Optional[str] = None) -> Any:
        return self._getTimestamp(name, "lastAccess", fmt)

    def getLastRead(self, name: str, fmt: Optional[str] = None) -> Any:
        return self._getTimestamp(name, "lastRead", fmt)

    def getLastWrite(self, name: str, fmt: Optional[str] = None) -> Any:
        return self._getTimestamp(name, "lastWrite", fmt)

    def getReadCount(self, name: str) -> Optional[int]:
        if not self._enabled:
            return None

        self.init()
        return self._index.getItem(name, "readCount")

    def getWriteCount(self, name: str) -> Optional[int]:
        if not self._enabled:
            return None

        self.init()
        return self._index.getItem(name, "writeCount")

    def getKeys(self) -> List[str]:
        """Get every cached name, never including the reserved one."""
        if not self._enabled:
            return []

        self.init()
        return self._index.getKeys()

    def getReadKeys(self) -> List[str]:
        """Get names successfully read by this instance, in first-read order."""
        return list(self._readKeys)

    ###
    # Aliases
    ###

    def exist(self, name: str) -> bool:
        """Alias for has()"""
        return self.has(name)

    def put(
        self,
        name: str,
        value: Any,
        compressed: bool = False,
        expiry: Any = 0,
        codec: CodecMethod = CodecMethod.SERIALIZE,
    ) -> bool:
        """Alias for store()"""
        return self.store(name, value, compressed, expiry, codec)

    def set(
        self,
        name: str,
        value: Any,
        compressed: bool = False,
        expiry: Any = 0,
        codec: CodecMethod = CodecMethod.SERIALIZE,
    ) -> bool:
        """Alias for store()"""
        return self.store(name, value, compressed, expiry, codec)

    def retrieve(self, name: str, default: DefaultValue[Any] = None) -> Any:
        """Alias for get()"""
        return self.get(name, default)

    def load(self, name: str, default: DefaultValue[Any] = None) -> Any:
        """Alias for get()"""
        return self.get(name, default)

    def clear(self, name: str = "") -> bool:
        """Alias for delete()"""
        return self.delete(name)

    def getOrPut(
        self,
        name: str,
        default: DefaultValue[Any],
        compressed: bool = False,
        expiry: Any = 0,
        codec: CodecMethod = CodecMethod.SERIALIZE,
    ) -> Any:
        """Alias for getOrStore()"""
        return self.getOrStore(name, default, compressed, expiry, codec)

    def putTagged(
        self,
        name: str,
        value: Any,
        tags: str | Iterable[str],
        compressed: bool = False,
        expiry: Any = 0,
        codec: CodecMethod = CodecMethod.SERIALIZE,
    ) -> bool:
        """Alias for storeTagged()"""
        return self.storeTagged(name, value, tags, compressed, expiry, codec)

    def setTagged(
        self,
        name: str,
        value: Any,
        tags: str | Iterable[str],
        compressed: bool = False,
        expiry: Any = 0,
        codec: CodecMethod = CodecMethod.SERIALIZE,
    ) -> bool:
        """Alias for storeTagged()"""
        return self.storeTagged(name, value, tags, compressed, expiry, codec)

    def clearTagged(self, tags: str | Iterable[str]) -> Dict[str, bool]:
        """Alias for deleteTagged()"""
        return self.deleteTagged(tags)
