"""
Metadata index for lib.varcache, dood!

The index maps every logical cache name to an EntryInfo record holding its
bookkeeping (timestamps, counters, size, codec, tags). It lives in memory and
is persisted by the cache facade as a flat JSON-compatible mapping under the
reserved name, so it must round-trip through toDict()/fromDict() losslessly.

The tag index is derived from the records on demand, it is never stored
separately.
"""

import logging
import time
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .types import INFO_KEY, CodecMethod

logger = logging.getLogger(__name__)

TIMESTAMP_FIELDS = ("created", "lastAccess", "lastRead", "lastWrite")
COUNTER_FIELDS = ("readCount", "writeCount")


@dataclass(slots=True)
class EntryInfo:
    """Bookkeeping for a single cached value"""

    created: int = 0
    lastAccess: Optional[int] = None
    lastRead: Optional[int] = None
    lastWrite: Optional[int] = None
    readCount: int = 0
    writeCount: int = 0
    # Absolute Unix timestamp, 0 means never
    expiry: int = 0
    size: int = 0
    compressed: bool = False
    codec: CodecMethod = CodecMethod.SERIALIZE
    tags: set[str] = field(default_factory=set)

    def toDict(self) -> Dict[str, Any]:
        """Convert record to JSON-compatible dict."""
        return {
            "created": self.created,
            "lastAccess": self.lastAccess,
            "lastRead": self.lastRead,
            "lastWrite": self.lastWrite,
            "readCount": self.readCount,
            "writeCount": self.writeCount,
            "expiry": self.expiry,
            "size": self.size,
            "compressed": self.compressed,
            "codec": self.codec.value,
            "tags": sorted(self.tags),
        }

    @classmethod
    def fromDict(cls, data: Dict[str, Any]) -> "EntryInfo":
        """
        Restore record from its persisted form, dood!

        Missing or malformed fields fall back to their defaults so that an
        index written by an older version still loads.
        """
        entry = cls()
        for name in TIMESTAMP_FIELDS:
            value = data.get(name)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                setattr(entry, name, int(value))
        entry.created = entry.created or 0

        for name in COUNTER_FIELDS + ("expiry", "size"):
            value = data.get(name)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                setattr(entry, name, int(value))

        entry.compressed = bool(data.get("compressed", False))
        entry.codec = CodecMethod.fromValue(data.get("codec"))

        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [tags]
        entry.tags = {str(tag) for tag in tags}
        return entry


class MetadataIndex:
    """
    In-memory mapping from logical name to EntryInfo, dood!

    No internal locking: the owning cache facade is single-threaded by
    contract and must be guarded externally when shared.

    Example:
        >>> index = MetadataIndex()
        >>> index.createRecord("user:1")
        >>> index.touch("user:1", "lastAccess", "lastWrite")
        >>> index.increment("user:1", "writeCount")
        >>> index.getItem("user:1", "writeCount")
        1
    """

    def __init__(self, records: Optional[Dict[str, EntryInfo]] = None):
        self._records: Dict[str, EntryInfo] = dict(records or {})

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))

    @staticmethod
    def _now() -> int:
        return int(time.time())

    def createRecord(self, name: str, now: Optional[int] = None) -> EntryInfo:
        """
        Create zero-valued record with created timestamp, dood!

        Args:
            name: Logical cache name
            now: Timestamp to use, defaults to current time

        Returns:
            EntryInfo: The new record (replaces any existing one)
        """
        entry = EntryInfo(created=self._now() if now is None else now)
        self._records[name] = entry
        return entry

    def getRecord(self, name: str) -> Optional[EntryInfo]:
        return self._records.get(name)

    def deleteRecord(self, name: str) -> bool:
        """Delete record, return False if it did not exist."""
        return self._records.pop(name, None) is not None

    def clear(self) -> None:
        self._records.clear()

    def getKeys(self) -> List[str]:
        return [name for name in self._records if name != INFO_KEY]

    def touch(self, name: str, *fieldNames: str, now: Optional[int] = None) -> None:
        """
        Set each named timestamp field to now, dood!

        Args:
            name: Logical cache name, must have a record
            fieldNames: Any of created, lastAccess, lastRead, lastWrite
            now: Timestamp to use, defaults to current time

        Raises:
            KeyError: If there is no record for name
            ValueError: If a field is not a timestamp field
        """
        entry = self._records[name]
        timestamp = self._now() if now is None else now
        for fieldName in fieldNames:
            if fieldName not in TIMESTAMP_FIELDS:
                raise ValueError(f"Not a timestamp field: {fieldName}")
            setattr(entry, fieldName, timestamp)

    def increment(self, name: str, fieldName: str) -> int:
        """
        Increment integer field, a missing or non-integer value counts as 0.

        Returns:
            int: The new value
        """
        entry = self._records[name]
        current = getattr(entry, fieldName, 0)
        if not isinstance(current, int) or isinstance(current, bool):
            current = 0
        current += 1
        setattr(entry, fieldName, current)
        return current

    def getItem(self, name: str, fieldName: str, default: Any = None) -> Any:
        """Get a single field of a record, default if record is missing."""
        entry = self._records.get(name)
        if entry is None:
            return default
        return getattr(entry, fieldName, default)

    def setItem(self, name: str, fieldName: str, value: Any) -> None:
        entry = self._records[name]
        if fieldName not in {f.name for f in fields(EntryInfo)}:
            raise ValueError(f"Unknown metadata field: {fieldName}")
        if fieldName == "tags":
            value = set(value)
        elif fieldName == "codec":
            value = CodecMethod.fromValue(value)
        setattr(entry, fieldName, value)

    def filterByTags(self, tags: Iterable[str]) -> List[str]:
        """
        Get every name whose tag set intersects the query, dood!

        Args:
            tags: Tags to look for

        Returns:
            List[str]: Matching names in index order, empty if none match
        """
        query = set(tags)
        if not query:
            return []
        return [name for name, entry in self._records.items() if entry.tags & query]

    def getAllTags(self) -> List[str]:
        """Get sorted union of every record's tags."""
        allTags: set[str] = set()
        for entry in self._records.values():
            allTags |= entry.tags
        return sorted(allTags)

    def toDict(self) -> Dict[str, Dict[str, Any]]:
        """Serialize whole index into flat name -> record mapping."""
        return {name: entry.toDict() for name, entry in self._records.items()}

    @classmethod
    def fromDict(cls, data: Any) -> "MetadataIndex":
        """
        Restore index from its persisted form, dood!

        Non-mapping input and non-mapping records are skipped with a warning
        rather than failing the whole bootstrap.
        """
        index = cls()
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed metadata index of type {type(data).__name__}, dood!")
            return index

        for name, record in data.items():
            if name == INFO_KEY:
                continue
            if not isinstance(record, dict):
                logger.warning(f"Ignoring malformed metadata record for '{name}'")
                continue
            index._records[str(name)] = EntryInfo.fromDict(record)
        return index
