"""
lib.varcache - Variable caching library, dood!

Stores named values with an expiry policy and optional tags in a replaceable
byte-blob backend, while keeping per-entry bookkeeping (timestamps, read/write
counters, size, codec, compression, tags) independently of the storage medium.

Core Components:
- VarCache: The caching facade callers use
- MetadataIndex: Per-entry bookkeeping, persisted under the reserved name
- resolveExpiry: Turns expiry expressions into absolute timestamps
- Value converters: pickle (SERIALIZE) or JSON encoding, recorded per entry
- Storage backends: memory, file, redis, s3 and null (see lib.varcache.storage)

Example Usage:
    >>> from lib.varcache import VarCache, Deferred
    >>> from lib.varcache.storage import FileStorage
    >>>
    >>> with VarCache(FileStorage("/tmp/varcache")) as cache:
    ...     cache.storeTagged("user:123", {"name": "Prinny"}, ["users"], expiry="2 days")
    ...     report = cache.getOrStore("report", Deferred(buildReport), expiry=3600)
    ...     cache.deleteTagged("users")
"""

from .cache import VarCache
from .exceptions import (
    BackendUnavailableError,
    InvalidExpiryError,
    StorageBackendError,
    StorageConfigError,
    StorageError,
    StorageKeyError,
    VarCacheError,
)
from .expiry import parseRelativeExpiry, resolveExpiry
from .key_generator import HashKeyGenerator, StringKeyGenerator
from .metadata import EntryInfo, MetadataIndex
from .types import INFO_KEY, CodecMethod, Deferred, InitState, KeyGenerator, ValueConverter
from .value_converter import DecodeError, JsonValueConverter, SerializeValueConverter, getValueConverter

__version__ = "0.1.0"

__all__ = [
    # Facade
    "VarCache",
    # Metadata
    "EntryInfo",
    "MetadataIndex",
    "INFO_KEY",
    # Core types
    "CodecMethod",
    "Deferred",
    "InitState",
    "KeyGenerator",
    "ValueConverter",
    # Expiry
    "resolveExpiry",
    "parseRelativeExpiry",
    # Key generators
    "HashKeyGenerator",
    "StringKeyGenerator",
    # Value converters
    "DecodeError",
    "JsonValueConverter",
    "SerializeValueConverter",
    "getValueConverter",
    # Exceptions
    "VarCacheError",
    "InvalidExpiryError",
    "StorageError",
    "StorageKeyError",
    "StorageConfigError",
    "StorageBackendError",
    "BackendUnavailableError",
]
