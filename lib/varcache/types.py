"""
Core type definitions and protocols for lib.varcache, dood!

This module contains the enums, protocols and small value types shared by
the cache facade, the metadata index and the storage backends.
"""

from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import Any, Callable, Generic, Protocol, TypeVar

V = TypeVar("V")  # Value type - can be any type
T = TypeVar("T", contravariant=True)  # Generic object type for key generators

# Reserved logical name used to persist the metadata index itself
INFO_KEY = "_system.info"


class CodecMethod(StrEnum):
    """Encoding used for a stored value, recorded per entry"""

    SERIALIZE = "serialize"  # pickle, round-trips any picklable value
    JSON = "json"  # textual, lossy for non-JSON types

    @classmethod
    def fromValue(cls, value: Any) -> "CodecMethod":
        """
        Convert a persisted codec value back into a CodecMethod, dood!

        Unknown or empty values fall back to SERIALIZE, which is what
        the store operation uses when no method is given.
        """
        try:
            return cls(value)
        except ValueError:
            return cls.SERIALIZE


class InitState(Enum):
    """Lazy initialisation state of the cache facade"""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class Deferred(Generic[V]):
    """
    Default value computed only when it is actually needed, dood!

    Example:
        >>> cache.get("report", Deferred(lambda: buildReport()))
    """

    factory: Callable[[], V]

    def resolve(self) -> V:
        return self.factory()


type DefaultValue[DV] = DV | Deferred[DV]


def resolveDefault(default: Any) -> Any:
    """Return literal defaults as-is and invoke Deferred ones."""
    if isinstance(default, Deferred):
        return default.resolve()
    return default


class KeyGenerator(Protocol[T]):
    """
    Protocol for turning logical cache names into backend keys, dood!

    Example:
        >>> class StringKeyGenerator(KeyGenerator[str]):
        ...     def generateKey(self, obj: str) -> str:
        ...         return obj
    """

    def generateKey(self, obj: T) -> str:
        """
        Generate backend key from a logical name, dood!

        Args:
            obj: The object to convert to a backend key

        Returns:
            str: A string suitable for use as a backend key
        """
        ...


class ValueConverter(Protocol):
    """
    Protocol for converting values to stored bytes and back
    """

    def encode(self, obj: Any) -> bytes:
        """
        Convert value to bytes for the backend, dood!

        Args:
            obj: The value to encode

        Returns:
            bytes: Encoded representation
        """
        ...

    def decode(self, value: bytes) -> Any:
        """
        Decode bytes read from the backend, dood!

        Args:
            value: Raw bytes from the backend

        Returns:
            Any: The decoded value
        """
        ...
