"""
Key generator implementations for lib.varcache, dood!

Logical cache names are turned into backend keys by one of these generators.
Metadata is always indexed by the logical name, so switching generators only
changes what the backend sees.

Available Generators:
    - StringKeyGenerator: Pass-through for string keys
    - HashKeyGenerator: One-way hash (sha1 by default) of the name
"""

import hashlib

from .types import KeyGenerator


class StringKeyGenerator(KeyGenerator[str]):
    """
    Pass-through key generator for string keys, dood!

    Used when key encryption is switched off, mostly for debugging since
    the raw cache names then show up in the backend.

    Example:
        >>> generator = StringKeyGenerator()
        >>> generator.generateKey("user:123")
        'user:123'
    """

    def generateKey(self, obj: str) -> str:
        """
        Generate backend key from string input, dood!

        Args:
            obj: String to use as backend key

        Returns:
            str: The same string passed as input

        Raises:
            TypeError: If obj is not a string
        """
        if not isinstance(obj, str):
            raise TypeError(f"StringKeyGenerator expects string input, got {type(obj).__name__}, dood!")

        return obj


class HashKeyGenerator(KeyGenerator[str]):
    """
    Hashing key generator, dood!

    Hashes the logical name so that raw cache names never appear as
    storage keys. The hash is deterministic, so the same name always
    maps to the same backend key.

    Example:
        >>> generator = HashKeyGenerator()
        >>> len(generator.generateKey("user:123"))
        40
    """

    __slots__ = ("algorithm",)

    def __init__(self, algorithm: str = "sha1"):
        """
        Args:
            algorithm: Any algorithm name accepted by hashlib.new()
        """
        self.algorithm = algorithm

    def generateKey(self, obj: str) -> str:
        if not isinstance(obj, str):
            raise TypeError(f"HashKeyGenerator expects string input, got {type(obj).__name__}, dood!")

        return hashlib.new(self.algorithm, obj.encode("utf-8")).hexdigest()
