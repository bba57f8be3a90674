"""
Storage backend utility functions

Key sanitization for backends that map keys onto file names, and the
zlib helpers used by backends that compress client-side.
"""

import hashlib
import re
import zlib

from ..exceptions import StorageKeyError

# Maximum allowed key length
MAX_KEY_LENGTH = 200

# Regex pattern for allowed characters: alphanumeric, underscore, hyphen, dot
ALLOWED_CHARS_PATTERN = re.compile(r"^[a-zA-Z0-9_\-\.]$")

# Separates the readable part of a rewritten key from its digest
DIGEST_SEPARATOR = "~"

COMPRESSION_LEVEL = 6


def sanitizeKey(key: str) -> str:
    """
    Turn a backend key into a name safe to use as part of a file or object name.

    Keys made only of alphanumerics, underscore, hyphen and single dots, and
    not longer than MAX_KEY_LENGTH, pass through unchanged. Hashed keys (hex
    digests) are always in this group. Any other key is cleaned up (control
    characters dropped, path separators and colons replaced, double dots
    removed, other characters dropped), truncated and suffixed with
    "~<sha1 of the original key>". Clean keys never contain "~", so two
    different keys never share a name.

    Args:
        key: The backend key to sanitize

    Returns:
        The sanitized key string, at most MAX_KEY_LENGTH characters

    Raises:
        StorageKeyError: If the key is empty

    Examples:
        >>> sanitizeKey("_system.info")
        '_system.info'
        >>> sanitizeKey("user:42")
        'user_42~adf14d23d3caa1297fd8df9a6f360b9d003ef4bc'
    """
    if not key:
        raise StorageKeyError("Storage key cannot be empty")

    sanitized = "".join(char for char in key if ord(char) > 31 and ord(char) != 127)
    sanitized = sanitized.replace("/", "_").replace("\\", "_").replace(":", "_")
    sanitized = sanitized.replace("..", "")
    sanitized = "".join(char for char in sanitized if ALLOWED_CHARS_PATTERN.match(char))

    if sanitized == key and len(key) <= MAX_KEY_LENGTH:
        return key

    digest = hashlib.sha1(key.encode("utf-8", "surrogatepass")).hexdigest()
    prefix = sanitized[: MAX_KEY_LENGTH - len(digest) - 1]
    return f"{prefix}{DIGEST_SEPARATOR}{digest}"


def compress(data: bytes) -> bytes:
    return zlib.compress(data, COMPRESSION_LEVEL)


def decompress(data: bytes) -> bytes:
    """
    Inflate zlib data.

    Raises:
        zlib.error: If data is not valid zlib stream
    """
    return zlib.decompress(data)
