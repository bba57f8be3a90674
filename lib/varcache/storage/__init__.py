"""
Storage backends for lib.varcache, dood!

Every backend is a plain byte-blob store implementing AbstractStorage.
RedisStorage and S3Storage are imported from their own modules so that
the redis and boto3 clients are only loaded when used.
"""

from .abstract import AbstractStorage
from .filesystem import FileStorage
from .memory import MemoryStorage
from .null import NullStorage

__all__ = [
    "AbstractStorage",
    "FileStorage",
    "MemoryStorage",
    "NullStorage",
]
