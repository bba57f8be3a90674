"""
Redis storage backend

Network key/value service adapter using the redis client. Connects once in
init(), writes with a replace-then-set pattern and compresses client-side.
"""

import logging
import zlib
from typing import Any, Dict, List, Optional

import redis
from redis.exceptions import RedisError

from ..exceptions import BackendUnavailableError
from .abstract import AbstractStorage
from .utils import compress, decompress

logger = logging.getLogger(__name__)


class RedisStorage(AbstractStorage):
    """
    Redis-based storage backend.

    Args:
        host: Redis host
        port: Redis port
        db: Database number
        password: Optional password
        prefix: Optional prefix for all keys
        timeout: Socket timeout in seconds

    Example:
        >>> storage = RedisStorage(host="127.0.0.1", prefix="varcache:")
        >>> storage.init()
        >>> storage.store("key", b"data")
        True
    """

    storageType = "redis"

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        prefix: str = "",
        timeout: float = 5.0,
    ):
        super().__init__()
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self.prefix = prefix
        self.timeout = timeout
        self.client: Optional[redis.Redis] = None

    def init(self) -> None:
        """
        Connect to redis, no-op when already connected.

        Raises:
            BackendUnavailableError: If the server cannot be reached
        """
        if self.client is not None:
            return

        client = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password or None,
            socket_timeout=self.timeout,
            socket_connect_timeout=self.timeout,
        )
        try:
            client.ping()
        except RedisError as e:
            client.close()
            raise BackendUnavailableError(
                f"Failed to connect to redis at {self.host}:{self.port}: {e}", originalError=e
            )

        logger.info(f"Connected to redis at {self.host}:{self.port}/{self.db}")
        self.client = client

    def _getClient(self) -> redis.Redis:
        if self.client is None:
            self.init()
        assert self.client is not None
        return self.client

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def has(self, key: str) -> bool:
        try:
            return bool(self._getClient().exists(self._key(key)))
        except RedisError as e:
            logger.error(f"Failed to check key {key!r} in redis: {e}")
            return False

    def get(self, key: str, compressed: bool = False) -> bytes | None:
        try:
            data = self._getClient().get(self._key(key))
        except RedisError as e:
            logger.error(f"Failed to get key {key!r} from redis: {e}")
            data = None

        if data is None:
            self.miss()
            return None

        self.hit()
        if compressed:
            try:
                data = decompress(data)
            except zlib.error as e:
                logger.error(f"Failed to decompress redis value for key {key!r}: {e}")
                return None

        self._touchField(key)
        return data

    def store(self, key: str, value: bytes, compressed: bool = False) -> bool:
        data = compress(value) if compressed else value
        fullKey = self._key(key)
        try:
            client = self._getClient()
            # Replace first, plain set only if the key was not there yet
            if not client.set(fullKey, data, xx=True):
                if not client.set(fullKey, data):
                    return False
        except RedisError as e:
            logger.error(f"Failed to store key {key!r} to redis: {e}")
            return False

        self._touchField(key)
        return True

    def delete(self, key: str) -> bool:
        try:
            client = self._getClient()
            if key == "":
                if self.prefix:
                    keys = list(client.scan_iter(match=f"{self.prefix}*"))
                    if keys:
                        client.delete(*keys)
                else:
                    client.flushdb()
                self._forgetField("")
                return True

            deleted = bool(client.delete(self._key(key)))
        except RedisError as e:
            logger.error(f"Failed to delete key {key!r} from redis: {e}")
            return False

        self._forgetField(key)
        return deleted

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None

    def _listFields(self) -> List[str]:
        if self.client is None or not self.prefix:
            return list(self._fields)
        try:
            prefixLen = len(self.prefix)
            return sorted(k.decode("utf-8")[prefixLen:] for k in self.client.scan_iter(match=f"{self.prefix}*"))
        except RedisError as e:
            logger.error(f"Failed to list redis keys: {e}")
            return list(self._fields)

    def _getInfo(self) -> Dict[str, Any]:
        ret: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "prefix": self.prefix,
        }
        if self.client is not None:
            try:
                serverInfo = self.client.info()
                ret["server"] = {
                    "version": serverInfo.get("redis_version"),
                    "usedMemory": serverInfo.get("used_memory"),
                    "keys": self.client.dbsize(),
                }
            except RedisError as e:
                logger.error(f"Failed to get redis server info: {e}")
        return ret
