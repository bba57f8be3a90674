"""
VarCache service: Singleton owning the process-wide cache facade

This module builds the storage backend described by the [storage] config
section, wraps it into a VarCache configured from the [cache] section and
makes sure the metadata index is persisted once on shutdown.
"""

import atexit
import logging
import threading
from typing import TYPE_CHECKING, Any, Dict, Union

from lib.varcache import VarCache
from lib.varcache.exceptions import StorageConfigError
from lib.varcache.storage import AbstractStorage, FileStorage, MemoryStorage, NullStorage

if TYPE_CHECKING:
    from internal.config.manager import ConfigManager

logger = logging.getLogger(__name__)


def createStorage(config: Dict[str, Any]) -> AbstractStorage:
    """
    Create storage backend from [storage] configuration, dood!

    Args:
        config: Storage section, see ConfigManager.getStorageConfig()

    Returns:
        AbstractStorage: Not yet initialised backend

    Raises:
        StorageConfigError: If type is unknown or required options are missing
    """
    storageType = config.get("type", "memory")

    if storageType == "null":
        return NullStorage()

    if storageType == "memory":
        memoryConfig = config.get("memory", {})
        return MemoryStorage(prefix=memoryConfig.get("prefix", ""))

    if storageType == "file":
        fileConfig = config.get("file", {})
        return FileStorage(
            cacheDir=fileConfig.get("cache-dir"),
            extension=fileConfig.get("extension", "kcf"),
            fileLocking=bool(fileConfig.get("file-locking", True)),
        )

    if storageType == "redis":
        from lib.varcache.storage.redis_storage import RedisStorage

        redisConfig = config.get("redis", {})
        return RedisStorage(
            host=redisConfig.get("host", "127.0.0.1"),
            port=int(redisConfig.get("port", 6379)),
            db=int(redisConfig.get("db", 0)),
            password=redisConfig.get("password") or None,
            prefix=redisConfig.get("prefix", ""),
            timeout=float(redisConfig.get("timeout", 5.0)),
        )

    if storageType == "s3":
        from lib.varcache.storage.s3 import S3Storage

        s3Config = config.get("s3")
        if not s3Config:
            raise StorageConfigError("S3 storage configuration is missing")

        requiredParams = ["endpoint", "region", "key-id", "key-secret", "bucket"]
        missingParams = [p for p in requiredParams if not s3Config.get(p)]
        if missingParams:
            raise StorageConfigError(f"S3 configuration missing required parameters: {', '.join(missingParams)}")

        return S3Storage(
            endpoint=s3Config["endpoint"],
            region=s3Config["region"],
            keyId=s3Config["key-id"],
            keySecret=s3Config["key-secret"],
            bucket=s3Config["bucket"],
            prefix=s3Config.get("prefix", ""),
        )

    raise StorageConfigError(f"Unknown storage type: {storageType}")


class VarCacheService:
    """
    Singleton service holding the process-wide VarCache, dood!

    The facade itself has no internal locking. Code sharing it between
    threads must hold VarCacheService.lock around every call.

    Usage:
        service = VarCacheService.getInstance()
        service.injectConfig(configManager)

        with service.lock:
            cache = service.getCache()
            cache.store("answer", 42, expiry="1 hour")
    """

    _instance: Union["VarCacheService", None] = None
    _lock = threading.RLock()

    def __new__(cls) -> "VarCacheService":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
            return cls._instance

    def __init__(self):
        """Only runs once due to singleton pattern."""
        if not hasattr(self, "initialized"):
            self.cache: VarCache | None = None
            self.initialized = False
            self.lock = threading.RLock()
            self._shutdownDone = False
            self._atexitRegistered = False
            logger.info("VarCacheService created, awaiting configuration, dood!")

    @classmethod
    def getInstance(cls) -> "VarCacheService":
        return cls()

    def injectConfig(self, configManager: "ConfigManager") -> None:
        """
        Build backend and facade from configuration.

        Calling it again replaces the facade; the previous one is shut down
        first so its index is not lost.

        Args:
            configManager: Provides getCacheConfig() and getStorageConfig()

        Raises:
            StorageConfigError: If configuration is invalid or backend creation fails
        """
        cacheConfig = configManager.getCacheConfig() or {}
        storageConfig = configManager.getStorageConfig() or {}

        try:
            storage = createStorage(storageConfig)
        except StorageConfigError:
            raise
        except Exception as e:
            raise StorageConfigError(f"Failed to create cache storage: {e}") from e

        with self.lock:
            if self.cache is not None:
                self.shutdown()

            self.cache = VarCache(
                storage,
                enabled=bool(cacheConfig.get("enabled", True)),
                encryptKeys=bool(cacheConfig.get("encrypt-keys", True)),
            )
            self.initialized = True
            self._shutdownDone = False

            if not self._atexitRegistered:
                atexit.register(self.shutdown)
                self._atexitRegistered = True

        logger.info(f"VarCacheService initialized with {storage.storageType} storage, dood!")

    def getCache(self) -> VarCache:
        """
        Get configured cache facade.

        Raises:
            StorageConfigError: If injectConfig() was not called yet
        """
        if not self.initialized or self.cache is None:
            raise StorageConfigError("VarCacheService is not initialized. Call injectConfig() first, dood!")
        return self.cache

    def shutdown(self) -> bool:
        """
        Persist metadata index and close backend, only the first call does anything.

        Returns:
            bool: True if the index was written by this call
        """
        with self.lock:
            if self._shutdownDone or self.cache is None:
                return False
            self._shutdownDone = True
            ret = self.cache.close()
            logger.info("VarCacheService shut down, dood!")
            return ret
