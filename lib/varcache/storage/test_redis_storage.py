"""
Tests for RedisStorage with a mocked redis client, dood!
"""

import zlib
from unittest.mock import Mock, call, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from lib.varcache.exceptions import BackendUnavailableError
from lib.varcache.storage.redis_storage import RedisStorage


@pytest.fixture
def mockRedisClient():
    """Create a mock redis client, dood!"""
    client = Mock()
    client.ping = Mock(return_value=True)
    client.get = Mock(return_value=None)
    client.set = Mock(return_value=True)
    client.exists = Mock(return_value=0)
    client.delete = Mock(return_value=1)
    client.scan_iter = Mock(return_value=iter([]))
    return client


@pytest.fixture
def redisStorage(mockRedisClient):
    with patch("lib.varcache.storage.redis_storage.redis.Redis", return_value=mockRedisClient):
        storage = RedisStorage(host="redis.local", port=6380, db=2, prefix="vc:")
        storage.init()
    return storage


class TestRedisStorageInit:
    """Connection handling, dood!"""

    def testInitConnectsOnce(self, mockRedisClient):
        with patch("lib.varcache.storage.redis_storage.redis.Redis", return_value=mockRedisClient) as mockRedis:
            storage = RedisStorage(host="redis.local", port=6380, db=2, password="secret", timeout=2.0)
            storage.init()
            storage.init()

        mockRedis.assert_called_once_with(
            host="redis.local",
            port=6380,
            db=2,
            password="secret",
            socket_timeout=2.0,
            socket_connect_timeout=2.0,
        )
        mockRedisClient.ping.assert_called_once()

    def testUnreachableServer(self, mockRedisClient):
        mockRedisClient.ping.side_effect = RedisConnectionError("refused")
        with patch("lib.varcache.storage.redis_storage.redis.Redis", return_value=mockRedisClient):
            storage = RedisStorage()
            with pytest.raises(BackendUnavailableError):
                storage.init()

        assert storage.client is None
        mockRedisClient.close.assert_called_once()

    def testClose(self, redisStorage, mockRedisClient):
        redisStorage.close()
        mockRedisClient.close.assert_called_once()
        assert redisStorage.client is None


class TestRedisStorageOperations:
    """store/get/has/delete, dood!"""

    def testStoreReplacesExistingKey(self, redisStorage, mockRedisClient):
        assert redisStorage.store("key", b"data") is True
        mockRedisClient.set.assert_called_once_with("vc:key", b"data", xx=True)

    def testStoreSetsNewKey(self, redisStorage, mockRedisClient):
        mockRedisClient.set.side_effect = [None, True]

        assert redisStorage.store("key", b"data") is True
        assert mockRedisClient.set.call_args_list == [
            call("vc:key", b"data", xx=True),
            call("vc:key", b"data"),
        ]

    def testStoreCompressed(self, redisStorage, mockRedisClient):
        redisStorage.store("key", b"x" * 100, compressed=True)
        stored = mockRedisClient.set.call_args.args[1]
        assert zlib.decompress(stored) == b"x" * 100

    def testStoreError(self, redisStorage, mockRedisClient):
        mockRedisClient.set.side_effect = RedisError("boom")
        assert redisStorage.store("key", b"data") is False

    def testGetHit(self, redisStorage, mockRedisClient):
        mockRedisClient.get.return_value = zlib.compress(b"payload")

        assert redisStorage.get("key", compressed=True) == b"payload"
        mockRedisClient.get.assert_called_once_with("vc:key")
        assert redisStorage.getHits() == 1

    def testGetMiss(self, redisStorage):
        assert redisStorage.get("key") is None
        assert redisStorage.getMisses() == 1

    def testGetError(self, redisStorage, mockRedisClient):
        mockRedisClient.get.side_effect = RedisError("boom")
        assert redisStorage.get("key") is None
        assert redisStorage.getMisses() == 1

    def testHas(self, redisStorage, mockRedisClient):
        mockRedisClient.exists.return_value = 1
        assert redisStorage.has("key") is True
        mockRedisClient.exists.assert_called_once_with("vc:key")

    def testDelete(self, redisStorage, mockRedisClient):
        assert redisStorage.delete("key") is True
        mockRedisClient.delete.assert_called_once_with("vc:key")

        mockRedisClient.delete.return_value = 0
        assert redisStorage.delete("key") is False

    def testDeleteAllWithPrefix(self, redisStorage, mockRedisClient):
        mockRedisClient.scan_iter.return_value = iter([b"vc:a", b"vc:b"])

        assert redisStorage.delete("") is True
        mockRedisClient.scan_iter.assert_called_once_with(match="vc:*")
        mockRedisClient.delete.assert_called_once_with(b"vc:a", b"vc:b")
        mockRedisClient.flushdb.assert_not_called()

    def testDeleteAllWithoutPrefix(self, mockRedisClient):
        with patch("lib.varcache.storage.redis_storage.redis.Redis", return_value=mockRedisClient):
            storage = RedisStorage()
            assert storage.delete("") is True

        mockRedisClient.flushdb.assert_called_once()

    def testInfo(self, redisStorage, mockRedisClient):
        mockRedisClient.info.return_value = {"redis_version": "7.2.0", "used_memory": 1024}
        mockRedisClient.dbsize.return_value = 3
        mockRedisClient.scan_iter.return_value = iter([b"vc:a"])

        info = redisStorage.info()
        assert info["type"] == "redis"
        assert info["host"] == "redis.local"
        assert info["fields"] == ["a"]
        assert info["server"] == {"version": "7.2.0", "usedMemory": 1024, "keys": 3}
