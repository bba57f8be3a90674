"""
Tests for storage utility functions, dood!
"""

import hashlib
import zlib

import pytest

from lib.varcache.exceptions import StorageKeyError
from lib.varcache.storage.utils import MAX_KEY_LENGTH, compress, decompress, sanitizeKey


def digestOf(key: str) -> str:
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


class TestSanitizeKey:
    @pytest.mark.parametrize(
        "key",
        [
            "valid-key.txt",
            "_system.info",
            "da39a3ee5e6b4b0d3255bfef95601890afd80709",
            "user_1",
            "a" * MAX_KEY_LENGTH,
        ],
    )
    def testCleanKeyUnchanged(self, key):
        assert sanitizeKey(key) == key

    @pytest.mark.parametrize(
        "key, readable",
        [
            ("../../etc/passwd", "__etc_passwd"),
            ("file/with/slashes", "file_with_slashes"),
            ("user:42", "user_42"),
            ("with spaces?", "withspaces"),
            ("tab\tand\x00null", "tabandnull"),
            ("кэш", ""),
            ("   ", ""),
        ],
    )
    def testRewrittenKeyCarriesDigest(self, key, readable):
        assert sanitizeKey(key) == f"{readable}~{digestOf(key)}"

    def testKnownDigest(self):
        assert sanitizeKey("user:42") == "user_42~adf14d23d3caa1297fd8df9a6f360b9d003ef4bc"

    def testDistinctKeysNeverCollide(self):
        keys = ["user:1", "user_1", "user/1", "user\\1", "user1", "us..er:1", "user:1 "]
        assert len({sanitizeKey(key) for key in keys}) == len(keys)

    def testResultIsSafe(self):
        result = sanitizeKey("../../etc/passwd")
        assert "/" not in result
        assert ".." not in result

    def testEmptyKey(self):
        with pytest.raises(StorageKeyError):
            sanitizeKey("")

    def testLongKeyIsShortened(self):
        longKey = "a" * (MAX_KEY_LENGTH + 1)
        result = sanitizeKey(longKey)

        assert len(result) == MAX_KEY_LENGTH
        assert result.endswith(f"~{digestOf(longKey)}")
        assert sanitizeKey(longKey + "b") != result


class TestCompression:
    def testRoundTrip(self):
        assert decompress(compress(b"payload" * 10)) == b"payload" * 10

    def testInvalidData(self):
        with pytest.raises(zlib.error):
            decompress(b"plain bytes")
