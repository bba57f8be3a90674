"""
Tests for MetadataIndex and EntryInfo, dood!
"""

import json

import pytest

from lib.varcache.metadata import EntryInfo, MetadataIndex
from lib.varcache.types import INFO_KEY, CodecMethod

NOW = 1_700_000_000


@pytest.fixture
def index():
    idx = MetadataIndex()
    idx.createRecord("a", now=NOW)
    idx.createRecord("b", now=NOW + 1)
    return idx


class TestRecords:
    """Record creation and updates, dood!"""

    def testCreateRecord(self):
        index = MetadataIndex()
        entry = index.createRecord("user:1", now=NOW)

        assert entry.created == NOW
        assert entry.lastAccess is None
        assert entry.lastRead is None
        assert entry.lastWrite is None
        assert entry.readCount == 0
        assert entry.writeCount == 0
        assert entry.expiry == 0
        assert entry.tags == set()
        assert entry.codec == CodecMethod.SERIALIZE
        assert "user:1" in index
        assert len(index) == 1

    def testTouch(self, index):
        index.touch("a", "lastAccess", "lastRead", now=NOW + 5)

        assert index.getItem("a", "lastAccess") == NOW + 5
        assert index.getItem("a", "lastRead") == NOW + 5
        assert index.getItem("a", "lastWrite") is None

    def testTouchRejectsNonTimestampField(self, index):
        with pytest.raises(ValueError):
            index.touch("a", "readCount", now=NOW)

    def testTouchMissingRecord(self, index):
        with pytest.raises(KeyError):
            index.touch("missing", "lastRead")

    def testIncrement(self, index):
        assert index.increment("a", "readCount") == 1
        assert index.increment("a", "readCount") == 2
        assert index.getItem("a", "readCount") == 2

    def testIncrementTreatsNonIntegerAsZero(self, index):
        index.getRecord("a").readCount = "broken"
        assert index.increment("a", "readCount") == 1

    def testGetItemDefault(self, index):
        assert index.getItem("missing", "readCount") is None
        assert index.getItem("missing", "readCount", 0) == 0

    def testSetItem(self, index):
        index.setItem("a", "tags", ["x", "y", "x"])
        index.setItem("a", "codec", "json")

        assert index.getItem("a", "tags") == {"x", "y"}
        assert index.getItem("a", "codec") == CodecMethod.JSON

    def testSetItemUnknownField(self, index):
        with pytest.raises(ValueError):
            index.setItem("a", "color", "red")

    def testDeleteRecord(self, index):
        assert index.deleteRecord("a") is True
        assert index.deleteRecord("a") is False
        assert index.getKeys() == ["b"]

    def testIterationAllowsDeletion(self, index):
        for name in index:
            index.deleteRecord(name)
        assert len(index) == 0


class TestTags:
    """Derived tag index, dood!"""

    def testFilterByTags(self, index):
        index.setItem("a", "tags", {"t1", "t2"})
        index.setItem("b", "tags", {"t1", "t3", "t4"})
        index.createRecord("c", now=NOW)

        assert index.filterByTags(["t1"]) == ["a", "b"]
        assert index.filterByTags(["t3", "t9"]) == ["b"]
        assert index.filterByTags(["t9"]) == []
        assert index.filterByTags([]) == []

    def testGetAllTags(self, index):
        index.setItem("a", "tags", {"t2", "t1"})
        index.setItem("b", "tags", {"t1", "t3", "t4"})

        assert index.getAllTags() == ["t1", "t2", "t3", "t4"]

    def testGetAllTagsEmpty(self):
        assert MetadataIndex().getAllTags() == []


class TestSerialization:
    """Flat JSON-compatible representation, dood!"""

    def testRoundTripIsLossless(self, index):
        index.touch("a", "lastAccess", "lastWrite", now=NOW + 3)
        index.increment("a", "writeCount")
        index.setItem("a", "expiry", NOW + 3600)
        index.setItem("a", "size", 123)
        index.setItem("a", "compressed", True)
        index.setItem("a", "codec", CodecMethod.JSON)
        index.setItem("a", "tags", {"t2", "t1"})

        data = json.loads(json.dumps(index.toDict()))
        restored = MetadataIndex.fromDict(data)

        assert restored.toDict() == index.toDict()
        assert restored.getRecord("a") == index.getRecord("a")
        assert restored.getKeys() == ["a", "b"]

    def testToDictShape(self, index):
        index.setItem("a", "tags", {"z", "m"})
        record = index.toDict()["a"]

        assert record["tags"] == ["m", "z"]
        assert record["codec"] == "serialize"
        assert set(record) == {
            "created",
            "lastAccess",
            "lastRead",
            "lastWrite",
            "readCount",
            "writeCount",
            "expiry",
            "size",
            "compressed",
            "codec",
            "tags",
        }

    def testFromDictIsTolerant(self):
        restored = MetadataIndex.fromDict(
            {
                "partial": {"created": NOW, "tags": "single", "codec": "unknown"},
                "broken": "not a record",
                INFO_KEY: {"created": NOW},
            }
        )

        assert restored.getKeys() == ["partial"]
        entry = restored.getRecord("partial")
        assert entry.tags == {"single"}
        assert entry.codec == CodecMethod.SERIALIZE
        assert entry.readCount == 0
        assert entry.lastRead is None

    @pytest.mark.parametrize("data", [None, [], "text", 42])
    def testFromDictMalformed(self, data):
        assert len(MetadataIndex.fromDict(data)) == 0

    def testEntryInfoFromDictIgnoresBadTypes(self):
        entry = EntryInfo.fromDict({"readCount": "many", "expiry": True, "size": 10.0})
        assert entry.readCount == 0
        assert entry.expiry == 0
        assert entry.size == 10
