"""
Value converter implementations for cache storage, dood!

Two strategies are available and the one used at store time is recorded
in the entry metadata, so reads always decode with the same converter:

- SerializeValueConverter: pickle, round-trips any picklable value
  including False, None and nested structures
- JsonValueConverter: JSON text, lossy for types JSON cannot represent
  (tuples come back as lists, sets and objects as their str())
"""

import json
import logging
import pickle
from typing import Any, Dict

import lib.utils as utils

from .types import CodecMethod, ValueConverter

logger = logging.getLogger(__name__)


class DecodeError(Exception):
    """Raised when stored bytes are empty or cannot be decoded"""

    pass


class SerializeValueConverter(ValueConverter):
    """
    Native serialization converter, dood!

    Uses pickle with the highest available protocol. Only ever decode data
    written by this process family: unpickling untrusted bytes is unsafe.
    """

    def encode(self, obj: Any) -> bytes:
        return pickle.dumps(obj, protocol=pickle.HIGHEST_PROTOCOL)

    def decode(self, value: bytes) -> Any:
        if not value:
            raise DecodeError("Empty value")
        try:
            return pickle.loads(value)
        except Exception as e:
            raise DecodeError(f"Failed to unpickle value: {e}") from e


class JsonValueConverter(ValueConverter):
    """
    JSON converter for serializable objects, dood!

    Encodes with lib.utils.jsonDumps (compact, UTF-8, non-JSON values
    stringified) and decodes with json.loads.
    """

    def encode(self, obj: Any) -> bytes:
        return utils.jsonDumps(obj, sort_keys=False).encode("utf-8")

    def decode(self, value: bytes) -> Any:
        if not value:
            raise DecodeError("Empty value")
        try:
            return json.loads(value)
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError(f"Failed to decode JSON value: {e}") from e


_CONVERTERS: Dict[CodecMethod, ValueConverter] = {
    CodecMethod.SERIALIZE: SerializeValueConverter(),
    CodecMethod.JSON: JsonValueConverter(),
}


def getValueConverter(method: CodecMethod) -> ValueConverter:
    """Get converter instance for the given codec method."""
    return _CONVERTERS[CodecMethod.fromValue(method)]
