"""
Value Codec

Converts application values to the string form stored in Redis and back,
keeping the value's kind so a round trip returns the same shape.

Wire format:
    INT     → bare decimal text ("42"), so INCRBY/DECRBY work server-side
    others  → orjson envelope {"k": <kind>, "v": <payload>}

    FLOAT   payload is repr() text (exact, survives nan/inf)
    BYTES   payload is base64
    STRUCT  payload is the JSON-shaped list/dict itself
    OBJECT  payload is base64 of the injected serializer's output

The codec also owns clone-on-read: structured values handed out of the
runtime tier are deep copies, so callers cannot mutate cached state.
"""

import base64
import binascii
import copy
import pickle
import re
from collections.abc import Callable
from enum import Enum
from typing import Any

import orjson

from object_cache.core.config.constants import Stage
from object_cache.core.exceptions import CodecError
from object_cache.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)

_INT_WIRE = re.compile(r"-?\d+")

# orjson only handles 64-bit integers inside structures
_JSON_INT_MIN = -(2**63)
_JSON_INT_MAX = 2**64 - 1


class ValueKind(str, Enum):
    """Closed set of value shapes the cache stores."""

    INT = "int"
    FLOAT = "float"
    STR = "str"
    BOOL = "bool"
    NONE = "none"
    BYTES = "bytes"
    STRUCT = "struct"
    OBJECT = "object"


_IMMUTABLE_KINDS = frozenset(
    {ValueKind.INT, ValueKind.FLOAT, ValueKind.STR, ValueKind.BOOL, ValueKind.NONE, ValueKind.BYTES}
)


def _is_json_shaped(value: Any) -> bool:
    """True if ``value`` survives an orjson round trip unchanged in type."""
    value_type = type(value)

    if value is None or value_type in (bool, str):
        return True
    if value_type is int:
        return _JSON_INT_MIN <= value <= _JSON_INT_MAX
    if value_type is float:
        return value == value and value not in (float("inf"), float("-inf"))
    if value_type is list:
        return all(_is_json_shaped(item) for item in value)
    if value_type is dict:
        return all(type(k) is str and _is_json_shaped(v) for k, v in value.items())
    return False


def classify(value: Any) -> ValueKind:
    """
    Map a value to its ValueKind.

    Exact types are checked so subclasses (IntEnum, OrderedDict, ...) are
    stored as OBJECT and come back as the same class.
    """
    value_type = type(value)

    if value is None:
        return ValueKind.NONE
    if value_type is bool:
        return ValueKind.BOOL
    if value_type is int:
        return ValueKind.INT
    if value_type is float:
        return ValueKind.FLOAT
    if value_type is str:
        return ValueKind.STR
    if value_type is bytes:
        return ValueKind.BYTES
    if value_type in (list, dict) and _is_json_shaped(value):
        return ValueKind.STRUCT
    return ValueKind.OBJECT


class ValueCodec:
    """
    Encodes values for the backend tier and decodes them back.

    Args:
        serializer: Turns an OBJECT value into bytes (default: pickle.dumps)
        deserializer: Inverse of ``serializer`` (default: pickle.loads)

    Only point ``deserializer`` at data this cache wrote: the default pickle
    deserializer must not read records from an untrusted Redis.
    """

    def __init__(
        self,
        serializer: Callable[[Any], bytes] = pickle.dumps,
        deserializer: Callable[[bytes], Any] = pickle.loads,
    ):
        self._serializer = serializer
        self._deserializer = deserializer

    def encode(self, value: Any) -> str:
        """
        Encode ``value`` to its wire string.

        Raises:
            CodecError: If the injected serializer refuses an OBJECT value
        """
        kind = classify(value)

        if kind is ValueKind.INT:
            return str(value)

        if kind is ValueKind.FLOAT:
            payload: Any = repr(value)
        elif kind is ValueKind.BYTES:
            payload = base64.b64encode(value).decode("ascii")
        elif kind is ValueKind.OBJECT:
            try:
                raw = self._serializer(value)
            except Exception as e:
                log_stage(
                    logger, Stage.CODEC, "Value serialization failed",
                    level="warning", value_type=type(value).__name__, error=str(e),
                )
                raise CodecError.from_exception(
                    e, message="Unable to serialize value", value_type=type(value).__name__
                )
            payload = base64.b64encode(raw).decode("ascii")
        else:
            payload = value

        return orjson.dumps({"k": kind.value, "v": payload}).decode("utf-8")

    def decode(self, wire: str | bytes) -> Any:
        """
        Decode a wire string produced by ``encode``.

        Raises:
            CodecError: If ``wire`` is not a value this codec wrote
        """
        if isinstance(wire, bytes):
            try:
                wire = wire.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CodecError.from_exception(e, message="Malformed cache record", wire=repr(wire[:40]))

        if _INT_WIRE.fullmatch(wire):
            return int(wire)

        try:
            envelope = orjson.loads(wire)
            kind = ValueKind(envelope["k"])
            payload = envelope["v"]
        except (orjson.JSONDecodeError, TypeError, KeyError, ValueError) as e:
            raise CodecError.from_exception(e, message="Malformed cache record", wire=wire[:40])

        try:
            if kind is ValueKind.FLOAT:
                return float(payload)
            if kind is ValueKind.BYTES:
                return base64.b64decode(payload, validate=True)
            if kind is ValueKind.OBJECT:
                return self._deserializer(base64.b64decode(payload, validate=True))
        except (
            binascii.Error, ValueError, TypeError, EOFError,
            AttributeError, ImportError, pickle.UnpicklingError,
        ) as e:
            raise CodecError.from_exception(e, message=f"Corrupt {kind.value} payload")

        return payload

    @staticmethod
    def clone(value: Any) -> Any:
        """
        Return a copy of ``value`` decoupled from the stored one.

        Scalars are immutable and returned as-is.

        Raises:
            CodecError: If the value cannot be deep-copied
        """
        if classify(value) in _IMMUTABLE_KINDS:
            return value
        try:
            return copy.deepcopy(value)
        except (TypeError, copy.Error) as e:
            raise CodecError.from_exception(
                e, message="Unable to copy value", value_type=type(value).__name__
            )
