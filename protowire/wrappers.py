"""Messages for the Protobuf well-known wrapper types and ``Empty``.

Each wrapper holds a single scalar in field 1. A value equal to the type's
default is left out of the encoding.
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from .message import Message
from .scalars import (
    BOOL,
    BYTES,
    DOUBLE,
    FLOAT,
    INT32,
    INT64,
    STRING,
    UINT32,
    UINT64,
    ScalarCodec,
)
from .wire import DecodeContext, Reader, WireType, skip_field

_VALUE_FIELD = 1


class ScalarWrapper(Message):
    """A message holding one scalar ``value`` in field 1."""

    codec: ClassVar[ScalarCodec]

    def __init__(self, value: Optional[Any] = None) -> None:
        self.value = self.codec.default if value is None else value

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.value == other.value  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"

    def _is_default(self) -> bool:
        return self.value == self.codec.default

    def encode_raw(self, buf: bytearray) -> None:
        """Append field 1 unless the value is the default."""
        if not self._is_default():
            self.codec.encode(_VALUE_FIELD, self.value, buf)

    def merge_field(
        self, tag: int, wire_type: WireType, reader: Reader, ctx: DecodeContext
    ) -> None:
        """Decode field 1 into ``value``; skip any other field."""
        if tag == _VALUE_FIELD:
            self.value = self.codec.merge(wire_type, self.value, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self) -> int:
        """Length of the encoded message; zero for the default value."""
        if self._is_default():
            return 0
        return self.codec.encoded_len(_VALUE_FIELD, self.value)

    def clear(self) -> None:
        """Reset the value to its default."""
        self.value = self.codec.default


class BoolValue(ScalarWrapper):
    """``google.protobuf.BoolValue``."""

    codec = BOOL


class UInt32Value(ScalarWrapper):
    """``google.protobuf.UInt32Value``."""

    codec = UINT32


class UInt64Value(ScalarWrapper):
    """``google.protobuf.UInt64Value``."""

    codec = UINT64


class Int32Value(ScalarWrapper):
    """``google.protobuf.Int32Value``."""

    codec = INT32


class Int64Value(ScalarWrapper):
    """``google.protobuf.Int64Value``."""

    codec = INT64


class FloatValue(ScalarWrapper):
    """``google.protobuf.FloatValue``."""

    codec = FLOAT


class DoubleValue(ScalarWrapper):
    """``google.protobuf.DoubleValue``."""

    codec = DOUBLE


class StringValue(ScalarWrapper):
    """``google.protobuf.StringValue``."""

    codec = STRING


class BytesValue(ScalarWrapper):
    """``google.protobuf.BytesValue``."""

    codec = BYTES


class Empty(Message):
    """``google.protobuf.Empty``: a message with no fields."""

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return True

    def __repr__(self) -> str:
        return "Empty()"

    def encode_raw(self, buf: bytearray) -> None:
        """Append nothing."""

    def merge_field(
        self, tag: int, wire_type: WireType, reader: Reader, ctx: DecodeContext
    ) -> None:
        """Skip the field; Empty has none of its own."""
        skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self) -> int:
        """Always zero."""
        return 0

    def clear(self) -> None:
        """Nothing to reset."""