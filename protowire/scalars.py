"""Field codecs for Protobuf scalar types: numbers, booleans, strings and bytes."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from typing import Any, Callable, Sequence

from .errors import DecodeError
from .wire import (
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_varint,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
)

_U32_MASK = (1 << 32) - 1
_U64_MASK = (1 << 64) - 1


class ScalarCodec(ABC):
    """Encodes and decodes one scalar field type.

    ``merge`` returns the decoded value, which replaces the previous one;
    ``merge_repeated`` appends to the list it is given.
    """

    def __init__(self, name: str, wire_type: WireType, default: Any) -> None:
        self.name = name
        self.wire_type = wire_type
        self.default = default

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @abstractmethod
    def _encode_value(self, value: Any, buf: bytearray) -> None:
        """Append the body of one value, without a key."""

    @abstractmethod
    def _decode_value(self, reader: Reader) -> Any:
        """Read the body of one value, without a key."""

    @abstractmethod
    def _value_len(self, value: Any) -> int:
        """Length of the body of one value, without a key."""

    def encode(self, tag: int, value: Any, buf: bytearray) -> None:
        """Append a keyed field holding ``value``."""
        encode_key(tag, self.wire_type, buf)
        self._encode_value(value, buf)

    def merge(self, wire_type: WireType, value: Any, reader: Reader, ctx: DecodeContext) -> Any:
        """Decode a field body and return the value that replaces ``value``."""
        check_wire_type(self.wire_type, wire_type)
        return self._decode_value(reader)

    def encode_repeated(self, tag: int, values: Sequence[Any], buf: bytearray) -> None:
        """Append one keyed field per value."""
        for value in values:
            self.encode(tag, value, buf)

    def merge_repeated(
        self, wire_type: WireType, values: list[Any], reader: Reader, ctx: DecodeContext
    ) -> None:
        """Decode one field body and append it to ``values``."""
        check_wire_type(self.wire_type, wire_type)
        values.append(self.merge(wire_type, self.default, reader, ctx))

    def encoded_len(self, tag: int, value: Any) -> int:
        """Length of the keyed field holding ``value``."""
        return key_len(tag) + self._value_len(value)

    def encoded_len_repeated(self, tag: int, values: Sequence[Any]) -> int:
        """Length of ``values`` encoded as unpacked repeated fields."""
        return key_len(tag) * len(values) + sum(self._value_len(value) for value in values)


class _PackableCodec(ScalarCodec):
    """A numeric codec whose repeated fields may arrive packed or unpacked."""

    def merge_repeated(
        self, wire_type: WireType, values: list[Any], reader: Reader, ctx: DecodeContext
    ) -> None:
        if wire_type == WireType.LENGTH_DELIMITED:
            merge_loop(values, reader, ctx, self._merge_packed_item)
            return
        check_wire_type(self.wire_type, wire_type)
        values.append(self.merge(wire_type, self.default, reader, ctx))

    def _merge_packed_item(self, values: list[Any], reader: Reader, ctx: DecodeContext) -> None:
        values.append(self.merge(self.wire_type, self.default, reader, ctx))

    def encode_packed(self, tag: int, values: Sequence[Any], buf: bytearray) -> None:
        """Append ``values`` as one packed field; nothing if empty."""
        if not values:
            return
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(self._packed_body_len(values), buf)
        for value in values:
            self._encode_value(value, buf)

    def encoded_len_packed(self, tag: int, values: Sequence[Any]) -> int:
        """Length of ``values`` encoded as one packed field."""
        if not values:
            return 0
        length = self._packed_body_len(values)
        return key_len(tag) + encoded_len_varint(length) + length

    def _packed_body_len(self, values: Sequence[Any]) -> int:
        return sum(self._value_len(value) for value in values)


class VarintCodec(_PackableCodec):
    """A scalar carried as a varint, with conversions to and from 64 bits."""

    def __init__(
        self,
        name: str,
        min_value: int,
        max_value: int,
        to_uint64: Callable[[int], int],
        from_uint64: Callable[[int], Any],
        default: Any = 0,
    ) -> None:
        super().__init__(name, WireType.VARINT, default)
        self.min_value = min_value
        self.max_value = max_value
        self._to_uint64 = to_uint64
        self._from_uint64 = from_uint64

    def _raw(self, value: Any) -> int:
        if not self.min_value <= value <= self.max_value:
            raise ValueError(f"{self.name} value out of range: {value}")
        return self._to_uint64(value)

    def _encode_value(self, value: Any, buf: bytearray) -> None:
        encode_varint(self._raw(value), buf)

    def _decode_value(self, reader: Reader) -> Any:
        return self._from_uint64(decode_varint(reader))

    def _value_len(self, value: Any) -> int:
        return encoded_len_varint(self._raw(value))

    def encode_packed(self, tag: int, values: Sequence[Any], buf: bytearray) -> None:
        """Append ``values`` as one packed varint field; nothing if empty."""
        super().encode_packed(tag, values, buf)

    def encoded_len_packed(self, tag: int, values: Sequence[Any]) -> int:
        """Length of ``values`` as one packed varint field."""
        return super().encoded_len_packed(tag, values)


class FixedCodec(_PackableCodec):
    """A scalar carried as a little-endian fixed-width value."""

    def __init__(self, name: str, fmt: str, wire_type: WireType, default: Any = 0) -> None:
        super().__init__(name, wire_type, default)
        self._struct = struct.Struct(fmt)
        self.width = self._struct.size

    def _encode_value(self, value: Any, buf: bytearray) -> None:
        try:
            buf += self._struct.pack(value)
        except struct.error as error:
            raise ValueError(f"{self.name} value out of range: {value}") from error

    def _decode_value(self, reader: Reader) -> Any:
        if reader.remaining() < self.width:
            raise DecodeError("buffer underflow")
        (value,) = self._struct.unpack(reader.read(self.width))
        return value

    def _value_len(self, value: Any) -> int:
        return self.width

    def encode_packed(self, tag: int, values: Sequence[Any], buf: bytearray) -> None:
        """Append ``values`` as one packed fixed-width field; nothing if empty."""
        super().encode_packed(tag, values, buf)

    def encoded_len_packed(self, tag: int, values: Sequence[Any]) -> int:
        """Length of ``values`` as one packed fixed-width field."""
        return super().encoded_len_packed(tag, values)

    def _packed_body_len(self, values: Sequence[Any]) -> int:
        return self.width * len(values)


def _read_delimited(reader: Reader) -> bytes:
    length = decode_varint(reader)
    if length > reader.remaining():
        raise DecodeError("buffer underflow")
    return reader.read(length)


class BytesCodec(ScalarCodec):
    """A length-delimited byte string."""

    def __init__(self, name: str = "bytes") -> None:
        super().__init__(name, WireType.LENGTH_DELIMITED, b"")

    def _encode_value(self, value: Any, buf: bytearray) -> None:
        data = bytes(value)
        encode_varint(len(data), buf)
        buf += data

    def _decode_value(self, reader: Reader) -> bytes:
        return _read_delimited(reader)

    def _value_len(self, value: Any) -> int:
        length = len(value)
        return encoded_len_varint(length) + length


class StringCodec(ScalarCodec):
    """A length-delimited UTF-8 string."""

    def __init__(self, name: str = "string") -> None:
        super().__init__(name, WireType.LENGTH_DELIMITED, "")

    def _encode_value(self, value: Any, buf: bytearray) -> None:
        data = value.encode("utf-8")
        encode_varint(len(data), buf)
        buf += data

    def _decode_value(self, reader: Reader) -> str:
        data = _read_delimited(reader)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise DecodeError("invalid string value: data is not UTF-8 encoded") from None

    def _value_len(self, value: Any) -> int:
        length = len(value.encode("utf-8"))
        return encoded_len_varint(length) + length


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    return value - (1 << bits) if value >> (bits - 1) else value


def _zigzag_encode(value: int, bits: int) -> int:
    return ((value << 1) ^ (value >> (bits - 1))) & ((1 << bits) - 1)


def _zigzag_decode(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    return (value >> 1) ^ -(value & 1)


_I32_MIN, _I32_MAX = -(1 << 31), (1 << 31) - 1
_I64_MIN, _I64_MAX = -(1 << 63), (1 << 63) - 1

BOOL = VarintCodec("bool", 0, 1, lambda v: 1 if v else 0, lambda v: v != 0, default=False)
INT32 = VarintCodec("int32", _I32_MIN, _I32_MAX, lambda v: v & _U64_MASK, lambda v: _to_signed(v, 32))
INT64 = VarintCodec("int64", _I64_MIN, _I64_MAX, lambda v: v & _U64_MASK, lambda v: _to_signed(v, 64))
UINT32 = VarintCodec("uint32", 0, _U32_MASK, lambda v: v, lambda v: v & _U32_MASK)
UINT64 = VarintCodec("uint64", 0, _U64_MASK, lambda v: v, lambda v: v)
SINT32 = VarintCodec(
    "sint32", _I32_MIN, _I32_MAX, lambda v: _zigzag_encode(v, 32), lambda v: _zigzag_decode(v, 32)
)
SINT64 = VarintCodec(
    "sint64", _I64_MIN, _I64_MAX, lambda v: _zigzag_encode(v, 64), lambda v: _zigzag_decode(v, 64)
)

FLOAT = FixedCodec("float", "<f", WireType.THIRTY_TWO_BIT, default=0.0)
DOUBLE = FixedCodec("double", "<d", WireType.SIXTY_FOUR_BIT, default=0.0)
FIXED32 = FixedCodec("fixed32", "<I", WireType.THIRTY_TWO_BIT)
FIXED64 = FixedCodec("fixed64", "<Q", WireType.SIXTY_FOUR_BIT)
SFIXED32 = FixedCodec("sfixed32", "<i", WireType.THIRTY_TWO_BIT)
SFIXED64 = FixedCodec("sfixed64", "<q", WireType.SIXTY_FOUR_BIT)

STRING = StringCodec()
BYTES = BytesCodec()