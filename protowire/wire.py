"""Low-level Protobuf wire format: varints, field keys and field skipping."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, TypeVar, Union

from .errors import DecodeError

MIN_TAG = 1
MAX_TAG = (1 << 29) - 1
RECURSION_LIMIT = 100

_U64_MAX = (1 << 64) - 1
_U32_MAX = (1 << 32) - 1

BytesLike = Union[bytes, bytearray, memoryview]
T = TypeVar("T")


class WireType(IntEnum):
    """The wire type carried in the low three bits of a field key."""

    VARINT = 0
    SIXTY_FOUR_BIT = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    THIRTY_TWO_BIT = 5


class Reader:
    """A forward-only cursor over an immutable byte sequence."""

    def __init__(self, data: BytesLike) -> None:
        self._data = memoryview(bytes(data))
        self._pos = 0

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return len(self._data) - self._pos

    def has_remaining(self) -> bool:
        return self._pos < len(self._data)

    def read_byte(self) -> int:
        """Consume and return one byte."""
        if not self.has_remaining():
            raise DecodeError("buffer underflow")
        byte = self._data[self._pos]
        self._pos += 1
        return byte

    def read(self, count: int) -> bytes:
        """Consume and return the next ``count`` bytes."""
        chunk = self._peek(count)
        self._pos += count
        return bytes(chunk)

    def advance(self, count: int) -> None:
        """Skip the next ``count`` bytes."""
        self._peek(count)
        self._pos += count

    def _peek(self, count: int) -> memoryview:
        if count < 0:
            raise ValueError(f"negative byte count: {count}")
        if count > self.remaining():
            raise DecodeError("buffer underflow")
        return self._data[self._pos : self._pos + count]


@dataclass(frozen=True)
class DecodeContext:
    """Decoding state passed down through nested decodes.

    Each level of nesting receives a context from ``enter_recursion``; the
    outer level keeps using its own.
    """

    recurse_count: int = RECURSION_LIMIT

    def enter_recursion(self) -> DecodeContext:
        """Return the context for the next level of nesting."""
        return DecodeContext(self.recurse_count - 1)

    def limit_reached(self) -> None:
        """Raise DecodeError if no further nesting is allowed."""
        if self.recurse_count <= 0:
            raise DecodeError("recursion limit reached")


def wire_type_from_int(value: int) -> WireType:
    """Convert a numeric wire type, raising DecodeError if it is unknown."""
    try:
        return WireType(value)
    except ValueError:
        raise DecodeError(f"invalid wire type value: {value}") from None


def encode_varint(value: int, buf: bytearray) -> None:
    """Append ``value`` to ``buf`` as an LEB128 varint (1 to 10 bytes)."""
    if not 0 <= value <= _U64_MAX:
        raise ValueError(f"varint value out of range: {value}")
    while value >= 0x80:
        buf.append((value & 0x7F) | 0x80)
        value >>= 7
    buf.append(value)


def decode_varint(reader: Reader) -> int:
    """Read an LEB128 varint, rejecting values beyond 64 bits."""
    window = reader._peek(min(10, reader.remaining()))
    value = 0
    for count, byte in enumerate(window):
        value |= (byte & 0x7F) << (7 * count)
        if byte < 0x80:
            if count == 9 and byte >= 0x02:
                raise DecodeError("invalid varint")
            reader.advance(count + 1)
            return value
    raise DecodeError("invalid varint")


def encoded_len_varint(value: int) -> int:
    """Number of bytes ``value`` takes as a varint, between 1 and 10."""
    return max(1, (value.bit_length() + 6) // 7)


def encode_key(tag: int, wire_type: WireType, buf: bytearray) -> None:
    """Append a field key made of ``tag`` and ``wire_type``."""
    if not MIN_TAG <= tag <= MAX_TAG:
        raise ValueError(f"tag out of range: {tag}")
    encode_varint((tag << 3) | int(wire_type), buf)


def decode_key(reader: Reader) -> tuple[int, WireType]:
    """Read a field key and return its (tag, wire type)."""
    key = decode_varint(reader)
    if key > _U32_MAX:
        raise DecodeError(f"invalid key value: {key}")
    wire_type = wire_type_from_int(key & 0x07)
    tag = key >> 3
    if tag < MIN_TAG:
        raise DecodeError("invalid tag value: 0")
    return tag, wire_type


def key_len(tag: int) -> int:
    """Width of the encoded key for ``tag``, between 1 and 5 bytes."""
    return encoded_len_varint(tag << 3)


def check_wire_type(expected: WireType, actual: WireType) -> None:
    """Raise DecodeError unless ``actual`` is ``expected``."""
    if expected != actual:
        raise DecodeError(
            f"invalid wire type: {WireType(actual).name} (expected {WireType(expected).name})"
        )


def merge_loop(
    value: T,
    reader: Reader,
    ctx: DecodeContext,
    merge: Callable[[T, Reader, DecodeContext], None],
) -> None:
    """Read a length prefix, then call ``merge`` until that many bytes are consumed."""
    length = decode_varint(reader)
    remaining = reader.remaining()
    if length > remaining:
        raise DecodeError("buffer underflow")
    limit = remaining - length
    while reader.remaining() > limit:
        merge(value, reader, ctx)
    if reader.remaining() != limit:
        raise DecodeError("delimited length exceeded")


def skip_field(wire_type: WireType, tag: int, reader: Reader, ctx: DecodeContext) -> None:
    """Consume the body of a field whose key has already been read."""
    ctx.limit_reached()
    if wire_type == WireType.VARINT:
        decode_varint(reader)
        return
    if wire_type == WireType.THIRTY_TWO_BIT:
        length = 4
    elif wire_type == WireType.SIXTY_FOUR_BIT:
        length = 8
    elif wire_type == WireType.LENGTH_DELIMITED:
        length = decode_varint(reader)
    elif wire_type == WireType.START_GROUP:
        while True:
            inner_tag, inner_wire_type = decode_key(reader)
            if inner_wire_type == WireType.END_GROUP:
                if inner_tag != tag:
                    raise DecodeError("unexpected end group tag")
                return
            skip_field(inner_wire_type, inner_tag, reader, ctx.enter_recursion())
    else:
        raise DecodeError("unexpected end group tag")

    if length > reader.remaining():
        raise DecodeError("buffer underflow")
    reader.advance(length)