"""The Message base class, codecs for nested messages and groups, and length delimiters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Generic, Optional, Sequence, TypeVar, Union

from .errors import DecodeError, EncodeError
from .wire import (
    BytesLike,
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_key,
    decode_varint,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
)

M = TypeVar("M", bound="Message")
Source = Union[BytesLike, Reader]


def _as_reader(data: Source) -> Reader:
    return data if isinstance(data, Reader) else Reader(data)


def _merge_one_field(msg: Message, reader: Reader, ctx: DecodeContext) -> None:
    tag, wire_type = decode_key(reader)
    msg.merge_field(tag, wire_type, reader, ctx)


def _merge_delimited(msg: Message, reader: Reader, ctx: DecodeContext) -> None:
    ctx.limit_reached()
    merge_loop(msg, reader, ctx.enter_recursion(), _merge_one_field)


class Message(ABC):
    """A Protocol Buffers message.

    Subclasses describe their fields through ``encode_raw``, ``merge_field``,
    ``encoded_len`` and ``clear``; everything else is built on those.
    """

    @abstractmethod
    def encode_raw(self, buf: bytearray) -> None:
        """Append the message's fields to ``buf``."""

    @abstractmethod
    def merge_field(
        self, tag: int, wire_type: WireType, reader: Reader, ctx: DecodeContext
    ) -> None:
        """Decode one field whose key has been read and merge it into the message."""

    @abstractmethod
    def encoded_len(self) -> int:
        """Length of the encoded message without a length delimiter."""

    @abstractmethod
    def clear(self) -> None:
        """Reset every field to its default."""

    def encode(self, buf: bytearray, capacity: Optional[int] = None) -> None:
        """Append the message to ``buf``.

        Raises EncodeError if ``capacity`` is given and the message needs more.
        """
        required = self.encoded_len()
        if capacity is not None and required > capacity:
            raise EncodeError(required, capacity)
        self.encode_raw(buf)

    def encode_to_bytes(self) -> bytes:
        """Return the encoded message."""
        buf = bytearray()
        self.encode_raw(buf)
        return bytes(buf)

    def encode_length_delimited(self, buf: bytearray, capacity: Optional[int] = None) -> None:
        """Append the message to ``buf`` preceded by its length.

        Raises EncodeError if ``capacity`` is given and the result needs more.
        """
        length = self.encoded_len()
        required = length + encoded_len_varint(length)
        if capacity is not None and required > capacity:
            raise EncodeError(required, capacity)
        encode_varint(length, buf)
        self.encode_raw(buf)

    def encode_length_delimited_to_bytes(self) -> bytes:
        """Return the encoded message preceded by its length."""
        buf = bytearray()
        self.encode_length_delimited(buf)
        return bytes(buf)

    @classmethod
    def decode(cls: type[M], data: Source) -> M:
        """Decode a message from ``data``, consuming all of it."""
        message = cls()
        message.merge(data)
        return message

    @classmethod
    def decode_length_delimited(cls: type[M], data: Source) -> M:
        """Decode a length-prefixed message from the start of ``data``."""
        message = cls()
        message.merge_length_delimited(data)
        return message

    def merge(self, data: Source) -> None:
        """Decode all of ``data`` and merge it into this message."""
        reader = _as_reader(data)
        ctx = DecodeContext()
        while reader.has_remaining():
            tag, wire_type = decode_key(reader)
            self.merge_field(tag, wire_type, reader, ctx)

    def merge_length_delimited(self, data: Source) -> None:
        """Decode a length-prefixed message from ``data`` and merge it into this one."""
        _merge_delimited(self, _as_reader(data), DecodeContext())


class MessageCodec(Generic[M]):
    """Encodes and decodes fields holding a nested, length-delimited message."""

    def __init__(self, factory: Callable[[], M]) -> None:
        self.factory = factory

    def encode(self, tag: int, msg: M, buf: bytearray) -> None:
        """Append a keyed field holding ``msg``."""
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(msg.encoded_len(), buf)
        msg.encode_raw(buf)

    def merge(
        self, wire_type: WireType, msg: Optional[M], reader: Reader, ctx: DecodeContext
    ) -> M:
        """Merge a field body into ``msg`` (a new message if None) and return it."""
        check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
        if msg is None:
            msg = self.factory()
        _merge_delimited(msg, reader, ctx)
        return msg

    def encode_repeated(self, tag: int, messages: Sequence[M], buf: bytearray) -> None:
        """Append one keyed field per message."""
        for msg in messages:
            self.encode(tag, msg, buf)

    def merge_repeated(
        self, wire_type: WireType, messages: list[M], reader: Reader, ctx: DecodeContext
    ) -> None:
        """Decode one message and append it to ``messages``."""
        check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
        messages.append(self.merge(WireType.LENGTH_DELIMITED, self.factory(), reader, ctx))

    def encoded_len(self, tag: int, msg: M) -> int:
        """Length of the keyed field holding ``msg``."""
        length = msg.encoded_len()
        return key_len(tag) + encoded_len_varint(length) + length

    def encoded_len_repeated(self, tag: int, messages: Sequence[M]) -> int:
        """Length of ``messages`` encoded as repeated fields."""
        lengths = (msg.encoded_len() for msg in messages)
        return key_len(tag) * len(messages) + sum(
            length + encoded_len_varint(length) for length in lengths
        )


class GroupCodec(Generic[M]):
    """Encodes and decodes fields holding a message framed by start and end group keys."""

    def __init__(self, factory: Callable[[], M]) -> None:
        self.factory = factory

    def encode(self, tag: int, msg: M, buf: bytearray) -> None:
        """Append ``msg`` between start and end group keys."""
        encode_key(tag, WireType.START_GROUP, buf)
        msg.encode_raw(buf)
        encode_key(tag, WireType.END_GROUP, buf)

    def merge(
        self,
        tag: int,
        wire_type: WireType,
        msg: Optional[M],
        reader: Reader,
        ctx: DecodeContext,
    ) -> M:
        """Merge fields up to the matching end group key into ``msg`` and return it."""
        check_wire_type(WireType.START_GROUP, wire_type)
        ctx.limit_reached()
        if msg is None:
            msg = self.factory()
        while True:
            field_tag, field_wire_type = decode_key(reader)
            if field_wire_type == WireType.END_GROUP:
                if field_tag != tag:
                    raise DecodeError("unexpected end group tag")
                return msg
            msg.merge_field(field_tag, field_wire_type, reader, ctx.enter_recursion())

    def encode_repeated(self, tag: int, messages: Sequence[M], buf: bytearray) -> None:
        """Append one group per message."""
        for msg in messages:
            self.encode(tag, msg, buf)

    def merge_repeated(
        self,
        tag: int,
        wire_type: WireType,
        messages: list[M],
        reader: Reader,
        ctx: DecodeContext,
    ) -> None:
        """Decode one group and append it to ``messages``."""
        check_wire_type(WireType.START_GROUP, wire_type)
        messages.append(self.merge(tag, WireType.START_GROUP, self.factory(), reader, ctx))

    def encoded_len(self, tag: int, msg: M) -> int:
        """Length of ``msg`` encoded as a group."""
        return 2 * key_len(tag) + msg.encoded_len()

    def encoded_len_repeated(self, tag: int, messages: Sequence[M]) -> int:
        """Length of ``messages`` encoded as repeated groups."""
        return 2 * key_len(tag) * len(messages) + sum(msg.encoded_len() for msg in messages)


def encode_length_delimiter(length: int, buf: bytearray, capacity: Optional[int] = None) -> None:
    """Append a length delimiter to ``buf``.

    Raises EncodeError if ``capacity`` is given and the delimiter needs more.
    """
    required = encoded_len_varint(length)
    if capacity is not None and required > capacity:
        raise EncodeError(required, capacity)
    encode_varint(length, buf)


def length_delimiter_len(length: int) -> int:
    """Encoded width of a length delimiter, between 1 and 10 bytes."""
    return encoded_len_varint(length)


def decode_length_delimiter(data: Source) -> int:
    """Read a length delimiter from the start of ``data``."""
    return decode_varint(_as_reader(data))