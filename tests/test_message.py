from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

import pytest
from hypothesis import given
from hypothesis import strategies as st

from protowire.errors import DecodeError, EncodeError
from protowire.message import (
    GroupCodec,
    Message,
    MessageCodec,
    decode_length_delimiter,
    encode_length_delimiter,
    length_delimiter_len,
)
from protowire.scalars import INT32
from protowire.wire import DecodeContext, Reader, WireType, skip_field


@dataclass
class Empty(Message):
    def encode_raw(self, buf):
        pass

    def merge_field(self, tag, wire_type, reader, ctx):
        skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return 0

    def clear(self):
        pass


EMPTY = MessageCodec(Empty)


@dataclass
class NestedA(Message):
    a: Optional[NestedA] = None

    def encode_raw(self, buf):
        if self.a is not None:
            NESTED_A.encode(1, self.a, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            self.a = NESTED_A.merge(wire_type, self.a, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return 0 if self.a is None else NESTED_A.encoded_len(1, self.a)

    def clear(self):
        self.a = None


NESTED_A = MessageCodec(NestedA)


@dataclass
class NestedC(Message):
    r: list = field(default_factory=list)

    def encode_raw(self, buf):
        NESTED_C.encode_repeated(1, self.r, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            NESTED_C.merge_repeated(wire_type, self.r, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return NESTED_C.encoded_len_repeated(1, self.r)

    def clear(self):
        self.r.clear()


NESTED_C = MessageCodec(NestedC)


@dataclass
class RecursiveA(Message):
    kind: Union[RecursiveA, Empty, None] = None

    def encode_raw(self, buf):
        if isinstance(self.kind, RecursiveA):
            RECURSIVE_A.encode(1, self.kind, buf)
        elif isinstance(self.kind, Empty):
            EMPTY.encode(3, self.kind, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            current = self.kind if isinstance(self.kind, RecursiveA) else None
            self.kind = RECURSIVE_A.merge(wire_type, current, reader, ctx)
        elif tag == 3:
            current = self.kind if isinstance(self.kind, Empty) else None
            self.kind = EMPTY.merge(wire_type, current, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        if isinstance(self.kind, RecursiveA):
            return RECURSIVE_A.encoded_len(1, self.kind)
        if isinstance(self.kind, Empty):
            return EMPTY.encoded_len(3, self.kind)
        return 0

    def clear(self):
        self.kind = None


RECURSIVE_A = MessageCodec(RecursiveA)


@dataclass
class GroupA(Message):
    i2: Optional[int] = None

    def encode_raw(self, buf):
        if self.i2 is not None:
            INT32.encode(2, self.i2, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 2:
            self.i2 = INT32.merge(wire_type, self.i2, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return 0 if self.i2 is None else INT32.encoded_len(2, self.i2)

    def clear(self):
        self.i2 = None


GROUP_A = GroupCodec(GroupA)


@dataclass
class Test1(Message):
    groupa: Optional[GroupA] = None

    def encode_raw(self, buf):
        if self.groupa is not None:
            GROUP_A.encode(1, self.groupa, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            self.groupa = GROUP_A.merge(tag, wire_type, self.groupa, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return 0 if self.groupa is None else GROUP_A.encoded_len(1, self.groupa)

    def clear(self):
        self.groupa = None


@dataclass
class GroupB(Message):
    i16: Optional[int] = None

    def encode_raw(self, buf):
        if self.i16 is not None:
            INT32.encode(6, self.i16, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 6:
            self.i16 = INT32.merge(wire_type, self.i16, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return 0 if self.i16 is None else INT32.encoded_len(6, self.i16)

    def clear(self):
        self.i16 = None


GROUP_B = GroupCodec(GroupB)


@dataclass
class Test2(Message):
    i14: Optional[int] = None
    groupb: list = field(default_factory=list)
    i17: Optional[int] = None

    def encode_raw(self, buf):
        if self.i14 is not None:
            INT32.encode(4, self.i14, buf)
        GROUP_B.encode_repeated(5, self.groupb, buf)
        if self.i17 is not None:
            INT32.encode(7, self.i17, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 4:
            self.i14 = INT32.merge(wire_type, self.i14, reader, ctx)
        elif tag == 5:
            GROUP_B.merge_repeated(tag, wire_type, self.groupb, reader, ctx)
        elif tag == 7:
            self.i17 = INT32.merge(wire_type, self.i17, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        total = GROUP_B.encoded_len_repeated(5, self.groupb)
        if self.i14 is not None:
            total += INT32.encoded_len(4, self.i14)
        if self.i17 is not None:
            total += INT32.encoded_len(7, self.i17)
        return total

    def clear(self):
        self.i14 = None
        self.groupb.clear()
        self.i17 = None


@dataclass
class OptionalGroup(Message):
    nested_group: Optional[NestedGroup2] = None

    def encode_raw(self, buf):
        if self.nested_group is not None:
            NESTED_GROUP2.encode(2, self.nested_group, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 2:
            self.nested_group = NESTED_GROUP2.merge(wire_type, self.nested_group, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        if self.nested_group is None:
            return 0
        return NESTED_GROUP2.encoded_len(2, self.nested_group)

    def clear(self):
        self.nested_group = None


OPTIONAL_GROUP = GroupCodec(OptionalGroup)


@dataclass
class NestedGroup2(Message):
    optionalgroup: Optional[OptionalGroup] = None

    def encode_raw(self, buf):
        if self.optionalgroup is not None:
            OPTIONAL_GROUP.encode(1, self.optionalgroup, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            self.optionalgroup = OPTIONAL_GROUP.merge(
                tag, wire_type, self.optionalgroup, reader, ctx
            )
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        if self.optionalgroup is None:
            return 0
        return OPTIONAL_GROUP.encoded_len(1, self.optionalgroup)

    def clear(self):
        self.optionalgroup = None


NESTED_GROUP2 = MessageCodec(NestedGroup2)


@dataclass
class Factory(Message):
    parts: dict = field(default_factory=dict)

    def encode_raw(self, buf):
        for tag in sorted(self.parts):
            EMPTY.encode(tag, self.parts[tag], buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        self.parts[tag] = EMPTY.merge(wire_type, self.parts.get(tag), reader, ctx)

    def encoded_len(self):
        return sum(EMPTY.encoded_len(tag, part) for tag, part in self.parts.items())

    def clear(self):
        self.parts.clear()


MSG1_BYTES = bytes([0x0B, 0x10, 0x20, 0x0C])
MSG2_BYTES = bytes(
    [0x20, 0x40, 0x2B, 0x30, 0xFF, 0x01, 0x2C, 0x2B, 0x30, 0x01, 0x2C, 0x38, 0x64]
)


def check_message(msg):
    expected_len = msg.encoded_len()
    buf = bytearray()
    msg.encode(buf)
    assert len(buf) == expected_len
    reader = Reader(buf)
    roundtrip = type(msg).decode(reader)
    assert not reader.has_remaining()
    assert roundtrip == msg


def _roundtrip(msg):
    return type(msg).decode(msg.encode_to_bytes())


def _nested_a(depth):
    a = NestedA()
    for _ in range(depth):
        a = NestedA(a=a)
    return a


def test_deep_nesting():
    assert _roundtrip(_nested_a(100)) == _nested_a(100)
    with pytest.raises(DecodeError, match="recursion limit reached"):
        _roundtrip(_nested_a(101))


def _recursive_oneof(depth):
    a = RecursiveA(kind=Empty())
    for _ in range(depth):
        a = RecursiveA(kind=a)
    return a


def test_deep_nesting_oneof():
    assert _roundtrip(_recursive_oneof(99)) == _recursive_oneof(99)
    with pytest.raises(DecodeError):
        _roundtrip(_recursive_oneof(100))


def _nested_group(depth):
    a = NestedGroup2()
    for _ in range(depth):
        a = NestedGroup2(optionalgroup=OptionalGroup(nested_group=a))
    return a


def test_deep_nesting_group():
    assert _roundtrip(_nested_group(50)) == _nested_group(50)
    with pytest.raises(DecodeError):
        _roundtrip(_nested_group(51))


def _nested_c(depth):
    c = NestedC()
    for _ in range(depth):
        c = NestedC(r=[c])
    return c


def test_deep_nesting_repeated():
    assert _roundtrip(_nested_c(100)) == _nested_c(100)
    with pytest.raises(DecodeError):
        _roundtrip(_nested_c(101))


def test_267_regression():
    with pytest.raises(DecodeError):
        Empty.decode(b"C" * (1 << 20))


def test_group_encode():
    msg1 = Test1(groupa=GroupA(i2=32))
    buf = bytearray()
    msg1.encode(buf)
    assert bytes(buf) == MSG1_BYTES


def test_group_skip_unknown_fields():
    data = bytes([0x0B, 0x30, 0x01, 0x2B, 0x30, 0xFF, 0x01, 0x2C, 0x10, 0x20, 0x0C])
    assert Test1.decode(data) == Test1(groupa=GroupA(i2=32))


def test_repeated_group():
    msg2 = Test2(i14=64, groupb=[GroupB(i16=255), GroupB(i16=1)], i17=100)
    assert msg2.encode_to_bytes() == MSG2_BYTES
    assert msg2.encoded_len() == len(MSG2_BYTES)
    assert Test2.decode(MSG2_BYTES) == msg2


def test_group_roundtrips():
    check_message(Test1(groupa=GroupA(i2=None)))
    check_message(Test2())
    check_message(NestedGroup2(optionalgroup=OptionalGroup(nested_group=NestedGroup2())))


def test_mismatched_end_group():
    codec = GroupCodec(GroupA)
    reader = Reader(bytes([0x10, 0x20, 0x14]))
    with pytest.raises(DecodeError, match="unexpected end group tag"):
        codec.merge(1, WireType.START_GROUP, None, reader, DecodeContext())


def test_truncated_group():
    codec = GroupCodec(GroupA)
    reader = Reader(bytes([0x10, 0x20]))
    with pytest.raises(DecodeError):
        codec.merge(1, WireType.START_GROUP, None, reader, DecodeContext())


def test_wrong_wire_type_for_message_field():
    with pytest.raises(DecodeError, match="invalid wire type"):
        NestedA.decode(b"\x08\x01")


def test_message_field_length_underflow():
    with pytest.raises(DecodeError, match="buffer underflow"):
        NestedA.decode(b"\x0a\x05")


def test_empty_submessage_lengths():
    buf = bytearray()
    EMPTY.encode(1, Empty(), buf)
    assert bytes(buf) == b"\x0a\x00"
    factory = Factory()
    assert factory.encoded_len() == 0
    for count, tag in enumerate(range(1, 8), start=1):
        assert EMPTY.encoded_len(tag, Empty()) == 2
        factory.parts[tag] = Empty()
        assert factory.encoded_len() == 2 * count
    encoded = factory.encode_to_bytes()
    assert len(encoded) == 14
    assert Factory.decode(encoded) == factory


def test_merge_appends_repeated_and_replaces_scalars():
    msg = Test2.decode(MSG2_BYTES)
    msg.merge(bytes([0x20, 0x05]) + MSG2_BYTES[2:7])
    assert msg.i14 == 5
    assert msg.groupb == [GroupB(i16=255), GroupB(i16=1), GroupB(i16=255)]
    assert msg.i17 == 100


def test_encode_capacity():
    msg1 = Test1(groupa=GroupA(i2=32))
    buf = bytearray()
    with pytest.raises(EncodeError) as info:
        msg1.encode(buf, capacity=3)
    assert info.value.required_capacity() == 4
    assert info.value.remaining == 3
    assert buf == bytearray()
    msg1.encode(buf, capacity=4)
    assert bytes(buf) == MSG1_BYTES


def test_encode_length_delimited():
    msg1 = Test1(groupa=GroupA(i2=32))
    assert msg1.encode_length_delimited_to_bytes() == b"\x04" + MSG1_BYTES
    buf = bytearray()
    with pytest.raises(EncodeError) as info:
        msg1.encode_length_delimited(buf, capacity=4)
    assert info.value.required_capacity() == 5


def test_decode_length_delimited_leaves_trailing_data():
    reader = Reader(b"\x04" + MSG1_BYTES + b"\xff")
    msg = Test1.decode_length_delimited(reader)
    assert msg == Test1(groupa=GroupA(i2=32))
    assert reader.remaining() == 1


def test_merge_length_delimited_underflow():
    codec = MessageCodec(Test1)
    reader = Reader(b"\x09" + MSG1_BYTES)
    with pytest.raises(DecodeError, match="buffer underflow"):
        codec.merge(WireType.LENGTH_DELIMITED, None, reader, DecodeContext())


def test_length_delimiter_helpers():
    assert length_delimiter_len(0) == 1
    assert length_delimiter_len(127) == 1
    assert length_delimiter_len(128) == 2
    buf = bytearray()
    encode_length_delimiter(300, buf)
    assert bytes(buf) == b"\xac\x02"
    assert decode_length_delimiter(b"\xac\x02\x99") == 300
    with pytest.raises(EncodeError):
        encode_length_delimiter(300, bytearray(), capacity=1)
    with pytest.raises(DecodeError):
        decode_length_delimiter(b"\x80")


@given(st.integers(min_value=0, max_value=(1 << 64) - 1))
def test_length_delimiter_roundtrip(length):
    buf = bytearray()
    encode_length_delimiter(length, buf)
    assert len(buf) == length_delimiter_len(length)
    assert decode_length_delimiter(bytes(buf)) == length