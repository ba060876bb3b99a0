# protowire

Building blocks for reading and writing the Protocol Buffers binary wire
format: varints, field keys, scalar codecs, length-delimited strings and
bytes, nested messages, groups, maps, and the well-known wrapper types.

It needs nothing beyond the standard library.

## Installing

```
pip install protowire
```

## Modules

- `protowire.wire`: `WireType`, the `Reader` cursor, `DecodeContext`,
  varints (`encode_varint`, `decode_varint`, `encoded_len_varint`), field
  keys (`encode_key`, `decode_key`, `key_len`), `check_wire_type`,
  `merge_loop` and `skip_field`.
- `protowire.scalars`: codecs for every scalar type: `BOOL`, `INT32`,
  `INT64`, `UINT32`, `UINT64`, `SINT32`, `SINT64` (varints, with zigzag for
  the `SINT` types), `FLOAT`, `DOUBLE`, `FIXED32`, `FIXED64`, `SFIXED32`,
  `SFIXED64` (little-endian fixed width), `STRING` and `BYTES`.
- `protowire.message`: the `Message` base class, `MessageCodec` for nested
  messages, `GroupCodec` for groups, and length-delimiter helpers.
- `protowire.maps`: `encode_map`, `merge_map` and `encoded_len_map`.
- `protowire.wrappers`: the well-known wrapper messages and `Empty`.
- `protowire.errors`: `DecodeError` and `EncodeError`.

## Varints and keys

```python
from protowire.wire import Reader, WireType, decode_key, decode_varint, encode_key, encode_varint

buf = bytearray()
encode_key(1, WireType.VARINT, buf)
encode_varint(300, buf)
assert bytes(buf) == b"\x08\xac\x02"

reader = Reader(bytes(buf))
assert decode_key(reader) == (1, WireType.VARINT)
assert decode_varint(reader) == 300
```

Varints are limited to 64 bits and 10 bytes; tags run from 1 to 2**29 - 1.
Encoding a value out of range raises `ValueError`.

## Scalar codecs

Every codec in `protowire.scalars` has `encode`, `merge`,
`encode_repeated`, `merge_repeated`, `encoded_len` and
`encoded_len_repeated`. `merge` returns the decoded value, which replaces
the old one; `merge_repeated` appends to a list. The numeric codecs also
have `encode_packed` and `encoded_len_packed`, and their `merge_repeated`
accepts both packed and unpacked input.

```python
from protowire.scalars import SINT32
from protowire.wire import DecodeContext, Reader, decode_key

buf = bytearray()
SINT32.encode_packed(4, [-1, 1, 2], buf)

reader = Reader(bytes(buf))
tag, wire_type = decode_key(reader)
values = []
SINT32.merge_repeated(wire_type, values, reader, DecodeContext())
assert values == [-1, 1, 2]
```

`STRING` raises `DecodeError` on data that is not UTF-8.

## Defining messages

Subclass `protowire.message.Message` and implement `encode_raw`,
`merge_field`, `encoded_len` and `clear`. The subclass must be constructible
with no arguments. In exchange you get `encode`, `encode_to_bytes`,
`encode_length_delimited`, `encode_length_delimited_to_bytes`, `decode`,
`decode_length_delimited`, `merge` and `merge_length_delimited`. The decode
methods take `bytes`, `bytearray`, `memoryview` or a `Reader`.

```python
from protowire.message import Message
from protowire.scalars import INT32, STRING
from protowire.wire import skip_field


class Person(Message):
    def __init__(self, name="", age=0):
        self.name = name
        self.age = age

    def encode_raw(self, buf):
        if self.name:
            STRING.encode(1, self.name, buf)
        if self.age:
            INT32.encode(2, self.age, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            self.name = STRING.merge(wire_type, self.name, reader, ctx)
        elif tag == 2:
            self.age = INT32.merge(wire_type, self.age, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return (STRING.encoded_len(1, self.name) if self.name else 0) + (
            INT32.encoded_len(2, self.age) if self.age else 0
        )

    def clear(self):
        self.name = ""
        self.age = 0


data = Person("Ada", 36).encode_to_bytes()
assert data == b"\x0a\x03Ada\x10\x24"
person = Person.decode(data)
assert (person.name, person.age) == ("Ada", 36)
```

Fields holding another message use `MessageCodec(factory)`; groups use
`GroupCodec(factory)`. Their `merge` returns the message it merged into,
creating one with `factory` when given `None`.

Nested decoding (messages, groups, map entries and skipped groups) is
limited to a depth of 100 through `DecodeContext`; deeper input raises
`DecodeError("recursion limit reached")`.

## Maps

A map field is encoded as repeated entries with the key in field 1 and the
value in field 2; a key or value equal to its default is left out of the
entry. `merge_map` reads one entry whose field key has already been
decoded. `val_default` overrides the value codec's default.

```python
from protowire.maps import encode_map, merge_map
from protowire.scalars import INT32, STRING
from protowire.wire import DecodeContext, Reader, decode_key

buf = bytearray()
encode_map(STRING, INT32, 3, {"a": 1}, buf)
assert bytes(buf) == b"\x1a\x05\x0a\x01a\x10\x01"

reader = Reader(bytes(buf))
decode_key(reader)
decoded = {}
merge_map(STRING, INT32, decoded, reader, DecodeContext())
assert decoded == {"a": 1}
```

## Wrapper types

`protowire.wrappers` provides `BoolValue`, `Int32Value`, `Int64Value`,
`UInt32Value`, `UInt64Value`, `FloatValue`, `DoubleValue`, `StringValue`
and `BytesValue`, each holding `value` in field 1, and `Empty`, which skips
every field it is given.

```python
from protowire.wrappers import Int32Value

assert Int32Value(150).encode_to_bytes() == b"\x08\x96\x01"
assert Int32Value().encode_to_bytes() == b""
assert Int32Value.decode(b"\x08\x96\x01") == Int32Value(150)
```

## Length delimiters

`encode_length_delimiter`, `length_delimiter_len` and
`decode_length_delimiter` in `protowire.message` frame a stream of
messages, alongside `Message.encode_length_delimited` and
`Message.decode_length_delimited`.

## Errors

Malformed input raises `protowire.errors.DecodeError`, a `ValueError`
whose message begins with "failed to decode Protobuf message:". The
`encode`, `encode_length_delimited` and `encode_length_delimiter` functions
take an optional `capacity`; when the output would need more bytes than
that, they raise `protowire.errors.EncodeError`, which carries `required`
and `remaining` (also `required_capacity()`).

## What it does not do

There is no schema compiler: message classes are not generated from
`.proto` files and must be written by hand as shown above. There is no
text or JSON format, and no command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```