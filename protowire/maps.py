"""Encoding and decoding of Protobuf map fields.

A map field is a repeated length-delimited entry holding the key as field 1
and the value as field 2. A key or value equal to its default is left out of
the entry.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional

from .wire import (
    DecodeContext,
    Reader,
    WireType,
    decode_key,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
    skip_field,
)

_KEY_FIELD = 1
_VALUE_FIELD = 2


def _default_of(codec: Any, override: Optional[Any] = None) -> Any:
    """Return the default for ``codec``, or ``override`` when one is given."""
    if override is not None:
        return override
    if hasattr(codec, "default"):
        return codec.default
    if hasattr(codec, "factory"):
        return codec.factory()
    raise TypeError(f"cannot determine a default value for {codec!r}")


def _entry_body_len(
    key_codec: Any, val_codec: Any, key: Any, val: Any, key_default: Any, val_default: Any
) -> int:
    key_part = 0 if key == key_default else key_codec.encoded_len(_KEY_FIELD, key)
    val_part = 0 if val == val_default else val_codec.encoded_len(_VALUE_FIELD, val)
    return key_part + val_part


def encode_map(
    key_codec: Any,
    val_codec: Any,
    tag: int,
    values: Mapping[Any, Any],
    buf: bytearray,
    val_default: Optional[Any] = None,
) -> None:
    """Append one map entry field per item of ``values``.

    ``val_default`` overrides the value codec's default, as needed for
    enumerations whose default is not zero.
    """
    key_default = _default_of(key_codec)
    val_default = _default_of(val_codec, val_default)
    for key, val in values.items():
        skip_key = key == key_default
        skip_val = val == val_default
        length = _entry_body_len(key_codec, val_codec, key, val, key_default, val_default)
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(length, buf)
        if not skip_key:
            key_codec.encode(_KEY_FIELD, key, buf)
        if not skip_val:
            val_codec.encode(_VALUE_FIELD, val, buf)


def merge_map(
    key_codec: Any,
    val_codec: Any,
    values: MutableMapping[Any, Any],
    reader: Reader,
    ctx: DecodeContext,
    val_default: Optional[Any] = None,
) -> None:
    """Decode one map entry body from ``reader`` and insert it into ``values``.

    The entry's field key must already have been read. Missing keys or values
    take their defaults; unknown entry fields are skipped.
    """
    entry = [_default_of(key_codec), _default_of(val_codec, val_default)]

    def merge_entry_field(state: list[Any], inner: Reader, inner_ctx: DecodeContext) -> None:
        field_tag, wire_type = decode_key(inner)
        if field_tag == _KEY_FIELD:
            state[0] = key_codec.merge(wire_type, state[0], inner, inner_ctx)
        elif field_tag == _VALUE_FIELD:
            state[1] = val_codec.merge(wire_type, state[1], inner, inner_ctx)
        else:
            skip_field(wire_type, field_tag, inner, inner_ctx)

    ctx.limit_reached()
    merge_loop(entry, reader, ctx.enter_recursion(), merge_entry_field)
    key, val = entry
    values[key] = val


def encoded_len_map(
    key_codec: Any,
    val_codec: Any,
    tag: int,
    values: Mapping[Any, Any],
    val_default: Optional[Any] = None,
) -> int:
    """Length of ``values`` encoded as map entry fields."""
    key_default = _default_of(key_codec)
    val_default = _default_of(val_codec, val_default)
    total = key_len(tag) * len(values)
    for key, val in values.items():
        length = _entry_body_len(key_codec, val_codec, key, val, key_default, val_default)
        total += encoded_len_varint(length) + length
    return total