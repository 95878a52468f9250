"""Binary record layout shared with the deployed loan program.

Layout rules (Anchor / Borsh compatible):

* 8-byte discriminator: ``sha256("account:<AccountName>")[:8]``
* integers little-endian at their declared width
* strings: u32 byte length followed by UTF-8 bytes
* enums: u8 variant index in declaration order
* optional i64: u8 tag (0 = None, 1 = Some) followed by the value when present

A record's allocated size is the discriminator plus the maximum encoded size
of every field, so it can be computed before the record exists.
"""

from __future__ import annotations

import hashlib
import struct
from typing import AbstractSet, Any, Dict, Optional, Sequence, Tuple, Type

from loan_ledger.common.protocol_constants import MAX_IDENTITY_LEN

from .enums import StringEnum
from .exceptions import ModelValidationError


DISCRIMINATOR_SIZE = 8


def account_discriminator(account_name: str) -> bytes:
    """Return the 8-byte type tag that prefixes every record of ``account_name``."""
    return hashlib.sha256("account:{0}".format(account_name).encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]


class FieldCodec:
    """Encoder/decoder for one record field."""

    max_size: int = 0

    def encode(self, value: Any) -> bytes:
        raise NotImplementedError

    def decode(self, buffer: bytes, offset: int) -> Tuple[Any, int]:
        raise NotImplementedError

    def _read(self, buffer: bytes, offset: int, size: int) -> bytes:
        end = offset + size
        if end > len(buffer):
            raise ModelValidationError("Record truncated at offset {0}".format(offset))
        return buffer[offset:end]


class IntCodec(FieldCodec):
    """Fixed-width little-endian integer."""

    def __init__(self, fmt: str) -> None:
        self._struct = struct.Struct("<" + fmt)
        self.max_size = self._struct.size

    def encode(self, value: Any) -> bytes:
        try:
            return self._struct.pack(int(value))
        except struct.error as exc:
            raise ModelValidationError("Integer {0} does not fit field: {1}".format(value, exc))

    def decode(self, buffer: bytes, offset: int) -> Tuple[Any, int]:
        (value,) = self._struct.unpack(self._read(buffer, offset, self.max_size))
        return value, offset + self.max_size


class BoolCodec(FieldCodec):
    max_size = 1

    def encode(self, value: Any) -> bytes:
        return b"\x01" if value else b"\x00"

    def decode(self, buffer: bytes, offset: int) -> Tuple[Any, int]:
        raw = self._read(buffer, offset, 1)[0]
        if raw not in (0, 1):
            raise ModelValidationError("Invalid bool byte {0}".format(raw))
        return raw == 1, offset + 1


class StrCodec(FieldCodec):
    """Length-prefixed UTF-8 string bounded by ``max_len`` bytes."""

    _length = struct.Struct("<I")

    def __init__(self, max_len: int) -> None:
        self.max_len = max_len
        self.max_size = self._length.size + max_len

    def encode(self, value: Any) -> bytes:
        raw = str(value).encode("utf-8")
        if len(raw) > self.max_len:
            raise ModelValidationError(
                "String of {0} bytes exceeds maximum {1}".format(len(raw), self.max_len)
            )
        return self._length.pack(len(raw)) + raw

    def decode(self, buffer: bytes, offset: int) -> Tuple[Any, int]:
        (length,) = self._length.unpack(self._read(buffer, offset, self._length.size))
        if length > self.max_len:
            raise ModelValidationError("Encoded string length {0} exceeds maximum {1}".format(length, self.max_len))
        start = offset + self._length.size
        raw = self._read(buffer, start, length)
        try:
            return raw.decode("utf-8"), start + length
        except UnicodeDecodeError as exc:
            raise ModelValidationError("Invalid UTF-8 in string field: {0}".format(exc))


class EnumCodec(FieldCodec):
    """Single-byte variant index of a :class:`StringEnum`."""

    max_size = 1

    def __init__(self, enum_cls: Type[StringEnum]) -> None:
        self.enum_cls = enum_cls

    def encode(self, value: Any) -> bytes:
        return bytes([self.enum_cls(value).variant_index()])

    def decode(self, buffer: bytes, offset: int) -> Tuple[Any, int]:
        index = self._read(buffer, offset, 1)[0]
        try:
            return self.enum_cls.from_variant_index(index), offset + 1
        except ValueError as exc:
            raise ModelValidationError(str(exc))


class OptionCodec(FieldCodec):
    """Tagged optional wrapper around another codec."""

    def __init__(self, inner: FieldCodec) -> None:
        self.inner = inner
        self.max_size = 1 + inner.max_size

    def encode(self, value: Optional[Any]) -> bytes:
        if value is None:
            return b"\x00"
        return b"\x01" + self.inner.encode(value)

    def decode(self, buffer: bytes, offset: int) -> Tuple[Any, int]:
        tag = self._read(buffer, offset, 1)[0]
        if tag == 0:
            return None, offset + 1
        if tag != 1:
            raise ModelValidationError("Invalid option tag {0}".format(tag))
        return self.inner.decode(buffer, offset + 1)


U8_CODEC = IntCodec("B")
U16_CODEC = IntCodec("H")
U64_CODEC = IntCodec("Q")
I64_CODEC = IntCodec("q")
BOOL_CODEC = BoolCodec()
OPTIONAL_I64_CODEC = OptionCodec(I64_CODEC)
IDENTITY_CODEC = StrCodec(MAX_IDENTITY_LEN)

Layout = Sequence[Tuple[str, FieldCodec]]


def record_space(layout: Layout) -> int:
    """Return discriminator + maximum encoded size of ``layout``."""
    return DISCRIMINATOR_SIZE + sum(codec.max_size for _, codec in layout)


def encode_record(account_name: str, layout: Layout, values: Dict[str, Any]) -> bytes:
    """Encode ``values`` in ``layout`` order behind the account discriminator."""
    chunks = [account_discriminator(account_name)]
    for field_name, codec in layout:
        try:
            chunks.append(codec.encode(values[field_name]))
        except ModelValidationError as exc:
            raise ModelValidationError("{0}.{1}: {2}".format(account_name, field_name, exc))
    return b"".join(chunks)


def decode_record(
    account_name: str,
    layout: Layout,
    data: bytes,
    optional_fields: AbstractSet[str] = frozenset(),
) -> Dict[str, Any]:
    """Decode a record, ignoring zero padding after the last field.

    A record written before trailing fields were appended to ``layout`` ends
    at a field boundary. When every remaining field is in ``optional_fields``
    decoding stops there and those fields are left out of the result.
    """
    expected = account_discriminator(account_name)
    if bytes(data[:DISCRIMINATOR_SIZE]) != expected:
        raise ModelValidationError("Discriminator mismatch for {0}".format(account_name))
    values: Dict[str, Any] = {}
    offset = DISCRIMINATOR_SIZE
    for index, (field_name, codec) in enumerate(layout):
        if offset == len(data) and all(name in optional_fields for name, _ in layout[index:]):
            break
        values[field_name], offset = codec.decode(data, offset)
    return values
