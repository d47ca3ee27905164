import dataclasses
import enum
import logging
import struct
from typing import ClassVar, Generator, Tuple, Union

from .const import (
    MAX_SIZE,
    MAX_VARINT_BYTES,
    UINT64_MASK,
    WIRE_FIXED_32,
    WIRE_LEN_DELIM,
    WIRE_VARINT,
)
from .errors import (
    InvalidSizeError,
    InvalidStringError,
    InvalidVarintError,
    InvalidWireTypeError,
    UnexpectedEOFError,
    UnexpectedWireTypeError,
)

logger = logging.getLogger(__name__)

Buffer = Union[bytes, bytearray, memoryview]


class WireType(enum.IntEnum):
    """The wire types this decoder understands, keyed by their tag code."""

    VARINT = WIRE_VARINT
    LEN_DELIM = WIRE_LEN_DELIM
    FIXED_32 = WIRE_FIXED_32


def _as_view(data: Buffer) -> memoryview:
    """Wrap `data` in a flat byte view without copying it."""
    view = memoryview(data)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


class FieldValue:
    """
    A single decoded value. Each subclass overrides the accessors that match
    its wire type; every other accessor raises `UnexpectedWireTypeError`.
    """

    wire_type: ClassVar[WireType]

    def _unexpected(self, wanted: str) -> UnexpectedWireTypeError:
        return UnexpectedWireTypeError(
            f"Cannot read {self.wire_type.name} value as {wanted}"
        )

    def as_string(self) -> str:
        raise self._unexpected("string")

    def as_bytes(self) -> memoryview:
        raise self._unexpected("bytes")

    def as_uint(self) -> int:
        raise self._unexpected("unsigned int")

    def as_int32(self) -> int:
        raise self._unexpected("int32")


@dataclasses.dataclass(frozen=True)
class VarintValue(FieldValue):
    wire_type: ClassVar[WireType] = WireType.VARINT

    value: int

    def as_uint(self) -> int:
        return self.value


@dataclasses.dataclass(frozen=True, repr=False)
class BytesValue(FieldValue):
    """
    A length-delimited payload. `data` is a view into the buffer the field was
    decoded from, so that buffer must stay alive (and unresized) for as long
    as the view is used.
    """

    wire_type: ClassVar[WireType] = WireType.LEN_DELIM

    data: memoryview

    def __repr__(self) -> str:
        return f"BytesValue({bytes(self.data)!r})"

    def as_string(self) -> str:
        try:
            return str(self.data, "utf-8")
        except UnicodeDecodeError as e:
            raise InvalidStringError() from e

    def as_bytes(self) -> memoryview:
        return self.data


@dataclasses.dataclass(frozen=True)
class Fixed32Value(FieldValue):
    wire_type: ClassVar[WireType] = WireType.FIXED_32

    value: int

    def as_int32(self) -> int:
        return self.value


@dataclasses.dataclass(frozen=True)
class Field:
    number: int
    value: FieldValue

    @property
    def wire_type(self) -> WireType:
        return self.value.wire_type


def decode_varint(
    data: Buffer, limit: int = MAX_VARINT_BYTES
) -> Tuple[int, memoryview]:
    """
    Decode a single varint from the front of `data`. Returns the value and a
    view of the bytes that follow it.

    At most `limit` bytes are examined. Pass `STANDARD_VARINT_BYTES` to accept
    every varint the wire format allows.
    """
    view = _as_view(data)
    result = 0
    for i, b in enumerate(view[:limit]):
        result |= (b & 0x7F) << (7 * i)
        if not (b & 0x80):
            return result & UINT64_MASK, view[i + 1 :]

    if len(view) < limit:
        raise InvalidVarintError("Buffer ended before varint terminated")
    raise InvalidVarintError(f"Varint longer than {limit} bytes")


def unpack_tag(tag: int) -> Tuple[int, WireType]:
    """Split a tag into its field number and wire type."""
    try:
        wire_type = WireType(tag & 0x7)
    except ValueError as e:
        raise InvalidWireTypeError(f"Invalid wire-type {tag & 0x7}") from e
    return tag >> 3, wire_type


def decode_field(
    data: Buffer, limit: int = MAX_VARINT_BYTES
) -> Tuple[Field, memoryview]:
    """
    Decode the field starting at the front of `data`. Returns the field and a
    view of the remaining bytes. `limit` caps every varint read for the field.
    """
    tag, rest = decode_varint(data, limit)
    number, wire_type = unpack_tag(tag)

    value: FieldValue
    if wire_type == WireType.VARINT:
        decoded, rest = decode_varint(rest, limit)
        value = VarintValue(decoded)
    elif wire_type == WireType.LEN_DELIM:
        length, rest = decode_varint(rest, limit)
        if length > MAX_SIZE:
            raise InvalidSizeError(f"Invalid length {length} for field {number}")
        if len(rest) < length:
            raise UnexpectedEOFError(
                f"Field {number} needs {length} bytes, only {len(rest)} remain"
            )
        value, rest = BytesValue(rest[:length]), rest[length:]
    else:
        if len(rest) < 4:
            raise UnexpectedEOFError(
                f"Field {number} needs 4 bytes, only {len(rest)} remain"
            )
        value, rest = Fixed32Value(struct.unpack_from("<i", rest)[0]), rest[4:]

    return Field(number, value), rest


def parse_fields(
    data: Buffer, limit: int = MAX_VARINT_BYTES
) -> Generator[Field, None, None]:
    """Lazily decode every field in `data`, front to back."""
    view = _as_view(data)
    while view:
        field, view = decode_field(view, limit)
        logger.debug(
            "Decoded field %d (%s), %d bytes left",
            field.number,
            field.wire_type.name,
            len(view),
        )
        yield field
