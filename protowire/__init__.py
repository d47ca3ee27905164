import dataclasses
import enum
import functools
import inspect
import logging
import struct
from abc import ABC
from base64 import b64encode
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Protocol,
    Type,
    get_type_hints,
    runtime_checkable,
)

import stringcase

from ._types import ST, T
from .const import *
from .errors import (
    DecodeError,
    InvalidSizeError,
    InvalidStringError,
    InvalidVarintError,
    InvalidWireTypeError,
    UnexpectedEOFError,
    UnexpectedWireTypeError,
)
from .wire import (
    Buffer,
    BytesValue,
    Field,
    FieldValue,
    Fixed32Value,
    VarintValue,
    WireType,
    decode_field,
    decode_varint,
    parse_fields,
    unpack_tag,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class FieldSink(Protocol):
    """
    Anything that can be populated by `decode_message`. `add_field` is called
    once per decoded field, in wire order. It should apply the field numbers it
    knows, ignore the rest, and raise if a value has an unusable shape.
    """

    def add_field(self, field: Field) -> None:
        ...


def decode_message(
    data: Buffer, message: ST, limit: int = MAX_VARINT_BYTES
) -> ST:
    """
    Decode every field in `data` into `message`, which should be freshly
    default-initialized, and return it. The whole buffer is consumed. The first
    error, whether raised while decoding or by `message.add_field`, aborts the
    decode.

    `limit` caps the length of every varint, see `decode_varint`.
    """
    for field in parse_fields(data, limit):
        message.add_field(field)
    return message


class Casing(enum.Enum):
    """Casing constants for serialization."""

    CAMEL = stringcase.camelcase
    SNAKE = stringcase.snakecase


class _PLACEHOLDER:
    pass


PLACEHOLDER: Any = _PLACEHOLDER()


@dataclasses.dataclass(frozen=True)
class FieldMetadata:
    """Stores internal metadata used for decoding."""

    # Protobuf field number
    number: int
    # Protobuf type name
    proto_type: str

    @staticmethod
    def get(field: dataclasses.Field) -> "FieldMetadata":
        """Returns the field metadata for a dataclass field."""
        return field.metadata["protowire"]


def dataclass_field(number: int, proto_type: str) -> dataclasses.Field:
    """Creates a dataclass field with attached protobuf metadata."""
    return dataclasses.field(
        default=PLACEHOLDER,
        metadata={"protowire": FieldMetadata(number, proto_type)},
    )


def _field_declarer(proto_type: str) -> Callable[[int], Any]:
    # The declarers return `Any` so that `name: str = string_field(1)` type
    # checks; the placeholder is replaced in `Message.__post_init__`.
    def declare(number: int) -> Any:
        return dataclass_field(number, proto_type)

    declare.__name__ = declare.__qualname__ = f"{proto_type}_field"
    declare.__doc__ = f"Declares a `{proto_type}` field with the given number."
    return declare


enum_field = _field_declarer(TYPE_ENUM)
bool_field = _field_declarer(TYPE_BOOL)
int32_field = _field_declarer(TYPE_INT32)
int64_field = _field_declarer(TYPE_INT64)
uint32_field = _field_declarer(TYPE_UINT32)
uint64_field = _field_declarer(TYPE_UINT64)
sint32_field = _field_declarer(TYPE_SINT32)
sint64_field = _field_declarer(TYPE_SINT64)
float_field = _field_declarer(TYPE_FLOAT)
fixed32_field = _field_declarer(TYPE_FIXED32)
sfixed32_field = _field_declarer(TYPE_SFIXED32)
string_field = _field_declarer(TYPE_STRING)
bytes_field = _field_declarer(TYPE_BYTES)
message_field = _field_declarer(TYPE_MESSAGE)


class Enum(int, enum.Enum):
    """Protocol buffers enumeration base class. Acts like `enum.IntEnum`."""

    @classmethod
    def from_string(cls, name: str) -> int:
        """Return the value which corresponds to the string name."""
        try:
            return cls.__members__[name]
        except KeyError as e:
            raise ValueError(f"Unknown value {name} for enum {cls.__name__}") from e

    @classmethod
    def _lookup(cls, value: int) -> Any:
        # Values without a member stay plain ints, so newer senders can add them.
        for member in cls:
            if member.value == value:
                return member
        return value


def _zero_value_gen(field_cls: Type) -> Callable[[], Any]:
    """Returns a callable producing the zero value of a non-repeated field."""
    if inspect.isclass(field_cls) and issubclass(field_cls, Enum):
        return functools.partial(field_cls._lookup, 0)
    # Scalars and messages produce their zero value when called.
    return field_cls


class ProtoClassMetadata:
    """Field lookups for one `Message` subclass, built from its type hints."""

    __slots__ = (
        "field_name_by_number",
        "meta_by_field_name",
        "cls_by_field",
        "default_gen",
    )

    def __init__(self, cls: Type["Message"]):
        hints = get_type_hints(cls, vars(inspect.getmodule(cls)))

        self.field_name_by_number: Dict[int, str] = {}
        self.meta_by_field_name: Dict[str, FieldMetadata] = {}
        # Element class of each field; for repeated fields, the list item type.
        self.cls_by_field: Dict[str, Type] = {}
        self.default_gen: Dict[str, Callable[[], Any]] = {}

        for field in dataclasses.fields(cls):
            meta = FieldMetadata.get(field)
            hint = hints[field.name]
            repeated = getattr(hint, "__origin__", None) in (list, List)
            field_cls = hint.__args__[0] if repeated else hint

            self.field_name_by_number[meta.number] = field.name
            self.meta_by_field_name[field.name] = meta
            self.cls_by_field[field.name] = field_cls
            self.default_gen[field.name] = (
                list if repeated else _zero_value_gen(field_cls)
            )


class Message(ABC):
    """
    A protobuf message base class. Records declared as dataclasses inherit from
    this and register their fields, which `add_field` uses to turn decoded
    wire values into Python values.

    `parse` and `FromString` accept varints of any length the wire format
    allows, so negative `int32` and `int64` values decode.
    """

    def __post_init__(self) -> None:
        for field_name in self._protowire.meta_by_field_name:
            if getattr(self, field_name) is PLACEHOLDER:
                setattr(self, field_name, self._get_field_default(field_name))

    @property
    def _protowire(self) -> ProtoClassMetadata:
        """
        Lazy initialize metadata for each protobuf class.
        It may be initialized multiple times in a multi-threaded environment,
        but that won't affect the correctness.
        """
        meta = self.__class__.__dict__.get("_protowire_meta")
        if not meta:
            meta = ProtoClassMetadata(self.__class__)
            self.__class__._protowire_meta = meta
        return meta

    def _get_field_default(self, field_name: str) -> Any:
        return self._protowire.default_gen[field_name]()

    def _postprocess_single(
        self, meta: FieldMetadata, field_name: str, value: FieldValue
    ) -> Any:
        """Converts a decoded wire value into the field's Python value."""
        proto_type = meta.proto_type
        if proto_type in WIRE_VARINT_TYPES:
            decoded = value.as_uint()
            if proto_type in (TYPE_INT32, TYPE_INT64):
                # Negative values arrive sign-extended to 64 bits.
                bits = int(proto_type[3:])
                decoded = decoded & ((1 << bits) - 1)
                signbit = 1 << (bits - 1)
                decoded = int((decoded ^ signbit) - signbit)
            elif proto_type == TYPE_UINT32:
                decoded = decoded & 0xFFFFFFFF
            elif proto_type in (TYPE_SINT32, TYPE_SINT64):
                # Undo zig-zag encoding
                decoded = (decoded >> 1) ^ (-(decoded & 1))
            elif proto_type == TYPE_BOOL:
                decoded = decoded > 0
            elif proto_type == TYPE_ENUM:
                decoded = self._protowire.cls_by_field[field_name]._lookup(decoded)
            return decoded
        elif proto_type in WIRE_FIXED_32_TYPES:
            decoded = value.as_int32()
            if proto_type == TYPE_FIXED32:
                decoded = decoded & 0xFFFFFFFF
            elif proto_type == TYPE_FLOAT:
                decoded = struct.unpack("<f", struct.pack("<i", decoded))[0]
            return decoded
        elif proto_type == TYPE_STRING:
            return value.as_string()
        elif proto_type == TYPE_BYTES:
            return value.as_bytes()
        elif proto_type == TYPE_MESSAGE:
            cls = self._protowire.cls_by_field[field_name]
            logger.debug(
                "Decoding nested %s for %s.%s",
                cls.__name__,
                self.__class__.__name__,
                field_name,
            )
            return decode_message(value.as_bytes(), cls(), STANDARD_VARINT_BYTES)

        raise NotImplementedError(proto_type)

    def add_field(self, field: Field) -> None:
        """Apply one decoded field to this instance."""
        field_name = self._protowire.field_name_by_number.get(field.number)
        if not field_name:
            logger.debug(
                "Ignoring unknown field %d on %s",
                field.number,
                self.__class__.__name__,
            )
            return

        meta = self._protowire.meta_by_field_name[field_name]
        value = self._postprocess_single(meta, field_name, field.value)

        current = getattr(self, field_name)
        if isinstance(current, list):
            current.append(value)
        else:
            setattr(self, field_name, value)

    def parse(self: T, data: Buffer) -> T:
        """
        Parse the binary encoded Protobuf into this message instance. This
        returns the instance itself and is therefore assignable and chainable.
        """
        return decode_message(data, self, STANDARD_VARINT_BYTES)

    # For compatibility with other libraries.
    @classmethod
    def FromString(cls: Type[T], data: Buffer) -> T:
        return cls().parse(data)

    def _json_value(
        self, field_name: str, value: Any, casing: Casing, include_default_values: bool
    ) -> Any:
        """Renders a single (non-list) field value for `to_dict`."""
        proto_type = self._protowire.meta_by_field_name[field_name].proto_type
        if proto_type == TYPE_MESSAGE:
            return value.to_dict(casing, include_default_values)
        elif proto_type == TYPE_ENUM:
            member = self._protowire.cls_by_field[field_name]._lookup(value)
            return member.name if isinstance(member, Enum) else member
        elif proto_type == TYPE_BYTES:
            return b64encode(value).decode("utf8")
        elif proto_type in INT_64_TYPES:
            # 64-bit integers are strings in JSON so they survive doubles.
            return str(value)
        return value

    def to_dict(
        self, casing: Casing = Casing.CAMEL, include_default_values: bool = False
    ) -> dict:
        """
        Returns a JSON-friendly dict of this message. Keys are cased with
        `casing`; nested messages become dicts, enums their member names,
        bytes base64 text and 64-bit integers strings.

        Fields still at their zero value (including empty repeated fields) are
        left out unless `include_default_values` is set.
        """
        output: Dict[str, Any] = {}
        for field_name in self._protowire.meta_by_field_name:
            value = getattr(self, field_name)
            is_default = value == self._get_field_default(field_name)
            if is_default and not include_default_values:
                continue

            key = casing(field_name).rstrip("_")  # type: ignore
            if isinstance(value, list):
                output[key] = [
                    self._json_value(field_name, v, casing, include_default_values)
                    for v in value
                ]
            else:
                output[key] = self._json_value(
                    field_name, value, casing, include_default_values
                )
        return output
