from typing import List

from protowire.const import WIRE_FIXED_32, WIRE_LEN_DELIM, WIRE_VARINT

# The reference Person message: name "maxwell", id 42 and two phone numbers.
PERSON_BYTES = bytes(
    [
        0x0A, 0x07, 0x6D, 0x61, 0x78, 0x77, 0x65, 0x6C, 0x6C, 0x10, 0x2A, 0x1A,
        0x16, 0x0A, 0x0E, 0x2B, 0x31, 0x32, 0x30, 0x32, 0x2D, 0x35, 0x35, 0x35,
        0x2D, 0x31, 0x32, 0x31, 0x32, 0x12, 0x04, 0x68, 0x6F, 0x6D, 0x65, 0x1A,
        0x18, 0x0A, 0x0E, 0x2B, 0x31, 0x38, 0x30, 0x30, 0x2D, 0x38, 0x36, 0x37,
        0x2D, 0x35, 0x33, 0x30, 0x38, 0x12, 0x06, 0x6D, 0x6F, 0x62, 0x69, 0x6C,
        0x65,
    ]
)


def encode_varint(value: int) -> bytes:
    """Encodes a single varint value, for building test inputs."""
    b: List[int] = []

    if value < 0:
        value += 1 << 64

    bits = value & 0x7F
    value >>= 7
    while value:
        b.append(0x80 | bits)
        bits = value & 0x7F
        value >>= 7
    return bytes(b + [bits])


def varint_field(number: int, value: int) -> bytes:
    return encode_varint(number << 3 | WIRE_VARINT) + encode_varint(value)


def len_delim_field(number: int, payload: bytes) -> bytes:
    return (
        encode_varint(number << 3 | WIRE_LEN_DELIM)
        + encode_varint(len(payload))
        + payload
    )


def fixed32_field(number: int, payload: bytes) -> bytes:
    assert len(payload) == 4
    return encode_varint(number << 3 | WIRE_FIXED_32) + payload
