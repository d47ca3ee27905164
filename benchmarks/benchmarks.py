from dataclasses import dataclass
from typing import List

import protowire

PHONE_HOME = bytes.fromhex("1a160a0e2b313230322d3535352d313231321204686f6d65")
PHONE_MOBILE = bytes.fromhex("1a180a0e2b313830302d3836372d3533303812066d6f62696c65")
PERSON = bytes.fromhex("0a076d617877656c6c102a") + PHONE_HOME + PHONE_MOBILE


@dataclass
class TestPhone(protowire.Message):
    number: str = protowire.string_field(1)
    type_: str = protowire.string_field(2)


@dataclass
class TestPerson(protowire.Message):
    name: str = protowire.string_field(1)
    id: int = protowire.uint64_field(2)
    phones: List[TestPhone] = protowire.message_field(3)


@dataclass
class Counter:
    """A field sink that does no work beyond counting."""

    count: int = 0

    def add_field(self, field: protowire.Field) -> None:
        self.count += 1


class BenchDecode:
    """Test decoding of wire buffers into records."""

    def setup(self):
        self.person_bytes = PERSON
        self.repeated_bytes = PERSON + (PHONE_HOME + PHONE_MOBILE) * 500
        self.varint_bytes = bytes.fromhex("ffffffffffff7f")

    def time_decode_varint(self):
        """Time decoding a 49 bit varint."""
        protowire.decode_varint(self.varint_bytes)

    def time_parse_fields(self):
        """Time walking the fields of a message without a record."""
        protowire.decode_message(self.repeated_bytes, Counter())

    def time_decode_message(self):
        """Time decoding a small nested message."""
        TestPerson().parse(self.person_bytes)

    def time_decode_repeated(self):
        """Time decoding a message with many nested entries."""
        TestPerson().parse(self.repeated_bytes)


class MemSuite:
    def setup(self):
        self.cls = TestPerson

    def mem_instance(self):
        return self.cls()
