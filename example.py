# Decodes the reference Person message both with hand-written records and
# with declarative ones.

import logging
from dataclasses import dataclass, field
from pprint import pprint
from typing import List

import protowire

logging.basicConfig(level=logging.DEBUG)

buffer = bytes.fromhex(
    "0a076d617877656c6c102a"
    "1a160a0e2b313230322d3535352d313231321204686f6d65"
    "1a180a0e2b313830302d3836372d3533303812066d6f62696c65"
)


@dataclass
class PhoneNumber:
    number: str = ""
    type_: str = ""

    def add_field(self, field: protowire.Field) -> None:
        if field.number == 1:
            self.number = field.value.as_string()
        elif field.number == 2:
            self.type_ = field.value.as_string()


@dataclass
class Person:
    name: str = ""
    id: int = 0
    phone: List[PhoneNumber] = field(default_factory=list)

    def add_field(self, field: protowire.Field) -> None:
        if field.number == 1:
            self.name = field.value.as_string()
        elif field.number == 2:
            self.id = field.value.as_uint()
        elif field.number == 3:
            self.phone.append(
                protowire.decode_message(field.value.as_bytes(), PhoneNumber())
            )


pprint(protowire.decode_message(buffer, Person()))


@dataclass
class PhoneMessage(protowire.Message):
    number: str = protowire.string_field(1)
    type_: str = protowire.string_field(2)


@dataclass
class PersonMessage(protowire.Message):
    name: str = protowire.string_field(1)
    id: int = protowire.uint64_field(2)
    phone_numbers: List[PhoneMessage] = protowire.message_field(3)


pprint(PersonMessage.FromString(buffer).to_dict())
