from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from . import FieldSink, Message

# Bound type variables to allow functions to return the record they were given
T = TypeVar("T", bound="Message")
ST = TypeVar("ST", bound="FieldSink")
