from typing import Optional


class DecodeError(ValueError):
    """The base class for all exceptions raised while decoding a message."""

    default_message = "Decode error"

    def __init__(self, msg: Optional[str] = None):
        super().__init__(msg or self.default_message)


class InvalidVarintError(DecodeError):
    """
    A varint did not terminate, either because the continuation bit stayed set
    past the allowed number of bytes or because the buffer ran out first.
    """

    default_message = "Invalid varint"


class InvalidWireTypeError(DecodeError):
    """The low three bits of a tag are not a supported wire type."""

    default_message = "Invalid wire-type"


class UnexpectedEOFError(DecodeError):
    """A length-delimited or fixed-size value extends past the end of the buffer."""

    default_message = "Unexpected EOF"


class InvalidSizeError(DecodeError):
    """A declared length cannot be represented as a buffer size."""

    default_message = "Invalid length"


class UnexpectedWireTypeError(DecodeError):
    """A field value was read as a different kind than the one on the wire."""

    default_message = "Unexpected wire-type"


class InvalidStringError(DecodeError):
    """A length-delimited value read as text is not valid UTF-8."""

    default_message = "Invalid string (not UTF-8)"
