"""Exceptions raised while parsing, encoding and decoding sparse features."""
from __future__ import annotations
from typing import Optional


class FeatureError(ValueError):
    """Base class for every feature parsing and codec failure."""


class FeatureParseError(FeatureError):
    """
    Raised when a token does not follow the feature grammar.

    Attributes:
        token: The full token being parsed.
        text: The part of the token that failed to parse.
    """

    def __init__(self, message: str, token: str, text: Optional[str] = None):
        super().__init__(message)
        self.token = token
        self.text = token if text is None else text


class MalformedIndexError(FeatureParseError):
    """The index part is not a non-negative int32 literal."""


class MalformedValueError(FeatureParseError):
    """The value part is not a finite floating-point literal."""


class MalformedNameError(FeatureParseError):
    """The name part of a named feature is empty."""


class UnsupportedFieldSyntaxError(FeatureParseError):
    """A ``field:id:value`` token was given while parsing indexed features."""


class RowParseError(FeatureParseError):
    """
    Raised by the batch parser when one token of a row fails.

    The original token error is chained as ``__cause__``.

    Attributes:
        position: Index of the failing token within the row source.
    """

    def __init__(self, message: str, token: str, text: Optional[str], position: int):
        super().__init__(message, token, text)
        self.position = position


class FeatureDecodeError(FeatureError):
    """
    Raised when a binary record cannot be decoded.

    Attributes:
        offset: Byte offset of the field being decoded.
    """

    def __init__(self, message: str, offset: int):
        super().__init__(message)
        self.offset = offset


class DecodeUnderrunError(FeatureDecodeError):
    """A record needs more bytes than remain in the source buffer."""

    def __init__(self, needed: int, remaining: int, offset: int):
        super().__init__(
            f"Need {needed} bytes at offset {offset} but only {remaining} remain.",
            offset,
        )
        self.needed = needed
        self.remaining = remaining


class BufferOverflowError(FeatureError):
    """A record does not fit into the remaining space of the destination buffer."""

    def __init__(self, needed: int, remaining: int, offset: int):
        super().__init__(
            f"Cannot write {needed} bytes at offset {offset}: only {remaining} bytes of space left."
        )
        self.needed = needed
        self.remaining = remaining
        self.offset = offset
