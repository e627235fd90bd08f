"""Error kinds raised by the buffer, codecs and view coordinator."""

from __future__ import annotations

from typing import Optional


class HexEngineError(RuntimeError):
    """Base class for every error the engine raises."""


class OutOfRange(HexEngineError):
    """A buffer operation addressed bytes outside ``[0, len]``."""

    def __init__(
        self,
        message: str,
        *,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.offset = offset
        self.length = length


class ValueOutOfRange(OutOfRange):
    """A parsed numeral does not fit the chosen width and signedness."""

    def __init__(self, message: str, *, value: int, low: int, high: int) -> None:
        super().__init__(message)
        self.value = value
        self.low = low
        self.high = high


class WidthMismatch(HexEngineError):
    """Fewer (or more) bytes were supplied than a fixed width requires."""

    def __init__(self, message: str, *, expected: int, actual: int) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ParseError(HexEngineError):
    """An edit string contains characters outside the base's alphabet."""

    def __init__(self, message: str, *, text: str, position: Optional[int] = None):
        super().__init__(message)
        self.text = text
        self.position = position


class Unencodable(HexEngineError):
    """A character has no representation in the target text encoding."""

    def __init__(self, message: str, *, position: int, char: str, encoding: str):
        super().__init__(message)
        self.position = position
        self.char = char
        self.encoding = encoding


class DecodeFailure(HexEngineError):
    """The instruction decoder rejected the bytes at an address."""

    def __init__(self, message: str, *, address: Optional[int] = None) -> None:
        super().__init__(message)
        self.address = address


class ReadOnlyRepresentation(HexEngineError):
    """An edit was attempted through a decode-only representation."""


class InvalidSpec(HexEngineError):
    """A ViewSpec is malformed or incompatible with the current selection."""


class EditInProgress(HexEngineError):
    """Another edit is already pending or committing."""


__all__ = [
    "HexEngineError",
    "OutOfRange",
    "ValueOutOfRange",
    "WidthMismatch",
    "ParseError",
    "Unencodable",
    "DecodeFailure",
    "ReadOnlyRepresentation",
    "InvalidSpec",
    "EditInProgress",
]
