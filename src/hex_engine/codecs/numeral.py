"""Fixed-width integer <-> numeral string conversion.

Every rendering of a ``width``-byte integer has the same number of
characters: digits are zero-padded to the length of the largest magnitude
the width can hold, and signed renderings always carry a ``+``/``-`` column.
``encode(decode(data)) == data`` holds for every supported combination.
"""

from __future__ import annotations

from typing import Literal

from hex_engine.errors import ParseError, ValueOutOfRange, WidthMismatch

ByteOrder = Literal["little", "big"]

BASES: tuple[int, ...] = (2, 8, 10, 16)

_FORMAT_CHAR = {2: "b", 8: "o", 10: "d", 16: "x"}
_ALPHABET = {
    2: frozenset("01"),
    8: frozenset("01234567"),
    10: frozenset("0123456789"),
    16: frozenset("0123456789abcdef"),
}


def _check_base(base: int) -> None:
    if base not in _FORMAT_CHAR:
        raise ValueError(f"Unsupported base {base}; expected one of {BASES}")


def _check_width(width: int) -> None:
    if width <= 0:
        raise ValueError(f"Width must be positive, got {width}")


def value_range(width: int, signed: bool) -> tuple[int, int]:
    """Inclusive ``(low, high)`` bounds for a ``width``-byte integer."""

    _check_width(width)
    bits = width * 8
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


def digit_count(width: int, signed: bool, base: int) -> int:
    """Digits needed for the largest magnitude (sign column excluded)."""

    _check_base(base)
    low, high = value_range(width, signed)
    magnitude = max(abs(low), high)
    return len(format(magnitude, _FORMAT_CHAR[base]))


def rendered_length(width: int, signed: bool, base: int) -> int:
    return digit_count(width, signed, base) + (1 if signed else 0)


def is_digit(char: str, base: int) -> bool:
    _check_base(base)
    return len(char) == 1 and char.lower() in _ALPHABET[base]


def format_value(value: int, width: int, signed: bool, base: int) -> str:
    digits = format(abs(value), _FORMAT_CHAR[base]).zfill(
        digit_count(width, signed, base)
    )
    if signed:
        return ("-" if value < 0 else "+") + digits
    return digits


def decode(
    data: bytes, width: int, order: ByteOrder, signed: bool, base: int
) -> str:
    """Render exactly ``width`` bytes as a padded numeral."""

    _check_width(width)
    _check_base(base)
    if len(data) != width:
        raise WidthMismatch(
            f"Expected {width} bytes, got {len(data)}",
            expected=width,
            actual=len(data),
        )
    value = int.from_bytes(data, byteorder=order, signed=signed)
    return format_value(value, width, signed, base)


def parse(text: str, base: int) -> int:
    """Strictly parse ``text`` in ``base``: optional sign, then digits only."""

    _check_base(base)
    if not text:
        raise ParseError("Empty numeral", text=text, position=0)

    sign = 1
    body_start = 0
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        body_start = 1
    if body_start == len(text):
        raise ParseError("Sign without digits", text=text, position=body_start)

    alphabet = _ALPHABET[base]
    for position in range(body_start, len(text)):
        if text[position].lower() not in alphabet:
            raise ParseError(
                f"Invalid base-{base} digit {text[position]!r} at position {position}",
                text=text,
                position=position,
            )
    return sign * int(text[body_start:], base)


def encode(
    text: str, width: int, order: ByteOrder, signed: bool, base: int
) -> bytes:
    """Parse ``text`` and serialise it to ``width`` bytes in ``order``."""

    value = parse(text, base)
    low, high = value_range(width, signed)
    if not low <= value <= high:
        kind = "signed" if signed else "unsigned"
        raise ValueOutOfRange(
            f"{value} does not fit a {width}-byte {kind} integer [{low}, {high}]",
            value=value,
            low=low,
            high=high,
        )
    return value.to_bytes(width, byteorder=order, signed=signed)


__all__ = [
    "BASES",
    "decode",
    "digit_count",
    "encode",
    "format_value",
    "is_digit",
    "parse",
    "rendered_length",
    "value_range",
]
