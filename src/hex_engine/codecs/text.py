"""Byte span <-> character run conversion under a text encoding."""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from typing import Optional

from hex_engine.errors import InvalidSpec, Unencodable

PLACEHOLDER = "."
NONPRINTABLE_GLYPH = "•"

ESCAPE_GLYPHS = {
    "\n": "␊",
    "\r": "␍",
    "\x00": "␀",
    "\x07": "␇",
    "\x08": "␈",
    "\x1b": "␛",
    "\t": "↹",
}

# encoding -> (code unit size, longest sequence)
SUPPORTED_ENCODINGS: dict[str, tuple[int, int]] = {
    "ascii": (1, 1),
    "latin-1": (1, 1),
    "cp437": (1, 1),
    "utf-8": (1, 4),
    "utf-16-le": (2, 4),
    "utf-16-be": (2, 4),
}

_ALIASES = {
    "us-ascii": "ascii",
    "latin1": "latin-1",
    "iso-8859-1": "latin-1",
    "utf8": "utf-8",
    "utf-16le": "utf-16-le",
    "utf16-le": "utf-16-le",
    "utf-16be": "utf-16-be",
    "utf16-be": "utf-16-be",
}

MAX_SEQUENCE = max(longest for _unit, longest in SUPPORTED_ENCODINGS.values())


def normalize_encoding(name: str) -> str:
    key = name.strip().lower().replace("_", "-")
    key = _ALIASES.get(key, key)
    if key not in SUPPORTED_ENCODINGS:
        raise InvalidSpec(
            f"Unsupported text encoding '{name}'; expected one of "
            f"{sorted(SUPPORTED_ENCODINGS)}"
        )
    return key


@dataclass(frozen=True, slots=True)
class TextUnit:
    """One rendered character, positioned relative to the decoded span."""

    start: int
    end: int
    glyph: str
    char: Optional[str]
    printable: bool
    incomplete: bool = False

    @property
    def valid(self) -> bool:
        return self.char is not None and self.printable


def _sequence_length(data: bytes, pos: int, encoding: str) -> int:
    unit, _longest = SUPPORTED_ENCODINGS[encoding]
    if encoding == "utf-8":
        lead = data[pos]
        if lead < 0x80:
            return 1
        if 0xC2 <= lead <= 0xDF:
            return 2
        if 0xE0 <= lead <= 0xEF:
            return 3
        if 0xF0 <= lead <= 0xF4:
            return 4
        return 1
    if encoding.startswith("utf-16"):
        pair = data[pos : pos + 2]
        if len(pair) == 2:
            order = "little" if encoding.endswith("le") else "big"
            if 0xD800 <= int.from_bytes(pair, order) <= 0xDBFF:
                return 4
    return unit


def _glyph(char: str) -> tuple[str, bool]:
    if char in ESCAPE_GLYPHS:
        return ESCAPE_GLYPHS[char], False
    if not char.isprintable():
        return NONPRINTABLE_GLYPH, False
    return char, True


def decode(
    data: bytes, encoding: str, *, placeholder: str = PLACEHOLDER
) -> list[TextUnit]:
    """Decode ``data`` into one unit per character.

    Invalid sequences become a ``placeholder`` unit covering one code unit,
    so the rest of the span still decodes. A sequence cut short by the end of
    ``data`` is marked ``incomplete`` only while it is still a valid prefix.
    """

    encoding = normalize_encoding(encoding)
    unit, _longest = SUPPORTED_ENCODINGS[encoding]
    units: list[TextUnit] = []
    pos = 0
    while pos < len(data):
        length = _sequence_length(data, pos, encoding)
        chunk = data[pos : pos + length]
        if len(chunk) < length:
            try:
                codecs.getincrementaldecoder(encoding)().decode(chunk, final=False)
            except UnicodeDecodeError:
                # already invalid, more bytes cannot complete it
                step = min(unit, len(data) - pos)
                units.append(TextUnit(pos, pos + step, placeholder, None, False))
                pos += step
                continue
            units.append(
                TextUnit(pos, len(data), placeholder, None, False, incomplete=True)
            )
            break
        try:
            char = chunk.decode(encoding)
        except UnicodeDecodeError:
            step = min(unit, len(data) - pos)
            units.append(TextUnit(pos, pos + step, placeholder, None, False))
            pos += step
            continue
        glyph, printable = _glyph(char)
        units.append(TextUnit(pos, pos + length, glyph, char, printable))
        pos += length
    return units


def decode_string(
    data: bytes, encoding: str, *, placeholder: str = PLACEHOLDER
) -> str:
    return "".join(u.glyph for u in decode(data, encoding, placeholder=placeholder))


def encode(text: str, encoding: str) -> bytes:
    """Encode ``text`` or fail on the first unrepresentable character."""

    encoding = normalize_encoding(encoding)
    out = bytearray()
    for position, char in enumerate(text):
        try:
            out += char.encode(encoding)
        except UnicodeEncodeError as exc:
            raise Unencodable(
                f"{char!r} at position {position} is not representable in {encoding}",
                position=position,
                char=char,
                encoding=encoding,
            ) from exc
    return bytes(out)


__all__ = [
    "ESCAPE_GLYPHS",
    "MAX_SEQUENCE",
    "NONPRINTABLE_GLYPH",
    "PLACEHOLDER",
    "SUPPORTED_ENCODINGS",
    "TextUnit",
    "decode",
    "decode_string",
    "encode",
    "normalize_encoding",
]
