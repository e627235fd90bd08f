"""Per-view interpretation settings: mode, width, byte order, signedness."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Literal, Optional

from hex_engine.codecs.text import normalize_encoding
from hex_engine.errors import InvalidSpec

ByteOrder = Literal["little", "big"]

WIDTHS: tuple[int, ...] = (1, 2, 4, 8)


class Mode(enum.Enum):
    """Closed set of representations a view can render."""

    HEX = "hex"
    DECIMAL = "decimal"
    OCTAL = "octal"
    BINARY = "binary"
    TEXT = "text"
    INSTRUCTION = "instruction"

    @property
    def base(self) -> Optional[int]:
        return _BASES.get(self)

    @property
    def is_numeral(self) -> bool:
        return self in _BASES

    @property
    def editable(self) -> bool:
        return self is not Mode.INSTRUCTION

    def cycle(self, reverse: bool = False) -> "Mode":
        members = list(Mode)
        index = members.index(self) + (-1 if reverse else 1)
        return members[index % len(members)]

    @classmethod
    def parse(cls, value: str) -> "Mode":
        key = value.strip().lower()
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        aliases = {"dec": cls.DECIMAL, "oct": cls.OCTAL, "bin": cls.BINARY}
        if key in aliases:
            return aliases[key]
        raise ValueError(f"Unknown mode '{value}'.")


_BASES = {Mode.HEX: 16, Mode.DECIMAL: 10, Mode.OCTAL: 8, Mode.BINARY: 2}


@dataclass(frozen=True, slots=True)
class ViewSpec:
    """How a view turns bytes into cells.

    ``width`` is the cell size for numeral modes and the resynchronisation
    step for instruction mode; text mode always steps one character at a time.
    Specs are immutable: every helper returns a new instance.
    """

    mode: Mode = Mode.HEX
    width: int = 1
    order: ByteOrder = "little"
    signed: bool = False
    encoding: str = "ascii"

    def __post_init__(self) -> None:
        if not isinstance(self.mode, Mode):
            raise InvalidSpec(f"Unknown mode {self.mode!r}")
        if self.width not in WIDTHS:
            raise InvalidSpec(f"Width must be one of {WIDTHS}, got {self.width}")
        if self.order not in ("little", "big"):
            raise InvalidSpec(f"Byte order must be 'little' or 'big', got {self.order!r}")
        object.__setattr__(self, "encoding", normalize_encoding(self.encoding))

    @property
    def base(self) -> Optional[int]:
        return self.mode.base

    @property
    def numeral_base(self) -> int:
        """Radix of a numeral spec; ``InvalidSpec`` for text/instruction."""

        base = self.mode.base
        if base is None:
            raise InvalidSpec(f"{self.mode.value} mode has no numeral base")
        return base

    @property
    def cell_width(self) -> int:
        return self.width if self.mode.is_numeral else 1

    @property
    def editable(self) -> bool:
        return self.mode.editable

    def with_mode(self, mode: Mode) -> "ViewSpec":
        return replace(self, mode=mode)

    def cycle_mode(self, reverse: bool = False) -> "ViewSpec":
        return replace(self, mode=self.mode.cycle(reverse))

    def wider(self) -> "ViewSpec":
        index = WIDTHS.index(self.width)
        return replace(self, width=WIDTHS[min(index + 1, len(WIDTHS) - 1)])

    def narrower(self) -> "ViewSpec":
        index = WIDTHS.index(self.width)
        return replace(self, width=WIDTHS[max(index - 1, 0)])

    def toggle_order(self) -> "ViewSpec":
        return replace(self, order="big" if self.order == "little" else "little")

    def toggle_signed(self) -> "ViewSpec":
        return replace(self, signed=not self.signed)

    def describe(self) -> str:
        if self.mode is Mode.TEXT:
            return f"text/{self.encoding}"
        if self.mode is Mode.INSTRUCTION:
            return "instruction"
        sign = "s" if self.signed else "u"
        return f"{self.mode.value}/{sign}{self.width * 8}/{self.order}"


__all__ = ["ByteOrder", "Mode", "ViewSpec", "WIDTHS"]
