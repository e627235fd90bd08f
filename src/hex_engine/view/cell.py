"""Rendered cells: ephemeral decode results for one span of the buffer."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class CellStatus(enum.Enum):
    VALID = "valid"
    TRUNCATED = "truncated"  # buffer ended before the cell's width
    UNDECODABLE = "undecodable"  # codec rejected the bytes


@dataclass(frozen=True, slots=True)
class DecodedCell:
    start: int
    end: int
    text: str
    status: CellStatus = CellStatus.VALID
    raw: bytes = b""
    value: Optional[int] = None

    @property
    def span(self) -> tuple[int, int]:
        return self.start, self.end

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_valid(self) -> bool:
        return self.status is CellStatus.VALID

    @property
    def is_null(self) -> bool:
        return bool(self.raw) and not any(self.raw)

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def intersects(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end


__all__ = ["CellStatus", "DecodedCell"]
