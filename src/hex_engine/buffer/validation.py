"""Range validation shared by the buffer and cursors."""

from __future__ import annotations

from hex_engine.errors import OutOfRange


def ensure_offset(length: int, offset: int) -> int:
    if offset < 0 or offset > length:
        raise OutOfRange(
            f"Offset {offset} outside [0, {length}]", offset=offset, length=length
        )
    return offset


def ensure_span(length: int, start: int, end: int) -> tuple[int, int]:
    ensure_offset(length, start)
    if end < start:
        raise OutOfRange(
            f"Span end {end} precedes start {start}", offset=end, length=length
        )
    if end > length:
        raise OutOfRange(
            f"Span end {end} past buffer end {length}", offset=end, length=length
        )
    return start, end
