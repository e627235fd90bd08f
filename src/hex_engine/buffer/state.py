"""Cursor, selection and offset rebasing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

from hex_engine.errors import InvalidSpec, OutOfRange, ParseError
from hex_engine.view.spec import ViewSpec

from .validation import ensure_offset

if TYPE_CHECKING:
    from .buffer import ByteBuffer

Selection = Tuple[int, int]  # half-open [start, end)


def rebase_offset(offset: int, point: int, delta: int) -> int:
    """Shift ``offset`` for a length change of ``delta`` at ``point``.

    Positive ``delta`` is an insertion at ``point``; negative ``delta``
    deletes ``[point, point - delta)``. Offsets at or before ``point`` never
    move; offsets inside a deleted range collapse onto ``point``.
    """

    if offset <= point or delta == 0:
        return offset
    if delta > 0:
        return offset + delta
    if offset >= point - delta:
        return offset + delta
    return point


@dataclass(frozen=True, slots=True)
class CursorPosition:
    offset: int
    selection: Optional[Selection] = None

    def rebased(self, point: int, delta: int) -> "CursorPosition":
        selection = None
        if self.selection is not None:
            start, end = self.selection
            selection = (
                rebase_offset(start, point, delta),
                rebase_offset(end, point, delta),
            )
        return CursorPosition(rebase_offset(self.offset, point, delta), selection)


class Cursor:
    """Offset + selection + ViewSpec over a buffer it does not own.

    The cursor registers itself with the buffer so that inserts and deletes
    rebase it; the buffer only keeps a weak reference.
    """

    def __init__(
        self,
        buffer: "ByteBuffer",
        *,
        offset: int = 0,
        spec: Optional[ViewSpec] = None,
        selection: Optional[Selection] = None,
    ) -> None:
        self._buffer = buffer
        self._offset = ensure_offset(len(buffer), offset)
        self._selection: Optional[Selection] = None
        self._spec = spec or ViewSpec()
        if selection is not None:
            self.select(*selection)
        buffer.track(self)

    def __repr__(self) -> str:
        return (
            f"Cursor(offset={self._offset}, selection={self._selection}, "
            f"spec={self._spec.describe()})"
        )

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def selection(self) -> Optional[Selection]:
        return self._selection

    @property
    def spec(self) -> ViewSpec:
        return self._spec

    @property
    def position(self) -> CursorPosition:
        return CursorPosition(self._offset, self._selection)

    def move(self, delta: int) -> int:
        """Move by ``delta`` bytes, clamped to ``[0, len]``."""

        self._offset = max(0, min(self._offset + delta, len(self._buffer)))
        return self._offset

    def goto(self, offset: int) -> int:
        self._offset = ensure_offset(len(self._buffer), offset)
        return self._offset

    def next_cell(self) -> int:
        return self.move(self._spec.cell_width)

    def prev_cell(self) -> int:
        return self.move(-self._spec.cell_width)

    def align(self) -> int:
        """Snap down to the start of the enclosing ``width``-aligned cell."""

        width = self._spec.cell_width
        self._offset -= self._offset % width
        return self._offset

    def select(self, start: int, end: int) -> Selection:
        if start > end:
            start, end = end, start
        length = len(self._buffer)
        ensure_offset(length, start)
        ensure_offset(length, end)
        if self._spec.mode.is_numeral and (end - start) % self._spec.width:
            raise InvalidSpec(
                f"Selection of {end - start} bytes is not a multiple of width "
                f"{self._spec.width}"
            )
        self._selection = (start, end)
        return self._selection

    def clear_selection(self) -> None:
        self._selection = None

    def set_spec(self, spec: ViewSpec) -> ViewSpec:
        """Adopt ``spec`` or raise ``InvalidSpec`` keeping the current one."""

        if self._selection is not None and spec.mode.is_numeral:
            start, end = self._selection
            if (end - start) % spec.width:
                raise InvalidSpec(
                    f"Width {spec.width} does not divide the {end - start}-byte selection"
                )
        self._spec = spec
        return spec

    def _restore(self, position: CursorPosition) -> None:
        length = len(self._buffer)
        self._offset = min(position.offset, length)
        if position.selection is None:
            self._selection = None
        else:
            start, end = position.selection
            self._selection = (min(start, length), min(end, length))


def parse_offset(text: str) -> int:
    """Parse a hexadecimal goto target such as ``1f0`` or ``0x1f0``."""

    cleaned = text.strip().lower()
    if cleaned.startswith("0x"):
        cleaned = cleaned[2:]
    try:
        value = int(cleaned, 16)
    except ValueError as exc:
        raise ParseError(f"Not a hexadecimal offset: {text!r}", text=text) from exc
    if value < 0:
        raise OutOfRange(f"Negative offset {text!r}", offset=value)
    return value


__all__ = [
    "Cursor",
    "CursorPosition",
    "Selection",
    "parse_offset",
    "rebase_offset",
]
