"""Edit records and the undo/redo log."""

from __future__ import annotations

import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Literal, Optional

from .state import CursorPosition

if TYPE_CHECKING:
    from .state import Cursor

EditKind = Literal["write", "insert", "delete"]


@dataclass(frozen=True, slots=True)
class AnchorRecord:
    """Where a cursor was before and after the edit rebased it."""

    cursor: "weakref.ReferenceType[Cursor]"
    before: CursorPosition
    after: CursorPosition


@dataclass(slots=True)
class Edit:
    """One reversible buffer mutation.

    ``start``/``end`` address the replaced range in the buffer as it was
    before the edit; ``removed`` and ``inserted`` hold the bytes needed to
    undo and redo it.
    """

    kind: EditKind
    start: int
    end: int
    removed: bytes
    inserted: bytes
    revision: int = 0
    anchors: tuple[AnchorRecord, ...] = ()

    @property
    def delta(self) -> int:
        return len(self.inserted) - len(self.removed)

    @property
    def structural(self) -> bool:
        return self.delta != 0

    @property
    def span_after(self) -> tuple[int, int]:
        return self.start, self.start + len(self.inserted)


class EditLog:
    """Arena of edits with a single position index.

    ``position`` counts the edits currently applied; entries at or past it
    are redoable and are dropped as soon as a new edit is pushed.
    """

    def __init__(self, *, limit: int = 0) -> None:
        self._entries: List[Edit] = []
        self._position = 0
        self._limit = limit

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def position(self) -> int:
        return self._position

    def push(self, edit: Edit) -> None:
        del self._entries[self._position :]
        self._entries.append(edit)
        if self._limit and len(self._entries) > self._limit:
            del self._entries[: len(self._entries) - self._limit]
        self._position = len(self._entries)

    def can_undo(self) -> bool:
        return self._position > 0

    def can_redo(self) -> bool:
        return self._position < len(self._entries)

    def undo(self) -> Optional[Edit]:
        if not self.can_undo():
            return None
        self._position -= 1
        return self._entries[self._position]

    def redo(self) -> Optional[Edit]:
        if not self.can_redo():
            return None
        edit = self._entries[self._position]
        self._position += 1
        return edit

    def entries(self) -> tuple[Edit, ...]:
        return tuple(self._entries)


__all__ = ["AnchorRecord", "Edit", "EditKind", "EditLog"]
