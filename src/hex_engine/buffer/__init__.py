"""Byte storage, cursors and the undo/redo log."""

from .buffer import BufferView, ByteBuffer, ReadResult, Transaction, Truncated
from .state import Cursor, CursorPosition, Selection, parse_offset, rebase_offset
from .undo import AnchorRecord, Edit, EditLog
from .validation import ensure_offset, ensure_span

__all__ = [
    "AnchorRecord",
    "BufferView",
    "ByteBuffer",
    "Cursor",
    "CursorPosition",
    "Edit",
    "EditLog",
    "ReadResult",
    "Selection",
    "Transaction",
    "Truncated",
    "ensure_offset",
    "ensure_span",
    "parse_offset",
    "rebase_offset",
]
