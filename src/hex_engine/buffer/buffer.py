"""Byte buffer façade: storage, revision counter, edit log and cursor rebasing."""

from __future__ import annotations

import weakref
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import ContextManager, Iterable, Optional, Union

from hex_engine.errors import OutOfRange
from hex_engine.runtime import telemetry

from .state import Cursor
from .undo import AnchorRecord, Edit, EditKind, EditLog
from .validation import ensure_offset, ensure_span


@dataclass(frozen=True, slots=True)
class Truncated:
    """Short read: fewer than ``requested`` bytes remained before the end."""

    data: bytes
    requested: int

    @property
    def available(self) -> int:
        return len(self.data)


ReadResult = Union[bytes, Truncated]


@dataclass(frozen=True, slots=True)
class BufferView:
    revision: int
    data: bytes

    def __len__(self) -> int:
        return len(self.data)


class ByteBuffer:
    def __init__(
        self,
        data: Union[bytes, bytearray, Iterable[int]] = b"",
        *,
        name: str = "default",
        log: Optional[EditLog] = None,
    ) -> None:
        self.name = name
        self.log = log if log is not None else EditLog()
        self._data = bytearray(data)
        self._revision = 0
        self._cursors: "weakref.WeakSet[Cursor]" = weakref.WeakSet()

    @classmethod
    def from_bytes(cls, data: bytes, *, name: str = "default") -> "ByteBuffer":
        return cls(data, name=name)

    @classmethod
    def zeroed(cls, length: int, *, name: str = "anonymous") -> "ByteBuffer":
        if length < 0:
            raise OutOfRange(f"Negative buffer length {length}", length=length)
        return cls(bytes(length), name=name)

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def __repr__(self) -> str:
        return (
            f"ByteBuffer(name={self.name!r}, len={len(self._data)}, "
            f"revision={self._revision})"
        )

    @property
    def revision(self) -> int:
        return self._revision

    def snapshot(self) -> BufferView:
        return BufferView(revision=self._revision, data=bytes(self._data))

    def can_undo(self) -> bool:
        return self.log.can_undo()

    def can_redo(self) -> bool:
        return self.log.can_redo()

    # -- cursors -----------------------------------------------------------

    def track(self, cursor: Cursor) -> None:
        self._cursors.add(cursor)

    def untrack(self, cursor: Cursor) -> None:
        self._cursors.discard(cursor)

    def cursors(self) -> tuple[Cursor, ...]:
        return tuple(self._cursors)

    # -- reads and mutations ----------------------------------------------

    def read(self, start: int, length: int) -> ReadResult:
        """Return ``length`` bytes from ``start``, or a ``Truncated`` prefix."""

        ensure_offset(len(self._data), start)
        if length < 0:
            raise OutOfRange(f"Negative read length {length}", offset=start)
        chunk = bytes(self._data[start : start + length])
        if len(chunk) < length:
            return Truncated(data=chunk, requested=length)
        return chunk

    def write(self, start: int, data: bytes) -> Optional[Edit]:
        """Overwrite ``len(data)`` bytes in place; the length never changes."""

        data = bytes(data)
        ensure_offset(len(self._data), start)
        if not data:
            return None
        end = start + len(data)
        if end > len(self._data):
            raise OutOfRange(
                f"Write of {len(data)} bytes at {start} runs past end {len(self._data)}",
                offset=start,
                length=len(self._data),
            )
        with Transaction(self, "write") as tx:
            removed = bytes(self._data[start:end])
            self._data[start:end] = data
            return tx.commit(Edit("write", start, end, removed, data))

    def insert(self, at: int, data: bytes) -> Optional[Edit]:
        data = bytes(data)
        ensure_offset(len(self._data), at)
        if not data:
            return None
        with Transaction(self, "insert") as tx:
            self._data[at:at] = data
            anchors = self._rebase(at, len(data))
            return tx.commit(Edit("insert", at, at, b"", data, anchors=anchors))

    def delete(self, start: int, end: int) -> Optional[Edit]:
        ensure_span(len(self._data), start, end)
        if start == end:
            return None
        with Transaction(self, "delete") as tx:
            removed = bytes(self._data[start:end])
            del self._data[start:end]
            anchors = self._rebase(start, start - end)
            return tx.commit(Edit("delete", start, end, removed, b"", anchors=anchors))

    def truncate(self, length: int) -> Optional[Edit]:
        ensure_offset(len(self._data), length)
        return self.delete(length, len(self._data))

    def undo(self) -> Optional[Edit]:
        edit = self.log.undo()
        if edit is None:
            return None
        with telemetry.span(
            "buffer::undo",
            component="buffer",
            metadata={"buffer": self.name, "kind": edit.kind, "start": edit.start},
        ):
            self._data[edit.start : edit.start + len(edit.inserted)] = edit.removed
            if edit.structural:
                self._unrebase(edit)
            self._revision += 1
        return edit

    def redo(self) -> Optional[Edit]:
        edit = self.log.redo()
        if edit is None:
            return None
        with telemetry.span(
            "buffer::redo",
            component="buffer",
            metadata={"buffer": self.name, "kind": edit.kind, "start": edit.start},
        ):
            self._data[edit.start : edit.start + len(edit.removed)] = edit.inserted
            if edit.structural:
                edit.anchors = self._rebase(edit.start, edit.delta)
            self._revision += 1
        return edit

    # -- rebasing ---------------------------------------------------------

    def _rebase(self, point: int, delta: int) -> tuple[AnchorRecord, ...]:
        records = []
        for cursor in list(self._cursors):
            before = cursor.position
            after = before.rebased(point, delta)
            if after != before:
                cursor._restore(after)
                records.append(AnchorRecord(weakref.ref(cursor), before, after))
        return tuple(records)

    def _unrebase(self, edit: Edit) -> None:
        recorded = {}
        for record in edit.anchors:
            cursor = record.cursor()
            if cursor is not None:
                recorded[id(cursor)] = record
        for cursor in list(self._cursors):
            record = recorded.get(id(cursor))
            if record is not None and cursor.position == record.after:
                # Untouched since the edit: put it back exactly.
                cursor._restore(record.before)
            else:
                cursor._restore(cursor.position.rebased(edit.start, -edit.delta))


class Transaction(AbstractContextManager["Transaction"]):
    """Scope of one logged mutation: telemetry span + log/revision commit."""

    def __init__(self, buffer: ByteBuffer, kind: EditKind) -> None:
        self.buffer = buffer
        self.kind = kind
        self._span_cm: Optional[ContextManager[object]] = None

    def __enter__(self) -> "Transaction":
        self._span_cm = telemetry.span(
            name=f"buffer::{self.kind}",
            component="buffer",
            metadata={"buffer": self.buffer.name},
        )
        self._span_cm.__enter__()
        return self

    def commit(self, edit: Edit) -> Edit:
        self.buffer._revision += 1
        edit.revision = self.buffer._revision
        self.buffer.log.push(edit)
        telemetry.record_event(
            "buffer.edit",
            level="debug",
            data={
                "buffer": self.buffer.name,
                "kind": edit.kind,
                "start": edit.start,
                "end": edit.end,
                "delta": edit.delta,
                "revision": edit.revision,
            },
        )
        return edit

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._span_cm is not None:
            self._span_cm.__exit__(exc_type, exc, tb)
        return False


__all__ = ["BufferView", "ByteBuffer", "ReadResult", "Transaction", "Truncated"]
