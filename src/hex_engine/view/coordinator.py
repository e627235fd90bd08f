"""View coordinator: simultaneous representations over one buffer.

All buffer mutation goes through the coordinator. After every mutation each
open view whose rendered extent overlaps the changed bytes is re-decoded
before the call returns, so no view ever shows a stale interpretation.

Per-view states::

    clean -> dirty -> committing -> clean
                          \\-> rejected -> dirty
"""

from __future__ import annotations

import enum
from bisect import bisect_right
from dataclasses import dataclass
from typing import Dict, Optional

from hex_engine.buffer import ByteBuffer, Cursor, Edit, Truncated, ensure_offset
from hex_engine.buffer.state import rebase_offset
from hex_engine.codecs import numeral, text
from hex_engine.codecs.instruction import (
    DecodedInstruction,
    InstructionDecoder,
    InstructionListing,
)
from hex_engine.errors import (
    EditInProgress,
    HexEngineError,
    InvalidSpec,
    OutOfRange,
    ParseError,
    ReadOnlyRepresentation,
    Unencodable,
    WidthMismatch,
)
from hex_engine.runtime import telemetry
from hex_engine.runtime.settings import EngineSettings

from .cell import CellStatus, DecodedCell
from .events import EventBus
from .render import read_ahead, render_span
from .spec import Mode, ViewSpec


class ViewState(enum.Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    COMMITTING = "committing"
    REJECTED = "rejected"


@dataclass(slots=True)
class PendingEdit:
    """An edit string being typed over one cell, not yet applied."""

    view: str
    start: int
    end: int
    spec: ViewSpec
    original: str
    text: str
    caret: int = 0
    touched: bool = False


@dataclass(slots=True)
class CommitResult:
    status: str  # "committed" | "unchanged" | "rejected"
    edit: Optional[Edit] = None
    error: Optional[HexEngineError] = None
    message: Optional[str] = None

    @property
    def committed(self) -> bool:
        return self.status == "committed"


class View:
    """One representation: a cursor (with its ViewSpec) plus a window."""

    def __init__(
        self, name: str, cursor: Cursor, start: int, size: Optional[int]
    ) -> None:
        self.name = name
        self.cursor = cursor
        self.start = start
        self.size = size
        self.state = ViewState.DIRTY
        self.cells: list[DecodedCell] = []
        self.rendered_revision = -1
        self.error: Optional[HexEngineError] = None
        self._starts: list[int] = []
        self._listing: Optional[tuple[int, int, InstructionListing]] = None

    def __repr__(self) -> str:
        return (
            f"View(name={self.name!r}, spec={self.spec.describe()}, "
            f"start={self.start}, size={self.size}, state={self.state.value})"
        )

    @property
    def spec(self) -> ViewSpec:
        return self.cursor.spec

    def texts(self) -> list[str]:
        return [cell.text for cell in self.cells]

    def cell_at(self, offset: int) -> Optional[DecodedCell]:
        index = bisect_right(self._starts, offset) - 1
        if index < 0:
            return None
        cell = self.cells[index]
        return cell if cell.contains(offset) else None

    def _store(self, cells: list[DecodedCell], revision: int) -> None:
        self.cells = cells
        self._starts = [cell.start for cell in cells]
        self.rendered_revision = revision


def _data(result: bytes | Truncated) -> bytes:
    return result.data if isinstance(result, Truncated) else result


class ViewCoordinator:
    def __init__(
        self,
        buffer: ByteBuffer,
        *,
        decoder: Optional[InstructionDecoder] = None,
        settings: Optional[EngineSettings] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.buffer = buffer
        self.decoder = decoder
        self.settings = settings or EngineSettings()
        self.bus = bus or EventBus()
        self._views: Dict[str, View] = {}
        self._pending: Optional[PendingEdit] = None
        self._committing = False

    # -- views ------------------------------------------------------------

    @property
    def views(self) -> tuple[View, ...]:
        return tuple(self._views.values())

    @property
    def pending(self) -> Optional[PendingEdit]:
        return self._pending

    def view(self, name: str) -> View:
        try:
            return self._views[name]
        except KeyError as exc:
            raise KeyError(f"Unknown view '{name}'") from exc

    def open_view(
        self,
        name: str,
        spec: Optional[ViewSpec] = None,
        *,
        start: int = 0,
        size: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> View:
        """Open a view over ``[start, start + size)``.

        ``size=None`` keeps the window open to the end of the buffer, growing
        and shrinking with it.
        """

        if name in self._views:
            raise ValueError(f"View '{name}' already open")
        spec = spec or self.settings.default_spec()
        self._check_decoder(spec)
        ensure_offset(len(self.buffer), start)
        if size is not None and size < 0:
            raise ValueError("size cannot be negative")
        cursor = Cursor(
            self.buffer, offset=start if offset is None else offset, spec=spec
        )
        view = View(name, cursor, start, size)
        self._views[name] = view
        self._render(view)
        telemetry.record_event(
            "view.open",
            level="debug",
            data={"view": name, "spec": spec.describe(), "start": start},
        )
        return view

    def close_view(self, name: str) -> None:
        view = self._views.pop(name)
        self.buffer.untrack(view.cursor)
        if self._pending is not None and self._pending.view == name:
            self._pending = None
        self.bus.emit("view.closed", name)

    def set_spec(self, name: str, spec: ViewSpec) -> View:
        """Reinterpret a view; the buffer is never touched."""

        view = self.view(name)
        self._check_decoder(spec)
        view.cursor.set_spec(spec)
        if self._pending is not None and self._pending.view == name:
            self._pending = None
            self.bus.emit("edit.cancel", name)
        view.error = None
        self._set_state(view, ViewState.DIRTY)
        self._render(view)
        return view

    def scroll(self, name: str, start: int, *, size: Optional[int] = None) -> View:
        view = self.view(name)
        view.start = ensure_offset(len(self.buffer), start)
        if size is not None:
            view.size = size
        self._set_state(view, ViewState.DIRTY)
        self._render(view)
        return view

    def move(self, name: str, delta: int) -> int:
        view = self.view(name)
        offset = view.cursor.move(delta)
        self._ensure_visible(view)
        return offset

    def goto(self, name: str, offset: int) -> int:
        view = self.view(name)
        view.cursor.goto(offset)
        self._ensure_visible(view)
        return offset

    # -- rendering ----------------------------------------------------------

    def render(self, name: str) -> list[DecodedCell]:
        view = self.view(name)
        if view.rendered_revision != self.buffer.revision:
            self._render(view)
        return list(view.cells)

    def render_span(self, start: int, end: int, spec: ViewSpec) -> list[DecodedCell]:
        return render_span(
            self.buffer,
            start,
            end,
            spec,
            decoder=self.decoder,
            placeholder=self.settings.placeholder,
        )

    def _render(self, view: View) -> None:
        with telemetry.span(
            "coordinator::render",
            component="coordinator",
            metadata={"view": view.name, "spec": view.spec.describe()},
        ):
            cells = self.render_span(view.start, self._window_end(view), view.spec)
        view._store(cells, self.buffer.revision)
        if self._pending is None or self._pending.view != view.name:
            self._set_state(view, ViewState.CLEAN)
        self.bus.emit("view.rendered", view)

    def _window_end(self, view: View) -> int:
        if view.size is None:
            return len(self.buffer)
        return min(view.start + view.size, len(self.buffer))

    def _extent(self, view: View) -> tuple[int, int]:
        """Bytes the last render read, including the decode read-ahead."""

        window_end = self._window_end(view)
        end = window_end + read_ahead(view.spec, self.decoder) - 1
        if view.cells:
            end = max(end, view.cells[-1].end)
        return view.start, min(end, len(self.buffer))

    def _set_state(self, view: View, state: ViewState) -> None:
        if view.state is state:
            return
        view.state = state
        self.bus.emit("view.state", (view.name, state))

    def _ensure_visible(self, view: View) -> None:
        if view.size is None:
            return
        offset = view.cursor.offset
        row = self.settings.row_bytes
        if view.start <= offset < view.start + view.size:
            return
        if view.size < row:
            view.start = offset
        elif offset < view.start:
            view.start = offset - offset % row
        else:
            view.start = max(0, offset - offset % row + row - view.size)
        self._set_state(view, ViewState.DIRTY)
        self._render(view)

    # -- edit protocol ------------------------------------------------------

    def begin_edit(self, name: str, offset: Optional[int] = None) -> PendingEdit:
        """Start typing over the cell at ``offset`` (default: the cursor)."""

        self._ensure_idle()
        view = self.view(name)
        if not view.spec.editable:
            raise ReadOnlyRepresentation(
                f"View '{name}' shows {view.spec.mode.value} cells, which are read-only"
            )
        self.render(name)
        offset = view.cursor.offset if offset is None else offset
        cell = view.cell_at(offset)
        if cell is None:
            raise OutOfRange(
                f"No cell at offset {offset} in view '{name}'", offset=offset
            )
        if view.spec.mode.is_numeral and cell.status is CellStatus.TRUNCATED:
            raise WidthMismatch(
                f"Cell at {cell.start} has {cell.length} of {view.spec.width} bytes",
                expected=view.spec.width,
                actual=cell.length,
            )
        pending = PendingEdit(
            view=name,
            start=cell.start,
            end=cell.end,
            spec=view.spec,
            original=cell.text,
            text=cell.text,
        )
        self._pending = pending
        self._set_state(view, ViewState.DIRTY)
        self.bus.emit("edit.begin", pending)
        return pending

    def type_char(self, char: str) -> bool:
        """Overwrite the character under the caret; False if not accepted."""

        pending = self._require_pending()
        spec = pending.spec
        if spec.mode.is_numeral:
            base = spec.numeral_base
            if spec.signed and pending.caret == 0:
                if char not in ("+", "-"):
                    if not numeral.is_digit(char, base):
                        return False
                    pending.caret = 1
            elif not numeral.is_digit(char, base):
                return False
            if pending.caret >= len(pending.text):
                return False
        elif len(char) != 1:
            return False
        caret = pending.caret
        pending.text = pending.text[:caret] + char + pending.text[caret + 1 :]
        pending.caret = caret + 1
        pending.touched = True
        self.bus.emit("edit.input", pending)
        return True

    def backspace(self) -> None:
        pending = self._require_pending()
        if pending.caret == 0:
            return
        pending.caret -= 1
        if pending.spec.mode is Mode.TEXT:
            caret = pending.caret
            pending.text = pending.text[:caret] + pending.text[caret + 1 :]
        pending.touched = True
        self.bus.emit("edit.input", pending)

    def cancel_edit(self) -> None:
        pending = self._require_pending()
        self._pending = None
        view = self.view(pending.view)
        self.bus.emit("edit.cancel", pending.view)
        self._render(view)

    def commit_edit(
        self, text_value: Optional[str] = None, *, advance: bool = False
    ) -> CommitResult:
        """Encode the pending string and write it, or reject it atomically."""

        if self._committing:
            raise EditInProgress("Another edit is being committed")
        pending = self._require_pending()
        if text_value is not None:
            pending.text = text_value
            pending.touched = True
        view = self.view(pending.view)

        self._committing = True
        self._set_state(view, ViewState.COMMITTING)
        try:
            with telemetry.span(
                "coordinator::commit",
                component="coordinator",
                metadata={
                    "view": view.name,
                    "spec": pending.spec.describe(),
                    "start": pending.start,
                },
            ) as handle:
                # typing back the rendered text still rewrites its bytes
                if not pending.touched:
                    self._pending = None
                    self._render(view)
                    return CommitResult(status="unchanged")
                try:
                    data = self._encode(pending)
                except (ParseError, OutOfRange, Unencodable, WidthMismatch) as exc:
                    handle.reject(str(exc))
                    return self._reject(view, pending, exc)
                self._pending = None
                view.error = None
                # "0A" over "0a" encodes to the bytes already there
                if self.buffer.read(pending.start, len(data)) == data:
                    self._render(view)
                    return CommitResult(status="unchanged")
                edit = self.buffer.write(pending.start, data)
                if edit is None:
                    self._render(view)
                    return CommitResult(status="unchanged")
                start, end = edit.span_after
                self._propagate(start, end, source=view)
        finally:
            self._committing = False

        telemetry.record_event(
            "edit.committed",
            data={"view": view.name, "start": edit.start, "revision": edit.revision},
        )
        self.bus.emit("edit.committed", edit)
        if advance:
            view.cursor.goto(min(end, len(self.buffer)))
            self._ensure_visible(view)
        return CommitResult(status="committed", edit=edit)

    def edit(
        self, name: str, offset: int, value: str, *, advance: bool = False
    ) -> CommitResult:
        """Begin and commit an edit in one step."""

        self.begin_edit(name, offset)
        return self.commit_edit(value, advance=advance)

    def _encode(self, pending: PendingEdit) -> bytes:
        spec = pending.spec
        if spec.mode.is_numeral:
            return numeral.encode(
                pending.text, spec.width, spec.order, spec.signed, spec.numeral_base
            )
        if spec.mode is Mode.TEXT:
            data = text.encode(pending.text, spec.encoding)
            if pending.start + len(data) > len(self.buffer):
                raise OutOfRange(
                    f"{len(data)} encoded bytes at {pending.start} run past the end",
                    offset=pending.start,
                    length=len(self.buffer),
                )
            return data
        if spec.mode is Mode.INSTRUCTION:
            raise ReadOnlyRepresentation("Instruction cells cannot be encoded")
        raise InvalidSpec(f"Unhandled mode {spec.mode!r}")

    def _reject(
        self, view: View, pending: PendingEdit, exc: HexEngineError
    ) -> CommitResult:
        self._pending = None
        view.error = exc
        self._set_state(view, ViewState.REJECTED)
        telemetry.record_event(
            "edit.rejected",
            level="warning",
            data={"view": view.name, "text": pending.text, "reason": str(exc)},
        )
        self.bus.emit(
            "edit.rejected", {"view": view.name, "text": pending.text, "error": exc}
        )
        self._set_state(view, ViewState.DIRTY)
        return CommitResult(status="rejected", error=exc, message=str(exc))

    def _require_pending(self) -> PendingEdit:
        if self._pending is None:
            raise RuntimeError("No pending edit")
        return self._pending

    def _ensure_idle(self) -> None:
        if self._committing:
            raise EditInProgress("Another edit is being committed")
        if self._pending is not None:
            raise EditInProgress(
                f"An edit is pending on view '{self._pending.view}' "
                f"at offset {self._pending.start}"
            )

    # -- structural edits and history ----------------------------------------

    def insert(self, at: int, data: bytes) -> Optional[Edit]:
        self._ensure_idle()
        edit = self.buffer.insert(at, data)
        if edit is not None:
            self._after_structural(edit, inverse=False)
        return edit

    def delete(self, start: int, end: int) -> Optional[Edit]:
        self._ensure_idle()
        edit = self.buffer.delete(start, end)
        if edit is not None:
            self._after_structural(edit, inverse=False)
        return edit

    def truncate(self, length: int) -> Optional[Edit]:
        self._ensure_idle()
        edit = self.buffer.truncate(length)
        if edit is not None:
            self._after_structural(edit, inverse=False)
        return edit

    def undo(self) -> Optional[Edit]:
        self._ensure_idle()
        edit = self.buffer.undo()
        if edit is None:
            return None
        if edit.structural:
            self._after_structural(edit, inverse=True)
        else:
            self._propagate(edit.start, edit.end)
            self.bus.emit("buffer.changed", edit)
        telemetry.record_event(
            "buffer.undo", data={"kind": edit.kind, "start": edit.start}
        )
        return edit

    def redo(self) -> Optional[Edit]:
        self._ensure_idle()
        edit = self.buffer.redo()
        if edit is None:
            return None
        if edit.structural:
            self._after_structural(edit, inverse=False)
        else:
            self._propagate(edit.start, edit.end)
            self.bus.emit("buffer.changed", edit)
        telemetry.record_event(
            "buffer.redo", data={"kind": edit.kind, "start": edit.start}
        )
        return edit

    def _after_structural(self, edit: Edit, *, inverse: bool) -> None:
        delta = -edit.delta if inverse else edit.delta
        for view in self._views.values():
            view.start = rebase_offset(view.start, edit.start, delta)
        self._propagate(edit.start, edit.start, point=edit.start)
        self.bus.emit("buffer.changed", edit)

    def _propagate(
        self,
        start: int,
        end: int,
        *,
        source: Optional[View] = None,
        point: Optional[int] = None,
    ) -> None:
        """Re-render every view that can observe ``[start, end)``.

        With ``point`` set (inserts/deletes) every byte from ``point`` on has
        moved, so any view reaching ``point`` is affected.
        """

        for view in self._views.values():
            if view is source:
                self._render(view)
                continue
            low, high = self._extent(view)
            if point is not None:
                affected = point <= high
            else:
                affected = start < high and low < end
            if affected:
                self._set_state(view, ViewState.DIRTY)
                self._render(view)
            else:
                view.rendered_revision = self.buffer.revision

    # -- navigation helpers ---------------------------------------------------

    def follow_pointer(self, name: str) -> int:
        """Jump the view's cursor to the address stored in the cell under it."""

        view = self.view(name)
        if not view.spec.mode.is_numeral:
            raise InvalidSpec("Pointers can only be followed from numeral views")
        self.render(name)
        cell = view.cell_at(view.cursor.offset)
        if cell is None or cell.status is not CellStatus.VALID:
            raise WidthMismatch(
                "No complete cell under the cursor",
                expected=view.spec.width,
                actual=0 if cell is None else cell.length,
            )
        target = int.from_bytes(cell.raw, byteorder=view.spec.order)
        view.cursor.goto(target)
        self._ensure_visible(view)
        telemetry.record_event(
            "view.follow_pointer",
            level="debug",
            data={"view": name, "from": cell.start, "to": target},
        )
        return target

    def instruction_at(
        self, name: str, offset: Optional[int] = None, relative: int = 0
    ) -> Optional[DecodedInstruction]:
        """Instruction covering ``offset``, or ``relative`` instructions away."""

        view = self.view(name)
        if view.spec.mode is not Mode.INSTRUCTION:
            raise InvalidSpec(f"View '{name}' is not an instruction view")
        offset = view.cursor.offset if offset is None else offset
        return self._listing(view).locate(offset, relative)

    def _listing(self, view: View) -> InstructionListing:
        cached = view._listing
        if cached is not None and cached[:2] == (self.buffer.revision, view.start):
            return cached[2]
        decoder = self.decoder
        if decoder is None:
            raise InvalidSpec("Instruction mode requires an instruction decoder")
        end = self._window_end(view)
        lookahead = read_ahead(view.spec, decoder)
        data = _data(self.buffer.read(view.start, end - view.start + lookahead - 1))
        listing = InstructionListing.disassemble(decoder, data, view.start)
        view._listing = (self.buffer.revision, view.start, listing)
        return listing

    def _check_decoder(self, spec: ViewSpec) -> None:
        if spec.mode is Mode.INSTRUCTION and self.decoder is None:
            raise InvalidSpec("Instruction mode requires an instruction decoder")


__all__ = [
    "CommitResult",
    "PendingEdit",
    "View",
    "ViewCoordinator",
    "ViewState",
]
