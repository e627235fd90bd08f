"""Textual adapter that wires ViewCoordinator events into UI callbacks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from hex_engine.buffer import parse_offset
from hex_engine.errors import HexEngineError
from hex_engine.view import DecodedCell, Mode
from hex_engine.view.coordinator import CommitResult, View, ViewCoordinator


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class ViewMirror:
    """Plain-text snapshot of one view for a widget to display."""

    name: str
    spec: str
    state: str
    cursor: int
    rows: List[str] = field(default_factory=list)
    pending: Optional[str] = None
    error: Optional[str] = None

    @property
    def text(self) -> str:
        return "\n".join(self.rows)


@dataclass(slots=True)
class TextualUIHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    update_view: Callable[[ViewMirror], None]
    update_status: Callable[[str], None] = _noop
    handle_event: Callable[[str, object | None], None] = _noop
    log: Callable[[str], None] = _noop


def format_rows(
    view: View,
    cells: Iterable[DecodedCell],
    *,
    row_bytes: int,
    cursor: Optional[int] = None,
    pending: Optional[tuple[int, str]] = None,
) -> List[str]:
    """Lay cells out as ``address  cell cell ...`` lines.

    Instruction cells get one line each; other modes break every
    ``row_bytes`` bytes. The cell under ``cursor`` is bracketed and a pending
    edit replaces the text of the cell it started on.
    """

    rows: List[str] = []
    current: List[str] = []
    row_start: Optional[int] = None
    per_row = view.spec.mode is Mode.INSTRUCTION

    def flush() -> None:
        if row_start is not None:
            rows.append(f"{row_start:08x}  " + " ".join(current))

    for cell in cells:
        key = cell.start if per_row else cell.start - (cell.start - view.start) % row_bytes
        if key != row_start:
            flush()
            row_start = key
            current = []
        label = cell.text
        if pending is not None and pending[0] == cell.start:
            label = pending[1]
        if cursor is not None and cell.contains(cursor):
            label = f"[{label}]"
        current.append(label)
    flush()
    return rows


class TextualHexAdapter:
    """Bridges ViewCoordinator + bus events to a Textual-friendly surface."""

    def __init__(self, coordinator: ViewCoordinator, hooks: TextualUIHooks) -> None:
        self.coordinator = coordinator
        self.hooks = hooks
        self._subscribe_events()
        self.refresh()

    # -- navigation --------------------------------------------------------

    def move(self, name: str, cells: int) -> Optional[int]:
        view = self.coordinator.view(name)
        return self._guard(
            lambda: self.coordinator.move(name, cells * view.spec.cell_width),
            label="move",
        )

    def goto(self, name: str, text: str) -> Optional[int]:
        def run() -> int:
            return self.coordinator.goto(name, parse_offset(text))

        return self._guard(run, label="goto")

    def follow_pointer(self, name: str) -> Optional[int]:
        return self._guard(lambda: self.coordinator.follow_pointer(name), label="follow")

    # -- interpretation ------------------------------------------------------

    def cycle_mode(self, name: str, *, reverse: bool = False) -> None:
        spec = self.coordinator.view(name).spec
        self._respec(name, spec.cycle_mode(reverse=reverse))

    def wider(self, name: str) -> None:
        self._respec(name, self.coordinator.view(name).spec.wider())

    def narrower(self, name: str) -> None:
        self._respec(name, self.coordinator.view(name).spec.narrower())

    def toggle_order(self, name: str) -> None:
        self._respec(name, self.coordinator.view(name).spec.toggle_order())

    def toggle_signed(self, name: str) -> None:
        self._respec(name, self.coordinator.view(name).spec.toggle_signed())

    def _respec(self, name: str, spec) -> None:
        self._guard(lambda: self.coordinator.set_spec(name, spec), label="spec")
        self.hooks.update_status(f"{name}: {self.coordinator.view(name).spec.describe()}")

    # -- editing -------------------------------------------------------------

    def type_char(self, name: str, char: str) -> bool:
        """Type into the cell under the cursor, starting an edit if needed."""

        coordinator = self.coordinator
        if coordinator.pending is None:
            if self._guard(lambda: coordinator.begin_edit(name), label="edit") is None:
                return False
        accepted = coordinator.type_char(char)
        if not accepted:
            self.hooks.update_status(f"'{char}' not accepted here")
        self.refresh()
        return accepted

    def backspace(self) -> None:
        if self.coordinator.pending is not None:
            self.coordinator.backspace()
            self.refresh()

    def commit(self) -> Optional[CommitResult]:
        if self.coordinator.pending is None:
            return None
        result = self._guard(
            lambda: self.coordinator.commit_edit(advance=True), label="commit"
        )
        if result is not None:
            self.hooks.update_status(result.message or result.status)
        self.refresh()
        return result

    def cancel(self) -> None:
        if self.coordinator.pending is not None:
            self.coordinator.cancel_edit()
            self.hooks.update_status("edit cancelled")
            self.refresh()

    def insert_zero(self, name: str) -> None:
        view = self.coordinator.view(name)
        width = view.spec.cell_width
        self._guard(
            lambda: self.coordinator.insert(view.cursor.offset, bytes(width)),
            label="insert",
        )

    def delete_cell(self, name: str) -> None:
        view = self.coordinator.view(name)
        start = view.cursor.offset
        end = min(start + view.spec.cell_width, len(self.coordinator.buffer))
        self._guard(lambda: self.coordinator.delete(start, end), label="delete")

    def undo(self) -> None:
        if self._guard(self.coordinator.undo, label="undo") is None:
            self.hooks.update_status("nothing to undo")

    def redo(self) -> None:
        if self._guard(self.coordinator.redo, label="redo") is None:
            self.hooks.update_status("nothing to redo")

    # -- mirrors -------------------------------------------------------------

    def mirror(self, name: str) -> ViewMirror:
        coordinator = self.coordinator
        view = coordinator.view(name)
        cells = coordinator.render(name)
        pending = coordinator.pending
        pending_cell = None
        if pending is not None and pending.view == name:
            pending_cell = (pending.start, pending.text)
        return ViewMirror(
            name=name,
            spec=view.spec.describe(),
            state=view.state.value,
            cursor=view.cursor.offset,
            rows=format_rows(
                view,
                cells,
                row_bytes=coordinator.settings.row_bytes,
                cursor=view.cursor.offset,
                pending=pending_cell,
            ),
            pending=None if pending_cell is None else pending_cell[1],
            error=None if view.error is None else str(view.error),
        )

    def refresh(self) -> None:
        for view in self.coordinator.views:
            self.hooks.update_view(self.mirror(view.name))

    def _guard(self, action: Callable[[], object], *, label: str):
        try:
            result = action()
        except HexEngineError as exc:
            self.hooks.update_status(f"{label}: {exc}")
            self._log_state("error ->", action=label, error=type(exc).__name__)
            return None
        self._log_state("action ->", action=label)
        return result

    def _subscribe_events(self) -> None:
        bus = self.coordinator.bus
        for event in (
            "edit.begin",
            "edit.cancel",
            "edit.committed",
            "edit.rejected",
            "buffer.changed",
            "view.state",
        ):
            bus.subscribe(
                event, lambda payload, name=event: self._handle_event(name, payload)
            )
        bus.subscribe("view.rendered", self._on_rendered)

    def _on_rendered(self, payload: object | None) -> None:
        if isinstance(payload, View) and payload.name in {
            view.name for view in self.coordinator.views
        }:
            self.hooks.update_view(self.mirror(payload.name))

    def _handle_event(self, name: str, payload: object | None) -> None:
        self._log_state("event ->", event=name, payload=payload)
        self.hooks.handle_event(name, payload)
        if name == "edit.rejected" and isinstance(payload, dict):
            self.hooks.update_status(f"rejected: {payload.get('error')}")

    def _log_state(self, prefix: str, **fields: object) -> None:
        snapshot = self._state_metadata()
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        parts = [prefix]
        for key, value in snapshot.items():
            parts.append(f"{key}={value!r}")
        self.hooks.log(" ".join(parts))

    def _state_metadata(self) -> Dict[str, object]:
        buffer = self.coordinator.buffer
        pending = self.coordinator.pending
        return {
            "buffer": buffer.name,
            "revision": buffer.revision,
            "length": len(buffer),
            "pending": None if pending is None else pending.view,
        }


__all__ = ["TextualHexAdapter", "TextualUIHooks", "ViewMirror", "format_rows"]
