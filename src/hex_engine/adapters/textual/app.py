"""Executable Textual app that hosts the hex engine."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Sequence

try:  # pragma: no cover - imported only when demo is run
    from textual import events
    from textual.app import App, ComposeResult
    from textual.containers import Horizontal
    from textual.widgets import Footer, Header, Static
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use hex_engine.adapters.textual.app"
    ) from exc

from hex_engine.buffer import ByteBuffer, EditLog
from hex_engine.codecs.capstone_decoder import CapstoneDecoder
from hex_engine.runtime import telemetry
from hex_engine.runtime.settings import EngineSettings
from hex_engine.view import Mode, ViewSpec
from hex_engine.view.coordinator import ViewCoordinator

from .controller import TextualHexAdapter, TextualUIHooks, ViewMirror

VIEW_NAMES = ("numbers", "text")


def create_default_coordinator(
    data: bytes,
    *,
    name: str = "anonymous",
    settings: Optional[EngineSettings] = None,
) -> ViewCoordinator:
    """Buffer + decoder + the two side-by-side views the demo shows."""

    settings = settings or EngineSettings.from_env()
    buffer = ByteBuffer(data, name=name, log=EditLog(limit=settings.undo_limit))
    coordinator = ViewCoordinator(
        buffer, decoder=CapstoneDecoder(settings.arch), settings=settings
    )
    coordinator.open_view("numbers", settings.default_spec(), size=settings.row_bytes * 16)
    coordinator.open_view(
        "text",
        ViewSpec(mode=Mode.TEXT, encoding=settings.encoding),
        size=settings.row_bytes * 16,
    )
    return coordinator


@dataclass
class UIState:
    views: Dict[str, str] = field(default_factory=dict)
    status_text: str = ""


class HexEngineApp(App[None]):
    """Minimal Textual UI showing a numeral view next to a text view."""

    CSS = """
	Screen {
		layout: vertical;
	}

	.view-pane {
		width: 1fr;
		height: 1fr;
		border: round $accent;
		padding: 0 1;
		overflow: auto;
	}

	.view-pane.active {
		border: round $success;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("ctrl+n", "cycle_mode", "Mode"),
        ("ctrl+w", "wider", "Wider"),
        ("ctrl+e", "narrower", "Narrower"),
        ("ctrl+o", "toggle_order", "Endian"),
        ("ctrl+t", "toggle_signed", "Signed"),
        ("ctrl+f", "follow", "Follow"),
        ("ctrl+z", "undo", "Undo"),
        ("ctrl+y", "redo", "Redo"),
    ]

    def __init__(self, data: bytes, *, name: str = "anonymous") -> None:
        super().__init__()
        self._data = data
        self._name = name
        self._state = UIState()
        self._active = VIEW_NAMES[0]
        self.coordinator: ViewCoordinator | None = None
        self.adapter: TextualHexAdapter | None = None
        self._panes: Dict[str, Static] = {}
        self._status_widget: Static | None = None
        self._logger = telemetry.get_logger("hex_engine.app")

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="views"):
            for view_name in VIEW_NAMES:
                pane = Static(
                    "", id=f"{view_name}-view", classes="view-pane", markup=False
                )
                self._panes[view_name] = pane
                yield pane
        self._status_widget = Static("", id="status-line")
        yield self._status_widget
        yield Footer()

    async def on_mount(self) -> None:
        self.coordinator = create_default_coordinator(self._data, name=self._name)
        hooks = TextualUIHooks(
            update_view=self._update_view,
            update_status=self._update_status,
            log=self._log_line,
        )
        self.adapter = TextualHexAdapter(self.coordinator, hooks)
        self._highlight_active()

    async def on_key(self, event: events.Key) -> None:
        adapter = self.adapter
        if adapter is None:
            return
        key = event.key
        if key in {"left", "right"}:
            adapter.cancel()
            adapter.move(self._active, -1 if key == "left" else 1)
        elif key in {"up", "down"} and self.coordinator is not None:
            adapter.cancel()
            view = self.coordinator.view(self._active)
            cells = self.coordinator.settings.row_bytes // view.spec.cell_width
            adapter.move(self._active, -cells if key == "up" else cells)
        elif key == "tab":
            adapter.cancel()
            index = VIEW_NAMES.index(self._active)
            self._active = VIEW_NAMES[(index + 1) % len(VIEW_NAMES)]
            self._highlight_active()
        elif key in {"enter", "return"}:
            adapter.commit()
        elif key == "escape":
            adapter.cancel()
        elif key == "backspace":
            adapter.backspace()
        elif key == "insert":
            adapter.insert_zero(self._active)
        elif key == "delete":
            adapter.delete_cell(self._active)
        elif event.character and event.is_printable:
            adapter.type_char(self._active, event.character)
        else:
            return
        event.stop()

    def action_cycle_mode(self) -> None:
        if self.adapter:
            self.adapter.cycle_mode(self._active)

    def action_wider(self) -> None:
        if self.adapter:
            self.adapter.wider(self._active)

    def action_narrower(self) -> None:
        if self.adapter:
            self.adapter.narrower(self._active)

    def action_toggle_order(self) -> None:
        if self.adapter:
            self.adapter.toggle_order(self._active)

    def action_toggle_signed(self) -> None:
        if self.adapter:
            self.adapter.toggle_signed(self._active)

    def action_follow(self) -> None:
        if self.adapter:
            self.adapter.follow_pointer(self._active)

    def action_undo(self) -> None:
        if self.adapter:
            self.adapter.undo()

    def action_redo(self) -> None:
        if self.adapter:
            self.adapter.redo()

    def _update_view(self, mirror: ViewMirror) -> None:
        header = f"{mirror.name} [{mirror.spec}] {mirror.state}"
        if mirror.error:
            header += f" ! {mirror.error}"
        self._state.views[mirror.name] = f"{header}\n{mirror.text}"
        pane = self._panes.get(mirror.name)
        if pane is not None:
            pane.update(self._state.views[mirror.name])

    def _update_status(self, status: str) -> None:
        self._state.status_text = status
        if self._status_widget:
            self._status_widget.update(status)

    def _highlight_active(self) -> None:
        for view_name, pane in self._panes.items():
            pane.set_class(view_name == self._active, "active")

    def _log_line(self, line: str) -> None:
        self._logger.debug(line)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the hex engine Textual demo.")
    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        help="File to load (read into memory; changes are not written back)",
    )
    parser.add_argument(
        "--size",
        type=int,
        default=256,
        help="Size of the zero-filled buffer when no file is given (default: 256)",
    )
    parser.add_argument(
        "--log-preset",
        choices=("development", "session", "trace"),
        default=None,
        help="Telemetry preset to apply before starting",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    if args.log_preset:
        telemetry.configure(preset=args.log_preset)
    if args.path is not None:
        data = args.path.read_bytes()
        name = args.path.name
    else:
        data = bytes(max(args.size, 0))
        name = "anonymous"
    app = HexEngineApp(data, name=name)
    app.run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()
