from __future__ import annotations

from typing import List

import pytest

from hex_engine.buffer import ByteBuffer
from hex_engine.codecs.instruction import DecodedInstruction
from hex_engine.errors import (
    DecodeFailure,
    EditInProgress,
    InvalidSpec,
    OutOfRange,
    ParseError,
    ReadOnlyRepresentation,
    Unencodable,
    ValueOutOfRange,
    WidthMismatch,
)
from hex_engine.runtime.settings import EngineSettings
from hex_engine.view import CellStatus, Mode, ViewSpec
from hex_engine.view.coordinator import ViewCoordinator, ViewState


class ToyDecoder:
    max_length = 5

    def __call__(self, data: bytes, address: int) -> DecodedInstruction:
        op = data[0]
        if op == 0x90:
            return DecodedInstruction("nop", "", 1, address)
        if op == 0xC3:
            return DecodedInstruction("ret", "", 1, address)
        if op == 0x0F and len(data) >= 2 and data[1] == 0x05:
            return DecodedInstruction("syscall", "", 2, address)
        if op == 0xB8 and len(data) >= 5:
            value = int.from_bytes(data[1:5], "little")
            return DecodedInstruction("mov", f"eax, {value:#x}", 5, address)
        raise DecodeFailure(f"bad opcode {op:#x}", address=address)


HEX = ViewSpec(mode=Mode.HEX)
DEC32 = ViewSpec(mode=Mode.DECIMAL, width=4)


def make_coordinator(data: bytes, **kwargs) -> ViewCoordinator:
    return ViewCoordinator(ByteBuffer(data, name="test"), **kwargs)


def test_scenario_little_and_big_endian_views_track_one_write() -> None:
    coordinator = make_coordinator(b"\x01\x00\x00\x00")
    coordinator.open_view("le", DEC32)
    coordinator.open_view("be", ViewSpec(mode=Mode.DECIMAL, width=4, order="big"))

    assert coordinator.render("le")[0].text == "0000000001"
    assert coordinator.render("le")[0].value == 1
    assert coordinator.render("be")[0].value == 16777216

    result = coordinator.edit("le", 0, "2")

    assert result.committed
    assert bytes(coordinator.buffer) == b"\x02\x00\x00\x00"
    assert coordinator.view("le").cells[0].text == "0000000002"
    assert coordinator.view("be").cells[0].value == 33554432
    assert coordinator.view("be").rendered_revision == coordinator.buffer.revision


def test_hex_write_is_observed_by_overlapping_decimal_view() -> None:
    coordinator = make_coordinator(bytes(16))
    coordinator.open_view("hex", HEX)
    coordinator.open_view("dec", DEC32)

    coordinator.edit("hex", 4, "2a")

    dec = coordinator.view("dec")
    assert dec.cell_at(4).text == "0000000042"
    assert dec.cell_at(0).text == "0000000000"
    assert dec.state is ViewState.CLEAN


def test_views_outside_the_written_span_are_not_redecoded() -> None:
    coordinator = make_coordinator(bytes(32))
    coordinator.open_view("head", HEX, start=0, size=4)
    coordinator.open_view("far", HEX, start=16, size=4)
    rendered: List[str] = []
    coordinator.bus.subscribe("view.rendered", lambda view: rendered.append(view.name))

    coordinator.edit("head", 1, "ff")

    assert rendered == ["head"]
    assert coordinator.view("far").rendered_revision == coordinator.buffer.revision


def test_rejected_edit_leaves_buffer_and_views_untouched() -> None:
    coordinator = make_coordinator(b"\x01\x00\x00\x00")
    view = coordinator.open_view("dec", DEC32)
    states: List[ViewState] = []
    rejected: List[object] = []
    coordinator.bus.subscribe("view.state", lambda payload: states.append(payload[1]))
    coordinator.bus.subscribe("edit.rejected", rejected.append)

    result = coordinator.edit("dec", 0, "4294967296")

    assert result.status == "rejected"
    assert isinstance(result.error, ValueOutOfRange)
    assert bytes(coordinator.buffer) == b"\x01\x00\x00\x00"
    assert coordinator.buffer.revision == 0
    assert not coordinator.buffer.can_undo()
    assert view.cells[0].text == "0000000001"
    assert view.error is result.error
    assert states == [
        ViewState.DIRTY,
        ViewState.COMMITTING,
        ViewState.REJECTED,
        ViewState.DIRTY,
    ]
    assert len(rejected) == 1
    assert coordinator.pending is None


def test_unparseable_numeral_is_rejected_with_parse_error() -> None:
    coordinator = make_coordinator(bytes(4))
    coordinator.open_view("hex", HEX)
    result = coordinator.edit("hex", 0, "g1")
    assert result.status == "rejected"
    assert isinstance(result.error, ParseError)
    assert result.error.position == 0


def test_successful_commit_walks_state_machine_back_to_clean() -> None:
    coordinator = make_coordinator(bytes(4))
    coordinator.open_view("hex", HEX)
    states: List[ViewState] = []
    coordinator.bus.subscribe("view.state", lambda payload: states.append(payload[1]))

    coordinator.edit("hex", 0, "7f")

    assert states == [ViewState.DIRTY, ViewState.COMMITTING, ViewState.CLEAN]


def test_unchanged_text_is_not_written() -> None:
    coordinator = make_coordinator(bytes(4))
    coordinator.open_view("hex", HEX)
    result = coordinator.edit("hex", 0, "00")
    assert result.status == "unchanged"
    assert coordinator.buffer.revision == 0


def test_commit_without_typing_is_unchanged() -> None:
    coordinator = make_coordinator(b"\xffA")
    coordinator.open_view("text", ViewSpec(mode=Mode.TEXT, encoding="utf-8"))
    coordinator.begin_edit("text", 0)
    result = coordinator.commit_edit()
    assert result.status == "unchanged"
    assert bytes(coordinator.buffer) == b"\xffA"


def test_typing_the_placeholder_over_an_invalid_byte_writes_it() -> None:
    coordinator = make_coordinator(b"\xffA")
    coordinator.open_view("text", ViewSpec(mode=Mode.TEXT, encoding="utf-8"))
    assert coordinator.render("text")[0].text == "."

    coordinator.begin_edit("text", 0)
    assert coordinator.type_char(".")
    result = coordinator.commit_edit()

    assert result.committed
    assert bytes(coordinator.buffer) == b".A"


def test_escape_glyph_cell_can_be_overwritten() -> None:
    coordinator = make_coordinator(b"\x00A")
    coordinator.open_view("text", ViewSpec(mode=Mode.TEXT))
    assert coordinator.render("text")[0].text == "␀"

    result = coordinator.edit("text", 0, "x")

    assert result.committed
    assert bytes(coordinator.buffer) == b"xA"


def test_instruction_view_is_read_only() -> None:
    coordinator = make_coordinator(b"\x90\xc3", decoder=ToyDecoder())
    coordinator.open_view("asm", ViewSpec(mode=Mode.INSTRUCTION))
    with pytest.raises(ReadOnlyRepresentation):
        coordinator.begin_edit("asm", 0)
    assert bytes(coordinator.buffer) == b"\x90\xc3"
    assert coordinator.pending is None


def test_instruction_mode_requires_a_decoder() -> None:
    coordinator = make_coordinator(b"\x90")
    coordinator.open_view("hex", HEX)
    with pytest.raises(InvalidSpec):
        coordinator.set_spec("hex", ViewSpec(mode=Mode.INSTRUCTION))
    assert coordinator.view("hex").spec == HEX


def test_second_edit_while_pending_is_refused() -> None:
    coordinator = make_coordinator(bytes(8))
    coordinator.open_view("hex", HEX)
    coordinator.open_view("dec", DEC32)

    coordinator.begin_edit("hex", 0)
    with pytest.raises(EditInProgress):
        coordinator.begin_edit("dec", 4)
    with pytest.raises(EditInProgress):
        coordinator.insert(0, b"\x00")

    coordinator.cancel_edit()
    assert coordinator.view("hex").state is ViewState.CLEAN
    assert coordinator.buffer.revision == 0
    assert coordinator.insert(0, b"\x00") is not None


def test_edit_requested_during_commit_is_refused() -> None:
    coordinator = make_coordinator(bytes(8))
    coordinator.open_view("hex", HEX)
    coordinator.open_view("dec", DEC32)
    refused: List[EditInProgress] = []

    def try_edit(_view: object) -> None:
        try:
            coordinator.begin_edit("dec", 0)
        except EditInProgress as exc:
            refused.append(exc)

    coordinator.bus.subscribe("view.rendered", try_edit)
    result = coordinator.edit("hex", 0, "01")

    assert result.committed
    assert refused
    assert coordinator.pending is None


def test_typing_overwrites_digits_at_the_caret() -> None:
    coordinator = make_coordinator(bytes(4))
    coordinator.open_view("hex", ViewSpec(mode=Mode.HEX, width=2))
    pending = coordinator.begin_edit("hex", 1)

    assert (pending.start, pending.end) == (0, 2)
    assert coordinator.type_char("1")
    assert coordinator.type_char("2")
    assert not coordinator.type_char("g")
    assert pending.text == "1200"
    coordinator.backspace()
    assert coordinator.type_char("A")
    assert pending.text == "1A00"

    coordinator.commit_edit()
    assert bytes(coordinator.buffer)[:2] == b"\x00\x1a"


def test_typing_into_signed_cell_fills_sign_column() -> None:
    coordinator = make_coordinator(bytes(1))
    coordinator.open_view("dec", ViewSpec(mode=Mode.DECIMAL, signed=True))
    pending = coordinator.begin_edit("dec", 0)
    assert pending.text == "+000"
    for char in "-005":
        assert coordinator.type_char(char)
    assert not coordinator.type_char("1")

    result = coordinator.commit_edit()

    assert result.committed
    assert bytes(coordinator.buffer) == b"\xfb"


def test_truncated_cell_cannot_be_edited() -> None:
    coordinator = make_coordinator(bytes(range(6)))
    view = coordinator.open_view("hex32", ViewSpec(mode=Mode.HEX, width=4))
    tail = view.cells[-1]
    assert tail.status is CellStatus.TRUNCATED
    assert tail.span == (4, 6)
    assert tail.text == "0405????"
    with pytest.raises(WidthMismatch):
        coordinator.begin_edit("hex32", 4)


def test_text_edit_overwrites_characters_in_place() -> None:
    coordinator = make_coordinator(b"hello")
    coordinator.open_view("text", ViewSpec(mode=Mode.TEXT))
    coordinator.open_view("hex", HEX)

    result = coordinator.edit("text", 1, "EL")

    assert result.committed
    assert bytes(coordinator.buffer) == b"hELlo"
    assert coordinator.view("hex").cell_at(1).text == "45"


def test_text_edit_past_end_or_unencodable_is_rejected() -> None:
    coordinator = make_coordinator(b"hello")
    coordinator.open_view("text", ViewSpec(mode=Mode.TEXT))

    past_end = coordinator.edit("text", 4, "xyz")
    assert isinstance(past_end.error, OutOfRange)

    foreign = coordinator.edit("text", 0, "ç")
    assert isinstance(foreign.error, Unencodable)
    assert bytes(coordinator.buffer) == b"hello"


def test_structural_edits_rebase_view_windows_and_undo_restores_them() -> None:
    coordinator = make_coordinator(bytes(range(32)))
    tail = coordinator.open_view("tail", HEX, start=8, size=8)
    changed: List[object] = []
    coordinator.bus.subscribe("buffer.changed", changed.append)

    coordinator.insert(2, b"\xee\xee\xee\xee")

    assert tail.start == 12
    assert tail.cursor.offset == 12
    assert tail.cells[0].text == "08"
    assert len(coordinator.buffer) == 36

    coordinator.undo()

    assert tail.start == 8
    assert tail.cursor.offset == 8
    assert tail.cells[0].text == "08"
    assert len(coordinator.buffer) == 32

    coordinator.redo()
    assert tail.start == 12
    assert len(changed) == 3


def test_undo_of_a_write_rerenders_every_view() -> None:
    coordinator = make_coordinator(bytes(8))
    coordinator.open_view("hex", HEX)
    coordinator.open_view("dec", DEC32)
    coordinator.edit("hex", 0, "ff")

    assert coordinator.undo() is not None

    assert coordinator.view("hex").cells[0].text == "00"
    assert coordinator.view("dec").cells[0].value == 0
    assert coordinator.undo() is None


def test_follow_pointer_moves_cursor_to_stored_address() -> None:
    data = b"\x10\x00\x00\x00" + bytes(28)
    coordinator = make_coordinator(data)
    view = coordinator.open_view("ptr", ViewSpec(mode=Mode.HEX, width=4))

    assert coordinator.follow_pointer("ptr") == 16
    assert view.cursor.offset == 16

    coordinator.goto("ptr", 0)
    coordinator.edit("ptr", 0, "ffffffff")
    with pytest.raises(OutOfRange):
        coordinator.follow_pointer("ptr")


def test_instruction_view_renders_and_resyncs_after_bad_bytes() -> None:
    data = b"\x90\xb8\x01\x00\x00\x00\xc3\xff"
    coordinator = make_coordinator(data, decoder=ToyDecoder())
    coordinator.open_view("asm", ViewSpec(mode=Mode.INSTRUCTION))
    coordinator.open_view("hex", HEX)

    cells = coordinator.render("asm")

    assert [cell.text for cell in cells] == ["nop", "mov eax, 0x1", "ret", "(bad)"]
    assert cells[-1].status is CellStatus.UNDECODABLE
    assert coordinator.instruction_at("asm", 3).mnemonic == "mov"
    assert coordinator.instruction_at("asm", 3, relative=1).mnemonic == "ret"

    coordinator.edit("hex", 0, "c3")

    assert coordinator.view("asm").cells[0].text == "ret"
    assert coordinator.instruction_at("asm", 0).mnemonic == "ret"


def test_write_past_text_window_completes_its_last_character() -> None:
    coordinator = make_coordinator(b"abc\xe2AAAA")
    coordinator.open_view(
        "text", ViewSpec(mode=Mode.TEXT, encoding="utf-8"), start=0, size=4
    )
    coordinator.open_view("hex", HEX)
    assert coordinator.render("text")[-1].text == "."

    coordinator.edit("hex", 4, "82")
    coordinator.edit("hex", 5, "ac")

    text_view = coordinator.view("text")
    assert text_view.cells[-1].text == "€"
    assert text_view.rendered_revision == coordinator.buffer.revision


def test_write_past_instruction_window_redecodes_its_last_instruction() -> None:
    coordinator = make_coordinator(b"\x90\x90\x90\x0f\x00\x00", decoder=ToyDecoder())
    coordinator.open_view("asm", ViewSpec(mode=Mode.INSTRUCTION), start=0, size=4)
    coordinator.open_view("hex", HEX)
    assert coordinator.render("asm")[-1].text == "(bad)"

    coordinator.edit("hex", 4, "05")

    assert coordinator.view("asm").cells[-1].text == "syscall"
    assert coordinator.instruction_at("asm", 3).mnemonic == "syscall"


def test_scroll_and_auto_scroll_follow_the_cursor() -> None:
    settings = EngineSettings(row_bytes=16)
    coordinator = make_coordinator(bytes(128), settings=settings)
    view = coordinator.open_view("hex", HEX, size=32)

    coordinator.goto("hex", 40)
    assert view.start <= 40 < view.start + 32
    assert view.start % 16 == 0

    coordinator.scroll("hex", 64)
    assert view.cells[0].start == 64


def test_default_spec_comes_from_settings() -> None:
    settings = EngineSettings(default_mode=Mode.OCTAL, default_width=2)
    coordinator = make_coordinator(bytes(4), settings=settings)
    view = coordinator.open_view("oct")
    assert view.spec.mode is Mode.OCTAL
    assert view.cells[0].text == "000000"


def test_close_view_drops_it_from_propagation() -> None:
    coordinator = make_coordinator(bytes(4))
    coordinator.open_view("hex", HEX)
    coordinator.open_view("other", HEX)
    coordinator.close_view("other")
    assert [view.name for view in coordinator.views] == ["hex"]
    with pytest.raises(KeyError):
        coordinator.view("other")
    with pytest.raises(ValueError):
        coordinator.open_view("hex", HEX)
