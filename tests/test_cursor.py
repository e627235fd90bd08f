from __future__ import annotations

import pytest

from hex_engine.buffer import ByteBuffer, Cursor, parse_offset
from hex_engine.errors import InvalidSpec, OutOfRange, ParseError
from hex_engine.view import Mode, ViewSpec


def make_cursor(size: int = 16, **kwargs) -> Cursor:
    return Cursor(ByteBuffer(bytes(size)), **kwargs)


def test_move_is_clamped_and_goto_is_checked() -> None:
    cursor = make_cursor(16, offset=4)
    assert cursor.move(-10) == 0
    assert cursor.move(100) == 16
    with pytest.raises(OutOfRange):
        cursor.goto(17)
    assert cursor.offset == 16


def test_cell_steps_and_alignment_follow_width() -> None:
    spec = ViewSpec(mode=Mode.HEX, width=4)
    cursor = make_cursor(16, offset=6, spec=spec)
    assert cursor.align() == 4
    assert cursor.next_cell() == 8
    assert cursor.prev_cell() == 4


def test_select_normalises_and_checks_width() -> None:
    cursor = make_cursor(16, spec=ViewSpec(mode=Mode.DECIMAL, width=2))
    assert cursor.select(8, 4) == (4, 8)
    with pytest.raises(InvalidSpec):
        cursor.select(0, 3)
    cursor.clear_selection()
    assert cursor.selection is None


def test_set_spec_keeps_prior_spec_when_width_does_not_divide_selection() -> None:
    cursor = make_cursor(16, spec=ViewSpec(mode=Mode.HEX, width=2))
    cursor.select(0, 6)
    with pytest.raises(InvalidSpec):
        cursor.set_spec(ViewSpec(mode=Mode.HEX, width=4))
    assert cursor.spec.width == 2
    cursor.set_spec(ViewSpec(mode=Mode.TEXT))
    assert cursor.spec.mode is Mode.TEXT


def test_parse_offset_accepts_hex_goto_targets() -> None:
    assert parse_offset("1f0") == 0x1F0
    assert parse_offset(" 0x10 ") == 16
    with pytest.raises(ParseError):
        parse_offset("zz")


def test_view_spec_validation() -> None:
    with pytest.raises(InvalidSpec):
        ViewSpec(width=3)
    with pytest.raises(InvalidSpec):
        ViewSpec(order="middle")  # type: ignore[arg-type]
    with pytest.raises(InvalidSpec):
        ViewSpec(mode=Mode.TEXT, encoding="klingon")


def test_view_spec_helpers_cycle_and_clamp() -> None:
    spec = ViewSpec()
    assert spec.cycle_mode().mode is Mode.DECIMAL
    assert spec.cycle_mode(reverse=True).mode is Mode.INSTRUCTION
    assert spec.narrower().width == 1
    assert ViewSpec(width=8).wider().width == 8
    assert spec.wider().width == 2
    assert spec.toggle_order().order == "big"
    assert spec.toggle_signed().signed
    assert ViewSpec(mode=Mode.DECIMAL, width=4).describe() == "decimal/u32/little"
    assert ViewSpec(mode=Mode.TEXT).cell_width == 1


def test_mode_parse_accepts_short_names() -> None:
    assert Mode.parse("dec") is Mode.DECIMAL
    assert Mode.parse("HEX") is Mode.HEX
    with pytest.raises(ValueError):
        Mode.parse("roman")


def test_numeral_base_is_only_defined_for_numeral_modes() -> None:
    assert ViewSpec(mode=Mode.OCTAL).numeral_base == 8
    with pytest.raises(InvalidSpec):
        ViewSpec(mode=Mode.TEXT).numeral_base
    with pytest.raises(InvalidSpec):
        ViewSpec(mode=Mode.INSTRUCTION).numeral_base
