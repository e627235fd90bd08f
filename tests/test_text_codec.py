from __future__ import annotations

import pytest

from hex_engine.codecs import text
from hex_engine.errors import InvalidSpec, Unencodable


def test_ascii_decodes_one_unit_per_byte() -> None:
    units = text.decode(b"Hi!", "ascii")
    assert [unit.glyph for unit in units] == ["H", "i", "!"]
    assert [(unit.start, unit.end) for unit in units] == [(0, 1), (1, 2), (2, 3)]
    assert all(unit.valid for unit in units)


def test_control_bytes_use_escape_glyphs() -> None:
    units = text.decode(b"\x00\n\x01", "latin-1")
    assert [unit.glyph for unit in units] == ["␀", "␊", text.NONPRINTABLE_GLYPH]
    assert not any(unit.printable for unit in units)


def test_invalid_sequence_becomes_placeholder_and_decoding_resumes() -> None:
    units = text.decode(b"A\xffB", "utf-8", placeholder="?")
    assert [unit.glyph for unit in units] == ["A", "?", "B"]
    assert units[1].char is None
    assert (units[1].start, units[1].end) == (1, 2)


def test_multibyte_characters_span_their_bytes() -> None:
    units = text.decode("é€".encode("utf-8"), "utf-8")
    assert [unit.char for unit in units] == ["é", "€"]
    assert [(unit.start, unit.end) for unit in units] == [(0, 2), (2, 5)]


def test_sequence_cut_by_end_of_data_is_incomplete() -> None:
    units = text.decode(b"A\xe2\x82", "utf-8")
    assert units[-1].incomplete
    assert (units[-1].start, units[-1].end) == (1, 3)


def test_short_sequence_that_is_already_invalid_is_not_incomplete() -> None:
    units = text.decode(b"\xe0A", "utf-8")
    assert [unit.glyph for unit in units] == [".", "A"]
    assert not units[0].incomplete
    assert (units[0].start, units[0].end) == (0, 1)


def test_utf16_surrogate_pair_is_one_unit() -> None:
    data = "😀".encode("utf-16-le")
    units = text.decode(data, "utf_16le")
    assert len(units) == 1
    assert units[0].char == "😀"
    assert units[0].end == 4


def test_encode_reports_first_unencodable_character() -> None:
    assert text.encode("ok", "ascii") == b"ok"
    with pytest.raises(Unencodable) as info:
        text.encode("abç", "ascii")
    assert info.value.position == 2
    assert info.value.char == "ç"


def test_unknown_encoding_is_invalid_spec() -> None:
    with pytest.raises(InvalidSpec):
        text.normalize_encoding("ebcdic")
    assert text.normalize_encoding("Latin1") == "latin-1"
