"""Turn a buffer span into cells under one ViewSpec."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from hex_engine.codecs import instruction, numeral, text
from hex_engine.codecs.instruction import DEFAULT_MAX_LENGTH, InstructionDecoder
from hex_engine.errors import DecodeFailure, InvalidSpec, OutOfRange

from .cell import CellStatus, DecodedCell
from .spec import Mode, ViewSpec

if TYPE_CHECKING:
    from hex_engine.buffer import ByteBuffer

BAD_INSTRUCTION = "(bad)"


def render_span(
    buffer: "ByteBuffer",
    start: int,
    end: int,
    spec: ViewSpec,
    *,
    decoder: Optional[InstructionDecoder] = None,
    placeholder: str = text.PLACEHOLDER,
) -> list[DecodedCell]:
    """Decode every cell starting in ``[start, end)``.

    ``end`` may lie past the buffer; it is clamped. Cells that start inside
    the span may extend beyond it (a wide numeral, a multi-byte character, an
    instruction), which is what lets the caller track a view's true extent.
    """

    length = len(buffer)
    if start < 0 or start > length:
        raise OutOfRange(f"Render start {start} outside [0, {length}]", offset=start)
    if end < start:
        raise OutOfRange(f"Render end {end} precedes start {start}", offset=end)
    end = min(end, length)

    mode = spec.mode
    if mode.is_numeral:
        return _render_numeral(buffer, start, end, spec)
    if mode is Mode.TEXT:
        return _render_text(buffer, start, end, spec, placeholder)
    if mode is Mode.INSTRUCTION:
        return _render_instructions(buffer, start, end, spec, decoder)
    raise InvalidSpec(f"Unhandled mode {mode!r}")


def read_ahead(spec: ViewSpec, decoder: Optional[InstructionDecoder] = None) -> int:
    """Bytes from a cell start the renderer may read to decode that cell."""

    if spec.mode is Mode.TEXT:
        return text.MAX_SEQUENCE
    if spec.mode is Mode.INSTRUCTION:
        return getattr(decoder, "max_length", DEFAULT_MAX_LENGTH)
    return spec.width


def _data(result) -> bytes:
    return result if isinstance(result, bytes) else result.data


def _truncated_text(data: bytes, spec: ViewSpec) -> str:
    size = numeral.rendered_length(spec.width, spec.signed, spec.numeral_base)
    return data.hex().ljust(size, "?")


def _render_numeral(
    buffer: "ByteBuffer", start: int, end: int, spec: ViewSpec
) -> list[DecodedCell]:
    base = spec.numeral_base
    cells: list[DecodedCell] = []
    for offset in range(start, end, spec.width):
        result = buffer.read(offset, spec.width)
        data = _data(result)
        if len(data) < spec.width:
            cells.append(
                DecodedCell(
                    offset,
                    offset + len(data),
                    _truncated_text(data, spec),
                    CellStatus.TRUNCATED,
                    raw=data,
                )
            )
            continue
        cells.append(
            DecodedCell(
                offset,
                offset + spec.width,
                numeral.decode(data, spec.width, spec.order, spec.signed, base),
                CellStatus.VALID,
                raw=data,
                value=int.from_bytes(data, byteorder=spec.order, signed=spec.signed),
            )
        )
    return cells


def _render_text(
    buffer: "ByteBuffer", start: int, end: int, spec: ViewSpec, placeholder: str
) -> list[DecodedCell]:
    # Read past ``end`` so a character starting inside the span is complete.
    data = _data(buffer.read(start, end - start + read_ahead(spec) - 1))
    cells: list[DecodedCell] = []
    for unit in text.decode(data, spec.encoding, placeholder=placeholder):
        if start + unit.start >= end:
            break
        if unit.valid:
            status = CellStatus.VALID
        elif unit.incomplete:
            status = CellStatus.TRUNCATED
        else:
            status = CellStatus.UNDECODABLE
        cells.append(
            DecodedCell(
                start + unit.start,
                start + unit.end,
                unit.glyph,
                status,
                raw=data[unit.start : unit.end],
            )
        )
    return cells


def _render_instructions(
    buffer: "ByteBuffer",
    start: int,
    end: int,
    spec: ViewSpec,
    decoder: Optional[InstructionDecoder],
) -> list[DecodedCell]:
    if decoder is None:
        raise InvalidSpec("Instruction mode requires an instruction decoder")
    lookahead = read_ahead(spec, decoder)
    cells: list[DecodedCell] = []
    offset = start
    while offset < end:
        data = _data(buffer.read(offset, lookahead))
        try:
            insn = instruction.decode(decoder, data, offset)
        except DecodeFailure:
            step = min(spec.width, len(data))
            cells.append(
                DecodedCell(
                    offset,
                    offset + step,
                    BAD_INSTRUCTION,
                    CellStatus.UNDECODABLE,
                    raw=data[:step],
                )
            )
            offset += step
            continue
        cells.append(
            DecodedCell(
                offset,
                offset + insn.length,
                insn.text,
                CellStatus.VALID,
                raw=data[: insn.length],
            )
        )
        offset += insn.length
    return cells


__all__ = ["BAD_INSTRUCTION", "read_ahead", "render_span"]
