"""Decode-only adapter over a pluggable instruction decoder."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterator, Optional, Protocol, Sequence

from hex_engine.errors import DecodeFailure

DEFAULT_MAX_LENGTH = 15


@dataclass(frozen=True, slots=True)
class DecodedInstruction:
    mnemonic: str
    operands: str
    length: int
    address: int = 0

    @property
    def text(self) -> str:
        return f"{self.mnemonic} {self.operands}".strip()

    @property
    def end(self) -> int:
        return self.address + self.length


class InstructionDecoder(Protocol):
    """Architecture plugin: decode one instruction at ``address``.

    Implementations raise ``DecodeFailure`` for unrecognised or incomplete
    encodings and expose ``max_length`` so callers can bound lookahead.
    """

    max_length: int

    def __call__(self, data: bytes, address: int) -> DecodedInstruction:
        ...


def decode(
    decoder: InstructionDecoder, data: bytes, address: int = 0
) -> DecodedInstruction:
    """Decode the instruction at the start of ``data``.

    The plugin's reported length is checked against the bytes it was given;
    a decoder claiming zero bytes or more than it saw is treated as a failure.
    """

    if not data:
        raise DecodeFailure("No bytes to decode", address=address)
    insn = decoder(data, address)
    if not 1 <= insn.length <= len(data):
        raise DecodeFailure(
            f"Decoder reported length {insn.length} for {len(data)} available bytes",
            address=address,
        )
    return insn


class InstructionListing:
    """Decoded instructions of a region, searchable by byte offset."""

    def __init__(self, instructions: Sequence[DecodedInstruction] = ()) -> None:
        self._insns = sorted(instructions, key=lambda insn: insn.address)
        self._starts = [insn.address for insn in self._insns]

    @classmethod
    def disassemble(
        cls,
        decoder: InstructionDecoder,
        data: bytes,
        address: int = 0,
        *,
        count: Optional[int] = None,
    ) -> "InstructionListing":
        """Decode sequentially from ``address`` until a failure or ``count``."""

        insns: list[DecodedInstruction] = []
        pos = 0
        while pos < len(data) and (count is None or len(insns) < count):
            try:
                insn = decode(decoder, data[pos:], address + pos)
            except DecodeFailure:
                break
            insns.append(insn)
            pos += insn.length
        return cls(insns)

    def __len__(self) -> int:
        return len(self._insns)

    def __iter__(self) -> Iterator[DecodedInstruction]:
        return iter(self._insns)

    def locate(self, offset: int, relative: int = 0) -> Optional[DecodedInstruction]:
        """Instruction covering ``offset``, optionally ``relative`` entries away."""

        index = bisect_right(self._starts, offset) - 1
        if index < 0 or offset >= self._insns[index].end:
            return None
        index += relative
        if not 0 <= index < len(self._insns):
            return None
        return self._insns[index]


__all__ = [
    "DEFAULT_MAX_LENGTH",
    "DecodedInstruction",
    "InstructionDecoder",
    "InstructionListing",
    "decode",
]
