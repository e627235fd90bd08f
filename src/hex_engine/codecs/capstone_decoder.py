"""Capstone-backed instruction decoder plugin."""

from __future__ import annotations

import capstone

from hex_engine.errors import DecodeFailure
from hex_engine.runtime import telemetry

from .instruction import DecodedInstruction

# capstone 6 renamed ARM64 to AARCH64
_ARCH_ARM64 = getattr(capstone, "CS_ARCH_ARM64", None)
if _ARCH_ARM64 is None:
    _ARCH_ARM64 = capstone.CS_ARCH_AARCH64

# name -> (arch, mode, longest instruction)
ARCHITECTURES: dict[str, tuple[int, int, int]] = {
    "x86_16": (capstone.CS_ARCH_X86, capstone.CS_MODE_16, 15),
    "x86_32": (capstone.CS_ARCH_X86, capstone.CS_MODE_32, 15),
    "x86_64": (capstone.CS_ARCH_X86, capstone.CS_MODE_64, 15),
    "arm": (capstone.CS_ARCH_ARM, capstone.CS_MODE_ARM, 4),
    "thumb": (capstone.CS_ARCH_ARM, capstone.CS_MODE_THUMB, 4),
    "arm64": (_ARCH_ARM64, capstone.CS_MODE_ARM, 4),
}


class CapstoneDecoder:
    """Decode one instruction at a time with a configured Capstone engine."""

    def __init__(self, arch: str = "x86_64") -> None:
        key = arch.lower()
        if key not in ARCHITECTURES:
            raise ValueError(
                f"Unknown architecture '{arch}'; expected one of {sorted(ARCHITECTURES)}"
            )
        cs_arch, cs_mode, max_length = ARCHITECTURES[key]
        self.arch = key
        self.max_length = max_length
        self._cs = capstone.Cs(cs_arch, cs_mode)
        if cs_arch == capstone.CS_ARCH_X86:
            self._cs.syntax = capstone.CS_OPT_SYNTAX_INTEL
        self._cs.detail = False
        telemetry.record_event(
            "decoder.ready", level="debug", data={"arch": key, "engine": "capstone"}
        )

    def __call__(self, data: bytes, address: int) -> DecodedInstruction:
        insn = next(iter(self._cs.disasm(data, address, 1)), None)
        if insn is None:
            raise DecodeFailure(
                f"No valid {self.arch} instruction at {address:#x}", address=address
            )
        return DecodedInstruction(
            mnemonic=insn.mnemonic,
            operands=insn.op_str,
            length=insn.size,
            address=insn.address,
        )


__all__ = ["ARCHITECTURES", "CapstoneDecoder"]
