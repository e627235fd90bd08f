"""Pure codecs mapping byte spans to and from display strings."""

from . import numeral, text
from .instruction import (
    DecodedInstruction,
    InstructionDecoder,
    InstructionListing,
)
from .text import TextUnit

__all__ = [
    "numeral",
    "text",
    "DecodedInstruction",
    "InstructionDecoder",
    "InstructionListing",
    "TextUnit",
]
