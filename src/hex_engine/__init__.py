"""UI-agnostic hex editing engine: one byte buffer, many consistent views."""

__all__ = [
    "adapters",
    "buffer",
    "codecs",
    "errors",
    "runtime",
    "view",
]

__version__ = "0.1.0"
