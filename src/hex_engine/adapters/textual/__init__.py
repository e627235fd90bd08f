"""Textual host adapter. ``app`` is imported lazily since it needs textual."""

from .controller import TextualHexAdapter, TextualUIHooks, ViewMirror, format_rows

__all__ = ["TextualHexAdapter", "TextualUIHooks", "ViewMirror", "format_rows"]
