"""View specs and rendered cells.

The coordinator lives in :mod:`hex_engine.view.coordinator` and is imported
from there; the buffer layer depends on this package for ``ViewSpec``.
"""

from .cell import CellStatus, DecodedCell
from .events import EventBus
from .spec import WIDTHS, ByteOrder, Mode, ViewSpec

__all__ = [
    "ByteOrder",
    "CellStatus",
    "DecodedCell",
    "EventBus",
    "Mode",
    "ViewSpec",
    "WIDTHS",
]
