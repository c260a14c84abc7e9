#!/usr/bin/env python3
# halfblock_view/pipeline/model.py
"""
Value types shared by the raster pipeline and its consumers.

All types are frozen: a published RenderState can be handed to any number of
readers without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Tuple, Union

RGB = Tuple[int, int, int]

__all__ = [
    "RGB",
    "ViewportBounds",
    "FittedDimensions",
    "Cell",
    "Row",
    "Idle",
    "Loading",
    "Ready",
    "Failed",
    "RenderState",
    "rgb_hex",
]


def rgb_hex(c: RGB) -> str:
    return f"#{c[0]:02x}{c[1]:02x}{c[2]:02x}"


@dataclass(frozen=True)
class ViewportBounds:
    """Terminal cell budget available to the image."""
    max_width_cells: int
    max_height_cells: int

    @classmethod
    def clamped(cls, width: int, height: int) -> "ViewportBounds":
        return cls(max(1, int(width)), max(1, int(height)))

    @classmethod
    def for_terminal(cls, width: int, height: int, viewport: Mapping[str, Any]) -> "ViewportBounds":
        """
        Budget for a terminal area of width x height cells, given the
        config["viewport"] section: reserved rows/cols are subtracted and
        non-zero max_width_cells / max_height_cells cap the result.
        """
        w = int(width) - int(viewport.get("reserved_cols", 0))
        h = int(height) - int(viewport.get("reserved_rows", 2))
        if viewport.get("max_width_cells"):
            w = min(w, int(viewport["max_width_cells"]))
        if viewport.get("max_height_cells"):
            h = min(h, int(viewport["max_height_cells"]))
        return cls.clamped(w, h)


@dataclass(frozen=True)
class FittedDimensions:
    target_width_px: int
    target_height_px: int
    was_scaled: bool

    @property
    def term_rows(self) -> int:
        # two pixel rows per terminal row
        return (self.target_height_px + 1) // 2


@dataclass(frozen=True)
class Cell:
    x: int
    fg: RGB
    bg: RGB

    @property
    def fg_hex(self) -> str:
        return rgb_hex(self.fg)

    @property
    def bg_hex(self) -> str:
        return rgb_hex(self.bg)


@dataclass(frozen=True)
class Row:
    y: int
    cells: Tuple[Cell, ...] = ()

    def __len__(self) -> int:
        return len(self.cells)


# -------------------------
# Render states
# -------------------------

@dataclass(frozen=True)
class Idle:
    """Nothing requested yet."""
    name = "idle"


@dataclass(frozen=True)
class Loading:
    source_id: str
    name = "loading"


@dataclass(frozen=True)
class Ready:
    source_id: str
    info_text: str
    rows: Tuple[Row, ...] = field(default_factory=tuple)
    name = "ready"


@dataclass(frozen=True)
class Failed:
    source_id: str
    message: str
    name = "failed"


RenderState = Union[Idle, Loading, Ready, Failed]
