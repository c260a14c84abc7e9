#!/usr/bin/env python3
# halfblock_view/rendering/halfblock.py
"""
Turn rasterized rows into something a terminal can draw.

- row_fragments(): prompt_toolkit FormattedText runs, style "fg:#RRGGBB bg:#RRGGBB"
- row_ansi(): one string with 24-bit SGR escapes, for plain stdout output

Each cell is one upper half block: top half in fg, bottom half in bg.
Neighbouring cells with identical colors are merged into a single run.
"""

from __future__ import annotations

from typing import List, Tuple

from halfblock_view.pipeline.model import Cell, Row

StyleRun = Tuple[str, str]                # (style, text)
LineFrag = List[StyleRun]                 # one terminal row as runs

UPPER_HALF_BLOCK = "▀"
ANSI_RESET = "\x1b[0m"

__all__ = [
    "UPPER_HALF_BLOCK",
    "ANSI_RESET",
    "StyleRun",
    "LineFrag",
    "cell_style",
    "row_fragments",
    "row_ansi",
]


def cell_style(cell: Cell) -> str:
    return f"fg:{cell.fg_hex} bg:{cell.bg_hex}"


def row_fragments(row: Row) -> LineFrag:
    line: LineFrag = []
    run_style = None
    run_len = 0
    for cell in row.cells:
        style = cell_style(cell)
        if style != run_style and run_len:
            line.append((run_style, UPPER_HALF_BLOCK * run_len))
            run_len = 0
        run_style = style
        run_len += 1
    if run_len:
        line.append((run_style, UPPER_HALF_BLOCK * run_len))
    return line if line else [("", "")]


def _sgr(cell: Cell) -> str:
    (fr, fg, fb), (br, bg, bb) = cell.fg, cell.bg
    return f"\x1b[38;2;{fr};{fg};{fb}m\x1b[48;2;{br};{bg};{bb}m"


def row_ansi(row: Row) -> str:
    parts: List[str] = []
    last = None
    for cell in row.cells:
        sgr = _sgr(cell)
        if sgr != last:
            parts.append(sgr)
            last = sgr
        parts.append(UPPER_HALF_BLOCK)
    if parts:
        parts.append(ANSI_RESET)
    return "".join(parts)
