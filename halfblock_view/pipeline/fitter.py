#!/usr/bin/env python3
# halfblock_view/pipeline/fitter.py
"""
Scale-to-fit for half-block output.

One terminal row shows two pixel rows, so the vertical pixel budget is twice
the cell height. Both axes share one scale factor and images are never
upscaled. Rounding may move the aspect ratio by up to one pixel per axis.
"""

from __future__ import annotations

import math

from halfblock_view.pipeline.model import FittedDimensions, ViewportBounds

__all__ = ["fit", "round_half_up", "info_text"]


def round_half_up(v: float) -> int:
    # round() is banker's rounding; 52.5 must become 53
    return int(math.floor(v + 0.5))


def fit(source_w: int, source_h: int, bounds: ViewportBounds) -> FittedDimensions:
    """Return target pixel dimensions for an image of source_w x source_h."""
    source_w = max(1, int(source_w))
    source_h = max(1, int(source_h))
    max_w = max(1, int(bounds.max_width_cells))
    max_h_px = max(1, int(bounds.max_height_cells)) * 2

    scale = min(1.0, max_w / source_w, max_h_px / source_h)
    if scale < 1.0:
        return FittedDimensions(
            max(1, round_half_up(source_w * scale)),
            max(1, round_half_up(source_h * scale)),
            True,
        )
    return FittedDimensions(source_w, source_h, False)


def info_text(source_w: int, source_h: int, dims: FittedDimensions) -> str:
    """Summary line shown above the image."""
    cells = f"{dims.target_width_px}x{dims.term_rows} cells"
    if dims.was_scaled:
        return f"{source_w}x{source_h}px → {cells}"
    return cells
