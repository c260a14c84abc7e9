#!/usr/bin/env python3
# halfblock_view/pipeline/rasterizer.py
"""
Half-block rasterizer.

Pairs pixel rows 2y and 2y+1 into terminal row y: the top pixel becomes the
cell foreground (drawn by the upper half block), the bottom pixel the cell
background. On an odd-height image the last row has no bottom pixel and
repeats the top color, giving a solid cell.

Input is anything np.asarray() understands as (H, W), (H, W, 3) or (H, W, 4)
uint8. The image is expected to already be at its fitted size.
"""

from __future__ import annotations

from typing import Any, List, Optional

import numpy as np

from halfblock_view.pipeline.model import RGB, Cell, Row

__all__ = ["rasterize", "flatten_alpha"]


def flatten_alpha(arr: np.ndarray, background: Optional[RGB]) -> np.ndarray:
    """
    Reduce a pixel array to (H, W, 3) RGB.

    With a background, RGBA pixels are composited over it; without one the
    alpha channel is dropped as-is.
    """
    if arr.ndim == 2:
        arr = arr[..., np.newaxis]
    if arr.shape[2] == 1:
        return np.repeat(arr, 3, axis=2).astype(np.uint8)
    if arr.shape[2] == 3 or background is None:
        return arr[..., :3].astype(np.uint8)

    rgb = arr[..., :3].astype(np.float32)
    alpha = arr[..., 3:4].astype(np.float32) / 255.0
    bg = np.asarray(background, dtype=np.float32).reshape(1, 1, 3)
    out = rgb * alpha + bg * (1.0 - alpha)
    return np.clip(np.floor(out + 0.5), 0, 255).astype(np.uint8)


def rasterize(image: Any, background: Optional[RGB] = None) -> List[Row]:
    """Map a W x H pixel buffer to ceil(H / 2) rows of W cells."""
    rgb = flatten_alpha(np.asarray(image), background)
    h, w = rgb.shape[:2]
    if h == 0 or w == 0:
        return []

    top = rgb[0::2]
    bottom = rgb[1::2]
    if h % 2:
        bottom = np.concatenate([bottom, top[-1:]], axis=0)

    top_l = top.tolist()
    bottom_l = bottom.tolist()
    rows: List[Row] = []
    for y in range(len(top_l)):
        t_row = top_l[y]
        b_row = bottom_l[y]
        rows.append(Row(y, tuple(Cell(x, tuple(t_row[x]), tuple(b_row[x])) for x in range(w))))
    return rows
