#!/usr/bin/env python3
# halfblock_view/pipeline/decoder.py
"""
Pillow-backed decode capability.

decode_image() turns raw bytes into a DecodedImage or raises DecodeError.
Pillow opens lazily, so the pixel data is forced with load() inside the guard
to surface truncated files here rather than later in the pipeline.
EXIF orientation is applied, and 16-bit integer modes are scaled down to 8-bit
gray; a plain convert() would clip them to white.
"""

from __future__ import annotations

import io
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

__all__ = [
    "PipelineError",
    "DecodeError",
    "DecodedImage",
    "decode_image",
    "RESAMPLE_FILTERS",
]

RESAMPLE_FILTERS = {
    "lanczos": Image.LANCZOS,
    "bicubic": Image.BICUBIC,
    "bilinear": Image.BILINEAR,
    "nearest": Image.NEAREST,
}

_WIDE_INT_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N")


class PipelineError(Exception):
    """Base for errors that end a render run with a Failed state."""


class DecodeError(PipelineError):
    """Image bytes are malformed or in an unsupported format."""


class DecodedImage:
    """
    Immutable RGBA pixel buffer.

    np.asarray(image) yields an (H, W, 4) uint8 array.
    """

    def __init__(self, img: Image.Image):
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        self._img = img

    @property
    def width(self) -> int:
        return self._img.width

    @property
    def height(self) -> int:
        return self._img.height

    @property
    def size(self) -> Tuple[int, int]:
        return self._img.size

    def pixel_at(self, x: int, y: int) -> Tuple[int, int, int, int]:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height}")
        return self._img.getpixel((x, y))

    def resized(self, w: int, h: int, resample: str = "lanczos") -> "DecodedImage":
        w = max(1, int(w))
        h = max(1, int(h))
        if self.width == w and self.height == h:
            return self
        if self.width == 0 or self.height == 0:
            # nothing to sample from
            return DecodedImage(Image.new("RGBA", (w, h), (0, 0, 0, 0)))
        return DecodedImage(self._img.resize((w, h), RESAMPLE_FILTERS.get(resample, Image.LANCZOS)))

    def __array__(self, dtype: Optional[np.dtype] = None, copy: Optional[bool] = None) -> np.ndarray:
        arr = np.asarray(self._img, dtype=np.uint8)
        if dtype is not None:
            arr = arr.astype(dtype)
        return arr

    def __repr__(self) -> str:
        return f"DecodedImage({self.width}x{self.height})"


def decode_image(data: bytes) -> DecodedImage:
    """Decode bytes with Pillow. Animated formats yield their first frame."""
    if not data:
        raise DecodeError("empty image data")
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        img = ImageOps.exif_transpose(img)
    except UnidentifiedImageError:
        raise DecodeError("unrecognized image format") from None
    except Image.DecompressionBombError as exc:
        raise DecodeError(str(exc)) from exc
    except (OSError, ValueError, SyntaxError) as exc:
        # Pillow reports truncated and corrupt streams as OSError/SyntaxError
        raise DecodeError(str(exc) or type(exc).__name__) from exc
    if img.mode in _WIDE_INT_MODES:
        img = _to_8bit_gray(img)
    return DecodedImage(img)


def _to_8bit_gray(img: Image.Image) -> Image.Image:
    # 0..65535 -> 0..255
    arr = np.clip(np.asarray(img, dtype=np.int64), 0, 65535) // 257
    return Image.fromarray(arr.astype(np.uint8))
