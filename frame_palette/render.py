# frame_palette/render.py
from __future__ import annotations

"""
Palettized image -> RGBA, for checking quantizer output by eye.
"""

from typing import Optional

import numpy as np

from .constants import CHANNELS_RGB, CHANNELS_RGBA
from .core_types import (
    BufferLike,
    InvalidArgument,
    U8Image,
    as_palette_rgb,
    as_packed_image,
)
from .nibble import unpack_nibbles


def _render_pixels(
    image4bit: BufferLike, palette: BufferLike, num_pixels: Optional[int]
) -> np.ndarray:
    pal = as_palette_rgb(palette)
    indices = unpack_nibbles(image4bit, num_pixels)
    out = np.empty((indices.size, CHANNELS_RGBA), dtype=np.uint8)
    out[:, :CHANNELS_RGB] = pal[indices]
    out[:, 3] = 255
    return out


def apply_palette(
    image4bit: BufferLike, palette: BufferLike, num_pixels: Optional[int] = None
) -> bytes:
    """
    Expand a packed 4-bit image into RGBA bytes.

    Each pixel takes its palette entry's RGB; alpha is always 255.
    num_pixels defaults to 2 * len(image4bit) and must match it when given.
    """
    return _render_pixels(image4bit, palette, num_pixels).tobytes()


def render_rgba_image(
    image4bit: BufferLike, palette: BufferLike, width: int, height: int
) -> U8Image:
    """Same as apply_palette, shaped (H, W, 4) for the image encoder."""
    if width <= 0 or height <= 0:
        raise InvalidArgument(f"invalid image size {width}x{height}")
    flat = as_packed_image(image4bit)
    if width * height != 2 * flat.size:
        raise InvalidArgument(
            f"{width}x{height} does not match packed length {flat.size}"
        )
    return _render_pixels(flat, palette, width * height).reshape(
        height, width, CHANNELS_RGBA
    )


__all__ = ["apply_palette", "render_rgba_image"]
