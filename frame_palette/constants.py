# frame_palette/constants.py
"""
Tunables used across the project.

- Palette shape (NUM_COLORS, PALETTE_BYTES)
- k-means limits (MAX_ITERATIONS, ASSIGN_BATCH_PIXELS)
- BT.601 luminance weights
- CLI output naming
"""
from __future__ import annotations

from typing import Tuple

# =========================
# Palette / framebuffer
# =========================
NUM_COLORS: int = 16  # 4-bit framebuffer
BITS_PER_INDEX: int = 4
NIBBLE_MASK: int = 0x0F
CHANNELS_RGB: int = 3
CHANNELS_RGBA: int = 4
PALETTE_BYTES: int = NUM_COLORS * CHANNELS_RGB

# Slot 0 is drawn as transparent/black by the display.
BLACK_INDEX: int = 0

# =========================
# k-means
# =========================
MAX_ITERATIONS: int = 24

# Pixels per nearest-centroid batch. Caps the (batch, 16, 3) int64 scratch.
ASSIGN_BATCH_PIXELS: int = 1 << 16

# =========================
# Luminance (ITU-R BT.601)
# =========================
BT601_WEIGHTS: Tuple[float, float, float] = (0.299, 0.587, 0.114)

# =========================
# CLI
# =========================
OUTPUT_SUFFIX: str = "_4bit"
RAW_IMAGE_SUFFIX: str = ".4bpp"
RAW_PALETTE_SUFFIX: str = ".pal"
IMAGE_EXTS: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".webp", ".bmp")

__all__ = [
    "NUM_COLORS",
    "BITS_PER_INDEX",
    "NIBBLE_MASK",
    "CHANNELS_RGB",
    "CHANNELS_RGBA",
    "PALETTE_BYTES",
    "BLACK_INDEX",
    "MAX_ITERATIONS",
    "ASSIGN_BATCH_PIXELS",
    "BT601_WEIGHTS",
    "OUTPUT_SUFFIX",
    "RAW_IMAGE_SUFFIX",
    "RAW_PALETTE_SUFFIX",
    "IMAGE_EXTS",
]
