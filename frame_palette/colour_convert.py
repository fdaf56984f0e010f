# frame_palette/colour_convert.py
from __future__ import annotations

import numpy as np

from .constants import BT601_WEIGHTS

"""
Perceived luminance (ITU-R BT.601). Vectorized NumPy implementation.

Exports:
- luminance_bt601(rgb)
"""


def luminance_bt601(rgb: np.ndarray) -> np.ndarray:
    """
    Perceived luminance of uint8 RGB rows, channels normalised to [0, 1].
    Accepts any shape (..., 3). Returns float64 of shape (...).
    """
    arr = np.asarray(rgb, dtype=np.float64) / 255.0
    wr, wg, wb = BT601_WEIGHTS
    return wr * arr[..., 0] + wg * arr[..., 1] + wb * arr[..., 2]


__all__ = ["luminance_bt601"]
