# frame_palette/nibble.py
from __future__ import annotations

"""
4-bit index packing.

Two palette indices per byte: pixel i lives in byte i // 2, the high nibble
when i is even and the low nibble when i is odd.

Exports:
  pack_nibbles(indices) -> uint8 [N/2]
  unpack_nibbles(packed, num_pixels=None) -> uint8 [N]
  get_nibble(packed, i) / set_nibble(packed, i, value)
  relabel_lut(mapping) / swap_lut(a, b) -> uint8 [256]
  relabel_packed(packed, lut) -> uint8 [N/2]
"""

from typing import Optional, Sequence, Union

import numpy as np

from .constants import BITS_PER_INDEX, NIBBLE_MASK, NUM_COLORS
from .core_types import BufferLike, InvalidArgument, Labels, Packed4bit, as_packed_image


def _shift_for(pixel_index: int) -> int:
    # even pixel -> high nibble, odd pixel -> low nibble
    return BITS_PER_INDEX if pixel_index % 2 == 0 else 0


def _check_index_range(values: np.ndarray) -> None:
    if values.size and (int(values.min()) < 0 or int(values.max()) >= NUM_COLORS):
        raise InvalidArgument(
            f"palette index out of range [0, {NUM_COLORS - 1}]: "
            f"min={int(values.min())} max={int(values.max())}"
        )


def pack_nibbles(indices: Union[Sequence[int], np.ndarray]) -> Packed4bit:
    """Pack an even-length sequence of 0..15 indices into N/2 bytes."""
    arr = np.asarray(indices).reshape(-1)
    if arr.size and not np.issubdtype(arr.dtype, np.integer):
        raise InvalidArgument(f"indices: expected integers, got {arr.dtype}")
    if arr.size % 2:
        raise InvalidArgument(f"pixel count must be even, got {arr.size}")
    _check_index_range(arr)
    idx = arr.astype(np.uint8, copy=False)
    return ((idx[0::2] << BITS_PER_INDEX) | idx[1::2]).astype(np.uint8, copy=False)


def unpack_nibbles(packed: BufferLike, num_pixels: Optional[int] = None) -> Labels:
    """Expand a packed buffer into one uint8 index per pixel."""
    flat = as_packed_image(packed)
    expected = 2 * flat.size
    if num_pixels is not None and int(num_pixels) != expected:
        raise InvalidArgument(
            f"num_pixels={num_pixels} does not match packed length {flat.size}"
        )
    out = np.empty(expected, dtype=np.uint8)
    out[0::2] = flat >> BITS_PER_INDEX
    out[1::2] = flat & NIBBLE_MASK
    return out


def get_nibble(packed: BufferLike, pixel_index: int) -> int:
    """Read the 4-bit index of a single pixel."""
    flat = as_packed_image(packed)
    if not 0 <= pixel_index < 2 * flat.size:
        raise InvalidArgument(f"pixel index {pixel_index} out of range")
    return (int(flat[pixel_index // 2]) >> _shift_for(pixel_index)) & NIBBLE_MASK


def set_nibble(
    packed: Union[bytearray, np.ndarray], pixel_index: int, value: int
) -> None:
    """Write one pixel's index in place, leaving the other nibble of the byte alone."""
    if not 0 <= value < NUM_COLORS:
        raise InvalidArgument(
            f"palette index out of range [0, {NUM_COLORS - 1}]: {value}"
        )
    if not 0 <= pixel_index < 2 * len(packed):
        raise InvalidArgument(f"pixel index {pixel_index} out of range")
    shift = _shift_for(pixel_index)
    keep = 0xF0 >> shift  # low nibble when writing high, and vice versa
    byte_index = pixel_index // 2
    packed[byte_index] = (int(packed[byte_index]) & keep) | (value << shift)


def relabel_lut(mapping: Union[Sequence[int], np.ndarray]) -> np.ndarray:
    """
    Build a 256-entry table that applies a 16-entry index mapping to both
    nibbles of a packed byte at once.
    """
    table = np.asarray(mapping).reshape(-1)
    if table.size != NUM_COLORS:
        raise InvalidArgument(
            f"mapping: expected {NUM_COLORS} entries, got {table.size}"
        )
    _check_index_range(table)
    table = table.astype(np.uint8, copy=False)
    byte = np.arange(256, dtype=np.uint8)
    hi = table[byte >> BITS_PER_INDEX]
    lo = table[byte & NIBBLE_MASK]
    return ((hi << BITS_PER_INDEX) | lo).astype(np.uint8, copy=False)


def swap_lut(a: int, b: int) -> np.ndarray:
    """Table exchanging indices a and b wherever they appear; others unchanged."""
    mapping = np.arange(NUM_COLORS, dtype=np.uint8)
    mapping[a], mapping[b] = b, a
    return relabel_lut(mapping)


def relabel_packed(packed: BufferLike, lut: np.ndarray) -> Packed4bit:
    """Apply a relabel table to every byte. Returns a new array."""
    flat = as_packed_image(packed)
    if lut.shape != (256,):
        raise InvalidArgument(f"lut: expected 256 entries, got shape {lut.shape}")
    return lut.astype(np.uint8, copy=False)[flat]


__all__ = [
    "pack_nibbles",
    "unpack_nibbles",
    "get_nibble",
    "set_nibble",
    "relabel_lut",
    "swap_lut",
    "relabel_packed",
]
