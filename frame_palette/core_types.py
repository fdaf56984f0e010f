# frame_palette/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, and buffer validation helpers.
"""

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .constants import CHANNELS_RGB, CHANNELS_RGBA, NUM_COLORS, PALETTE_BYTES

# Basic aliases

RGBTuple = Tuple[int, int, int]
HexStr = str

U8Image = NDArray[np.uint8]  # (H, W, 4)
RGBAPixels = NDArray[np.uint8]  # (N, 4)
Packed4bit = NDArray[np.uint8]  # (N/2,) two indices per byte
PaletteRGB = NDArray[np.uint8]  # (16, 3)
Labels = NDArray[np.uint8]  # (N,) cluster index per pixel

BufferLike = Union[bytes, bytearray, memoryview, NDArray[np.uint8]]


class InvalidArgument(ValueError):
    """Caller passed a buffer or parameter that breaks the contract."""


# Value objects


@dataclass(frozen=True)
class QuantizeResult:
    """Packed 4-bit image plus its 16-colour palette (slot 0 is black)."""

    image4bit: bytes  # N/2 bytes
    palette: bytes  # 48 bytes, R,G,B per entry
    iterations: int
    converged: bool

    def __iter__(self) -> Iterator[bytes]:
        # image4bit, palette = quantize(...)
        yield self.image4bit
        yield self.palette

    @property
    def num_pixels(self) -> int:
        return 2 * len(self.image4bit)

    @property
    def palette_rgb(self) -> PaletteRGB:
        return np.frombuffer(self.palette, dtype=np.uint8).reshape(
            NUM_COLORS, CHANNELS_RGB
        )

    def indices(self) -> Labels:
        """Unpacked palette index per pixel."""
        from .nibble import unpack_nibbles

        return unpack_nibbles(self.image4bit)


# Small helpers


def rgb_to_hex(rgb: RGBTuple) -> HexStr:
    """RGB tuple to lowercase hex string '#rrggbb'."""
    return f"#{rgb[0]:02x}{rgb[1]:02x}{rgb[2]:02x}"


def coerce_to_rgb_tuple(value: Union[Sequence[int], NDArray[np.generic]]) -> RGBTuple:
    """
    Coerce a 3-length sequence or array row to an (int, int, int) RGB tuple.
    Helpful when extracting values from NumPy rows.
    """
    if len(value) < 3:  # type: ignore[arg-type]
        raise ValueError("sequence too small for RGB")
    return (int(value[0]), int(value[1]), int(value[2]))


def _as_flat_u8(buf: BufferLike, what: str) -> NDArray[np.uint8]:
    if isinstance(buf, np.ndarray):
        if buf.dtype != np.uint8:
            raise InvalidArgument(f"{what}: expected uint8 array, got {buf.dtype}")
        return buf.reshape(-1)
    try:
        return np.frombuffer(buf, dtype=np.uint8)
    except TypeError as e:
        raise InvalidArgument(f"{what}: expected a bytes-like buffer") from e


def as_rgba_pixels(rgba: BufferLike) -> RGBAPixels:
    """
    Validate an RGBA buffer and return it as an (N, 4) uint8 view.

    Accepts flat bytes or arrays shaped (N*4,), (N, 4) or (H, W, 4).
    N must be positive and even.
    """
    if isinstance(rgba, np.ndarray) and rgba.ndim > 1:
        if rgba.shape[-1] != CHANNELS_RGBA:
            raise InvalidArgument(f"rgba: expected 4 channels, got shape {rgba.shape}")
    flat = _as_flat_u8(rgba, "rgba")
    if flat.size == 0:
        raise InvalidArgument("empty image")
    if flat.size % CHANNELS_RGBA:
        raise InvalidArgument(
            f"rgba: length {flat.size} is not a multiple of {CHANNELS_RGBA}"
        )
    num_pixels = flat.size // CHANNELS_RGBA
    if num_pixels % 2:
        raise InvalidArgument(f"pixel count must be even, got {num_pixels}")
    return flat.reshape(num_pixels, CHANNELS_RGBA)


def as_packed_image(image4bit: BufferLike) -> Packed4bit:
    """Validate a packed 4-bit buffer and return it as a flat uint8 view."""
    flat = _as_flat_u8(image4bit, "image4bit")
    if flat.size == 0:
        raise InvalidArgument("empty image")
    return flat


def as_palette_rgb(palette: BufferLike) -> PaletteRGB:
    """Validate a 48-byte palette (or (16, 3) array) and return it as (16, 3)."""
    flat = _as_flat_u8(palette, "palette")
    if flat.size != PALETTE_BYTES:
        raise InvalidArgument(
            f"palette: expected {PALETTE_BYTES} bytes, got {flat.size}"
        )
    return flat.reshape(NUM_COLORS, CHANNELS_RGB)


__all__ = [
    # aliases / types
    "RGBTuple",
    "HexStr",
    "U8Image",
    "RGBAPixels",
    "Packed4bit",
    "PaletteRGB",
    "Labels",
    "BufferLike",
    # errors / value objects
    "InvalidArgument",
    "QuantizeResult",
    # helpers
    "rgb_to_hex",
    "coerce_to_rgb_tuple",
    "as_rgba_pixels",
    "as_packed_image",
    "as_palette_rgb",
]
