# frame_palette/image_io.py
from __future__ import annotations

import io
from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .constants import CHANNELS_RGBA, RAW_IMAGE_SUFFIX, RAW_PALETTE_SUFFIX
from .core_types import BufferLike, InvalidArgument, QuantizeResult, RGBAPixels

"""
Image I/O helpers: flat sRGB RGBA buffers in and out of Pillow, plus raw
framebuffer export (.4bpp packed indices, .pal 48-byte palette).
"""

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]

# Formats Pillow cannot write with an alpha channel.
_NO_ALPHA_SUFFIXES = {".jpg", ".jpeg", ".bmp"}


def _convert_to_srgb_rgba(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes and ImageCms is not None:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im,
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGBA",
            )
            if im2 is None:
                return im.convert("RGBA")
            return im2
        except (ImageCms.PyCMSError, OSError, ValueError):
            return im.convert("RGBA")

    return im.convert("RGBA")


def load_image_rgba(path: Path) -> Tuple[RGBAPixels, int, int]:
    """
    Decode any Pillow-readable image to a flat RGBA buffer.

    Returns:
      rgba: uint8 [W*H*4], row-major R,G,B,A
      width, height
    """
    with Image.open(path) as im0:
        im = _convert_to_srgb_rgba(im0)
    arr = np.array(im, dtype=np.uint8)
    height, width = arr.shape[0], arr.shape[1]
    return arr.reshape(-1), width, height


def save_image_rgba(path: Path, rgba: BufferLike, width: int, height: int) -> Path:
    """
    Encode an RGBA buffer (bytes, flat array or (H, W, 4) array).
    Formats without alpha (JPEG, BMP) get RGB. The format follows the path suffix.
    """
    if isinstance(rgba, np.ndarray):
        arr = rgba.astype(np.uint8, copy=False)
    else:
        arr = np.frombuffer(rgba, dtype=np.uint8)
    if arr.size != width * height * CHANNELS_RGBA:
        raise InvalidArgument(
            f"rgba: expected {width * height * CHANNELS_RGBA} bytes for "
            f"{width}x{height}, got {arr.size}"
        )
    im = Image.fromarray(arr.reshape(height, width, CHANNELS_RGBA))
    if path.suffix.lower() in _NO_ALPHA_SUFFIXES:
        im = im.convert("RGB")
    im.save(path)
    return path


def save_raw_buffers(stem_path: Path, result: QuantizeResult) -> Tuple[Path, Path]:
    """
    Write the packed image and palette exactly as the display consumes them:
    <stem>.4bpp and <stem>.pal, replacing any suffix on stem_path.
    """
    image_path = stem_path.with_suffix(RAW_IMAGE_SUFFIX)
    palette_path = stem_path.with_suffix(RAW_PALETTE_SUFFIX)
    image_path.write_bytes(result.image4bit)
    palette_path.write_bytes(result.palette)
    return image_path, palette_path


def is_image_file(path: Path) -> bool:
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except (UnidentifiedImageError, OSError):
        return False


__all__ = [
    "load_image_rgba",
    "save_image_rgba",
    "save_raw_buffers",
    "is_image_file",
]
