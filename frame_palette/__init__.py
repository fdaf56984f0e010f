"""
frame_palette package.

Purpose:
  Reduce RGBA images to 16 colours for a 4-bit framebuffer. See
  frame_posterize.py for CLI.

Public API:
  quantize       : k-means posterize -> QuantizeResult(image4bit, palette).
  apply_palette  : packed 4-bit image + palette -> RGBA bytes.
  InvalidArgument: raised on buffer/parameter contract violations.
  nibble         : 4-bit packing helpers.
  kmeans         : k-means steps behind quantize.
  image_io       : Pillow decode/encode and raw buffer export.
  utils          : shared helpers (formatting, logging).

Quick start:
  from frame_palette import quantize, apply_palette
  image4bit, palette = quantize(rgba_bytes, seed=1)
  rgba = apply_palette(image4bit, palette)
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import constants
from . import core_types
from . import colour_convert
from . import nibble
from . import kmeans
from . import image_io
from . import utils

from .core_types import InvalidArgument, QuantizeResult  # noqa: E402,F401
from .kmeans import quantize  # noqa: E402,F401
from .render import apply_palette, render_rgba_image  # noqa: E402,F401

__all__ = [
    "__version__",
    "constants",
    "core_types",
    "colour_convert",
    "nibble",
    "kmeans",
    "image_io",
    "utils",
    "InvalidArgument",
    "QuantizeResult",
    "quantize",
    "apply_palette",
    "render_rgba_image",
]
