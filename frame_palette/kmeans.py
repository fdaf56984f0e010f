# frame_palette/kmeans.py
from __future__ import annotations

"""
16-colour quantizer.

Randomly seeds every pixel into one of 16 clusters, runs k-means in RGB
(squared Euclidean distance, integer means) for up to MAX_ITERATIONS rounds,
packs the final labels as 4-bit indices, then forces the darkest palette
entry to black and relabels it as index 0.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .colour_convert import luminance_bt601
from .constants import (
    ASSIGN_BATCH_PIXELS,
    BLACK_INDEX,
    CHANNELS_RGB,
    MAX_ITERATIONS,
    NUM_COLORS,
)
from .core_types import (
    BufferLike,
    InvalidArgument,
    Labels,
    Packed4bit,
    PaletteRGB,
    QuantizeResult,
    as_packed_image,
    as_rgba_pixels,
)
from .nibble import pack_nibbles, relabel_packed, swap_lut
from .utils import debug_log, key_value_pairs_to_string


@dataclass(frozen=True)
class KMeansState:
    """Outcome of run_kmeans."""

    centroids: np.ndarray  # int64 [16,3]
    labels: Labels  # uint8 [N]
    iterations: int
    converged: bool


def random_labels(num_pixels: int, rng: np.random.Generator) -> Labels:
    """Uniform initial cluster label in [0, 15] for every pixel."""
    return rng.integers(0, NUM_COLORS, size=num_pixels, dtype=np.uint8)


def cluster_centroids(
    rgb: np.ndarray, labels: Labels, previous: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Integer mean RGB of each cluster.

    Clusters without members keep their row from `previous`.

    Returns:
      centroids: int64 [16,3]
      counts: int64 [16]
    """
    counts = np.bincount(labels, minlength=NUM_COLORS).astype(np.int64)
    sums = np.stack(
        [
            np.bincount(labels, weights=rgb[:, c], minlength=NUM_COLORS)
            for c in range(CHANNELS_RGB)
        ],
        axis=1,
    )
    sums = np.rint(sums).astype(np.int64)

    centroids = np.array(previous, dtype=np.int64, copy=True)
    filled = counts > 0
    centroids[filled] = sums[filled] // counts[filled, None]
    return centroids, counts


def nearest_centroid_labels(
    rgb: np.ndarray, centroids: np.ndarray, batch_pixels: int = ASSIGN_BATCH_PIXELS
) -> Labels:
    """
    Index of the nearest centroid (squared RGB distance) for each pixel.
    Ties go to the lowest cluster index.
    """
    rgb = np.asarray(rgb, dtype=np.int64)
    centroids = np.asarray(centroids, dtype=np.int64)
    num_pixels = rgb.shape[0]
    out = np.empty(num_pixels, dtype=np.uint8)
    step = max(1, int(batch_pixels))
    for start in range(0, num_pixels, step):
        end = min(start + step, num_pixels)
        diff = rgb[start:end, None, :] - centroids[None, :, :]
        dist2 = np.sum(diff * diff, axis=2)
        out[start:end] = np.argmin(dist2, axis=1)
    return out


def run_kmeans(
    rgb: np.ndarray,
    labels: Labels,
    *,
    max_iterations: int = MAX_ITERATIONS,
    batch_pixels: int = ASSIGN_BATCH_PIXELS,
    debug: bool = False,
) -> KMeansState:
    """
    Lloyd iterations from the given initial labels.

    Each round recomputes centroids, then reassigns every pixel. Stops after a
    round with no reassignment or after `max_iterations` rounds. The returned
    centroids are the ones the final assignment was measured against.
    """
    rgb = np.asarray(rgb, dtype=np.int64)
    labels = np.asarray(labels, dtype=np.uint8)
    centroids = np.zeros((NUM_COLORS, CHANNELS_RGB), dtype=np.int64)
    iterations = 0
    while True:
        centroids, counts = cluster_centroids(rgb, labels, centroids)
        new_labels = nearest_centroid_labels(rgb, centroids, batch_pixels)
        changed = int(np.count_nonzero(new_labels != labels))
        labels = new_labels
        iterations += 1
        if debug:
            debug_log(
                key_value_pairs_to_string(
                    [
                        ("k-means round", iterations),
                        ("Changed", changed),
                        ("Empty clusters", int(np.count_nonzero(counts == 0))),
                    ]
                )
            )
        if changed == 0 or iterations >= max_iterations:
            break
    return KMeansState(
        centroids=centroids,
        labels=labels,
        iterations=iterations,
        converged=changed == 0,
    )


def darkest_palette_index(palette: PaletteRGB) -> int:
    """Lowest BT.601 luminance entry; first one wins on ties."""
    return int(np.argmin(luminance_bt601(palette)))


def force_darkest_to_index0(
    palette: PaletteRGB, image4bit: BufferLike
) -> Tuple[PaletteRGB, Packed4bit, int]:
    """
    Blacken the darkest palette entry and move it to slot 0.

    Every packed pixel is relabelled so indices 0 and the darkest index are
    exchanged. Inputs are left untouched.

    Returns:
      palette: uint8 [16,3] with palette[0] == (0,0,0)
      image4bit: uint8 [N/2]
      darkest: the index that held the darkest colour before the swap
    """
    pal = np.array(palette, dtype=np.uint8, copy=True).reshape(NUM_COLORS, CHANNELS_RGB)
    packed = as_packed_image(image4bit)

    darkest = darkest_palette_index(pal)
    pal[darkest] = 0
    if darkest == BLACK_INDEX:
        return pal, packed.copy(), darkest

    pal[[BLACK_INDEX, darkest]] = pal[[darkest, BLACK_INDEX]]
    return pal, relabel_packed(packed, swap_lut(BLACK_INDEX, darkest)), darkest


def quantize(
    rgba_in: BufferLike,
    *,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    max_iterations: int = MAX_ITERATIONS,
    debug: bool = False,
) -> QuantizeResult:
    """
    Reduce an RGBA image to a packed 4-bit image and a 16-colour palette.

    Args:
      rgba_in        : RGBA bytes or uint8 array, N*4 values, N even and > 0.
                       Alpha is ignored. Never modified.
      rng            : numpy Generator used for the initial cluster labels.
      seed           : seed for a fresh Generator when rng is None.
                       None draws from system entropy.
      max_iterations : k-means round cap.
      debug          : log per-round progress.

    Returns:
      QuantizeResult(image4bit=N/2 bytes, palette=48 bytes, ...).
      Unpacks as (image4bit, palette).

    Raises:
      InvalidArgument on any contract violation, before work starts.
    """
    if rng is not None and seed is not None:
        raise InvalidArgument("pass either rng or seed, not both")
    if int(max_iterations) < 1:
        raise InvalidArgument(f"max_iterations must be >= 1, got {max_iterations}")

    pixels = as_rgba_pixels(rgba_in)
    rgb = pixels[:, :CHANNELS_RGB].astype(np.int64)  # working copy, alpha dropped

    if rng is None:
        rng = np.random.default_rng(seed)

    state = run_kmeans(
        rgb,
        random_labels(rgb.shape[0], rng),
        max_iterations=int(max_iterations),
        debug=debug,
    )

    # Integer means of uint8 channels stay in 0..255.
    palette = state.centroids.astype(np.uint8)
    packed = pack_nibbles(state.labels)
    palette, packed, darkest = force_darkest_to_index0(palette, packed)

    if debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Pixels", int(rgb.shape[0])),
                    ("Iterations", state.iterations),
                    ("Converged", state.converged),
                    ("Darkest index", darkest),
                ]
            )
        )

    return QuantizeResult(
        image4bit=packed.tobytes(),
        palette=palette.tobytes(),
        iterations=state.iterations,
        converged=state.converged,
    )


__all__ = [
    "KMeansState",
    "random_labels",
    "cluster_centroids",
    "nearest_centroid_labels",
    "run_kmeans",
    "darkest_palette_index",
    "force_darkest_to_index0",
    "quantize",
]
