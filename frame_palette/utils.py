from __future__ import annotations

"""
Shared utilities for frame_palette.

Includes time formatting, palette usage reporting, and tidy logging.
Log helpers write to sys.stdout unless the calling thread is inside
captured_output().
"""

import io
import sys
import threading
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, TextIO, Tuple

import numpy as np

from .core_types import PaletteRGB, rgb_to_hex, coerce_to_rgb_tuple


#  Time formatting


def format_seconds_compact(seconds: float) -> str:
    """Human-friendly seconds: '<ms>ms', '<s>s', or 'Mm Ss'."""
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - 60 * minutes:.1f}s"


def format_total_duration_compact(seconds: float) -> str:
    """Compact total duration: 'Mm Ss', 'Ss.s', or 'ms'."""
    if seconds >= 60.0:
        minutes = int(seconds // 60)
        rem = int(round(seconds - 60 * minutes))
        return f"{minutes}m {rem}s"
    if seconds >= 1.0:
        return f"{seconds:.1f}s"
    return f"{seconds * 1000.0:.1f}ms"


# Palette helpers


def palette_usage_report(
    indices: np.ndarray, palette: PaletteRGB
) -> List[Tuple[int, str, int]]:
    """
    Pixel count per palette slot.

    Returns a list of (index, hex, count) for used slots, sorted by count
    descending, then by index.
    """
    counts = np.bincount(np.asarray(indices).reshape(-1), minlength=palette.shape[0])
    report: List[Tuple[int, str, int]] = []
    for idx in sorted(range(palette.shape[0]), key=lambda i: (-int(counts[i]), i)):
        if counts[idx] == 0:
            continue
        hex_code = rgb_to_hex(coerce_to_rgb_tuple(palette[idx]))
        report.append((idx, hex_code, int(counts[idx])))
    return report


#  CLI / stdout


def enable_line_buffered_stdout() -> None:
    """
    Enable line-buffered stdout when supported.
    Helps live progress printing in terminals that expose .reconfigure().
    """
    reconfig = getattr(sys.stdout, "reconfigure", None)
    if callable(reconfig):
        try:
            reconfig(line_buffering=True, write_through=True)
        except (OSError, ValueError):
            pass


# Pretty logging

_sink = threading.local()


def _log_stream() -> TextIO:
    stream = getattr(_sink, "stream", None)
    return stream if stream is not None else sys.stdout


@contextmanager
def captured_output() -> Iterator[io.StringIO]:
    """
    Collect this thread's log output in a StringIO instead of stdout.
    Other threads and sys.stdout itself are unaffected.
    """
    buf = io.StringIO()
    previous = getattr(_sink, "stream", None)
    _sink.stream = buf
    try:
        yield buf
    finally:
        _sink.stream = previous


def format_bool_on_off(value: Any) -> str:
    """Pretty boolean: 'on'/'off' for bools; str(value) otherwise."""
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def format_number_compact(value: Any) -> str:
    """Pretty number: 1_234 style for ints; compact for floats; passthrough otherwise."""
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        text = f"{value:.3f}".rstrip("0").rstrip(".")
        return text
    return str(value)


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """
    Format (name, value) pairs as 'Name: value' blocks separated by sep.
    Uses format_bool_on_off / format_number_compact for readability.
    """
    out: List[str] = []
    for name, value in pairs:
        display = (
            format_bool_on_off(value)
            if isinstance(value, bool)
            else format_number_compact(value)
        )
        out.append(f"{name}{eq}{display}")
    return sep.join(out)


def print_config_line(
    section: str, pairs: Iterable[Tuple[str, Any]], debug: bool
) -> None:
    """
    Emit a single human-readable config line, e.g.:
      [run] CPU cores: 8  Jobs: 2  Seed: -  Max iterations: 24
    Routes to debug_log() when debug=True, else to log().
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    (debug_log if debug else log)(line)


def print_banner(title: str) -> None:
    """Section banner."""
    print(f"\n=== {title} ===", file=_log_stream(), flush=True)


def log(message: str) -> None:
    """Plain log line."""
    print(message, file=_log_stream(), flush=True)


def debug_log(message: str) -> None:
    """Debug log line."""
    print(f"[debug] {message}", file=_log_stream(), flush=True)


def error(message: str) -> None:
    """Error log line to stderr."""
    print(f"[error] {message}", file=sys.stderr, flush=True)


__all__ = [
    "format_seconds_compact",
    "format_total_duration_compact",
    "palette_usage_report",
    "enable_line_buffered_stdout",
    "captured_output",
    "format_bool_on_off",
    "format_number_compact",
    "key_value_pairs_to_string",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "error",
]
