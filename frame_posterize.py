#!/usr/bin/env python3
"""
frame_posterize.py
Posterize images to 16 colours for a 4-bit framebuffer (palette slot 0 = black).

Usage:
  python frame_posterize.py INPUT --outdir DIR --seed N --max-iterations N --raw
    --format [png|jpg] --jobs N --debug

Input:
  Any Pillow-readable image, or a folder of them. Alpha is ignored. The pixel
  count (width * height) must be even.

Output:
  <stem>_4bit.png preview next to INPUT (or in --outdir). With --raw also
  <stem>_4bit.4bpp (packed indices, even pixel in the high nibble) and
  <stem>_4bit.pal (16 x R,G,B).

Notes:
  Quantizer and renderer come from frame_palette.kmeans / frame_palette.render.
  Shared IO/logging helpers come from frame_palette.image_io and frame_palette.utils.
  CPU bound. ThreadPoolExecutor is used for folder mode; each worker's log
  lines are captured per thread and printed in file order.
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import UnidentifiedImageError

from frame_palette.constants import IMAGE_EXTS, MAX_ITERATIONS, OUTPUT_SUFFIX
from frame_palette.core_types import InvalidArgument
from frame_palette.image_io import (
    is_image_file,
    load_image_rgba,
    save_image_rgba,
    save_raw_buffers,
)
from frame_palette.kmeans import quantize
from frame_palette.render import render_rgba_image
from frame_palette.utils import (
    # formatting
    format_seconds_compact,
    format_total_duration_compact,
    palette_usage_report,
    # pretty logging
    print_banner,
    log,
    debug_log,
    error,
    print_config_line,
    key_value_pairs_to_string,
    enable_line_buffered_stdout,
    captured_output,
)

# CLI args


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments for posterizing.

    Returns:
      argparse.Namespace with:
        src: Path to image or folder
        outdir: optional Path for outputs
        seed: optional int for reproducible cluster seeding
        max_iterations: k-means round cap
        raw: bool, also write .4bpp/.pal buffers
        format: preview format
        jobs: parallel file workers
        debug: bool for verbose details
    """
    parser = argparse.ArgumentParser(
        prog="frame_posterize",
        description="Posterize image(s) to a 16-colour 4-bit palette.",
    )
    parser.add_argument("src", type=Path, help="Input image or folder")
    parser.add_argument(
        "--outdir", type=Path, default=None, help="Output directory (optional)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the initial cluster labels. Omit for a random run.",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=MAX_ITERATIONS,
        help="k-means round cap.",
    )
    parser.add_argument(
        "--raw", action="store_true", help="Also write .4bpp and .pal buffers"
    )
    parser.add_argument(
        "--format",
        choices=["png", "jpg"],
        default="png",
        help="Preview image format.",
    )
    parser.add_argument(
        "--jobs", type=int, default=2, help="Files processed in parallel"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser.parse_args(argv)


def _output_path(src_path: Path, outdir: Optional[Path], fmt: str) -> Path:
    folder = outdir if outdir is not None else src_path.parent
    return folder / f"{src_path.stem}{OUTPUT_SUFFIX}.{fmt}"


# Per-file processing


def _process_single_image(src_path: Path, args: argparse.Namespace) -> bool:
    """
    Process a single image path end-to-end:
      load -> quantize -> render preview -> save -> report.

    Returns False when the file was rejected.
    """
    t_start = time.perf_counter()
    out_path = _output_path(src_path, args.outdir, args.format)

    print_banner(src_path.name)

    try:
        rgba_in, width, height = load_image_rgba(src_path)
    except (UnidentifiedImageError, OSError) as e:
        error(f"{src_path.name}: cannot read image ({e})")
        return False
    t_loaded = time.perf_counter()

    if args.debug:
        debug_log(
            key_value_pairs_to_string(
                [("Loaded", f"{width}x{height}"), ("Pixels", width * height)]
            )
        )

    try:
        result = quantize(
            rgba_in,
            seed=args.seed,
            max_iterations=args.max_iterations,
            debug=args.debug,
        )
    except InvalidArgument as e:
        error(f"{src_path.name}: {e}")
        return False
    t_quantized = time.perf_counter()

    rgba_out = render_rgba_image(result.image4bit, result.palette, width, height)
    if args.outdir is not None:
        args.outdir.mkdir(parents=True, exist_ok=True)
    save_image_rgba(out_path, rgba_out, width, height)
    written = [out_path.name]
    if args.raw:
        written.extend(p.name for p in save_raw_buffers(out_path, result))
    t_saved = time.perf_counter()

    # Report
    log(f"Wrote {', '.join(written)} | size={width}x{height}")
    log(
        key_value_pairs_to_string(
            [("Iterations", result.iterations), ("Converged", result.converged)]
        )
    )
    log("Palette used:")
    for idx, hex_code, count in palette_usage_report(
        result.indices(), result.palette_rgb
    ):
        log(f"  [{idx:2d}] {hex_code}: {count:,}")

    if args.debug:
        quant_secs = t_quantized - t_loaded
        if quant_secs > 0:
            rate_mpx_s = (width * height / quant_secs) / 1e6
            debug_log(f"throughput {rate_mpx_s:.2f} MPx/s")
        debug_log(
            f"Total {format_total_duration_compact(t_saved - t_start)}  "
            f"(load={format_seconds_compact(t_loaded - t_start)}, "
            f"quantize={format_seconds_compact(quant_secs)}, "
            f"save={format_seconds_compact(t_saved - t_quantized)})"
        )
    else:
        log(f"Total time {format_total_duration_compact(t_saved - t_start)}")
    return True


def _process_one_captured(path: Path, args: argparse.Namespace) -> Tuple[bool, str]:
    """
    Process a single file with this thread's log output captured.

    Useful for concurrent execution where output should be printed in order.
    """
    with captured_output() as buf:
        ok = _process_single_image(path, args)
    return ok, buf.getvalue()


def _collect_folder_images(folder: Path) -> List[Path]:
    files = [
        p
        for p in folder.iterdir()
        if p.is_file()
        and p.suffix.lower() in IMAGE_EXTS
        and not p.stem.endswith(OUTPUT_SUFFIX)
        and is_image_file(p)
    ]
    files.sort(key=lambda p: p.name.lower())
    return files


# Entry point


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Handles single file or folder. In folder mode supports --jobs parallelism
    while preserving readable output ordering.
    """
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)

    print_config_line(
        "run",
        [
            ("CPU cores", os.cpu_count() or 1),
            ("Jobs", args.jobs),
            ("Seed", args.seed if args.seed is not None else "-"),
            ("Max iterations", args.max_iterations),
            ("Raw", args.raw),
        ],
        debug=False,
    )

    src = args.src
    if not src.exists():
        error(f"not found: {src}")
        return 2

    if not src.is_dir():
        return 0 if _process_single_image(src, args) else 1

    files = _collect_folder_images(src)
    if args.debug:
        debug_log(key_value_pairs_to_string([("Images", len(files))]))

    if args.jobs <= 1:
        results = [_process_single_image(p, args) for p in files]
    else:
        with ThreadPoolExecutor(max_workers=args.jobs) as ex:
            futures = [ex.submit(_process_one_captured, p, args) for p in files]
            outcomes = [f.result() for f in futures]
        print("".join(text for _ok, text in outcomes), end="", flush=True)
        results = [ok for ok, _text in outcomes]
    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(main())
