#!/usr/bin/env python3
# halfblock_view/cli.py
"""
Entry point for the half-block image viewer.

    halfblock-view IMAGE [IMAGE ...]            interactive viewer
    halfblock-view --print IMAGE                 render once to stdout
"""

from __future__ import annotations

import argparse
import os
import shutil
import sys
from typing import List, Optional

from halfblock_view.config import Config
from halfblock_view.logging_conf import setup_logging
from halfblock_view.pipeline.controller import PipelineController
from halfblock_view.pipeline.model import Failed, Ready, ViewportBounds
from halfblock_view.rendering.halfblock import row_ansi
from halfblock_view.version import version_info


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="halfblock-view",
        description="Show images in the terminal using colored half-block glyphs.",
    )
    parser.add_argument("sources", nargs="+", help="Image paths or http(s) URLs.")
    parser.add_argument("--config", default=None, help="Path to the JSON config file.")
    parser.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Render the first image once to stdout instead of opening the viewer.",
    )
    parser.add_argument("--width", type=int, default=None, help="Max width in cells (--print).")
    parser.add_argument("--height", type=int, default=None, help="Max height in cells (--print).")
    parser.add_argument("--timeout", type=float, default=60.0, help="Seconds to wait (--print).")
    parser.add_argument("--version", action="version", version=version_info())
    return parser


def print_image(cfg: Config, source: str, bounds: ViewportBounds, timeout: float) -> int:
    controller = PipelineController.from_config(cfg)
    try:
        controller.request(source, bounds)
        state = controller.wait(timeout)
    finally:
        controller.shutdown(float(cfg["app"]["shutdown_timeout_s"]))

    if isinstance(state, Ready):
        out = [state.info_text, ""]
        out.extend(row_ansi(row) for row in state.rows)
        sys.stdout.write("\n".join(out) + "\n")
        return 0
    if isinstance(state, Failed):
        print(f"Error: {state.message}", file=sys.stderr)
        return 1
    print(f"Error: timed out after {timeout:g}s", file=sys.stderr)
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.width is not None and args.width < 1:
        parser.error("--width must be >= 1")
    if args.height is not None and args.height < 1:
        parser.error("--height must be >= 1")

    cfg = Config.load(args.config)

    if args.print_only:
        setup_logging(cfg, console=True)
        term = shutil.get_terminal_size()
        bounds = ViewportBounds.for_terminal(term.columns, term.lines, cfg["viewport"])
        # explicit --width/--height replace the configured budget
        bounds = ViewportBounds.clamped(
            args.width or bounds.max_width_cells,
            args.height or bounds.max_height_cells,
        )
        return print_image(cfg, args.sources[0], bounds, args.timeout)

    if os.name == "nt" and not sys.stdout.isatty():
        print("No Windows console detected. Run from cmd, PowerShell, or Windows Terminal.")
        return 1

    setup_logging(cfg, console=False)
    from halfblock_view.ui.app import ImageViewerApp
    ImageViewerApp(cfg, args.sources).run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
