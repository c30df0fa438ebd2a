"""Command-line interface for portraitmaker."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .generation import GeneratorConfig, generate_portrait
from .pipeline import ExportPipeline
from .prompt import ColorMode, ContrastLevel, DetailLevel, FontStyle, LineStyle, PortraitOptions
from .types import ExportFormat, ExportRequest, PortraitMakerError, TraceConfig


def _names(enum_cls) -> list:
    return [member.name.lower() for member in enum_cls]


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="portraitmaker",
        description="Stencil/vector portrait generation and export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a portrait (needs GEMINI_API_KEY)
  portraitmaker generate photo.jpg -o portrait.png --lines thick --color-mode triad

  # Export a generated portrait
  portraitmaker export portrait.png --format svg
  portraitmaker export portrait.png --format svg --colors 8 --ltres 2
  portraitmaker export portrait.png --format jpg -o portrait.jpg
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a stylized portrait from a photo")
    gen.add_argument("input", help="Input photo (JPG/PNG)")
    gen.add_argument("-o", "--output", default=None,
                     help="Output PNG path (default: <input>_portrait.png)")
    gen.add_argument("--lines", choices=_names(LineStyle), default="medium", help="Line weight")
    gen.add_argument("--contrast", choices=_names(ContrastLevel), default="high", help="Contrast")
    gen.add_argument("--detail", choices=_names(DetailLevel), default="balanced", help="Detail level")
    gen.add_argument("--color-mode", choices=_names(ColorMode), default="bw", help="Color mode")
    gen.add_argument("--triad", nargs=3, metavar="HEX", default=None,
                     help="Three #RRGGBB colors for triad mode")
    gen.add_argument("--caption", default="", help="Optional caption (max 10 words)")
    gen.add_argument("--font", choices=_names(FontStyle), default="sans", help="Caption font style")
    gen.add_argument("--model", default=None, help="Image model name")

    exp = sub.add_parser("export", help="Export a generated portrait as PNG, JPG or SVG")
    exp.add_argument("input", help="Generated image (PNG)")
    exp.add_argument("-f", "--format", choices=[f.value for f in ExportFormat], default="png",
                     help="Output format (default: png)")
    exp.add_argument("-o", "--output", default=None,
                     help="Output path (default: suggested portrait-maker-<time>.<ext>)")
    exp.add_argument("--colors", "-c", type=int, default=16, help="Palette size for SVG (default: 16)")
    exp.add_argument("--ltres", type=float, default=1.0, help="Line fit tolerance (default: 1.0)")
    exp.add_argument("--qtres", type=float, default=1.0, help="Curve fit tolerance (default: 1.0)")
    exp.add_argument("--pathomit", type=int, default=8,
                     help="Drop paths shorter than this many pixels (default: 8)")
    exp.add_argument("--round", type=int, default=1, dest="round_coords",
                     help="Decimal places for coordinates (default: 1)")
    exp.add_argument("--trace-background", action="store_true",
                     help="Trace the background color as paths too")
    exp.add_argument("--canvas-rect", action="store_true",
                     help="Paint the background as a <rect> for non-browser renderers")
    return parser


def _run_generate(parsed) -> int:
    input_path = Path(parsed.input)
    output_path = Path(parsed.output) if parsed.output else input_path.with_name(
        f"{input_path.stem}_portrait.png"
    )

    options = PortraitOptions(
        line_style=parsed.lines,
        contrast_level=parsed.contrast,
        detail_level=parsed.detail,
        color_mode=parsed.color_mode,
        caption=parsed.caption,
        font_style=parsed.font,
        **({"colors": tuple(parsed.triad)} if parsed.triad else {}),
    )
    config = GeneratorConfig.from_env()
    if parsed.model:
        config.model = parsed.model

    print(f"Processing: {input_path}")
    print(f"  Style: {options.line_style.value}, {options.contrast_level.value}, "
          f"{options.detail_level.value}")
    print(f"  Color: {options.color_mode.value}")

    image = generate_portrait(input_path.read_bytes(), options, config)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(image)
    print(f"  Output saved: {output_path}")
    return 0


def _run_export(parsed) -> int:
    config = TraceConfig(
        n_colors=parsed.colors,
        line_tolerance=parsed.ltres,
        curve_tolerance=parsed.qtres,
        path_omit=parsed.pathomit,
        round_coords=parsed.round_coords,
        trace_background=parsed.trace_background,
        canvas_rect=parsed.canvas_rect,
    )
    request = ExportRequest(
        source=Path(parsed.input).read_bytes(),
        format=parsed.format,
        trace=config,
    )

    print(f"Processing: {parsed.input}")
    print(f"  Format: {request.format.value}")
    if request.format is ExportFormat.SVG:
        print(f"  Colors: {config.n_colors}")

    result = ExportPipeline().run(request)
    output_path = Path(parsed.output) if parsed.output else Path(result.filename)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(result.data)
    print(f"  Output saved: {output_path}")
    return 0


def main(args: Optional[list] = None) -> int:
    """Main entry point for CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if parsed.command == "generate":
            return _run_generate(parsed)
        return _run_export(parsed)
    except (OSError, PortraitMakerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
