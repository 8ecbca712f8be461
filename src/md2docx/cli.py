"""Command-line interface for md2docx.

Usage::

    md2docx input.md                      # writes input.docx
    md2docx input.md -o output.docx       # explicit output path
    md2docx input.md --style academic     # use academic preset
    md2docx report.docx                   # writes report.md
    md2docx --list-styles                 # list available presets
    md2docx --check-browser               # can diagrams be rendered?
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from md2docx import __version__
from md2docx.config import set_log_level
from md2docx.converter import DOCX_SUFFIX, MARKDOWN_SUFFIXES, Converter, default_output_path
from md2docx.diagram import check_browser_available
from md2docx.errors import Md2DocxError, UnsupportedInputError
from md2docx.style_manager import StyleManager


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="md2docx",
        description="Convert Markdown to DOCX (and DOCX back to Markdown), keeping diagram sources.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Markdown (.md) or Word (.docx) file to convert.",
    )
    parser.add_argument(
        "-o", "--output",
        help="Output path. Defaults to the input path with the other suffix.",
    )
    parser.add_argument(
        "-s", "--style",
        default="default",
        choices=StyleManager.PRESETS,
        help="Style preset (default: %(default)s).",
    )
    parser.add_argument(
        "-e", "--encoding",
        default="utf-8",
        help="Markdown file encoding (default: %(default)s).",
    )
    parser.add_argument(
        "--no-diagrams",
        action="store_true",
        help="Keep Mermaid/PlantUML blocks as code instead of rendering them.",
    )
    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite the output file if it exists.",
    )
    parser.add_argument(
        "--list-styles",
        action="store_true",
        help="List available style presets and exit.",
    )
    parser.add_argument(
        "--check-browser",
        action="store_true",
        help="Report whether a headless browser is available and exit.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print progress information.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _convert(args: argparse.Namespace, input_path: Path, output_path: Path) -> None:
    suffix = input_path.suffix.lower()
    converter = Converter(style_preset=args.style, render_diagrams=not args.no_diagrams)
    if suffix == DOCX_SUFFIX:
        converter.docx_file_to_markdown(input_path, output_path, encoding=args.encoding)
    elif suffix in MARKDOWN_SUFFIXES:
        converter.convert_file(input_path, output_path, encoding=args.encoding)
    else:
        raise UnsupportedInputError(f"unsupported input type: {input_path.suffix or input_path.name}")


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.list_styles:
        print("Available style presets:")
        for preset in StyleManager.PRESETS:
            print(f"  - {preset}")
        return 0

    if args.check_browser:
        available = asyncio.run(check_browser_available())
        print("Headless browser: " + ("available" if available else "not available"))
        return 0 if available else 1

    if not args.input:
        parser.error("the following argument is required: input")

    if args.verbose:
        set_log_level(logging.DEBUG)

    input_path = Path(args.input)
    if not input_path.is_file():
        print(f"Error: file not found: {input_path}", file=sys.stderr)
        return 1

    output_path = Path(args.output) if args.output else default_output_path(input_path)
    if output_path.exists() and not args.force:
        print(f"Error: output exists (use --force to overwrite): {output_path}", file=sys.stderr)
        return 1

    if args.verbose:
        print(f"Input:  {input_path}")
        print(f"Output: {output_path}")
        print(f"Style:  {args.style}")

    try:
        _convert(args, input_path, output_path)
    except (Md2DocxError, OSError, UnicodeDecodeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.verbose:
        print(f"Done. {output_path.stat().st_size} bytes written.")
    else:
        print(f"Converted: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
