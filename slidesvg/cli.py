"""Command line entry point: render a document JSON file to SVG."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from slidesvg.renderer.svg_renderer import RendererOptions, SVGRenderer


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Render a slide document to SVG")
    parser.add_argument("input", help="Document JSON file ('-' for stdin)")
    parser.add_argument("-o", "--output", help="Output SVG file (default: stdout)")
    parser.add_argument("--element", action="store_true", help="Input is a single element")
    parser.add_argument("--no-embed-image", action="store_true", help="Keep image references")
    parser.add_argument("--no-embed-text", action="store_true", help="Always emit text runs")
    parser.add_argument("--id-prefix", default="el", help="Prefix of generated ids")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    raw = sys.stdin.read() if args.input == "-" else Path(args.input).read_text(encoding="utf-8")
    options = RendererOptions(
        embed_image=not args.no_embed_image,
        embed_text=not args.no_embed_text,
        id_prefix=args.id_prefix,
        allow_local_files=True,
    )

    try:
        data = json.loads(raw)
        if args.element:
            svg = asyncio.run(SVGRenderer(options=options).element_to_string(data))
        else:
            svg = asyncio.run(SVGRenderer(data, options).to_string())
    except (json.JSONDecodeError, ValidationError) as e:
        print(f"Invalid document: {e}", file=sys.stderr)
        return 1

    if args.output:
        Path(args.output).write_text(svg, encoding="utf-8")
    else:
        sys.stdout.write(svg + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
