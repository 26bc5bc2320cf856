"""
Command-line entry point: ``export-textures SWF OUTPUT``.
"""

import argparse
import logging
import sys
from typing import List, Optional

from texture_export import config
from texture_export.capture import load_capability
from texture_export.core import ExportConfig, TextureExporter
from texture_export.errors import TextureExportError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="export-textures",
        description="Export texture symbols of an SWF movie as PNG images.",
    )
    parser.add_argument("swf", help="The SWF file to export textures from")
    parser.add_argument("output", help="The directory to store the textures in")
    parser.add_argument(
        "--renderer",
        default=config.RENDERER,
        help="Render backend factory as 'module:callable' (default: $TEXTURE_EXPORT_RENDERER)",
    )
    parser.add_argument("--render-width", type=int, default=config.RENDER_WIDTH, help="Atlas width in pixels")
    parser.add_argument("--render-height", type=int, default=config.RENDER_HEIGHT, help="Atlas height in pixels")
    parser.add_argument(
        "--texture-namespace",
        default=config.TEXTURE_NAMESPACE,
        help="Package holding the texture classes",
    )
    parser.add_argument(
        "--base-class",
        default=f"{config.TEXTURE_BASE_NAMESPACE}.{config.TEXTURE_BASE_CLASS}",
        help="Fully-qualified base class of every texture",
    )
    parser.add_argument(
        "-c", "--clear-textures",
        action="store_true",
        help="Clear the output folder before exporting all the textures",
    )
    parser.add_argument(
        "--skip-unsupported",
        action="store_true",
        help="Skip movies that are not ActionScript 3",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop at the first texture that cannot be captured",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Only list the texture classes and their symbol ids, without rendering",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> ExportConfig:
    base_namespace, _, base_class = args.base_class.rpartition(".")
    return ExportConfig(
        render_width=args.render_width,
        render_height=args.render_height,
        texture_namespace=args.texture_namespace,
        base_namespace=base_namespace,
        base_class=base_class,
        clear_output=args.clear_textures,
        skip_unsupported=args.skip_unsupported,
        fail_fast=args.fail_fast,
    )


def run(args: argparse.Namespace) -> int:
    export_config = config_from_args(args)

    if args.list:
        exporter = TextureExporter(config=export_config)
        document = exporter.load_document(args.swf)
        textures = exporter.find_textures(document)
        for texture in textures:
            symbol = texture.symbol_id if texture.is_resolved else "unlinked"
            print(f"{texture.class_name}\t{symbol}")
        return 0 if all(texture.is_resolved for texture in textures) else 1

    if not args.renderer:
        raise TextureExportError("No render backend configured; pass --renderer or set TEXTURE_EXPORT_RENDERER")
    capability = load_capability(args.renderer, args.render_width, args.render_height)

    exporter = TextureExporter(capability, export_config)
    report = exporter.export(args.swf, args.output)
    for error in report.errors:
        print(f"error: {error}", file=sys.stderr)
    return 0 if report.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args)
    except TextureExportError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
