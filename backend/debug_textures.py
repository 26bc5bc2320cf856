#!/usr/bin/env python3
"""
Simple script to analyze SWF documents and debug texture discovery.
"""

import sys
from collections import Counter
from pathlib import Path
from typing import Dict, Optional

# Add parent directory to path
sys.path.append(str(Path(__file__).parent))

from texture_export.bytecode import parse_abc
from texture_export.errors import TextureExportError
from texture_export.matcher import TextureConvention, find_textures, resolve_instance
from texture_export.swf import SwfDocument, load_swf


def analyze_document(document: SwfDocument, convention: Optional[TextureConvention] = None) -> Dict:
    """Collect the structural facts needed to debug why a texture is (not) found."""
    convention = convention or TextureConvention()
    header = document.header

    classes = []
    for tag in document.abc_tags:
        abc = parse_abc(tag.data)
        for instance in abc.instances:
            class_name, super_class_name = resolve_instance(instance, abc.constant_pool)
            classes.append({
                "block": tag.name,
                "class_name": class_name.qualified_name,
                "super_class_name": super_class_name.qualified_name if super_class_name else None,
                "is_texture": convention.matches(class_name, super_class_name)
            })

    links = [link for tag in document.symbol_class_tags for link in tag.links]

    return {
        "header": {
            "compression": header.compression,
            "version": header.version,
            "size": f"{header.width:g}x{header.height:g}",
            "frame_rate": header.frame_rate,
            "frame_count": header.frame_count
        },
        "action_script_3": document.is_action_script_3,
        "tag_counts": dict(Counter(tag.code for tag in document.tags)),
        "classes": classes,
        "symbol_links": [(link.symbol_id, link.class_name) for link in links],
        "textures": [texture.to_dict() for texture in find_textures(document, convention)],
        "warnings": list(document.warnings)
    }


def print_analysis(name: str, analysis: Dict):
    print(f"\n=== Analyzing {name} ===")
    header = analysis["header"]
    print(f"Format: {header['compression']} v{header['version']}, stage {header['size']}, "
          f"{header['frame_count']} frames at {header['frame_rate']:.2f} fps")
    print(f"ActionScript 3: {analysis['action_script_3']}")
    print(f"Tags: {analysis['tag_counts']}")

    print(f"\nClasses ({len(analysis['classes'])}):")
    for entry in analysis["classes"]:
        marker = "*" if entry["is_texture"] else " "
        print(f"  {marker} {entry['class_name']} extends {entry['super_class_name']}")

    print(f"\nSymbol links ({len(analysis['symbol_links'])}):")
    for symbol_id, class_name in analysis["symbol_links"]:
        print(f"  {symbol_id:5d} {class_name}")

    print(f"\nTextures ({len(analysis['textures'])}):")
    for texture in analysis["textures"]:
        symbol = texture["symbol_id"] if texture["symbol_id"] is not None else "UNLINKED"
        print(f"  {texture['class_name']} -> {symbol}")

    for warning in analysis["warnings"]:
        print(f"Warning: {warning}")


def main():
    """Main analysis function."""
    if len(sys.argv) < 2:
        print(f"Usage: {sys.argv[0]} FILE.swf [FILE.swf ...]")
        return 2

    status = 0
    for filename in sys.argv[1:]:
        try:
            analysis = analyze_document(load_swf(filename))
        except TextureExportError as e:
            print(f"Analysis of {filename} failed: {e}")
            status = 1
            continue
        print_analysis(Path(filename).name, analysis)
    return status


if __name__ == "__main__":
    sys.exit(main())
