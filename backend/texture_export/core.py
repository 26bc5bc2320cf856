"""
Texture export core functionality.

This module ties the SWF decoder, the symbol matcher and the atlas capturer
together: it loads a document, finds its texture classes, renders each one
through the configured render backend and writes the crops as PNG files.
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

try:
    import cv2
    CV_AVAILABLE = True
except ImportError:
    CV_AVAILABLE = False

from texture_export import config
from texture_export.capture import DEFAULT_BACKGROUND, RenderCapability, TextureCapturer
from texture_export.errors import (
    TextureExportError,
    TextureIOError,
    UnsupportedMovieError,
)
from texture_export.matcher import ExportedTexture, TextureConvention, find_textures
from texture_export.swf import SwfDocument, load_swf

logger = logging.getLogger(__name__)


class ExtractedTexture:
    """Represents a single exported texture image."""

    def __init__(
        self,
        class_name: str,
        symbol_id: int,
        image_data: bytes,
        x: int,
        y: int,
        width: int,
        height: int,
        path: Optional[Path] = None
    ):
        self.class_name = class_name
        self.symbol_id = symbol_id
        self.image_data = image_data
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.path = path

    def to_dict(self) -> Dict:
        """Convert to dictionary representation."""
        return {
            "class_name": self.class_name,
            "symbol_id": self.symbol_id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "path": str(self.path) if self.path else None
        }


class ExportConfig:
    """Configuration for texture export."""

    def __init__(
        self,
        render_width: int = config.RENDER_WIDTH,
        render_height: int = config.RENDER_HEIGHT,
        texture_namespace: str = config.TEXTURE_NAMESPACE,
        base_namespace: str = config.TEXTURE_BASE_NAMESPACE,
        base_class: str = config.TEXTURE_BASE_CLASS,
        background_color: Tuple[int, int, int, int] = DEFAULT_BACKGROUND,
        clear_output: bool = False,     # Wipe <output>/<document>/ before writing
        skip_unsupported: bool = False,  # Reject non-ActionScript 3 documents up front
        fail_fast: bool = False          # Stop at the first texture that fails
    ):
        self.render_width = render_width
        self.render_height = render_height
        self.texture_namespace = texture_namespace
        self.base_namespace = base_namespace
        self.base_class = base_class
        self.background_color = background_color
        self.clear_output = clear_output
        self.skip_unsupported = skip_unsupported
        self.fail_fast = fail_fast

    @property
    def convention(self) -> TextureConvention:
        return TextureConvention(self.texture_namespace, self.base_namespace, self.base_class)


class ExportReport:
    """Outcome of exporting one document."""

    def __init__(self, document_name: str, output_dir: Path):
        self.document_name = document_name
        self.output_dir = output_dir
        self.textures: List[ExtractedTexture] = []
        self.errors: List[TextureExportError] = []
        self.warnings: List[str] = []

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict:
        return {
            "document": self.document_name,
            "output_dir": str(self.output_dir),
            "textures": [texture.to_dict() for texture in self.textures],
            "errors": [str(error) for error in self.errors],
            "warnings": list(self.warnings)
        }


def encode_png(image: np.ndarray) -> bytes:
    """Encode an RGBA image as PNG bytes."""
    if not CV_AVAILABLE:
        raise TextureExportError(
            "OpenCV is required to encode textures. "
            "Install with: pip install opencv-python"
        )
    # OpenCV expects BGRA channel order
    bgra = cv2.cvtColor(np.ascontiguousarray(image), cv2.COLOR_RGBA2BGRA)
    success, encoded = cv2.imencode('.png', bgra)
    if not success:
        raise TextureExportError("PNG encoding failed")
    return encoded.tobytes()


def prepare_output_dir(output_dir: Union[str, Path], document_name: str, clear: bool = False) -> Path:
    """Create ``<output_dir>/<document_name>/``, optionally wiping it first."""
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        raise TextureIOError(f"Output path is not a directory or does not exist: {output_dir}")

    target = output_dir / document_name
    if clear and target.exists():
        shutil.rmtree(target)
    target.mkdir(parents=True, exist_ok=True)
    return target


class TextureExporter:
    """Main texture export class."""

    def __init__(self, capability: Optional[RenderCapability] = None, config: Optional[ExportConfig] = None):
        self.capability = capability
        self.config = config or ExportConfig()

    def load_document(self, swf_path: Union[str, Path]) -> SwfDocument:
        """
        Load and decode a document, applying the skip-unsupported rule.

        Raises:
            TextureIOError: If the path is not a readable file
            SwfFormatError: If the document is malformed
            UnsupportedMovieError: If skip_unsupported is set and the document is not ActionScript 3
        """
        document = load_swf(swf_path)
        if self.config.skip_unsupported and not document.is_action_script_3:
            raise UnsupportedMovieError(f"Skipping unsupported movie {swf_path}: not ActionScript 3")
        return document

    def find_textures(self, document: SwfDocument) -> List[ExportedTexture]:
        return find_textures(document, self.config.convention)

    def export(self, swf_path: Union[str, Path], output_dir: Union[str, Path]) -> ExportReport:
        """
        Export every texture of a document as ``<output_dir>/<document>/<ClassName>.png``.

        Args:
            swf_path: Path of the SWF file
            output_dir: Existing directory receiving the per-document folder

        Returns:
            Report of written textures and per-texture errors
        """
        swf_path = Path(swf_path)
        if not swf_path.is_file():
            raise TextureIOError(f"Swf argument is not a file or does not exist: {swf_path}")
        if not Path(output_dir).is_dir():
            raise TextureIOError(f"Output path is not a directory or does not exist: {output_dir}")
        if self.capability is None:
            raise TextureExportError("No render backend configured")

        document = self.load_document(swf_path)
        textures = self.find_textures(document)
        logger.info(f"Found {len(textures)} texture classes in {swf_path.name}")

        # Only touch the output folder once the whole document is known to be readable
        target = prepare_output_dir(output_dir, swf_path.stem, self.config.clear_output)

        report = ExportReport(swf_path.stem, target)
        report.warnings.extend(document.warnings)

        capturer = TextureCapturer(
            self.capability,
            render_width=self.config.render_width,
            render_height=self.config.render_height,
            background_color=self.config.background_color,
            fail_fast=self.config.fail_fast,
        )
        batch = capturer.capture_all(document.data, textures)
        report.errors.extend(batch.errors)

        for captured in batch.images:
            class_name = captured.texture.class_name
            image_data = encode_png(captured.image)
            path = target / f"{class_name.name}.png"
            path.write_bytes(image_data)

            report.textures.append(ExtractedTexture(
                class_name=class_name.qualified_name,
                symbol_id=captured.texture.symbol_id,
                image_data=image_data,
                x=captured.x,
                y=captured.y,
                width=captured.width,
                height=captured.height,
                path=path
            ))

        logger.info(
            f"Exported {len(report.textures)} textures to {target}"
            + (f" ({len(report.errors)} failed)" if report.errors else "")
        )
        return report
