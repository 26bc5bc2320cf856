"""
Texture export API routes.

This module provides endpoints for inspecting SWF documents and listing the
texture symbols they declare.
"""

import base64
import binascii
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, ValidationError

from texture_export.core import CV_AVAILABLE, ExportConfig, TextureExporter
from texture_export.errors import TextureExportError, UnsupportedMovieError
from texture_export.swf import decode_swf

logger = logging.getLogger(__name__)

router = APIRouter()

INSPECT_CONFIG_KEYS = ("texture_namespace", "base_namespace", "base_class", "skip_unsupported")


class InspectionOverrides(BaseModel):
    """Typed naming convention overrides accepted by the inspection endpoint."""

    texture_namespace: Optional[str] = Field(None, description="Package holding exported texture classes")
    base_namespace: Optional[str] = Field(None, description="Package of the texture base class")
    base_class: Optional[str] = Field(None, description="Name of the texture base class")
    skip_unsupported: Optional[bool] = Field(None, description="Reject documents that are not ActionScript 3")


class InspectionRequest(BaseModel):
    """Request model for document inspection."""

    document_base64: str = Field(..., description="Base64 encoded SWF document")
    config: Optional[Dict] = Field(None, description="Optional naming convention overrides")


class InspectionResponse(BaseModel):
    """Response model for document inspection results."""

    success: bool = Field(..., description="Whether every texture is linked to a symbol")
    message: str = Field(..., description="Status message")
    textures: List[Dict] = Field(default_factory=list, description="Texture classes found in the document")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal decoding warnings")
    stats: Dict = Field(default_factory=dict, description="Document statistics")


@router.post("/inspect", response_model=InspectionResponse)
async def inspect_document(request: InspectionRequest) -> InspectionResponse:
    """
    List the texture classes of an SWF document and their symbol ids.

    Args:
        request: Inspection request containing the document and optional config

    Returns:
        InspectionResponse with the textures found and document metadata

    Raises:
        HTTPException: If the document cannot be decoded
    """
    try:
        config = ExportConfig()
        if request.config:
            known = {}
            for key, value in request.config.items():
                if key in INSPECT_CONFIG_KEYS:
                    known[key] = value
                else:
                    logger.warning(f"Unknown config parameter: {key}")

            try:
                overrides = InspectionOverrides(**known)
            except ValidationError as e:
                raise TextureExportError(f"Invalid config: {e}") from e
            for key in known:
                value = getattr(overrides, key)
                if value is not None:
                    setattr(config, key, value)

        try:
            data = base64.b64decode(request.document_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TextureExportError(f"Invalid base64 document: {e}") from e

        document = decode_swf(data)
        if config.skip_unsupported and not document.is_action_script_3:
            raise UnsupportedMovieError("Document is not ActionScript 3")

        logger.info("Inspecting uploaded document")
        textures = TextureExporter(config=config).find_textures(document)
        unresolved = [t for t in textures if not t.is_resolved]

        stats = {
            "version": document.header.version,
            "compression": document.header.compression,
            "width": document.header.width,
            "height": document.header.height,
            "frame_count": document.header.frame_count,
            "tag_count": len(document.tags),
            "abc_blocks": len(document.abc_tags),
            "symbol_class_tags": len(document.symbol_class_tags),
            "action_script_3": document.is_action_script_3,
            "total_textures": len(textures),
            "unresolved_textures": len(unresolved)
        }

        if unresolved:
            message = f"Found {len(textures)} textures, {len(unresolved)} without a symbol id"
        else:
            message = f"Found {len(textures)} textures"

        return InspectionResponse(
            success=not unresolved,
            message=message,
            textures=[texture.to_dict() for texture in textures],
            warnings=list(document.warnings),
            stats=stats
        )

    except TextureExportError as e:
        logger.error(f"Document inspection failed: {str(e)}")
        raise HTTPException(status_code=400, detail=f"Document inspection failed: {str(e)}")

    except Exception as e:
        logger.error(f"Unexpected error during document inspection: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error during document inspection")


@router.get("/config/defaults")
async def get_default_config() -> Dict:
    """
    Get the default export configuration parameters.

    Returns:
        Dictionary containing default configuration values and descriptions
    """
    config = ExportConfig()

    return {
        "config": {
            "render_width": {
                "value": config.render_width,
                "description": "Width of the shared render atlas in pixels",
                "type": "integer"
            },
            "render_height": {
                "value": config.render_height,
                "description": "Height of the shared render atlas in pixels",
                "type": "integer"
            },
            "texture_namespace": {
                "value": config.texture_namespace,
                "description": "Package holding exported texture classes",
                "type": "string"
            },
            "base_namespace": {
                "value": config.base_namespace,
                "description": "Package of the texture base class",
                "type": "string"
            },
            "base_class": {
                "value": config.base_class,
                "description": "Name of the texture base class",
                "type": "string"
            },
            "skip_unsupported": {
                "value": config.skip_unsupported,
                "description": "Reject documents that are not ActionScript 3",
                "type": "boolean"
            }
        },
        "supported_formats": [
            "FWS",
            "CWS",
            "ZWS"
        ]
    }


@router.get("/health")
async def health_check() -> Dict:
    """
    Check if texture export dependencies are available.

    Returns:
        Health status and available features
    """
    status = "healthy" if CV_AVAILABLE else "degraded"
    message = (
        "Texture export service is ready"
        if CV_AVAILABLE
        else "OpenCV is not installed; inspection works but PNG encoding is unavailable"
    )

    return {
        "status": status,
        "message": message,
        "dependencies": {
            "opencv": CV_AVAILABLE,
            "numpy": True,
            "pillow": True
        },
        "features": {
            "inspection": True,
            "png_encoding": CV_AVAILABLE
        }
    }
