"""Rendering module for presentation concerns.

This module handles all document-level rendering logic:
- QR payload encoding and QR PNG generation
- Field placement layouts and value formatting
- PDF template overlay
- SVG/HTML markup rendering

This separates presentation concerns from orchestration in services.
"""

from rendering.markup import png_to_data_uri, render_markup
from rendering.overlay import OverlayEngine
from rendering.payload import (
    QrPolicy,
    build_qr_payload,
    compress_certificate,
    create_qr_code_image,
    decompress_certificate,
)
from rendering.placements import (
    LANDSCAPE_PLACEMENTS,
    PORTRAIT_PLACEMENTS,
    FieldPlacement,
    PlacementLayouts,
)

__all__ = [
    "LANDSCAPE_PLACEMENTS",
    "PORTRAIT_PLACEMENTS",
    "FieldPlacement",
    "OverlayEngine",
    "PlacementLayouts",
    "QrPolicy",
    "build_qr_payload",
    "compress_certificate",
    "create_qr_code_image",
    "decompress_certificate",
    "png_to_data_uri",
    "render_markup",
]
