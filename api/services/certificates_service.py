"""Certificate rendering orchestration.

One render request flows through:
- QR payload derivation and QR PNG rendering
- credential decoding
- template acquisition through the template cache
- placement overlay (PDF) or markup rendering (SVG/HTML)

Any stage failure aborts the render and propagates to the caller as a
``CertificateServiceError``; per-placement failures are absorbed by the
overlay engine.

Routes should delegate all certificate rendering to this module.
"""

import asyncio
import logging
from functools import partial

from core.config import Settings
from rendering.markup import png_to_data_uri, render_markup
from rendering.overlay import OverlayEngine
from rendering.payload import (
    QrPolicy,
    build_verification_url,
    compress_certificate,
    create_qr_code_image,
    render_qr_png,
)
from rendering.placements import PlacementLayouts
from schemas import CertificateRequest, CredentialRecord, decode_certificate_mapping
from services.template_service import TemplateCache

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
SVG_MEDIA_TYPE = "image/svg+xml"
HTML_MEDIA_TYPE = "text/html"

SUPPORTED_MEDIA_TYPES = (PDF_MEDIA_TYPE, SVG_MEDIA_TYPE, HTML_MEDIA_TYPE)


class CertificateRenderer:
    """Renders certificate requests into PDF or markup bytes."""

    def __init__(
        self,
        settings: Settings,
        template_cache: TemplateCache,
        layouts: PlacementLayouts | None = None,
        overlay: OverlayEngine | None = None,
    ):
        self.settings = settings
        self.template_cache = template_cache
        self.layouts = layouts or PlacementLayouts()
        self.overlay = overlay or OverlayEngine(
            font_name=settings.font_name, font_path=settings.font_path
        )

    async def render(self, request: CertificateRequest, accept_type: str) -> bytes | None:
        """Render one certificate.

        Args:
            request: The certificate request
            accept_type: Requested output media type

        Returns:
            Document bytes, or None when ``accept_type`` is not a supported
            output (no error is raised for it).

        Raises:
            CertificateServiceError: If any top-level stage fails.
        """
        loop = asyncio.get_running_loop()
        qr_png = await loop.run_in_executor(
            None, create_qr_code_image, request, self.settings
        )

        if accept_type == PDF_MEDIA_TYPE:
            return await self._render_pdf(request, qr_png)
        if accept_type in (SVG_MEDIA_TYPE, HTML_MEDIA_TYPE):
            return await self._render_markup(request)

        logger.info(
            "certificate.unsupported_accept_type",
            extra={"accept_type": accept_type, "entity_id": request.entity_id},
        )
        return None

    async def _render_pdf(self, request: CertificateRequest, qr_png: bytes) -> bytes:
        record = CredentialRecord.from_json(request.certificate)
        template_bytes = await self.template_cache.fetch(request.template_url)
        record.qr_code = qr_png

        placements = self.layouts.for_template(request.template_url)
        loop = asyncio.get_running_loop()
        pdf_bytes = await loop.run_in_executor(
            None, self.overlay.render, template_bytes, record, placements
        )

        logger.info(
            "certificate.rendered",
            extra={
                "entity_id": request.entity_id,
                "media_type": PDF_MEDIA_TYPE,
                "template_url": request.template_url,
                "size_bytes": len(pdf_bytes),
            },
        )
        return pdf_bytes

    def _markup_qr_code(self, request: CertificateRequest) -> str:
        if QrPolicy.from_setting(self.settings.qr_type) is QrPolicy.URL:
            return build_verification_url(request, self.settings)
        compressed = compress_certificate(request.certificate)
        return png_to_data_uri(
            render_qr_png(compressed, size=self.settings.qr_image_size)
        )

    async def _render_markup(self, request: CertificateRequest) -> bytes:
        data = decode_certificate_mapping(request.certificate)

        loop = asyncio.get_running_loop()
        data["qrCode"] = await loop.run_in_executor(
            None, self._markup_qr_code, request
        )
        if "entity" not in data:
            data["entity"] = request.entity_mapping()

        content = await loop.run_in_executor(
            None,
            partial(render_markup, self.settings.markup_template_file, data),
        )
        logger.info(
            "certificate.rendered",
            extra={"entity_id": request.entity_id, "media_type": "markup"},
        )
        return content.encode("utf-8")
