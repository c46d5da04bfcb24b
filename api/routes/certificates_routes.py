"""Certificate rendering endpoint.

The output format is negotiated through the ``Accept`` header. Pipeline
errors are translated to HTTP responses by the handler registered in
``main.py``.
"""

from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, Request, Response

from schemas import CertificateRequest, ErrorResponse
from services.certificates_service import (
    PDF_MEDIA_TYPE,
    SUPPORTED_MEDIA_TYPES,
    CertificateRenderer,
)

router = APIRouter(prefix="/api/certificates", tags=["certificates"])


def _primary_media_type(accept: str) -> str:
    """First media type of an Accept header, without parameters.

    A wildcard (or missing) Accept selects PDF.
    """
    media_type = accept.split(",")[0].split(";")[0].strip().lower()
    if media_type in ("", "*/*", "application/*"):
        return PDF_MEDIA_TYPE
    return media_type


def _get_renderer(request: Request) -> CertificateRenderer:
    return request.app.state.renderer


@router.post(
    "/render",
    response_class=Response,
    responses={
        200: {
            "content": {media_type: {} for media_type in SUPPORTED_MEDIA_TYPES},
            "description": "Rendered certificate",
        },
        406: {"description": "Unsupported Accept type"},
        422: {"model": ErrorResponse, "description": "Malformed certificate data"},
        502: {"model": ErrorResponse, "description": "Template download failed"},
    },
)
async def render_certificate(
    request: Request,
    body: CertificateRequest,
    accept: Annotated[str, Header()] = PDF_MEDIA_TYPE,
) -> Response:
    """Render a certificate as PDF, SVG or HTML."""
    media_type = _primary_media_type(accept)
    content = await _get_renderer(request).render(body, media_type)

    if content is None:
        raise HTTPException(
            status_code=406,
            detail=(
                f"Unsupported Accept type {media_type!r}. "
                f"Supported: {', '.join(SUPPORTED_MEDIA_TYPES)}"
            ),
        )

    return Response(content=content, media_type=media_type)
