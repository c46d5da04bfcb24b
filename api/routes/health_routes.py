"""Health check endpoints."""

from fastapi import APIRouter, HTTPException, Request
from starlette import status

from schemas import HealthResponse

SERVICE_NAME = "certificate-pdf-service"

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={
        503: {
            "description": "Service unavailable - renderer not initialized",
            "content": {"application/json": {"example": {"detail": "Starting"}}},
        }
    },
)
async def ready(request: Request) -> HealthResponse:
    """Readiness endpoint.

    Returns 200 only once the lifespan has wired the template store,
    HTTP client and renderer.
    """
    if getattr(request.app.state, "renderer", None) is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Starting",
        )
    return HealthResponse(status="ready", service=SERVICE_NAME)
