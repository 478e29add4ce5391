"""Core routes for the clipper API (root and health checks)."""

from api.schemas import HealthResponse, MessageResponse, RootResponse
from fastapi import APIRouter

router = APIRouter(tags=["Core"])


@router.get(
    "/",
    response_model=RootResponse,
    summary="API root",
    description="Returns API name and version.",
)
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Clipper API", "version": "1.0.0"}


@router.get(
    "/api/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns server health status.",
)
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@router.get(
    "/api/hello",
    response_model=MessageResponse,
    summary="Hello",
    description="Liveness probe used by the frontend dev proxy.",
)
async def hello() -> dict[str, str]:
    return {"message": "Hello from local API!"}
