"""
Code Library Backend — Health Check Route
==========================================

Static liveness probe. It does not touch the key-value store or the identity
provider, so it stays green while a dependency is down; readiness is the
deployment's concern.
"""

from fastapi import APIRouter

from codelibrary.schemas.snippet import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service liveness check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok")
