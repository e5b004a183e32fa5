"""Health check endpoints."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/healthyz")
async def healthyz():
    """Readiness probe."""
    return {"status": "healthy"}


@router.get("/alivez")
async def alivez():
    """Liveness probe."""
    return {"status": "alive"}
