"""API routes package."""

from fastapi import APIRouter

from app.api.routes import (
    auth,
    activities,
    categories,
    health,
    users,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/user", tags=["User"])
api_router.include_router(activities.router, prefix="/activities", tags=["Activities"])
api_router.include_router(categories.router, prefix="/categories", tags=["Categories"])

# Probes live at the root, outside the versioned API
probe_router = health.router
