"""API route modules."""

from fastapi import APIRouter

from promptstudio.entrypoints.api.routes.admin import router as admin_router
from promptstudio.entrypoints.api.routes.invitations import router as invitations_router
from promptstudio.entrypoints.api.routes.teams import router as teams_router

# Create main API router
api_router = APIRouter()

api_router.include_router(teams_router)
api_router.include_router(invitations_router)
api_router.include_router(admin_router)

__all__ = ["api_router"]
