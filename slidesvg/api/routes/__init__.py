"""API routes for slidesvg."""

from fastapi import APIRouter

from slidesvg.api.routes.health import router as health_router
from slidesvg.api.routes.render import router as render_router

# Main API router
api_router = APIRouter()

api_router.include_router(health_router, tags=["Health"])
api_router.include_router(render_router, prefix="/render", tags=["Render"])

__all__ = ["api_router"]
