"""Health check routes."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from slidesvg.api.config import Settings, get_settings
from slidesvg.engine.text_measure import get_font
from slidesvg.errors import TextMeasurementError
from slidesvg.renderer.markup import MarkupNode, parse_markup, serialize_markup

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""
    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)):
    """Basic health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check():
    """Readiness check: a measurement font loads and markup round-trips."""
    checks = {}

    try:
        get_font(None)
        checks["fonts"] = True
    except TextMeasurementError:
        checks["fonts"] = False

    root = parse_markup(serialize_markup(MarkupNode("svg", {"width": 1, "height": 1})))
    checks["markup"] = root.get("width") == "1"

    return ReadinessResponse(ready=all(checks.values()), checks=checks)
