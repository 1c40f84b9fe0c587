"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slidesvg.api.config import get_settings
from slidesvg.api.middleware import LoggingMiddleware
from slidesvg.api.routes import api_router
from slidesvg.errors import MalformedOutputError

settings = get_settings()

logger = logging.getLogger("slidesvg.api")


async def malformed_output_handler(request: Request, exc: MalformedOutputError) -> JSONResponse:
    """Report markup the renderer produced but could not parse."""
    logger.error(f"Renderer produced malformed markup: {exc.error}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Renderer produced malformed markup", "error": exc.error, "markup": exc.markup},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        description="Render normalized slide documents to SVG",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Logging middleware
    app.add_middleware(
        LoggingMiddleware,
        exclude_paths=["/health"],
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MalformedOutputError, malformed_output_handler)

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "slidesvg.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
