"""
FastAPI application entry point.

This module creates and configures the FastAPI application using an
application factory (create_app), so tests can build fresh instances.

For local development:
    uvicorn catalog.main:app --reload

For production:
    gunicorn catalog.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.dependencies import get_storage_backend
from .api.routes import health, items, objects
from .config.settings import get_settings
from .core.errors import CatalogError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup validates configuration and selects the storage backend, once.
    Missing configuration is logged rather than fatal so the health
    endpoints can still report what's wrong.
    """
    settings = get_settings()

    logger.info(
        "Item Catalog API starting",
        extra={
            "version": settings.api_version,
            "storage_backend": settings.object_storage_backend.value,
            "mock_mode": {"snowflake": settings.snowflake_mock_mode},
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    try:
        backend = get_storage_backend()
        logger.info("Storage backend ready", extra={"backend": backend.name})
    except ValueError as e:
        logger.error("Storage backend not configured", extra={"error": str(e)})

    yield

    logger.info("Item Catalog API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Personal inventory catalog.

        ## Workflow

        1. **Photograph an item**: `POST /api/items`
           - Send 1-10 photos as multipart field `images` (or one as `image`)
           - The first photo is analyzed for name, category and resale value

        2. **Browse**: `GET /api/items`, `GET /api/items/{item_id}`

        3. **Show photos**: `GET /objects/...`
           - Every item lists its photos as `/objects/` paths in `imageUrls`
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    # Configure allowed origins via CORS_ORIGINS environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        items.router,
        prefix="/api/items",
        tags=["Items"],
    )

    app.include_router(
        objects.upload_router,
        prefix="/api/objects",
        tags=["Objects"],
    )

    app.include_router(
        objects.router,
        prefix="/objects",
        tags=["Objects"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Item Catalog API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        """Render domain errors as {"error": ..., "code": ...}."""
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "code": exc.code,
                    "error": exc.message,
                },
            )

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "code": exc.code},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Logs the full error server-side and returns a generic message, so
        stack traces and internal addresses never reach clients.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error. Please try again later.",
                "code": "INTERNAL_ERROR",
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "catalog.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
