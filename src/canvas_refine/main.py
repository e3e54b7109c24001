"""
FastAPI application entry point for Canvas Refine.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from canvas_refine.api.dependencies import (
    get_credential_store,
    get_image_client,
    get_job_registry,
    get_workspace,
    reset_dependencies,
)
from canvas_refine.api.error_handlers import EXCEPTION_HANDLERS
from canvas_refine.api.middleware import RequestTracingMiddleware
from canvas_refine.api.routes_async import JOBS_PREFIX
from canvas_refine.api.routes_async import router as async_router
from canvas_refine.api.routes_sync import router as sync_router
from canvas_refine.config import settings
from canvas_refine.logging_config import configure_logging

# Logging is configured at import time so uvicorn workers inherit it
configure_logging(
    settings.LOG_LEVEL,
    settings.ENVIRONMENT,
    app_name=settings.APP_NAME,
    version=settings.APP_VERSION,
)
logger = structlog.get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Image refinement service: upscale and restore images through the OpenAI image-edit API",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request tracing middleware (must be first for request_id in all logs)
app.add_middleware(RequestTracingMiddleware)

# The host plugin calls from a local origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

# Include routers
app.include_router(sync_router, tags=["sync"])
app.include_router(async_router, prefix=JOBS_PREFIX, tags=["jobs"])


# Startup event
@app.on_event("startup")
async def startup():
    """Application startup - prepare the work folder and report configuration."""
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        openai_base_url=settings.OPENAI_BASE_URL,
        model=settings.IMAGE_MODEL,
        quality=settings.IMAGE_QUALITY,
        size=settings.IMAGE_SIZE,
    )

    workspace = get_workspace()
    if workspace.is_writable():
        logger.info("Work folder ready", path=str(workspace.root))
    else:
        logger.error("Work folder not writable", path=str(workspace.root))

    if get_credential_store().is_configured():
        logger.info("API key configured")
    else:
        logger.warning("API key not configured", hint="PUT /settings/api-key")

    logger.info("Application startup complete")


# Shutdown event
@app.on_event("shutdown")
async def shutdown():
    """Application shutdown - wait for running jobs, close the HTTP pool."""
    logger.info("Application shutdown")
    await get_job_registry().shutdown()
    await get_image_client().close()
    reset_dependencies()
    logger.info("Application shutdown complete")


# Prometheus metrics instrumentation
if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Root endpoint with API documentation links."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "refine": "/refine",
        "jobs": JOBS_PREFIX,
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


def run(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve the API (localhost by default)."""
    import uvicorn

    uvicorn.run(
        "canvas_refine.main:app",
        host=host,
        port=port,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
