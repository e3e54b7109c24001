"""
FastAPI API routes and endpoints.

- routes_sync.py: Synchronous endpoints (POST /refine, GET /health, PUT /settings/api-key)
- routes_async.py: Background job endpoints (POST /refine/jobs, GET /refine/jobs/{id}[/result])
- dependencies.py: Dependency injection for image client, workspace, job registry, etc.
- models.py: API-specific request/response models
- error_handlers.py: Exception handlers for structured error responses
"""

from canvas_refine.api import dependencies, error_handlers, models
from canvas_refine.api.routes_async import router as async_router
from canvas_refine.api.routes_sync import router as sync_router

__all__ = [
    "sync_router",
    "async_router",
    "dependencies",
    "error_handlers",
    "models",
]
