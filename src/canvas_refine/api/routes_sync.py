"""
Synchronous API routes: health, API key, and inline refine.

POST /refine holds the HTTP request open for the whole generation (often
60-90 seconds). Callers that want progress should use the job routes instead.
"""

import base64
import logging
import time
from dataclasses import asdict

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from canvas_refine.api.dependencies import (
    get_credential_store,
    get_image_client,
    get_job_registry,
    get_settings,
    get_workspace,
)
from canvas_refine.api.models import (
    ApiKeyRequest,
    ErrorResponse,
    GenerationInfo,
    HealthResponse,
    RefineRequest,
    RefineResponse,
)
from canvas_refine.client.base_client import BaseImageClient
from canvas_refine.client.prompts import resolve_prompt
from canvas_refine.config import Settings
from canvas_refine.monitoring.metrics import refine_requests_total
from canvas_refine.persistence.credential_store import CredentialStore
from canvas_refine.persistence.workspace import Workspace
from canvas_refine.tasks.host import BytesDocument
from canvas_refine.tasks.jobs import JobRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/refine",
    response_model=RefineResponse,
    status_code=status.HTTP_200_OK,
    summary="Refine an image (synchronous)",
    description="""
    Run one refine end to end: store the input, call the image API with
    retries and size fallback, and return the generated image.

    The request blocks until the image is ready or every attempt failed.
    For pollable progress, use POST /refine/jobs instead.
    """,
    responses={
        200: {"description": "Image generated"},
        400: {"model": ErrorResponse, "description": "Invalid request or missing API key"},
        409: {"model": ErrorResponse, "description": "Another generation is running"},
        502: {"model": ErrorResponse, "description": "Every size and attempt failed"},
    },
)
async def refine_image(
    request: RefineRequest,
    registry: JobRegistry = Depends(get_job_registry),
) -> RefineResponse:
    """
    Refine an image synchronously.

    Args:
        request: Input image, preset and optional custom prompt
        registry: Job registry (injected)

    Returns:
        RefineResponse with the generated image and attempt history
    """
    start_time = time.time()
    prompt = resolve_prompt(request.preset, request.prompt)

    logger.info(
        "Refine request received",
        extra={
            "preset": request.preset.value,
            "custom_prompt": bool(request.prompt and request.prompt.strip()),
            "size": request.size.value if request.size else None,
        },
    )

    try:
        record = await registry.run(
            BytesDocument(request.image_bytes()),
            prompt,
            mode_label=request.preset.label,
            size=request.size,
        )
    except Exception as exc:
        refine_requests_total.labels(endpoint="refine", status="error").inc()
        logger.error(
            "Refine failed",
            extra={"error_type": type(exc).__name__},
        )
        # Re-raise for exception handlers
        raise

    refine_requests_total.labels(endpoint="refine", status="success").inc()
    logger.info(
        "Refine completed",
        extra={
            "job_id": record.job_id,
            "size": record.size,
            "duration_ms": int((time.time() - start_time) * 1000),
        },
    )

    return RefineResponse(
        status="success",
        job_id=record.job_id,
        layer_name=record.layer_name,
        size=record.size,
        image_b64=base64.b64encode(record.result).decode("ascii"),
        generation=GenerationInfo(**asdict(record.metadata)),
    )


@router.put(
    "/settings/api-key",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Store the image API key",
    description="""
    Persist the OpenAI API key in the work folder. It survives restarts.
    An OPENAI_API_KEY environment setting still takes precedence.
    """,
    responses={
        204: {"description": "Key stored"},
        400: {"model": ErrorResponse, "description": "Blank key"},
    },
)
async def set_api_key(
    request: ApiKeyRequest,
    credentials: CredentialStore = Depends(get_credential_store),
) -> Response:
    credentials.save(request.api_key)
    logger.info("API key updated")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Check the health of the refine service.

    Returns status of:
    - Work folder (writable)
    - API key (configured)
    - Image API (reachable with the configured key)
    """,
    responses={
        200: {"description": "Service healthy or degraded"},
        503: {"description": "Work folder unusable"},
    },
)
async def health_check(
    settings: Settings = Depends(get_settings),
    workspace: Workspace = Depends(get_workspace),
    credentials: CredentialStore = Depends(get_credential_store),
    client: BaseImageClient = Depends(get_image_client),
    registry: JobRegistry = Depends(get_job_registry),
) -> JSONResponse:
    """
    Check health of all components.

    Returns:
        HealthResponse with component statuses
    """
    services = {}

    services["workspace"] = "ok" if workspace.is_writable() else "not_writable"

    api_key = credentials.load()
    if not api_key:
        services["api_key"] = "not_configured"
        services["image_api"] = "not_checked"
    else:
        services["api_key"] = "ok"
        services["image_api"] = "ok" if await client.health_check(api_key=api_key) else "unreachable"

    if services["workspace"] != "ok":
        health_status = "unhealthy"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif all(value == "ok" for value in services.values()):
        health_status = "healthy"
        status_code = status.HTTP_200_OK
    else:
        health_status = "degraded"
        status_code = status.HTTP_200_OK

    logger.info(
        "Health check",
        extra={"status": health_status, "services": services},
    )

    response = HealthResponse(
        status=health_status,
        version=settings.APP_VERSION,
        services=services,
        busy=registry.is_busy(),
    )

    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json"),
    )
