"""
Background job routes for refine with pollable progress.

Jobs run as in-process asyncio tasks managed by the JobRegistry; only one
generation runs at a time, so a submission while busy is rejected with 409.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Response, status

from canvas_refine.api.dependencies import get_job_registry
from canvas_refine.api.models import (
    ErrorResponse,
    GenerationInfo,
    JobStatusResponse,
    JobSubmitResponse,
    RefineRequest,
)
from canvas_refine.client.prompts import resolve_prompt
from canvas_refine.models.enums import JobStatus
from canvas_refine.monitoring.metrics import refine_requests_total
from canvas_refine.tasks.host import BytesDocument
from canvas_refine.tasks.jobs import JobRecord, JobRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

JOBS_PREFIX = "/refine/jobs"


def _status_response(record: JobRecord) -> JobStatusResponse:
    succeeded = record.status is JobStatus.SUCCESS
    return JobStatusResponse(
        job_id=record.job_id,
        mode=record.mode_label,
        status=record.status,
        percent=record.percent,
        message=record.message,
        error=record.error,
        layer_name=record.layer_name,
        size=record.size,
        result_url=f"{JOBS_PREFIX}/{record.job_id}/result" if succeeded else None,
        generation=GenerationInfo(**asdict(record.metadata)) if record.metadata is not None else None,
        created_at=record.created_at,
        finished_at=record.finished_at,
    )


@router.post(
    "",
    response_model=JobSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a refine job (asynchronous)",
    description="""
    Start a refine in the background and return its job id immediately.

    Poll GET /refine/jobs/{job_id} for progress (estimated percent and the
    latest status message) and fetch the PNG from
    GET /refine/jobs/{job_id}/result once the job succeeded.
    """,
    responses={
        202: {"description": "Job accepted"},
        400: {"model": ErrorResponse, "description": "Invalid request or missing API key"},
        409: {"model": ErrorResponse, "description": "Another generation is running"},
    },
)
async def submit_job(
    request: RefineRequest,
    registry: JobRegistry = Depends(get_job_registry),
) -> JobSubmitResponse:
    """
    Submit a refine job.

    Args:
        request: Input image, preset and optional custom prompt
        registry: Job registry (injected)

    Returns:
        JobSubmitResponse with the job id and its status URL
    """
    try:
        record = registry.submit(
            BytesDocument(request.image_bytes()),
            resolve_prompt(request.preset, request.prompt),
            mode_label=request.preset.label,
            size=request.size,
        )
    except Exception:
        refine_requests_total.labels(endpoint="refine_jobs", status="error").inc()
        raise

    refine_requests_total.labels(endpoint="refine_jobs", status="accepted").inc()
    logger.info(
        "Refine job accepted",
        extra={"job_id": record.job_id, "preset": request.preset.value},
    )

    return JobSubmitResponse(
        job_id=record.job_id,
        status=record.status,
        status_url=f"{JOBS_PREFIX}/{record.job_id}",
        submitted_at=record.created_at,
    )


@router.get(
    "/{job_id}",
    response_model=JobStatusResponse,
    summary="Check job status",
    description="""
    Check the status of a refine job.

    Possible states:
    - PENDING: Job accepted, not started yet
    - RUNNING: Generation in progress (percent is an estimate, at most 99)
    - SUCCESS: Image ready (percent is 100, result_url is set)
    - FAILURE: Every attempt failed (error is set)
    """,
    responses={
        200: {"description": "Job status retrieved"},
        404: {"model": ErrorResponse, "description": "Job not found"},
    },
)
async def get_job_status(
    job_id: str,
    registry: JobRegistry = Depends(get_job_registry),
) -> JobStatusResponse:
    record = registry.get(job_id)
    return _status_response(record)


@router.get(
    "/{job_id}/result",
    summary="Get job result image",
    description="""
    Return the generated image as PNG bytes.

    Returns 200 with the image if the job succeeded.
    Returns 202 if the job is still running.
    Returns 404 if the job is not found.
    Returns 502 if the job failed.
    """,
    responses={
        200: {"content": {"image/png": {}}, "description": "Generated image"},
        202: {"description": "Job still running"},
        404: {"model": ErrorResponse, "description": "Job not found"},
        502: {"description": "Job failed"},
    },
)
async def get_job_result(
    job_id: str,
    registry: JobRegistry = Depends(get_job_registry),
) -> Response:
    """
    Get the result image of a finished job.

    Args:
        job_id: Job identifier

    Returns:
        PNG response with the layer name in X-Layer-Name
    """
    record = registry.get(job_id)

    if record.status is JobStatus.SUCCESS and record.result is not None:
        logger.info("Job result retrieved", extra={"job_id": job_id})
        return Response(
            content=record.result,
            media_type="image/png",
            headers={"X-Layer-Name": record.layer_name or ""},
        )

    if record.status is JobStatus.FAILURE:
        logger.warning(
            "Job result requested for failed job",
            extra={"job_id": job_id, "error": record.error},
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Job failed: {record.error}",
        )

    logger.info(
        "Job still running",
        extra={"job_id": job_id, "state": record.status.value},
    )
    raise HTTPException(
        status_code=status.HTTP_202_ACCEPTED,
        detail=f"Job still running (state: {record.status.value}, {record.percent}%)",
    )
