"""
API-specific request and response models for FastAPI endpoints.

Images travel as base64 strings inside JSON bodies, except for the job
result endpoint which streams raw PNG bytes.
"""

import base64
import binascii
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from canvas_refine.models.enums import ImageSize, JobStatus, RefinePreset


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefineRequest(BaseModel):
    """Request for the synchronous and background refine endpoints."""

    image_b64: str = Field(
        min_length=1,
        description="Flattened canvas as a base64-encoded PNG",
    )
    preset: RefinePreset = Field(
        default=RefinePreset.UPSCALE,
        description="Built-in refine mode",
        examples=["upscale", "restore"],
    )
    prompt: Optional[str] = Field(
        default=None,
        max_length=32000,
        description="Custom instruction replacing the preset prompt",
    )
    size: Optional[ImageSize] = Field(
        default=None,
        description="Size preference; 'auto' falls back to a fixed size when rejected",
        examples=["auto", "1024x1024"],
    )

    @field_validator("image_b64")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        try:
            decoded = base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("image_b64 is not valid base64") from e
        if not decoded:
            raise ValueError("image_b64 decodes to an empty image")
        return v

    def image_bytes(self) -> bytes:
        return base64.b64decode(self.image_b64)


class GenerationInfo(BaseModel):
    """Attempt history of a generation."""

    total_attempts: int = Field(ge=0, description="Remote calls made across all sizes")
    sizes_tried: list[str] = Field(description="Size tokens attempted, in order")
    final_size: str = Field(description="Size that produced the image")
    total_latency_ms: int = Field(ge=0, description="Total generation time (ms)")
    failures: list[str] = Field(
        default_factory=list,
        description="Intermediate failure messages, oldest first",
    )


class RefineResponse(BaseModel):
    """Response for the synchronous refine endpoint."""

    status: str = Field(description="Request status", examples=["success"])
    job_id: str = Field(description="Identifier of the job record")
    layer_name: str = Field(description="Name of the inserted layer")
    size: ImageSize = Field(description="Size used for the generated image")
    image_b64: str = Field(description="Generated image as base64-encoded PNG")
    generation: GenerationInfo = Field(description="Attempt history")


class JobSubmitResponse(BaseModel):
    """Response for background job submission."""

    job_id: str = Field(description="Unique job identifier (UUID)")
    status: JobStatus = Field(description="Initial job status")
    status_url: str = Field(description="URL to poll for progress")
    submitted_at: datetime = Field(
        default_factory=_utcnow,
        description="Submission timestamp (UTC)",
    )


class JobStatusResponse(BaseModel):
    """Response for the job status endpoint."""

    job_id: str = Field(description="Job identifier")
    mode: str = Field(description="Refine mode label", examples=["Upscale"])
    status: JobStatus = Field(
        description="Job state",
        examples=["PENDING", "RUNNING", "SUCCESS", "FAILURE"],
    )
    percent: int = Field(ge=0, le=100, description="Estimated progress")
    message: str = Field(default="", description="Latest status message")
    error: Optional[str] = Field(
        default=None,
        description="Error message (present only if status=FAILURE)",
    )
    layer_name: Optional[str] = Field(default=None, description="Name of the inserted layer")
    size: Optional[ImageSize] = Field(default=None, description="Size used for the image")
    result_url: Optional[str] = Field(
        default=None,
        description="URL of the PNG result (present only if status=SUCCESS)",
    )
    generation: Optional[GenerationInfo] = Field(default=None, description="Attempt history")
    created_at: datetime = Field(description="Creation timestamp (UTC)")
    finished_at: Optional[datetime] = Field(default=None, description="Completion timestamp (UTC)")


class ApiKeyRequest(BaseModel):
    """Request for storing the image API key."""

    api_key: str = Field(min_length=1, description="OpenAI API key")

    @field_validator("api_key")
    @classmethod
    def strip_key(cls, v: str) -> str:
        key = v.strip()
        if not key:
            raise ValueError("api_key must not be blank")
        return key


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(
        description="Overall health status",
        examples=["healthy", "degraded", "unhealthy"],
    )
    version: str = Field(description="Service version", examples=["0.1.0"])
    services: dict[str, str] = Field(
        description="Component-specific health status",
        examples=[{"workspace": "ok", "api_key": "ok", "image_api": "ok"}],
    )
    busy: bool = Field(default=False, description="True while a generation is running")
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Health check timestamp (UTC)",
    )


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(
        description="Error code or type",
        examples=["generation_failed", "missing_credential", "job_conflict"],
    )
    message: str = Field(description="Human-readable error message")
    details: Optional[dict] = Field(
        default=None,
        description="Additional error details (e.g., attempt history)",
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Error timestamp (UTC)",
    )
