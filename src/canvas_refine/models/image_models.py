"""
Image API data models for the request/response cycle.

These models are internal to the client layer and carry the raw exchange with
the image-edit endpoint. Classification of a response into retry / fallback /
success decisions happens in the retry layer, not here.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from canvas_refine.models.enums import ImageQuality, ImageSize


class ImageEditRequest(BaseModel):
    """
    Standardized image-edit request.

    One request is built per attempt; only the size differs between
    candidates of the same generation.
    """
    model_config = ConfigDict(frozen=True)

    model: str = Field(..., description="Image model identifier (e.g., 'gpt-image-1.5')")
    prompt: str = Field(..., min_length=1, description="Free-text edit instruction")
    size: ImageSize = Field(default=ImageSize.AUTO, description="Requested output size token")
    quality: ImageQuality = Field(default=ImageQuality.HIGH, description="Requested rendering quality")
    image: bytes = Field(..., repr=False, description="Input image payload (PNG)")
    filename: str = Field(default="input.png", description="Filename sent with the multipart image part")
    mime_type: str = Field(default="image/png", description="MIME type of the image part")


class ImageEditResponse(BaseModel):
    """
    Raw outcome of one image-edit HTTP exchange.

    Non-2xx responses are returned, not raised: the retry engine decides
    whether a status is retryable, terminal for the current size, or fatal.
    """
    model_config = ConfigDict(frozen=True)

    status_code: int = Field(..., ge=100, description="HTTP status code (any value the server sent)")
    retry_after: Optional[str] = Field(
        default=None,
        description="Raw Retry-After header value, if the server sent one",
    )
    body_text: str = Field(default="", description="Response body as text (error details)")
    payload: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Parsed JSON body for 2xx responses (None if not valid JSON)",
    )
    latency_ms: int = Field(default=0, ge=0, description="Round-trip latency in milliseconds")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_rate_limited(self) -> bool:
        """429 and every 5xx are treated as transient server pressure."""
        return self.status_code == 429 or self.status_code >= 500
