"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import base64
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest

from canvas_refine.config import Settings
from canvas_refine.models.image_models import ImageEditResponse

# Smallest valid PNG: 1x1 transparent pixel
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)

GENERATED_BYTES = b"\x89PNG\r\n\x1a\ngenerated-image"


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Test settings with safe defaults for local testing.

    The work folder lives under tmp_path, the environment key is cleared and
    metrics are disabled. Override specific settings in individual tests:
        def test_something(test_settings):
            test_settings.MAX_ATTEMPTS = 2
    """
    return Settings(
        # === Application ===
        APP_NAME="Canvas Refine (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Image API ===
        OPENAI_BASE_URL="https://api.test/v1",
        OPENAI_API_KEY=None,
        IMAGE_MODEL="gpt-image-1.5",
        IMAGE_QUALITY="high",
        IMAGE_SIZE="auto",
        FALLBACK_SIZE="1024x1024",
        REQUEST_TIMEOUT=5,

        # === Retry & Backoff ===
        MAX_ATTEMPTS=5,
        INITIAL_BACKOFF_MS=1000,
        MAX_BACKOFF_MS=16000,
        MAX_JITTER_MS=250,

        # === Progress ===
        PROGRESS_TICK_MS=150,
        ESTIMATED_DURATION_MS=90000,

        # === Workspace ===
        WORK_DIR=tmp_path / "work",

        # === Monitoring ===
        PROMETHEUS_ENABLED=False,
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A tiny valid PNG used as the exported canvas."""
    return PNG_BYTES


@pytest.fixture
def generated_bytes() -> bytes:
    """Bytes the fake image API returns as the generated image."""
    return GENERATED_BYTES


@pytest.fixture
def make_response() -> Callable[..., ImageEditResponse]:
    """Factory for ImageEditResponse objects.

    Usage:
        make_response(200, image=b"...")
        make_response(429, retry_after="2")
        make_response(400, body_text="bad size")
    """

    def _make(
        status_code: int = 200,
        *,
        image: Optional[bytes] = None,
        payload: Optional[Dict[str, Any]] = None,
        retry_after: Optional[str] = None,
        body_text: str = "",
    ) -> ImageEditResponse:
        if image is not None:
            payload = {"data": [{"b64_json": base64.b64encode(image).decode("ascii")}]}
        return ImageEditResponse(
            status_code=status_code,
            retry_after=retry_after,
            body_text=body_text,
            payload=payload,
            latency_ms=10,
        )

    return _make
