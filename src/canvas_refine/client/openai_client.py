"""
OpenAI image-edit client implementation.

Communicates with the OpenAI Images API using httpx AsyncClient. Supports:
- Multipart upload of the input image with prompt, size, quality and model
- Bearer authentication with a per-call credential override
- Connection pooling via a persistent client
- Health check against the models listing
"""

import time
from typing import Optional

import httpx
import structlog

from canvas_refine.client.base_client import BaseImageClient
from canvas_refine.client.exceptions import (
    ImageConnectionError,
    ImageTimeoutError,
    MissingCredentialError,
)
from canvas_refine.models.image_models import ImageEditRequest, ImageEditResponse
from canvas_refine.monitoring.metrics import image_api_latency_seconds


logger = structlog.get_logger(__name__)


class OpenAIImageClient(BaseImageClient):
    """
    OpenAI-specific image client using httpx for async HTTP communication.

    API Endpoints:
    - POST /images/edits: Edit an image from a prompt (multipart/form-data)
    - GET /models: Lightweight reachability/credential check

    The client performs exactly one HTTP exchange per edit_image call.
    Retries live in the retry engine so that every attempt is visible there.
    """

    EDITS_PATH = "/images/edits"
    MODELS_PATH = "/models"

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        api_key: Optional[str] = None,
        timeout: int = 180,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs
    ):
        """
        Initialize OpenAI image client.

        Args:
            base_url: OpenAI API base URL
            api_key: Default bearer credential
            timeout: Request timeout in seconds
            connection_limits: httpx connection pool limits (default: 2 max connections)
            transport: Optional httpx transport (tests pass httpx.MockTransport)
            **kwargs: Additional config
        """
        super().__init__(base_url, api_key, timeout, **kwargs)

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=1,
                max_connections=2,
                keepalive_expiry=30.0
            )

        self._client: Optional[httpx.AsyncClient] = None
        self._connection_limits = connection_limits
        self._transport = transport

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
                follow_redirects=True
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client

    def _auth_headers(self, api_key: Optional[str]) -> dict[str, str]:
        key = (api_key or self.api_key or "").strip()
        if not key:
            raise MissingCredentialError("No API key configured for the image API")
        return {"Authorization": f"Bearer {key}"}

    async def edit_image(
        self, request: ImageEditRequest, api_key: Optional[str] = None
    ) -> ImageEditResponse:
        """
        Edit an image using the OpenAI Images API.

        POST /images/edits (multipart/form-data):
            model=gpt-image-1.5, prompt=..., size=auto, quality=high,
            image=<input.png>

        Success response:
        {
            "created": 1760000000,
            "data": [{"b64_json": "iVBORw0KGgo..."}]
        }
        """
        headers = self._auth_headers(api_key)
        form = {
            "model": request.model,
            "prompt": request.prompt,
            "size": request.size.value,
            "quality": request.quality.value,
        }
        files = {"image": (request.filename, request.image, request.mime_type)}

        logger.info(
            "Sending image edit request",
            model=request.model,
            size=request.size.value,
            quality=request.quality.value,
            prompt_length=len(request.prompt),
            image_bytes=len(request.image),
        )

        start_time = time.time()
        try:
            client = await self._get_client()
            response = await client.post(
                self.EDITS_PATH,
                data=form,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("Image edit request timeout", timeout=self.timeout, error=str(e))
            raise ImageTimeoutError(
                f"Request timeout after {self.timeout}s",
                details={"timeout": self.timeout, "error_type": type(e).__name__},
            ) from e
        except httpx.RequestError as e:
            logger.warning("Image edit network error", error=str(e))
            raise ImageConnectionError(
                f"Network error: {str(e)}",
                details={"error_type": type(e).__name__},
            ) from e

        latency_ms = int((time.time() - start_time) * 1000)
        image_api_latency_seconds.labels(
            model=request.model, status_class=f"{response.status_code // 100}xx"
        ).observe(latency_ms / 1000.0)

        payload = None
        if response.is_success:
            try:
                parsed = response.json()
            except ValueError:
                logger.error("Image API returned non-JSON success body", status_code=response.status_code)
                parsed = None
            payload = parsed if isinstance(parsed, dict) else None

        logger.info(
            "Image edit response received",
            status_code=response.status_code,
            latency_ms=latency_ms,
            retry_after=response.headers.get("retry-after"),
        )

        return ImageEditResponse(
            status_code=response.status_code,
            retry_after=response.headers.get("retry-after"),
            body_text="" if payload is not None else response.text,
            payload=payload,
            latency_ms=latency_ms,
        )

    async def health_check(self, api_key: Optional[str] = None) -> bool:
        """
        Check image API reachability via GET /models.

        Returns True if the server accepts the credential, False otherwise.
        """
        try:
            headers = self._auth_headers(api_key)
            client = await self._get_client()
            response = await client.get(self.MODELS_PATH, headers=headers, timeout=10.0)
            response.raise_for_status()
            logger.debug("Image API health check passed")
            return True
        except (MissingCredentialError, httpx.HTTPError) as e:
            logger.warning("Image API health check failed", error=str(e))
            return False

    async def close(self):
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed image client connection")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
