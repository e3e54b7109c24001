"""
Abstract base client for image-edit APIs.

Defines the interface every image client implementation must adhere to, so the
retry engine can run against the real HTTP client or a test double unchanged.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from canvas_refine.models.image_models import ImageEditRequest, ImageEditResponse


logger = structlog.get_logger(__name__)


class BaseImageClient(ABC):
    """
    Abstract base class for image-edit clients.

    Responsibilities:
    - Send one image-edit request to the remote API
    - Return the raw HTTP outcome (status, Retry-After, body, parsed JSON)
    - Translate transport failures into ImageClientError subclasses

    Does NOT handle:
    - Retry, backoff or size fallback (that's GenerationEngine's job)
    - Decoding the returned image (that's the response classifier's job)
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 180,
        **kwargs
    ):
        """
        Initialize base client.

        Args:
            base_url: Base URL of the image API (e.g., https://api.openai.com/v1)
            api_key: Default bearer credential (can be overridden per call)
            timeout: Request timeout in seconds
            **kwargs: Additional provider-specific config
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.extra_config = kwargs

        logger.info(
            "Initialized image client",
            client_class=self.__class__.__name__,
            base_url=self.base_url,
            timeout=timeout,
            has_api_key=bool(api_key),
        )

    @abstractmethod
    async def edit_image(
        self, request: ImageEditRequest, api_key: Optional[str] = None
    ) -> ImageEditResponse:
        """
        Submit one image-edit request.

        Implementations must return the response for every HTTP status
        (including 4xx/5xx) and raise only for client-side failures.

        Args:
            request: Standardized edit request
            api_key: Bearer credential for this call (falls back to self.api_key)

        Returns:
            ImageEditResponse with status, hint header, body and parsed payload

        Raises:
            MissingCredentialError: No credential available
            ImageConnectionError: Network failure
            ImageTimeoutError: Request exceeded timeout
        """
        pass

    @abstractmethod
    async def health_check(self, api_key: Optional[str] = None) -> bool:
        """
        Check if the image API is reachable with the given credential.

        Returns:
            True if reachable, False otherwise

        Note:
            This should NOT raise exceptions - return False on error.
        """
        pass

    async def close(self):
        """
        Close client connections and cleanup resources.

        Default implementation does nothing.
        """
        logger.debug("Closing image client", client_class=self.__class__.__name__)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url}, "
            f"timeout={self.timeout}s)"
        )
