"""
Image client abstraction and implementations.

Components:
- BaseImageClient: Abstract base class for image-edit clients
- OpenAIImageClient: httpx implementation for the OpenAI Images API
- prompts: Built-in preset instructions
- exceptions: Client-level exceptions
"""

from canvas_refine.client.base_client import BaseImageClient
from canvas_refine.client.exceptions import (
    ImageClientError,
    ImageConnectionError,
    ImageRateLimitError,
    ImageRejectedError,
    ImageTimeoutError,
    MalformedResponseError,
    MissingCredentialError,
)
from canvas_refine.client.openai_client import OpenAIImageClient
from canvas_refine.client.prompts import PRESET_PROMPTS, resolve_prompt

__all__ = [
    "BaseImageClient",
    "OpenAIImageClient",
    "PRESET_PROMPTS",
    "resolve_prompt",
    "ImageClientError",
    "ImageConnectionError",
    "ImageRateLimitError",
    "ImageRejectedError",
    "ImageTimeoutError",
    "MalformedResponseError",
    "MissingCredentialError",
]
