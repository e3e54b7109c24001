"""
Classification of a single image-edit attempt.

Every attempt produces exactly one AttemptOutcome:

- Success: 2xx with a decodable data[0].b64_json image
- RetryableFailure: 429 or 5xx, with the server-hinted wait in seconds
- TerminalFailure: any other non-2xx status (ends the current size)
- Malformed: 2xx without a decodable image (ends the current size)
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Union

from canvas_refine.client.exceptions import (
    ImageClientError,
    ImageRateLimitError,
    ImageRejectedError,
    MalformedResponseError,
)
from canvas_refine.models.image_models import ImageEditResponse
from canvas_refine.retry.backoff import retry_after_from_hint

NO_IMAGE_MESSAGE = "No image returned."

_RETRYABLE_MESSAGE_PATTERN = re.compile(r"rate limited|429|retry", re.IGNORECASE)


@dataclass(frozen=True)
class Success:
    artifact: bytes


@dataclass(frozen=True)
class RetryableFailure:
    wait_seconds: int
    status_code: int
    body_text: str = ""


@dataclass(frozen=True)
class TerminalFailure:
    error: ImageClientError


@dataclass(frozen=True)
class Malformed:
    error: MalformedResponseError


AttemptOutcome = Union[Success, RetryableFailure, TerminalFailure, Malformed]


def classify_response(response: ImageEditResponse) -> AttemptOutcome:
    """Map one HTTP outcome to the action the retry engine should take."""
    if response.is_rate_limited:
        return RetryableFailure(
            wait_seconds=retry_after_from_hint(response.retry_after, response.body_text),
            status_code=response.status_code,
            body_text=response.body_text,
        )

    if not response.is_success:
        return TerminalFailure(
            error=ImageRejectedError(
                f"Image API error {response.status_code}. {response.body_text}",
                status_code=response.status_code,
                details={"body": response.body_text[:2000]},
            )
        )

    b64_image = _extract_b64_image(response.payload)
    if not b64_image:
        return Malformed(
            error=MalformedResponseError(
                NO_IMAGE_MESSAGE, details={"status": response.status_code}
            )
        )

    try:
        artifact = base64.b64decode(b64_image, validate=True)
    except (binascii.Error, ValueError) as e:
        return Malformed(
            error=MalformedResponseError(
                NO_IMAGE_MESSAGE, details={"decode_error": str(e)}
            )
        )
    if not artifact:
        return Malformed(error=MalformedResponseError(NO_IMAGE_MESSAGE))

    return Success(artifact=artifact)


def is_retryable_exception(exc: BaseException) -> bool:
    """
    Decide whether a client-side exception is worth another attempt.

    Only rate-limit signals qualify: an ImageRateLimitError, or an error whose
    message mentions rate limiting, a 429, or a retry. Plain network failures
    end the current size candidate.
    """
    if isinstance(exc, ImageRateLimitError):
        return True
    return bool(_RETRYABLE_MESSAGE_PATTERN.search(str(exc)))


def _extract_b64_image(payload: dict | None) -> str | None:
    if not payload:
        return None
    data = payload.get("data")
    if not isinstance(data, list) or not data:
        return None
    first = data[0]
    if not isinstance(first, dict):
        return None
    value = first.get("b64_json")
    return value if isinstance(value, str) and value else None
