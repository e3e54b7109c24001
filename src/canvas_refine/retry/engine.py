"""
Generation engine: retry, backoff and size fallback around the image client.

This module implements the GenerationEngine that turns one (image, prompt)
pair into one generated image written to the workspace, or one final failure.

Retry Policy:
    For each size candidate ("auto" then a fixed fallback, or a single fixed
    size), up to MAX_ATTEMPTS attempts:
    1. 429 / 5xx: sleep the server-hinted wait (+ jitter), retry same size
    2. Other non-2xx: record the error, move to the next size
    3. 2xx without an image: record the error, move to the next size
    4. 2xx with an image: write it once and return
    5. Client exception: retry with exponential delay only if it signals
       rate limiting, otherwise move to the next size
    When every size is exhausted: raise GenerationExhausted.

Usage:
    engine = GenerationEngine(client, workspace, settings)
    result = await engine.generate(image_bytes, prompt)
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

import structlog

from canvas_refine.client.base_client import BaseImageClient
from canvas_refine.client.exceptions import ImageClientError, ImageRateLimitError
from canvas_refine.config import Settings
from canvas_refine.models.enums import ImageQuality, ImageSize
from canvas_refine.models.image_models import ImageEditRequest
from canvas_refine.monitoring.metrics import (
    generation_latency_seconds,
    generations_total,
    image_requests_total,
    retries_total,
    size_fallbacks_total,
)
from canvas_refine.persistence.workspace import Workspace
from canvas_refine.retry.backoff import BackoffPolicy
from canvas_refine.retry.exceptions import GenerationExhausted
from canvas_refine.retry.metadata import GenerationMetadata, GenerationResult
from canvas_refine.retry.outcomes import (
    Malformed,
    RetryableFailure,
    Success,
    TerminalFailure,
    classify_response,
    is_retryable_exception,
)
from canvas_refine.retry.sequencer import RequestCandidate, build_candidates

logger = structlog.get_logger(__name__)

StatusCallback = Callable[[str, bool], None]
SleepFunc = Callable[[float], Awaitable[None]]


class GenerationEngine:
    """
    Orchestrates attempts, backoff and size fallback for one generation.

    The engine is stateless between calls: RetryState lives on the stack of
    generate() and is rebuilt for every size candidate, so one engine instance
    can be shared.

    Attributes:
        client: Image client issuing the remote calls
        workspace: Work folder receiving the generated image
        backoff: Backoff policy (hint waits, exponential counter, jitter)
        max_attempts: Attempts per size candidate
    """

    def __init__(
        self,
        client: BaseImageClient,
        workspace: Workspace,
        settings: Settings,
        backoff: Optional[BackoffPolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Initialize generation engine.

        Args:
            client: Image client for remote calls
            workspace: Work folder for the output image
            settings: Application settings
            backoff: Backoff policy (built from settings if omitted)
            sleep: Coroutine used for every wait (tests inject a recorder)
        """
        self.client = client
        self.workspace = workspace
        self.backoff = backoff or BackoffPolicy.from_settings(settings)
        self.max_attempts = settings.MAX_ATTEMPTS
        self.model = settings.IMAGE_MODEL
        self.quality = ImageQuality(settings.IMAGE_QUALITY)
        self.size_preference = ImageSize(settings.IMAGE_SIZE)
        self.fallback_size = ImageSize(settings.FALLBACK_SIZE)
        self._sleep = sleep

        logger.info(
            "GenerationEngine initialized",
            model=self.model,
            quality=self.quality.value,
            size_preference=self.size_preference.value,
            fallback_size=self.fallback_size.value,
            max_attempts=self.max_attempts,
            backoff=repr(self.backoff),
        )

    def build_request(
        self, candidate: RequestCandidate, image_bytes: bytes, prompt: str
    ) -> ImageEditRequest:
        return ImageEditRequest(
            model=self.model,
            prompt=prompt,
            size=candidate.size,
            quality=self.quality,
            image=image_bytes,
        )

    async def generate(
        self,
        image_bytes: bytes,
        prompt: str,
        *,
        size: Optional[ImageSize] = None,
        api_key: Optional[str] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> GenerationResult:
        """
        Generate one image, retrying and falling back across sizes.

        Args:
            image_bytes: Input image (PNG)
            prompt: Edit instruction
            size: Size preference (defaults to IMAGE_SIZE)
            api_key: Credential override for the client
            on_status: Receives (message, is_error) for user-facing status text

        Returns:
            GenerationResult with the written output path

        Raises:
            GenerationExhausted: Every size candidate failed
        """
        start_time = time.time()
        candidates = build_candidates(size or self.size_preference, self.fallback_size)
        last_error: Optional[Exception] = None
        failures: list[str] = []
        sizes_tried: list[str] = []
        total_attempts = 0

        logger.info(
            "Starting generation",
            sizes=[c.size.value for c in candidates],
            image_bytes=len(image_bytes),
            prompt_length=len(prompt),
        )

        for candidate in candidates:
            size_token = candidate.size.value
            sizes_tried.append(size_token)
            request = self.build_request(candidate, image_bytes, prompt)
            state = self.backoff.new_state()

            while state.attempt <= self.max_attempts:
                total_attempts += 1

                try:
                    response = await self.client.edit_image(request, api_key=api_key)
                except ImageClientError as e:
                    last_error = e
                    failures.append(str(e))
                    image_requests_total.labels(size=size_token, outcome="client_error").inc()

                    if not is_retryable_exception(e):
                        logger.warning(
                            "Client error, abandoning size",
                            size=size_token,
                            attempt=state.attempt,
                            error_type=type(e).__name__,
                            error=str(e),
                        )
                        break

                    wait_ms = self.backoff.exponential_wait_ms(state.delay_ms)
                    retries_total.labels(reason="client_error").inc()
                    logger.warning(
                        "Retryable client error, backing off",
                        size=size_token,
                        attempt=state.attempt,
                        delay_ms=state.delay_ms,
                        wait_ms=wait_ms,
                        error=str(e),
                    )
                    await self._sleep_ms(wait_ms)
                    state.advance(self.backoff)
                    continue

                outcome = classify_response(response)

                if isinstance(outcome, RetryableFailure):
                    message = self._rate_limit_message(outcome.wait_seconds, state.attempt, size_token)
                    last_error = ImageRateLimitError(
                        message,
                        status_code=outcome.status_code,
                        wait_seconds=outcome.wait_seconds,
                    )
                    failures.append(message)
                    image_requests_total.labels(size=size_token, outcome="rate_limited").inc()
                    retries_total.labels(reason="rate_limited").inc()
                    self._emit(on_status, message, True)

                    # Server hint decides the sleep; the exponential counter still
                    # advances for the client-exception path.
                    wait_ms = self.backoff.hint_wait_ms(outcome.wait_seconds)
                    logger.warning(
                        "Rate limited, waiting for server hint",
                        size=size_token,
                        attempt=state.attempt,
                        status_code=outcome.status_code,
                        wait_seconds=outcome.wait_seconds,
                        wait_ms=wait_ms,
                    )
                    await self._sleep_ms(wait_ms)
                    state.advance(self.backoff)
                    continue

                if isinstance(outcome, (TerminalFailure, Malformed)):
                    last_error = outcome.error
                    failures.append(str(outcome.error))
                    image_requests_total.labels(
                        size=size_token,
                        outcome="rejected" if isinstance(outcome, TerminalFailure) else "malformed",
                    ).inc()
                    logger.warning(
                        "Attempt failed, abandoning size",
                        size=size_token,
                        attempt=state.attempt,
                        error_type=type(outcome.error).__name__,
                        error_details=outcome.error.details,
                    )
                    break

                assert isinstance(outcome, Success)
                image_requests_total.labels(size=size_token, outcome="success").inc()
                output_path = self.workspace.write_output(outcome.artifact)

                total_latency_ms = int((time.time() - start_time) * 1000)
                metadata = GenerationMetadata(
                    total_attempts=total_attempts,
                    sizes_tried=sizes_tried,
                    final_size=size_token,
                    total_latency_ms=total_latency_ms,
                    failures=failures,
                )
                generations_total.labels(result="success").inc()
                generation_latency_seconds.labels(success="true").observe(total_latency_ms / 1000.0)

                logger.info(
                    "Generation succeeded",
                    size=size_token,
                    attempt=state.attempt,
                    total_attempts=total_attempts,
                    total_latency_ms=total_latency_ms,
                    output_path=str(output_path),
                )
                return GenerationResult(
                    output_path=output_path,
                    size=candidate.size,
                    metadata=metadata,
                )

            self._emit(
                on_status,
                f"Could not generate at {size_token}. Trying another size if available.",
                True,
            )
            if candidate is not candidates[-1]:
                size_fallbacks_total.labels(from_size=size_token).inc()
                logger.warning(
                    "Falling back to next size",
                    from_size=size_token,
                    to_size=candidates[candidate.position + 1].size.value,
                    attempts_used=min(state.attempt, self.max_attempts),
                )

        total_latency_ms = int((time.time() - start_time) * 1000)
        metadata = GenerationMetadata(
            total_attempts=total_attempts,
            sizes_tried=sizes_tried,
            final_size=sizes_tried[-1],
            total_latency_ms=total_latency_ms,
            failures=failures,
        )
        generations_total.labels(result="exhausted").inc()
        generation_latency_seconds.labels(success="false").observe(total_latency_ms / 1000.0)

        logger.error(
            "All sizes and attempts exhausted",
            total_attempts=total_attempts,
            sizes_tried=sizes_tried,
            total_latency_ms=total_latency_ms,
            final_error_type=type(last_error).__name__ if last_error else "unknown",
        )

        raise GenerationExhausted(last_error=last_error, metadata=metadata)

    def _rate_limit_message(self, wait_seconds: int, attempt: int, size_token: str) -> str:
        if attempt < self.max_attempts:
            return (
                f"Rate limited. Waiting {wait_seconds} seconds before retry "
                f"{attempt + 1} of {self.max_attempts} on {size_token}."
            )
        return (
            f"Rate limited on {size_token} after {self.max_attempts} attempts. "
            f"Waiting {wait_seconds} seconds."
        )

    async def _sleep_ms(self, wait_ms: int) -> None:
        await self._sleep(wait_ms / 1000.0)

    @staticmethod
    def _emit(on_status: Optional[StatusCallback], message: str, is_error: bool) -> None:
        if on_status is not None:
            on_status(message, is_error)
