"""
Retry engine with size fallback.

This module implements the retry/fallback policy for image generation:

1. **Server-hinted retry**: 429/5xx responses wait for Retry-After (+ jitter)
2. **Exponential retry**: rate-limit client exceptions back off 1s..16s
3. **Size fallback**: "auto" is followed by a fixed square size
4. **Exhaustion**: raises GenerationExhausted with the last recorded error

Main Components:
    - GenerationEngine: Orchestrator for attempts and fallbacks
    - BackoffPolicy / RetryState: Delay computation and attempt bookkeeping
    - build_candidates: Size fallback sequencing
    - classify_response: Per-attempt outcome classification
    - GenerationExhausted: Exception raised when all sizes fail

Usage:
    >>> from canvas_refine.retry import GenerationEngine
    >>> engine = GenerationEngine(client, workspace, settings)
    >>> result = await engine.generate(image_bytes, prompt)
"""

from canvas_refine.retry.backoff import BackoffPolicy, RetryState, retry_after_from_hint
from canvas_refine.retry.engine import GenerationEngine
from canvas_refine.retry.exceptions import GenerationExhausted
from canvas_refine.retry.metadata import GenerationMetadata, GenerationResult
from canvas_refine.retry.outcomes import (
    AttemptOutcome,
    Malformed,
    RetryableFailure,
    Success,
    TerminalFailure,
    classify_response,
)
from canvas_refine.retry.sequencer import RequestCandidate, build_candidates

__all__ = [
    "GenerationEngine",
    "GenerationExhausted",
    "GenerationMetadata",
    "GenerationResult",
    "BackoffPolicy",
    "RetryState",
    "retry_after_from_hint",
    "RequestCandidate",
    "build_candidates",
    "AttemptOutcome",
    "Success",
    "RetryableFailure",
    "TerminalFailure",
    "Malformed",
    "classify_response",
]
