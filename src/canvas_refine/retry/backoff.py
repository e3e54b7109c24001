"""
Backoff policy for retryable image-API failures.

Two independent delay tracks are used by the retry engine:

1. Server hint: a 429/5xx response carries a Retry-After header or an
   "after N seconds" phrase in the body. That wait is what the engine sleeps.
2. Exponential counter: starts at the initial delay and doubles per retry up
   to the cap. It is only slept on when a client-side exception is classified
   as retryable, because such exceptions carry no server hint.

Every sleep gets a small uniform jitter so concurrent clients do not retry
in lockstep.
"""

import math
import random
import re
from dataclasses import dataclass
from typing import Optional

from canvas_refine.config import Settings

_RETRY_AFTER_BODY_PATTERN = re.compile(
    r"after\s+([0-9]+(?:\.[0-9]+)?)\s*seconds?", re.IGNORECASE
)


def retry_after_from_hint(header_value: Optional[str], body_text: Optional[str]) -> int:
    """
    Derive the wait, in whole seconds, for a rate-limited response.

    Args:
        header_value: Raw Retry-After header value (None if absent)
        body_text: Response body text, searched for "after N seconds"

    Returns:
        Seconds to wait, always >= 1:
        - numeric, non-negative header: max(1, floor(header))
        - otherwise body phrase: max(1, round(N)), halves rounded up
        - otherwise 1
    """
    if header_value:
        try:
            hint = float(header_value.strip())
        except ValueError:
            # HTTP-date form of Retry-After is not honoured; fall through to body
            hint = None
        if hint is not None and math.isfinite(hint) and hint >= 0:
            return max(1, math.floor(hint))

    if body_text:
        match = _RETRY_AFTER_BODY_PATTERN.search(body_text)
        if match:
            seconds = float(match.group(1))
            return max(1, math.floor(seconds + 0.5))

    return 1


class BackoffPolicy:
    """
    Computes sleep durations for the retry engine.

    Attributes:
        initial_delay_ms: First value of the exponential counter
        max_delay_ms: Cap for the exponential counter
        max_jitter_ms: Exclusive upper bound of the uniform jitter
    """

    def __init__(
        self,
        initial_delay_ms: int = 1000,
        max_delay_ms: int = 16000,
        max_jitter_ms: int = 250,
        rng: Optional[random.Random] = None,
    ):
        if initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must be >= 0")
        if max_delay_ms < initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")
        if max_jitter_ms < 0:
            raise ValueError("max_jitter_ms must be >= 0")

        self.initial_delay_ms = initial_delay_ms
        self.max_delay_ms = max_delay_ms
        self.max_jitter_ms = max_jitter_ms
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: Settings, rng: Optional[random.Random] = None) -> "BackoffPolicy":
        return cls(
            initial_delay_ms=settings.INITIAL_BACKOFF_MS,
            max_delay_ms=settings.MAX_BACKOFF_MS,
            max_jitter_ms=settings.MAX_JITTER_MS,
            rng=rng,
        )

    def next_delay(self, previous_delay_ms: int) -> int:
        """Double the previous delay, capped at max_delay_ms."""
        return min(previous_delay_ms * 2, self.max_delay_ms)

    def jitter_ms(self) -> int:
        if self.max_jitter_ms == 0:
            return 0
        return self._rng.randrange(self.max_jitter_ms)

    def hint_wait_ms(self, wait_seconds: int) -> int:
        """Sleep duration for a server-hinted retry."""
        return wait_seconds * 1000 + self.jitter_ms()

    def exponential_wait_ms(self, delay_ms: int) -> int:
        """Sleep duration for a retryable client-side exception."""
        return delay_ms + self.jitter_ms()

    def new_state(self) -> "RetryState":
        return RetryState(delay_ms=self.initial_delay_ms)

    def __repr__(self) -> str:
        return (
            f"BackoffPolicy(initial={self.initial_delay_ms}ms, "
            f"max={self.max_delay_ms}ms, jitter<{self.max_jitter_ms}ms)"
        )


@dataclass
class RetryState:
    """
    Attempt bookkeeping for one size candidate.

    Owned by the retry engine for the duration of a candidate's attempt loop
    and replaced (not reused) when moving to the next candidate.
    """

    delay_ms: int
    attempt: int = 1

    def advance(self, policy: BackoffPolicy) -> None:
        self.attempt += 1
        self.delay_ms = policy.next_delay(self.delay_ms)
