"""
Retry engine exceptions.

This module defines the exception raised when every size candidate and every
attempt has been consumed without producing an image.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from canvas_refine.retry.metadata import GenerationMetadata

GENERIC_FAILURE_MESSAGE = "Image generation failed after retries."


class GenerationExhausted(Exception):
    """
    Raised when all size candidates and attempts fail.

    This is the only failure surfaced to the end user; its message is the
    last recorded failure (or a generic message when nothing was recorded).

    Attributes:
        last_error: Final recorded error, if any
        metadata: Attempt history
    """

    def __init__(
        self,
        last_error: Optional[Exception],
        metadata: "GenerationMetadata",
    ) -> None:
        self.last_error = last_error
        self.metadata = metadata

        super().__init__(str(last_error) if last_error else GENERIC_FAILURE_MESSAGE)
