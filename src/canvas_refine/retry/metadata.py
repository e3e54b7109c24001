"""
Generation metadata tracking.

This module defines the dataclasses that capture the history of one
generation, successful or not, for logs, API responses and metrics.
"""

from dataclasses import dataclass, field
from pathlib import Path

from canvas_refine.models.enums import ImageSize


@dataclass(frozen=True)
class GenerationMetadata:
    """
    Attempt history for one generation.

    Attributes:
        total_attempts: Remote calls made across all size candidates
        sizes_tried: Size tokens attempted, in order
        final_size: Size that produced the image (or the last one tried)
        total_latency_ms: Time from first attempt to final result (ms)
        failures: Recorded failure messages, oldest first
    """

    total_attempts: int
    sizes_tried: list[str]
    final_size: str
    total_latency_ms: int
    failures: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate metadata invariants."""
        if self.total_attempts < 0:
            raise ValueError("total_attempts must be >= 0")

        if self.sizes_tried and self.final_size not in self.sizes_tried:
            raise ValueError(
                f"final_size '{self.final_size}' must be in sizes_tried"
            )

        if self.total_latency_ms < 0:
            raise ValueError("total_latency_ms must be >= 0")


@dataclass(frozen=True)
class GenerationResult:
    """Successful generation: where the artifact was written and how."""

    output_path: Path
    size: ImageSize
    metadata: GenerationMetadata
