"""
Enumerations for Canvas Refine data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class ImageSize(str, Enum):
    """
    Output size tokens accepted by the image-edit endpoint.

    AUTO lets the API pick dimensions that preserve the input aspect ratio.
    The remaining values are fixed dimensions, usable as a fallback when the
    adaptive mode is rejected.
    """

    AUTO = "auto"
    SQUARE = "1024x1024"
    PORTRAIT = "1024x1536"
    LANDSCAPE = "1536x1024"

    @property
    def is_adaptive(self) -> bool:
        return self is ImageSize.AUTO


class ImageQuality(str, Enum):
    """Rendering quality requested from the image-edit endpoint."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    AUTO = "auto"


class RefinePreset(str, Enum):
    """
    Built-in refinement modes.

    Each preset maps to an instruction prompt (see client.prompts).
    """

    UPSCALE = "upscale"
    RESTORE = "restore"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class JobStatus(str, Enum):
    """Lifecycle of a background refine job."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

    @property
    def is_finished(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.FAILURE)
