"""
Data models for Canvas Refine.

Exports:
- Enums: ImageSize, ImageQuality, RefinePreset, JobStatus
- Image API models: ImageEditRequest, ImageEditResponse
"""

from canvas_refine.models.enums import ImageQuality, ImageSize, JobStatus, RefinePreset
from canvas_refine.models.image_models import ImageEditRequest, ImageEditResponse

__all__ = [
    "ImageSize",
    "ImageQuality",
    "RefinePreset",
    "JobStatus",
    "ImageEditRequest",
    "ImageEditResponse",
]
