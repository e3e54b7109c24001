"""
Refine sessions and in-process background jobs.

- host.py: DocumentSource / LayerSink seams towards the host editor
- session.py: RefineSession (export, generate + monitor, place layer)
- jobs.py: JobRegistry (single generation in flight, pollable job records)
"""

from canvas_refine.tasks.exceptions import JobConflictError, JobNotFoundError, NoDocumentError
from canvas_refine.tasks.host import (
    BytesDocument,
    DocumentSource,
    FileDocument,
    FileLayerSink,
    LayerSink,
    MemoryLayerSink,
)
from canvas_refine.tasks.jobs import JobRecord, JobRegistry
from canvas_refine.tasks.session import MISSING_KEY_MESSAGE, RefineSession

__all__ = [
    "BytesDocument",
    "DocumentSource",
    "FileDocument",
    "FileLayerSink",
    "LayerSink",
    "MemoryLayerSink",
    "JobConflictError",
    "JobNotFoundError",
    "NoDocumentError",
    "JobRecord",
    "JobRegistry",
    "MISSING_KEY_MESSAGE",
    "RefineSession",
]
