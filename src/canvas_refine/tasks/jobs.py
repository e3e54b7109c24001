"""
In-process refine jobs with pollable progress.

A JobRegistry wraps a RefineSession and keeps at most one generation in
flight. Jobs run either inline (run(), for the synchronous endpoint) or as a
background asyncio task (submit(), for the job endpoints); both paths share
the same busy check, so the remote API never sees two concurrent edits from
this process.
"""

import asyncio
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

import structlog

from canvas_refine.models.enums import ImageSize, JobStatus
from canvas_refine.retry.metadata import GenerationMetadata
from canvas_refine.tasks.exceptions import JobConflictError, JobNotFoundError
from canvas_refine.tasks.host import DocumentSource, MemoryLayerSink
from canvas_refine.tasks.session import RefineSession

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class JobRecord:
    """Mutable state of one refine job, updated as it runs."""

    job_id: str
    mode_label: str
    status: JobStatus = JobStatus.PENDING
    percent: int = 0
    message: str = ""
    error: Optional[str] = None
    result: Optional[bytes] = field(default=None, repr=False)
    layer_name: Optional[str] = None
    size: Optional[str] = None
    metadata: Optional[GenerationMetadata] = None
    created_at: datetime = field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    def on_progress(self, percent: int) -> None:
        self.percent = percent

    def on_status(self, message: str, is_error: bool) -> None:
        self.message = message


class JobRegistry:
    """
    Tracks refine jobs and enforces a single active generation.

    Finished jobs are kept in insertion order and pruned beyond
    `history_limit`; the active job is never pruned.
    """

    def __init__(self, session: RefineSession, history_limit: int = 20):
        if history_limit < 1:
            raise ValueError("history_limit must be >= 1")
        self.session = session
        self.history_limit = history_limit
        self._jobs: "OrderedDict[str, JobRecord]" = OrderedDict()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._active: Optional[JobRecord] = None

    @property
    def active(self) -> Optional[JobRecord]:
        return self._active

    def is_busy(self) -> bool:
        return self._active is not None

    def get(self, job_id: str) -> JobRecord:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise JobNotFoundError(job_id) from None

    def list_jobs(self) -> list[JobRecord]:
        """Known jobs, oldest first."""
        return list(self._jobs.values())

    def submit(
        self,
        document: DocumentSource,
        prompt: str,
        *,
        mode_label: str,
        size: Optional[ImageSize] = None,
    ) -> JobRecord:
        """
        Start a refine job in the background and return immediately.

        Must be called from a running event loop.

        Raises:
            MissingCredentialError: No API key configured (checked up front)
            JobConflictError: Another generation is running
        """
        self.session.require_api_key()
        record = self._reserve(mode_label)

        task = asyncio.create_task(self._execute(record, document, prompt, size))
        self._tasks[record.job_id] = task
        task.add_done_callback(lambda t, job_id=record.job_id: self._on_task_done(job_id, t))

        logger.info("Refine job submitted", job_id=record.job_id, mode=mode_label)
        return record

    async def run(
        self,
        document: DocumentSource,
        prompt: str,
        *,
        mode_label: str,
        size: Optional[ImageSize] = None,
    ) -> JobRecord:
        """
        Run a refine job inline and return its finished record.

        Raises:
            JobConflictError: Another generation is running
            Whatever the session raises (the record is marked FAILURE first)
        """
        record = self._reserve(mode_label)
        await self._execute(record, document, prompt, size)
        return record

    async def wait(self, job_id: str) -> JobRecord:
        """Wait for a background job to finish and return its record."""
        record = self.get(job_id)
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return record

    async def shutdown(self) -> None:
        """Wait for every background job still running."""
        pending = list(self._tasks.values())
        if pending:
            logger.info("Waiting for running refine jobs", count=len(pending))
            await asyncio.gather(*pending, return_exceptions=True)

    def _reserve(self, mode_label: str) -> JobRecord:
        # Check-and-set without an await in between.
        if self._active is not None:
            raise JobConflictError(self._active.job_id)
        record = JobRecord(job_id=str(uuid.uuid4()), mode_label=mode_label)
        self._jobs[record.job_id] = record
        self._active = record
        self._prune()
        return record

    async def _execute(
        self,
        record: JobRecord,
        document: DocumentSource,
        prompt: str,
        size: Optional[ImageSize],
    ) -> None:
        record.status = JobStatus.RUNNING
        sink = MemoryLayerSink()
        try:
            result = await self.session.run(
                document,
                sink,
                prompt,
                mode_label=record.mode_label,
                size=size,
                on_progress=record.on_progress,
                on_status=record.on_status,
            )
        except Exception as e:
            record.status = JobStatus.FAILURE
            record.error = str(e)
            record.message = str(e)
            record.metadata = getattr(e, "metadata", None)
            logger.error(
                "Refine job failed",
                job_id=record.job_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        else:
            record.layer_name, record.result = sink.last
            record.size = result.size.value
            record.metadata = result.metadata
            record.percent = 100
            record.status = JobStatus.SUCCESS
            logger.info(
                "Refine job succeeded",
                job_id=record.job_id,
                size=record.size,
                total_attempts=result.metadata.total_attempts,
            )
        finally:
            record.finished_at = _utcnow()
            if self._active is record:
                self._active = None

    def _on_task_done(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(job_id, None)
        # Failures are already recorded on the JobRecord; retrieve the
        # exception so the loop does not report it as unhandled.
        if not task.cancelled():
            task.exception()

    def _prune(self) -> None:
        while len(self._jobs) > self.history_limit:
            oldest_id = next(iter(self._jobs))
            if self._jobs[oldest_id] is self._active:
                break
            self._jobs.pop(oldest_id)
            logger.debug("Pruned job from history", job_id=oldest_id)
