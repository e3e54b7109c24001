"""
Session and job exceptions.
"""


class NoDocumentError(Exception):
    """Raised when the host has no document (or an empty one) to export."""


class JobConflictError(Exception):
    """
    Raised when a generation is requested while another one is running.

    Only one remote call is kept in flight at a time.
    """

    def __init__(self, active_job_id: str) -> None:
        self.active_job_id = active_job_id
        super().__init__(f"A refine job is already running: {active_job_id}")


class JobNotFoundError(Exception):
    """Raised when a job id is unknown or has been pruned from history."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")
