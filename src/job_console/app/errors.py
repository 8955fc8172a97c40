"""Error taxonomy for job submission, encoding and polling."""

from __future__ import annotations


class JobConsoleError(Exception):
    """Base class for console errors that end up rendered to a surface."""


class SubmissionError(JobConsoleError):
    """Backend rejected the job, or the submit request itself failed."""

    def __init__(self, operation: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class EncodingError(JobConsoleError):
    """Binary input could not be read into a transport string."""


class TaskFailure(JobConsoleError):
    """Backend reported a terminal failure for an accepted task."""

    def __init__(self, task_id: str, message: str) -> None:
        super().__init__(message)
        self.task_id = task_id


class PollingTransientError(JobConsoleError):
    """One status query failed; the poller logs it and tries again."""

    def __init__(self, task_id: str, message: str) -> None:
        super().__init__(message)
        self.task_id = task_id
