"""Pipeline error types."""

from typing import Optional


class PipelineError(Exception):
    """Base class for pipeline coordination errors."""

    status_code = 500


class MissingParameter(PipelineError):
    """A required request parameter was not supplied."""

    status_code = 400


class WorkerDispatchError(PipelineError):
    """Calling a worker group endpoint failed."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body
