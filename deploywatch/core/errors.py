"""
Error taxonomy for deployment jobs.

Every terminal error state of a job maps onto one of these classes. All of
them except ``SourceFetchWarning`` and ``JobStateError`` leave the job
retryable.
"""
from typing import Optional


class DeploymentError(Exception):
    """Base class for all deploywatch errors"""

    def __init__(self, message: str, target_key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.target_key = target_key

    def __str__(self) -> str:
        return self.message


class ServiceError(DeploymentError):
    """A call to an external collaborator failed"""

    def __init__(self, message: str, status: Optional[int] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.operation = operation


class SubmissionError(DeploymentError):
    """The deployment request could not be submitted"""


class StatusCheckError(DeploymentError):
    """Both the detailed and the fallback status queries failed in one cycle"""

    def __init__(self, message: str, job_id: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.job_id = job_id
        self.attempts = attempts


class DeploymentFailed(DeploymentError):
    """The remote job completed with a failure outcome"""


class DeploymentTimedOut(DeploymentError):
    """The polling budget ran out before a terminal result was seen"""


class SourceFetchWarning(DeploymentError):
    """Deployed source text could not be loaded; the job is unaffected"""


class JobStateError(DeploymentError):
    """The requested operation is not allowed in the current job phase"""


def describe_error(error: BaseException, default: str) -> str:
    """Best human-readable message for an error raised by a collaborator."""
    message = getattr(error, 'message', None) or str(error)
    return message or default
