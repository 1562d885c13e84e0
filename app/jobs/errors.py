"""Error taxonomy for job submission and status lookup.

Every failure reaching a caller falls in one of three categories:
bad input, not found, or infrastructure failure. Nothing here is retried.
"""

from typing import Optional


class JobError(Exception):
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(JobError):
    code = "INVALID_INPUT"


class PayloadTooLargeError(InvalidInputError):
    code = "PAYLOAD_TOO_LARGE"


class JobNotFoundError(JobError):
    code = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        super().__init__(f"job not found: {job_id}")
        self.job_id = job_id


class InfrastructureError(JobError):
    code = "INFRASTRUCTURE_ERROR"


class StatusStoreError(InfrastructureError):
    code = "STATUS_STORE_UNAVAILABLE"


class StorageError(InfrastructureError):
    code = "STORAGE_ERROR"


class QueueError(InfrastructureError):
    """Enqueue failed.

    When raised out of a submission, ``job_id`` names the job whose status
    was written and ``compensated`` tells whether it was flipped to Failed.
    """
    code = "QUEUE_UNAVAILABLE"

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        compensated: bool = False,
    ):
        super().__init__(message)
        self.job_id = job_id
        self.compensated = compensated
