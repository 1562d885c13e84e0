"""Job record data model for queued document processing."""

from datetime import datetime, timezone
from enum import Enum
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
import uuid


class JobStatus(str, Enum):
    """Lifecycle states, stored verbatim in the status store.

    Pending -> Processing -> Complete, with Pending -> Failed as a side branch.
    Processing and Complete are written only by the worker pool.
    """
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETE = "Complete"
    FAILED = "Failed"


def new_job_id() -> str:
    """Random 122-bit identifier; safe across concurrent submissions."""
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobRecord(BaseModel):
    """Point-in-time unit of work handed to the job queue.

    The record is never mutated after it has been queued; the live status
    of the job lives in the status store.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_job_id)
    filename: str
    storage_path: str = Field(
        serialization_alias="filepath",
        validation_alias=AliasChoices("filepath", "storage_path"),
    )
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)

    def to_message(self) -> bytes:
        """Serialize to the JSON payload consumed by the workers."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_message(cls, payload: bytes) -> "JobRecord":
        return cls.model_validate_json(payload)


class SubmissionResult(BaseModel):
    job_id: str
    status: JobStatus


class JobStatusView(BaseModel):
    """Client-facing status of a job.

    ``status`` is a plain string: the worker pool owns the later states and
    whatever it stored is returned as-is.
    """
    job_id: str
    status: str
