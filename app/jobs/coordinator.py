"""Submission coordinator: status write-ahead, enqueue, compensation.

A submission touches two independent systems with no shared transaction,
so the order of writes carries the consistency guarantee:

  1. status store  <- Pending      (write-ahead; failure aborts, nothing queued)
  2. job queue     <- JobRecord    (keyed by job id for per-job ordering)
  3. status store  <- Failed       (only if step 2 failed; best effort)

A client polling status therefore never sees "not found" for a job that
was accepted and then dropped. If step 3 fails too, the entry stays
Pending until its TTL runs out. Nothing is retried here.
"""

import logging
from typing import Optional

from app.jobs.errors import InvalidInputError, QueueError, StatusStoreError
from app.jobs.models import JobRecord, JobStatus, SubmissionResult, new_job_id
from app.jobs.queue import JobQueue
from app.jobs.status_store import StatusStore
from app.storage.uploads import AsyncReadable, UploadStore

logger = logging.getLogger(__name__)

DEFAULT_STATUS_TTL_SECONDS = 24 * 3600


class SubmissionCoordinator:
    """Turns an upload into a queued job with a visible status.

    Holds only injected handles; no per-submission state survives a call,
    so any number of submissions may run concurrently.
    """

    def __init__(
        self,
        status_store: StatusStore,
        job_queue: JobQueue,
        upload_store: Optional[UploadStore] = None,
        status_ttl_seconds: int = DEFAULT_STATUS_TTL_SECONDS,
    ):
        self._status_store = status_store
        self._job_queue = job_queue
        self._upload_store = upload_store
        self._ttl = status_ttl_seconds

    async def submit_upload(self, filename: Optional[str], source: AsyncReadable) -> SubmissionResult:
        """Persist an uploaded document, then submit it as a new job."""
        if source is None or not filename or not filename.strip():
            raise InvalidInputError("file is required")
        if self._upload_store is None:
            raise RuntimeError("SubmissionCoordinator was built without an upload store")

        job_id = new_job_id()
        storage_path = await self._upload_store.save(job_id, filename, source)
        return await self.submit(filename, storage_path, job_id=job_id)

    async def submit(
        self,
        filename: str,
        storage_path: str,
        job_id: Optional[str] = None,
    ) -> SubmissionResult:
        """Record a job as Pending and hand it to the job queue.

        ``job_id`` is generated unless given; passing an existing id
        re-enqueues that job on the same partition.

        Raises:
            StatusStoreError: the Pending write failed; nothing was queued.
            QueueError: the enqueue failed after the Pending write. The error
                carries ``job_id`` and whether the Failed write succeeded.
        """
        job = JobRecord(
            id=job_id or new_job_id(),
            filename=filename,
            storage_path=storage_path,
        )

        try:
            await self._status_store.set(job.id, JobStatus.PENDING, self._ttl)
        except StatusStoreError:
            logger.error(f"Status write failed for job {job.id}; not enqueued", exc_info=True)
            raise

        try:
            await self._job_queue.append(job.id, job.to_message())
        except QueueError as exc:
            logger.error(f"Failed to enqueue job {job.id}: {exc}")
            exc.job_id = job.id
            exc.compensated = await self._mark_failed(job.id)
            raise
        except Exception:
            logger.exception(f"Unexpected error enqueueing job {job.id}")
            await self._mark_failed(job.id)
            raise

        logger.info(f"Job {job.id} queued (filename={job.filename!r})")
        return SubmissionResult(job_id=job.id, status=JobStatus.PENDING)

    async def _mark_failed(self, job_id: str) -> bool:
        try:
            await self._status_store.set(job_id, JobStatus.FAILED, self._ttl)
        except StatusStoreError as exc:
            logger.error(
                f"Compensating write failed for job {job_id}; "
                f"status stays Pending until expiry: {exc}"
            )
            return False
        logger.warning(f"Job {job_id} marked Failed after enqueue failure")
        return True
