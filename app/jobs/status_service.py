"""Read path: status store lookups for polling clients."""

from app.jobs.errors import JobNotFoundError
from app.jobs.models import JobStatusView
from app.jobs.status_store import StatusStore


class StatusQueryService:
    """Looks up job status by exact id. Never writes."""

    def __init__(self, status_store: StatusStore):
        self._status_store = status_store

    async def query(self, job_id: str) -> JobStatusView:
        """Return the stored status verbatim.

        Raises JobNotFoundError when the key is absent, which covers both
        never-submitted and expired jobs. Store failures surface as
        StatusStoreError.
        """
        status = await self._status_store.get(job_id)
        if status is None:
            raise JobNotFoundError(job_id)
        return JobStatusView(job_id=job_id, status=status)
