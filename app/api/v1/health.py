"""Health check endpoint."""

from fastapi import APIRouter, Depends

from app.api.deps import get_status_store, get_worker_health
from app.health.worker import WorkerHealthChecker
from app.jobs.status_store import StatusStore

router = APIRouter()


@router.get("/health")
async def health_check(
    status_store: StatusStore = Depends(get_status_store),
    worker_health: WorkerHealthChecker = Depends(get_worker_health),
):
    """Gateway health, status store reachability and worker reachability.

    Always 200: a missing worker degrades the report but not the service.
    """
    store_ok = await status_store.ping()
    worker = await worker_health.check()

    return {
        "status": "healthy" if store_ok and worker.reachable else "degraded",
        "status_store": {"reachable": store_ok},
        "worker": worker.to_dict(),
    }
