"""FastAPI dependencies resolving the services built during lifespan."""

from fastapi import HTTPException, Request

from app.health.worker import WorkerHealthChecker
from app.jobs.coordinator import SubmissionCoordinator
from app.jobs.status_service import StatusQueryService
from app.jobs.status_store import StatusStore


def _state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return service


def get_coordinator(request: Request) -> SubmissionCoordinator:
    return _state(request, "coordinator")


def get_status_service(request: Request) -> StatusQueryService:
    return _state(request, "status_service")


def get_status_store(request: Request) -> StatusStore:
    return _state(request, "status_store")


def get_worker_health(request: Request) -> WorkerHealthChecker:
    return _state(request, "worker_health")
