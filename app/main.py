"""Document Job Gateway - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.middleware import RequestLoggingMiddleware
from app.api.v1.health import router as health_root_router
from app.api.v1.router import upload_router_compat, v1_router
from app.config import Settings, settings as default_settings
from app.health.worker import WorkerHealthChecker
from app.jobs.coordinator import SubmissionCoordinator
from app.jobs.errors import (
    InfrastructureError,
    InvalidInputError,
    JobError,
    JobNotFoundError,
    PayloadTooLargeError,
    QueueError,
)
from app.jobs.in_process_queue import InProcessQueue
from app.jobs.queue import JobQueue, KafkaJobQueue
from app.jobs.status_service import StatusQueryService
from app.jobs.status_store import InMemoryStatusStore, RedisStatusStore, StatusStore
from app.logging_config import configure_logging
from app.storage.uploads import UploadStore

logger = logging.getLogger(__name__)


def build_status_store(cfg: Settings) -> StatusStore:
    if cfg.status_backend == "memory":
        return InMemoryStatusStore()
    if cfg.status_backend == "redis":
        return RedisStatusStore.from_url(
            cfg.redis_url,
            key_prefix=cfg.status_key_prefix,
            socket_timeout=cfg.redis_socket_timeout,
        )
    raise ValueError(f"Unknown status_backend: {cfg.status_backend!r}")


def build_job_queue(cfg: Settings) -> JobQueue:
    if cfg.queue_backend == "memory":
        return InProcessQueue()
    if cfg.queue_backend == "kafka":
        return KafkaJobQueue(
            bootstrap_servers=cfg.kafka_bootstrap_servers,
            topic=cfg.kafka_topic,
            send_timeout=cfg.kafka_send_timeout,
        )
    raise ValueError(f"Unknown queue_backend: {cfg.queue_backend!r}")


def _error_status(exc: JobError) -> int:
    if isinstance(exc, PayloadTooLargeError):
        return 413
    if isinstance(exc, InvalidInputError):
        return 400
    if isinstance(exc, JobNotFoundError):
        return 404
    return 500


async def job_error_handler(request: Request, exc: JobError):
    status_code = _error_status(exc)
    message = exc.message
    if isinstance(exc, QueueError):
        # The job id is logged, never returned: a failed submission has no id
        message = "failed to queue job"
    elif isinstance(exc, InfrastructureError):
        message = f"internal server error: {exc.message}"
    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code, "message": message},
    )


_HTTP_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    503: "SERVICE_UNAVAILABLE",
}


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed requests share the 400 INVALID_INPUT shape with a missing file
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"code": InvalidInputError.code, "message": problems or "invalid request"},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_ERROR", "message": "An internal error occurred"},
    )


def create_app(
    cfg: Optional[Settings] = None,
    status_store: Optional[StatusStore] = None,
    job_queue: Optional[JobQueue] = None,
    upload_store: Optional[UploadStore] = None,
    worker_health: Optional[WorkerHealthChecker] = None,
) -> FastAPI:
    """Build the gateway app.

    Collaborators not passed in are built from settings when the app
    starts and closed when it stops.
    """
    cfg = cfg or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting Document Job Gateway on port {cfg.gateway_port}")
        logger.info(f"Status backend: {cfg.status_backend}, queue backend: {cfg.queue_backend}")

        store = status_store if status_store is not None else build_status_store(cfg)
        queue = job_queue if job_queue is not None else build_job_queue(cfg)
        uploads = upload_store if upload_store is not None else UploadStore(cfg.upload_dir, max_bytes=cfg.max_upload_bytes)
        checker = worker_health if worker_health is not None else WorkerHealthChecker(
            cfg.worker_grpc_target, timeout=cfg.worker_health_timeout
        )

        if await store.ping():
            logger.info("Status store reachable")
        else:
            logger.error("Status store unreachable; submissions will fail until it recovers")

        try:
            await queue.start()
        except QueueError as exc:
            logger.error(f"Job queue not started, will retry on first submission: {exc}")

        await checker.log_startup_check()

        app.state.status_store = store
        app.state.job_queue = queue
        app.state.worker_health = checker
        app.state.coordinator = SubmissionCoordinator(
            store, queue, upload_store=uploads, status_ttl_seconds=cfg.status_ttl_seconds
        )
        app.state.status_service = StatusQueryService(store)

        yield

        logger.info("Shutting down Document Job Gateway")
        await queue.stop()
        await store.close()

    app = FastAPI(
        title="Document Job Gateway",
        description="Accepts document-processing jobs and tracks their status",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(JobError, job_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_root_router, tags=["health"])  # GET /health at root
    app.include_router(v1_router)  # All /api/v1/* endpoints
    app.include_router(upload_router_compat)  # /upload, /status compat layer
    return app


configure_logging()
app = create_app()
