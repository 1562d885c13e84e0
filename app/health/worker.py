"""Out-of-band reachability check for the worker pool.

The gateway stays fully available without workers, so the result of this
check is only logged and reported; it never gates a request. Workers speak
gRPC, so the check is a ``grpc.health.v1.Health/Check`` call.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import grpc
from grpc_health.v1 import health_pb2, health_pb2_grpc

logger = logging.getLogger(__name__)


@dataclass
class WorkerHealth:
    reachable: bool
    status: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {"reachable": self.reachable, "status": self.status, "error": self.error}


class WorkerHealthChecker:
    """Asks the worker's gRPC health service how it is doing.

    A worker that answers but does not register the standard health
    service still counts as reachable, with status ``UNKNOWN``.
    """

    def __init__(self, target: Optional[str], timeout: float = 2.0, service: str = ""):
        self._target = target
        self._timeout = timeout
        self._service = service

    async def check(self) -> WorkerHealth:
        if not self._target:
            return WorkerHealth(reachable=False, error="worker gRPC target not configured")

        async with grpc.aio.insecure_channel(self._target) as channel:
            stub = health_pb2_grpc.HealthStub(channel)
            try:
                response = await stub.Check(
                    health_pb2.HealthCheckRequest(service=self._service),
                    timeout=self._timeout,
                )
            except grpc.aio.AioRpcError as exc:
                if exc.code() == grpc.StatusCode.UNIMPLEMENTED:
                    return WorkerHealth(reachable=True, status="UNKNOWN")
                return WorkerHealth(reachable=False, error=f"{exc.code().name}: {exc.details()}")

        status = health_pb2.HealthCheckResponse.ServingStatus.Name(response.status)
        if response.status != health_pb2.HealthCheckResponse.SERVING:
            return WorkerHealth(reachable=False, status=status, error=f"worker reports {status}")
        return WorkerHealth(reachable=True, status=status)

    async def log_startup_check(self) -> WorkerHealth:
        health = await self.check()
        if health.reachable:
            logger.info(f"Worker connection verified (status={health.status})")
        else:
            logger.warning(f"Worker health check failed (expected if not running yet): {health.error}")
        return health
