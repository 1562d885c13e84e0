"""Status store: the client-facing scoreboard of job states.

Two implementations share one interface:
  RedisStatusStore     - production, one Redis key per job with an expiry
  InMemoryStatusStore  - local development and tests, no external services

The store has no transactional coupling to the job queue. Consistency
between the two comes only from the order in which the coordinator writes.
"""

import asyncio
import heapq
import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.jobs.errors import StatusStoreError

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "job:"


def _as_text(status) -> str:
    # JobStatus members store their value, not "JobStatus.PENDING"
    return status.value if isinstance(status, Enum) else str(status)


class StatusStore(ABC):
    """Abstract key-value store with per-key expiry."""

    @abstractmethod
    async def set(self, job_id: str, status: str, ttl_seconds: int) -> None:
        """Write the status for a job, replacing any previous value.

        Raises StatusStoreError if the write is not acknowledged.
        """
        ...

    @abstractmethod
    async def get(self, job_id: str) -> Optional[str]:
        """Return the stored status, or None if absent or expired."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class RedisStatusStore(StatusStore):
    """Redis-backed status store. Keys are ``<prefix><job_id>``."""

    def __init__(self, client: "redis.Redis", key_prefix: str = DEFAULT_KEY_PREFIX):
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(
        cls,
        url: str,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        socket_timeout: float = 2.0,
    ) -> "RedisStatusStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, key_prefix=key_prefix)

    def _key(self, job_id: str) -> str:
        return f"{self._key_prefix}{job_id}"

    async def set(self, job_id: str, status: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(self._key(job_id), _as_text(status), ex=ttl_seconds)
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            raise StatusStoreError(f"status write failed for job {job_id}: {exc}") from exc

    async def get(self, job_id: str) -> Optional[str]:
        try:
            value = await self._client.get(self._key(job_id))
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            raise StatusStoreError(f"status read failed for job {job_id}: {exc}") from exc
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            logger.warning(f"Redis ping failed: {exc}")
            return False

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryStatusStore(StatusStore):
    """Dict-backed status store with expiry.

    Expired entries are dropped when read, and swept in expiry order on
    every write, so keys nobody polls do not pile up. ``clock`` returns
    seconds as a float; tests pass a fake clock to step over TTL
    boundaries without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._expiries: List[Tuple[float, str]] = []
        self._clock = clock

    def _sweep(self, now: float) -> None:
        while self._expiries and self._expiries[0][0] <= now:
            expires_at, job_id = heapq.heappop(self._expiries)
            entry = self._entries.get(job_id)
            # an overwrite moved the deadline; its own heap item covers it
            if entry is not None and entry[1] == expires_at:
                del self._entries[job_id]

    async def set(self, job_id: str, status: str, ttl_seconds: int) -> None:
        now = self._clock()
        self._sweep(now)
        expires_at = now + ttl_seconds
        self._entries[job_id] = (_as_text(status), expires_at)
        heapq.heappush(self._expiries, (expires_at, job_id))

    async def get(self, job_id: str) -> Optional[str]:
        entry = self._entries.get(job_id)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(job_id, None)
            return None
        return value

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()
        self._expiries.clear()
