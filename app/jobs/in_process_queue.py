"""In-process job queue using asyncio for local development.

Stands in for Kafka when QUEUE_BACKEND=memory. Messages are kept in
append order, both globally and per partition key, and can be pulled off
by a consumer with ``get()``. No external dependencies needed.

Memory is bounded: the log keeps only the newest ``max_retained``
messages, and once ``max_pending`` messages sit undelivered further
appends are refused like a full broker would refuse them.
"""

import asyncio
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, List

from app.jobs.errors import QueueError
from app.jobs.queue import JobQueue

DEFAULT_MAX_RETAINED = 10_000
DEFAULT_MAX_PENDING = 10_000


@dataclass(frozen=True)
class QueuedMessage:
    key: str
    value: bytes
    offset: int


class InProcessQueue(JobQueue):
    """Local append-only log with per-key ordering."""

    def __init__(self, max_retained: int = DEFAULT_MAX_RETAINED, max_pending: int = DEFAULT_MAX_PENDING):
        self._pending: "asyncio.Queue[QueuedMessage]" = asyncio.Queue(maxsize=max_pending)
        self._log: Deque[QueuedMessage] = deque()
        self._partitions: Dict[str, Deque[QueuedMessage]] = defaultdict(deque)
        self._max_retained = max_retained
        self._next_offset = 0
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def append(self, partition_key: str, payload: bytes) -> None:
        if not self._running:
            raise QueueError("in-process queue is not running")
        message = QueuedMessage(key=partition_key, value=payload, offset=self._next_offset)
        try:
            self._pending.put_nowait(message)
        except asyncio.QueueFull:
            raise QueueError(
                f"in-process queue is full ({self._pending.qsize()} undelivered messages)"
            ) from None
        self._next_offset += 1
        self._retain(message)

    def _retain(self, message: QueuedMessage) -> None:
        self._log.append(message)
        self._partitions[message.key].append(message)
        while len(self._log) > self._max_retained:
            evicted = self._log.popleft()
            # the oldest message overall is also the oldest of its key
            partition = self._partitions[evicted.key]
            partition.popleft()
            if not partition:
                del self._partitions[evicted.key]

    async def get(self) -> QueuedMessage:
        """Wait for the next undelivered message, in append order."""
        return await self._pending.get()

    def messages(self, partition_key: str) -> List[QueuedMessage]:
        """Retained messages appended under one key, oldest first."""
        return list(self._partitions.get(partition_key, ()))

    def drain(self) -> List[QueuedMessage]:
        """Pop every undelivered message without waiting."""
        drained = []
        while not self._pending.empty():
            drained.append(self._pending.get_nowait())
        return drained

    def __len__(self) -> int:
        return len(self._log)
