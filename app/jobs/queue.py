"""Job queue interface and Kafka implementation."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from app.jobs.errors import QueueError

logger = logging.getLogger(__name__)


class JobQueue(ABC):
    """Ordered, partitioned append-only log drained by the worker pool.

    Implementations must keep appends with the same partition key in order
    and must only report success once the append is acknowledged.
    """

    @abstractmethod
    async def append(self, partition_key: str, payload: bytes) -> None:
        """Append one message. Raises QueueError if not acknowledged."""
        ...

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...


class KafkaJobQueue(JobQueue):
    """Publishes job records to a Kafka topic keyed by job id.

    The key routes every message of a job to the same partition, which is
    what gives per-job ordering. ``acks="all"`` plus idempotence keeps
    producer retries from duplicating or reordering messages.
    """

    def __init__(
        self,
        bootstrap_servers: Union[str, List[str]] = "localhost:9092",
        topic: str = "pdf-processing",
        send_timeout: float = 10.0,
        producer: Optional[AIOKafkaProducer] = None,
    ):
        if isinstance(bootstrap_servers, str):
            bootstrap_servers = bootstrap_servers.split(",")
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._send_timeout = send_timeout
        self._producer = producer
        self._owns_producer = producer is None
        self._started = False
        self._start_lock = asyncio.Lock()

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def is_running(self) -> bool:
        return self._started

    def _build_producer(self) -> AIOKafkaProducer:
        return AIOKafkaProducer(
            bootstrap_servers=self._bootstrap_servers,
            acks="all",
            enable_idempotence=True,
        )

    async def start(self) -> None:
        async with self._start_lock:
            if self._started:
                return
            if self._producer is None:
                self._producer = self._build_producer()
            try:
                await self._producer.start()
            except KafkaError as exc:
                self._discard_failed_producer()
                raise QueueError(f"could not connect to Kafka at {self._bootstrap_servers}: {exc}") from exc
            except asyncio.CancelledError:
                self._discard_failed_producer()
                raise
            self._started = True
            logger.info(f"Kafka producer started (topic={self._topic})")

    def _discard_failed_producer(self) -> None:
        # a producer whose start failed cannot be restarted
        if self._owns_producer:
            self._producer = None

    async def stop(self) -> None:
        if self._producer is not None and self._started:
            await self._producer.stop()
            logger.info("Kafka producer stopped")
        self._started = False

    async def _start_and_send(self, partition_key: str, payload: bytes) -> None:
        # A producer that failed to connect at startup gets another chance here
        if not self._started:
            await self.start()
        await self._producer.send_and_wait(
            self._topic,
            value=payload,
            key=partition_key.encode("utf-8"),
        )

    async def append(self, partition_key: str, payload: bytes) -> None:
        if not self._started and self._start_lock.locked():
            raise QueueError(f"Kafka producer for topic {self._topic} is still connecting")
        try:
            await asyncio.wait_for(
                self._start_and_send(partition_key, payload),
                timeout=self._send_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise QueueError(
                f"timed out after {self._send_timeout}s writing to topic {self._topic}"
            ) from exc
        except KafkaError as exc:
            raise QueueError(f"failed to write to topic {self._topic}: {exc}") from exc
