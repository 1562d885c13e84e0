"""Tests for the Kafka and in-process job queues."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiokafka.errors import KafkaConnectionError, KafkaTimeoutError

from app.jobs.errors import QueueError
from app.jobs.in_process_queue import InProcessQueue
from app.jobs.queue import KafkaJobQueue


def make_producer():
    producer = MagicMock()
    producer.start = AsyncMock()
    producer.stop = AsyncMock()
    producer.send_and_wait = AsyncMock()
    return producer


class TestKafkaJobQueue:

    @pytest.mark.asyncio
    async def test_append_sends_keyed_message(self):
        producer = make_producer()
        queue = KafkaJobQueue(topic="pdf-processing", producer=producer)
        await queue.start()

        await queue.append("job-1", b'{"id":"job-1"}')

        producer.send_and_wait.assert_awaited_once_with(
            "pdf-processing", value=b'{"id":"job-1"}', key=b"job-1"
        )

    @pytest.mark.asyncio
    async def test_append_starts_producer_lazily(self):
        producer = make_producer()
        queue = KafkaJobQueue(producer=producer)

        await queue.append("job-1", b"{}")

        producer.start.assert_awaited_once()
        assert queue.is_running

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        producer = make_producer()
        queue = KafkaJobQueue(producer=producer)

        await queue.start()
        await queue.start()

        producer.start.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_broker_error_raises_queue_error(self):
        producer = make_producer()
        producer.send_and_wait.side_effect = KafkaTimeoutError()
        queue = KafkaJobQueue(producer=producer)
        await queue.start()

        with pytest.raises(QueueError):
            await queue.append("job-1", b"{}")

    @pytest.mark.asyncio
    async def test_unreachable_broker_raises_queue_error(self):
        producer = make_producer()
        producer.start.side_effect = KafkaConnectionError("no brokers")
        queue = KafkaJobQueue(producer=producer)

        with pytest.raises(QueueError):
            await queue.append("job-1", b"{}")
        assert not queue.is_running

    @pytest.mark.asyncio
    async def test_slow_send_times_out(self):
        producer = make_producer()

        async def never_acks(*args, **kwargs):
            await asyncio.sleep(10)

        producer.send_and_wait.side_effect = never_acks
        queue = KafkaJobQueue(producer=producer, send_timeout=0.01)
        await queue.start()

        with pytest.raises(QueueError) as exc_info:
            await queue.append("job-1", b"{}")
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_concurrent_appends_do_not_wait_on_slow_connect(self):
        producer = make_producer()

        async def slow_refusal():
            await asyncio.sleep(0.5)
            raise KafkaConnectionError("no brokers")

        producer.start.side_effect = slow_refusal
        queue = KafkaJobQueue(producer=producer, send_timeout=0.05)
        loop = asyncio.get_running_loop()

        started_at = loop.time()
        results = await asyncio.gather(
            *(queue.append(f"job-{i}", b"{}") for i in range(4)),
            return_exceptions=True,
        )
        elapsed = loop.time() - started_at

        assert all(isinstance(r, QueueError) for r in results)
        assert elapsed < 0.4
        assert not queue.is_running

    @pytest.mark.asyncio
    async def test_append_fails_fast_while_connect_in_flight(self):
        producer = make_producer()
        release = asyncio.Event()

        async def blocked_start():
            await release.wait()

        producer.start.side_effect = blocked_start
        queue = KafkaJobQueue(producer=producer, send_timeout=5)
        connecting = asyncio.create_task(queue.start())
        await asyncio.sleep(0)

        with pytest.raises(QueueError) as exc_info:
            await queue.append("job-1", b"{}")
        assert "still connecting" in str(exc_info.value)

        release.set()
        await connecting
        await queue.append("job-1", b"{}")
        producer.send_and_wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_owned_producer_rebuilt_after_timed_out_connect(self):
        hanging = make_producer()

        async def hang():
            await asyncio.sleep(10)

        hanging.start.side_effect = hang
        healthy = make_producer()
        queue = KafkaJobQueue(send_timeout=0.01)
        queue._build_producer = MagicMock(side_effect=[hanging, healthy])

        with pytest.raises(QueueError):
            await queue.append("job-1", b"{}")
        await queue.append("job-1", b"{}")

        healthy.send_and_wait.assert_awaited_once()
        assert queue.is_running

    @pytest.mark.asyncio
    async def test_stop_stops_started_producer(self):
        producer = make_producer()
        queue = KafkaJobQueue(producer=producer)
        await queue.start()

        await queue.stop()

        producer.stop.assert_awaited_once()
        assert not queue.is_running

    def test_bootstrap_servers_split_on_commas(self):
        queue = KafkaJobQueue(bootstrap_servers="k1:9092,k2:9092", producer=make_producer())
        assert queue._bootstrap_servers == ["k1:9092", "k2:9092"]


class TestInProcessQueue:

    @pytest.mark.asyncio
    async def test_append_before_start_fails(self):
        queue = InProcessQueue()

        with pytest.raises(QueueError):
            await queue.append("job-1", b"{}")

    @pytest.mark.asyncio
    async def test_get_returns_messages_in_append_order(self, in_process_queue):
        await in_process_queue.append("a", b"1")
        await in_process_queue.append("b", b"2")
        await in_process_queue.append("a", b"3")

        delivered = [await in_process_queue.get() for _ in range(3)]

        assert [(m.key, m.value) for m in delivered] == [("a", b"1"), ("b", b"2"), ("a", b"3")]
        assert [m.offset for m in delivered] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_messages_grouped_by_key(self, in_process_queue):
        await in_process_queue.append("a", b"1")
        await in_process_queue.append("b", b"2")
        await in_process_queue.append("a", b"3")

        assert [m.value for m in in_process_queue.messages("a")] == [b"1", b"3"]
        assert in_process_queue.messages("missing") == []

    @pytest.mark.asyncio
    async def test_drain_empties_pending(self, in_process_queue):
        await in_process_queue.append("a", b"1")
        await in_process_queue.append("a", b"2")

        assert len(in_process_queue.drain()) == 2
        assert in_process_queue.drain() == []
        # Delivered messages stay in the retained log
        assert len(in_process_queue) == 2

    @pytest.mark.asyncio
    async def test_retained_log_is_capped(self):
        queue = InProcessQueue(max_retained=3)
        await queue.start()
        for i in range(5):
            await queue.append("a" if i % 2 else "b", str(i).encode())

        assert len(queue) == 3
        assert [m.value for m in queue.messages("b")] == [b"2", b"4"]
        assert [m.value for m in queue.messages("a")] == [b"3"]
        # offsets keep counting past evicted messages
        assert [m.offset for m in queue.drain()] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_evicted_key_is_forgotten(self):
        queue = InProcessQueue(max_retained=1)
        await queue.start()
        await queue.append("a", b"1")
        await queue.append("b", b"2")

        assert queue.messages("a") == []
        assert "a" not in queue._partitions

    @pytest.mark.asyncio
    async def test_full_queue_refuses_append(self):
        queue = InProcessQueue(max_pending=2)
        await queue.start()
        await queue.append("a", b"1")
        await queue.append("a", b"2")

        with pytest.raises(QueueError) as exc_info:
            await queue.append("a", b"3")
        assert "full" in str(exc_info.value)
        assert len(queue) == 2

        await queue.get()
        await queue.append("a", b"3")
        assert [m.offset for m in queue.messages("a")] == [0, 1, 2]
