"""
Shared fixtures for gateway tests.

This module provides:
- A controllable clock for TTL tests
- In-memory status store and in-process queue
- A TestClient wired to in-memory backends

Store/queue doubles live in tests/_testkit.py.
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.config import Settings
from app.jobs.coordinator import SubmissionCoordinator
from app.jobs.in_process_queue import InProcessQueue
from app.jobs.status_store import InMemoryStatusStore
from app.main import create_app
from app.storage.uploads import UploadStore
from tests._testkit import FakeClock, StubWorkerHealth


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    return []


@pytest.fixture
def memory_store(clock):
    return InMemoryStatusStore(clock=clock)


@pytest_asyncio.fixture
async def in_process_queue():
    queue = InProcessQueue()
    await queue.start()
    yield queue
    await queue.stop()


@pytest.fixture
def upload_store(tmp_path):
    return UploadStore(str(tmp_path / "uploads"), max_bytes=1024)


@pytest.fixture
def coordinator(memory_store, in_process_queue, upload_store):
    return SubmissionCoordinator(
        memory_store,
        in_process_queue,
        upload_store=upload_store,
        status_ttl_seconds=3600,
    )


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        status_backend="memory",
        queue_backend="memory",
        upload_dir=str(tmp_path / "uploads"),
        max_upload_bytes=1024,
        worker_grpc_target=None,
        _env_file=None,
    )


@pytest.fixture
def client(test_settings):
    """TestClient backed by in-memory store and queue, with lifespan run."""
    app = create_app(test_settings, worker_health=StubWorkerHealth())
    with TestClient(app) as test_client:
        yield test_client
