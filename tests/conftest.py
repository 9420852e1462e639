"""Pytest configuration and shared fixtures."""

import asyncio
import os
import uuid
from unittest.mock import MagicMock

import pytest

# Set test environment before importing config
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("CONTAINER_READY_TIMEOUT", "0")
os.environ.setdefault("SESSION_IDLE_TTL_MINUTES", "0")
os.environ.setdefault("API_PREFIX", "/api")

from src.models.errors import StreamError
from src.models.session import Session
from src.services.container.manager import ContainerLifecycleManager
from src.services.registry import SessionRegistry


def make_container(container_id=None, ip_address="172.17.0.5", status="running"):
    """Build a mock docker Container."""
    container = MagicMock()
    container.id = container_id or uuid.uuid4().hex + uuid.uuid4().hex
    container.status = status
    container.attrs = {"NetworkSettings": {"IPAddress": ip_address, "Networks": {}}}
    return container


@pytest.fixture
def mock_docker_client():
    """Mock docker.DockerClient whose containers are tracked by id."""
    client = MagicMock()
    containers = {}

    def _create(image, **kwargs):
        container = make_container()
        container.image_name = image
        container.create_kwargs = kwargs
        containers[container.id] = container
        return container

    def _get(container_id):
        return containers[container_id]

    client.containers.create.side_effect = _create
    client.containers.get.side_effect = _get
    client.created = containers
    client.images.pull.return_value = MagicMock()
    client.ping.return_value = True
    client.api.exec_create.return_value = {"Id": "exec-" + uuid.uuid4().hex}
    return client


@pytest.fixture
def registry():
    """Empty session registry."""
    return SessionRegistry()


@pytest.fixture
def manager(registry, mock_docker_client):
    """Lifecycle manager wired to the mock docker client."""
    return ContainerLifecycleManager(registry=registry, client=mock_docker_client)


@pytest.fixture
def sample_session():
    """A session backed by a mock container."""
    container = make_container(container_id="c1" + "0" * 62)
    return Session(
        container_id=container.id,
        challenge_id="ch1",
        container=container,
        image="parrotsec/security:latest",
        name="parrot-ch1-abc",
        ip_address="172.17.0.5",
    )


class FakeExecStream:
    """In-memory exec stream; output is fed by the test."""

    def __init__(self, engine, exec_id):
        self.engine = engine
        self.exec_id = exec_id
        self.output = asyncio.Queue()
        self.written = []
        self.resizes = []
        self.close_calls = 0
        self.closed = False
        self.fail_write = False
        self.fail_resize = False

    def feed(self, data: bytes) -> None:
        self.output.put_nowait(data)

    def end(self) -> None:
        self.output.put_nowait(b"")

    async def read(self, size=4096):
        if self.closed:
            return b""
        return await self.output.get()

    async def write(self, data):
        if self.fail_write:
            raise StreamError("Terminal write failed: broken pipe")
        self.written.append(data)

    async def resize(self, rows, cols):
        if self.fail_resize:
            raise StreamError("Terminal resize failed: no such exec")
        self.resizes.append((rows, cols))

    def close(self):
        self.close_calls += 1
        if self.closed:
            return False
        self.closed = True
        self.engine.active_execs -= 1
        self.output.put_nowait(b"")
        return True


class FakeExecEngine:
    """Stream opener that counts live exec streams."""

    def __init__(self):
        self.active_execs = 0
        self.opened = []
        self.fail_next = None
        self.gate = None

    async def open(self, session, rows=None, cols=None):
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error
        self.active_execs += 1
        stream = FakeExecStream(self, f"exec-{len(self.opened) + 1:04d}")
        self.opened.append(stream)
        return stream


class EventRecorder:
    """Collects events a bridge sends to its client."""

    def __init__(self):
        self.events = []

    async def __call__(self, event, data):
        self.events.append((event, data))

    def names(self):
        return [name for name, _ in self.events]

    def of(self, name):
        return [data for event, data in self.events if event == name]


@pytest.fixture
def exec_engine():
    """Fake exec engine for terminal bridge tests."""
    return FakeExecEngine()


@pytest.fixture
def events():
    """Event recorder standing in for a client connection."""
    return EventRecorder()


@pytest.fixture
def wait_until():
    """Poll a predicate on the running loop until it holds."""

    async def _wait_until(predicate, timeout=2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.001)

    return _wait_until


@pytest.fixture
def container_factory():
    """Factory for standalone mock containers."""
    return make_container


@pytest.fixture
def recorder_factory():
    """Factory for extra client connections in multi-client tests."""
    return EventRecorder
