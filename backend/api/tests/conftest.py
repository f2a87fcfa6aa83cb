"""Test configuration."""

import asyncio
import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# Settings are read when mediamod.main is imported; pin them first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="mediamod-uploads-"))
os.environ.setdefault("BLOB_BACKEND", "local")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("JSON_LOGS", "false")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from mediamod.blob import LocalBlobGateway  # noqa: E402
from mediamod.broadcast import BroadcastChannel, ObserverHandle  # noqa: E402
from mediamod.db import init_schema, make_engine  # noqa: E402
from mediamod.models import BroadcastEvent  # noqa: E402
from mediamod.moderation import ModerationQueue  # noqa: E402


class EventCollector:
    """Observer driven from a private event loop, for synchronous tests."""

    def __init__(self, channel: BroadcastChannel) -> None:
        self.channel = channel
        self.loop = asyncio.new_event_loop()
        self.handle: ObserverHandle = channel.connect(loop=self.loop)

    def drain(self) -> list[BroadcastEvent]:
        # let the scheduled deliveries run, then empty the buffer
        self.loop.run_until_complete(asyncio.sleep(0))
        events: list[BroadcastEvent] = []
        while True:
            try:
                events.append(self.handle.get_nowait())
            except asyncio.QueueEmpty:
                return events

    def close(self) -> None:
        self.channel.disconnect(self.handle)
        self.loop.close()


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """File-backed SQLite so concurrent threads get their own connections."""
    eng = make_engine(f"sqlite:///{tmp_path / 'media.db'}")
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def channel() -> BroadcastChannel:
    return BroadcastChannel(queue_size=10)


@pytest.fixture
def queue(engine: Engine, channel: BroadcastChannel) -> ModerationQueue:
    return ModerationQueue(engine, channel, default_author="Invitado")


@pytest.fixture
def observer_factory(channel: BroadcastChannel) -> Generator:
    collectors: list[EventCollector] = []

    def factory() -> EventCollector:
        collector = EventCollector(channel)
        collectors.append(collector)
        return collector

    yield factory
    for collector in collectors:
        collector.close()


@pytest.fixture
def blob_gateway(tmp_path: Path) -> LocalBlobGateway:
    return LocalBlobGateway(tmp_path / "uploads", public_base_url="http://testserver")


@pytest.fixture
def client(
    queue: ModerationQueue,
    channel: BroadcastChannel,
    blob_gateway: LocalBlobGateway,
) -> Generator[TestClient, None, None]:
    from mediamod.main import app, get_blob_gateway, get_channel, get_queue

    app.dependency_overrides[get_queue] = lambda: queue
    app.dependency_overrides[get_channel] = lambda: channel
    app.dependency_overrides[get_blob_gateway] = lambda: blob_gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
