"""
Shared pytest fixtures and configuration for all tests.
"""
import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from hypothesis import settings, Verbosity, Phase

from services.memory_store import MemoryDocumentStore
from session.options import SessionStoreConfig
from session.revisioned_store import DocumentSessionStore
from telemetry.service import TelemetryService

# Hypothesis profiles for property-based tests
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
    print_blob=True,
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def telemetry() -> TelemetryService:
    return TelemetryService(configure_root=False)


@pytest.fixture
def session_store(memory_store, clock, telemetry) -> DocumentSessionStore:
    """A session store over the in-memory document store with a fake clock."""
    return DocumentSessionStore(
        client=memory_store,
        config=SessionStoreConfig(),
        telemetry=telemetry,
        clock=clock
    )


@pytest.fixture
def recorded_events(session_store) -> dict:
    """Collect every connect/disconnect/error signal the store emits."""
    events = {"connect": [], "disconnect": [], "error": []}
    session_store.events.on("connect", lambda: events["connect"].append(True))
    session_store.events.on("disconnect", lambda exc: events["disconnect"].append(exc))
    session_store.events.on("error", lambda exc: events["error"].append(exc))
    return events


@pytest.fixture
def mock_elasticsearch() -> MagicMock:
    """Create a mock AsyncElasticsearch client for unit tests."""
    mock = MagicMock()
    mock.get = AsyncMock(return_value={
        "_id": "sess:abc",
        "_seq_no": 4,
        "_primary_term": 1,
        "_source": {"session": {"user": "ada"}, "session_ttl": 60, "session_modified": 1000},
    })
    mock.index = AsyncMock(return_value={"result": "created", "_seq_no": 5, "_primary_term": 1})
    mock.delete = AsyncMock(return_value={"result": "deleted", "_seq_no": 6, "_primary_term": 1})
    mock.search_template = AsyncMock(return_value={"hits": {"hits": []}})
    mock.put_script = AsyncMock(return_value={"acknowledged": True})
    mock.info = AsyncMock(return_value={"cluster_name": "sessions-test"})
    mock.close = AsyncMock()
    mock.indices = MagicMock()
    mock.indices.exists = AsyncMock(return_value=False)
    mock.indices.create = AsyncMock(return_value={"acknowledged": True})
    return mock
