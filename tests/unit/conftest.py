"""Unit test fixtures (mocks and stubs).

Provides mock objects and a virtual clock for testing without real waits
or network access.
"""

import asyncio
import random
from unittest.mock import AsyncMock

import pytest

from canvas_refine.client.base_client import BaseImageClient
from canvas_refine.persistence.credential_store import CredentialStore
from canvas_refine.persistence.workspace import Workspace
from canvas_refine.retry.backoff import BackoffPolicy
from canvas_refine.retry.engine import GenerationEngine
from canvas_refine.tasks.session import RefineSession


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement: records each duration and advances the clock.

    Yields to the event loop once per call so concurrent tasks still
    interleave the way they would with a real sleep.
    """

    def __init__(self, clock: FakeClock | None = None):
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)
        await asyncio.sleep(0)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep(fake_clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(fake_clock)


@pytest.fixture
def seeded_backoff() -> BackoffPolicy:
    """Backoff policy with a deterministic jitter source."""
    return BackoffPolicy(rng=random.Random(42))


@pytest.fixture
def mock_image_client() -> AsyncMock:
    """Mock image client; set edit_image.side_effect / return_value per test."""
    mock = AsyncMock(spec=BaseImageClient)
    mock.health_check = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def workspace(test_settings) -> Workspace:
    ws = Workspace.from_settings(test_settings)
    ws.ensure()
    return ws


@pytest.fixture
def credential_store(test_settings) -> CredentialStore:
    """Credential store with a key already saved."""
    store = CredentialStore.from_settings(test_settings)
    store.save("sk-test")
    return store


@pytest.fixture
def generation_engine(mock_image_client, workspace, test_settings, seeded_backoff, recording_sleep):
    return GenerationEngine(
        mock_image_client,
        workspace,
        test_settings,
        backoff=seeded_backoff,
        sleep=recording_sleep,
    )


@pytest.fixture
def refine_session(
    generation_engine, workspace, credential_store, test_settings, fake_clock, recording_sleep
) -> RefineSession:
    """RefineSession on a mocked client, virtual clock and recorded sleeps."""
    return RefineSession(
        engine=generation_engine,
        workspace=workspace,
        credentials=credential_store,
        settings=test_settings,
        clock=fake_clock,
        sleep=recording_sleep,
    )
