"""Integration test fixtures (wired app and service checks).

Provides a FastAPI TestClient wired to a temporary work folder with the image
API mocked, and a check that skips live tests when no real API key is set.
"""

import os
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from canvas_refine import main
from canvas_refine.api import dependencies
from canvas_refine.client.base_client import BaseImageClient
from canvas_refine.persistence.credential_store import CredentialStore
from canvas_refine.persistence.workspace import Workspace
from canvas_refine.retry.engine import GenerationEngine
from canvas_refine.tasks.jobs import JobRegistry
from canvas_refine.tasks.session import RefineSession


@pytest.fixture(scope="session")
def live_api_key() -> str:
    """Real OpenAI key from the environment.

    Skips tests if the key is missing or the API is not reachable.
    """
    api_key = os.environ.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        pytest.skip("OPENAI_API_KEY not set")
    try:
        httpx.get("https://api.openai.com/v1/models", timeout=5)
    except httpx.HTTPError as e:
        pytest.skip(f"OpenAI API not reachable: {e}")
    return api_key


@pytest.fixture
def image_client() -> AsyncMock:
    """Mocked image API; set edit_image.side_effect / return_value per test."""
    mock = AsyncMock(spec=BaseImageClient)
    mock.health_check = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def api(test_settings, image_client, monkeypatch):
    """TestClient for the app, wired to a temp work folder and the mocked API.

    The registry and credential store are exposed as `api.registry` and
    `api.credentials` for assertions.
    """
    test_settings.PROGRESS_TICK_MS = 10

    workspace = Workspace.from_settings(test_settings)
    credentials = CredentialStore.from_settings(test_settings)
    engine = GenerationEngine(image_client, workspace, test_settings)
    session = RefineSession(engine, workspace, credentials, test_settings)
    registry = JobRegistry(session, history_limit=test_settings.JOB_HISTORY_LIMIT)

    overrides = {
        dependencies.get_settings: lambda: test_settings,
        dependencies.get_image_client: lambda: image_client,
        dependencies.get_workspace: lambda: workspace,
        dependencies.get_credential_store: lambda: credentials,
        dependencies.get_job_registry: lambda: registry,
    }
    main.app.dependency_overrides.update(overrides)
    # startup/shutdown call the factories directly
    for factory, override in overrides.items():
        if hasattr(main, factory.__name__):
            monkeypatch.setattr(main, factory.__name__, override)

    with TestClient(main.app) as client:
        client.credentials = credentials
        client.registry = registry
        yield client

    main.app.dependency_overrides.clear()


@pytest.fixture
def with_key(api):
    """Same as `api`, with an API key already stored."""
    api.credentials.save("sk-test")
    return api
