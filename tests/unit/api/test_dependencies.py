"""
Unit tests for API dependency injection.
"""

import pytest

from canvas_refine.api.dependencies import (
    get_credential_store,
    get_generation_engine,
    get_image_client,
    get_job_registry,
    get_refine_session,
    get_settings,
    get_workspace,
    reset_dependencies,
)
from canvas_refine.client.base_client import BaseImageClient
from canvas_refine.config import Settings
from canvas_refine.tasks.jobs import JobRegistry


@pytest.fixture(autouse=True)
def fresh_dependencies():
    reset_dependencies()
    yield
    reset_dependencies()


def test_get_settings():
    """Test settings singleton."""
    settings1 = get_settings()
    settings2 = get_settings()

    assert settings1 is settings2
    assert isinstance(settings1, Settings)


def test_get_image_client():
    """Test image client singleton."""
    client1 = get_image_client()
    client2 = get_image_client()

    assert client1 is client2
    assert isinstance(client1, BaseImageClient)
    assert client1.base_url == get_settings().OPENAI_BASE_URL.rstrip("/")


def test_job_registry_is_wired_to_shared_singletons():
    registry = get_job_registry()

    assert registry is get_job_registry()
    assert isinstance(registry, JobRegistry)
    assert registry.history_limit == get_settings().JOB_HISTORY_LIMIT

    session = registry.session
    assert session is get_refine_session()
    assert session.engine is get_generation_engine()
    assert session.workspace is get_workspace()
    assert session.credentials is get_credential_store()
    assert session.engine.client is get_image_client()


def test_reset_dependencies_drops_singletons():
    registry = get_job_registry()
    client = get_image_client()

    reset_dependencies()

    assert get_job_registry() is not registry
    assert get_image_client() is not client
