"""
FastAPI dependency injection for the refine service.

Provides process-wide singletons of the stateful resources (HTTP client,
workspace, credential store, job registry). The job registry in particular
must be shared: it is what keeps a single generation in flight across the
synchronous and background endpoints.

Tests replace any of these through `app.dependency_overrides`.
"""

from functools import lru_cache

from canvas_refine.client.base_client import BaseImageClient
from canvas_refine.client.openai_client import OpenAIImageClient
from canvas_refine.config import Settings, settings
from canvas_refine.persistence.credential_store import CredentialStore
from canvas_refine.persistence.workspace import Workspace
from canvas_refine.retry.engine import GenerationEngine
from canvas_refine.tasks.jobs import JobRegistry
from canvas_refine.tasks.session import RefineSession


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return settings


@lru_cache()
def get_image_client() -> BaseImageClient:
    """
    Get singleton image client with connection pooling.

    The client keeps one httpx connection pool for the process lifetime and
    is closed on application shutdown.

    Returns:
        OpenAIImageClient instance
    """
    config = get_settings()
    return OpenAIImageClient(
        base_url=config.OPENAI_BASE_URL,
        api_key=config.OPENAI_API_KEY,
        timeout=config.REQUEST_TIMEOUT,
    )


@lru_cache()
def get_workspace() -> Workspace:
    return Workspace.from_settings(get_settings())


@lru_cache()
def get_credential_store() -> CredentialStore:
    return CredentialStore.from_settings(get_settings())


@lru_cache()
def get_generation_engine() -> GenerationEngine:
    """
    Get singleton generation engine.

    The engine keeps no per-call state, so one instance serves every job.
    """
    return GenerationEngine(
        client=get_image_client(),
        workspace=get_workspace(),
        settings=get_settings(),
    )


@lru_cache()
def get_refine_session() -> RefineSession:
    return RefineSession(
        engine=get_generation_engine(),
        workspace=get_workspace(),
        credentials=get_credential_store(),
        settings=get_settings(),
    )


@lru_cache()
def get_job_registry() -> JobRegistry:
    """
    Get singleton job registry.

    Returns:
        JobRegistry shared by every refine endpoint
    """
    return JobRegistry(
        session=get_refine_session(),
        history_limit=get_settings().JOB_HISTORY_LIMIT,
    )


def reset_dependencies() -> None:
    """Drop every cached singleton (used on shutdown and in tests)."""
    for factory in (
        get_job_registry,
        get_refine_session,
        get_generation_engine,
        get_credential_store,
        get_workspace,
        get_image_client,
        get_settings,
    ):
        factory.cache_clear()
