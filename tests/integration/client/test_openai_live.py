"""Integration tests for the OpenAI image client against the real API.

These tests need OPENAI_API_KEY in the environment and network access.
They only hit the model listing endpoint, so they do not spend image credits.

Tests are skipped if no key is set or the API is not reachable.
"""

import pytest
import pytest_asyncio

from canvas_refine.client.openai_client import OpenAIImageClient

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def openai_client():
    client = OpenAIImageClient(base_url="https://api.openai.com/v1", timeout=30)
    yield client
    await client.close()


@pytest.mark.asyncio
async def test_health_check_with_real_key(live_api_key, openai_client):
    assert await openai_client.health_check(api_key=live_api_key) is True


@pytest.mark.asyncio
async def test_health_check_rejects_bogus_key(live_api_key, openai_client):
    assert await openai_client.health_check(api_key="sk-invalid-key") is False
