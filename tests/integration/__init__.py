"""
Integration tests for Canvas Refine.

Test components together or against real external services:
- API endpoints (FastAPI TestClient, sync refine and background jobs)
- Full pipeline (request → job → engine → work folder → result) on a mocked image API
- OpenAI image client (real calls, marked with @pytest.mark.integration)
"""
