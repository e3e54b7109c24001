"""
Unit tests for the structlog processors.
"""

from canvas_refine.logging_config import REDACTED, app_context, redact_secrets


def test_credential_keys_are_masked():
    event = redact_secrets(None, "info", {"event": "API key saved", "api_key": "sk-abc12345"})

    assert event["api_key"] == REDACTED
    assert event["event"] == "API key saved"


def test_embedded_keys_are_masked():
    event = redact_secrets(
        None,
        "warning",
        {"event": "Image API health check failed", "error": "Bearer sk-proj-AbCd1234 rejected"},
    )

    assert "sk-proj" not in event["error"]
    assert event["error"] == f"{REDACTED} rejected"


def test_other_values_are_untouched():
    event = redact_secrets(None, "info", {"event": "Refine job succeeded", "size": "auto", "attempt": 2})

    assert event == {"event": "Refine job succeeded", "size": "auto", "attempt": 2}


def test_app_context_does_not_override_bound_values():
    add_context = app_context("Canvas Refine", "0.1.0")

    assert add_context(None, "info", {"event": "x"}) == {
        "event": "x",
        "app": "Canvas Refine",
        "version": "0.1.0",
    }
    assert add_context(None, "info", {"event": "x", "app": "other"})["app"] == "other"
