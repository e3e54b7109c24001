"""
Unit tests for attempt outcome classification.
"""

import pytest

from canvas_refine.client.exceptions import (
    ImageConnectionError,
    ImageRateLimitError,
    ImageRejectedError,
    ImageTimeoutError,
    MalformedResponseError,
)
from canvas_refine.retry.outcomes import (
    NO_IMAGE_MESSAGE,
    Malformed,
    RetryableFailure,
    Success,
    TerminalFailure,
    classify_response,
    is_retryable_exception,
)


def test_success_with_image(make_response, generated_bytes):
    outcome = classify_response(make_response(200, image=generated_bytes))

    assert outcome == Success(artifact=generated_bytes)


@pytest.mark.parametrize("status_code", [429, 500, 502, 503])
def test_rate_limit_and_server_errors_are_retryable(make_response, status_code):
    outcome = classify_response(make_response(status_code, retry_after="3"))

    assert isinstance(outcome, RetryableFailure)
    assert outcome.wait_seconds == 3
    assert outcome.status_code == status_code


def test_retryable_uses_body_hint_without_header(make_response):
    outcome = classify_response(
        make_response(429, body_text="Please try again after 1.5 seconds.")
    )

    assert isinstance(outcome, RetryableFailure)
    assert outcome.wait_seconds == 2


@pytest.mark.parametrize("status_code", [400, 401, 403, 404, 413])
def test_other_client_errors_are_terminal(make_response, status_code):
    outcome = classify_response(make_response(status_code, body_text="Invalid size"))

    assert isinstance(outcome, TerminalFailure)
    assert isinstance(outcome.error, ImageRejectedError)
    assert str(outcome.error) == f"Image API error {status_code}. Invalid size"
    assert outcome.error.status_code == status_code


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {},
        {"data": []},
        {"data": "nope"},
        {"data": [{}]},
        {"data": [{"url": "https://example.com/x.png"}]},
        {"data": [{"b64_json": ""}]},
        {"data": [{"b64_json": "!!not-base64!!"}]},
        {"data": ["raw"]},
    ],
)
def test_success_without_image_is_malformed(make_response, payload):
    outcome = classify_response(make_response(200, payload=payload))

    assert isinstance(outcome, Malformed)
    assert isinstance(outcome.error, MalformedResponseError)
    assert str(outcome.error) == NO_IMAGE_MESSAGE


def test_rate_limit_error_type_is_retryable():
    assert is_retryable_exception(ImageRateLimitError("slow down"))


@pytest.mark.parametrize(
    "message",
    ["Rate limited by upstream", "HTTP 429", "please RETRY later"],
)
def test_rate_limit_messages_are_retryable(message):
    assert is_retryable_exception(ImageConnectionError(message))


@pytest.mark.parametrize(
    "exc",
    [
        ImageConnectionError("Network error: connection refused"),
        ImageTimeoutError("Request timeout after 180s"),
        ValueError("boom"),
    ],
)
def test_plain_failures_are_not_retryable(exc):
    assert not is_retryable_exception(exc)
