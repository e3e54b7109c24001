"""
Custom exceptions for the image client layer.

These exceptions give the retry engine a structured view of what went wrong
in a single attempt, so it can decide between retrying the same size,
falling back to the next size, or giving up.
"""


class ImageClientError(Exception):
    """
    Base exception for all image client errors.

    All client-side exceptions inherit from this to allow catching any
    image-API related error with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ImageConnectionError(ImageClientError):
    """
    Raised when the image API cannot be reached.

    Includes DNS failures, refused connections and dropped sockets.
    Ends the current size candidate unless the message signals rate limiting.
    """
    pass


class ImageTimeoutError(ImageConnectionError):
    """
    Raised when the image API does not answer within the request timeout.
    """
    pass


class ImageRateLimitError(ImageClientError):
    """
    Raised (or recorded) when the server is rate limiting or overloaded.

    Covers HTTP 429 and every 5xx status. Always retryable within the
    current size candidate.
    """
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        wait_seconds: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.wait_seconds = wait_seconds


class ImageRejectedError(ImageClientError):
    """
    Recorded when the server rejects the request with a non-retryable status.

    Typical causes: unsupported size for the model, invalid image, bad key.
    Ends the current size candidate without spending the remaining attempts.
    """
    def __init__(self, message: str, status_code: int, details: dict | None = None):
        super().__init__(message, details)
        self.status_code = status_code


class MalformedResponseError(ImageClientError):
    """
    Recorded when a 2xx response does not carry a decodable image.
    """
    pass


class MissingCredentialError(ImageClientError):
    """
    Raised when no API key is configured or stored.
    """
    pass
