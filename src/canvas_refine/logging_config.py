"""Structured logging configuration using structlog.

JSON lines in production, colored console output otherwise. Stdlib loggers
(uvicorn, the API error handlers) are rendered through the same chain.

The service handles an OpenAI API key, so every event passes through
`redact_secrets` before rendering: values under credential-like keys are
masked, and bearer tokens or `sk-` keys embedded in strings are replaced.
"""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

REDACTED = "***"

_SECRET_KEYS = frozenset({"api_key", "authorization", "openai_api_key", "token"})
_SECRET_PATTERN = re.compile(r"(Bearer\s+)?\bsk-[A-Za-z0-9_\-]{4,}")

# Transport chatter from every multipart upload
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "multipart")


def _mask(value: Any) -> Any:
    if isinstance(value, str):
        return _SECRET_PATTERN.sub(REDACTED, value)
    return value


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask API keys before an event reaches the renderer."""
    for key, value in event_dict.items():
        if key.lower() in _SECRET_KEYS and value:
            event_dict[key] = REDACTED
        else:
            event_dict[key] = _mask(value)
    return event_dict


def app_context(app_name: str, version: str) -> Processor:
    """Processor stamping the service name and version on every event."""

    def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app", app_name)
        event_dict.setdefault("version", version)
        return event_dict

    return add_app_context


def _shared_processors(app_name: str, version: str) -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        app_context(app_name, version),
        redact_secrets,
    ]


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    app_name: str = "canvas-refine",
    version: str = "0.1.0",
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: "production" selects JSON output with rendered tracebacks
        app_name: Value of the `app` field on every event
        version: Value of the `version` field on every event
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    is_production = environment.lower() == "production"
    processors = _shared_processors(app_name, version)

    renderer: Processor
    if is_production:
        processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=processors,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "Logging configured",
        log_level=logging.getLevelName(level),
        environment=environment,
        renderer="json" if is_production else "console",
    )
