"""Monitoring and metrics instrumentation for Canvas Refine.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from canvas_refine.monitoring.metrics import (
    generation_latency_seconds,
    generations_total,
    image_api_latency_seconds,
    image_requests_total,
    refine_requests_total,
    retries_total,
    size_fallbacks_total,
)

__all__ = [
    "image_requests_total",
    "image_api_latency_seconds",
    "retries_total",
    "size_fallbacks_total",
    "generations_total",
    "generation_latency_seconds",
    "refine_requests_total",
]
