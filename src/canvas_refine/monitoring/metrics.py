"""Custom Prometheus metrics for Canvas Refine.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- retries_total (sustained rate limiting means the account tier is too small)
- size_fallbacks_total (the model stopped accepting adaptive sizing)
- generations_total{result="exhausted"} (users are seeing final failures)
"""

from prometheus_client import Counter, Histogram

# === Remote Call Metrics ===

image_requests_total = Counter(
    "image_requests_total",
    "Total image-edit attempts by size and classified outcome",
    ["size", "outcome"],
)
"""
Image-edit attempts counter.

Labels:
- size: auto, 1024x1024, 1024x1536, 1536x1024
- outcome: success, rate_limited, rejected, malformed, client_error

One increment per remote call, so the sum over outcomes is the number of
requests actually sent.
"""

image_api_latency_seconds = Histogram(
    "image_api_latency_seconds",
    "Image API round-trip latency in seconds",
    ["model", "status_class"],
    buckets=[1.0, 5.0, 15.0, 30.0, 60.0, 90.0, 120.0, 180.0],
)
"""
Image API latency histogram.

Labels:
- model: Image model identifier
- status_class: 2xx, 4xx, 5xx

Buckets cover fast rejections (1s) up to slow high-quality edits (180s).
"""

# === Retry Metrics ===

retries_total = Counter(
    "retries_total",
    "Total retry sleeps by reason",
    ["reason"],
)
"""
Retry counter.

Labels:
- reason: rate_limited (429/5xx with server hint), client_error (local
  exception classified as retryable, exponential delay)

Alert thresholds:
- WARN: retry rate > 20% of image_requests_total
"""

size_fallbacks_total = Counter(
    "size_fallbacks_total",
    "Times a size candidate was abandoned in favour of the next one",
    ["from_size"],
)
"""
Size fallback counter.

Labels:
- from_size: the abandoned size token (normally "auto")
"""

# === Generation Metrics ===

generations_total = Counter(
    "generations_total",
    "Completed generations by final result",
    ["result"],
)
"""
Generation counter.

Labels:
- result: success, exhausted
"""

generation_latency_seconds = Histogram(
    "generation_latency_seconds",
    "End-to-end generation latency including retries and fallbacks",
    ["success"],
    buckets=[5.0, 15.0, 30.0, 60.0, 90.0, 120.0, 180.0, 300.0, 600.0],
)
"""
End-to-end generation latency histogram.

Labels:
- success: true, false

Alert thresholds:
- WARN: p95 > 120s (progress bar sits at 99% for a long time)
"""


# === API Metrics ===

refine_requests_total = Counter(
    "refine_requests_total",
    "Refine requests received by the HTTP API",
    ["endpoint", "status"],
)
"""
Refine request counter.

Labels:
- endpoint: refine, refine_jobs
- status: success, accepted, error
"""
