"""Prometheus metrics for the explanation service."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


# ── HTTP metrics ─────────────────────────────────────────────
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Orchestration metrics ────────────────────────────────────
ORCHESTRATOR_REQUESTS = Counter(
    "orchestrator_requests_total",
    "Explain/summarize requests by serving provider and outcome",
    ["operation", "provider", "outcome"],
)

CACHE_HITS = Counter(
    "orchestrator_cache_hits_total",
    "Requests served from the response cache",
    ["operation"],
)

PROVIDER_LATENCY = Histogram(
    "provider_request_latency_seconds",
    "Latency of successful provider calls",
    ["operation", "provider"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

PROVIDER_FAILURES = Counter(
    "provider_failures_total",
    "Provider failures by normalized error kind",
    ["provider", "kind"],
)

PROVIDER_DISABLED = Counter(
    "provider_disabled_total",
    "Times a provider was taken out of rotation",
    ["provider", "reason"],
)

# ── Rate limiting ────────────────────────────────────────────
RATE_LIMIT_REJECTIONS = Counter(
    "rate_limiter_rejections_total",
    "Admissions refused by a local sliding-window limiter",
    ["identifier"],
)
