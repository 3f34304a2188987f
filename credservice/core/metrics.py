"""Application metrics using the Prometheus client library.

One inventory of everything the service measures.  Other modules import
specific metrics and increment/observe them at the point of action.
Prometheus scrapes them from GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["scope"],  # "auth" today; one label value per limited route family
)

AUTH_ATTEMPTS = Counter(
    "auth_attempts_total",
    "Wallet authentication attempts by outcome",
    ["result"],  # created, existing, invalid_address, bad_signature
)

CREDENTIALS_ISSUED = Counter(
    "credentials_issued_total",
    "Credentials created, by origin",
    ["origin"],  # "issued" or "imported"
)

CREDENTIALS_REVOKED = Counter(
    "credentials_revoked_total",
    "Credentials moved to REVOKED",
)

VERIFICATIONS = Counter(
    "verifications_total",
    "Credential verifications by source and outcome",
    ["source", "status"],  # source: "external" / "stored"; status: verified / failed
)

PROOF_RESPONSES = Counter(
    "proof_responses_total",
    "Proof response writes by resulting status",
    ["status"],  # SUBMITTED, REJECTED, ACCEPTED
)
