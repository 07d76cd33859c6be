"""Prometheus metrics for campaign transitions, funds flow, credit scores and webhook performance"""

from prometheus_client import Counter, Histogram

# Lifecycle metrics
campaign_transition_counter = Counter(
    "verifund_campaign_transition_total",
    "Campaign status transitions",
    ["from_status", "to_status"],
)

contribution_counter = Counter(
    "verifund_contribution_total",
    "Contributions recorded",
)

contribution_amount_counter = Counter(
    "verifund_contribution_amount_cents_total",
    "Sum of recorded contributions in cents",
)

claim_amount_counter = Counter(
    "verifund_claim_amount_cents_total",
    "Sum of funds claimed by creators in cents",
)

# Scoring metrics
credit_score_histogram = Histogram(
    "verifund_credit_score_percentage",
    "Recomputed progress report credit scores",
    buckets=[0, 13, 25, 38, 50, 63, 75, 88, 100],
)

domain_error_counter = Counter(
    "verifund_domain_errors_total",
    "Rejected operations by error code",
    ["code"],
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transition(from_status: str, to_status: str) -> None:
    campaign_transition_counter.labels(from_status=from_status, to_status=to_status).inc()


def record_contribution(amount_cents: int) -> None:
    contribution_counter.inc()
    contribution_amount_counter.inc(amount_cents)


def record_claim(amount_cents: int) -> None:
    claim_amount_counter.inc(amount_cents)


def record_credit_score(score_percentage: int) -> None:
    credit_score_histogram.observe(score_percentage)


def record_domain_error(code: str) -> None:
    domain_error_counter.labels(code=code).inc()
