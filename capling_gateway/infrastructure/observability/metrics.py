"""Prometheus metrics for monitoring classification outcomes and classifier health"""

from prometheus_client import Counter, Histogram

# Transaction metrics
transaction_counter = Counter(
    "capling_transactions_total",
    "Transactions processed",
    ["type", "classification"],  # debit | credit, responsible | irresponsible | neutral
)

justification_required_counter = Counter(
    "capling_justification_required_total",
    "Transactions flagged as needing a justification",
)

justification_outcome_counter = Counter(
    "capling_justification_total",
    "Resolved justifications",
    ["outcome"],  # justified | rejected
)

# Reasoner metrics
classifier_latency_histogram = Histogram(
    "classifier_latency_seconds",
    "Reasoning service response time for classification",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

classifier_fallback_counter = Counter(
    "capling_classifier_fallback_total",
    "Classifications replaced by the fallback verdict",
    ["reason"],  # timeout | http_status | network | invalid_response | not_configured | unparseable | error
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transaction(transaction_type: str, classification: str, needs_justification: bool) -> None:
    """Record outcome metrics for classification distribution"""
    transaction_counter.labels(type=transaction_type, classification=classification).inc()
    if needs_justification:
        justification_required_counter.inc()
