"""Prometheus metrics for ledger activity, borrowings and the rates feed"""

from prometheus_client import Counter, Histogram

# Ledger metrics
ledger_operation_counter = Counter(
    "finance_ledger_operations_total",
    "Ledger mutations applied",
    ["operation", "kind"],  # create | update | delete | transfer | adjust
)

ledger_rejection_counter = Counter(
    "finance_ledger_rejections_total",
    "Ledger mutations rejected by a business rule",
    ["reason"],
)

borrowing_payment_counter = Counter(
    "finance_borrowing_payments_total",
    "Payments recorded against borrowings",
    ["direction"],  # borrowed | lent
)

# Rates feed metrics
rates_fetch_latency_histogram = Histogram(
    "rates_fetch_latency_seconds",
    "Exchange rates API response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

rates_fetch_failures_counter = Counter(
    "rates_fetch_failures_total",
    "Failed exchange rates API calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_ledger_operation(operation: str, kind: str) -> None:
    ledger_operation_counter.labels(operation=operation, kind=kind).inc()


def record_rejection(error: Exception) -> None:
    """Count a rejected mutation under the error's class name"""
    ledger_rejection_counter.labels(reason=type(error).__name__).inc()
