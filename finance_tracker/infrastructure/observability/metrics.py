"""Prometheus metrics for invoice payments, reminders, budget checks and notification delivery"""

from prometheus_client import Counter, Histogram

# Invoice metrics
invoice_payment_counter = Counter(
    "invoice_payments_total",
    "Invoice payments recorded",
    ["payment_type"],  # FULL | PARTIAL | MINIMUM | ADVANCE
)

invoice_payment_amount_histogram = Histogram(
    "invoice_payment_amount",
    "Amount of recorded invoice payments",
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000],
)

invoice_status_counter = Counter(
    "invoice_status_transitions_total",
    "Invoice status transitions",
    ["status"],
)

invoice_reminder_counter = Counter(
    "invoice_reminders_total",
    "Invoice due-date reminders emitted",
    ["type"],
)

# Budget metrics
budget_health_counter = Counter(
    "budget_health_checks_total",
    "Pre-transaction budget health checks",
    ["outcome"],  # unlinked | within | exceeded
)

budget_override_counter = Counter(
    "budget_overrides_total",
    "Expenses forced through past their envelope",
)

# Notification delivery
notification_latency_histogram = Histogram(
    "notification_delivery_latency_seconds",
    "Chat notification delivery time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_delivery_failures_total",
    "Failed chat notification deliveries",
)

batch_failure_counter = Counter(
    "batch_item_failures_total",
    "Items skipped by scheduled scans after an error",
    ["job"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment(payment_type: str, amount: float) -> None:
    invoice_payment_counter.labels(payment_type=payment_type).inc()
    invoice_payment_amount_histogram.observe(amount)


def record_health_check(linked: bool, allowed: bool) -> None:
    """Count health checks by outcome"""
    if not linked:
        outcome = "unlinked"
    elif allowed:
        outcome = "within"
    else:
        outcome = "exceeded"

    budget_health_counter.labels(outcome=outcome).inc()
