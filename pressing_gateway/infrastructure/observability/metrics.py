"""Prometheus metrics for monitoring deposits, payments and receipt delivery"""

from prometheus_client import Counter, Histogram

# Deposit metrics
deposit_counter = Counter(
    "pressing_deposit_created_total",
    "Total deposits created",
    ["payment_mode"],  # full | installment
)

deposit_amount_histogram = Histogram(
    "pressing_deposit_amount",
    "Deposit totals in currency minor units",
    buckets=[1_000, 5_000, 10_000, 25_000, 50_000, 100_000, 250_000, 1_000_000],
)

status_transition_counter = Counter(
    "pressing_deposit_status_transition_total",
    "Fulfillment status changes",
    ["from_status", "to_status"],
)

# Payment metrics
payment_counter = Counter(
    "pressing_payment_recorded_total",
    "Payments and refunds recorded",
    ["method", "kind"],
)

payment_rejection_counter = Counter(
    "pressing_payment_rejected_total",
    "Payments rejected by validation",
    ["reason"],
)

concurrency_conflict_counter = Counter(
    "pressing_concurrency_conflict_total",
    "Writes rejected because the deposit changed since it was read",
)

# Receipt metrics
receipt_counter = Counter(
    "pressing_receipt_rendered_total",
    "Receipts rendered",
    ["type", "format"],
)

dispatch_counter = Counter(
    "pressing_receipt_dispatch_total",
    "Receipt dispatch attempts",
    ["channel", "outcome"],  # success | error
)

notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification gateway response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_deposit_created(total_cents: int, is_installment_payment: bool) -> None:
    """Record intake volume and ticket size"""
    payment_mode = "installment" if is_installment_payment else "full"
    deposit_counter.labels(payment_mode=payment_mode).inc()
    deposit_amount_histogram.observe(total_cents)


def record_status_transition(from_status: str, to_status: str) -> None:
    status_transition_counter.labels(from_status=from_status, to_status=to_status).inc()


def record_payment(method: str, kind: str) -> None:
    payment_counter.labels(method=method, kind=kind).inc()


def record_payment_rejection(error: Exception) -> None:
    """Label rejections by exception class, e.g. OverpaymentError"""
    payment_rejection_counter.labels(reason=type(error).__name__).inc()


def record_receipt(receipt_type: str, receipt_format: str) -> None:
    receipt_counter.labels(type=receipt_type, format=receipt_format).inc()


def record_dispatch(channel: str, outcome: str) -> None:
    dispatch_counter.labels(channel=channel, outcome=outcome).inc()
