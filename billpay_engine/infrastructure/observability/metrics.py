"""Prometheus metrics for ledger writes, status derivation and billing-cycle syncs"""

from prometheus_client import Counter, Histogram

# Ledger metrics
ledger_entries_created_counter = Counter(
    "billpay_ledger_entries_created_total",
    "Ledger entries written",
    ["kind"],  # payment | withdraw | transfer_out | loan | cash_in | transfer_in | loan_payment
)

ledger_entries_deleted_counter = Counter(
    "billpay_ledger_entries_deleted_total",
    "Ledger entries deleted",
)

# Derivation metrics
status_resolution_counter = Counter(
    "billpay_status_resolutions_total",
    "Schedule statuses derived on read",
    ["status"],  # pending | partial | paid | overdue
)

billing_sync_counter = Counter(
    "billpay_billing_cycle_sync_total",
    "Billing-cycle syncs attempted",
    ["outcome"],  # success | precondition_failed
)

billing_sync_latency_histogram = Histogram(
    "billpay_billing_cycle_sync_seconds",
    "Billing-cycle sync duration",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_status(status: str) -> None:
    """Count a derived status by value"""
    status_resolution_counter.labels(status=status).inc()


def record_entries_created(kinds) -> None:
    for kind in kinds:
        ledger_entries_created_counter.labels(kind=kind).inc()
