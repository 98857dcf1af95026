from __future__ import annotations

from prometheus_client import Counter, Histogram

BAMBOO_OPERATIONS_TOTAL = Counter(
    "bamboo_operations_total",
    "Prepared operations executed, by operation kind and outcome",
    ["operation", "status"],
)

BAMBOO_OPERATION_LATENCY_SECONDS = Histogram(
    "bamboo_operation_latency_seconds",
    "Wall time of a prepared operation, including notification",
    ["operation"],
)

BAMBOO_TRANSACTIONS_TOTAL = Counter(
    "bamboo_transactions_total",
    "Explicit transactions ended, by outcome",
    ["outcome"],
)

BAMBOO_NOTIFICATIONS_TOTAL = Counter(
    "bamboo_notifications_total",
    "Change sets published on a ChangeBus",
)
