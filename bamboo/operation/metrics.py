from __future__ import annotations

from ..metrics.registry import BAMBOO_OPERATION_LATENCY_SECONDS, BAMBOO_OPERATIONS_TOTAL


def observe_operation(operation: str, status: str, latency_s: float) -> None:
    """
    Record one executed prepared operation.

    Args:
        operation: Operation kind, e.g. "put_object" or "delete_collection"
        status: "success" or "error"
        latency_s: Wall time in seconds
    """
    BAMBOO_OPERATIONS_TOTAL.labels(operation=operation, status=status).inc()
    BAMBOO_OPERATION_LATENCY_SECONDS.labels(operation=operation).observe(latency_s)
