from __future__ import annotations

from ..metrics.registry import BAMBOO_TRANSACTIONS_TOTAL


def observe_transaction(outcome: str) -> None:
    """
    Record how an explicit transaction ended.

    Args:
        outcome: "commit" or "rollback"
    """
    BAMBOO_TRANSACTIONS_TOTAL.labels(outcome=outcome).inc()
