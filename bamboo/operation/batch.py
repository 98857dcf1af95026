from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from ..errors import BambooError, ConfigurationError, MappingError, PartialBatchError, ResolverError
from .results import CollectionResult

if TYPE_CHECKING:
    from ..storage import Storage

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")
C = TypeVar("C", bound=CollectionResult)

Row = Mapping[str, Any]
MapFunc = Callable[[Any], Any]


class TransactionPolicy(str, Enum):
    USE_IF_SUPPORTED = "use_if_supported"
    NEVER = "never"


def transaction_policy(value: Any) -> TransactionPolicy:
    try:
        return TransactionPolicy(value)
    except ValueError as exc:
        choices = ", ".join(repr(p.value) for p in TransactionPolicy)
        raise ConfigurationError(
            f"Unknown transaction policy {value!r}; expected one of {choices}"
        ) from exc


def map_object(map_func: MapFunc, obj: Any) -> Any:
    """Apply a map func, turning any failure into MappingError."""
    try:
        return map_func(obj)
    except BambooError:
        raise
    except Exception as exc:
        raise MappingError(f"Could not map {obj!r}: {exc}") from exc


def resolve(hook: Callable[..., R], *args: Any) -> R:
    """
    Call a resolver hook.

    Errors already raised as BambooError (e.g. EngineError from the
    SqlEngine) pass through unchanged; anything else becomes ResolverError.
    """
    try:
        return hook(*args)
    except BambooError:
        raise
    except Exception as exc:
        name = getattr(hook, "__qualname__", repr(hook))
        raise ResolverError(f"{name} failed: {exc}") from exc


def expect_result(result: Any, result_type: type, hook_name: str) -> None:
    if not isinstance(result, result_type):
        raise ResolverError(
            f"{hook_name} must return {result_type.__name__}, got {type(result).__name__}"
        )


def run_single(storage: "Storage", obj: T, step: Callable[[T], R]) -> R:
    """Run one write and publish its affected tables once it succeeded."""
    result = step(obj)
    storage.internal.notify_about_changes(result.affected_tables)
    return result


def run_batch(
    storage: "Storage",
    objects: Sequence[T],
    step: Callable[[T], R],
    policy: TransactionPolicy,
    collection: C,
) -> C:
    """
    Run ``step`` for every object and publish the resulting changes.

    With a transaction (policy USE_IF_SUPPORTED and the engine supports it),
    all steps share one transaction and the union of affected tables is
    published once after commit. Any failure rolls the whole batch back,
    propagates, and publishes nothing.

    Without a transaction, each step commits on its own and its tables are
    published right away. A failing item does not stop later ones; once all
    items were tried, PartialBatchError is raised carrying the committed
    results and the failures.
    """
    internal = storage.internal
    if not objects:
        return collection

    if policy is TransactionPolicy.USE_IF_SUPPORTED and internal.transactions_supported():
        affected: frozenset[str] = frozenset()
        internal.begin_transaction()
        try:
            for obj in objects:
                result = step(obj)
                collection._add(obj, result)
                affected |= result.affected_tables
            internal.set_transaction_successful()
        finally:
            internal.end_transaction()

        internal.notify_about_changes(affected)
        return collection

    failures: list[tuple[T, BaseException]] = []
    for index, obj in enumerate(objects):
        try:
            result = step(obj)
        except BambooError as exc:
            logger.info(
                "Item %d of %d failed in a non-transactional batch: %s",
                index + 1,
                len(objects),
                exc,
            )
            failures.append((obj, exc))
            continue
        collection._add(obj, result)
        internal.notify_about_changes(result.affected_tables)

    if failures:
        raise PartialBatchError(collection, failures)
    return collection
