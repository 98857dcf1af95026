from __future__ import annotations

from typing import Any


class BambooError(Exception):
    """Base exception for bamboo errors."""


class ConfigurationError(BambooError):
    """Operation prepared without a required object, map func or resolver."""


class MappingError(BambooError):
    """A map func could not convert an object to a row (or a row to an object)."""


class EngineError(BambooError):
    """The storage engine rejected a query, insert, update or delete."""


class ResolverError(BambooError):
    """A resolver raised inside one of its perform/after hooks."""


class RelayError(BambooError):
    """Failure while relaying change notifications through Redis."""


class PartialBatchError(BambooError):
    """
    One or more items of a non-transactional batch failed.

    Items that succeeded are already committed and notified; they are
    available through ``result``. ``failures`` holds ``(obj, exception)``
    pairs in input order.
    """

    def __init__(self, result: Any, failures: list[tuple[Any, BaseException]]) -> None:
        self.result = result
        self.failures = failures
        super().__init__(
            f"{len(failures)} of {len(failures) + len(result)} items failed "
            "in a non-transactional batch"
        )
