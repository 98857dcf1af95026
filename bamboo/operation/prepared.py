from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..errors import ConfigurationError
from .metrics import observe_operation

if TYPE_CHECKING:
    from ..storage import Storage

R = TypeVar("R")


def require(value: Any, what: str) -> Any:
    if value is None:
        raise ConfigurationError(f"Please specify {what}")
    return value


class PreparedOperation(ABC, Generic[R]):
    """
    A fully described operation, ready to run.

    The same work can be started three ways:
    - ``execute()`` blocks the calling thread until done
    - ``deferred()`` returns a zero-argument callable doing the same work on
      every call
    - ``await execute_async()`` runs ``execute()`` in a worker thread; every
      await is a fresh run, and a run cancelled before it starts does nothing

    Nothing is executed until one of these is invoked.
    """

    operation_name = "operation"

    def __init__(self, storage: "Storage") -> None:
        self.storage = require(storage, "storage")

    @abstractmethod
    def _execute(self) -> R:
        ...

    def execute(self) -> R:
        start_time = time.monotonic()
        status = "success"
        try:
            return self._execute()
        except BaseException:
            status = "error"
            raise
        finally:
            try:
                observe_operation(self.operation_name, status, time.monotonic() - start_time)
            except Exception:
                # Metrics must never mask the operation's own outcome
                pass

    def deferred(self) -> Callable[[], R]:
        return self.execute

    async def execute_async(self) -> R:
        return await asyncio.to_thread(self.execute)
