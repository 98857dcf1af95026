from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from ..errors import ConfigurationError
from .helpers import validate_identifier


def _checked(name: str, identifier_type: str) -> str:
    try:
        return validate_identifier(name, identifier_type)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(str(exc)) from exc


@dataclass(frozen=True)
class RawQuery:
    """
    Arbitrary SQL with named ``:param`` bindings.

    ``observes_tables`` lists the tables the query reads from; it is only used
    to re-run the query when those tables change.
    """
    query: str
    args: Mapping[str, Any] = field(default_factory=dict)
    observes_tables: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.query or not self.query.strip():
            raise ConfigurationError("RawQuery.query cannot be empty")
        object.__setattr__(self, "observes_tables", frozenset(self.observes_tables))


@dataclass(frozen=True)
class Query:
    """
    A structured SELECT against a single table.
    """
    table: str
    columns: Optional[Sequence[str]] = None
    distinct: bool = False
    where: Optional[str] = None
    where_args: Mapping[str, Any] = field(default_factory=dict)
    group_by: Optional[str] = None
    having: Optional[str] = None
    order_by: Optional[str] = None
    limit: Optional[int] = None

    def __post_init__(self) -> None:
        _checked(self.table, "table")
        for col in self.columns or ():
            _checked(col, "column name")
        if self.limit is not None and (not isinstance(self.limit, int) or self.limit < 0):
            raise ConfigurationError(f"limit must be a non-negative integer, got {self.limit!r}")
        if self.where_args and not self.where:
            raise ConfigurationError("where_args given without a where clause")


@dataclass(frozen=True)
class InsertQuery:
    table: str

    def __post_init__(self) -> None:
        _checked(self.table, "table")


@dataclass(frozen=True)
class UpdateQuery:
    table: str
    where: Optional[str] = None
    where_args: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _checked(self.table, "table")
        if self.where_args and not self.where:
            raise ConfigurationError("where_args given without a where clause")


@dataclass(frozen=True)
class DeleteQuery:
    table: str
    where: Optional[str] = None
    where_args: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _checked(self.table, "table")
        if self.where_args and not self.where:
            raise ConfigurationError("where_args given without a where clause")
