from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

_IDENTIFIER_RE = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


def validate_identifier(name: str, identifier_type: str = "identifier") -> str:
    """
    Return ``name`` if it can be interpolated into SQL as a table or column name.

    Accepted: ASCII letters, digits and underscores, not starting with a
    digit, at most 64 characters. Names still have to come from code; values
    always travel as bound parameters.

    Raises:
        TypeError: If ``name`` is not a string
        ValueError: If ``name`` is empty, too long or has other characters
    """
    if not isinstance(name, str):
        raise TypeError(f"{identifier_type} must be a string, got {type(name).__name__}")

    if not name:
        raise ValueError(f"{identifier_type} cannot be empty")

    if not _IDENTIFIER_RE.fullmatch(name):
        raise ValueError(
            f"{identifier_type} {name!r} may only use letters, digits and underscores "
            "and cannot start with a digit"
        )

    if len(name) > 64:
        raise ValueError(f"{identifier_type} {name!r} is longer than 64 characters")

    return name


def build_select(
    table: str,
    *,
    columns: Sequence[str] | None = None,
    distinct: bool = False,
    where: str | None = None,
    group_by: str | None = None,
    having: str | None = None,
    order_by: str | None = None,
    limit: int | None = None,
) -> str:
    """
    Build a SELECT statement.

    ``table`` and ``columns`` are validated identifiers. ``where``, ``group_by``,
    ``having`` and ``order_by`` are trusted SQL fragments; values inside them
    must be passed as named ``:param`` bindings.
    """
    table = validate_identifier(table, "table")
    if columns:
        col_sql = ", ".join(validate_identifier(c, "column name") for c in columns)
    else:
        col_sql = "*"

    parts = ["SELECT DISTINCT" if distinct else "SELECT", col_sql, "FROM", table]
    if where:
        parts += ["WHERE", where]
    if group_by:
        parts += ["GROUP BY", group_by]
    if having:
        parts += ["HAVING", having]
    if order_by:
        parts += ["ORDER BY", order_by]
    if limit is not None:
        parts.append(f"LIMIT {int(limit)}")
    return " ".join(parts)


def build_insert(table: str, columns: Sequence[str]) -> str:
    table = validate_identifier(table, "table")
    if not columns:
        raise ValueError(f"Cannot INSERT into {table} without any column values")
    col_names = ", ".join(validate_identifier(c, "column name") for c in columns)
    placeholders = ", ".join(f":{c}" for c in columns)
    return f"INSERT INTO {table} ({col_names}) VALUES ({placeholders})"


def build_update(
    table: str,
    row: Mapping[str, Any],
    where: str | None,
    where_args: Mapping[str, Any],
) -> tuple[str, dict[str, Any]]:
    """
    Build an UPDATE statement and its parameters.

    SET values are bound as ``:value_<i>`` so they never collide with the
    caller's where-clause parameter names.
    """
    table = validate_identifier(table, "table")
    if not row:
        raise ValueError(f"Cannot UPDATE {table} without any column values")

    set_clauses = []
    params: dict[str, Any] = {}
    for i, (col, val) in enumerate(row.items()):
        col = validate_identifier(col, "column name")
        param_name = f"value_{i}"
        set_clauses.append(f"{col} = :{param_name}")
        params[param_name] = val

    clashing = set(params) & set(where_args)
    if clashing:
        raise ValueError(
            f"where_args use reserved parameter names {sorted(clashing)!r}; "
            "rename them in the where clause"
        )
    params.update(where_args)

    sql = f"UPDATE {table} SET {', '.join(set_clauses)}"
    if where:
        sql += f" WHERE {where}"
    return sql, params


def build_delete(table: str, where: str | None) -> str:
    table = validate_identifier(table, "table")
    sql = f"DELETE FROM {table}"
    if where:
        sql += f" WHERE {where}"
    return sql
