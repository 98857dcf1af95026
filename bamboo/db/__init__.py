from .engine import Cursor, SqlEngine
from .helpers import validate_identifier
from .queries import DeleteQuery, InsertQuery, Query, RawQuery, UpdateQuery

__all__ = [
    "SqlEngine",
    "Cursor",
    "RawQuery",
    "Query",
    "InsertQuery",
    "UpdateQuery",
    "DeleteQuery",
    "validate_identifier",
]
