from .config import RelayConfig, StorageConfig
from .db import DeleteQuery, InsertQuery, Query, RawQuery, SqlEngine, UpdateQuery
from .notify import ChangeBus, RedisRelay, Subscription
from .operation import TransactionPolicy
from .operation.delete import DefaultDeleteResolver, DeleteCollectionResult, DeleteResolver, DeleteResult
from .operation.get import DefaultGetResolver, GetResolver
from .operation.put import DefaultPutResolver, PutCollectionResult, PutResolver, PutResult
from .storage import Storage

__all__ = [
    "Storage",
    "StorageConfig",
    "RelayConfig",
    "SqlEngine",
    "ChangeBus",
    "Subscription",
    "RedisRelay",
    "TransactionPolicy",
    "RawQuery",
    "Query",
    "InsertQuery",
    "UpdateQuery",
    "DeleteQuery",
    "PutResolver",
    "DefaultPutResolver",
    "PutResult",
    "PutCollectionResult",
    "GetResolver",
    "DefaultGetResolver",
    "DeleteResolver",
    "DefaultDeleteResolver",
    "DeleteResult",
    "DeleteCollectionResult",
]
