from .prepared import PreparedDeleteByQuery, PreparedDeleteCollection, PreparedDeleteObject
from .resolver import DefaultDeleteResolver, DeleteResolver
from .results import DeleteCollectionResult, DeleteResult

__all__ = [
    "DeleteResolver",
    "DefaultDeleteResolver",
    "DeleteResult",
    "DeleteCollectionResult",
    "PreparedDeleteObject",
    "PreparedDeleteCollection",
    "PreparedDeleteByQuery",
]
