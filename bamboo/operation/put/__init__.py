from .prepared import PreparedPutCollection, PreparedPutObject
from .resolver import DefaultPutResolver, PutResolver
from .results import PutCollectionResult, PutResult

__all__ = [
    "PutResolver",
    "DefaultPutResolver",
    "PutResult",
    "PutCollectionResult",
    "PreparedPutObject",
    "PreparedPutCollection",
]
