from .batch import MapFunc, Row, TransactionPolicy
from .prepared import PreparedOperation
from .results import CollectionResult

__all__ = [
    "MapFunc",
    "Row",
    "TransactionPolicy",
    "PreparedOperation",
    "CollectionResult",
]
