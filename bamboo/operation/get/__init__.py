from .prepared import PreparedGet, PreparedGetCursor, PreparedGetObject, PreparedGetObjects
from .resolver import DefaultGetResolver, GetResolver

__all__ = [
    "GetResolver",
    "DefaultGetResolver",
    "PreparedGet",
    "PreparedGetCursor",
    "PreparedGetObjects",
    "PreparedGetObject",
]
