"""Database layer for the index."""

from phpintel.index._internal.db.database import Database
from phpintel.index._internal.db.storage import IndexStorage

__all__ = [
    "Database",
    "IndexStorage",
]
