"""
Store elements: the collection, database and query capabilities used by handles.

Public API:
- Collectioner, Databaser, Querier: abstract interfaces
- Collection, Database, Query: pymongo-backed implementations
- MemoryCollection, MemoryDatabase, MemoryQuery: in-memory implementations
- ChangeInfo: outcome of bulk mutations
"""

from .base import ChangeInfo, Collectioner, Databaser, Querier
from .driver import Collection, Database, Query
from .memory import MemoryCollection, MemoryDatabase, MemoryQuery

__all__ = [
    # Interfaces
    "Collectioner",
    "Databaser",
    "Querier",
    # Pymongo
    "Collection",
    "Database",
    "Query",
    # In-memory
    "MemoryCollection",
    "MemoryDatabase",
    "MemoryQuery",
    # Shared
    "ChangeInfo",
]
