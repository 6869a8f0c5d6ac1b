from agenda.store.base import (
    DocumentSnapshot,
    DocumentStore,
    Filter,
    OrderBy,
    Query,
    join_path,
    run_query,
    split_path,
)
from agenda.store.memory import MemoryDocumentStore
from agenda.store.sql import SqlDocumentStore

__all__ = [
    "DocumentSnapshot",
    "DocumentStore",
    "Filter",
    "MemoryDocumentStore",
    "OrderBy",
    "Query",
    "SqlDocumentStore",
    "join_path",
    "run_query",
    "split_path",
]
