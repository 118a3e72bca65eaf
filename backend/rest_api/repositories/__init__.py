"""
Repository Pattern implementation.
Centralizes data access with guaranteed tenant isolation.

Usage:
    from rest_api.repositories import get_edge_store

    store = get_edge_store(db)
    root = store.get_batch_by_code(tenant_id=1, code="DOUGH-550")
"""

from .batch import EdgeStore, SqlEdgeStore, batch_snapshot, get_edge_store

__all__ = [
    "EdgeStore",
    "SqlEdgeStore",
    "batch_snapshot",
    "get_edge_store",
]
