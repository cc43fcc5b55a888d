"""SQLite storage implementations."""

from src.infrastructure.storage.sqlite.catalog_store import SQLiteCatalogStore
from src.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    PoolHealth,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)
from src.infrastructure.storage.sqlite.order_store import SQLiteOrderStore

# Singleton instances
_catalog_store: SQLiteCatalogStore | None = None
_order_store: SQLiteOrderStore | None = None


async def get_catalog_store() -> SQLiteCatalogStore:
    """Get singleton catalog store instance."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = SQLiteCatalogStore()
    return _catalog_store


async def get_order_store() -> SQLiteOrderStore:
    """Get singleton order store instance."""
    global _order_store
    if _order_store is None:
        _order_store = SQLiteOrderStore()
    return _order_store


__all__ = [
    # Connection
    "ConnectionPool",
    "PoolHealth",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    # Store classes
    "SQLiteCatalogStore",
    "SQLiteOrderStore",
    # Factory functions
    "get_catalog_store",
    "get_order_store",
]
