"""Fixtures for SQLite store tests."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from src.config import get_settings
from src.core.entities.product import Product
from src.infrastructure.storage.sqlite import connection as conn_module
from src.infrastructure.storage.sqlite.catalog_store import SQLiteCatalogStore
from src.infrastructure.storage.sqlite.migrations import initialize_database
from src.infrastructure.storage.sqlite.order_store import SQLiteOrderStore


@pytest.fixture
async def db_path() -> AsyncIterator[Path]:
    """Migrated database under the test's data dir, pool closed afterwards."""
    path = get_settings().storage.db_path
    conn_module._pool = None
    results = await initialize_database(path, create_backup_before=False)
    assert all(r.success for r in results)
    try:
        yield path
    finally:
        await conn_module.close_pool()


@pytest.fixture
async def catalog_store(db_path: Path, granola: Product, oats: Product) -> SQLiteCatalogStore:
    store = SQLiteCatalogStore()
    await store.save_product(granola)
    await store.save_product(oats)
    await store.set_price("TAB-VAREJO", "P-GRAN", 10.0, "Varejo")
    return store


@pytest.fixture
def order_store(db_path: Path) -> SQLiteOrderStore:
    return SQLiteOrderStore()
