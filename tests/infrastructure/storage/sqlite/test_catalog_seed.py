"""Tests for loading a catalog file."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from src.infrastructure.storage.sqlite.catalog_seed import load_catalog_file
from src.infrastructure.storage.sqlite.catalog_store import SQLiteCatalogStore

CATALOG = {
    "products": [
        {
            "id": "P-CAFE",
            "name": "Cafe Torrado 500g",
            "base_uom": "PC",
            "net_weight_g_base": 500,
            "sale_price": 18.0,
            "packagings": [
                {
                    "id": "PK-CAFE-CX10",
                    "product_id": "P-CAFE",
                    "label": "Caixa 10",
                    "qty_in_base": 10,
                    "unit_code": "CX",
                    "is_default_sales_unit": True,
                }
            ],
        }
    ],
    "price_tables": [{"id": "TAB-ATACADO", "name": "Atacado", "prices": {"P-CAFE": 15.5}}],
}


class TestLoadCatalogFile:
    """Tests for load_catalog_file."""

    async def test_loads_products_and_prices(self, db_path: Path, tmp_path: Path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(CATALOG))
        store = SQLiteCatalogStore()

        assert await load_catalog_file(path, store) == (1, 1)

        product = await store.get_product("P-CAFE")
        assert product.net_weight_kg_base == pytest.approx(0.5)
        assert product.default_packaging().id == "PK-CAFE-CX10"
        assert await store.get_price("P-CAFE", "TAB-ATACADO") == pytest.approx(15.5)

    async def test_reload_is_idempotent(self, db_path: Path, tmp_path: Path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(CATALOG))
        store = SQLiteCatalogStore()

        await load_catalog_file(path, store)
        await load_catalog_file(path, store)

        assert len(await store.list_packagings("P-CAFE")) == 1

    async def test_rejects_malformed_file(self, db_path: Path, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text(json.dumps({"products": [{"id": "P-X"}]}))

        with pytest.raises(ValidationError):
            await load_catalog_file(path, SQLiteCatalogStore())
