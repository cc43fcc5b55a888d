"""Tests for the catalog endpoints."""

from httpx import AsyncClient


class TestProductQuote:
    """Tests for GET /api/catalog/products/{product_id}."""

    async def test_quote_from_price_table(self, client: AsyncClient):
        response = await client.get(
            "/api/catalog/products/P-GRAN", params={"price_table_id": "TAB-VAREJO"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["unit_price_at_base_unit"] == 10.0
        assert data["price_source"] == "price_table"
        assert data["default_packaging_id"] == "PK-CX12"
        assert [p["auto_label"] for p in data["packagings"]] == ["CX 12xPC", "FD 24xPC"]

    async def test_quote_falls_back_to_sale_price(self, client: AsyncClient):
        response = await client.get("/api/catalog/products/P-AVEIA")

        data = response.json()
        assert data["unit_price_at_base_unit"] == 4.0
        assert data["price_source"] == "sale_price"
        assert data["default_packaging_id"] is None

    async def test_unknown_product(self, client: AsyncClient):
        response = await client.get("/api/catalog/products/P-NOPE")

        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "PRODUCT_NOT_FOUND"
        assert body["path"] == "/api/catalog/products/P-NOPE"
