"""SQLite implementation of the catalog gateway."""

import aiosqlite

from src.config import get_logger
from src.core.entities.product import Packaging, Product
from src.core.exceptions import DatabaseError
from src.core.interfaces.catalog import ICatalogGateway
from src.infrastructure.storage.sqlite.connection import get_connection, get_transaction

logger = get_logger(__name__)


class SQLiteCatalogStore(ICatalogGateway):
    """SQLite implementation of product, packaging and price lookups."""

    async def get_product(self, product_id: str) -> Product | None:
        """Get a product with its active packagings."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM products WHERE id = ?",
                (product_id,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            packagings = await self._fetch_packagings(conn, product_id)
            return self._row_to_product(row, packagings)

    async def list_packagings(self, product_id: str) -> list[Packaging]:
        """List active packagings, default sales unit first, then by factor."""
        async with get_connection() as conn:
            return await self._fetch_packagings(conn, product_id)

    async def get_price(self, product_id: str, price_table_id: str | None) -> float | None:
        """Base-unit price in a price table, or None without an entry."""
        if not price_table_id:
            return None

        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT pti.price FROM price_table_items pti
                JOIN price_tables pt ON pt.id = pti.price_table_id
                WHERE pti.price_table_id = ? AND pti.product_id = ? AND pt.is_active = 1
                """,
                (price_table_id, product_id),
            )
            row = await cursor.fetchone()
            return float(row["price"]) if row else None

    async def save_product(self, product: Product) -> Product:
        """Insert or replace a product and its packagings."""
        try:
            async with get_transaction() as conn:
                await conn.execute(
                    """
                    INSERT INTO products (
                        id, name, sku, base_uom, base_uom_name,
                        net_weight_kg_base, gross_weight_kg_base, sale_price
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name,
                        sku = excluded.sku,
                        base_uom = excluded.base_uom,
                        base_uom_name = excluded.base_uom_name,
                        net_weight_kg_base = excluded.net_weight_kg_base,
                        gross_weight_kg_base = excluded.gross_weight_kg_base,
                        sale_price = excluded.sale_price,
                        updated_at = datetime('now')
                    """,
                    (
                        product.id,
                        product.name,
                        product.sku,
                        product.base_uom,
                        product.base_uom_name,
                        product.net_weight_kg_base,
                        product.gross_weight_kg_base,
                        product.sale_price,
                    ),
                )
                await conn.execute("DELETE FROM packagings WHERE product_id = ?", (product.id,))
                for packaging in product.packagings:
                    await conn.execute(
                        """
                        INSERT INTO packagings (
                            id, product_id, label, qty_in_base, unit_code,
                            net_weight_kg, gross_weight_kg, gtin,
                            is_default_sales_unit, is_active
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            packaging.id,
                            product.id,
                            packaging.label,
                            packaging.qty_in_base,
                            packaging.unit_code,
                            packaging.net_weight_kg,
                            packaging.gross_weight_kg,
                            packaging.gtin,
                            int(packaging.is_default_sales_unit),
                            int(packaging.is_active),
                        ),
                    )
        except aiosqlite.Error as e:
            raise DatabaseError("save_product", str(e)) from e

        logger.info("product_saved", product_id=product.id, packagings=len(product.packagings))
        return product

    async def set_price(
        self, price_table_id: str, product_id: str, price: float, table_name: str | None = None
    ) -> None:
        """Set a product's base-unit price in a price table, creating the table if needed."""
        try:
            async with get_transaction() as conn:
                await conn.execute(
                    "INSERT OR IGNORE INTO price_tables (id, name) VALUES (?, ?)",
                    (price_table_id, table_name or price_table_id),
                )
                await conn.execute(
                    """
                    INSERT INTO price_table_items (price_table_id, product_id, price)
                    VALUES (?, ?, ?)
                    ON CONFLICT(price_table_id, product_id) DO UPDATE SET
                        price = excluded.price,
                        updated_at = datetime('now')
                    """,
                    (price_table_id, product_id, price),
                )
        except aiosqlite.Error as e:
            raise DatabaseError("set_price", str(e)) from e

    @staticmethod
    async def _fetch_packagings(conn: aiosqlite.Connection, product_id: str) -> list[Packaging]:
        cursor = await conn.execute(
            """
            SELECT * FROM packagings
            WHERE product_id = ? AND is_active = 1
            ORDER BY is_default_sales_unit DESC, qty_in_base ASC
            """,
            (product_id,),
        )
        rows = await cursor.fetchall()
        return [SQLiteCatalogStore._row_to_packaging(r) for r in rows]

    @staticmethod
    def _row_to_product(row: aiosqlite.Row, packagings: list[Packaging]) -> Product:
        """Convert a database row to a Product entity."""
        return Product(
            id=row["id"],
            name=row["name"],
            sku=row["sku"],
            base_uom=row["base_uom"] or "UN",
            base_uom_name=row["base_uom_name"],
            net_weight_kg_base=row["net_weight_kg_base"],
            gross_weight_kg_base=row["gross_weight_kg_base"],
            net_weight_g_base=row["net_weight_g_base"],
            gross_weight_g_base=row["gross_weight_g_base"],
            sale_price=float(row["sale_price"] or 0.0),
            packagings=packagings,
        )

    @staticmethod
    def _row_to_packaging(row: aiosqlite.Row) -> Packaging:
        """Convert a database row to a Packaging entity."""
        return Packaging(
            id=row["id"],
            product_id=row["product_id"],
            label=row["label"],
            qty_in_base=float(row["qty_in_base"]),
            unit_code=row["unit_code"],
            net_weight_kg=row["net_weight_kg"],
            gross_weight_kg=row["gross_weight_kg"],
            gtin=row["gtin"],
            is_default_sales_unit=bool(row["is_default_sales_unit"]),
            is_active=bool(row["is_active"]),
        )
