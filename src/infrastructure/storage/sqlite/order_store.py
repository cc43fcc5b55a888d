"""SQLite implementation of sales order storage."""

import json
import uuid
from datetime import UTC, date, datetime

import aiosqlite

from src.config import get_logger
from src.core.entities.order import (
    DocType,
    OrderLine,
    OrderStatus,
    SalesOrder,
    SalesUnitSnapshot,
    SaveState,
)
from src.core.exceptions import DatabaseError, OrderNotFoundError
from src.core.interfaces.order_store import IOrderStore
from src.infrastructure.storage.sqlite.connection import get_connection, get_transaction

logger = get_logger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


class SQLiteOrderStore(IOrderStore):
    """SQLite implementation of sales order storage."""

    async def upsert_order(self, order: SalesOrder) -> SalesOrder:
        """Insert or update the order header.

        Status is only written on insert; confirmation goes through
        confirm_order.
        """
        now = _now()
        try:
            async with get_transaction() as conn:
                if order.id is None:
                    order.id = uuid.uuid4().hex
                if order.document_number is None:
                    cursor = await conn.execute(
                        "SELECT document_number FROM sales_orders WHERE id = ?",
                        (order.id,),
                    )
                    existing = await cursor.fetchone()
                    if existing and existing["document_number"] is not None:
                        order.document_number = existing["document_number"]
                    else:
                        cursor = await conn.execute(
                            "SELECT COALESCE(MAX(document_number), 0) + 1 FROM sales_orders"
                        )
                        order.document_number = (await cursor.fetchone())[0]

                await conn.execute(
                    """
                    INSERT INTO sales_orders (
                        id, document_number, doc_type, client_id, price_table_id,
                        date_issued, status, freight_amount, discount_amount,
                        subtotal_amount, total_amount, total_weight_kg,
                        total_gross_weight_kg, notes, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        doc_type = excluded.doc_type,
                        client_id = excluded.client_id,
                        price_table_id = excluded.price_table_id,
                        date_issued = excluded.date_issued,
                        freight_amount = excluded.freight_amount,
                        discount_amount = excluded.discount_amount,
                        subtotal_amount = excluded.subtotal_amount,
                        total_amount = excluded.total_amount,
                        total_weight_kg = excluded.total_weight_kg,
                        total_gross_weight_kg = excluded.total_gross_weight_kg,
                        notes = excluded.notes,
                        updated_at = excluded.updated_at
                    """,
                    (
                        order.id,
                        order.document_number,
                        order.doc_type.value,
                        order.client_id,
                        order.price_table_id,
                        order.date_issued.isoformat(),
                        order.status.value,
                        order.freight_amount,
                        order.discount_amount,
                        order.subtotal_amount,
                        order.total_amount,
                        order.total_weight_kg,
                        order.total_gross_weight_kg,
                        order.notes,
                        order.created_at.isoformat(),
                        now,
                    ),
                )
        except aiosqlite.Error as e:
            raise DatabaseError("upsert_order", str(e)) from e

        order.updated_at = datetime.fromisoformat(now)
        logger.info(
            "order_upserted",
            order_id=order.id,
            document_number=order.document_number,
            total=order.total_amount,
        )
        return order

    async def upsert_line(self, order_id: str, line: OrderLine) -> OrderLine:
        """Insert or update a line; temporary IDs are replaced by permanent ones."""
        line_id = line.id if line.is_persisted else uuid.uuid4().hex
        sales_unit = line.sales_unit.model_dump_json() if line.sales_unit else None
        now = _now()

        try:
            async with get_transaction() as conn:
                await conn.execute(
                    """
                    INSERT INTO sales_order_items (
                        id, order_id, product_id, product_name, quantity,
                        packaging_id, packaging_factor, unit_price, discount_amount,
                        total_amount, qty_base, unit_weight_kg,
                        gross_weight_kg_snapshot, sales_unit, notes,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        product_id = excluded.product_id,
                        product_name = excluded.product_name,
                        quantity = excluded.quantity,
                        packaging_id = excluded.packaging_id,
                        packaging_factor = excluded.packaging_factor,
                        unit_price = excluded.unit_price,
                        discount_amount = excluded.discount_amount,
                        total_amount = excluded.total_amount,
                        qty_base = excluded.qty_base,
                        unit_weight_kg = excluded.unit_weight_kg,
                        gross_weight_kg_snapshot = excluded.gross_weight_kg_snapshot,
                        sales_unit = excluded.sales_unit,
                        notes = excluded.notes,
                        updated_at = excluded.updated_at
                    """,
                    (
                        line_id,
                        order_id,
                        line.product_id,
                        line.product_name,
                        line.quantity,
                        line.packaging_id,
                        line.packaging_factor,
                        line.unit_price,
                        line.discount_amount,
                        line.total_amount,
                        line.qty_base,
                        line.unit_weight_kg,
                        line.gross_weight_kg_snapshot,
                        sales_unit,
                        line.notes,
                        now,
                        now,
                    ),
                )
        except aiosqlite.Error as e:
            raise DatabaseError("upsert_line", str(e)) from e

        return line.model_copy(update={"id": line_id, "order_id": order_id})

    async def delete_lines(self, order_id: str, line_ids: list[str]) -> int:
        """Delete lines of an order."""
        if not line_ids:
            return 0

        placeholders = ",".join("?" * len(line_ids))
        try:
            async with get_transaction() as conn:
                cursor = await conn.execute(
                    f"DELETE FROM sales_order_items WHERE order_id = ? AND id IN ({placeholders})",
                    (order_id, *line_ids),
                )
                deleted = cursor.rowcount
        except aiosqlite.Error as e:
            raise DatabaseError("delete_lines", str(e)) from e

        logger.info("order_lines_deleted", order_id=order_id, deleted=deleted)
        return deleted

    async def get_order(self, order_id: str) -> SalesOrder | None:
        """Get order by ID with lines."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM sales_orders WHERE id = ?",
                (order_id,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            items = await self._fetch_items(conn, order_id)
            return self._row_to_order(row, items)

    async def get_last_order_for_client(
        self, client_id: str, exclude_order_id: str | None = None
    ) -> SalesOrder | None:
        """Most recent order document of a client, with lines."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM sales_orders
                WHERE client_id = ? AND doc_type = 'order'
                  AND status != 'cancelled'
                  AND (? IS NULL OR id != ?)
                ORDER BY date_issued DESC, document_number DESC, created_at DESC
                LIMIT 1
                """,
                (client_id, exclude_order_id, exclude_order_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            items = await self._fetch_items(conn, row["id"])
            return self._row_to_order(row, items)

    async def confirm_order(self, order_id: str) -> SalesOrder:
        """Mark the order confirmed; already confirmed orders are left untouched."""
        now = _now()
        try:
            async with get_transaction() as conn:
                cursor = await conn.execute(
                    """
                    UPDATE sales_orders
                    SET status = 'confirmed', confirmed_at = ?, updated_at = ?
                    WHERE id = ? AND status = 'draft'
                    """,
                    (now, now, order_id),
                )
                changed = cursor.rowcount
        except aiosqlite.Error as e:
            raise DatabaseError("confirm_order", str(e)) from e

        order = await self.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        logger.info("order_confirmed", order_id=order_id, already_confirmed=changed == 0)
        return order

    async def update_totals(self, order: SalesOrder) -> None:
        """Persist derived line and order figures."""
        if order.id is None:
            raise OrderNotFoundError("unsaved")

        now = _now()
        try:
            async with get_transaction() as conn:
                for line in order.items:
                    await conn.execute(
                        """
                        UPDATE sales_order_items
                        SET total_amount = ?, qty_base = ?, updated_at = ?
                        WHERE id = ? AND order_id = ?
                        """,
                        (line.total_amount, line.qty_base, now, line.id, order.id),
                    )
                cursor = await conn.execute(
                    """
                    UPDATE sales_orders
                    SET subtotal_amount = ?, total_amount = ?, total_weight_kg = ?,
                        total_gross_weight_kg = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        order.subtotal_amount,
                        order.total_amount,
                        order.total_weight_kg,
                        order.total_gross_weight_kg,
                        now,
                        order.id,
                    ),
                )
                if cursor.rowcount == 0:
                    raise OrderNotFoundError(order.id)
        except aiosqlite.Error as e:
            raise DatabaseError("update_totals", str(e)) from e

        logger.info("order_totals_updated", order_id=order.id, total=order.total_amount)

    @staticmethod
    async def _fetch_items(conn: aiosqlite.Connection, order_id: str) -> list[OrderLine]:
        cursor = await conn.execute(
            "SELECT * FROM sales_order_items WHERE order_id = ? ORDER BY rowid",
            (order_id,),
        )
        rows = await cursor.fetchall()
        return [SQLiteOrderStore._row_to_line(r) for r in rows]

    @staticmethod
    def _parse_datetime(value: str | None) -> datetime:
        if value:
            try:
                parsed = datetime.fromisoformat(value)
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
            except (ValueError, TypeError):
                pass
        return datetime.now(UTC)

    @staticmethod
    def _row_to_order(row: aiosqlite.Row, items: list[OrderLine]) -> SalesOrder:
        """Convert a database row to a SalesOrder entity."""
        date_issued = date.today()
        if row["date_issued"]:
            try:
                date_issued = date.fromisoformat(row["date_issued"])
            except (ValueError, TypeError):
                pass

        status = OrderStatus(row["status"])
        return SalesOrder(
            id=row["id"],
            document_number=row["document_number"],
            doc_type=DocType(row["doc_type"]),
            client_id=row["client_id"],
            price_table_id=row["price_table_id"],
            date_issued=date_issued,
            status=status,
            save_state=SaveState.CONFIRMED if status == OrderStatus.CONFIRMED else SaveState.DRAFT,
            items=items,
            freight_amount=float(row["freight_amount"]),
            discount_amount=float(row["discount_amount"]),
            subtotal_amount=float(row["subtotal_amount"]),
            total_amount=float(row["total_amount"]),
            total_weight_kg=float(row["total_weight_kg"]),
            total_gross_weight_kg=float(row["total_gross_weight_kg"]),
            notes=row["notes"],
            created_at=SQLiteOrderStore._parse_datetime(row["created_at"]),
            updated_at=SQLiteOrderStore._parse_datetime(row["updated_at"]),
        )

    @staticmethod
    def _row_to_line(row: aiosqlite.Row) -> OrderLine:
        """Convert a database row to an OrderLine entity."""
        sales_unit = None
        if row["sales_unit"]:
            try:
                sales_unit = SalesUnitSnapshot.model_validate(json.loads(row["sales_unit"]))
            except (ValueError, TypeError):
                logger.warning("invalid_sales_unit_snapshot", line_id=row["id"])

        return OrderLine(
            id=row["id"],
            order_id=row["order_id"],
            product_id=row["product_id"],
            product_name=row["product_name"] or "",
            quantity=float(row["quantity"]),
            packaging_id=row["packaging_id"],
            packaging_factor=float(row["packaging_factor"] or 1.0),
            unit_price=float(row["unit_price"]),
            discount_amount=float(row["discount_amount"]),
            total_amount=float(row["total_amount"]),
            qty_base=float(row["qty_base"]),
            unit_weight_kg=float(row["unit_weight_kg"]),
            gross_weight_kg_snapshot=float(row["gross_weight_kg_snapshot"]),
            sales_unit=sales_unit,
            notes=row["notes"],
        )
