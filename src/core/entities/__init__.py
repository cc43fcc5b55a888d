"""Core domain entities."""

from src.core.entities.audit import IntegrityIssue, IntegrityIssueKind, IntegrityReport
from src.core.entities.order import (
    DocType,
    OrderLine,
    OrderStatus,
    SalesOrder,
    SalesUnitSnapshot,
    SaveState,
    new_line_id,
)
from src.core.entities.product import Packaging, Product, resolve_weight_kg

__all__ = [
    # Catalog entities
    "Product",
    "Packaging",
    "resolve_weight_kg",
    # Order entities
    "SalesOrder",
    "OrderLine",
    "SalesUnitSnapshot",
    "OrderStatus",
    "DocType",
    "SaveState",
    "new_line_id",
    # Audit entities
    "IntegrityReport",
    "IntegrityIssue",
    "IntegrityIssueKind",
]
