"""
Core business logic services.

Layer-pure services that depend only on:
- src/core/entities/*
- src/core/interfaces/*
- src/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from src.core.services.lookup_tracker import LookupTicket, LookupTracker
from src.core.services.order_editor import MutationResult, OrderEditor
from src.core.services.order_integrity import OrderIntegrityChecker
from src.core.services.order_pricing import OrderAggregates, compute_aggregates
from src.core.services.sales_unit import (
    LineDescription,
    build_sales_unit_snapshot,
    describe_line,
    describe_order_line,
)

__all__ = [
    # Pricing
    "OrderAggregates",
    "compute_aggregates",
    # Editor
    "OrderEditor",
    "MutationResult",
    # Lookups
    "LookupTracker",
    "LookupTicket",
    # Integrity
    "OrderIntegrityChecker",
    # Sales unit
    "LineDescription",
    "build_sales_unit_snapshot",
    "describe_line",
    "describe_order_line",
]
