"""Core interfaces (ports) for dependency injection."""

from src.core.interfaces.catalog import ICatalogGateway
from src.core.interfaces.fiscal import FiscalContext, FiscalResult, IFiscalCalculator
from src.core.interfaces.order_store import IOrderStore

__all__ = [
    # Catalog
    "ICatalogGateway",
    # Storage
    "IOrderStore",
    # Fiscal
    "IFiscalCalculator",
    "FiscalContext",
    "FiscalResult",
]
