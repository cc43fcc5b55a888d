"""Abstract interface for catalog lookups used by the order form."""

from abc import ABC, abstractmethod

from src.core.entities.product import Packaging, Product


class ICatalogGateway(ABC):
    """Read-only access to products, packagings and price tables."""

    @abstractmethod
    async def get_product(self, product_id: str) -> Product | None:
        """Get a product with its packagings."""
        pass

    @abstractmethod
    async def list_packagings(self, product_id: str) -> list[Packaging]:
        """List active packagings of a product."""
        pass

    @abstractmethod
    async def get_price(self, product_id: str, price_table_id: str | None) -> float | None:
        """Base-unit price of a product in a price table.

        Returns None when the table has no entry for the product.
        """
        pass
