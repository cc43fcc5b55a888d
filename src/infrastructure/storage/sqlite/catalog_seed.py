"""Load products, packagings and price tables from a JSON file."""

from pathlib import Path

from pydantic import BaseModel, Field

from src.config import get_logger
from src.core.entities.product import Product
from src.infrastructure.storage.sqlite.catalog_store import SQLiteCatalogStore

logger = get_logger(__name__)


class PriceTableSeed(BaseModel):
    id: str
    name: str | None = None
    prices: dict[str, float] = Field(default_factory=dict)  # product id -> base-unit price


class CatalogSeed(BaseModel):
    """
    Shape of a catalog file::

        {
          "products": [{"id": "P-GRAN", "name": "...", "packagings": [...]}],
          "price_tables": [{"id": "TAB-VAREJO", "prices": {"P-GRAN": 10.0}}]
        }
    """

    products: list[Product] = Field(default_factory=list)
    price_tables: list[PriceTableSeed] = Field(default_factory=list)


async def load_catalog_file(path: Path, store: SQLiteCatalogStore) -> tuple[int, int]:
    """
    Upsert everything in ``path``.

    Returns:
        (products saved, prices set)

    Raises:
        pydantic.ValidationError: malformed file
        DatabaseError: write failed
    """
    seed = CatalogSeed.model_validate_json(path.read_text(encoding="utf-8"))

    for product in seed.products:
        await store.save_product(product)

    prices = 0
    for table in seed.price_tables:
        for product_id, price in table.prices.items():
            await store.set_price(table.id, product_id, price, table.name)
            prices += 1

    logger.info("catalog_seeded", path=str(path), products=len(seed.products), prices=prices)
    return len(seed.products), prices
