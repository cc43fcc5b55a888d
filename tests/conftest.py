"""Pytest configuration and fixtures."""

from collections.abc import Generator
from pathlib import Path

import pytest

from src.application.services import reset_services
from src.config import reset_settings
from src.core.entities.order import SalesOrder
from src.core.entities.product import Packaging, Product
from src.core.services.order_editor import OrderEditor
from src.infrastructure.fiscal import reset_fiscal_client


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Fresh settings and service singletons per test, data dir under tmp."""
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "data"))
    reset_settings()
    reset_services()
    reset_fiscal_client()
    yield
    reset_settings()
    reset_services()
    reset_fiscal_client()


@pytest.fixture
def granola() -> Product:
    """Product sold by the piece, in boxes of 12 or bales of 24."""
    return Product(
        id="P-GRAN",
        name="Granola Tradicional 1kg",
        sku="GRAN-1KG",
        base_uom="PC",
        base_uom_name="Pacote",
        net_weight_kg_base=1.0,
        gross_weight_kg_base=1.05,
        sale_price=9.5,
        packagings=[
            Packaging(
                id="PK-CX12",
                product_id="P-GRAN",
                label="Caixa 12",
                qty_in_base=12,
                unit_code="CX",
                gross_weight_kg=13.0,
                is_default_sales_unit=True,
            ),
            Packaging(
                id="PK-FD24",
                product_id="P-GRAN",
                label="Fardo 24",
                qty_in_base=24,
                unit_code="FD",
            ),
        ],
    )


@pytest.fixture
def oats() -> Product:
    """Product whose catalog weights are in grams."""
    return Product(
        id="P-AVEIA",
        name="Aveia em Flocos 500g",
        base_uom="PC",
        net_weight_g_base=500,
        gross_weight_g_base=520,
        sale_price=4.0,
        packagings=[
            Packaging(
                id="PK-AV-CX6",
                product_id="P-AVEIA",
                label="Caixa 6",
                qty_in_base=6,
                unit_code="CX",
            ),
        ],
    )


@pytest.fixture
def order() -> SalesOrder:
    """Empty draft for a client."""
    return SalesOrder(client_id="CLI-0042", price_table_id="TAB-VAREJO")


@pytest.fixture
def editor(order: SalesOrder, granola: Product, oats: Product) -> OrderEditor:
    """Editor over the empty draft that knows both products."""
    return OrderEditor(order=order, products=[granola, oats])
