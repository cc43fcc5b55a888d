"""Quick Add Item Use Case: resolves a product's price and packagings and adds it to an order."""

import asyncio
from contextlib import nullcontext
from dataclasses import dataclass, field

from src.application.dto.requests import AddLineRequest
from src.application.dto.responses import PackagingResponse, ProductQuoteResponse
from src.config import bind_order_context, get_logger
from src.core.entities.product import Packaging, Product
from src.core.exceptions import ProductNotFoundError
from src.core.interfaces.catalog import ICatalogGateway
from src.core.services.lookup_tracker import LookupTicket, LookupTracker
from src.core.services.order_editor import MutationResult, OrderEditor
from src.core.services.sales_unit import build_sales_unit_snapshot

logger = get_logger(__name__)

PRICE_TABLE = "price_table"
SALE_PRICE = "sale_price"


@dataclass
class QuickItemQuote:
    """Everything the form needs to add one product."""

    product: Product
    unit_price_at_base_unit: float
    price_source: str
    packagings: list[Packaging] = field(default_factory=list)
    ticket: LookupTicket | None = None

    @property
    def default_packaging(self) -> Packaging | None:
        for packaging in self.packagings:
            if packaging.is_default_sales_unit:
                return packaging
        return None


@dataclass
class QuickAddResult:
    """Result of quick-add; ``quote`` is None when a newer selection won."""

    quote: QuickItemQuote | None
    mutation: MutationResult | None = None

    @property
    def superseded(self) -> bool:
        return self.quote is None


class QuickAddItemUseCase:
    """Quote a product against a price table and append it to an order."""

    def __init__(self, catalog: ICatalogGateway | None = None):
        self._catalog = catalog

    async def _get_catalog(self) -> ICatalogGateway:
        if self._catalog is None:
            from src.infrastructure.storage.sqlite import get_catalog_store

            self._catalog = await get_catalog_store()
        return self._catalog

    async def quote(self, product_id: str, price_table_id: str | None = None) -> QuickItemQuote:
        """Fetch product, packagings and price concurrently.

        Raises:
            ProductNotFoundError: product does not exist
        """
        catalog = await self._get_catalog()
        product, packagings, table_price = await asyncio.gather(
            catalog.get_product(product_id),
            catalog.list_packagings(product_id),
            catalog.get_price(product_id, price_table_id),
        )
        if product is None:
            raise ProductNotFoundError(product_id)

        product = product.model_copy(update={"packagings": packagings})

        if table_price is not None:
            price, source = table_price, PRICE_TABLE
        else:
            price, source = product.sale_price, SALE_PRICE

        return QuickItemQuote(
            product=product,
            unit_price_at_base_unit=price,
            price_source=source,
            packagings=product.sales_packagings(),
        )

    async def select_product(
        self, tracker: LookupTracker, product_id: str, price_table_id: str | None = None
    ) -> QuickItemQuote | None:
        """Quote a product for the form; None when a newer selection superseded it."""
        ticket = tracker.issue(product_id)
        quote = await self.quote(product_id, price_table_id)

        if not tracker.is_current(ticket):
            logger.info(
                "quick_add_lookup_discarded",
                product_id=product_id,
                generation=ticket.generation,
                current=tracker.generation,
            )
            return None

        quote.ticket = ticket
        return quote

    def add(
        self,
        editor: OrderEditor,
        quote: QuickItemQuote,
        quantity: float,
        packaging_id: str | None = None,
        use_base_unit: bool = False,
        unit_price_at_base_unit: float | None = None,
    ) -> MutationResult:
        """Append the quoted product. Without an explicit packaging the default sales unit is used."""
        if packaging_id is None and not use_base_unit and quote.default_packaging:
            packaging_id = quote.default_packaging.id
        price = (
            quote.unit_price_at_base_unit
            if unit_price_at_base_unit is None
            else unit_price_at_base_unit
        )
        return editor.add_line(quote.product, quantity, packaging_id, price)

    async def execute(
        self,
        editor: OrderEditor,
        tracker: LookupTracker,
        request: AddLineRequest,
        lock: asyncio.Lock | None = None,
    ) -> QuickAddResult:
        """
        Look up the product, then add it.

        Only the add runs under ``lock``; the lookup stays outside so a newer
        selection can supersede it while another edit or a save holds the order.
        """
        order = editor.order
        bind_order_context(order_id=order.id, client_id=order.client_id)
        logger.info(
            "quick_add_started",
            product_id=request.product_id,
            quantity=request.quantity,
            packaging_id=request.packaging_id,
        )

        quote = await self.select_product(tracker, request.product_id, order.price_table_id)
        if quote is None:
            return QuickAddResult(quote=None)

        async with lock if lock is not None else nullcontext():
            if quote.ticket is not None and not tracker.is_current(quote.ticket):
                logger.info("quick_add_superseded_while_waiting", product_id=request.product_id)
                return QuickAddResult(quote=None)
            mutation = self.add(
                editor,
                quote,
                request.quantity,
                packaging_id=request.packaging_id,
                use_base_unit=request.use_base_unit,
                unit_price_at_base_unit=request.unit_price_at_base_unit,
            )

        logger.info(
            "quick_add_complete",
            product_id=request.product_id,
            accepted=mutation.accepted,
            price_source=quote.price_source,
            total=order.total_amount,
        )
        return QuickAddResult(quote=quote, mutation=mutation)

    def to_response(self, quote: QuickItemQuote) -> ProductQuoteResponse:
        """Convert quote to API response."""
        product = quote.product
        default = quote.default_packaging
        return ProductQuoteResponse(
            product_id=product.id,
            name=product.name,
            sku=product.sku,
            base_uom=product.base_uom,
            unit_price_at_base_unit=quote.unit_price_at_base_unit,
            price_source=quote.price_source,
            packagings=[
                PackagingResponse(
                    id=p.id,
                    label=p.label,
                    qty_in_base=p.qty_in_base,
                    unit_code=p.unit_code,
                    is_default_sales_unit=p.is_default_sales_unit,
                    auto_label=build_sales_unit_snapshot(product, p).auto_label,
                )
                for p in quote.packagings
            ],
            default_packaging_id=default.id if default else None,
        )
