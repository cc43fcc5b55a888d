"""Edit Order Use Case: line and charge edits on an order being edited."""

import asyncio

from src.application.dto.requests import (
    ChangePackagingRequest,
    SetChargesRequest,
    UpdateLineRequest,
)
from src.config import bind_order_context, get_logger
from src.core.entities.product import Product
from src.core.exceptions import ProductNotFoundError
from src.core.interfaces.catalog import ICatalogGateway
from src.core.services.order_editor import MutationResult, OrderEditor

logger = get_logger(__name__)


class EditOrderUseCase:
    """Apply user edits through the order editor."""

    def __init__(self, catalog: ICatalogGateway | None = None):
        self._catalog = catalog

    async def _get_catalog(self) -> ICatalogGateway:
        if self._catalog is None:
            from src.infrastructure.storage.sqlite import get_catalog_store

            self._catalog = await get_catalog_store()
        return self._catalog

    async def ensure_product(self, editor: OrderEditor, product_id: str) -> Product:
        """Load a product the editor has not seen yet (stored or copied lines).

        Raises:
            ProductNotFoundError: product no longer exists in the catalog
        """
        product = editor.known_product(product_id)
        if product is not None:
            return product

        catalog = await self._get_catalog()
        product, packagings = await asyncio.gather(
            catalog.get_product(product_id),
            catalog.list_packagings(product_id),
        )
        if product is None:
            raise ProductNotFoundError(product_id)

        product = product.model_copy(update={"packagings": packagings})
        editor.remember_product(product)
        return product

    async def change_packaging(
        self, editor: OrderEditor, line_id: str, request: ChangePackagingRequest
    ) -> MutationResult:
        line = editor.order.find_line(line_id)
        if line is not None:
            await self.ensure_product(editor, line.product_id)

        result = editor.change_packaging(line_id, request.packaging_id)
        self._log("change_packaging", editor, result, line_id=line_id)
        return result

    def update_line(
        self, editor: OrderEditor, line_id: str, request: UpdateLineRequest
    ) -> MutationResult:
        result = editor.update_line(line_id, request.field, request.value)
        self._log("update_line", editor, result, line_id=line_id, field=request.field)
        return result

    def remove_line(self, editor: OrderEditor, line_id: str) -> MutationResult:
        result = editor.remove_line(line_id)
        self._log("remove_line", editor, result, line_id=line_id)
        return result

    def set_charges(self, editor: OrderEditor, request: SetChargesRequest) -> MutationResult:
        result = editor.set_charges(request.freight_amount, request.discount_amount)
        self._log("set_charges", editor, result)
        return result

    @staticmethod
    def _log(operation: str, editor: OrderEditor, result: MutationResult, **extra) -> None:
        order = editor.order
        bind_order_context(order_id=order.id, client_id=order.client_id)
        logger.info(
            "order_edited",
            operation=operation,
            accepted=result.accepted,
            total=order.total_amount,
            **extra,
        )
