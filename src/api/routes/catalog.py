"""
Product catalog endpoints used by the quick-add form.
"""

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_quick_add_use_case
from src.application.dto.responses import ErrorResponse, ProductQuoteResponse
from src.application.use_cases import QuickAddItemUseCase

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.get(
    "/products/{product_id}",
    response_model=ProductQuoteResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_product_quote(
    product_id: str,
    price_table_id: str | None = Query(default=None, description="Price table to quote from"),
    use_case: QuickAddItemUseCase = Depends(get_quick_add_use_case),
) -> ProductQuoteResponse:
    """
    Product with its sales packagings and base-unit price.

    Falls back to the product's sale price when the table has no entry.
    """
    quote = await use_case.quote(product_id, price_table_id)
    return use_case.to_response(quote)
