"""Fiscal recalculation service client."""

from src.infrastructure.fiscal.http_fiscal_client import (
    HttpFiscalClient,
    get_fiscal_client,
    reset_fiscal_client,
)

__all__ = [
    "HttpFiscalClient",
    "get_fiscal_client",
    "reset_fiscal_client",
]
