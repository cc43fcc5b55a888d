"""Abstract interface for the fiscal (tax) calculation service."""

from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel, Field


class FiscalContext(BaseModel):
    """Parties of the operation, as needed to pick tax rules."""

    company_uf: str = "SP"
    company_tax_regime: Literal["simples", "normal"] = "simples"
    customer_uf: str | None = None
    customer_type: Literal["contribuinte", "isento", "nao_contribuinte"] = "nao_contribuinte"
    customer_is_final_consumer: bool = True


class FiscalResult(BaseModel):
    """Authoritative totals returned by the fiscal service."""

    order_id: str
    total_taxes: float = 0.0
    total_amount: float | None = None
    lines: int = 0
    details: dict = Field(default_factory=dict)


class IFiscalCalculator(ABC):
    """Server-side tax recalculation for a persisted order."""

    @abstractmethod
    async def recalculate(self, order_id: str, context: FiscalContext) -> FiscalResult:
        """Recalculate taxes for a stored order."""
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Check whether the fiscal service is reachable."""
        pass
