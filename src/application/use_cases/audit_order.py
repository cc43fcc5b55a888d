"""Audit Order Use Case: checks a stored order's totals against its lines."""

from dataclasses import dataclass

from src.application.dto.requests import AuditOrderRequest
from src.application.dto.responses import AuditOrderResponse, IntegrityIssueResponse
from src.config import bind_order_context, get_logger, get_settings
from src.core.entities.audit import IntegrityReport
from src.core.exceptions import OrderDeskError, OrderNotFoundError
from src.core.interfaces.fiscal import FiscalContext, IFiscalCalculator
from src.core.interfaces.order_store import IOrderStore
from src.core.services.order_integrity import OrderIntegrityChecker

logger = get_logger(__name__)


@dataclass
class AuditOrderResult:
    """Result of auditing an order."""

    report: IntegrityReport
    corrected: bool = False
    fiscal_recalculated: bool = False


class AuditOrderUseCase:
    """
    Recompute a stored order's line and order totals and report drift.

    With ``apply_corrections`` the recomputed figures are written back and a
    fiscal recalculation is requested, since taxes were computed from the
    drifted totals.
    """

    def __init__(
        self,
        order_store: IOrderStore | None = None,
        fiscal: IFiscalCalculator | None = None,
        checker: OrderIntegrityChecker | None = None,
    ):
        self._order_store = order_store
        self._fiscal = fiscal
        self._settings = get_settings()
        if checker is None:
            from src.application.services import get_integrity_checker

            checker = get_integrity_checker()
        self._checker = checker

    async def _get_order_store(self) -> IOrderStore:
        if self._order_store is None:
            from src.infrastructure.storage.sqlite import get_order_store

            self._order_store = await get_order_store()
        return self._order_store

    async def _get_fiscal(self) -> IFiscalCalculator:
        if self._fiscal is None:
            from src.infrastructure.fiscal import get_fiscal_client

            self._fiscal = get_fiscal_client()
        return self._fiscal

    async def execute(self, request: AuditOrderRequest) -> AuditOrderResult:
        """Execute audit order use case."""
        bind_order_context(order_id=request.order_id)
        logger.info("audit_order_started", apply_corrections=request.apply_corrections)

        store = await self._get_order_store()
        order = await store.get_order(request.order_id)
        if order is None:
            raise OrderNotFoundError(request.order_id)

        if not request.apply_corrections:
            report = self._checker.check(order)
            logger.info("audit_order_complete", issues=len(report.issues))
            return AuditOrderResult(report=report)

        report = self._checker.correct(order)
        if report.is_consistent:
            logger.info("audit_order_complete", issues=0)
            return AuditOrderResult(report=report)

        await store.update_totals(order)
        logger.info(
            "audit_order_corrected",
            issues=len(report.issues),
            subtotal=order.subtotal_amount,
            total=order.total_amount,
        )

        fiscal_done = False
        if self._settings.fiscal.enabled:
            fiscal = await self._get_fiscal()
            try:
                await fiscal.recalculate(
                    order.id,
                    FiscalContext(
                        company_uf=self._settings.fiscal.company_uf,
                        company_tax_regime=self._settings.fiscal.company_tax_regime,
                    ),
                )
                fiscal_done = True
            except OrderDeskError as e:
                # Corrected totals are already stored; taxes catch up on the next save
                logger.warning("audit_fiscal_recalculation_failed", error=e.message)

        return AuditOrderResult(report=report, corrected=True, fiscal_recalculated=fiscal_done)

    def to_response(self, result: AuditOrderResult) -> AuditOrderResponse:
        """Convert result to API response."""
        report = result.report
        return AuditOrderResponse(
            order_id=report.order_id or "",
            consistent=report.is_consistent,
            tolerance=report.tolerance,
            issues=[
                IntegrityIssueResponse(
                    kind=issue.kind.value,
                    line_id=issue.line_id,
                    stored=issue.stored,
                    expected=issue.expected,
                    difference=issue.difference,
                )
                for issue in report.issues
            ],
            expected_subtotal=report.expected_subtotal,
            expected_total=report.expected_total,
            corrected=result.corrected,
            fiscal_recalculated=result.fiscal_recalculated,
            checked_at=report.checked_at,
        )
