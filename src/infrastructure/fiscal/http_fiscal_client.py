"""
HTTP client for the fiscal recalculation service.

Taxes are computed server-side from the persisted order; this client only
asks for the recalculation and reports failures as domain exceptions.
Connection errors are retried with exponential backoff; timeouts are not,
since one attempt already spends the whole budget.
"""

import time
from typing import Any

import httpx
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_logger, get_settings
from src.config.settings import FiscalSettings
from src.core.exceptions import FiscalRecalculationError, FiscalTimeoutError
from src.core.interfaces.fiscal import FiscalContext, FiscalResult, IFiscalCalculator

logger = get_logger(__name__)


def context_payload(context: FiscalContext) -> dict[str, Any]:
    """Request body in the service's field names."""
    return {
        "companyUF": context.company_uf,
        "companyTaxRegime": context.company_tax_regime,
        "customerUF": context.customer_uf,
        "customerType": context.customer_type,
        "customerIsFinalConsumer": context.customer_is_final_consumer,
    }


class HttpFiscalClient(IFiscalCalculator):
    """
    Fiscal service over HTTP.

    Provides:
    - Automatic retries on connection errors (refused, reset)
    - Timeouts reported at once as FiscalTimeoutError
    - Non-2xx answers mapped to FiscalRecalculationError without retrying
    """

    def __init__(
        self,
        settings: FiscalSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings or get_settings().fiscal
        self._transport = transport
        self.base_url = self._settings.base_url.rstrip("/")
        self.timeout = self._settings.timeout_seconds

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        )

    def _get_retry_decorator(self) -> Any:
        """Get tenacity retry decorator with current settings."""
        delay = self._settings.retry_delay
        return retry(
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=delay,
                min=delay,
                max=delay * (self._settings.retry_multiplier**3),
            ),
            retry=(
                retry_if_exception_type(httpx.TransportError)
                & retry_if_not_exception_type(httpx.TimeoutException)
            ),
            before_sleep=self._log_retry,
            reraise=True,
        )

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        """Log retry attempts."""
        logger.warning(
            "fiscal_retry",
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def _post(self, path: str, payload: dict) -> httpx.Response:
        async with self._client() as client:
            return await client.post(path, json=payload)

    async def recalculate(self, order_id: str, context: FiscalContext) -> FiscalResult:
        """Ask the service to recalculate taxes for a stored order."""
        path = f"/orders/{order_id}/recalculate"
        start = time.time()

        try:
            response = await self._get_retry_decorator()(self._post)(path, context_payload(context))
        except httpx.TimeoutException as e:
            raise FiscalTimeoutError(order_id, self.timeout) from e
        except httpx.TransportError as e:
            raise FiscalRecalculationError(order_id, f"service unreachable: {e}") from e

        if response.status_code >= 400:
            raise FiscalRecalculationError(
                order_id, f"HTTP {response.status_code}: {response.text[:200]}"
            )

        result = self._parse_result(order_id, response)

        logger.info(
            "fiscal_recalculated",
            order_id=order_id,
            total_taxes=result.total_taxes,
            latency_ms=int((time.time() - start) * 1000),
        )
        return result

    @staticmethod
    def _parse_result(order_id: str, response: httpx.Response) -> FiscalResult:
        """FiscalResult from a 2xx body; an empty body means nothing to report."""
        try:
            data = response.json() if response.content else {}
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return FiscalResult(
                order_id=order_id,
                total_taxes=float(data.get("totalTaxes", 0.0) or 0.0),
                total_amount=data.get("totalAmount"),
                lines=int(data.get("lines", 0) or 0),
                details=data,
            )
        except (ValueError, TypeError) as e:
            logger.warning(
                "fiscal_response_invalid",
                order_id=order_id,
                body=response.text[:200],
                error=str(e),
            )
            raise FiscalRecalculationError(order_id, "invalid response body") from e

    async def check_health(self) -> bool:
        """Check if the fiscal service answers its health endpoint."""
        try:
            async with self._client() as client:
                response = await client.get("/health", timeout=5.0)
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("fiscal_health_check_failed", error=str(e))
            return False


# Singleton instance
_fiscal_client: HttpFiscalClient | None = None


def get_fiscal_client() -> HttpFiscalClient:
    """Get or create the fiscal client singleton."""
    global _fiscal_client
    if _fiscal_client is None:
        _fiscal_client = HttpFiscalClient()
    return _fiscal_client


def reset_fiscal_client() -> None:
    """Reset the singleton (for testing)."""
    global _fiscal_client
    _fiscal_client = None
