"""
Request logging middleware.

Every request gets a short ID, echoed back in ``X-Request-ID`` and bound to
all events logged while it runs, along with the editing session when the
path names one.
"""

import time
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.config import bind_order_context, clear_order_context, get_logger

logger = get_logger(__name__)

SESSION_PREFIX = ("api", "orders", "sessions")


def _session_from_path(path: str) -> str | None:
    """Session ID from /api/orders/sessions/{session_id}/..., if present."""
    parts = path.strip("/").split("/")
    if tuple(parts[:3]) == SESSION_PREFIX and len(parts) > 3:
        return parts[3]
    return None


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id

        clear_order_context()
        bind_order_context(
            request_id=request_id,
            session_id=_session_from_path(request.url.path),
            method=request.method,
            path=request.url.path,
        )
        logger.info("request_started", client=request.client.host if request.client else None)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", error=str(e), duration_ms=_ms_since(started))
            raise

        duration_ms = _ms_since(started)
        log = logger.warning if response.status_code >= 500 else logger.info
        log("request_completed", status=response.status_code, duration_ms=duration_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response


def _ms_since(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
