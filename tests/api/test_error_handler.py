"""Tests for error mapping."""

import pytest

from src.api.middleware.error_handler import _get_hint, _infer_error_code, status_for
from src.core.exceptions import (
    DatabaseError,
    FiscalRecalculationError,
    FiscalTimeoutError,
    InvalidStateTransitionError,
    NegativeAmountError,
    OrderNotReadyError,
    SessionNotFoundError,
)


class TestStatusFor:
    """Tests for exception to status mapping."""

    @pytest.mark.parametrize(
        "exc,expected",
        [
            (SessionNotFoundError("s"), 404),
            (NegativeAmountError("unit_price", -1), 422),
            (OrderNotReadyError(["Select a client"]), 422),
            (InvalidStateTransitionError("saving", "saving"), 409),
            (FiscalTimeoutError("o", 30), 504),
            (FiscalRecalculationError("o", "down"), 502),
            (DatabaseError("op", "locked"), 500),
            (ValueError("bad"), 400),
            (RuntimeError("boom"), 500),
        ],
    )
    def test_mapping(self, exc, expected):
        assert status_for(exc) == expected


class TestHints:
    """Tests for hint resolution."""

    def test_code_hint_wins(self):
        assert "quantity" in _get_hint("NON_POSITIVE_QUANTITY", 422)

    def test_status_fallback(self):
        assert _get_hint("SOMETHING_ELSE", 504) == "An upstream service timed out. Retry later."

    def test_infer_error_code(self):
        assert _infer_error_code(404, "Session not found: x") == "SESSION_NOT_FOUND"
        assert _infer_error_code(404, "gone") == "NOT_FOUND"
        assert _infer_error_code(418, "teapot") == "HTTP_ERROR"
