"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Implementing use cases that coordinate core services
3. Providing factory functions for dependency injection

Use cases are the only entry point for API handlers.
"""

from src.application.dto.requests import (
    AddLineRequest,
    AuditOrderRequest,
    ChangePackagingRequest,
    OpenOrderSessionRequest,
    SaveOrderRequest,
    SetChargesRequest,
    UpdateLineRequest,
)
from src.application.dto.responses import (
    AuditOrderResponse,
    ErrorResponse,
    HealthResponse,
    MutationResponse,
    OrderLineResponse,
    OrderSessionResponse,
    ProductQuoteResponse,
    ProviderHealthResponse,
    RepeatLastOrderResponse,
    SaveOrderResponse,
)
from src.application.order_sessions import OrderSession, OrderSessionRegistry
from src.application.services import (
    get_integrity_checker,
    get_session_registry,
    reset_services,
)
from src.application.use_cases import (
    AuditOrderUseCase,
    EditOrderUseCase,
    QuickAddItemUseCase,
    RepeatLastOrderUseCase,
    SaveOrderUseCase,
)

__all__ = [
    # Request DTOs
    "OpenOrderSessionRequest",
    "AddLineRequest",
    "UpdateLineRequest",
    "ChangePackagingRequest",
    "SetChargesRequest",
    "SaveOrderRequest",
    "AuditOrderRequest",
    # Response DTOs
    "OrderSessionResponse",
    "OrderLineResponse",
    "MutationResponse",
    "ProductQuoteResponse",
    "RepeatLastOrderResponse",
    "SaveOrderResponse",
    "AuditOrderResponse",
    "HealthResponse",
    "ProviderHealthResponse",
    "ErrorResponse",
    # Sessions
    "OrderSession",
    "OrderSessionRegistry",
    # Use Cases
    "QuickAddItemUseCase",
    "EditOrderUseCase",
    "RepeatLastOrderUseCase",
    "SaveOrderUseCase",
    "AuditOrderUseCase",
    # Service factories
    "get_session_registry",
    "get_integrity_checker",
    "reset_services",
]
