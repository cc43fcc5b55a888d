"""Application use cases."""

from src.application.use_cases.audit_order import AuditOrderResult, AuditOrderUseCase
from src.application.use_cases.edit_order import EditOrderUseCase
from src.application.use_cases.quick_add_item import (
    QuickAddItemUseCase,
    QuickAddResult,
    QuickItemQuote,
)
from src.application.use_cases.repeat_last_order import (
    RepeatLastOrderResult,
    RepeatLastOrderUseCase,
)
from src.application.use_cases.save_order import SaveOrderUseCase, SaveOutcome

__all__ = [
    "QuickAddItemUseCase",
    "QuickAddResult",
    "QuickItemQuote",
    "EditOrderUseCase",
    "RepeatLastOrderUseCase",
    "RepeatLastOrderResult",
    "SaveOrderUseCase",
    "SaveOutcome",
    "AuditOrderUseCase",
    "AuditOrderResult",
]
