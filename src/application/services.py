"""
Service factory functions for dependency injection.

This module provides factory functions that wire configuration into
application services. API dependencies import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from src.application.order_sessions import OrderSessionRegistry
from src.config import get_settings
from src.core.services import OrderIntegrityChecker

# Singleton service instances
_session_registry: OrderSessionRegistry | None = None
_integrity_checker: OrderIntegrityChecker | None = None


def get_session_registry() -> OrderSessionRegistry:
    """
    Get or create the registry of orders being edited.

    Returns:
        Configured OrderSessionRegistry
    """
    global _session_registry

    if _session_registry is None:
        settings = get_settings()
        _session_registry = OrderSessionRegistry(
            ttl_seconds=settings.api.session_ttl_seconds,
            max_sessions=settings.api.max_sessions,
            epsilon=settings.pricing.aggregate_epsilon,
            clamp_line_totals=settings.pricing.clamp_line_totals,
        )
    return _session_registry


def get_integrity_checker() -> OrderIntegrityChecker:
    """Get or create OrderIntegrityChecker instance."""
    global _integrity_checker

    if _integrity_checker is None:
        settings = get_settings()
        _integrity_checker = OrderIntegrityChecker(
            tolerance=settings.pricing.audit_tolerance,
            clamp_line_totals=settings.pricing.clamp_line_totals,
        )
    return _integrity_checker


def reset_services() -> None:
    """Reset all service singletons (for testing)."""
    global _session_registry, _integrity_checker
    _session_registry = None
    _integrity_checker = None
