"""Infrastructure layer implementations."""

from src.infrastructure import fiscal, storage

__all__ = ["storage", "fiscal"]
