"""Abstract interface for sales order persistence."""

from abc import ABC, abstractmethod

from src.core.entities.order import OrderLine, SalesOrder


class IOrderStore(ABC):
    """Interface for sales order storage.

    Upserts are keyed by ID so a save that failed halfway can be replayed.
    """

    @abstractmethod
    async def upsert_order(self, order: SalesOrder) -> SalesOrder:
        """Insert or update the order header. Assigns ``id`` on first save."""
        pass

    @abstractmethod
    async def upsert_line(self, order_id: str, line: OrderLine) -> OrderLine:
        """Insert or update a line. Lines with a temporary ID get a permanent one."""
        pass

    @abstractmethod
    async def delete_lines(self, order_id: str, line_ids: list[str]) -> int:
        """Delete lines of an order. Returns number of rows deleted."""
        pass

    @abstractmethod
    async def get_order(self, order_id: str) -> SalesOrder | None:
        """Get order with its lines."""
        pass

    @abstractmethod
    async def get_last_order_for_client(
        self, client_id: str, exclude_order_id: str | None = None
    ) -> SalesOrder | None:
        """Most recent order document (not proposal) of a client, with lines."""
        pass

    @abstractmethod
    async def confirm_order(self, order_id: str) -> SalesOrder:
        """Mark the order confirmed."""
        pass

    @abstractmethod
    async def update_totals(self, order: SalesOrder) -> None:
        """Persist derived line and order totals without touching inputs."""
        pass
