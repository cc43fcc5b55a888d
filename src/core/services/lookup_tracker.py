"""
Generation-stamped async lookups.

When the user picks product A, then product B before A's price/packaging
lookup has resolved, A's late answer must not overwrite B. Each lookup is
issued a ticket carrying the generation it belongs to; results are applied
only while that generation is still the live one.
"""

from dataclasses import dataclass
from typing import TypeVar

from src.core.exceptions import StaleLookupError

T = TypeVar("T")


@dataclass(frozen=True)
class LookupTicket:
    generation: int
    key: str | None = None


class LookupTracker:
    """Monotonic generation counter for one kind of lookup."""

    def __init__(self) -> None:
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def issue(self, key: str | None = None) -> LookupTicket:
        """Start a new lookup, invalidating every ticket issued before it."""
        self._generation += 1
        return LookupTicket(generation=self._generation, key=key)

    def cancel(self) -> None:
        """Abandon the in-flight lookup without starting another."""
        self._generation += 1

    def is_current(self, ticket: LookupTicket) -> bool:
        return ticket.generation == self._generation

    def resolve(self, ticket: LookupTicket, value: T) -> T:
        """Return ``value`` if the ticket is still live.

        Raises:
            StaleLookupError: a newer lookup was issued or this one was cancelled
        """
        if not self.is_current(ticket):
            raise StaleLookupError(ticket.generation, self._generation)
        return value
