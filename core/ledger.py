"""Balance ledgers - where the player's money lives between rounds."""

from abc import ABC, abstractmethod
from decimal import Decimal


def to_decimal(amount: int | float | Decimal | str) -> Decimal:
    """Convert an amount to Decimal without float artifacts."""
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


class BalanceLedger(ABC):
    """Abstract balance store. The round engine reads it and applies deltas."""

    @property
    @abstractmethod
    def balance(self) -> Decimal:
        """Current balance."""
        ...

    @abstractmethod
    def apply(self, delta: Decimal) -> Decimal:
        """Apply a signed delta and return the new balance."""
        ...


class InMemoryLedger(BalanceLedger):
    """Ledger kept in process memory, with a record of every delta."""

    def __init__(self, initial: int | float | Decimal | str = Decimal("1000")) -> None:
        self._balance = to_decimal(initial)
        self._entries: list[Decimal] = []

    @property
    def balance(self) -> Decimal:
        return self._balance

    def apply(self, delta: Decimal) -> Decimal:
        delta = to_decimal(delta)
        self._balance += delta
        self._entries.append(delta)
        return self._balance

    @property
    def entries(self) -> list[Decimal]:
        """Return every delta applied so far, oldest first."""
        return self._entries.copy()
