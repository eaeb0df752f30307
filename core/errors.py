"""Exception types raised by the round engine and its collaborators."""


class BlackjackError(Exception):
    """Base class for all round engine errors."""


class InvalidBet(BlackjackError, ValueError):
    """A wager that is not positive or exceeds the available balance."""

    def __init__(self, amount, balance=None) -> None:
        self.amount = amount
        self.balance = balance
        if balance is None or amount <= 0:
            message = f"Bet must be positive, got {amount}"
        else:
            message = f"Insufficient funds: bet {amount} exceeds balance {balance}"
        super().__init__(message)


class CardSourceUnavailable(BlackjackError):
    """The card source could not deliver a card. The action may be retried."""


class DeckExhausted(CardSourceUnavailable):
    """No unused cards remain in the current deck."""


class InvalidCardData(BlackjackError, ValueError):
    """A card has a missing or malformed rank or suit."""


class IllegalAction(BlackjackError):
    """An action that does not match the current round state."""

    def __init__(self, action: str, status: str, reason: str | None = None) -> None:
        self.action = action
        self.status = status
        self.reason = reason
        message = f"Cannot {action} while {status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
