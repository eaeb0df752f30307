"""Round state enumerations."""

from enum import Enum


class RoundStatus(Enum):
    """
    Round state machine states.

    Flow: IDLE → DEALING → PLAYER_TURN → DEALER_TURN → COMPLETE → IDLE
    """

    # No round in progress, a bet may be set
    IDLE = "idle"

    # Initial four cards being dealt
    DEALING = "dealing"

    # Player actions
    PLAYER_TURN = "player_turn"

    # Dealer plays
    DEALER_TURN = "dealer_turn"

    # Round settled
    COMPLETE = "complete"

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


class RoundResult(Enum):
    """Who won the round."""

    PLAYER = "player"
    DEALER = "dealer"
    PUSH = "push"
    NONE = "none"

