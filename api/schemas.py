"""Pydantic schemas for API requests and responses."""

from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal


class BetRequest(BaseModel):
    """Request to start a round with a bet."""

    amount: Decimal = Field(..., gt=0, description="Bet amount")


class ActionRequest(BaseModel):
    """Request for player action."""

    action: Literal["hit", "stand", "double"]


class SessionResponse(BaseModel):
    """A newly opened table."""

    session_id: str


class CardResponse(BaseModel):
    """Card representation. Rank and suit are None for invalid cards."""

    model_config = ConfigDict(from_attributes=True)

    rank: str | None
    suit: str | None
    name: str
    color: str | None
    value: int


class HandResponse(BaseModel):
    """Hand representation."""

    cards: list[CardResponse]
    value: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool


class GameStateResponse(BaseModel):
    """Current round state."""

    status: Literal["idle", "dealing", "player_turn", "dealer_turn", "complete"]
    result: Literal["player", "dealer", "push", "none"]
    player_hand: HandResponse
    dealer_hand: HandResponse
    dealer_showing: CardResponse | None
    bet: float
    balance: float
    payout: float
    has_blackjack: bool
    error: str | None
    can_hit: bool
    can_stand: bool
    can_double: bool
