"""Core blackjack round engine - 100% UI-agnostic."""

from core.cards import Card, Deck, Rank, Suit, card_value
from core.dealer import is_soft_17, should_dealer_hit
from core.hand import Hand, determine_winner, hand_value, is_blackjack, is_bust, is_soft
from core.payout import calculate_payout, settlement_credit

__all__ = [
    "Card",
    "Deck",
    "Rank",
    "Suit",
    "card_value",
    "Hand",
    "hand_value",
    "is_bust",
    "is_soft",
    "is_blackjack",
    "determine_winner",
    "should_dealer_hit",
    "is_soft_17",
    "calculate_payout",
    "settlement_credit",
]
