"""Payout arithmetic for settled rounds."""

import math
from decimal import Decimal
from typing import TypeVar

from core.hand import Winner

Amount = TypeVar("Amount", int, float, Decimal)


def calculate_payout(bet: Amount, is_winner_blackjack: bool) -> Amount:
    """
    Calculate the total credited for a winning hand.

    The amount includes the returned stake: a regular win pays 1:1
    (``2 * bet``) and a blackjack pays 3:2 rounded down
    (``bet + floor(1.5 * bet)``). Non-positive bets pay nothing.
    """
    if bet <= 0:
        return 0

    if is_winner_blackjack:
        return bet + math.floor(bet * 3 / 2)

    return bet * 2


def settlement_credit(result: Winner, bet: Amount, player_blackjack: bool) -> Amount:
    """
    Amount credited back to the balance when a round settles.

    Wins pay calculate_payout(), a push returns the stake and a loss
    returns nothing (the stake was taken when the bet was placed).
    """
    if bet <= 0 or result == "dealer":
        return 0
    if result == "push":
        return bet
    return calculate_payout(bet, player_blackjack)
