"""Dealer draw policy."""

from typing import Iterable

from core.cards import Card
from core.hand import hand_value


def is_soft_17(cards: Iterable[Card | None] | None) -> bool:
    """
    Check if the hand is a soft 17: a total of 17 holding at least one ace.

    Any 17 with an ace counts, including hands like 10-6-A where the ace
    is already valued as 1.
    """
    if not cards:
        return False
    cards = list(cards)
    has_ace = any(card is not None and card.is_ace for card in cards)
    return has_ace and hand_value(cards) == 17


def should_dealer_hit(
    dealer_cards: Iterable[Card | None] | None,
    hit_on_soft_17: bool = True,
) -> bool:
    """
    Determine if the dealer should draw another card.

    The dealer hits below 17 and stands on 17 or more, except that a soft
    17 is hit when ``hit_on_soft_17`` is set (H17 tables). An empty hand
    never hits.
    """
    if not dealer_cards:
        return False
    dealer_cards = list(dealer_cards)

    value = hand_value(dealer_cards)
    if value < 17:
        return True
    if value == 17 and hit_on_soft_17:
        return is_soft_17(dealer_cards)
    return False
