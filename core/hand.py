"""Hand evaluation and round resolution for blackjack."""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Literal

from core.cards import Card, card_value

Winner = Literal["player", "dealer", "push"]


def _valid_cards(cards: Iterable[Card | None] | None) -> list[Card]:
    """Drop missing and malformed cards."""
    if not cards:
        return []
    return [card for card in cards if card is not None and card.is_valid]


def hand_value(cards: Iterable[Card | None] | None) -> int:
    """
    Calculate the best hand value.

    Non-ace cards are summed first. Aces are then added one at a time, each
    as 11 if that still leaves room for the remaining aces at 1 without
    going over 21, otherwise as 1. The result is the highest total that
    doesn't bust, or the all-aces-low total when every total busts.
    """
    total = 0
    aces = 0

    for card in _valid_cards(cards):
        if card.is_ace:
            aces += 1
        else:
            total += card_value(card)

    for remaining in range(aces - 1, -1, -1):
        if total + 11 + remaining <= 21:
            total += 11
        else:
            total += 1

    return total


def is_bust(cards: Iterable[Card | None] | None) -> bool:
    """Check if the hand has busted (value > 21)."""
    return hand_value(cards) > 21


def is_soft(cards: Iterable[Card | None] | None) -> bool:
    """Check if the hand counts an ace as 11."""
    valid = _valid_cards(cards)
    if not any(card.is_ace for card in valid):
        return False
    hard_total = sum(card_value(card, ace_high=False) for card in valid)
    return hand_value(valid) - hard_total == 10


def is_blackjack(cards: Iterable[Card | None] | None) -> bool:
    """
    Check if the hand is a natural blackjack.

    Exactly two valid cards, one ace and one ten-valued card, totalling 21.
    """
    if not cards:
        return False
    cards = list(cards)
    if len(cards) != 2 or len(_valid_cards(cards)) != 2:
        return False

    has_ace = any(card.is_ace for card in cards)
    has_ten = any(card.is_ten_value for card in cards)
    return has_ace and has_ten and hand_value(cards) == 21


@dataclass
class Hand:
    """An ordered blackjack hand. Deal order is kept for display."""

    cards: list[Card] = field(default_factory=list)

    def add_card(self, card: Card) -> None:
        """Add a card to the hand."""
        self.cards.append(card)

    def clear(self) -> None:
        """Remove all cards from the hand."""
        self.cards.clear()

    @property
    def value(self) -> int:
        """Best hand value, see hand_value()."""
        return hand_value(self.cards)

    @property
    def is_soft(self) -> bool:
        """Check if the hand is soft (has an ace counted as 11)."""
        return is_soft(self.cards)

    @property
    def is_blackjack(self) -> bool:
        """Check if the hand is a natural blackjack."""
        return is_blackjack(self.cards)

    @property
    def is_busted(self) -> bool:
        """Check if the hand has busted (value > 21)."""
        return is_bust(self.cards)

    @property
    def has_invalid_cards(self) -> bool:
        """Check if any card is missing a valid rank or suit."""
        return any(card is None or not card.is_valid for card in self.cards)

    @property
    def num_cards(self) -> int:
        """Return the number of cards in the hand."""
        return len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        value_str = f"({self.value})"
        if self.is_soft:
            value_str = f"(soft {self.value})"
        if self.is_blackjack:
            value_str = "(BLACKJACK)"
        if self.is_busted:
            value_str = "(BUST)"
        return f"{cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({self.cards!r}, value={self.value})"


def determine_winner(
    player_cards: Iterable[Card | None] | None,
    dealer_cards: Iterable[Card | None] | None,
) -> Winner:
    """
    Compare player and dealer hands.

    Checks run in a fixed order and the first match wins: empty hands push,
    then blackjacks, then busts, then totals (equal totals push).

    Returns:
        "player", "dealer" or "push"
    """
    player_cards = list(player_cards) if player_cards else []
    dealer_cards = list(dealer_cards) if dealer_cards else []

    if not player_cards or not dealer_cards:
        return "push"

    player_bj = is_blackjack(player_cards)
    dealer_bj = is_blackjack(dealer_cards)

    if player_bj and dealer_bj:
        return "push"
    if player_bj:
        return "player"
    if dealer_bj:
        return "dealer"

    # Player bust loses even if the dealer also busts
    if is_bust(player_cards):
        return "dealer"
    if is_bust(dealer_cards):
        return "player"

    player_value = hand_value(player_cards)
    dealer_value = hand_value(dealer_cards)

    if player_value == dealer_value:
        return "push"
    if player_value > dealer_value:
        return "player"
    return "dealer"
