"""Pytest fixtures for blackjack round engine tests."""

import pytest
from decimal import Decimal
from random import Random

from hypothesis import strategies as st

from core.cards import Card, Rank, Suit
from core.errors import CardSourceUnavailable
from core.game import BlackjackTable
from core.hand import Hand
from core.ledger import InMemoryLedger
from core.rules import RuleSet
from core.sources import FixedDeckSource


def cards(*codes: str) -> list[Card]:
    """Build cards from short codes, e.g. cards("AS", "KH")."""
    return [Card.from_string(code) for code in codes]


class FlakySource(FixedDeckSource):
    """Fixed deck that fails once on each of the given draw numbers (0-based)."""

    def __init__(self, deck: list[Card], fail_on: set[int]) -> None:
        super().__init__(deck)
        self._fail_on = set(fail_on)
        self.attempts = 0

    def next_card(self) -> Card:
        attempt = self.attempts
        self.attempts += 1
        if attempt in self._fail_on:
            self._fail_on.discard(attempt)
            raise CardSourceUnavailable("deck service timed out")
        return super().next_card()


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def empty_hand():
    """An empty player hand."""
    return Hand()


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return Hand(cards("AS", "KH"))


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return Hand(cards("AS", "6H"))


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return Hand(cards("10S", "6H"))


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return Hand(cards("10S", "6H", "KC"))


@pytest.fixture
def rules():
    """Default ruleset."""
    return RuleSet()


@pytest.fixture
def make_table():
    """
    Factory for a table dealing from a fixed deck.

    The deal order is player, dealer, player, dealer, then any hits.
    """

    def _make(
        deck: list[Card],
        balance: Decimal | int = Decimal("1000"),
        rules: RuleSet | None = None,
        source=None,
    ) -> BlackjackTable:
        return BlackjackTable(
            source=source or FixedDeckSource(deck),
            ledger=InMemoryLedger(balance),
            rules=rules or RuleSet(),
        )

    return _make


@st.composite
def card_strategy(draw):
    """Generate a random valid card."""
    rank = draw(st.sampled_from(list(Rank)))
    suit = draw(st.sampled_from(list(Suit)))
    return Card(rank, suit)


@st.composite
def hand_strategy(draw, min_cards=0, max_cards=8):
    """Generate a random list of valid cards."""
    return draw(st.lists(card_strategy(), min_size=min_cards, max_size=max_cards))
