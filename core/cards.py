"""Card and Deck classes - immutable card representations."""

from dataclasses import dataclass
from enum import Enum
from random import Random
from typing import Any, Iterator, Mapping

from core.errors import DeckExhausted, InvalidCardData


class Suit(Enum):
    """Card suits, valued by the names the deck service uses."""

    CLUBS = "clubs"
    DIAMONDS = "diamonds"
    HEARTS = "hearts"
    SPADES = "spades"

    def __str__(self) -> str:
        symbols = {
            Suit.CLUBS: "♣",
            Suit.DIAMONDS: "♦",
            Suit.HEARTS: "♥",
            Suit.SPADES: "♠",
        }
        return symbols[self]

    @property
    def color(self) -> str:
        """Return "red" for hearts and diamonds, "black" otherwise."""
        if self in (Suit.HEARTS, Suit.DIAMONDS):
            return "red"
        return "black"

    @classmethod
    def parse(cls, value: Any) -> "Suit | None":
        """Look up a suit case-insensitively, returning None when unknown."""
        if isinstance(value, Suit):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Rank(Enum):
    """Card ranks, valued by the names the deck service uses."""

    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "jack"
    QUEEN = "queen"
    KING = "king"
    ACE = "ace"

    def __str__(self) -> str:
        if self.value.isdigit():
            return self.value
        return {
            Rank.JACK: "J",
            Rank.QUEEN: "Q",
            Rank.KING: "K",
            Rank.ACE: "A",
        }[self]

    @property
    def blackjack_value(self) -> int:
        """Return the blackjack point value (Ace = 11, face cards = 10)."""
        if self.value.isdigit():
            return int(self.value)
        if self == Rank.ACE:
            return 11
        return 10  # Face cards

    @property
    def is_ace(self) -> bool:
        """Check if this rank is an Ace."""
        return self == Rank.ACE

    @property
    def is_ten_value(self) -> bool:
        """Check if this rank has a value of 10."""
        return self in (Rank.TEN, Rank.JACK, Rank.QUEEN, Rank.KING)

    @classmethod
    def parse(cls, value: Any) -> "Rank | None":
        """Look up a rank case-insensitively, returning None when unknown."""
        if isinstance(value, Rank):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


_SHORT_RANKS = {
    "T": Rank.TEN,
    "J": Rank.JACK,
    "Q": Rank.QUEEN,
    "K": Rank.KING,
    "A": Rank.ACE,
}

_SHORT_SUITS = {
    "C": Suit.CLUBS,
    "♣": Suit.CLUBS,
    "D": Suit.DIAMONDS,
    "♦": Suit.DIAMONDS,
    "H": Suit.HEARTS,
    "♥": Suit.HEARTS,
    "S": Suit.SPADES,
    "♠": Suit.SPADES,
}


@dataclass(frozen=True, slots=True)
class Card:
    """
    Immutable playing card.

    Rank and suit may be given as enums or as strings in any case. Anything
    that does not name a real rank or suit is stored as None, which makes
    the card invalid: it is worth 0 and never counts towards a blackjack.
    """

    rank: Rank | None
    suit: Suit | None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rank", Rank.parse(self.rank))
        object.__setattr__(self, "suit", Suit.parse(self.suit))

    def __str__(self) -> str:
        if not self.is_valid:
            return "??"
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        rank = self.rank.name if self.rank else None
        suit = self.suit.name if self.suit else None
        return f"Card({rank}, {suit})"

    @property
    def is_valid(self) -> bool:
        """Check that both rank and suit are known."""
        return self.rank is not None and self.suit is not None

    @property
    def value(self) -> int:
        """Return the blackjack point value."""
        return card_value(self)

    @property
    def is_ace(self) -> bool:
        """Check if this is a valid Ace."""
        return self.is_valid and self.rank.is_ace

    @property
    def is_ten_value(self) -> bool:
        """Check if this is a valid ten-valued card."""
        return self.is_valid and self.rank.is_ten_value

    @property
    def color(self) -> str | None:
        """Return the suit colour, or None for an invalid card."""
        return self.suit.color if self.suit else None

    @property
    def display_name(self) -> str:
        """Return a name such as 'Ace of Spades' or 'Unknown card'."""
        if not self.is_valid:
            return "Unknown card"
        return f"{self.rank.value.capitalize()} of {self.suit.value.capitalize()}"

    def to_dict(self) -> dict[str, str | None]:
        """Serialize to the deck service's JSON shape."""
        return {
            "rank": self.rank.value if self.rank else None,
            "suit": self.suit.value if self.suit else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Card":
        """Build a card from a {"rank", "suit"} mapping. Never raises."""
        if not isinstance(data, Mapping):
            return cls(None, None)
        return cls(data.get("rank"), data.get("suit"))

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', 'Kh', '10d'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise InvalidCardData(f"Invalid card string: {s}")

        rank_str = s[:-1]
        suit_str = s[-1]

        rank = _SHORT_RANKS.get(rank_str) or Rank.parse(rank_str)
        suit = _SHORT_SUITS.get(suit_str)

        if rank is None:
            raise InvalidCardData(f"Invalid rank: {rank_str}")
        if suit is None:
            raise InvalidCardData(f"Invalid suit: {suit_str}")

        return cls(rank, suit)


def card_value(card: Card | None, ace_high: bool = True) -> int:
    """
    Return the blackjack value of a single card.

    Aces are 11, or 1 when ``ace_high`` is False. Missing or invalid cards
    are worth 0.
    """
    if card is None or not card.is_valid:
        return 0
    if card.rank.is_ace:
        return 11 if ace_high else 1
    return card.rank.blackjack_value


class Deck:
    """One or more standard 52-card decks."""

    def __init__(self, num_decks: int = 1, rng: Random | None = None) -> None:
        """Initialize a new deck."""
        if num_decks < 1:
            raise ValueError("Deck must contain at least 1 pack")
        self._num_decks = num_decks
        self._rng = rng or Random()
        self._cards: list[Card] = []
        self.reset()

    def reset(self) -> None:
        """Reset deck to all cards in order."""
        self._cards = [
            Card(rank, suit)
            for _ in range(self._num_decks)
            for suit in Suit
            for rank in Rank
        ]

    def shuffle(self) -> None:
        """Shuffle the deck."""
        self._rng.shuffle(self._cards)

    def draw(self) -> Card:
        """Draw a card from the top of the deck."""
        if not self._cards:
            raise DeckExhausted("Cannot draw from empty deck")
        return self._cards.pop()

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)

    @property
    def cards_remaining(self) -> int:
        """Return the number of cards remaining."""
        return len(self._cards)

    @property
    def total_cards(self) -> int:
        """Return the number of cards in a full deck."""
        return self._num_decks * 52
