"""Card sources - where the round engine gets its dealt cards from."""

import logging
from abc import ABC, abstractmethod
from random import Random
from typing import Any, Iterable

import httpx

from core.cards import Card, Deck
from core.errors import CardSourceUnavailable, DeckExhausted

logger = logging.getLogger(__name__)


class CardSource(ABC):
    """
    Abstract source of cards in a fixed, already shuffled order.

    The engine only ever pulls the next unused card. Cards already handed
    out are never taken back, so a failed draw can simply be retried.
    """

    @abstractmethod
    def next_card(self) -> Card:
        """
        Return the next unused card.

        Raises:
            DeckExhausted: No cards remain.
            CardSourceUnavailable: The source could not deliver a card.
        """
        ...

    @abstractmethod
    def reset(self) -> None:
        """Begin a fresh deck for a new round."""
        ...

    @property
    @abstractmethod
    def cards_remaining(self) -> int:
        """Number of cards left before the source is exhausted."""
        ...

    def close(self) -> None:
        """Release any resources held by the source."""


class FixedDeckSource(CardSource):
    """
    A deterministic card sequence, used for tests and replays.

    The sequence is the ground truth for every round dealt from it, so
    reset() keeps the current position instead of rewinding.
    """

    def __init__(self, cards: Iterable[Card]) -> None:
        self._cards = list(cards)
        self._position = 0

    def next_card(self) -> Card:
        if self._position >= len(self._cards):
            raise DeckExhausted(f"All {len(self._cards)} cards have been dealt")
        card = self._cards[self._position]
        self._position += 1
        return card

    def reset(self) -> None:
        pass

    def extend(self, cards: Iterable[Card]) -> None:
        """Append more cards to the end of the sequence."""
        self._cards.extend(cards)

    @property
    def cards_remaining(self) -> int:
        return len(self._cards) - self._position

    @property
    def cards_dealt(self) -> int:
        """Return the number of cards handed out so far."""
        return self._position


class ShuffledDeckSource(CardSource):
    """A locally shuffled deck, reshuffled in full for every round."""

    def __init__(self, num_decks: int = 1, rng: Random | None = None) -> None:
        self._deck = Deck(num_decks=num_decks, rng=rng)
        self._deck.shuffle()

    def next_card(self) -> Card:
        return self._deck.draw()

    def reset(self) -> None:
        self._deck.reset()
        self._deck.shuffle()

    @property
    def cards_remaining(self) -> int:
        return self._deck.cards_remaining


class RemoteDeckSource(CardSource):
    """
    Shuffled decks fetched from a qrandom.io style deck service.

    ``GET {base_url}/random/deck?decks=N`` returns a shuffled deck with an
    id; when the response omits the cards they are fetched from
    ``GET {base_url}/random/deck/{id}/all``. The fetched deck is cached on
    this instance until reset() asks for a new one. Every failure is
    reported as CardSourceUnavailable; nothing is retried here.
    """

    def __init__(
        self,
        base_url: str = "https://qrandom.io/api",
        decks: int = 1,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._decks = decks
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self._deck_id: str | None = None
        self._cards: list[Card] | None = None
        self._position = 0

    @property
    def deck_id(self) -> str | None:
        """Return the id of the cached deck, if one has been fetched."""
        return self._deck_id

    def next_card(self) -> Card:
        cards = self._cards if self._cards is not None else self._fetch_deck()

        if self._position >= len(cards):
            raise DeckExhausted(f"Deck {self._deck_id} has no cards left")
        card = cards[self._position]
        self._position += 1
        return card

    def reset(self) -> None:
        self._deck_id = None
        self._cards = None
        self._position = 0

    @property
    def cards_remaining(self) -> int:
        if self._cards is None:
            return 52 * self._decks
        return len(self._cards) - self._position

    def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RemoteDeckSource":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_json(self, path: str, **params: Any) -> Any:
        """GET a JSON document, translating every failure."""
        try:
            response = self._client.get(path, params=params or None)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise CardSourceUnavailable(
                f"Deck service returned {e.response.status_code} for {path}"
            ) from e
        except httpx.HTTPError as e:
            raise CardSourceUnavailable(f"Deck service unreachable: {e}") from e
        except ValueError as e:
            raise CardSourceUnavailable(f"Deck service sent invalid JSON for {path}") from e

    def _fetch_deck(self) -> list[Card]:
        """Fetch a freshly shuffled deck."""
        data = self._get_json("/random/deck", decks=self._decks)
        if not isinstance(data, dict) or not data.get("id"):
            raise CardSourceUnavailable("Deck service response is missing an id")

        deck_id = str(data["id"])
        deck = data.get("deck")
        raw_cards = deck.get("cards") if isinstance(deck, dict) else None
        if not isinstance(raw_cards, list) or not raw_cards:
            raw_cards = self._get_json(f"/random/deck/{deck_id}/all")
        if not isinstance(raw_cards, list) or not raw_cards:
            raise CardSourceUnavailable(f"Deck {deck_id} came back without cards")

        self._deck_id = deck_id
        self._cards = [Card.from_dict(c) for c in raw_cards]
        self._position = 0
        logger.info("Fetched deck %s with %d cards", deck_id, len(self._cards))
        return self._cards


def build_card_source(kind: str, num_decks: int = 1, **options: Any) -> CardSource:
    """Create the configured card source ("local" or "remote")."""
    if kind == "remote":
        return RemoteDeckSource(decks=num_decks, **options)
    if kind == "local":
        return ShuffledDeckSource(num_decks=num_decks, rng=options.get("rng"))
    raise ValueError(f"Unknown card source: {kind}")
