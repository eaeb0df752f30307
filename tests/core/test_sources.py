"""Tests for card sources and balance ledgers."""

from decimal import Decimal

import httpx
import pytest

from conftest import cards
from core.cards import Card, Rank, Suit
from core.errors import CardSourceUnavailable, DeckExhausted
from core.ledger import InMemoryLedger, to_decimal
from core.sources import (
    FixedDeckSource,
    RemoteDeckSource,
    ShuffledDeckSource,
    build_card_source,
)


DECK_JSON = [
    {"rank": "ace", "suit": "spades"},
    {"rank": "king", "suit": "hearts"},
    {"rank": "7", "suit": "clubs"},
]


def remote_source(handler, decks: int = 1) -> RemoteDeckSource:
    """Remote source backed by an httpx mock transport."""
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://deck.test")
    return RemoteDeckSource(decks=decks, client=client)


class TestFixedDeckSource:
    """Tests for FixedDeckSource."""

    def test_deals_in_order(self):
        source = FixedDeckSource(cards("AS", "KH", "7C"))
        assert [source.next_card() for _ in range(3)] == cards("AS", "KH", "7C")
        assert source.cards_dealt == 3

    def test_exhausted(self):
        source = FixedDeckSource(cards("AS"))
        source.next_card()
        with pytest.raises(DeckExhausted):
            source.next_card()

    def test_exhausted_is_a_source_failure(self):
        with pytest.raises(CardSourceUnavailable):
            FixedDeckSource([]).next_card()

    def test_reset_keeps_position(self):
        source = FixedDeckSource(cards("AS", "KH"))
        source.next_card()
        source.reset()
        assert source.next_card() == Card(Rank.KING, Suit.HEARTS)

    def test_extend(self):
        source = FixedDeckSource(cards("AS"))
        source.extend(cards("2C", "3C"))
        assert source.cards_remaining == 3


class TestShuffledDeckSource:
    """Tests for ShuffledDeckSource."""

    def test_full_deck_is_shuffled(self, rng):
        source = ShuffledDeckSource(rng=rng)
        dealt = [source.next_card() for _ in range(52)]
        assert len(set(dealt)) == 52
        assert source.cards_remaining == 0

    def test_reset_restores_full_deck(self, rng):
        source = ShuffledDeckSource(rng=rng)
        for _ in range(20):
            source.next_card()
        source.reset()
        assert source.cards_remaining == 52

    def test_exhausted(self, rng):
        source = ShuffledDeckSource(rng=rng)
        for _ in range(52):
            source.next_card()
        with pytest.raises(DeckExhausted):
            source.next_card()


class TestRemoteDeckSource:
    """Tests for RemoteDeckSource against a mocked deck service."""

    def test_deck_with_inline_cards(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"id": "abc", "deck": {"cards": DECK_JSON}})

        source = remote_source(handler, decks=2)
        assert source.next_card() == Card(Rank.ACE, Suit.SPADES)
        assert source.next_card() == Card(Rank.KING, Suit.HEARTS)
        assert source.deck_id == "abc"
        assert source.cards_remaining == 1

        assert len(requests) == 1
        assert requests[0].url.path == "/random/deck"
        assert requests[0].url.params["decks"] == "2"

    def test_fetches_cards_when_missing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/random/deck":
                return httpx.Response(200, json={"id": "xyz"})
            assert request.url.path == "/random/deck/xyz/all"
            return httpx.Response(200, json=DECK_JSON)

        source = remote_source(handler)
        assert source.next_card() == Card(Rank.ACE, Suit.SPADES)

    def test_reset_requests_new_deck(self):
        ids = iter(["first", "second"])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": next(ids), "deck": {"cards": DECK_JSON}})

        source = remote_source(handler)
        source.next_card()
        source.reset()
        assert source.deck_id is None
        source.next_card()
        assert source.deck_id == "second"

    def test_malformed_cards_become_invalid(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"id": "abc", "deck": {"cards": [{"rank": "joker"}, "junk"]}}
            )

        source = remote_source(handler)
        assert not source.next_card().is_valid
        assert not source.next_card().is_valid

    def test_server_error(self):
        source = remote_source(lambda request: httpx.Response(500))
        with pytest.raises(CardSourceUnavailable, match="500"):
            source.next_card()

    def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        source = remote_source(handler)
        with pytest.raises(CardSourceUnavailable, match="unreachable"):
            source.next_card()

    def test_invalid_json(self):
        source = remote_source(lambda request: httpx.Response(200, content=b"not json"))
        with pytest.raises(CardSourceUnavailable):
            source.next_card()

    def test_missing_id(self):
        source = remote_source(lambda request: httpx.Response(200, json={"deck": {}}))
        with pytest.raises(CardSourceUnavailable, match="missing an id"):
            source.next_card()

    def test_empty_deck(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/random/deck":
                return httpx.Response(200, json={"id": "abc"})
            return httpx.Response(200, json=[])

        source = remote_source(handler)
        with pytest.raises(CardSourceUnavailable, match="without cards"):
            source.next_card()

    def test_failure_can_be_retried(self):
        responses = iter(
            [
                httpx.Response(503),
                httpx.Response(200, json={"id": "abc", "deck": {"cards": DECK_JSON}}),
            ]
        )
        source = remote_source(lambda request: next(responses))

        with pytest.raises(CardSourceUnavailable):
            source.next_card()
        assert source.next_card() == Card(Rank.ACE, Suit.SPADES)

    def test_exhausted(self):
        source = remote_source(
            lambda request: httpx.Response(200, json={"id": "abc", "deck": {"cards": DECK_JSON}})
        )
        for _ in range(3):
            source.next_card()
        with pytest.raises(DeckExhausted):
            source.next_card()


class TestBuildCardSource:
    """Tests for build_card_source()."""

    def test_local(self, rng):
        assert isinstance(build_card_source("local", rng=rng), ShuffledDeckSource)

    def test_remote(self):
        with build_card_source("remote", base_url="http://deck.test") as source:
            assert isinstance(source, RemoteDeckSource)

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_card_source("carrier-pigeon")


class TestInMemoryLedger:
    """Tests for InMemoryLedger."""

    def test_apply_deltas(self):
        ledger = InMemoryLedger(100)
        assert ledger.apply(Decimal("-10")) == Decimal("90")
        assert ledger.apply(Decimal("25")) == Decimal("115")
        assert ledger.balance == Decimal("115")
        assert ledger.entries == [Decimal("-10"), Decimal("25")]

    def test_to_decimal_avoids_float_artifacts(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("12.50") == Decimal("12.50")
