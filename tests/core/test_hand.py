"""Tests for hand evaluation and winner determination."""

import itertools

import pytest
from hypothesis import given

from conftest import cards, hand_strategy
from core.cards import Card, card_value
from core.hand import Hand, determine_winner, hand_value, is_blackjack, is_bust, is_soft


class TestHandValue:
    """Tests for hand_value()."""

    def test_empty_and_missing(self):
        assert hand_value([]) == 0
        assert hand_value(None) == 0

    def test_no_aces(self):
        assert hand_value(cards("10S", "7H")) == 17

    def test_one_ace_high(self):
        assert hand_value(cards("AS", "7H")) == 18

    def test_one_ace_low_to_avoid_bust(self):
        assert hand_value(cards("AS", "KH", "QD")) == 21

    def test_three_aces_and_eight(self):
        # One ace high, two low
        assert hand_value(cards("AS", "AH", "AD", "8C")) == 21

    def test_two_aces_and_ten(self):
        # The second ace must not push the total over 21
        assert hand_value(cards("AS", "AH", "KD")) == 12

    def test_pair_of_aces(self):
        assert hand_value(cards("AS", "AH")) == 12

    def test_four_aces(self):
        assert hand_value(cards("AS", "AH", "AD", "AC")) == 14

    def test_order_does_not_matter(self):
        hand = cards("AS", "5H", "AD", "9C")
        values = {hand_value(list(p)) for p in itertools.permutations(hand)}
        assert values == {16}

    def test_bust_total_counts_aces_low(self):
        assert hand_value(cards("KS", "QH", "AD", "5C")) == 26

    def test_invalid_cards_are_ignored(self):
        hand = [Card("ace", "spades"), Card("joker", "spades"), None, Card("9", "moons")]
        assert hand_value(hand) == 11


class TestPredicates:
    """Tests for is_bust(), is_soft() and is_blackjack()."""

    def test_bust(self, bust_hand):
        assert is_bust(bust_hand)
        assert not is_bust(cards("10S", "AH", "KD"))

    def test_aces_avoid_bust(self):
        assert not is_bust(cards("AS", "AH", "9D"))

    def test_soft(self, soft_17_hand, hard_16_hand):
        assert is_soft(soft_17_hand)
        assert not is_soft(hard_16_hand)
        assert not is_soft(cards("10S", "6H", "AD"))
        assert not is_soft([])

    @pytest.mark.parametrize("ten", ["10", "jack", "queen", "king"])
    def test_blackjack_with_each_ten_value(self, ten):
        assert is_blackjack([Card("ace", "spades"), Card(ten, "hearts")])
        assert is_blackjack([Card(ten, "hearts"), Card("ACE", "spades")])

    def test_ace_king_scenario(self):
        hand = cards("AS", "KH")
        assert hand_value(hand) == 21
        assert is_blackjack(hand)

    def test_three_card_21_is_not_blackjack(self):
        assert not is_blackjack(cards("7S", "7H", "7C"))
        assert not is_blackjack(cards("AS", "5H", "5C"))

    def test_other_two_card_hands(self):
        assert not is_blackjack(cards("AS", "AH"))
        assert not is_blackjack(cards("KS", "QH"))
        assert not is_blackjack(cards("AS", "9H"))

    def test_empty_or_invalid(self):
        assert not is_blackjack([])
        assert not is_blackjack(None)
        assert not is_blackjack(cards("AS"))
        assert not is_blackjack([Card("ace", "spades"), Card("king", None)])
        assert not is_blackjack([Card("ace", "spades"), None])


class TestHand:
    """Tests for the Hand class."""

    def test_empty_hand(self, empty_hand):
        """Test empty hand properties."""
        assert len(empty_hand) == 0
        assert empty_hand.value == 0
        assert not empty_hand.is_soft
        assert not empty_hand.is_blackjack
        assert not empty_hand.is_busted

    def test_add_card(self, empty_hand):
        """Test adding cards to hand."""
        empty_hand.add_card(Card.from_string("10S"))
        assert len(empty_hand) == 1
        assert empty_hand.value == 10

    def test_soft_to_hard_transition(self):
        """Test ace switching from 11 to 1."""
        hand = Hand(cards("AS"))
        assert hand.value == 11
        assert hand.is_soft

        hand.add_card(Card.from_string("5H"))
        assert hand.value == 16
        assert hand.is_soft

        hand.add_card(Card.from_string("8C"))
        # Ace now counts as 1
        assert hand.value == 14
        assert not hand.is_soft

    def test_keeps_deal_order(self):
        dealt = cards("9S", "AH", "2C")
        hand = Hand()
        for card in dealt:
            hand.add_card(card)
        assert list(hand) == dealt

    def test_invalid_cards_flag(self):
        hand = Hand([Card("ace", "spades"), Card("", "")])
        assert hand.has_invalid_cards
        assert hand.value == 11

    def test_clear_hand(self, blackjack_hand):
        """Test clearing a hand."""
        blackjack_hand.clear()
        assert len(blackjack_hand) == 0
        assert blackjack_hand.value == 0

    def test_str(self, blackjack_hand, bust_hand, soft_17_hand):
        assert str(blackjack_hand) == "A♠ K♥ (BLACKJACK)"
        assert str(bust_hand).endswith("(BUST)")
        assert str(soft_17_hand).endswith("(soft 17)")


class TestDetermineWinner:
    """Tests for determine_winner()."""

    def test_empty_hands_push(self):
        assert determine_winner([], []) == "push"
        assert determine_winner(cards("10S", "7H"), []) == "push"
        assert determine_winner(None, cards("10S", "7H")) == "push"

    def test_dealer_three_card_21_beats_player_17(self):
        assert determine_winner(cards("10S", "7H"), cards("AD", "KC", "10C")) == "dealer"

    def test_dealer_21_beats_player_20(self):
        assert determine_winner(cards("10S", "QH"), cards("5D", "6C", "KC")) == "dealer"

    def test_both_blackjack_push(self):
        assert determine_winner(cards("AS", "KH"), cards("AC", "QD")) == "push"

    def test_player_blackjack_beats_dealer_21(self):
        assert determine_winner(cards("AS", "KH"), cards("7C", "7D", "7S")) == "player"

    def test_dealer_blackjack_beats_player_21(self):
        assert determine_winner(cards("7C", "7D", "7S"), cards("AS", "KH")) == "dealer"

    def test_player_bust_loses(self, bust_hand):
        assert determine_winner(bust_hand, cards("10D", "7S")) == "dealer"

    def test_both_bust_player_loses(self, bust_hand):
        assert determine_winner(bust_hand, cards("10D", "6C", "QS")) == "dealer"

    def test_dealer_bust_player_wins(self):
        assert determine_winner(cards("10S", "7H"), cards("10C", "6D", "KS")) == "player"

    def test_higher_total_wins(self):
        assert determine_winner(cards("10S", "9H"), cards("10C", "8D")) == "player"
        assert determine_winner(cards("10S", "7H"), cards("10C", "9D")) == "dealer"

    def test_equal_totals_push(self):
        assert determine_winner(cards("10S", "8H"), cards("10C", "8D")) == "push"
        assert determine_winner(cards("10S", "5H", "5C"), cards("KC", "QD")) == "push"

    def test_five_cards_have_no_special_rule(self):
        player = cards("AS", "2H", "3D", "4C", "5H")
        assert determine_winner(player, cards("10D", "6C")) == "dealer"

    def test_accepts_hand_objects(self, blackjack_hand, hard_16_hand):
        assert determine_winner(blackjack_hand, hard_16_hand) == "player"


class TestProperties:
    """Property-based checks of the evaluator."""

    @given(hand_strategy())
    def test_value_is_best_total(self, hand):
        aces = sum(1 for c in hand if c.is_ace)
        low_total = sum(card_value(c, ace_high=False) for c in hand)
        totals = [low_total + 10 * high for high in range(aces + 1)]
        safe = [t for t in totals if t <= 21]

        expected = max(safe) if safe else low_total
        assert hand_value(hand) == expected

    @given(hand_strategy(max_cards=1))
    def test_single_card_value(self, hand):
        assert hand_value(hand) == sum(card_value(c) for c in hand)

    @given(hand_strategy(min_cards=2, max_cards=6))
    def test_blackjack_is_exactly_ace_and_ten(self, hand):
        expected = (
            len(hand) == 2
            and sum(c.is_ace for c in hand) == 1
            and sum(c.is_ten_value for c in hand) == 1
        )
        assert is_blackjack(hand) == expected

    @given(hand_strategy(), hand_strategy())
    def test_determine_winner_is_total(self, player, dealer):
        assert determine_winner(player, dealer) in ("player", "dealer", "push")
