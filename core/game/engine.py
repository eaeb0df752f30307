"""Blackjack round engine with state machine."""

import logging
import threading
from decimal import Decimal
from random import Random
from typing import Callable

from transitions import Machine

from core.cards import Card
from core.dealer import should_dealer_hit
from core.errors import BlackjackError, CardSourceUnavailable, IllegalAction, InvalidBet
from core.game.events import EventEmitter, EventType, GameEvent
from core.game.state import RoundResult, RoundStatus
from core.hand import Hand, determine_winner
from core.ledger import BalanceLedger, InMemoryLedger, to_decimal
from core.payout import settlement_credit
from core.rules import RuleSet
from core.sources import CardSource, ShuffledDeckSource

logger = logging.getLogger(__name__)

_OUTCOME_EVENTS = {
    RoundResult.PLAYER: EventType.PLAYER_WINS,
    RoundResult.DEALER: EventType.PLAYER_LOSES,
    RoundResult.PUSH: EventType.PUSH,
}


class BlackjackTable:
    """
    Single-player blackjack table using a state machine.

    Plays one round at a time against an injected card source and balance
    ledger. Public actions never raise for game reasons: they return False
    and report why through events, the log, and (for failures worth
    retrying) the ``error`` attribute.
    """

    # State machine states
    STATES = [s.value for s in RoundStatus]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "deal_cards", "source": "idle", "dest": "dealing"},
        {"trigger": "abort_deal", "source": "dealing", "dest": "idle"},
        {"trigger": "open_player_turn", "source": "dealing", "dest": "player_turn"},
        {"trigger": "player_done", "source": "player_turn", "dest": "dealer_turn"},
        {
            "trigger": "settle",
            "source": ["dealing", "player_turn", "dealer_turn"],
            "dest": "complete",
        },
        {"trigger": "new_round", "source": "complete", "dest": "idle"},
    ]

    def __init__(
        self,
        source: CardSource | None = None,
        ledger: BalanceLedger | None = None,
        rules: RuleSet | None = None,
        initial_balance: Decimal = Decimal("1000"),
        default_bet: int = 10,
        rng: Random | None = None,
    ) -> None:
        """
        Initialize a new table.

        Args:
            source: Card source (a locally shuffled deck if not provided)
            ledger: Balance ledger (an in-memory one if not provided)
            rules: Table rules (uses defaults if not provided)
            initial_balance: Starting balance for the in-memory ledger
            default_bet: Wager used when start_round() is given none
            rng: Random number generator for the local deck
        """
        self.rules = rules or RuleSet()
        self.source = source or ShuffledDeckSource(num_decks=self.rules.num_decks, rng=rng)
        self.ledger = ledger or InMemoryLedger(initial_balance)
        self.events = EventEmitter()

        self.player_hand = Hand()
        self.dealer_hand = Hand()
        self.result = RoundResult.NONE
        self.payout = Decimal("0")
        self.error: BlackjackError | None = None

        self._bet = Decimal("0")
        self._next_bet = to_decimal(default_bet)
        self._settled = False
        self._doubled = False
        self._dealer_in_flight = False
        self._lock = threading.RLock()

        # Initialize state machine
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="idle",
            auto_transitions=False,
            model_attribute="_machine_state",
        )

    @property
    def status(self) -> RoundStatus:
        """Get current round status as enum."""
        return RoundStatus(self._machine_state)  # type: ignore

    @property
    def bet(self) -> Decimal:
        """Stake riding on the current round (doubled after a double down)."""
        return self._bet

    @property
    def next_bet(self) -> Decimal:
        """Wager the next start_round() uses when called without one."""
        return self._next_bet

    @property
    def balance(self) -> Decimal:
        """Current ledger balance."""
        return self.ledger.balance

    @property
    def player_score(self) -> int:
        """Best value of the player's hand."""
        return self.player_hand.value

    @property
    def dealer_score(self) -> int:
        """Best value of the dealer's hand, hole card included."""
        return self.dealer_hand.value

    @property
    def has_blackjack(self) -> bool:
        """Check if the player was dealt a natural."""
        return self.player_hand.is_blackjack

    @property
    def is_busy(self) -> bool:
        """Check if the dealer is currently drawing."""
        return self._dealer_in_flight

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to round events."""
        self.events.subscribe(handler, event_type)

    def set_bet(self, amount: int | Decimal) -> bool:
        """
        Set the wager for the next round.

        Returns:
            True if the amount was accepted
        """
        with self._lock:
            if self.status != RoundStatus.IDLE:
                return self._reject("set bet")

            amount = to_decimal(amount)
            if not self._check_bet(amount):
                return False

            self._next_bet = amount
            self.error = None
            return True

    def start_round(self, bet: int | Decimal | None = None) -> bool:
        """
        Take the stake and deal a new round.

        The bet is debited immediately. Naturals are settled straight away;
        otherwise the round waits for the player.

        Args:
            bet: Wager for the round (the next_bet if not provided)

        Returns:
            True if the round was dealt
        """
        with self._lock:
            if self.status not in (RoundStatus.IDLE, RoundStatus.COMPLETE):
                return self._reject("start a round")

            amount = to_decimal(bet) if bet is not None else self._next_bet
            if not self._check_bet(amount):
                return False

            if self.status == RoundStatus.COMPLETE:
                self.new_round()
            self._clear_round()
            self.events.clear_history()

            self._bet = amount
            self._next_bet = amount
            self._settled = False
            self.ledger.apply(-amount)
            self.events.emit_new(EventType.BET_PLACED, amount=float(amount))
            logger.info("Round started with bet %s, balance now %s", amount, self.balance)

            self.deal_cards()  # Trigger state transition
            return self._deal_initial_cards()

    def _deal_initial_cards(self) -> bool:
        """Deal player, dealer, player, dealer and settle any natural."""
        try:
            self.source.reset()
            for hand in (self.player_hand, self.dealer_hand, self.player_hand, self.dealer_hand):
                self._deal_card_to_hand(hand)
        except CardSourceUnavailable as e:
            # The round never started: give the stake back
            self.ledger.apply(self._bet)
            self.events.emit_new(EventType.BET_REFUNDED, amount=float(self._bet))
            self._clear_round()
            self._source_failed("deal", e)
            self.abort_deal()
            return False

        self.events.emit_new(EventType.ROUND_STARTED)

        player_bj = self.player_hand.is_blackjack
        dealer_bj = self.dealer_hand.is_blackjack

        if player_bj:
            self.events.emit_new(EventType.PLAYER_BLACKJACK)
        if dealer_bj:
            self.events.emit_new(EventType.DEALER_BLACKJACK)

        if player_bj or dealer_bj:
            self._reveal_dealer()
            return self._resolve_round()

        self.open_player_turn()
        return True

    def _deal_card_to_hand(self, hand: Hand) -> Card:
        """Pull one card from the source into a hand."""
        card = self.source.next_card()
        hand.add_card(card)

        side = "dealer" if hand is self.dealer_hand else "player"
        if card is None or not card.is_valid:
            logger.warning("Invalid card data dealt to %s: %r", side, card)
            self.events.emit_new(EventType.INVALID_CARD, hand=side, card=repr(card))

        # Dealer hole card stays hidden until the reveal
        face_up = not (hand is self.dealer_hand and len(hand) == 2)
        logger.debug("Dealt %s to %s", card if face_up else "hole card", side)
        self.events.emit_new(
            EventType.CARD_DEALT,
            card=str(card) if face_up else "??",
            hand=side,
            hand_value=hand.value if face_up else None,
        )
        return card

    def hit(self) -> bool:
        """Player hits (takes another card)."""
        with self._lock:
            if self.status != RoundStatus.PLAYER_TURN:
                return self._reject("hit")

            try:
                self._deal_card_to_hand(self.player_hand)
            except CardSourceUnavailable as e:
                return self._source_failed("hit", e)

            self.error = None
            self.events.emit_new(EventType.PLAYER_HIT, hand_value=self.player_score)

            if self.player_hand.is_busted:
                logger.info("Player busts with %d", self.player_score)
                self.events.emit_new(EventType.PLAYER_BUSTS, hand_value=self.player_score)
                return self._resolve_round()

            return True

    def stand(self) -> bool:
        """
        Player stands and the dealer plays out the hand.

        Calling stand() again during the dealer's turn after a card source
        failure resumes the dealer from where it stopped.
        """
        with self._lock:
            if self.status == RoundStatus.DEALER_TURN and not self._dealer_in_flight:
                logger.info("Resuming dealer play")
                return self._play_dealer()

            if self.status != RoundStatus.PLAYER_TURN:
                return self._reject("stand")

            self.events.emit_new(EventType.PLAYER_STAND, hand_value=self.player_score)
            logger.info("Player stands with %d", self.player_score)
            self.player_done()
            self._reveal_dealer()
            return self._play_dealer()

    def double_down(self) -> bool:
        """
        Player doubles down.

        Needs exactly two cards, a total the rules allow doubling on, and
        enough balance to match the stake. The extra stake is only taken
        once the extra card has been drawn.

        Calling double_down() again during the dealer's turn after a card
        source failure resumes the dealer, as stand() does.
        """
        with self._lock:
            if (
                self.status == RoundStatus.DEALER_TURN
                and self._doubled
                and not self._dealer_in_flight
            ):
                logger.info("Resuming dealer play after double down")
                return self._play_dealer()

            if self.status != RoundStatus.PLAYER_TURN:
                return self._reject("double down")

            if len(self.player_hand) != 2:
                return self._reject("double down", "only allowed on the first two cards")

            if not self.rules.allows_double_on(self.player_score):
                return self._reject(
                    "double down", f"only allowed on {self.rules.double_on}"
                )

            if self._bet > self.balance:
                logger.warning(
                    "Cannot double: stake %s exceeds balance %s", self._bet, self.balance
                )
                self.events.emit_new(
                    EventType.INSUFFICIENT_FUNDS,
                    required=float(self._bet),
                    available=float(self.balance),
                )
                return False

            try:
                self._deal_card_to_hand(self.player_hand)
            except CardSourceUnavailable as e:
                return self._source_failed("double down", e)

            self.error = None
            self.ledger.apply(-self._bet)
            self._bet *= 2
            self._doubled = True
            self.events.emit_new(
                EventType.PLAYER_DOUBLE,
                hand_value=self.player_score,
                new_bet=float(self._bet),
            )
            logger.info("Player doubles to %s with %d", self._bet, self.player_score)

            if self.player_hand.is_busted:
                self.events.emit_new(EventType.PLAYER_BUSTS, hand_value=self.player_score)
                return self._resolve_round()

            self.player_done()
            self._reveal_dealer()
            return self._play_dealer()

    def _reveal_dealer(self) -> None:
        """Turn the hole card face up."""
        if len(self.dealer_hand) >= 2:
            self.events.emit_new(
                EventType.DEALER_REVEALS,
                card=str(self.dealer_hand.cards[1]),
                hand_value=self.dealer_score,
            )

    def _play_dealer(self) -> bool:
        """Dealer draws until the policy stands or the draw cap is reached."""
        if self._dealer_in_flight:
            logger.warning("Dealer play already in progress")
            return False

        self._dealer_in_flight = True
        try:
            while should_dealer_hit(self.dealer_hand, self.rules.dealer_hits_soft_17):
                if len(self.dealer_hand) - 2 >= self.rules.dealer_draw_cap:
                    logger.warning(
                        "Dealer stopped at %d after %d extra cards",
                        self.dealer_score,
                        self.rules.dealer_draw_cap,
                    )
                    self.events.emit_new(
                        EventType.DEALER_DRAW_CAP_REACHED, hand_value=self.dealer_score
                    )
                    break

                try:
                    self._deal_card_to_hand(self.dealer_hand)
                except CardSourceUnavailable as e:
                    return self._source_failed("dealer play", e)

                self.events.emit_new(EventType.DEALER_HITS, hand_value=self.dealer_score)
        finally:
            self._dealer_in_flight = False

        self.error = None
        if self.dealer_hand.is_busted:
            self.events.emit_new(EventType.DEALER_BUSTS, hand_value=self.dealer_score)
        else:
            self.events.emit_new(EventType.DEALER_STANDS, hand_value=self.dealer_score)

        return self._resolve_round()

    def _resolve_round(self) -> bool:
        """Decide the winner and credit the balance, exactly once per round."""
        if self._settled:
            logger.warning("Round already settled, ignoring")
            return False

        outcome = determine_winner(self.player_hand, self.dealer_hand)
        credit = to_decimal(
            settlement_credit(outcome, self._bet, self.player_hand.is_blackjack)
        )

        self._settled = True
        self.result = RoundResult(outcome)
        self.payout = credit
        if credit > 0:
            self.ledger.apply(credit)

        self.events.emit_new(
            _OUTCOME_EVENTS[self.result],
            player_value=self.player_score,
            dealer_value=self.dealer_score,
            payout=float(credit),
        )
        self.events.emit_new(
            EventType.ROUND_ENDED,
            result=self.result.value,
            payout=float(credit),
            balance=float(self.balance),
        )
        logger.info(
            "Round settled: %s (player %d, dealer %d), credited %s, balance %s",
            self.result.value,
            self.player_score,
            self.dealer_score,
            credit,
            self.balance,
        )

        self.settle()
        return True

    def reset_round(self) -> bool:
        """Clear a finished round and return to idle. Balance is kept."""
        with self._lock:
            if self.status not in (RoundStatus.IDLE, RoundStatus.COMPLETE):
                return self._reject("reset", "the round is still in play")

            if self.status == RoundStatus.COMPLETE:
                self.new_round()
            self._clear_round()
            self.events.emit_new(EventType.ROUND_RESET)
            return True

    def dismiss_error(self) -> None:
        """Clear the last error; a finished round is also reset."""
        with self._lock:
            self.error = None
            if self.status == RoundStatus.COMPLETE:
                self.reset_round()

    def close(self) -> None:
        """Release the card source."""
        self.source.close()

    def _clear_round(self) -> None:
        """Forget hands, result and stake of the previous round."""
        self.player_hand.clear()
        self.dealer_hand.clear()
        self.result = RoundResult.NONE
        self.payout = Decimal("0")
        self.error = None
        self._bet = Decimal("0")
        self._doubled = False

    def _check_bet(self, amount: Decimal) -> bool:
        """Validate a wager against the balance, recording InvalidBet if bad."""
        if amount > 0 and amount <= self.balance:
            return True

        self.error = InvalidBet(amount, self.balance if amount > 0 else None)
        logger.warning("%s", self.error)
        if amount > 0:
            self.events.emit_new(
                EventType.INSUFFICIENT_FUNDS,
                required=float(amount),
                available=float(self.balance),
            )
        else:
            self.events.emit_new(EventType.INVALID_ACTION, message=str(self.error))
        return False

    def _reject(self, action: str, reason: str | None = None) -> bool:
        """Ignore an action that does not fit the current state."""
        exc = IllegalAction(action, self.status.value, reason)
        logger.warning("%s", exc)
        self.events.emit_new(
            EventType.INVALID_ACTION,
            message=str(exc),
            action=action,
            state=self.status.name,
        )
        return False

    def _source_failed(self, action: str, exc: CardSourceUnavailable) -> bool:
        """Attach a card source failure to the round so the action can be retried."""
        self.error = exc
        logger.error("Card source failed during %s: %s", action, exc)
        self.events.emit_new(
            EventType.CARD_SOURCE_ERROR,
            action=action,
            message=str(exc),
            state=self.status.name,
        )
        return False

    @property
    def can_hit(self) -> bool:
        """Check if hitting is allowed."""
        return self.status == RoundStatus.PLAYER_TURN and not self.player_hand.is_busted

    @property
    def can_stand(self) -> bool:
        """Check if standing is allowed."""
        return self.status == RoundStatus.PLAYER_TURN

    @property
    def can_double(self) -> bool:
        """Check if doubling is allowed."""
        if self.status != RoundStatus.PLAYER_TURN:
            return False
        if len(self.player_hand) != 2:
            return False
        if not self.rules.allows_double_on(self.player_score):
            return False
        return self._bet <= self.balance
