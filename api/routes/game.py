"""Game API endpoints."""

from fastapi import APIRouter, HTTPException, Header
from fastapi.concurrency import run_in_threadpool
from typing import Annotated, Callable

from api.schemas import (
    ActionRequest,
    BetRequest,
    CardResponse,
    GameStateResponse,
    HandResponse,
    SessionResponse,
)
from api.session import get_table_registry
from core.cards import Card
from core.errors import CardSourceUnavailable, InvalidBet
from core.game import BlackjackTable, RoundStatus
from core.hand import hand_value, is_blackjack, is_bust, is_soft

router = APIRouter()


def _card_to_response(card: Card) -> CardResponse:
    """Convert a Card to CardResponse."""
    return CardResponse(
        rank=card.rank.value if card.rank else None,
        suit=card.suit.value if card.suit else None,
        name=card.display_name,
        color=card.color,
        value=card.value,
    )


def _hand_to_response(cards: list[Card]) -> HandResponse:
    """Convert a list of cards to HandResponse."""
    return HandResponse(
        cards=[_card_to_response(c) for c in cards],
        value=hand_value(cards),
        is_soft=is_soft(cards),
        is_blackjack=is_blackjack(cards),
        is_busted=is_bust(cards),
    )


def _game_state_response(table: BlackjackTable) -> GameStateResponse:
    """Convert table state to response. The hole card stays hidden during play."""
    dealer_cards = list(table.dealer_hand.cards)
    if table.status in (RoundStatus.DEALING, RoundStatus.PLAYER_TURN):
        dealer_cards = dealer_cards[:1]

    return GameStateResponse(
        status=table.status.value,
        result=table.result.value,
        player_hand=_hand_to_response(list(table.player_hand.cards)),
        dealer_hand=_hand_to_response(dealer_cards),
        dealer_showing=_card_to_response(dealer_cards[0]) if dealer_cards else None,
        bet=float(table.bet),
        balance=float(table.balance),
        payout=float(table.payout),
        has_blackjack=table.has_blackjack,
        error=str(table.error) if table.error else None,
        can_hit=table.can_hit,
        can_stand=table.can_stand,
        can_double=table.can_double,
    )


async def _get_table(session_id: str) -> BlackjackTable:
    """Look up the table for a session or fail with 404."""
    table = await get_table_registry().get(session_id)
    if table is None:
        raise HTTPException(status_code=404, detail="Unknown or expired session")
    return table


async def _run(table: BlackjackTable, action: str, fn: Callable[[], bool]) -> GameStateResponse:
    """Run a table action off the event loop and map failures to HTTP errors."""
    previous_error = table.error
    if await run_in_threadpool(fn):
        return _game_state_response(table)

    error = table.error if table.error is not previous_error else None
    if isinstance(error, InvalidBet):
        raise HTTPException(status_code=400, detail=str(error))
    if isinstance(error, CardSourceUnavailable):
        raise HTTPException(status_code=503, detail=str(error))
    raise HTTPException(status_code=409, detail=f"Cannot {action} now")


@router.post("/new")
async def new_game(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> SessionResponse:
    """Open a table, or start over on an existing one."""
    registry = get_table_registry()
    if session_id is not None and await registry.replace(session_id) is not None:
        return SessionResponse(session_id=session_id)
    return SessionResponse(session_id=await registry.create())


@router.get("/state")
async def get_state(
    session_id: Annotated[str, Header(alias="X-Session-ID")],
) -> GameStateResponse:
    """Get current round state."""
    table = await _get_table(session_id)
    return _game_state_response(table)


@router.post("/bet")
async def place_bet(
    request: BetRequest,
    session_id: Annotated[str, Header(alias="X-Session-ID")],
) -> GameStateResponse:
    """Place a bet and deal cards."""
    table = await _get_table(session_id)
    return await _run(table, "bet", lambda: table.start_round(request.amount))


@router.post("/action")
async def player_action(
    request: ActionRequest,
    session_id: Annotated[str, Header(alias="X-Session-ID")],
) -> GameStateResponse:
    """Execute a player action."""
    table = await _get_table(session_id)

    actions = {
        "hit": table.hit,
        "stand": table.stand,
        "double": table.double_down,
    }
    return await _run(table, request.action, actions[request.action])


@router.post("/reset")
async def reset_round(
    session_id: Annotated[str, Header(alias="X-Session-ID")],
) -> GameStateResponse:
    """Clear a finished round."""
    table = await _get_table(session_id)
    return await _run(table, "reset", table.reset_round)
