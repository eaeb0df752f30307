"""Round engine and state management."""

from core.game.events import GameEvent, EventType
from core.game.state import RoundResult, RoundStatus
from core.game.engine import BlackjackTable

__all__ = [
    "GameEvent",
    "EventType",
    "RoundResult",
    "RoundStatus",
    "BlackjackTable",
]
