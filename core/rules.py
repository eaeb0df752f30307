"""Blackjack table rule variations."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from config import GameConfig

DoubleOn = Literal["any", "9-11", "10-11"]

_DOUBLE_TOTALS: dict[str, tuple[int, ...] | None] = {
    "any": None,
    "9-11": (9, 10, 11),
    "10-11": (10, 11),
}


@dataclass(frozen=True)
class RuleSet:
    """
    Blackjack table rules configuration.

    Only the rules a single-hand, single-deck round actually consults.
    """

    # Dealer rules
    dealer_hits_soft_17: bool = True  # H17 vs S17

    # Double down rules
    double_on: DoubleOn = "any"

    # Maximum cards the dealer draws after the initial two
    dealer_draw_cap: int = 5

    # Packs used by the local shuffled deck
    num_decks: int = 1

    def __post_init__(self) -> None:
        """Validate rule combinations."""
        if self.double_on not in _DOUBLE_TOTALS:
            raise ValueError(f"double_on must be one of {sorted(_DOUBLE_TOTALS)}")
        if self.dealer_draw_cap < 1:
            raise ValueError("dealer_draw_cap must be at least 1")
        if self.num_decks < 1 or self.num_decks > 8:
            raise ValueError("num_decks must be between 1 and 8")

    def allows_double_on(self, hand_total: int) -> bool:
        """Check if doubling is permitted on this two-card total."""
        totals = _DOUBLE_TOTALS[self.double_on]
        return totals is None or hand_total in totals

    @classmethod
    def from_config(cls, game_config: "GameConfig") -> "RuleSet":
        """Build the table rules from application configuration."""
        return cls(
            dealer_hits_soft_17=game_config.dealer_hits_soft_17,
            double_on=game_config.double_on,
            dealer_draw_cap=game_config.dealer_draw_cap,
            num_decks=game_config.num_decks,
        )

    @classmethod
    def vegas_strip(cls) -> "RuleSet":
        """Dealer stands on soft 17."""
        return cls(dealer_hits_soft_17=False, double_on="any")

    @classmethod
    def downtown_vegas(cls) -> "RuleSet":
        """Dealer hits soft 17."""
        return cls(dealer_hits_soft_17=True, double_on="any")

    @classmethod
    def european(cls) -> "RuleSet":
        """Dealer stands on soft 17, doubling only on 9, 10 or 11."""
        return cls(dealer_hits_soft_17=False, double_on="9-11")
