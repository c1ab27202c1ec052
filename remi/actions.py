"""Plans the AI hands to the engine: what to draw, lay, extend and discard."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .cards import Card
from .melds import Meld

__all__ = ["DrawSource", "MeldExtension", "TurnPlan", "TurnReport"]


class DrawSource(str, Enum):
    """Where a turn's card comes from."""

    DECK = "deck"
    DISCARD = "discard"


@dataclass(frozen=True, slots=True)
class MeldExtension:
    """Add ``card`` to the table meld at ``(meld_owner, meld_index)``."""

    card: Card
    meld_owner: int
    meld_index: int
    reclaims_joker: bool = False


@dataclass(frozen=True, slots=True)
class TurnPlan:
    """Everything a player intends to do after drawing."""

    melds: tuple[Meld, ...] = ()
    extensions: tuple[MeldExtension, ...] = ()
    discard: Card | None = None
    held_back: bool = False

    @property
    def meld_points(self) -> int:
        return sum(meld.score for meld in self.melds)

    @property
    def cards_played(self) -> int:
        return sum(len(meld) for meld in self.melds) + len(self.extensions)


@dataclass(slots=True)
class TurnReport:
    """What actually happened when a plan was executed."""

    player_index: int
    draw_source: DrawSource | None = None
    drawn: Card | None = None
    melds_laid: int = 0
    extensions_played: int = 0
    reclaimed_jokers: list[Card] = field(default_factory=list)
    discarded: Card | None = None
    used_fallback: bool = False
    went_out: bool = False
