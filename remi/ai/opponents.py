"""Opponent modelling fed by the engine's public event stream."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from ..cards import Card
from ..evaluation import rank_distance
from ..events import CardDiscarded, CardDrawnFromDiscard, GameEvent, GameEventType, GameStarted, StateRestored
from ..threats import extension_targets

if TYPE_CHECKING:
    from ..engine import Engine

__all__ = ["OpponentModel", "base_interest"]


def base_interest(card: Card) -> int:
    """Prior usefulness of a card to anybody: middle ranks feed runs, aces and faces feed sets."""

    if card.is_joker:
        return 20
    if 5 <= card.rank <= 9:
        return 5
    if card.rank == 1 or card.rank >= 11:
        return 3
    return 0


def _related(first: Card, second: Card) -> bool:
    if first.is_joker or second.is_joker:
        return False
    if first.rank == second.rank:
        return True
    return first.suit == second.suit and rank_distance(first.rank, second.rank) <= 2


@dataclass(slots=True)
class OpponentModel:
    """Tracks what each player took from and threw onto the discard pile."""

    pickup_weight: float = 6.0
    discard_relief: float = 3.0
    table_weight: float = 10.0
    pickups: dict[int, list[Card]] = field(default_factory=lambda: defaultdict(list))
    discards: dict[int, list[Card]] = field(default_factory=lambda: defaultdict(list))
    _unsubscribe: Callable[[], None] | None = field(default=None, init=False, repr=False)

    def attach(self, engine: "Engine") -> Callable[[], None]:
        """Start listening to ``engine``; returns the unsubscribe handle."""

        self.detach()
        self._unsubscribe = engine.subscribe(
            self.observe,
            GameEventType.GAME_STARTED,
            GameEventType.CARD_DRAWN_FROM_DISCARD,
            GameEventType.CARD_DISCARDED,
            GameEventType.STATE_RESTORED,
        )
        return self.detach

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def reset(self) -> None:
        self.pickups.clear()
        self.discards.clear()

    def observe(self, event: GameEvent) -> None:
        """Update the model from one engine event."""

        if isinstance(event, (GameStarted, StateRestored)):
            self.reset()
        elif isinstance(event, CardDrawnFromDiscard):
            self.pickups[event.player_index].append(event.card)
        elif isinstance(event, CardDiscarded):
            self.discards[event.player_index].append(event.card)

    def player_interest(self, player_index: int, card: Card) -> float:
        """Estimate how much one player would like to receive ``card``."""

        interest = float(base_interest(card))
        interest += self.pickup_weight * sum(1 for taken in self.pickups.get(player_index, ()) if _related(card, taken))
        interest -= self.discard_relief * sum(1 for thrown in self.discards.get(player_index, ()) if _related(card, thrown))
        return max(0.0, interest)

    def interest(self, engine: "Engine", actor_index: int, card: Card) -> float:
        """Highest estimated interest in ``card`` among the actor's opponents."""

        state = engine.get_state()
        fits_table = bool(extension_targets(engine.table_melds(), card))
        best = 0.0
        for player_index in range(state.num_players):
            if player_index == actor_index:
                continue
            value = self.player_interest(player_index, card)
            if fits_table and state.has_opened[player_index]:
                value += self.table_weight
            best = max(best, value)
        return best
