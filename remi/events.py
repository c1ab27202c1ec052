"""Typed game events and the synchronous bus that delivers them."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, ClassVar

from .cards import Card

__all__ = [
    "GameEventType",
    "GameEvent",
    "GameStarted",
    "CardDrawnFromDeck",
    "CardDrawnFromDiscard",
    "CardDiscarded",
    "MeldsLaidDown",
    "CardAddedToMeld",
    "HandReordered",
    "PhaseChanged",
    "TurnEnded",
    "PlayerTurnStarted",
    "DrawPileShuffled",
    "GameOver",
    "StateRestored",
    "Listener",
    "EventBus",
]

logger = logging.getLogger(__name__)


class GameEventType(str, Enum):
    """Discriminator carried by every event."""

    GAME_STARTED = "game_started"
    CARD_DRAWN_FROM_DECK = "card_drawn_from_deck"
    CARD_DRAWN_FROM_DISCARD = "card_drawn_from_discard"
    CARD_DISCARDED = "card_discarded"
    MELDS_LAID_DOWN = "melds_laid_down"
    CARD_ADDED_TO_MELD = "card_added_to_meld"
    HAND_REORDERED = "hand_reordered"
    PHASE_CHANGED = "phase_changed"
    TURN_ENDED = "turn_ended"
    PLAYER_TURN_STARTED = "player_turn_started"
    DRAW_PILE_SHUFFLED = "draw_pile_shuffled"
    GAME_OVER = "game_over"
    STATE_RESTORED = "state_restored"


@dataclass(frozen=True, slots=True, kw_only=True)
class GameEvent:
    """Fields shared by all events: emission order and wall-clock time."""

    type: ClassVar[GameEventType]

    sequence: int
    timestamp: float


@dataclass(frozen=True, slots=True, kw_only=True)
class GameStarted(GameEvent):
    type: ClassVar[GameEventType] = GameEventType.GAME_STARTED

    game_id: str
    num_players: int
    starting_player: int
    hand_sizes: tuple[int, ...]
    draw_pile_size: int


@dataclass(frozen=True, slots=True, kw_only=True)
class CardDrawnFromDeck(GameEvent):
    type: ClassVar[GameEventType] = GameEventType.CARD_DRAWN_FROM_DECK

    player_index: int
    card: Card
    draw_pile_size: int


@dataclass(frozen=True, slots=True, kw_only=True)
class CardDrawnFromDiscard(GameEvent):
    type: ClassVar[GameEventType] = GameEventType.CARD_DRAWN_FROM_DISCARD

    player_index: int
    card: Card
    discard_pile_size: int


@dataclass(frozen=True, slots=True, kw_only=True)
class CardDiscarded(GameEvent):
    type: ClassVar[GameEventType] = GameEventType.CARD_DISCARDED

    player_index: int
    card: Card
    hand_size: int


@dataclass(frozen=True, slots=True, kw_only=True)
class MeldsLaidDown(GameEvent):
    """A player put one or more melds on the table."""

    type: ClassVar[GameEventType] = GameEventType.MELDS_LAID_DOWN

    player_index: int
    melds: tuple[tuple[Card, ...], ...]
    meld_indices: tuple[int, ...]
    points: int
    opened: bool


@dataclass(frozen=True, slots=True, kw_only=True)
class CardAddedToMeld(GameEvent):
    """A card joined a table meld; ``replaced_joker`` is set on a joker reclaim."""

    type: ClassVar[GameEventType] = GameEventType.CARD_ADDED_TO_MELD

    player_index: int
    card: Card
    meld_owner: int
    meld_index: int
    meld: tuple[Card, ...]
    replaced_joker: Card | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class HandReordered(GameEvent):
    type: ClassVar[GameEventType] = GameEventType.HAND_REORDERED

    player_index: int
    from_index: int
    to_index: int


@dataclass(frozen=True, slots=True, kw_only=True)
class PhaseChanged(GameEvent):
    type: ClassVar[GameEventType] = GameEventType.PHASE_CHANGED

    phase: str
    previous_phase: str
    current_player: int


@dataclass(frozen=True, slots=True, kw_only=True)
class TurnEnded(GameEvent):
    type: ClassVar[GameEventType] = GameEventType.TURN_ENDED

    player_index: int
    next_player: int
    turn_index: int


@dataclass(frozen=True, slots=True, kw_only=True)
class PlayerTurnStarted(GameEvent):
    type: ClassVar[GameEventType] = GameEventType.PLAYER_TURN_STARTED

    player_index: int
    turn_index: int


@dataclass(frozen=True, slots=True, kw_only=True)
class DrawPileShuffled(GameEvent):
    """The discard pile was turned over to become the draw pile."""

    type: ClassVar[GameEventType] = GameEventType.DRAW_PILE_SHUFFLED

    draw_pile_size: int


@dataclass(frozen=True, slots=True, kw_only=True)
class GameOver(GameEvent):
    type: ClassVar[GameEventType] = GameEventType.GAME_OVER

    winner: int
    scores: tuple[int, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class StateRestored(GameEvent):
    """The engine was rolled back to an earlier snapshot."""

    type: ClassVar[GameEventType] = GameEventType.STATE_RESTORED

    current_player: int
    phase: str


Listener = Callable[[GameEvent], None]


@dataclass(slots=True, eq=False)
class _Subscription:
    listener: Listener
    event_types: frozenset[GameEventType]
    active: bool = True

    def wants(self, event: GameEvent) -> bool:
        return self.active and (not self.event_types or event.type in self.event_types)


@dataclass(slots=True)
class EventBus:
    """Ordered, synchronous publish/subscribe channel.

    Listeners run in subscription order. A listener that raises aborts the
    delivery and the exception reaches the publisher.
    """

    clock: Callable[[], float] = time.time
    _subscriptions: list[_Subscription] = field(default_factory=list, init=False, repr=False)
    _sequence: int = field(default=0, init=False, repr=False)

    def subscribe(self, listener: Listener, *event_types: GameEventType) -> Callable[[], None]:
        """Register ``listener`` for ``event_types`` (all events when none given).

        Returns a handle that removes the subscription when called; calling it
        twice is harmless.
        """

        subscription = _Subscription(listener=listener, event_types=frozenset(event_types))
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            subscription.active = False
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return unsubscribe

    def stamp(self) -> dict[str, float | int]:
        """Return the ``sequence``/``timestamp`` fields for the next event."""

        self._sequence += 1
        return {"sequence": self._sequence, "timestamp": self.clock()}

    def publish(self, event: GameEvent) -> None:
        """Deliver ``event`` to every interested listener."""

        logger.debug("event #%d %s", event.sequence, event.type.value)
        for subscription in list(self._subscriptions):
            if subscription.wants(event):
                subscription.listener(event)

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)
