"""Core game state data structures for Remi."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Sequence

from .cards import Card, deck_size
from .deck import Deck
from .melds import MeldKind, score

__all__ = [
    "TurnPhase",
    "GameConfig",
    "TableMeld",
    "PlayerState",
    "PublicState",
    "GameState",
    "deal_new_game",
    "hands_from",
]


class TurnPhase(str, Enum):
    """Phases of a turn; GAME_OVER freezes the state."""

    DRAW = "draw"
    MELD = "meld"
    DISCARD = "discard"
    GAME_OVER = "game_over"


@dataclass(slots=True)
class GameConfig:
    """Runtime configuration for a single Remi game."""

    num_players: int = 2
    num_decks: int = 2
    hand_size: int = 14
    opening_threshold: int = 51
    max_hand_size: int = 15
    starting_player: int = 0

    def __post_init__(self) -> None:
        if self.num_players < 2:
            raise ValueError("num_players must be at least 2")
        if self.num_decks <= 0:
            raise ValueError("num_decks must be positive")
        if self.hand_size <= 0:
            raise ValueError("hand_size must be positive")
        if self.max_hand_size <= self.hand_size:
            raise ValueError("max_hand_size must leave room to draw")
        if self.opening_threshold < 0:
            raise ValueError("opening_threshold must not be negative")
        if not 0 <= self.starting_player < self.num_players:
            raise ValueError("starting_player out of range")
        if self.num_players * self.hand_size >= deck_size(self.num_decks):
            raise ValueError("not enough cards to deal every hand")


@dataclass(slots=True)
class TableMeld:
    """A meld laid on the table, addressed by its owner and position."""

    owner: int
    kind: MeldKind
    cards: list[Card]

    @property
    def points(self) -> int:
        return score(self.cards)

    @property
    def has_joker(self) -> bool:
        return any(card.is_joker for card in self.cards)

    def copy(self) -> "TableMeld":
        return TableMeld(owner=self.owner, kind=self.kind, cards=list(self.cards))


@dataclass(slots=True)
class PlayerState:
    """State tracked for each player at the table."""

    hand: list[Card] = field(default_factory=list)
    melds: list[TableMeld] = field(default_factory=list)
    has_opened: bool = False

    @property
    def laid_points(self) -> int:
        return sum(meld.points for meld in self.melds)

    def find(self, card: Card) -> int:
        """Return the hand position of ``card`` or ``-1``."""

        for idx, held in enumerate(self.hand):
            if held == card:
                return idx
        return -1

    def copy(self) -> "PlayerState":
        """Return a copy that shares no lists with this player."""

        return PlayerState(
            hand=list(self.hand),
            melds=[meld.copy() for meld in self.melds],
            has_opened=self.has_opened,
        )


@dataclass(slots=True)
class PublicState:
    """Shared turn bookkeeping that is visible to all players."""

    current_player_index: int = 0
    turn_index: int = 0
    winner_index: int | None = None

    def copy(self) -> "PublicState":
        return PublicState(
            current_player_index=self.current_player_index,
            turn_index=self.turn_index,
            winner_index=self.winner_index,
        )


@dataclass(slots=True)
class GameState:
    """Complete mutable state of one game, owned by the engine."""

    config: GameConfig
    players: list[PlayerState]
    deck: Deck
    public: PublicState = field(default_factory=PublicState)
    phase: TurnPhase = TurnPhase.DRAW
    picked_from_discard: Card | None = None
    total_cards: int = 0
    game_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        if len(self.players) != self.config.num_players:
            raise ValueError("player count does not match configuration")
        if not self.total_cards:
            self.total_cards = sum(1 for _ in self.iter_cards())

    @property
    def current_player(self) -> PlayerState:
        return self.players[self.public.current_player_index]

    def iter_cards(self) -> Iterator[Card]:
        """Yield every card in the game, wherever it currently lies."""

        yield from self.deck.draw_pile
        yield from self.deck.discard_pile
        for player in self.players:
            yield from player.hand
            for meld in player.melds:
                yield from meld.cards

    def clone(self) -> "GameState":
        """Return a copy whose mutable containers are independent of this one."""

        return GameState(
            config=self.config,
            players=[player.copy() for player in self.players],
            deck=self.deck.copy(),
            public=self.public.copy(),
            phase=self.phase,
            picked_from_discard=self.picked_from_discard,
            total_cards=self.total_cards,
            game_id=self.game_id,
        )


def deal_new_game(config: GameConfig, deck: Deck) -> GameState:
    """Deal ``config.hand_size`` cards round-robin from ``deck`` and return the state."""

    total = len(deck)
    players = [PlayerState() for _ in range(config.num_players)]
    for _ in range(config.hand_size):
        for player in players:
            card = deck.draw()
            if card is None:
                raise ValueError("deck exhausted while dealing")
            player.hand.append(card)
    public = PublicState(current_player_index=config.starting_player)
    return GameState(config=config, players=players, deck=deck, public=public, total_cards=total)


def hands_from(cards: Sequence[Sequence[Card]]) -> list[PlayerState]:
    """Build player states holding the given hands; used to stage positions."""

    return [PlayerState(hand=list(hand)) for hand in cards]
