"""Turn state machine for Remi.

The :class:`Engine` is the only writer of game state. Every command checks
the phase, the acting player and the opening rule, mutates the state, verifies
card conservation and then publishes the events it produced, in order, before
returning a :class:`~remi.rules.CommandResult`. Rule violations are reported
through the result and never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from . import rules
from .cards import Card
from .deck import Deck, make_rng
from .events import (
    CardAddedToMeld,
    CardDiscarded,
    CardDrawnFromDeck,
    CardDrawnFromDiscard,
    DrawPileShuffled,
    EventBus,
    GameEvent,
    GameEventType,
    GameOver,
    GameStarted,
    HandReordered,
    Listener,
    MeldsLaidDown,
    PhaseChanged,
    PlayerTurnStarted,
    StateRestored,
    TurnEnded,
)
from .melds import canonical_order, classify, score
from .rules import CommandResult, RejectReason
from .state import GameConfig, GameState, PlayerState, TableMeld, TurnPhase, deal_new_game

__all__ = ["Engine", "GameStateView", "GameSnapshot", "ReentrantCommandError"]

logger = logging.getLogger(__name__)

_PLAY_PHASES = (TurnPhase.MELD, TurnPhase.DISCARD)


class ReentrantCommandError(RuntimeError):
    """Raised when a command is issued while the engine is delivering events."""


@dataclass(frozen=True, slots=True)
class GameStateView:
    """Read-only summary of the public game state."""

    game_id: str
    phase: TurnPhase
    current_player: int
    num_players: int
    turn_index: int
    draw_pile_size: int
    discard_pile_size: int
    top_discard: Card | None
    has_opened: tuple[bool, ...]
    hand_sizes: tuple[int, ...]
    winner: int | None
    opening_threshold: int
    max_hand_size: int

    @property
    def is_over(self) -> bool:
        return self.phase is TurnPhase.GAME_OVER


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """Opaque copy of the full game state taken by :meth:`Engine.snapshot`."""

    state: GameState

    @property
    def game_id(self) -> str:
        return self.state.game_id

    @property
    def phase(self) -> TurnPhase:
        return self.state.phase

    @property
    def current_player(self) -> int:
        return self.state.public.current_player_index


class Engine:
    """Authoritative owner of one game of Remi."""

    def __init__(
        self,
        config: GameConfig | None = None,
        *,
        seed: int | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.config = config or GameConfig()
        self._rng = make_rng(seed)
        self._bus = bus or EventBus()
        self._state: GameState | None = None
        self._pending: list[GameEvent] = []
        self._dispatching = False

    @classmethod
    def from_state(cls, state: GameState, *, seed: int | None = None, bus: EventBus | None = None) -> "Engine":
        """Return an engine that continues from an already staged ``state``."""

        rules.check_conservation(state)
        engine = cls(state.config, seed=seed, bus=bus)
        engine._state = state
        return engine

    # ------------------------------------------------------------------
    # Events

    def subscribe(self, listener: Listener, *event_types: GameEventType) -> Callable[[], None]:
        """Register ``listener``; returns a handle that unsubscribes it."""

        return self._bus.subscribe(listener, *event_types)

    def _record(self, factory: Callable[..., GameEvent], **payload: object) -> None:
        self._pending.append(factory(**self._bus.stamp(), **payload))

    def _commit(self) -> CommandResult:
        state = self._require_state()
        try:
            rules.check_conservation(state)
        except rules.InvariantViolation:
            self._pending.clear()
            raise
        events = tuple(self._pending)
        self._pending.clear()
        self._dispatching = True
        try:
            for event in events:
                self._bus.publish(event)
        finally:
            self._dispatching = False
        return CommandResult(ok=True, events=events)

    def _reject(self, command: str, player: int, reason: RejectReason, detail: str = "") -> CommandResult:
        logger.debug("%s by player %d rejected: %s %s", command, player, reason.value, detail)
        return CommandResult.rejected(reason, detail)

    def _guard(self) -> None:
        if self._dispatching:
            raise ReentrantCommandError("engine commands may not be issued from an event listener")

    # ------------------------------------------------------------------
    # State helpers

    def _require_state(self) -> GameState:
        if self._state is None:
            raise RuntimeError("no game in progress; call new_game() first")
        return self._state

    def _player(self, player_index: int) -> PlayerState:
        state = self._require_state()
        if not 0 <= player_index < len(state.players):
            raise rules.UnknownPlayerError(f"no player with index {player_index}")
        return state.players[player_index]

    def _check_turn(self, command: str, player_index: int, phases: Sequence[TurnPhase]) -> CommandResult | None:
        self._guard()
        if self._state is None:
            return CommandResult.rejected(RejectReason.GAME_NOT_STARTED)
        self._player(player_index)
        if self._state.phase is TurnPhase.GAME_OVER:
            return self._reject(command, player_index, RejectReason.GAME_OVER)
        if self._state.public.current_player_index != player_index:
            return self._reject(command, player_index, RejectReason.NOT_YOUR_TURN)
        if self._state.phase not in phases:
            return self._reject(command, player_index, RejectReason.WRONG_PHASE, self._state.phase.value)
        return None

    def _set_phase(self, phase: TurnPhase) -> None:
        state = self._require_state()
        if state.phase is phase:
            return
        previous = state.phase
        state.phase = phase
        self._record(
            PhaseChanged,
            phase=phase.value,
            previous_phase=previous.value,
            current_player=state.public.current_player_index,
        )

    def _after_meld_action(self, player: PlayerState) -> None:
        if len(player.hand) == 1:
            self._set_phase(TurnPhase.DISCARD)

    # ------------------------------------------------------------------
    # Commands

    def new_game(self, config: GameConfig | None = None) -> CommandResult:
        """Shuffle, deal and start a new game, discarding any game in progress."""

        self._guard()
        if config is not None:
            self.config = config
        deck = Deck.fresh(self.config.num_decks, self._rng)
        self._state = deal_new_game(self.config, deck)
        state = self._state
        logger.info(
            "game %s started: %d players, %d cards in the draw pile",
            state.game_id,
            self.config.num_players,
            len(state.deck.draw_pile),
        )
        self._record(
            GameStarted,
            game_id=state.game_id,
            num_players=self.config.num_players,
            starting_player=state.public.current_player_index,
            hand_sizes=tuple(len(player.hand) for player in state.players),
            draw_pile_size=len(state.deck.draw_pile),
        )
        self._record(
            PlayerTurnStarted,
            player_index=state.public.current_player_index,
            turn_index=state.public.turn_index,
        )
        return self._commit()

    def draw_from_deck(self, player_index: int) -> CommandResult:
        """Draw the top card of the draw pile, reshuffling the discards if it is empty."""

        rejection = self._check_turn("draw_from_deck", player_index, (TurnPhase.DRAW,))
        if rejection is not None:
            return rejection
        state = self._require_state()
        player = state.players[player_index]
        if len(player.hand) >= self.config.max_hand_size:
            return self._reject("draw_from_deck", player_index, RejectReason.HAND_FULL)
        if not state.deck.draw_pile:
            if not state.deck.discard_pile:
                return self._reject("draw_from_deck", player_index, RejectReason.PILE_EMPTY)
            size = state.deck.reshuffle_discard(self._rng)
            logger.debug("draw pile exhausted; %d discards reshuffled", size)
            self._record(DrawPileShuffled, draw_pile_size=size)
        card = state.deck.draw()
        if card is None:
            raise rules.InvariantViolation("draw pile empty after reshuffle")
        player.hand.append(card)
        state.picked_from_discard = None
        self._record(
            CardDrawnFromDeck,
            player_index=player_index,
            card=card,
            draw_pile_size=len(state.deck.draw_pile),
        )
        self._set_phase(TurnPhase.MELD)
        return self._commit()

    def draw_from_discard(self, player_index: int) -> CommandResult:
        """Take the top discard into the hand."""

        rejection = self._check_turn("draw_from_discard", player_index, (TurnPhase.DRAW,))
        if rejection is not None:
            return rejection
        state = self._require_state()
        player = state.players[player_index]
        if len(player.hand) >= self.config.max_hand_size:
            return self._reject("draw_from_discard", player_index, RejectReason.HAND_FULL)
        card = state.deck.take_discard()
        if card is None:
            return self._reject("draw_from_discard", player_index, RejectReason.PILE_EMPTY)
        player.hand.append(card)
        state.picked_from_discard = card
        self._record(
            CardDrawnFromDiscard,
            player_index=player_index,
            card=card,
            discard_pile_size=len(state.deck.discard_pile),
        )
        self._set_phase(TurnPhase.MELD)
        return self._commit()

    def lay_down_melds(self, player_index: int, melds: Sequence[Sequence[Card]]) -> CommandResult:
        """Move one or more legal melds from the hand to the table.

        A player who has not opened must reach the opening threshold with the
        melds of this single call. At least one card has to stay in hand for
        the discard: this house rule makes every game end on a discard, and
        emptying the hand here is rejected with ``MUST_KEEP_DISCARD``.
        """

        command = "lay_down_melds"
        rejection = self._check_turn(command, player_index, _PLAY_PHASES)
        if rejection is not None:
            return rejection
        state = self._require_state()
        player = state.players[player_index]
        if not melds or any(len(meld) == 0 for meld in melds):
            return self._reject(command, player_index, RejectReason.NO_MELDS)
        flat = [card for meld in melds for card in meld]
        if len(set(flat)) != len(flat):
            return self._reject(command, player_index, RejectReason.DUPLICATE_CARD)
        positions = {card: player.find(card) for card in flat}
        missing = [card.label() for card, pos in positions.items() if pos < 0]
        if missing:
            return self._reject(command, player_index, RejectReason.CARD_NOT_IN_HAND, " ".join(missing))

        held = [[player.hand[positions[card]] for card in meld] for meld in melds]
        kinds = [classify(meld) for meld in held]
        for idx, kind in enumerate(kinds):
            if kind is None:
                labels = " ".join(card.label() for card in held[idx])
                return self._reject(command, player_index, RejectReason.INVALID_MELD, labels)
        total = sum(score(meld) for meld in held)
        check = rules.opening_check(total, has_opened=player.has_opened, threshold=self.config.opening_threshold)
        if not check.meets_requirement:
            return self._reject(
                command,
                player_index,
                RejectReason.OPENING_THRESHOLD_NOT_MET,
                f"{total} points, {check.minimum_needed} more needed",
            )
        if len(flat) >= len(player.hand):
            return self._reject(command, player_index, RejectReason.MUST_KEEP_DISCARD)

        used = set(flat)
        player.hand = [card for card in player.hand if card not in used]
        indices: list[int] = []
        laid: list[tuple[Card, ...]] = []
        for meld, kind in zip(held, kinds):
            ordered = canonical_order(meld)
            player.melds.append(TableMeld(owner=player_index, kind=kind, cards=ordered))
            indices.append(len(player.melds) - 1)
            laid.append(tuple(ordered))
        opened_now = not player.has_opened
        player.has_opened = True
        if opened_now:
            logger.debug("player %d opened with %d points", player_index, total)
        self._record(
            MeldsLaidDown,
            player_index=player_index,
            melds=tuple(laid),
            meld_indices=tuple(indices),
            points=total,
            opened=opened_now,
        )
        self._after_meld_action(player)
        return self._commit()

    def add_card_to_meld(self, player_index: int, card: Card, meld_owner: int, meld_index: int) -> CommandResult:
        """Add ``card`` to a table meld of any player, reclaiming a joker when it takes its place."""

        command = "add_card_to_meld"
        rejection = self._check_turn(command, player_index, _PLAY_PHASES)
        if rejection is not None:
            return rejection
        state = self._require_state()
        player = state.players[player_index]
        if not player.has_opened:
            return self._reject(command, player_index, RejectReason.NOT_OPENED)
        if not 0 <= meld_owner < len(state.players) or not 0 <= meld_index < len(state.players[meld_owner].melds):
            return self._reject(command, player_index, RejectReason.MELD_NOT_FOUND, f"{meld_owner}:{meld_index}")
        position = player.find(card)
        if position < 0:
            return self._reject(command, player_index, RejectReason.CARD_NOT_IN_HAND, card.label())
        held = player.hand[position]
        target = state.players[meld_owner].melds[meld_index]
        extension = rules.plan_extension(target.cards, held)
        if extension is None:
            return self._reject(command, player_index, RejectReason.CANNOT_EXTEND_MELD, held.label())
        if extension.reclaimed_joker is None and len(player.hand) <= 1:
            return self._reject(command, player_index, RejectReason.MUST_KEEP_DISCARD)

        player.hand.pop(position)
        if extension.reclaimed_joker is not None:
            player.hand.append(extension.reclaimed_joker)
        target.cards = list(extension.cards)
        self._record(
            CardAddedToMeld,
            player_index=player_index,
            card=held,
            meld_owner=meld_owner,
            meld_index=meld_index,
            meld=extension.cards,
            replaced_joker=extension.reclaimed_joker,
        )
        self._after_meld_action(player)
        return self._commit()

    def discard_card(self, player_index: int, card: Card) -> CommandResult:
        """Discard ``card``, ending the turn, or the game when the hand empties."""

        rejection = self._check_turn("discard_card", player_index, _PLAY_PHASES)
        if rejection is not None:
            return rejection
        state = self._require_state()
        player = state.players[player_index]
        position = player.find(card)
        if position < 0:
            return self._reject("discard_card", player_index, RejectReason.CARD_NOT_IN_HAND, card.label())
        discarded = player.hand.pop(position)
        state.deck.discard(discarded)
        state.picked_from_discard = None
        self._record(
            CardDiscarded,
            player_index=player_index,
            card=discarded,
            hand_size=len(player.hand),
        )
        if player.hand:
            self._advance_turn(player_index)
        else:
            self._finish(player_index)
        return self._commit()

    def reorder_hand(self, player_index: int, from_index: int, to_index: int) -> CommandResult:
        """Move one card within the hand; only the display order changes."""

        self._guard()
        if self._state is None:
            return CommandResult.rejected(RejectReason.GAME_NOT_STARTED)
        player = self._player(player_index)
        if self._state.phase is TurnPhase.GAME_OVER:
            return self._reject("reorder_hand", player_index, RejectReason.GAME_OVER)
        size = len(player.hand)
        if not (0 <= from_index < size and 0 <= to_index < size):
            return self._reject("reorder_hand", player_index, RejectReason.INVALID_INDEX)
        card = player.hand.pop(from_index)
        player.hand.insert(to_index, card)
        self._record(HandReordered, player_index=player_index, from_index=from_index, to_index=to_index)
        return self._commit()

    def restore(self, snapshot: GameSnapshot) -> CommandResult:
        """Roll the game back to ``snapshot``, which must come from this game.

        A finished game stays finished.
        """

        self._guard()
        state = self._require_state()
        if snapshot.game_id != state.game_id:
            raise ValueError("snapshot belongs to a different game")
        if state.phase is TurnPhase.GAME_OVER:
            return self._reject("restore", state.public.current_player_index, RejectReason.GAME_OVER)
        self._state = snapshot.state.clone()
        self._record(
            StateRestored,
            current_player=self._state.public.current_player_index,
            phase=self._state.phase.value,
        )
        return self._commit()

    def _advance_turn(self, player_index: int) -> None:
        state = self._require_state()
        next_player = (player_index + 1) % len(state.players)
        self._record(TurnEnded, player_index=player_index, next_player=next_player, turn_index=state.public.turn_index)
        state.public.turn_index += 1
        state.public.current_player_index = next_player
        self._set_phase(TurnPhase.DRAW)
        self._record(PlayerTurnStarted, player_index=next_player, turn_index=state.public.turn_index)

    def _finish(self, winner: int) -> None:
        state = self._require_state()
        state.public.winner_index = winner
        self._set_phase(TurnPhase.GAME_OVER)
        scores = rules.final_scores(state)
        logger.info("game %s over: player %d went out", state.game_id, winner)
        self._record(GameOver, winner=winner, scores=tuple(entry.deadwood_points for entry in scores))

    # ------------------------------------------------------------------
    # Queries

    @property
    def started(self) -> bool:
        return self._state is not None

    def get_state(self) -> GameStateView:
        """Return a frozen summary of the public state."""

        state = self._require_state()
        return GameStateView(
            game_id=state.game_id,
            phase=state.phase,
            current_player=state.public.current_player_index,
            num_players=len(state.players),
            turn_index=state.public.turn_index,
            draw_pile_size=len(state.deck.draw_pile),
            discard_pile_size=len(state.deck.discard_pile),
            top_discard=state.deck.top_discard,
            has_opened=tuple(player.has_opened for player in state.players),
            hand_sizes=tuple(len(player.hand) for player in state.players),
            winner=state.public.winner_index,
            opening_threshold=self.config.opening_threshold,
            max_hand_size=self.config.max_hand_size,
        )

    def get_player_hand(self, player_index: int) -> list[Card]:
        """Return a copy of the player's hand in display order."""

        return list(self._player(player_index).hand)

    def get_player_melds(self, player_index: int) -> list[TableMeld]:
        """Return copies of the melds the player has on the table."""

        return [meld.copy() for meld in self._player(player_index).melds]

    def table_melds(self) -> list[TableMeld]:
        """Return copies of every meld on the table, grouped by owner."""

        state = self._require_state()
        return [meld.copy() for player in state.players for meld in player.melds]

    def has_opened(self, player_index: int) -> bool:
        return self._player(player_index).has_opened

    def picked_up_from_discard(self) -> Card | None:
        """Return the card the current player took from the discard pile this turn."""

        return self._require_state().picked_from_discard

    def validate_selection(self, player_index: int, cards: Sequence[Card]) -> rules.LiveValidation:
        """Report the melds the selected cards form, without changing any state."""

        player = self._player(player_index)
        return rules.validate_selection(
            cards,
            player.hand,
            has_opened=player.has_opened,
            threshold=self.config.opening_threshold,
        )

    def final_scores(self) -> list[rules.PlayerScore]:
        """Return the per-player score breakdown for the current position."""

        return rules.final_scores(self._require_state())

    def snapshot(self) -> GameSnapshot:
        """Capture hands, table melds, piles and turn bookkeeping."""

        return GameSnapshot(self._require_state().clone())
