"""Rule utilities shared by the engine and the AI."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Sequence

from . import encoding
from .cards import Card
from .melds import Meld, MeldKind, classify, canonical_order, run_ranks, set_joker_role
from .solver import solve_hand

if TYPE_CHECKING:
    from .events import GameEvent
    from .state import GameState

__all__ = [
    "RejectReason",
    "CommandResult",
    "InvariantViolation",
    "UnknownPlayerError",
    "Extension",
    "plan_extension",
    "OpeningCheck",
    "opening_check",
    "LiveValidation",
    "validate_selection",
    "PlayerScore",
    "final_scores",
    "check_conservation",
]


class RejectReason(str, Enum):
    """Why a command was refused."""

    GAME_NOT_STARTED = "game_not_started"
    GAME_OVER = "game_over"
    WRONG_PHASE = "wrong_phase"
    NOT_YOUR_TURN = "not_your_turn"
    HAND_FULL = "hand_full"
    PILE_EMPTY = "pile_empty"
    CARD_NOT_IN_HAND = "card_not_in_hand"
    DUPLICATE_CARD = "duplicate_card"
    NO_MELDS = "no_melds"
    INVALID_MELD = "invalid_meld"
    OPENING_THRESHOLD_NOT_MET = "opening_threshold_not_met"
    NOT_OPENED = "not_opened"
    MELD_NOT_FOUND = "meld_not_found"
    CANNOT_EXTEND_MELD = "cannot_extend_meld"
    MUST_KEEP_DISCARD = "must_keep_discard"
    INVALID_INDEX = "invalid_index"


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of an engine command; truthy exactly when the command succeeded."""

    ok: bool
    reason: RejectReason | None = None
    detail: str = ""
    events: tuple["GameEvent", ...] = ()

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def rejected(cls, reason: RejectReason, detail: str = "") -> "CommandResult":
        return cls(ok=False, reason=reason, detail=detail)


class InvariantViolation(RuntimeError):
    """Raised when the engine detects corrupted state, such as a lost card."""


class UnknownPlayerError(IndexError):
    """Raised when a caller names a player index that does not exist."""


@dataclass(frozen=True, slots=True)
class Extension:
    """Result of adding a card to a meld: the new meld and any joker freed."""

    cards: tuple[Card, ...]
    kind: MeldKind
    reclaimed_joker: Card | None = None


def _takes_joker_role(meld: Sequence[Card], slot: int, card: Card) -> bool:
    kind = classify(meld)
    if kind is MeldKind.RUN:
        ranks = run_ranks(meld)
        suit = next(held.suit for held in meld if not held.is_joker)
        return ranks is not None and card.suit == suit and encoding.matches_rank(card.rank, ranks[slot])
    if kind is MeldKind.SET:
        role = set_joker_role(meld)
        return role is not None and role == (card.rank, card.suit)
    return False


def plan_extension(meld: Sequence[Card], card: Card) -> Extension | None:
    """Return how ``card`` can join ``meld``, or ``None`` if it cannot.

    A natural card that matches a joker's exact role replaces it and frees the
    joker. Otherwise the card must extend the meld at either end and keep it
    the same kind of legal meld.
    """

    kind = classify(meld)
    if kind is None or card in meld:
        return None
    if not card.is_joker:
        for slot, held in enumerate(meld):
            if held.is_joker and _takes_joker_role(meld, slot, card):
                swapped = list(meld)
                swapped[slot] = card
                if classify(swapped) is kind:
                    return Extension(tuple(canonical_order(swapped)), kind, reclaimed_joker=held)
    for grown in ([*meld, card], [card, *meld]):
        if classify(grown) is kind:
            return Extension(tuple(canonical_order(grown)), kind)
    return None


@dataclass(frozen=True, slots=True)
class OpeningCheck:
    """Whether a set of melds satisfies the opening rule."""

    total_score: int
    meets_requirement: bool
    minimum_needed: int


def opening_check(total_score: int, *, has_opened: bool, threshold: int) -> OpeningCheck:
    """Compare ``total_score`` with the opening threshold."""

    if has_opened:
        return OpeningCheck(total_score, True, 0)
    return OpeningCheck(total_score, total_score >= threshold, max(0, threshold - total_score))


@dataclass(frozen=True, slots=True)
class LiveValidation:
    """Feedback on the cards a player has selected for melding."""

    selected: tuple[Card, ...]
    valid_melds: tuple[Meld, ...]
    invalid_cards: tuple[Card, ...]
    meld_scores: tuple[int, ...]
    total_score: int
    meets_open_requirement: bool
    minimum_needed: int
    has_opened: bool = False


def validate_selection(
    selected: Sequence[Card],
    hand: Sequence[Card],
    *,
    has_opened: bool,
    threshold: int,
) -> LiveValidation:
    """Solve the selected cards and report which melds they form.

    Selected cards that are not in ``hand`` (or are selected twice) are
    reported as invalid and never melded.
    """

    held = set(hand)
    usable: list[Card] = []
    rejected: list[Card] = []
    seen: set[Card] = set()
    for card in selected:
        if card in held and card not in seen:
            usable.append(card)
        else:
            rejected.append(card)
        seen.add(card)

    solution = solve_hand(usable)
    check = opening_check(solution.total_score, has_opened=has_opened, threshold=threshold)
    return LiveValidation(
        selected=tuple(selected),
        valid_melds=solution.melds,
        invalid_cards=tuple(rejected) + solution.remaining,
        meld_scores=solution.meld_scores,
        total_score=solution.total_score,
        meets_open_requirement=bool(solution.melds) and check.meets_requirement,
        minimum_needed=check.minimum_needed,
        has_opened=has_opened,
    )


@dataclass(frozen=True, slots=True)
class PlayerScore:
    """Per-player scoring breakdown captured at the end of a game."""

    player_index: int
    laid_points: int
    deadwood_points: int
    net_points: int
    won: bool


def final_scores(state: "GameState") -> list[PlayerScore]:
    """Return each player's laid points, hand penalty and net score."""

    scores: list[PlayerScore] = []
    for idx, player in enumerate(state.players):
        laid = player.laid_points
        deadwood = sum(card.points for card in player.hand)
        scores.append(
            PlayerScore(
                player_index=idx,
                laid_points=laid,
                deadwood_points=deadwood,
                net_points=laid - deadwood,
                won=state.public.winner_index == idx,
            )
        )
    return scores


def check_conservation(state: "GameState") -> None:
    """Raise :class:`InvariantViolation` on a lost or duplicated card or an illegal table meld."""

    cards = list(state.iter_cards())
    if len(cards) != state.total_cards:
        raise InvariantViolation(f"card count changed: {len(cards)} != {state.total_cards}")
    duplicates = [card for card, seen in Counter(card.uid for card in cards).items() if seen > 1]
    if duplicates:
        raise InvariantViolation(f"cards present in more than one place: {sorted(duplicates)}")
    for owner, player in enumerate(state.players):
        for idx, meld in enumerate(player.melds):
            if classify(meld.cards) is not meld.kind:
                raise InvariantViolation(f"table meld {owner}:{idx} is no longer a legal {meld.kind.value}")
