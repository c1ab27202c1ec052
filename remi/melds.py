"""Meld legality, scoring and canonical ordering for Remi.

A *set* holds three or four cards of one rank in distinct suits; a *run* holds
three or more cards of one suit in consecutive rank. Jokers stand in for any
card, at most one per set. Validation works on the physical order of a run:
every slot advances the rank by exactly one step in a single direction, so a
joker always represents the rank of the slot it occupies. Aces may sit below
the two or above the king, never both ends of a wrap.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from . import encoding
from .cards import STANDARD_SUITS, Card, Suit

__all__ = [
    "MeldKind",
    "Meld",
    "MIN_MELD_SIZE",
    "MAX_SET_SIZE",
    "is_set",
    "is_run",
    "run_ranks",
    "classify",
    "score",
    "card_points",
    "set_rank",
    "set_joker_role",
    "canonical_order",
    "arrange_run",
]

MIN_MELD_SIZE = 3
MAX_SET_SIZE = 4


class MeldKind(str, Enum):
    """Tag describing the shape of a legal meld."""

    SET = "set"
    RUN = "run"


@dataclass(frozen=True, slots=True)
class Meld:
    """Legal meld stored in canonical order."""

    kind: MeldKind
    cards: tuple[Card, ...]

    @classmethod
    def from_cards(cls, cards: Sequence[Card]) -> "Meld":
        """Validate ``cards`` as given and return the canonical meld."""

        kind = classify(cards)
        if kind is None:
            raise ValueError(f"not a legal meld: {' '.join(card.label() for card in cards)}")
        return cls(kind=kind, cards=tuple(canonical_order(cards)))

    @property
    def score(self) -> int:
        return score(self.cards)

    @property
    def joker_count(self) -> int:
        return sum(1 for card in self.cards if card.is_joker)

    def __len__(self) -> int:
        return len(self.cards)

    def labels(self) -> list[str]:
        return [card.label() for card in self.cards]


def _anchors(cards: Sequence[Card]) -> list[tuple[int, Card]]:
    return [(idx, card) for idx, card in enumerate(cards) if not card.is_joker]


def is_set(cards: Sequence[Card]) -> bool:
    """Return ``True`` if ``cards`` form a legal set."""

    if not MIN_MELD_SIZE <= len(cards) <= MAX_SET_SIZE:
        return False
    naturals = [card for card in cards if not card.is_joker]
    if len(cards) - len(naturals) > 1 or not naturals:
        return False
    if len({card.rank for card in naturals}) != 1:
        return False
    return len({card.suit for card in naturals}) == len(naturals)


def run_ranks(cards: Sequence[Card]) -> list[int] | None:
    """Return the positional rank of every slot if ``cards`` form a legal run.

    Ascending layouts are tried before descending ones and a low ace before a
    high ace, so the result is deterministic when a lone anchor leaves the
    direction open.
    """

    if len(cards) < MIN_MELD_SIZE:
        return None
    anchors = _anchors(cards)
    if not anchors:
        return None
    if len({card.suit for _, card in anchors}) != 1:
        return None
    first_index, first = anchors[0]
    last_slot = len(cards) - 1
    for step in (1, -1):
        for base in encoding.rank_options(first.rank):
            start = base - step * first_index
            end = start + step * last_slot
            if min(start, end) < encoding.ACE or max(start, end) > encoding.ACE_HIGH:
                continue
            if all(encoding.matches_rank(card.rank, start + step * idx) for idx, card in anchors):
                return [start + step * idx for idx in range(len(cards))]
    return None


def is_run(cards: Sequence[Card]) -> bool:
    """Return ``True`` if ``cards`` form a legal run in the given order."""

    return run_ranks(cards) is not None


def classify(cards: Sequence[Card]) -> MeldKind | None:
    """Return the meld kind of ``cards`` or ``None`` when illegal.

    A legal group can never be both a set and a run: two anchors share either
    a suit or a rank, and a single anchor leaves at least two jokers.
    """

    if is_set(cards):
        return MeldKind.SET
    if is_run(cards):
        return MeldKind.RUN
    return None


def card_points(card: Card) -> int:
    """Return the face value of a card held outside any meld."""

    return card.points


def set_rank(cards: Sequence[Card]) -> int:
    """Return the shared rank of a set's natural cards."""

    for card in cards:
        if not card.is_joker:
            return card.rank
    raise ValueError("set has no natural card")


def score(cards: Sequence[Card]) -> int:
    """Return the point value of a meld.

    Jokers score the rank they represent. A sequence that is not a legal meld
    scores the face value of its natural cards only.
    """

    if is_set(cards):
        return encoding.rank_points(set_rank(cards)) * len(cards)
    ranks = run_ranks(cards)
    if ranks is not None:
        return sum(encoding.rank_points(rank) for rank in ranks)
    return sum(card.points for card in cards)


def set_joker_role(cards: Sequence[Card]) -> tuple[int, Suit] | None:
    """Return the rank and suit a joker stands for in a four-card set.

    A three-card set leaves the joker's suit open, so only a full set has an
    exact role a natural card can take over.
    """

    if len(cards) != MAX_SET_SIZE or not is_set(cards):
        return None
    naturals = [card for card in cards if not card.is_joker]
    if len(naturals) != MAX_SET_SIZE - 1:
        return None
    missing = [suit for suit in STANDARD_SUITS if suit not in {card.suit for card in naturals}]
    return naturals[0].rank, missing[0]


def _set_order(cards: Sequence[Card]) -> list[Card]:
    naturals = sorted((card for card in cards if not card.is_joker), key=lambda card: (card.suit.order, card.uid))
    jokers = [card for card in cards if card.is_joker]
    return naturals + jokers


def canonical_order(cards: Sequence[Card]) -> list[Card]:
    """Return ``cards`` in the order they are stored on the table.

    Sets are suit-ordered with the joker last. Legal runs are laid out by
    ascending positional rank, which keeps every joker on the rank it already
    represents. Anything else is arranged as a run when possible.
    """

    if is_set(cards):
        return _set_order(cards)
    ranks = run_ranks(cards)
    if ranks is not None:
        return [card for _, card in sorted(zip(ranks, cards), key=lambda pair: pair[0])]
    arranged = arrange_run(cards)
    if arranged is None:
        raise ValueError("cards cannot be arranged into a legal meld")
    return arranged


def _natural_rank_layouts(naturals: Sequence[Card]) -> list[list[int]]:
    low = [card.rank for card in naturals]
    high = [encoding.ACE_HIGH if card.rank == encoding.ACE else card.rank for card in naturals]
    layouts = [low]
    if high != low:
        layouts.append(high)
        aces = [idx for idx, card in enumerate(naturals) if card.rank == encoding.ACE]
        if len(aces) > 1:
            mixed = list(low)
            mixed[aces[-1]] = encoding.ACE_HIGH
            layouts.append(mixed)
    return layouts


def arrange_run(cards: Sequence[Card]) -> list[Card] | None:
    """Lay out an unordered group as an ascending run, or return ``None``.

    Jokers fill internal gaps lowest rank first; surplus jokers extend the top
    of the run and then the bottom once the top reaches the high ace.
    """

    if len(cards) < MIN_MELD_SIZE:
        return None
    naturals = [card for card in cards if not card.is_joker]
    jokers = [card for card in cards if card.is_joker]
    if not naturals or len({card.suit for card in naturals}) != 1:
        return None
    for layout in _natural_rank_layouts(naturals):
        if len(set(layout)) != len(layout):
            continue
        placed = sorted(zip(layout, naturals), key=lambda pair: pair[0])
        low, high = placed[0][0], placed[-1][0]
        gaps = (high - low + 1) - len(placed)
        if gaps > len(jokers):
            continue
        spare = len(jokers) - gaps
        above = min(spare, encoding.ACE_HIGH - high)
        below = spare - above
        if low - below < encoding.ACE:
            continue
        pool = iter(jokers)
        by_rank = dict(placed)
        sequence: list[Card] = []
        for rank in range(low - below, high + above + 1):
            sequence.append(by_rank[rank] if rank in by_rank else next(pool))
        if is_run(sequence):
            return sequence
    return None
