"""Hand solver: best partition of a hand into disjoint legal melds.

Every legal set and run that the hand could form is generated as a
*candidate*. Candidates name card kinds rather than physical cards: copies of
the same face from different decks are interchangeable, and so are jokers.
The search walks candidates in a fixed priority order and commits any whose
kinds are still available, allocating the lowest free arena index of each kind
from a bitset. An optimistic bound on the value of the cards still free prunes
branches that cannot beat the best partition found so far.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from functools import lru_cache
from itertools import combinations
from typing import Final, Sequence

from . import encoding
from .cards import Card, Suit
from .melds import MAX_SET_SIZE, MIN_MELD_SIZE, Meld, MeldKind, classify

__all__ = [
    "CardKind",
    "MeldCandidate",
    "HandSolution",
    "DEFAULT_MAX_NODES",
    "generate_candidates",
    "solve_hand",
]

DEFAULT_MAX_NODES: Final[int] = 250_000

# A natural card kind is (rank, suit); ``None`` stands for any joker.
CardKind = tuple[int, Suit] | None


def _kind_of(card: Card) -> CardKind:
    return None if card.is_joker else (card.rank, card.suit)


def _slot_key(slot: CardKind) -> tuple[int, int, int]:
    if slot is None:
        return (0, 0, 0)
    rank, suit = slot
    return (1, rank, suit.order)


@dataclass(frozen=True, slots=True)
class MeldCandidate:
    """One way the hand could form a legal meld, expressed over card kinds."""

    kind: MeldKind
    slots: tuple[CardKind, ...]
    score: int

    @property
    def joker_count(self) -> int:
        return sum(1 for slot in self.slots if slot is None)

    @property
    def efficiency(self) -> float:
        """Points contributed per card consumed."""

        return self.score / len(self.slots)

    def priority(self) -> tuple:
        """Sort key: efficient, valuable, long melds first, ties broken structurally."""

        return (
            -self.efficiency,
            -self.score,
            -len(self.slots),
            -self.joker_count,
            self.kind.value,
            tuple(_slot_key(slot) for slot in self.slots),
        )


@dataclass(frozen=True, slots=True)
class HandSolution:
    """Best partition found for a hand."""

    melds: tuple[Meld, ...]
    remaining: tuple[Card, ...]
    total_score: int
    deadwood: int
    truncated: bool = False

    @property
    def melded_cards(self) -> tuple[Card, ...]:
        return tuple(card for meld in self.melds for card in meld.cards)

    @property
    def meld_scores(self) -> tuple[int, ...]:
        return tuple(meld.score for meld in self.melds)


def _set_candidates(rank: int, suits: Sequence[Suit], jokers: int) -> list[MeldCandidate]:
    found: list[MeldCandidate] = []
    points = encoding.rank_points(rank)
    for size in (MIN_MELD_SIZE, MAX_SET_SIZE):
        for combo in combinations(suits, size):
            slots = tuple((rank, suit) for suit in combo)
            found.append(MeldCandidate(MeldKind.SET, slots, points * size))
    if jokers:
        for size in (MIN_MELD_SIZE - 1, MAX_SET_SIZE - 1):
            for combo in combinations(suits, size):
                slots = tuple((rank, suit) for suit in combo) + (None,)
                found.append(MeldCandidate(MeldKind.SET, slots, points * (size + 1)))
    return found


def _run_candidates(suit: Suit, counts: Counter, jokers: int) -> list[MeldCandidate]:
    found: list[MeldCandidate] = []
    for low in range(encoding.ACE, encoding.ACE_HIGH - MIN_MELD_SIZE + 2):
        for high in range(low + MIN_MELD_SIZE - 1, encoding.ACE_HIGH + 1):
            used: Counter = Counter()
            slots: list[CardKind] = []
            anchors = 0
            for rank in range(low, high + 1):
                natural = encoding.ACE if rank == encoding.ACE_HIGH else rank
                if used[natural] < counts[natural]:
                    used[natural] += 1
                    slots.append((natural, suit))
                    anchors += 1
                else:
                    slots.append(None)
            needed = len(slots) - anchors
            if not anchors or needed > jokers:
                continue
            points = sum(encoding.rank_points(rank) for rank in range(low, high + 1))
            found.append(MeldCandidate(MeldKind.RUN, tuple(slots), points))
    return found


def generate_candidates(cards: Sequence[Card]) -> list[MeldCandidate]:
    """Return every distinct legal meld the hand can form, in search priority order.

    Sets cover three or four distinct suits, or two or three suits plus one
    joker. Runs cover every rank window of three or more cards in a suit that
    holds at least one natural card and whose gaps fit the hand's jokers.
    """

    return _candidates_for(tuple(_kind_of(card) for card in cards))


def _candidates_for(hand: Sequence[CardKind]) -> list[MeldCandidate]:
    kinds = Counter(hand)
    jokers = kinds.pop(None, 0)
    by_rank: dict[int, list[Suit]] = defaultdict(list)
    by_suit: dict[Suit, Counter] = defaultdict(Counter)
    for rank, suit in sorted(kinds, key=_slot_key):
        by_rank[rank].append(suit)
        by_suit[suit][rank] = kinds[(rank, suit)]

    candidates: list[MeldCandidate] = []
    for rank in sorted(by_rank):
        candidates.extend(_set_candidates(rank, by_rank[rank], jokers))
    for suit in sorted(by_suit, key=lambda item: item.order):
        candidates.extend(_run_candidates(suit, by_suit[suit], jokers))
    candidates.sort(key=MeldCandidate.priority)
    return candidates


@dataclass(frozen=True, slots=True)
class _Arena:
    """Immutable index of the hand used by the search."""

    kind_masks: dict[CardKind, int]
    values: tuple[int, ...]
    points: tuple[int, ...]

    @classmethod
    def build(cls, hand: Sequence[CardKind]) -> "_Arena":
        kind_masks: dict[CardKind, int] = defaultdict(int)
        for idx, kind in enumerate(hand):
            kind_masks[kind] |= encoding.bit(idx)
        # A joker is worth nothing in hand but up to a face card inside a meld.
        points = tuple(0 if kind is None else encoding.rank_points(kind[0]) for kind in hand)
        values = tuple(encoding.MAX_CARD_POINTS if kind is None else pts for kind, pts in zip(hand, points))
        return cls(dict(kind_masks), values, points)

    def allocate(self, candidate: MeldCandidate, free: int) -> tuple[int, tuple[int, ...]] | None:
        """Pick the lowest free card of each slot's kind, or ``None`` if one is missing."""

        taken = 0
        picks: list[int] = []
        for slot in candidate.slots:
            pool = self.kind_masks.get(slot, 0) & free & ~taken
            if not pool:
                return None
            low = pool & -pool
            taken |= low
            picks.append(low.bit_length() - 1)
        return taken, tuple(picks)

    def potential(self, mask: int) -> int:
        return sum(self.values[idx] for idx in encoding.iter_indices(mask))

    def deadwood(self, mask: int) -> int:
        return sum(self.points[idx] for idx in encoding.iter_indices(mask))

    def usable_mask(self, candidate: MeldCandidate) -> int:
        mask = 0
        for slot in candidate.slots:
            mask |= self.kind_masks.get(slot, 0)
        return mask


@dataclass(frozen=True, slots=True)
class _Partition:
    """Search result over hand positions, independent of card identity."""

    choice: tuple[tuple[MeldKind, tuple[int, ...]], ...]
    free: int
    score: int
    deadwood: int
    truncated: bool


def solve_hand(cards: Sequence[Card], *, max_nodes: int = DEFAULT_MAX_NODES) -> HandSolution:
    """Return the highest scoring partition of ``cards`` into disjoint legal melds.

    Ties on score go to the partition leaving the least deadwood, then to the
    first one found. The result depends only on the faces of the cards and
    their order. When ``max_nodes`` search nodes are exhausted the best
    partition found so far is returned with ``truncated`` set.
    """

    if max_nodes <= 0:
        raise ValueError("max_nodes must be positive")
    cards = tuple(cards)
    partition = _search(tuple(_kind_of(card) for card in cards), max_nodes)

    melds: list[Meld] = []
    for kind, picks in partition.choice:
        ordered = [cards[idx] for idx in picks]
        if classify(ordered) is not kind:
            raise AssertionError(f"solver produced an illegal {kind.value}")
        melds.append(Meld(kind=kind, cards=tuple(ordered)))
    return HandSolution(
        melds=tuple(melds),
        remaining=tuple(cards[idx] for idx in encoding.iter_indices(partition.free)),
        total_score=partition.score,
        deadwood=partition.deadwood,
        truncated=partition.truncated,
    )


@lru_cache(maxsize=4096)
def _search(hand: tuple[CardKind, ...], max_nodes: int) -> _Partition:
    arena = _Arena.build(hand)
    full = (1 << len(hand)) - 1
    candidates = _candidates_for(hand)

    # suffix[i] holds every card some candidate at or after i could use.
    suffix = [0] * (len(candidates) + 1)
    for idx in range(len(candidates) - 1, -1, -1):
        suffix[idx] = suffix[idx + 1] | arena.usable_mask(candidates[idx])

    best_score = 0
    best_deadwood = arena.deadwood(full)
    best_choice: tuple[tuple[MeldKind, tuple[int, ...]], ...] = ()
    best_free = full
    nodes = 0
    truncated = False

    def search(start: int, free: int, score: int, chosen: tuple) -> None:
        nonlocal best_score, best_deadwood, best_choice, best_free, nodes, truncated
        nodes += 1
        if nodes > max_nodes:
            truncated = True
            return
        if score > best_score or (score == best_score and score > 0 and arena.deadwood(free) < best_deadwood):
            best_score = score
            best_deadwood = arena.deadwood(free)
            best_choice = chosen
            best_free = free
        if start >= len(candidates):
            return
        if score + arena.potential(free & suffix[start]) < best_score:
            return
        for idx in range(start, len(candidates)):
            if truncated:
                return
            if score + arena.potential(free & suffix[idx]) < best_score:
                return
            allocation = arena.allocate(candidates[idx], free)
            if allocation is None:
                continue
            taken, picks = allocation
            # Stay on idx: a second deck can hold the same meld twice.
            search(
                idx,
                free & ~taken,
                score + candidates[idx].score,
                chosen + ((candidates[idx].kind, picks),),
            )

    search(0, full, 0, ())
    return _Partition(
        choice=best_choice,
        free=best_free,
        score=best_score,
        deadwood=arena.deadwood(best_free),
        truncated=truncated,
    )
