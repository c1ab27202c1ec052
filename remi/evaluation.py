"""Hand evaluation helpers for the heuristic AI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence

from . import encoding
from .cards import Card
from .solver import HandSolution, solve_hand

__all__ = ["CardMetrics", "rank_distance", "synergy", "future_potential", "analyze_hand"]

JOKER_SYNERGY = 40


def rank_distance(first: int, second: int) -> int:
    """Return the closest distance between two natural ranks, aces counted at both ends."""

    return min(
        abs(left - right)
        for left in encoding.rank_options(first)
        for right in encoding.rank_options(second)
    )


def synergy(card: Card, hand: Sequence[Card]) -> int:
    """Score how well ``card`` combines with the rest of ``hand``.

    Each other card of the same rank adds 8; each card of the same suit adds
    10, 5 or 2 at a rank distance of 1, 2 or 3.
    """

    if card.is_joker:
        return JOKER_SYNERGY
    total = 0
    for other in hand:
        if other.is_joker or other == card:
            continue
        if other.rank == card.rank and other.suit != card.suit:
            total += 8
        elif other.suit == card.suit:
            distance = rank_distance(card.rank, other.rank)
            total += {1: 10, 2: 5, 3: 2}.get(distance, 0)
    return total


def future_potential(card: Card, hand: Sequence[Card]) -> int:
    """Rough chance that ``card`` ends up in a meld with more draws."""

    if card.is_joker:
        return JOKER_SYNERGY
    potential = 0
    for other in hand:
        if other == card:
            continue
        if other.is_joker:
            potential += 2
        elif other.rank == card.rank:
            potential += 3
        elif other.suit == card.suit:
            distance = rank_distance(card.rank, other.rank)
            if distance <= 3:
                potential += 4 - distance
    return potential


@dataclass(slots=True)
class CardMetrics:
    """Structural signals for a single card in a hand."""

    card: Card
    points: int
    in_best_cover: bool
    cover_points_drop: int
    synergy: int
    potential: int

    def keep_value(self, *, synergy_weight: float = 1.0, potential_weight: float = 1.0) -> float:
        """Return a scalar that grows with the desire to keep the card."""

        value = 0.0
        if self.in_best_cover:
            value += 12.0
        value += self.cover_points_drop * 1.2
        value += self.synergy * synergy_weight * 0.5
        value += self.potential * potential_weight
        value -= self.points
        return value


def analyze_hand(hand: Sequence[Card], *, baseline: HandSolution | None = None) -> Dict[Card, CardMetrics]:
    """Return metrics for every card in ``hand``."""

    if baseline is None:
        baseline = solve_hand(hand)
    covered = set(baseline.melded_cards)
    metrics: Dict[Card, CardMetrics] = {}
    for card in hand:
        if card in covered:
            without = solve_hand([other for other in hand if other != card])
            drop = max(0, baseline.total_score - without.total_score)
        else:
            drop = 0
        metrics[card] = CardMetrics(
            card=card,
            points=card.points,
            in_best_cover=card in covered,
            cover_points_drop=drop,
            synergy=synergy(card, hand),
            potential=future_potential(card, hand),
        )
    return metrics
