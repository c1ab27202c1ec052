"""Draw and discard piles built from a shuffled multi-deck pool."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .cards import Card, iter_full_deck

__all__ = ["Deck", "make_rng", "shuffled"]


def make_rng(seed: int | None = None) -> np.random.Generator:
    """Return the random generator used for every shuffle in a game."""

    return np.random.default_rng(seed)


def shuffled(cards: Sequence[Card], rng: np.random.Generator) -> list[Card]:
    """Return ``cards`` in a random order drawn from ``rng``."""

    order = rng.permutation(len(cards))
    return [cards[int(idx)] for idx in order]


@dataclass(slots=True)
class Deck:
    """Face-down draw pile plus face-up discard pile; the top of each is the last element."""

    draw_pile: list[Card]
    discard_pile: list[Card] = field(default_factory=list)

    @classmethod
    def fresh(cls, num_decks: int, rng: np.random.Generator) -> "Deck":
        """Return a shuffled deck of ``num_decks`` standard decks with jokers."""

        return cls(draw_pile=shuffled(list(iter_full_deck(num_decks)), rng))

    def __len__(self) -> int:
        return len(self.draw_pile) + len(self.discard_pile)

    @property
    def top_discard(self) -> Card | None:
        """Return the visible discard, if any."""

        return self.discard_pile[-1] if self.discard_pile else None

    def draw(self) -> Card | None:
        """Remove and return the top draw-pile card turned face up."""

        if not self.draw_pile:
            return None
        return self.draw_pile.pop().turned(True)

    def take_discard(self) -> Card | None:
        """Remove and return the top discard."""

        if not self.discard_pile:
            return None
        return self.discard_pile.pop()

    def discard(self, card: Card) -> None:
        """Place ``card`` face up on the discard pile."""

        self.discard_pile.append(card.turned(True))

    def reshuffle_discard(self, rng: np.random.Generator) -> int:
        """Turn the whole discard pile over into a new draw pile.

        Only legal once the draw pile is exhausted. Returns the new draw pile
        size, which is zero when there was nothing to reshuffle.
        """

        if self.draw_pile:
            raise RuntimeError("draw pile is not empty")
        flipped = [card.turned(False) for card in self.discard_pile]
        self.discard_pile.clear()
        self.draw_pile = shuffled(flipped, rng)
        return len(self.draw_pile)

    def copy(self) -> "Deck":
        """Return a copy whose pile lists are independent of this deck."""

        return Deck(draw_pile=list(self.draw_pile), discard_pile=list(self.discard_pile))
