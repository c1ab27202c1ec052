"""Card abstractions and helpers for Remi."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Iterator

from . import encoding

__all__ = [
    "Suit",
    "STANDARD_SUITS",
    "Card",
    "iter_full_deck",
    "deck_size",
    "parse_card",
    "parse_cards",
]


class Suit(str, Enum):
    """Card suits; the two joker colours are tags only and carry no suit rules."""

    HEARTS = "H"
    DIAMONDS = "D"
    SPADES = "S"
    CLUBS = "C"
    JOKER_RED = "JR"
    JOKER_BLACK = "JB"

    @property
    def is_joker(self) -> bool:
        return self in (Suit.JOKER_RED, Suit.JOKER_BLACK)

    @property
    def order(self) -> int:
        """Position used when suit-ordering a set."""

        return _SUIT_ORDER[self]


STANDARD_SUITS: tuple[Suit, ...] = (Suit.HEARTS, Suit.DIAMONDS, Suit.SPADES, Suit.CLUBS)
_SUIT_ORDER = {suit: idx for idx, suit in enumerate(Suit)}
_JOKER_CODES = {"JKR": Suit.JOKER_RED, "JKB": Suit.JOKER_BLACK}


@dataclass(frozen=True, slots=True)
class Card:
    """Value object describing one physical card.

    Identity is the ``uid`` alone: two copies of the same face from different
    decks compare unequal, and turning a card over yields an equal card.
    """

    uid: int
    rank: int = field(compare=False)
    suit: Suit = field(compare=False)
    face_up: bool = field(default=True, compare=False)

    @property
    def is_joker(self) -> bool:
        """Return ``True`` when the card is a joker."""

        return self.suit.is_joker

    @property
    def points(self) -> int:
        """Intrinsic point value; jokers carry none outside a meld."""

        if self.is_joker:
            return 0
        return encoding.rank_points(self.rank)

    def turned(self, face_up: bool) -> "Card":
        """Return this card with the requested orientation."""

        if self.face_up == face_up:
            return self
        return replace(self, face_up=face_up)

    def label(self) -> str:
        """Create a display label suitable for logs and CLI output."""

        if self.is_joker:
            return "JK" + ("R" if self.suit == Suit.JOKER_RED else "B")
        return f"{encoding.rank_label(self.rank)}{self.suit.value}"

    def __str__(self) -> str:
        return self.label()


def iter_full_deck(num_decks: int = 2, *, start_uid: int = 0) -> Iterator[Card]:
    """Yield every physical card of ``num_decks`` shuffled-together decks, face down."""

    if num_decks <= 0:
        raise ValueError("num_decks must be positive")
    uid = start_uid
    for _ in range(num_decks):
        for suit in STANDARD_SUITS:
            for rank in range(1, encoding.CARDS_PER_SUIT + 1):
                yield Card(uid=uid, rank=rank, suit=suit, face_up=False)
                uid += 1
        for suit in (Suit.JOKER_RED, Suit.JOKER_BLACK):
            yield Card(uid=uid, rank=encoding.JOKER_RANK, suit=suit, face_up=False)
            uid += 1


def deck_size(num_decks: int) -> int:
    """Return the number of cards in ``num_decks`` decks including jokers."""

    per_deck = encoding.CARDS_PER_SUIT * len(STANDARD_SUITS) + encoding.JOKERS_PER_DECK
    return per_deck * num_decks


def parse_card(code: str, uid: int) -> Card:
    """Build a face-up card from a short code such as ``"10H"``, ``"AS"`` or ``"JKR"``."""

    text = code.strip().upper()
    if text in _JOKER_CODES:
        return Card(uid=uid, rank=encoding.JOKER_RANK, suit=_JOKER_CODES[text])
    if len(text) < 2:
        raise ValueError(f"invalid card code '{code}'")
    try:
        suit = Suit(text[-1])
    except ValueError:
        raise ValueError(f"invalid suit in card code '{code}'") from None
    return Card(uid=uid, rank=encoding.parse_rank(text[:-1]), suit=suit)


def parse_cards(codes: str | Iterable[str], *, start_uid: int = 0) -> list[Card]:
    """Parse whitespace-separated card codes, numbering uids from ``start_uid``."""

    if isinstance(codes, str):
        codes = codes.split()
    return [parse_card(code, start_uid + offset) for offset, code in enumerate(codes)]
