"""Rank tables, point values and bit-mask helpers for Remi."""

from __future__ import annotations

from typing import Final, Iterable, Iterator

ACE: Final[int] = 1
ACE_HIGH: Final[int] = 14
JOKER_RANK: Final[int] = 14
RANK_LABELS: Final[dict[int, str]] = {
    1: "A",
    2: "2",
    3: "3",
    4: "4",
    5: "5",
    6: "6",
    7: "7",
    8: "8",
    9: "9",
    10: "10",
    11: "J",
    12: "Q",
    13: "K",
}
LABEL_TO_RANK: Final[dict[str, int]] = {label: rank for rank, label in RANK_LABELS.items()}
# Indexed by positional rank 0..14; slot 0 is never a legal rank.
POINTS: Final[list[int]] = [0, 10] + list(range(2, 11)) + [10, 10, 10, 10]
MAX_CARD_POINTS: Final[int] = 10
CARDS_PER_SUIT: Final[int] = 13
JOKERS_PER_DECK: Final[int] = 2


def rank_points(rank: int) -> int:
    """Return the point value of a positional rank (1..14, ace counted at both ends)."""

    if not ACE <= rank <= ACE_HIGH:
        raise ValueError(f"rank {rank} out of range")
    return POINTS[rank]


def rank_label(rank: int) -> str:
    """Return the short label for a natural rank, treating 14 as a high ace."""

    if rank == ACE_HIGH:
        return RANK_LABELS[ACE]
    return RANK_LABELS[rank]


def parse_rank(label: str) -> int:
    """Return the natural rank for ``label`` (``"A"``, ``"2"`` .. ``"K"``)."""

    try:
        return LABEL_TO_RANK[label.upper()]
    except KeyError:
        raise ValueError(f"unknown rank label '{label}'") from None


def matches_rank(natural_rank: int, positional_rank: int) -> bool:
    """Return ``True`` when a card of ``natural_rank`` may sit at ``positional_rank``."""

    if natural_rank == positional_rank:
        return True
    return natural_rank == ACE and positional_rank == ACE_HIGH


def rank_options(natural_rank: int) -> tuple[int, ...]:
    """Return the positional ranks a card may represent inside a run."""

    if natural_rank == ACE:
        return (ACE, ACE_HIGH)
    return (natural_rank,)


def bit(index: int) -> int:
    """Return the single-bit mask for ``index``."""

    if index < 0:
        raise ValueError("index must be non-negative")
    return 1 << index


def mask_from_indices(indices: Iterable[int]) -> int:
    """Return a bit-mask with one bit set per index."""

    mask = 0
    for index in indices:
        mask |= bit(index)
    return mask


def iter_indices(mask: int) -> Iterator[int]:
    """Yield the set bit positions of ``mask`` in ascending order."""

    while mask:
        low = mask & -mask
        yield low.bit_length() - 1
        mask ^= low


def lowest_index(mask: int) -> int:
    """Return the position of the lowest set bit, or ``-1`` for an empty mask."""

    if not mask:
        return -1
    return (mask & -mask).bit_length() - 1


def has_index(mask: int, index: int) -> bool:
    """Return ``True`` if ``mask`` includes ``index``."""

    if index < 0:
        return False
    return (mask >> index) & 1 == 1


def count(mask: int) -> int:
    """Return the number of set bits in ``mask``."""

    return bin(mask).count("1")
