"""Threat evaluation helpers used by the AI discard heuristics."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from . import rules
from .cards import Card
from .state import TableMeld

if TYPE_CHECKING:
    from .engine import Engine

__all__ = ["extension_targets", "card_enables_extension", "discard_feeds_next_player"]


def extension_targets(table: Sequence[TableMeld], card: Card) -> list[tuple[int, int, rules.Extension]]:
    """Return ``(owner, meld_index, extension)`` for every table meld ``card`` can join."""

    targets: list[tuple[int, int, rules.Extension]] = []
    per_owner: dict[int, int] = {}
    for meld in table:
        meld_index = per_owner.get(meld.owner, 0)
        per_owner[meld.owner] = meld_index + 1
        extension = rules.plan_extension(meld.cards, card)
        if extension is not None:
            targets.append((meld.owner, meld_index, extension))
    return targets


def card_enables_extension(engine: "Engine", player_index: int, card: Card) -> bool:
    """Return ``True`` if ``player_index`` could put ``card`` on the table right away."""

    state = engine.get_state()
    if not 0 <= player_index < state.num_players:
        return False
    if not state.has_opened[player_index]:
        return False
    return bool(extension_targets(engine.table_melds(), card))


def discard_feeds_next_player(engine: "Engine", actor_index: int, card: Card) -> bool:
    """Return ``True`` when discarding ``card`` hands the next player a table play."""

    num_players = engine.get_state().num_players
    return card_enables_extension(engine, (actor_index + 1) % num_players, card)
