"""Rendering helpers dedicated to the CLI experience."""

from __future__ import annotations

from typing import Iterable, Sequence

from rich.console import RenderableType
from rich.panel import Panel

from ..cards import Card, Suit
from ..engine import Engine
from ..events import (
    CardAddedToMeld,
    CardDiscarded,
    CardDrawnFromDeck,
    CardDrawnFromDiscard,
    DrawPileShuffled,
    GameEvent,
    GameOver,
    GameStarted,
    MeldsLaidDown,
)
from .views import StateSummaryView

_SUIT_SYMBOLS = {
    Suit.SPADES: ("♠", "cyan"),
    Suit.HEARTS: ("♥", "red"),
    Suit.DIAMONDS: ("♦", "magenta"),
    Suit.CLUBS: ("♣", "green"),
}


def format_card(card: Card) -> str:
    """Return a Rich-rendered label for ``card``."""

    if card.is_joker:
        color = "red" if card.suit is Suit.JOKER_RED else "white"
        return f"[bold {color}]JK[/bold {color}]"
    symbol, color = _SUIT_SYMBOLS[card.suit]
    return f"[{color}]{card.label()[:-1]}{symbol}[/{color}]"


def format_cards(cards: Iterable[Card]) -> str:
    return " ".join(format_card(card) for card in cards)


def describe_event(event: GameEvent) -> str | None:
    """Return a one-line log entry for ``event``, or ``None`` for bookkeeping events."""

    if isinstance(event, GameStarted):
        return f"[bold]Game started[/bold] with {event.num_players} players"
    if isinstance(event, CardDrawnFromDeck):
        return f"P{event.player_index} draws from the deck"
    if isinstance(event, CardDrawnFromDiscard):
        return f"P{event.player_index} takes {format_card(event.card)} from the discard pile"
    if isinstance(event, MeldsLaidDown):
        melds = " | ".join(format_cards(meld) for meld in event.melds)
        opened = " and opens" if event.opened else ""
        return f"P{event.player_index} lays {melds} ({event.points} pts){opened}"
    if isinstance(event, CardAddedToMeld):
        entry = f"P{event.player_index} adds {format_card(event.card)} to P{event.meld_owner}'s meld {event.meld_index}"
        if event.replaced_joker is not None:
            entry += " [bold magenta]reclaiming a joker[/bold magenta]"
        return entry
    if isinstance(event, CardDiscarded):
        return f"P{event.player_index} discards {format_card(event.card)}"
    if isinstance(event, DrawPileShuffled):
        return f"[dim]Discards reshuffled into a {event.draw_pile_size}-card draw pile[/dim]"
    if isinstance(event, GameOver):
        return f"[bold green]P{event.winner} goes out[/bold green]"
    return None


def render_state(
    engine: Engine,
    roles: Sequence[str],
    *,
    reveal_players: Iterable[int] | None = None,
    title: str = "Remi",
) -> RenderableType:
    """Return a Rich panel describing the current table state."""

    view = engine.get_state()
    summary = StateSummaryView(
        view=view,
        hands=[engine.get_player_hand(idx) for idx in range(view.num_players)],
        melds=[engine.get_player_melds(idx) for idx in range(view.num_players)],
        roles=roles,
        reveal_players=set(reveal_players or set()),
        card_formatter=format_card,
    )
    return Panel(summary.render(), title=title, padding=(0, 1), border_style="cyan")
