"""Composable view primitives for the Remi CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Set

from rich import box
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table

from ..cards import Card
from ..engine import GameStateView
from ..state import TableMeld


@dataclass(slots=True)
class StateSummaryView:
    """Renderable summarising the table: piles, hands and laid melds."""

    view: GameStateView
    hands: Sequence[Sequence[Card]]
    melds: Sequence[Sequence[TableMeld]]
    roles: Sequence[str]
    reveal_players: Set[int]
    card_formatter: Callable[[Card], str]

    def _cards_markup(self, cards: Sequence[Card]) -> str:
        if not cards:
            return "-"
        return " ".join(self.card_formatter(card) for card in cards)

    def _hand_markup(self, player_index: int) -> str:
        cards = self.hands[player_index]
        if player_index not in self.reveal_players:
            return f"{len(cards)} cards"
        return self._cards_markup(cards)

    def _melds_markup(self, player_index: int) -> str:
        melds = self.melds[player_index]
        if not melds:
            return "-"
        return "\n".join(f"{self._cards_markup(meld.cards)} [dim]({meld.points})[/dim]" for meld in melds)

    def _metadata_panel(self) -> Panel:
        view = self.view
        grid = Table.grid(expand=True)
        grid.add_column(justify="left")
        grid.add_row(f"[cyan]Turn[/cyan]: {view.turn_index}")
        grid.add_row(f"[cyan]Phase[/cyan]: {view.phase.value}")
        grid.add_row(f"[cyan]Draw pile[/cyan]: {view.draw_pile_size} card(s)")
        if view.top_discard is not None:
            top = self.card_formatter(view.top_discard)
            grid.add_row(f"[cyan]Discard[/cyan]: {top} ({view.discard_pile_size} card(s))")
        else:
            grid.add_row("[cyan]Discard[/cyan]: -")
        grid.add_row(f"[cyan]Opening[/cyan]: {view.opening_threshold} points")
        return Panel(grid, title="Table State", box=box.SQUARE, border_style="blue")

    def render(self) -> RenderableType:
        view = self.view
        table = Table(box=box.ROUNDED, expand=True)
        table.add_column("Player", justify="left", style="bold")
        table.add_column("Role", justify="left")
        table.add_column("Hand", justify="left")
        table.add_column("Melds", justify="left")
        table.add_column("Status", justify="left")

        for idx in range(view.num_players):
            if view.winner == idx:
                status = "[bold green]Winner[/bold green]"
            elif view.has_opened[idx]:
                status = "[green]Opened[/green]"
            else:
                status = "[dim]Closed[/dim]"
            if idx == view.current_player and not view.is_over:
                status += " [yellow]*[/yellow]"
            role = self.roles[idx] if idx < len(self.roles) else "AI"
            table.add_row(f"P{idx}", role, self._hand_markup(idx), self._melds_markup(idx), status)

        return Group(self._metadata_panel(), table)
