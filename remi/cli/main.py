"""Typer entry-point wiring for the Remi CLI."""

from __future__ import annotations

import logging

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .. import benchmark
from ..ai import AIPolicy, AIStrategy, Difficulty
from ..cards import parse_cards
from ..engine import Engine
from ..events import GameEvent
from ..solver import solve_hand
from ..state import GameConfig
from .render import describe_event, format_card, format_cards, render_state

app = typer.Typer(add_completion=False, rich_markup_mode="rich")
console = Console()
logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _scores_table(engine: Engine) -> Table:
    table = Table(title="Final Scores", box=box.SIMPLE_HEAVY)
    table.add_column("Player", justify="center")
    table.add_column("Laid", justify="right")
    table.add_column("Deadwood", justify="right")
    table.add_column("Net", justify="right")
    for entry in engine.final_scores():
        label = f"P{entry.player_index}"
        if entry.won:
            label = f"[bold green]{label}[/bold green]"
        table.add_row(label, str(entry.laid_points), str(entry.deadwood_points), str(entry.net_points))
    return table


@app.command()
def watch(
    players: int = typer.Option(2, min=2, max=6, help="Number of seated AI players."),
    decks: int = typer.Option(2, min=1, help="Number of 54-card decks in the shoe."),
    seed: int | None = typer.Option(None, help="Random seed for reproducible games (omit for randomness)."),
    difficulty: Difficulty = typer.Option(Difficulty.MEDIUM, case_sensitive=False, help="Preset used by every seat."),
    turn_limit: int = typer.Option(benchmark.DEFAULT_TURN_LIMIT, min=1, help="Abandon the game after this many turns."),
    quiet: bool = typer.Option(False, "--quiet", help="Only show the final table."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine and AI decisions."),
) -> None:
    """Watch computer players play one game against each other."""

    _configure_logging(verbose)
    try:
        config = GameConfig(num_players=players, num_decks=decks)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    logger.debug("watching a %d-player %s game, seed %s", players, difficulty.value, seed)
    engine = Engine(config, seed=seed)
    strategies = []
    for idx in range(players):
        strategy = AIStrategy.for_difficulty(difficulty, seed=None if seed is None else seed + idx)
        strategy.attach(engine)
        strategies.append(strategy)

    def _print_event(event: GameEvent) -> None:
        message = describe_event(event)
        if message is not None:
            console.print(message)

    if not quiet:
        engine.subscribe(_print_event)
    engine.new_game()

    summary = benchmark.play_game(engine, strategies, turn_limit=turn_limit)
    roles = [f"AI ({difficulty.value})"] * players
    console.print(render_state(engine, roles, reveal_players=range(players), title="Final Table"))
    console.print(_scores_table(engine))
    if summary.winner_index is None:
        console.print(f"[yellow]No winner after {summary.turns} turn(s).[/yellow]")
    else:
        console.print(f"[cyan]P{summary.winner_index} won in {summary.turns} turn(s).[/cyan]")


@app.command("benchmark")
def benchmark_cli(
    games: int = typer.Option(10, min=1, help="Number of head-to-head games."),
    baseline: Difficulty = typer.Option(Difficulty.EASY, case_sensitive=False, help="Preset for the baseline agent."),
    challenger: Difficulty = typer.Option(Difficulty.HARD, case_sensitive=False, help="Preset for the challenger."),
    seed: int = typer.Option(123, help="Random seed for the benchmark."),
    turn_limit: int = typer.Option(benchmark.DEFAULT_TURN_LIMIT, min=1, help="Abandon a game after this many turns."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine and AI decisions."),
) -> None:
    """Run a baseline vs. challenger benchmark."""

    _configure_logging(verbose)
    report = benchmark.run_head_to_head(
        games,
        AIPolicy.for_difficulty(baseline),
        AIPolicy.for_difficulty(challenger),
        seed=seed,
        turn_limit=turn_limit,
    )

    table = Table(title="Head-to-Head Benchmark", box=box.SIMPLE_HEAVY)
    table.add_column("Agent", justify="center")
    table.add_column("Wins", justify="right")
    table.add_column("Laid", justify="right")
    table.add_column("Deadwood", justify="right")
    table.add_column("Net", justify="right")
    table.add_column("Mean net", justify="right")
    table.add_column("Std", justify="right")
    for label, stats in ((f"Baseline ({baseline.value})", report.baseline), (f"Challenger ({challenger.value})", report.challenger)):
        table.add_row(
            label,
            str(stats.wins),
            str(stats.laid_points),
            str(stats.deadwood_points),
            str(stats.net_points),
            f"{stats.mean_net:.1f}",
            f"{stats.net_std:.1f}",
        )

    console.print(table)
    console.print(f"[cyan]{len(report.history.games)} game(s) simulated.[/cyan]")
    console.print(f"Average length: {report.history.mean_turns:.1f} turns")
    if report.stalled:
        console.print(f"[yellow]{report.stalled} game(s) ended without a winner.[/yellow]")


@app.command()
def solve(
    cards: list[str] = typer.Argument(..., help="Card codes such as 5H 5D JKR 10S AS."),
    max_nodes: int = typer.Option(250_000, min=1, help="Search budget for the solver."),
) -> None:
    """Show the best meld partition of a hand."""

    try:
        hand = parse_cards(cards)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    solution = solve_hand(hand, max_nodes=max_nodes)
    table = Table(title="Best Melds", box=box.SIMPLE_HEAVY)
    table.add_column("Kind", justify="center")
    table.add_column("Cards", justify="left")
    table.add_column("Points", justify="right")
    for meld in solution.melds:
        table.add_row(meld.kind.value, format_cards(meld.cards), str(meld.score))
    console.print(table)

    leftover = " ".join(format_card(card) for card in solution.remaining) or "-"
    console.print(f"Remaining: {leftover}")
    console.print(f"[cyan]Meld points[/cyan]: {solution.total_score}  [cyan]Deadwood[/cyan]: {solution.deadwood}")
    if solution.truncated:
        console.print("[yellow]Search budget exhausted; result may not be optimal.[/yellow]")


def main() -> None:
    """Entry-point for ``python -m remi.cli.main`` and the ``remi`` script."""

    app()


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    main()
