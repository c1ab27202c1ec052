"""Match bookkeeping across several Remi games.

A game that hits the turn cap (or in which nobody can draw any more) is
recorded without a winner and counted as stalled. Totals are kept per seat,
so benchmarks that swap seats between games map seats back to agents
themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .rules import PlayerScore

__all__ = ["GameSummary", "PlayerMatchTotal", "MatchHistory"]


@dataclass(frozen=True, slots=True)
class GameSummary:
    """Result of one finished (or abandoned) game; ``winner_index`` is ``None`` for a stalled game."""

    game_number: int
    winner_index: int | None
    scores: Sequence[PlayerScore]
    turns: int = 0

    @property
    def stalled(self) -> bool:
        return self.winner_index is None


@dataclass(frozen=True, slots=True)
class PlayerMatchTotal:
    """Totals for one seat over every recorded game."""

    player_index: int
    wins: int
    laid_points: int
    deadwood_points: int
    net_points: int
    games: int = 0

    @property
    def win_rate(self) -> float:
        return self.wins / self.games if self.games else 0.0


@dataclass(slots=True)
class _SeatTally:
    wins: int = 0
    laid: int = 0
    deadwood: int = 0
    net: int = 0

    def add(self, score: PlayerScore) -> None:
        self.laid += score.laid_points
        self.deadwood += score.deadwood_points
        self.net += score.net_points
        if score.won:
            self.wins += 1


@dataclass(slots=True)
class MatchHistory:
    """Running record of a match between a fixed number of seats."""

    num_players: int
    games: list[GameSummary] = field(default_factory=list)
    _tallies: list[_SeatTally] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.num_players <= 0:
            raise ValueError("num_players must be positive")
        self._tallies = [_SeatTally() for _ in range(self.num_players)]

    def _check(self, summary: GameSummary) -> None:
        if len(summary.scores) != self.num_players:
            raise ValueError("score count does not match number of players")
        if summary.winner_index is not None and not 0 <= summary.winner_index < self.num_players:
            raise ValueError("winner index out of range")
        seats = sorted(score.player_index for score in summary.scores)
        if seats != list(range(self.num_players)):
            raise ValueError("scores must cover every seat exactly once")
        flagged = [score.player_index for score in summary.scores if score.won]
        expected = [] if summary.winner_index is None else [summary.winner_index]
        if flagged != expected:
            raise ValueError("winner flags disagree with winner index")
        if any(game.game_number == summary.game_number for game in self.games):
            raise ValueError(f"game {summary.game_number} already recorded")

    def record(self, summary: GameSummary) -> None:
        """Validate ``summary`` and add it to the running totals.

        A rejected summary leaves the history untouched.
        """

        self._check(summary)
        self.games.append(summary)
        for score in summary.scores:
            self._tallies[score.player_index].add(score)

    @property
    def stalled_games(self) -> int:
        return sum(1 for game in self.games if game.stalled)

    @property
    def mean_turns(self) -> float:
        if not self.games:
            return 0.0
        return sum(game.turns for game in self.games) / len(self.games)

    def totals(self) -> list[PlayerMatchTotal]:
        """Return the cumulative totals for each player in seating order."""

        played = len(self.games)
        return [
            PlayerMatchTotal(
                player_index=idx,
                wins=tally.wins,
                laid_points=tally.laid,
                deadwood_points=tally.deadwood,
                net_points=tally.net,
                games=played,
            )
            for idx, tally in enumerate(self._tallies)
        ]

    def standings(self) -> list[PlayerMatchTotal]:
        # Most wins first, then best net score, then seat order.
        return sorted(self.totals(), key=lambda total: (-total.wins, -total.net_points, total.player_index))
