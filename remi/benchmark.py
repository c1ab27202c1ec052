"""Self-play harness for comparing AI policies."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from . import scoreboard
from .ai import AIPolicy, AIStrategy, OpponentModel
from .engine import Engine
from .state import GameConfig

__all__ = ["AgentBreakdown", "HeadToHeadReport", "play_game", "run_head_to_head", "DEFAULT_TURN_LIMIT"]

logger = logging.getLogger(__name__)

DEFAULT_TURN_LIMIT = 400


@dataclass(frozen=True, slots=True)
class AgentBreakdown:
    """Aggregate statistics collected for a single policy across a benchmark."""

    wins: int
    laid_points: int
    deadwood_points: int
    net_points: int
    mean_net: float
    net_std: float


@dataclass(frozen=True, slots=True)
class HeadToHeadReport:
    """Summary of a head-to-head benchmark between two policies."""

    history: scoreboard.MatchHistory
    baseline: AgentBreakdown
    challenger: AgentBreakdown

    @property
    def stalled(self) -> int:
        return self.history.stalled_games


def play_game(
    engine: Engine,
    strategies: Sequence[AIStrategy],
    *,
    game_number: int = 1,
    turn_limit: int = DEFAULT_TURN_LIMIT,
) -> scoreboard.GameSummary:
    """Play a started game to the end with one strategy per seat.

    A game that hits ``turn_limit`` or in which a player can no longer draw
    is recorded without a winner.
    """

    state = engine.get_state()
    if len(strategies) != state.num_players:
        raise ValueError("need exactly one strategy per player")
    turns = 0
    while not state.is_over and turns < turn_limit:
        report = strategies[state.current_player].take_turn(engine, state.current_player)
        turns += 1
        if report.discarded is None:
            logger.info("game %d stalled on turn %d", game_number, turns)
            break
        state = engine.get_state()
    state = engine.get_state()
    return scoreboard.GameSummary(
        game_number=game_number,
        winner_index=state.winner,
        scores=engine.final_scores(),
        turns=turns,
    )


def _breakdown(nets: list[int], wins: int, laid: int, deadwood: int) -> AgentBreakdown:
    values = np.asarray(nets, dtype=np.float64)
    return AgentBreakdown(
        wins=wins,
        laid_points=laid,
        deadwood_points=deadwood,
        net_points=int(values.sum()),
        mean_net=float(values.mean()) if values.size else 0.0,
        net_std=float(values.std()) if values.size else 0.0,
    )


def run_head_to_head(
    games: int,
    baseline: AIPolicy,
    challenger: AIPolicy,
    *,
    seed: int = 123,
    config: GameConfig | None = None,
    turn_limit: int = DEFAULT_TURN_LIMIT,
) -> HeadToHeadReport:
    """Run a two-player benchmark, alternating seats, and return aggregate statistics."""

    if games <= 0:
        raise ValueError("games must be positive")
    config = config or GameConfig(num_players=2)
    if config.num_players != 2:
        raise ValueError("head-to-head benchmarks need exactly two players")

    rng = random.Random(seed)
    history = scoreboard.MatchHistory(num_players=2)
    stats = {label: {"nets": [], "wins": 0, "laid": 0, "deadwood": 0} for label in ("baseline", "challenger")}

    for game_number in range(1, games + 1):
        if game_number % 2 == 1:
            seats = [("baseline", baseline), ("challenger", challenger)]
        else:
            seats = [("challenger", challenger), ("baseline", baseline)]

        engine = Engine(config, seed=rng.randrange(2**32))
        strategies = []
        for _, policy in seats:
            model = OpponentModel() if policy.defensive or policy.opponent_weight > 0 else None
            strategy = AIStrategy(policy, opponent_model=model, rng=random.Random(rng.randrange(2**32)))
            strategy.attach(engine)
            strategies.append(strategy)
        engine.new_game()

        summary = play_game(engine, strategies, game_number=game_number, turn_limit=turn_limit)
        history.record(summary)
        for entry in summary.scores:
            bucket = stats[seats[entry.player_index][0]]
            bucket["nets"].append(entry.net_points)
            bucket["laid"] += entry.laid_points
            bucket["deadwood"] += entry.deadwood_points
            if entry.won:
                bucket["wins"] += 1

    logger.info("benchmark finished: %d games, %d stalled", games, history.stalled_games)
    return HeadToHeadReport(
        history=history,
        baseline=_breakdown(**stats["baseline"]),
        challenger=_breakdown(**stats["challenger"]),
    )
