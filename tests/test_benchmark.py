from __future__ import annotations

import pytest

from remi import benchmark
from remi.ai import AIPolicy, AIStrategy, Difficulty
from remi.engine import Engine
from remi.state import GameConfig


def test_head_to_head_runs_and_records_every_game() -> None:
    report = benchmark.run_head_to_head(
        2,
        AIPolicy.for_difficulty(Difficulty.EASY),
        AIPolicy.for_difficulty(Difficulty.MEDIUM),
        seed=3,
        turn_limit=30,
    )

    assert len(report.history.games) == 2
    assert report.baseline.wins + report.challenger.wins + report.stalled == 2
    assert report.baseline.net_points == report.baseline.laid_points - report.baseline.deadwood_points
    assert report.challenger.net_std >= 0.0
    for game in report.history.games:
        assert 0 < game.turns <= 30


@pytest.mark.parametrize(
    ("games", "config"),
    [
        (0, None),
        (1, GameConfig(num_players=3)),
    ],
)
def test_head_to_head_rejects_bad_arguments(games: int, config: GameConfig | None) -> None:
    with pytest.raises(ValueError):
        benchmark.run_head_to_head(games, AIPolicy(), AIPolicy(), config=config)


def test_play_game_needs_one_strategy_per_seat() -> None:
    engine = Engine(seed=1)
    engine.new_game()

    with pytest.raises(ValueError):
        benchmark.play_game(engine, [AIStrategy()])


def test_play_game_stops_at_turn_limit() -> None:
    engine = Engine(seed=9)
    strategies = [AIStrategy.for_difficulty(Difficulty.MEDIUM, seed=idx) for idx in range(2)]
    engine.new_game()

    summary = benchmark.play_game(engine, strategies, game_number=4, turn_limit=3)

    assert summary.game_number == 4
    assert summary.turns <= 3
    if summary.winner_index is None:
        assert summary.turns == 3
        assert not engine.get_state().is_over
    assert len(summary.scores) == 2
