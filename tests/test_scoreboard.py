from __future__ import annotations

import pytest

from remi import scoreboard
from remi.rules import PlayerScore


def _score(player_index: int, laid: int, deadwood: int, won: bool = False) -> PlayerScore:
    return PlayerScore(
        player_index=player_index,
        laid_points=laid,
        deadwood_points=deadwood,
        net_points=laid - deadwood,
        won=won,
    )


def test_match_history_accumulates_totals() -> None:
    history = scoreboard.MatchHistory(num_players=2)
    history.record(
        scoreboard.GameSummary(
            game_number=1,
            winner_index=0,
            scores=[_score(0, laid=100, deadwood=0, won=True), _score(1, laid=40, deadwood=30)],
            turns=20,
        )
    )
    history.record(
        scoreboard.GameSummary(
            game_number=2,
            winner_index=1,
            scores=[_score(0, laid=20, deadwood=15), _score(1, laid=90, deadwood=0, won=True)],
        )
    )

    totals = history.totals()
    assert len(history.games) == 2
    assert [total.wins for total in totals] == [1, 1]
    assert [total.laid_points for total in totals] == [120, 130]
    assert [total.deadwood_points for total in totals] == [15, 30]
    assert [total.net_points for total in totals] == [105, 100]
    assert history.stalled_games == 0


def test_stalled_game_counts_no_winner() -> None:
    history = scoreboard.MatchHistory(num_players=2)
    history.record(
        scoreboard.GameSummary(game_number=1, winner_index=None, scores=[_score(0, 0, 50), _score(1, 30, 20)])
    )

    assert history.stalled_games == 1
    assert [total.wins for total in history.totals()] == [0, 0]


@pytest.mark.parametrize(
    "summary",
    [
        scoreboard.GameSummary(game_number=1, winner_index=0, scores=[_score(0, 10, 0, won=True)]),
        scoreboard.GameSummary(game_number=1, winner_index=2, scores=[_score(0, 10, 0), _score(1, 0, 5)]),
        scoreboard.GameSummary(game_number=1, winner_index=None, scores=[_score(0, 10, 0), _score(4, 0, 5)]),
    ],
)
def test_record_rejects_inconsistent_summary(summary: scoreboard.GameSummary) -> None:
    history = scoreboard.MatchHistory(num_players=2)

    with pytest.raises(ValueError):
        history.record(summary)
    assert history.games == []


def test_record_rejects_winner_flag_mismatch_and_repeated_game() -> None:
    history = scoreboard.MatchHistory(num_players=2)

    with pytest.raises(ValueError):
        history.record(
            scoreboard.GameSummary(game_number=1, winner_index=1, scores=[_score(0, 60, 0, won=True), _score(1, 0, 9)])
        )
    history.record(scoreboard.GameSummary(game_number=1, winner_index=None, scores=[_score(0, 0, 5), _score(1, 0, 9)]))
    with pytest.raises(ValueError):
        history.record(
            scoreboard.GameSummary(game_number=1, winner_index=None, scores=[_score(0, 0, 5), _score(1, 0, 9)])
        )

    assert len(history.games) == 1
    assert [total.deadwood_points for total in history.totals()] == [5, 9]


def test_standings_rank_wins_then_net_and_report_rates() -> None:
    history = scoreboard.MatchHistory(num_players=3)
    history.record(
        scoreboard.GameSummary(
            game_number=1,
            winner_index=2,
            scores=[_score(0, 30, 10), _score(1, 0, 40), _score(2, 70, 0, won=True)],
            turns=12,
        )
    )
    history.record(
        scoreboard.GameSummary(
            game_number=2,
            winner_index=None,
            scores=[_score(0, 0, 5), _score(1, 60, 0), _score(2, 0, 20)],
            turns=30,
        )
    )

    standings = history.standings()

    assert [total.player_index for total in standings] == [2, 1, 0]
    assert standings[0].win_rate == pytest.approx(0.5)
    assert standings[1].win_rate == 0.0
    assert all(total.games == 2 for total in standings)
    assert history.mean_turns == pytest.approx(21.0)


def test_empty_history_has_neutral_statistics() -> None:
    history = scoreboard.MatchHistory(num_players=2)

    assert history.mean_turns == 0.0
    assert [total.win_rate for total in history.totals()] == [0.0, 0.0]


def test_match_history_needs_players() -> None:
    with pytest.raises(ValueError):
        scoreboard.MatchHistory(num_players=0)
