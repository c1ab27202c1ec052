from __future__ import annotations

from typer.testing import CliRunner

from remi.cli.main import app

runner = CliRunner()


def test_solve_prints_melds_and_deadwood() -> None:
    result = runner.invoke(app, ["solve", "5H", "5D", "5S", "9C"])

    assert result.exit_code == 0
    assert "Best Melds" in result.output
    assert "Deadwood" in result.output


def test_solve_rejects_unknown_card_code() -> None:
    result = runner.invoke(app, ["solve", "ZZ"])

    assert result.exit_code != 0


def test_watch_quiet_game_prints_final_scores() -> None:
    result = runner.invoke(app, ["watch", "--seed", "5", "--turn-limit", "10", "--quiet"])

    assert result.exit_code == 0, result.output
    assert "Final Scores" in result.output


def test_benchmark_reports_game_count() -> None:
    result = runner.invoke(app, ["benchmark", "--games", "1", "--turn-limit", "10"])

    assert result.exit_code == 0, result.output
    assert "1 game(s) simulated." in result.output
    assert "Average length:" in result.output
