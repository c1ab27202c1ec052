"""Sanity tests ensuring the package imports correctly."""

from __future__ import annotations

import importlib

import pytest


@pytest.mark.parametrize(
    "module_name",
    [
        "remi",
        "remi.cards",
        "remi.deck",
        "remi.encoding",
        "remi.melds",
        "remi.solver",
        "remi.state",
        "remi.rules",
        "remi.events",
        "remi.engine",
        "remi.threats",
        "remi.evaluation",
        "remi.ai",
        "remi.ai.strategy",
        "remi.benchmark",
        "remi.scoreboard",
        "remi.cli.main",
    ],
)
def test_modules_import(module_name: str) -> None:
    """Ensure all foundational modules can be imported."""

    assert importlib.import_module(module_name)
