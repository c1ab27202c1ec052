"""Top-level package for the Remi rummy engine."""

from . import actions, cards, encoding, melds, rules, solver, state
from .cards import Card, Suit, parse_cards
from .engine import Engine, GameSnapshot, GameStateView
from .melds import Meld, MeldKind
from .rules import CommandResult, RejectReason
from .solver import HandSolution, solve_hand
from .state import GameConfig, TurnPhase

__all__ = [
    "actions",
    "cards",
    "encoding",
    "melds",
    "rules",
    "solver",
    "state",
    "Card",
    "Suit",
    "parse_cards",
    "Engine",
    "GameSnapshot",
    "GameStateView",
    "Meld",
    "MeldKind",
    "CommandResult",
    "RejectReason",
    "HandSolution",
    "solve_hand",
    "GameConfig",
    "TurnPhase",
]
