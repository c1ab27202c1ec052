"""Computer opponents for Remi."""

from .opponents import OpponentModel
from .policy import AIPolicy, Difficulty
from .strategy import AIStrategy

__all__ = ["AIPolicy", "AIStrategy", "Difficulty", "OpponentModel"]
