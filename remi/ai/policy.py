"""Tunable knobs for the heuristic AI and the difficulty presets built from them."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

__all__ = ["Difficulty", "AIPolicy"]


class Difficulty(str, Enum):
    """Named strength presets."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True, slots=True)
class AIPolicy:
    """Thresholds and weights consulted by :class:`~remi.ai.strategy.AIStrategy`.

    ``take_*`` values gate drawing from the discard pile. A threshold of
    ``None`` disables that rule. ``randomness`` in ``[0, 1]`` adds noise to the
    discard choice and to borderline draw decisions.
    """

    take_score_gain: int | None = 5
    take_deadwood_drop: int | None = 5
    take_synergy: int | None = 20
    only_take_to_meld: bool = False
    defensive: bool = False
    deny_synergy: int = 15
    deny_interest: float = 8.0
    hold_back: bool = False
    hold_back_max_remaining: int = 3
    hold_back_max_deadwood: int = 10
    extend_table: bool = True
    synergy_weight: float = 1.0
    potential_weight: float = 0.0
    opponent_weight: float = 0.0
    feed_penalty: float = 0.0
    randomness: float = 0.1

    def __post_init__(self) -> None:
        if not 0.0 <= self.randomness <= 1.0:
            raise ValueError("randomness must be within [0, 1]")

    @classmethod
    def for_difficulty(cls, difficulty: Difficulty | str) -> "AIPolicy":
        """Return the preset for ``difficulty``."""

        return _PRESETS[Difficulty(difficulty)]

    def with_randomness(self, randomness: float) -> "AIPolicy":
        return replace(self, randomness=randomness)


_PRESETS: dict[Difficulty, AIPolicy] = {
    Difficulty.EASY: AIPolicy(
        take_score_gain=10,
        take_deadwood_drop=None,
        take_synergy=30,
        only_take_to_meld=True,
        extend_table=False,
        synergy_weight=0.5,
        randomness=0.3,
    ),
    Difficulty.MEDIUM: AIPolicy(),
    Difficulty.HARD: AIPolicy(
        take_score_gain=3,
        take_deadwood_drop=3,
        take_synergy=15,
        defensive=True,
        hold_back=True,
        potential_weight=0.4,
        opponent_weight=0.6,
        feed_penalty=8.0,
        randomness=0.05,
    ),
}
