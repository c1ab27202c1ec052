"""Heuristic computer player built on the hand solver.

The strategy only talks to the engine through its public commands and
queries, so it plays by exactly the same rules as any other caller. Every
what-if evaluation runs the solver on copies of the hand.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Sequence

from .. import threats
from ..actions import DrawSource, MeldExtension, TurnPlan, TurnReport
from ..cards import Card
from ..evaluation import future_potential, synergy
from ..events import CardAddedToMeld, CardDrawnFromDeck, CardDrawnFromDiscard
from ..melds import Meld, MeldKind, classify
from ..solver import HandSolution, solve_hand
from ..state import TableMeld, TurnPhase
from .opponents import OpponentModel
from .policy import AIPolicy, Difficulty

if TYPE_CHECKING:
    from ..engine import Engine

__all__ = ["AIStrategy"]

logger = logging.getLogger(__name__)

_TOP_DISCARD_CHOICES = 3


def _trimmed(meld: Meld) -> list[tuple[Card, Meld]]:
    """Return the legal smaller melds left after removing one natural card."""

    if len(meld) <= 3:
        return []
    if meld.kind is MeldKind.RUN:
        positions = (0, len(meld) - 1)
    else:
        positions = tuple(range(len(meld)))
    options: list[tuple[Card, Meld]] = []
    for position in positions:
        card = meld.cards[position]
        if card.is_joker:
            continue
        rest = meld.cards[:position] + meld.cards[position + 1 :]
        if classify(rest) is meld.kind:
            options.append((card, Meld(kind=meld.kind, cards=rest)))
    return options


def _index_table(table: Sequence[TableMeld]) -> dict[tuple[int, int], TableMeld]:
    indexed: dict[tuple[int, int], TableMeld] = {}
    per_owner: dict[int, int] = {}
    for meld in table:
        position = per_owner.get(meld.owner, 0)
        per_owner[meld.owner] = position + 1
        indexed[(meld.owner, position)] = meld
    return indexed


class AIStrategy:
    """Computer player: draw decision, meld planning, discard choice."""

    def __init__(
        self,
        policy: AIPolicy | None = None,
        *,
        opponent_model: OpponentModel | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.policy = policy or AIPolicy()
        self.opponent_model = opponent_model
        self.rng = rng or random.Random()

    @classmethod
    def for_difficulty(cls, difficulty: Difficulty | str, *, seed: int | None = None) -> "AIStrategy":
        """Build a strategy from a preset, with an opponent model when the preset uses one."""

        policy = AIPolicy.for_difficulty(difficulty)
        model = OpponentModel() if policy.defensive or policy.opponent_weight > 0 else None
        return cls(policy, opponent_model=model, rng=random.Random(seed))

    def attach(self, engine: "Engine") -> None:
        """Let the opponent model, if any, follow ``engine``'s events."""

        if self.opponent_model is not None:
            self.opponent_model.attach(engine)

    def _opponent_interest(self, engine: "Engine", player_index: int, card: Card) -> float:
        if self.opponent_model is None:
            return 0.0
        return self.opponent_model.interest(engine, player_index, card)

    # ------------------------------------------------------------------
    # Draw

    def should_draw_from_discard(self, engine: "Engine", player_index: int) -> bool:
        """Return ``True`` when the top discard is worth more than a blind draw."""

        state = engine.get_state()
        top = state.top_discard
        if top is None:
            return False
        hand = engine.get_player_hand(player_index)
        if len(hand) >= state.max_hand_size:
            return False
        if top.is_joker:
            return True

        opened = state.has_opened[player_index]
        current = solve_hand(hand)
        candidate = solve_hand([*hand, top])
        used = top in candidate.melded_cards
        policy = self.policy

        if policy.only_take_to_meld:
            if not used:
                return False
            if opened:
                return True
            return candidate.total_score >= state.opening_threshold > current.total_score

        gain = candidate.total_score - current.total_score
        deadwood_drop = current.deadwood - candidate.deadwood
        card_synergy = synergy(top, hand)

        if policy.defensive and card_synergy > policy.deny_synergy:
            if self._opponent_interest(engine, player_index, top) >= policy.deny_interest:
                logger.debug("player %d takes %s to deny it", player_index, top)
                return True
        if policy.take_score_gain is not None and gain >= policy.take_score_gain:
            return True
        if policy.take_deadwood_drop is not None and deadwood_drop >= policy.take_deadwood_drop:
            return True
        if policy.take_synergy is not None and card_synergy >= policy.take_synergy:
            return True
        return card_synergy > 10 and self.rng.random() < policy.randomness

    # ------------------------------------------------------------------
    # Melds

    def _should_hold_back(self, solution: HandSolution) -> bool:
        policy = self.policy
        if not policy.hold_back:
            return False
        if not any(meld.joker_count for meld in solution.melds):
            return False
        remaining = len(solution.remaining)
        return 2 <= remaining <= policy.hold_back_max_remaining and solution.deadwood <= policy.hold_back_max_deadwood

    def _reserve_discard(self, melds: list[Meld], hand_size: int) -> list[Meld]:
        """Make sure the melds leave at least one card for the discard."""

        if sum(len(meld) for meld in melds) < hand_size:
            return melds
        best: tuple[tuple[int, int], int, Meld] | None = None
        for position, meld in enumerate(melds):
            for card, smaller in _trimmed(meld):
                key = (card.points, card.uid)
                if best is None or key < best[0]:
                    best = (key, position, smaller)
        if best is not None:
            _, position, smaller = best
            return [smaller if idx == position else meld for idx, meld in enumerate(melds)]
        weakest = min(range(len(melds)), key=lambda idx: (melds[idx].score, idx))
        return [meld for idx, meld in enumerate(melds) if idx != weakest]

    def plan_extensions(
        self,
        engine: "Engine",
        player_index: int,
        hand: Sequence[Card],
        new_melds: Sequence[Meld] = (),
    ) -> tuple[list[MeldExtension], list[Card]]:
        """Plan table plays for ``hand``, returning them and the cards left over.

        Joker reclaims come first, then the highest value cards. Jokers are
        never put on the table and one card always stays back for the discard
        unless the play returns a joker.
        """

        table = engine.table_melds()
        table.extend(TableMeld(owner=player_index, kind=meld.kind, cards=list(meld.cards)) for meld in new_melds)
        indexed = _index_table(table)
        left = list(hand)
        planned: list[MeldExtension] = []
        while True:
            options = []
            for card in left:
                if card.is_joker:
                    continue
                for owner, meld_index, extension in threats.extension_targets(table, card):
                    reclaims = extension.reclaimed_joker is not None
                    options.append(((not reclaims, -card.points, card.uid, owner, meld_index), card, owner, meld_index, extension))
            if not options:
                break
            _, card, owner, meld_index, extension = min(options, key=lambda option: option[0])
            reclaims = extension.reclaimed_joker is not None
            if not reclaims and len(left) <= 1:
                break
            indexed[(owner, meld_index)].cards = list(extension.cards)
            left.remove(card)
            if reclaims:
                left.append(extension.reclaimed_joker)
            planned.append(MeldExtension(card=card, meld_owner=owner, meld_index=meld_index, reclaims_joker=reclaims))
        return planned, left

    def plan_meld_and_discard(self, engine: "Engine", player_index: int) -> TurnPlan:
        """Decide what to lay down, what to add to the table and what to discard."""

        state = engine.get_state()
        hand = engine.get_player_hand(player_index)
        opened = state.has_opened[player_index]
        solution = solve_hand(hand)
        melds = list(solution.melds)
        held_back = False
        if melds and not opened:
            if solution.total_score < state.opening_threshold:
                melds = []
            elif self._should_hold_back(solution):
                logger.debug("player %d holds back %d melds", player_index, len(melds))
                melds = []
                held_back = True
        if melds:
            melds = self._reserve_discard(melds, len(hand))
            if not opened and sum(meld.score for meld in melds) < state.opening_threshold:
                melds = []

        melded = {card for meld in melds for card in meld.cards}
        remaining = [card for card in hand if card not in melded]
        extensions: list[MeldExtension] = []
        if self.policy.extend_table and (opened or melds):
            extensions, remaining = self.plan_extensions(engine, player_index, remaining, melds)
        discard = self.choose_discard(engine, player_index, remaining) if remaining else None
        return TurnPlan(melds=tuple(melds), extensions=tuple(extensions), discard=discard, held_back=held_back)

    # ------------------------------------------------------------------
    # Discard

    def discard_keep_value(self, engine: "Engine", player_index: int, card: Card, context: Sequence[Card]) -> float:
        """Return how much the player would like to keep ``card``; the lowest value is discarded."""

        policy = self.policy
        value = policy.synergy_weight * synergy(card, context)
        value += policy.potential_weight * future_potential(card, context)
        value -= card.points
        if policy.opponent_weight:
            value += policy.opponent_weight * self._opponent_interest(engine, player_index, card)
        if policy.feed_penalty and threats.discard_feeds_next_player(engine, player_index, card):
            value += policy.feed_penalty
        return value

    def choose_discard(self, engine: "Engine", player_index: int, cards: Sequence[Card]) -> Card:
        """Pick the discard among ``cards``; a joker only goes when nothing else is left."""

        if not cards:
            raise ValueError("no cards to discard")
        pool = [card for card in cards if not card.is_joker] or list(cards)
        ranked = sorted(
            pool,
            key=lambda card: (self.discard_keep_value(engine, player_index, card, cards), -card.points, card.uid),
        )
        top = ranked[:_TOP_DISCARD_CHOICES]
        pick = int(self.rng.random() * len(top) * self.policy.randomness)
        return top[min(pick, len(top) - 1)]

    # ------------------------------------------------------------------
    # Whole turn

    def take_turn(self, engine: "Engine", player_index: int) -> TurnReport:
        """Play one complete turn for ``player_index``."""

        report = TurnReport(player_index=player_index)
        state = engine.get_state()
        if state.is_over or state.current_player != player_index:
            return report

        if state.phase is TurnPhase.DRAW:
            result = None
            if self.should_draw_from_discard(engine, player_index):
                result = engine.draw_from_discard(player_index)
                if result:
                    report.draw_source = DrawSource.DISCARD
            if not result:
                result = engine.draw_from_deck(player_index)
                if not result:
                    logger.warning("player %d cannot draw: %s", player_index, result.reason)
                    return report
                report.draw_source = DrawSource.DECK
            for event in result.events:
                if isinstance(event, (CardDrawnFromDeck, CardDrawnFromDiscard)):
                    report.drawn = event.card

        plan = self.plan_meld_and_discard(engine, player_index)
        laid = True
        if plan.melds:
            result = engine.lay_down_melds(player_index, [meld.cards for meld in plan.melds])
            laid = result.ok
            if laid:
                report.melds_laid = len(plan.melds)
            else:
                logger.warning("player %d lay-down rejected: %s", player_index, result.reason)
        if laid:
            for extension in plan.extensions:
                result = engine.add_card_to_meld(player_index, extension.card, extension.meld_owner, extension.meld_index)
                if not result:
                    logger.debug("player %d extension skipped: %s", player_index, result.reason)
                    continue
                report.extensions_played += 1
                for event in result.events:
                    if isinstance(event, CardAddedToMeld) and event.replaced_joker is not None:
                        report.reclaimed_jokers.append(event.replaced_joker)

        hand = engine.get_player_hand(player_index)
        discard = plan.discard
        if discard is None or discard not in hand:
            discard = self.choose_discard(engine, player_index, hand)
        result = engine.discard_card(player_index, discard)
        if not result:
            logger.warning("player %d discard of %s rejected: %s", player_index, discard, result.reason)
            report.used_fallback = True
            discard = engine.get_player_hand(player_index)[0]
            result = engine.discard_card(player_index, discard)
            if not result:
                logger.warning("player %d fallback discard rejected: %s", player_index, result.reason)
                return report
        report.discarded = discard
        report.went_out = engine.get_state().winner == player_index
        return report
