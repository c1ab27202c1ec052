"""Tests for the heuristic computer player."""

from __future__ import annotations

import random
from typing import Iterable, Sequence

import pytest

from remi.actions import DrawSource
from remi.ai import AIPolicy, AIStrategy, Difficulty, OpponentModel
from remi.cards import Card, deck_size, parse_cards
from remi.deck import Deck
from remi.engine import Engine
from remi.melds import MeldKind, classify
from remi.state import GameConfig, GameState, PublicState, TableMeld, TurnPhase, hands_from


def _deal(*groups: str) -> list[list[Card]]:
    dealt: list[list[Card]] = []
    uid = 0
    for group in groups:
        cards = parse_cards(group, start_uid=uid)
        uid += len(cards)
        dealt.append(cards)
    return dealt


def _make_engine(
    hands: Sequence[Sequence[Card]],
    *,
    discard: Iterable[Card] = (),
    phase: TurnPhase = TurnPhase.MELD,
    opened: Iterable[int] = (),
    table: Iterable[tuple[int, Sequence[Card]]] = (),
) -> Engine:
    players = hands_from(hands)
    for idx in opened:
        players[idx].has_opened = True
    for owner, cards in table:
        players[owner].melds.append(TableMeld(owner=owner, kind=classify(cards), cards=list(cards)))
    state = GameState(
        config=GameConfig(num_players=len(hands)),
        players=players,
        deck=Deck(draw_pile=[], discard_pile=list(discard)),
        public=PublicState(current_player_index=0),
        phase=phase,
    )
    return Engine.from_state(state)


def _make_strategy(difficulty: Difficulty = Difficulty.MEDIUM) -> AIStrategy:
    policy = AIPolicy.for_difficulty(difficulty).with_randomness(0.0)
    return AIStrategy(policy, rng=random.Random(0))


# ----------------------------------------------------------------------
# Policies


def test_presets_differ_by_difficulty() -> None:
    easy = AIPolicy.for_difficulty("easy")
    hard = AIPolicy.for_difficulty(Difficulty.HARD)

    assert easy.only_take_to_meld
    assert not easy.extend_table
    assert hard.defensive
    assert hard.hold_back
    assert AIPolicy.for_difficulty(Difficulty.MEDIUM) == AIPolicy()


def test_policy_rejects_bad_randomness() -> None:
    with pytest.raises(ValueError):
        AIPolicy(randomness=1.5)


def test_for_difficulty_attaches_opponent_model_only_when_used() -> None:
    assert isinstance(AIStrategy.for_difficulty(Difficulty.HARD, seed=1).opponent_model, OpponentModel)
    assert AIStrategy.for_difficulty(Difficulty.EASY, seed=1).opponent_model is None


# ----------------------------------------------------------------------
# Discard choice


def test_choose_discard_prefers_dead_high_card_over_joker() -> None:
    hand, other = _deal("JKR KH 2C", "9D")
    engine = _make_engine([hand, other])

    assert _make_strategy().choose_discard(engine, 0, hand) == hand[1]


def test_choose_discard_gives_up_joker_only_when_nothing_else_is_left() -> None:
    hand, other = _deal("JKR JKB", "9D")
    engine = _make_engine([hand, other])

    assert _make_strategy().choose_discard(engine, 0, hand) in hand


def test_choose_discard_needs_cards() -> None:
    hand, other = _deal("2C", "9D")
    engine = _make_engine([hand, other])

    with pytest.raises(ValueError):
        _make_strategy().choose_discard(engine, 0, [])


# ----------------------------------------------------------------------
# Draw decision


def test_draws_joker_from_discard() -> None:
    hand, other, discard = _deal("KH 9D 5S", "9C", "JKR")
    engine = _make_engine([hand, other], discard=discard, phase=TurnPhase.DRAW)

    assert _make_strategy().should_draw_from_discard(engine, 0)


def test_draws_card_that_completes_a_set() -> None:
    hand, other, discard = _deal("KH KD 2C 7S", "9C", "KS")
    engine = _make_engine([hand, other], discard=discard, phase=TurnPhase.DRAW)

    assert _make_strategy().should_draw_from_discard(engine, 0)


def test_ignores_unrelated_discard() -> None:
    hand, other, discard = _deal("KH 9D 5S", "9C", "3C")
    engine = _make_engine([hand, other], discard=discard, phase=TurnPhase.DRAW)

    assert not _make_strategy().should_draw_from_discard(engine, 0)


@pytest.mark.parametrize(("opened", "expected"), [((), False), ((0,), True)])
def test_easy_only_takes_what_it_can_meld(opened: tuple[int, ...], expected: bool) -> None:
    hand, other, discard = _deal("KH KD 2C 7S", "9C", "KS")
    engine = _make_engine([hand, other], discard=discard, phase=TurnPhase.DRAW, opened=opened)

    assert _make_strategy(Difficulty.EASY).should_draw_from_discard(engine, 0) is expected


def test_does_not_draw_into_a_full_hand() -> None:
    hand, other, discard = _deal("2H 3H 4H 5H 6H 7H 8H 9H 10H JH QH KH AH 2D 3D", "9C", "JKR")
    engine = _make_engine([hand, other], discard=discard, phase=TurnPhase.DRAW)

    assert not _make_strategy().should_draw_from_discard(engine, 0)


# ----------------------------------------------------------------------
# Meld planning


def test_plan_opens_when_threshold_is_met() -> None:
    hand, other = _deal("10H 10D 10S 6C 7C 8C 2S", "9C")
    engine = _make_engine([hand, other])

    plan = _make_strategy().plan_meld_and_discard(engine, 0)

    assert len(plan.melds) == 2
    assert plan.meld_points == 51
    assert plan.discard == hand[6]


def test_plan_waits_below_threshold() -> None:
    hand, other = _deal("10H 10D 10S 2S 4D", "9C")
    engine = _make_engine([hand, other])

    plan = _make_strategy().plan_meld_and_discard(engine, 0)

    assert plan.melds == ()
    assert plan.discard == hand[4]


def test_plan_trims_a_meld_to_keep_a_discard() -> None:
    hand, other = _deal("5H 5D 5S 5C 7H 8H 9H", "9C")
    engine = _make_engine([hand, other], opened=[0])

    plan = _make_strategy().plan_meld_and_discard(engine, 0)

    assert sum(len(meld) for meld in plan.melds) == 6
    assert plan.extensions == ()
    assert plan.discard == hand[0]


def test_plan_drops_weakest_meld_when_nothing_can_be_trimmed() -> None:
    hand, other = _deal("5H 5D 5S 7H 8H 9H", "9C")
    engine = _make_engine([hand, other], opened=[0])

    plan = _make_strategy().plan_meld_and_discard(engine, 0)

    assert [meld.kind for meld in plan.melds] == [MeldKind.RUN]
    assert plan.discard in hand[:3]


def test_hard_holds_back_a_joker_meld_close_to_going_out() -> None:
    hand, other = _deal("10H 10D JKR 6C 7C 8C 2S 3D", "9C")
    engine = _make_engine([hand, other])

    hard = _make_strategy(Difficulty.HARD).plan_meld_and_discard(engine, 0)
    medium = _make_strategy(Difficulty.MEDIUM).plan_meld_and_discard(engine, 0)

    assert hard.held_back
    assert hard.melds == ()
    assert not hard.discard.is_joker
    assert not medium.held_back
    assert medium.meld_points == 51


def test_plan_extends_table_and_reclaims_joker_first() -> None:
    hand, other, meld = _deal("5C 9D 2S", "KH", "5H 5D 5S JKR")
    engine = _make_engine([hand, other], opened=[0, 1], table=[(1, meld)])

    plan = _make_strategy().plan_meld_and_discard(engine, 0)

    assert len(plan.extensions) == 1
    assert plan.extensions[0].card == hand[0]
    assert plan.extensions[0].reclaims_joker
    assert plan.discard is not None and not plan.discard.is_joker


# ----------------------------------------------------------------------
# Whole turns


def test_take_turn_out_of_turn_does_nothing() -> None:
    hand, other = _deal("2C 3D", "9C")
    engine = _make_engine([hand, other])

    report = _make_strategy().take_turn(engine, 1)

    assert report.discarded is None
    assert engine.get_player_hand(1) == other


def test_self_play_keeps_every_card_accounted_for() -> None:
    engine = Engine(GameConfig(), seed=5)
    strategies = [
        AIStrategy.for_difficulty(Difficulty.MEDIUM, seed=1),
        AIStrategy.for_difficulty(Difficulty.HARD, seed=2),
    ]
    for strategy in strategies:
        strategy.attach(engine)
    engine.new_game()

    for _ in range(40):
        state = engine.get_state()
        if state.is_over:
            break
        report = strategies[state.current_player].take_turn(engine, state.current_player)
        assert report.discarded is not None
        assert report.draw_source in (DrawSource.DECK, DrawSource.DISCARD)

    state = engine.get_state()
    table = engine.table_melds()
    on_table = sum(len(meld.cards) for meld in table)
    assert sum(state.hand_sizes) + on_table + state.draw_pile_size + state.discard_pile_size == deck_size(2)
    assert all(classify(meld.cards) is meld.kind for meld in table)
    assert all(size <= state.max_hand_size for size in state.hand_sizes)
