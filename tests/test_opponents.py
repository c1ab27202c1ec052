from __future__ import annotations

import pytest

from remi.ai.opponents import OpponentModel, base_interest
from remi.cards import parse_card, parse_cards
from remi.deck import Deck
from remi.engine import Engine
from remi.melds import classify
from remi.state import GameConfig, GameState, TableMeld, TurnPhase, hands_from


def _make_engine(*, with_table: bool = False) -> Engine:
    players = hands_from([parse_cards("7H 2C", start_uid=0), parse_cards("9D", start_uid=2)])
    if with_table:
        meld = parse_cards("4C 5C 6C", start_uid=3)
        players[1].melds.append(TableMeld(owner=1, kind=classify(meld), cards=meld))
        players[1].has_opened = True
    state = GameState(
        config=GameConfig(),
        players=players,
        deck=Deck(draw_pile=parse_cards("KS", start_uid=10)),
        phase=TurnPhase.MELD,
    )
    return Engine.from_state(state)


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("JKR", 20),
        ("7H", 5),
        ("AH", 3),
        ("KH", 3),
        ("3H", 0),
        ("10H", 0),
    ],
)
def test_base_interest(code: str, expected: int) -> None:
    assert base_interest(parse_card(code, 0)) == expected


def test_model_tracks_pickups_and_discards() -> None:
    engine = _make_engine()
    model = OpponentModel()
    model.attach(engine)
    seven = engine.get_player_hand(0)[0]
    eight = parse_card("8H", 99)

    engine.discard_card(0, seven)
    engine.draw_from_discard(1)

    assert model.discards[0] == [seven]
    assert model.pickups[1] == [seven]
    assert model.player_interest(1, eight) == 5 + 6
    assert model.player_interest(0, eight) == 5 - 3
    assert model.interest(engine, 0, eight) == 11


def test_restore_clears_the_model() -> None:
    engine = _make_engine()
    model = OpponentModel()
    model.attach(engine)
    snapshot = engine.snapshot()

    engine.discard_card(0, engine.get_player_hand(0)[0])
    engine.restore(snapshot)

    assert not model.discards
    assert not model.pickups


def test_detach_stops_observing() -> None:
    engine = _make_engine()
    model = OpponentModel()
    model.attach(engine)
    model.detach()
    model.detach()

    engine.discard_card(0, engine.get_player_hand(0)[0])

    assert not model.discards


def test_table_fit_raises_interest_for_opened_opponent() -> None:
    engine = _make_engine(with_table=True)
    model = OpponentModel()

    assert model.interest(engine, 0, parse_card("7C", 99)) == 5 + 10
    assert model.interest(engine, 1, parse_card("7C", 99)) == 5
