from __future__ import annotations

import pytest

from remi.cards import parse_cards
from remi.melds import MeldKind, canonical_order, classify
from remi.solver import generate_candidates, solve_hand


def _labels(cards) -> list[str]:
    return sorted(card.label() for card in cards)


def test_generate_candidates_for_ace_high_run() -> None:
    candidates = generate_candidates(parse_cards("QS KS AS"))

    assert len(candidates) == 1
    assert candidates[0].kind is MeldKind.RUN
    assert candidates[0].score == 30
    assert candidates[0].efficiency == 10


def test_generate_candidates_are_priority_ordered() -> None:
    candidates = generate_candidates(parse_cards("5H 5D 5S JKR"))

    assert candidates[0].kind is MeldKind.SET
    assert candidates[0].score == 20
    assert candidates[0].joker_count == 1
    keys = [candidate.priority() for candidate in candidates]
    assert keys == sorted(keys)


def test_solver_finds_optimal_partition() -> None:
    hand = parse_cards("5H 5D 5S 7C 8C 9C KH KD 2S")

    solution = solve_hand(hand)

    assert solution.total_score == 39
    assert solution.deadwood == 22
    assert sorted(solution.meld_scores) == [15, 24]
    assert _labels(solution.remaining) == ["2S", "KD", "KH"]
    assert not solution.truncated


def test_solver_splits_long_run_to_free_a_set() -> None:
    hand = parse_cards("8H 9H 10H JH QH QD QS")

    solution = solve_hand(hand)

    # The whole heart run alone is worth 47 but strands two queens.
    assert solution.total_score == 67
    assert solution.deadwood == 0
    assert sorted(solution.meld_scores) == [30, 37]
    assert sorted(meld.kind.value for meld in solution.melds) == ["run", "set"]
    assert solution.remaining == ()


@pytest.mark.parametrize(
    ("codes", "score", "remaining"),
    [
        ("4H 5H 6H 4H 5H 6H 9C", 30, ["9C"]),
        ("5H 5D 5S 5H 5D 5S", 30, []),
        ("KD JKR AD 2H KD AD JKR", 60, ["2H"]),
    ],
)
def test_solver_uses_the_same_meld_from_both_decks(codes: str, score: int, remaining: list[str]) -> None:
    hand = parse_cards(codes)

    solution = solve_hand(hand)

    assert solution.total_score == score
    assert len(solution.melds) == 2
    assert solution.melds[0].kind is solution.melds[1].kind
    assert _labels(solution.remaining) == remaining
    assert len({card.uid for card in solution.melded_cards}) == len(hand) - len(remaining)


def test_solver_answers_each_hand_even_when_uids_repeat() -> None:
    first = solve_hand(parse_cards("5H 5D 5S"))
    second = solve_hand(parse_cards("2C 9D KH"))

    assert first.total_score == 15
    assert second.melds == ()
    assert second.total_score == 0
    assert second.deadwood == 21
    assert _labels(second.remaining) == ["2C", "9D", "KH"]


def test_solver_spends_joker_where_it_scores_most() -> None:
    solution = solve_hand(parse_cards("7H 8H JKR KS KD"))

    assert solution.total_score == 30
    assert len(solution.melds) == 1
    assert _labels(solution.melds[0].cards) == ["JKR", "KD", "KS"]
    assert _labels(solution.remaining) == ["7H", "8H"]
    assert solution.deadwood == 15


def test_solver_never_reuses_a_duplicate_face() -> None:
    solution = solve_hand(parse_cards("5H 5H 5D 5S"))

    assert solution.total_score == 15
    assert len(solution.melds) == 1
    assert _labels(solution.remaining) == ["5H"]


def test_solver_melds_are_legal_and_canonical() -> None:
    hand = parse_cards("JKR 3C 4C 6C AH AD AS 10D JD QD JKB 9S")

    solution = solve_hand(hand)

    for meld in solution.melds:
        assert classify(meld.cards) is meld.kind
        assert canonical_order(meld.cards) == list(meld.cards)
    used = [card.uid for card in solution.melded_cards] + [card.uid for card in solution.remaining]
    assert sorted(used) == sorted(card.uid for card in hand)


def test_solver_is_deterministic() -> None:
    hand = parse_cards("JKR 3C 4C 6C AH AD AS 10D JD QD JKB 9S")

    assert solve_hand(hand) == solve_hand(list(hand))
    assert solve_hand(list(reversed(hand))).total_score == solve_hand(hand).total_score


def test_empty_hand_has_no_melds() -> None:
    solution = solve_hand([])

    assert solution.melds == ()
    assert solution.total_score == 0
    assert solution.deadwood == 0


def test_node_budget_marks_truncation() -> None:
    solution = solve_hand(parse_cards("5H 5D 5S 7C 8C 9C"), max_nodes=1)

    assert solution.truncated
    assert solution.total_score == 0


def test_node_budget_must_be_positive() -> None:
    with pytest.raises(ValueError):
        solve_hand(parse_cards("5H 5D 5S"), max_nodes=0)
