"""
Tests for snake draft ordering and draft positions.
Deterministic; every round pair reverses; the opening pick rotates.
"""
from __future__ import annotations

import pytest

from label_league.services.draft_order import (
    assign_draft_positions,
    generate_draft_board,
    round_pair_offset,
    snake_pick_sequence,
    snake_round_order,
)

PLAYERS = ["A", "B", "C"]


def test_first_round_follows_draft_position():
    assert snake_round_order(PLAYERS, 1) == ["A", "B", "C"]


def test_second_round_reverses_first():
    assert snake_round_order(PLAYERS, 2) == ["C", "B", "A"]


def test_round_pairs_rotate_opening_pick():
    """Pair k opens with the player at offset k."""
    assert snake_round_order(PLAYERS, 3) == ["B", "C", "A"]
    assert snake_round_order(PLAYERS, 4) == ["A", "C", "B"]
    assert snake_round_order(PLAYERS, 5) == ["C", "A", "B"]
    assert snake_round_order(PLAYERS, 7) == ["A", "B", "C"]


def test_each_player_opens_once_over_player_count_pairs():
    openers = [snake_round_order(PLAYERS, r)[0] for r in range(1, 2 * len(PLAYERS) + 1, 2)]
    closers = [snake_round_order(PLAYERS, r)[-1] for r in range(1, 2 * len(PLAYERS) + 1, 2)]
    assert sorted(openers) == PLAYERS
    assert sorted(closers) == PLAYERS


@pytest.mark.parametrize("player_count", range(2, 8))
@pytest.mark.parametrize("start_pair", range(0, 8))
def test_any_window_of_player_count_pairs_opens_and_closes_each_player_once(player_count, start_pair):
    players = [f"P{i}" for i in range(player_count)]
    pairs = range(start_pair, start_pair + player_count)
    for parity in (1, 2):
        rounds = [2 * k + parity for k in pairs]
        openers = [snake_round_order(players, r)[0] for r in rounds]
        closers = [snake_round_order(players, r)[-1] for r in rounds]
        assert sorted(openers) == players
        assert sorted(closers) == players


def test_every_round_is_a_permutation():
    for r in range(1, 10):
        assert sorted(snake_round_order(PLAYERS, r)) == PLAYERS


def test_pick_sequence_is_deterministic():
    assert snake_pick_sequence(PLAYERS, 4) == snake_pick_sequence(list(PLAYERS), 4)
    seq = snake_pick_sequence(PLAYERS, 2)
    assert seq[:3] == [(1, 0, "A"), (1, 1, "B"), (1, 2, "C")]
    assert seq[3:] == [(2, 0, "C"), (2, 1, "B"), (2, 2, "A")]


def test_draft_board_numbers_picks():
    board = generate_draft_board(["X", "Y"], 2)
    assert [p["overall"] for p in board] == [1, 2, 3, 4]
    assert [p["player_id"] for p in board] == ["X", "Y", "Y", "X"]
    assert board[2] == {"round": 2, "pick": 1, "overall": 3, "player_id": "Y"}


def test_single_player_and_empty_inputs():
    assert snake_round_order(["solo"], 2) == ["solo"]
    assert snake_round_order([], 1) == []


def test_round_pair_offset_rejects_bad_input():
    with pytest.raises(ValueError):
        round_pair_offset(0, 3)
    with pytest.raises(ValueError):
        round_pair_offset(1, 0)


def test_assign_draft_positions_is_one_based():
    assert assign_draft_positions(["c", "a", "b"]) == {"c": 1, "a": 2, "b": 3}
