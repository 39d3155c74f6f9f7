"""
Tests for the per-season advantage board: commissioner-only edits, tiers,
board-wide uniqueness, dense ordering, locking and duplication between seasons.
"""
from __future__ import annotations

import pytest

from label_league.services import events
from label_league.services.access import found
from label_league.services.advantage_board import AdvantageBoardService
from label_league.services.errors import Conflict, DuplicateEntity, InvalidTransition, NotFound, Unauthorized
from label_league.services.league_service import LeagueService

from conftest import ADVANTAGE_LAYOUT


@pytest.fixture
def advantages():
    return AdvantageBoardService()


def test_board_is_created_on_first_view(db_conn, season, advantages):
    board = advantages.get_or_create_board(db_conn, season.id)
    assert board.season_id == season.id
    assert board.is_locked is False
    assert board.advantages == []
    assert advantages.get_or_create_board(db_conn, season.id).id == board.id


def test_only_commissioner_edits(db_conn, season, users, advantages):
    with pytest.raises(Unauthorized):
        advantages.add_advantage(db_conn, season.id, 1, "VETO", users["alice"].id)


def test_advantage_must_exist_in_library(db_conn, season, users, advantages):
    with pytest.raises(NotFound):
        advantages.add_advantage(db_conn, season.id, 1, "TIME_TRAVEL", users["comm"].id)


def test_unknown_tier_rejected(db_conn, season, users, advantages):
    with pytest.raises(ValueError):
        advantages.add_advantage(db_conn, season.id, 0, "VETO", users["comm"].id)


def test_advantage_unique_across_tiers(db_conn, season, users, advantages):
    comm = users["comm"].id
    advantages.add_advantage(db_conn, season.id, 1, "VETO", comm)
    with pytest.raises(DuplicateEntity):
        advantages.add_advantage(db_conn, season.id, 3, "VETO", comm)


def test_board_lists_tiers_in_order(db_conn, season, driver):
    board = driver.build_advantage_board(lock=False)
    for tier, codes in ADVANTAGE_LAYOUT.items():
        assert [a.code for a in board.tier(tier)] == codes
        assert [a.order for a in board.tier(tier)] == list(range(len(codes)))
    assert board.to_dict()["advantage_count"] == 5
    assert [a["code"] for a in board.to_dict()["tiers"]["2"]] == ["SECOND_CHANCE", "SHIELD"]


def test_order_stays_dense_after_remove_and_reorder(db_conn, season, users, advantages):
    comm = users["comm"].id
    added = [advantages.add_advantage(db_conn, season.id, 2, code, comm)
             for code in ("VETO", "SHIELD", "SPOTLIGHT", "SECOND_CHANCE")]
    assert [a.order for a in added] == [0, 1, 2, 3]

    board = advantages.remove_advantage(db_conn, season.id, added[1].id, comm)
    assert [(a.code, a.order) for a in board.tier(2)] == [("VETO", 0), ("SPOTLIGHT", 1), ("SECOND_CHANCE", 2)]

    reordered = [added[3].id, added[0].id, added[2].id]
    board = advantages.reorder_advantages(db_conn, season.id, 2, reordered, comm)
    assert [a.code for a in board.tier(2)] == ["SECOND_CHANCE", "VETO", "SPOTLIGHT"]
    assert [a.order for a in board.tier(2)] == [0, 1, 2]


def test_reorder_requires_exact_id_set(db_conn, season, users, advantages):
    comm = users["comm"].id
    first = advantages.add_advantage(db_conn, season.id, 1, "VETO", comm)
    second = advantages.add_advantage(db_conn, season.id, 1, "DOUBLE_VOTE", comm)
    with pytest.raises(Conflict):
        advantages.reorder_advantages(db_conn, season.id, 1, [first.id], comm)
    with pytest.raises(Conflict):
        advantages.reorder_advantages(db_conn, season.id, 1, [first.id, first.id], comm)
    with pytest.raises(Conflict):
        advantages.reorder_advantages(db_conn, season.id, 2, [second.id, first.id], comm)


def test_remove_unknown_advantage(db_conn, season, users, advantages):
    with pytest.raises(NotFound):
        advantages.remove_advantage(db_conn, season.id, "nope", users["comm"].id)


def test_lock_needs_a_starting_tier_advantage(db_conn, season, users, advantages):
    comm = users["comm"].id
    advantages.add_advantage(db_conn, season.id, 3, "SPOTLIGHT", comm)
    with pytest.raises(InvalidTransition):
        advantages.lock(db_conn, season.id, comm)
    advantages.add_advantage(db_conn, season.id, 1, "VETO", comm)
    assert advantages.lock(db_conn, season.id, comm).is_locked is True


def test_locked_board_rejects_edits_until_unlocked(db_conn, season, users, driver, advantages):
    comm = users["comm"].id
    board = driver.build_advantage_board(lock=True)
    with pytest.raises(InvalidTransition):
        advantages.add_advantage(db_conn, season.id, 2, "DOUBLE_VOTE", comm)
    with pytest.raises(InvalidTransition):
        advantages.remove_advantage(db_conn, season.id, board.advantages[0].id, comm)
    with pytest.raises(InvalidTransition):
        advantages.lock(db_conn, season.id, comm)

    advantages.unlock(db_conn, season.id, comm)
    advantages.remove_advantage(db_conn, season.id, board.advantages[0].id, comm)
    types = [e["event_type"] for e in driver.seasons.list_events(db_conn, season.id)]
    assert types.count(events.ADVANTAGE_BOARD_LOCKED) == 1
    assert types.count(events.ADVANTAGE_BOARD_UNLOCKED) == 1


def test_duplicate_from_season_copies_tiers(db_conn, league, season, users, driver, advantages):
    comm = users["comm"].id
    source = driver.build_advantage_board(lock=True)
    target = LeagueService().create_season(db_conn, league.id, "Season 2", 4, 6, comm)
    advantages.add_advantage(db_conn, target.id, 3, "VETO", comm)

    copy = advantages.duplicate_from_season(db_conn, target.id, season.id, comm)
    assert copy.is_locked is False
    for tier in ADVANTAGE_LAYOUT:
        assert [a.code for a in copy.tier(tier)] == [a.code for a in source.tier(tier)]
    assert advantages.get_board(db_conn, season.id).is_locked is True


def test_duplicate_needs_a_source_board(db_conn, league, season, users, advantages):
    comm = users["comm"].id
    target = LeagueService().create_season(db_conn, league.id, "Season 2", 4, 6, comm)
    with pytest.raises(NotFound):
        advantages.duplicate_from_season(db_conn, target.id, season.id, comm)
    with pytest.raises(ValueError):
        advantages.duplicate_from_season(db_conn, season.id, season.id, comm)


def test_missing_rows_surface_as_not_found(db_conn, advantages):
    with pytest.raises(NotFound):
        advantages.get_or_create_board(db_conn, "no-such-season")
    with pytest.raises(NotFound, match="Advantage board not found"):
        found(None, "Advantage board")
    assert found("row", "Advantage board") == "row"
