"""
Tests for the per-season challenge board: commissioner-only edits, board-wide
uniqueness, dense ordering, the lock threshold and duplication between seasons.
"""
from __future__ import annotations

import pytest

from label_league.config import BOARD_LOCK_MIN_CHALLENGES
from label_league.services.challenge_board import ChallengeBoardService
from label_league.services.errors import Conflict, DuplicateEntity, InvalidTransition, NotFound, Unauthorized
from label_league.services.league_service import LeagueService


@pytest.fixture
def board_service():
    return ChallengeBoardService()


def _genre(db_conn, library):
    category = library.get_category_by_name(db_conn, "Genre")
    return category, library.list_challenges(db_conn, category.id)


def test_board_is_created_on_first_view(db_conn, season, board_service):
    board = board_service.get_or_create_board(db_conn, season.id)
    assert board.season_id == season.id
    assert board.is_locked is False
    assert board_service.get_or_create_board(db_conn, season.id).id == board.id


def test_category_must_exist_in_library(db_conn, season, users, board_service):
    with pytest.raises(NotFound):
        board_service.add_category(db_conn, season.id, "Polka", users["comm"].id)


def test_only_commissioner_edits(db_conn, season, users, board_service):
    with pytest.raises(Unauthorized):
        board_service.add_category(db_conn, season.id, "Genre", users["alice"].id)


def test_duplicate_category_rejected(db_conn, season, users, board_service):
    board_service.add_category(db_conn, season.id, "Genre", users["comm"].id)
    with pytest.raises(DuplicateEntity):
        board_service.add_category(db_conn, season.id, "Genre", users["comm"].id)


def test_challenge_unique_across_board(db_conn, season, users, library, board_service):
    comm = users["comm"].id
    _, challenges = _genre(db_conn, library)
    genre = board_service.add_category(db_conn, season.id, "Genre", comm)
    era = board_service.add_category(db_conn, season.id, "Era", comm)
    board_service.add_challenge(db_conn, season.id, genre.id, challenges[0].id, comm)
    with pytest.raises(DuplicateEntity):
        board_service.add_challenge(db_conn, season.id, era.id, challenges[0].id, comm)


def test_order_stays_dense_after_remove_and_reorder(db_conn, season, users, library, board_service):
    comm = users["comm"].id
    _, challenges = _genre(db_conn, library)
    genre = board_service.add_category(db_conn, season.id, "Genre", comm)
    added = [board_service.add_challenge(db_conn, season.id, genre.id, c.id, comm) for c in challenges[:4]]
    assert [c.order for c in added] == [0, 1, 2, 3]

    category = board_service.remove_challenge(db_conn, season.id, added[1].id, comm)
    assert [c.order for c in category.challenges] == [0, 1, 2]
    assert [c.id for c in category.challenges] == [added[0].id, added[2].id, added[3].id]

    new_order = [added[3].id, added[0].id, added[2].id]
    category = board_service.reorder_challenges(db_conn, season.id, genre.id, new_order, comm)
    assert [c.id for c in category.challenges] == new_order
    assert [c.order for c in category.challenges] == [0, 1, 2]


def test_reorder_requires_exact_id_set(db_conn, season, users, library, board_service):
    comm = users["comm"].id
    _, challenges = _genre(db_conn, library)
    genre = board_service.add_category(db_conn, season.id, "Genre", comm)
    a = board_service.add_challenge(db_conn, season.id, genre.id, challenges[0].id, comm)
    board_service.add_challenge(db_conn, season.id, genre.id, challenges[1].id, comm)
    with pytest.raises(Conflict):
        board_service.reorder_challenges(db_conn, season.id, genre.id, [a.id], comm)
    with pytest.raises(Conflict):
        board_service.reorder_challenges(db_conn, season.id, genre.id, [a.id, a.id], comm)


def test_lock_needs_minimum_challenges(db_conn, season, users, driver, board_service):
    driver.build_board(count=BOARD_LOCK_MIN_CHALLENGES - 1, lock=False)
    with pytest.raises(InvalidTransition):
        board_service.lock(db_conn, season.id, users["comm"].id)
    assert board_service.get_board(db_conn, season.id).is_locked is False


def test_lock_at_threshold_then_edits_rejected(db_conn, season, users, library, driver, board_service):
    comm = users["comm"].id
    board = driver.build_board(count=BOARD_LOCK_MIN_CHALLENGES, lock=True)
    assert board.is_locked is True
    assert board.challenge_count == BOARD_LOCK_MIN_CHALLENGES
    with pytest.raises(InvalidTransition):
        board_service.add_category(db_conn, season.id, "Mood", comm)
    with pytest.raises(InvalidTransition):
        board_service.remove_challenge(db_conn, season.id, board.categories[0].challenges[0].id, comm)
    with pytest.raises(InvalidTransition):
        board_service.lock(db_conn, season.id, comm)

    unlocked = board_service.unlock(db_conn, season.id, comm)
    assert unlocked.is_locked is False
    # unlock is idempotent
    assert board_service.unlock(db_conn, season.id, comm).is_locked is False


def test_delete_category_removes_its_challenges(db_conn, season, users, library, board_service):
    comm = users["comm"].id
    _, challenges = _genre(db_conn, library)
    genre = board_service.add_category(db_conn, season.id, "Genre", comm)
    board_service.add_category(db_conn, season.id, "Era", comm)
    board_service.add_challenge(db_conn, season.id, genre.id, challenges[0].id, comm)
    board = board_service.delete_category(db_conn, season.id, genre.id, comm)
    assert [c.title for c in board.categories] == ["Era"]
    assert board.categories[0].position == 0
    assert board.challenge_count == 0


def test_played_challenge_cannot_be_removed(db_conn, season, users, driver, board_service):
    comm = users["comm"].id
    driver.start_season()
    driver.select_challenge()
    board_service.unlock(db_conn, season.id, comm)
    selection = driver.weekly.list_selections(db_conn, season.id)[0]
    with pytest.raises(Conflict):
        board_service.remove_challenge(db_conn, season.id, selection.board_challenge_id, comm)


def test_duplicate_from_season_copies_order(db_conn, league, season, users, driver, board_service):
    comm = users["comm"].id
    source = driver.build_board(count=BOARD_LOCK_MIN_CHALLENGES, lock=True)
    target_season = LeagueService().create_season(db_conn, league.id, "Season 2", 4, 6, comm)

    copy = board_service.duplicate_from_season(db_conn, target_season.id, season.id, comm)
    assert copy.is_locked is False
    assert [c.title for c in copy.categories] == [c.title for c in source.categories]
    for src, dst in zip(source.categories, copy.categories):
        assert [c.canonical_challenge_id for c in dst.challenges] == [c.canonical_challenge_id for c in src.challenges]
        assert [c.order for c in dst.challenges] == list(range(len(src.challenges)))
    # the source board is untouched
    assert board_service.get_board(db_conn, season.id).is_locked is True


def test_duplicate_from_same_season_rejected(db_conn, season, users, board_service):
    with pytest.raises(ValueError):
        board_service.duplicate_from_season(db_conn, season.id, season.id, users["comm"].id)
