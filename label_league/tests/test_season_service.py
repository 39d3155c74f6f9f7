"""
Tests for leagues, season setup and the commissioner-driven phase machine.
"""
from __future__ import annotations

import pytest

from label_league.config import DEFAULT_PROMPT_CATEGORY
from label_league.models import SeasonPhase, SeasonStatus
from label_league.services import events
from label_league.services.errors import Conflict, DuplicateEntity, InvalidTransition, NotFound, Unauthorized
from label_league.services.league_service import LeagueService
from label_league.services.season_service import SeasonService

from conftest import CHALLENGE_COUNT, PROMPT_COUNT, ROSTER_SIZE, make_user


@pytest.fixture
def season_service():
    return SeasonService()


def test_create_season_adds_players_not_spectators(db_conn, season, users):
    players = SeasonService().list_players(db_conn, season.id)
    assert {p.user_id for p in players} == {users["comm"].id, users["alice"].id, users["bob"].id}
    assert all(p.label_name.endswith("'s Label") for p in players)
    assert season.current_phase == SeasonPhase.SEASON_SETUP.value
    assert season.current_week == 0
    assert season.status == SeasonStatus.PRESEASON.value


def test_only_commissioner_creates_seasons(db_conn, league, users):
    with pytest.raises(Unauthorized):
        LeagueService().create_season(db_conn, league.id, "Rogue", 3, 3, users["alice"].id)


def test_late_member_joins_during_setup(db_conn, league, season, users):
    service = LeagueService()
    dana = make_user(db_conn, "dana")
    service.add_member(db_conn, league.id, "dana@example.com", users["comm"].id)
    player = service.join_season(db_conn, season.id, dana.id)
    assert player.label_name == "Dana's Label"
    with pytest.raises(DuplicateEntity):
        service.join_season(db_conn, season.id, dana.id)
    with pytest.raises(Unauthorized):
        service.join_season(db_conn, season.id, users["sam"].id)


def test_reorder_players_is_idempotent(db_conn, season, users, season_service):
    comm = users["comm"].id
    ids = [p.id for p in season_service.list_players(db_conn, season.id)]
    order = list(reversed(ids))
    first = season_service.reorder_season_players(db_conn, season.id, order, comm)
    second = season_service.reorder_season_players(db_conn, season.id, order, comm)
    assert [p.id for p in first] == order
    assert [(p.id, p.draft_position) for p in second] == [(p.id, p.draft_position) for p in first]
    assert [p.draft_position for p in second] == [1, 2, 3]


def test_reorder_rejects_partial_list(db_conn, season, users, season_service):
    ids = [p.id for p in season_service.list_players(db_conn, season.id)]
    with pytest.raises(Conflict):
        season_service.reorder_season_players(db_conn, season.id, ids[:2], users["comm"].id)


def test_reorder_requires_commissioner(db_conn, season, users, season_service):
    ids = [p.id for p in season_service.list_players(db_conn, season.id)]
    with pytest.raises(Unauthorized):
        season_service.reorder_season_players(db_conn, season.id, ids, users["alice"].id)


def test_player_renames_own_label_only(db_conn, season, users, season_service):
    players = {p.user_id: p for p in season_service.list_players(db_conn, season.id)}
    renamed = season_service.update_label_name(db_conn, season.id, "Night Shift Records", users["alice"].id)
    assert renamed.label_name == "Night Shift Records"
    with pytest.raises(Unauthorized):
        season_service.update_label_name(
            db_conn, season.id, "Stolen", users["alice"].id, player_id=players[users["bob"].id].id
        )
    by_comm = season_service.update_label_name(
        db_conn, season.id, "Bob's Basement", users["comm"].id, player_id=players[users["bob"].id].id
    )
    assert by_comm.label_name == "Bob's Basement"


def test_start_draft_needs_enough_prompts(db_conn, league, users, season_service):
    bare = LeagueService().create_season(db_conn, league.id, "No prompts", ROSTER_SIZE, 3, users["comm"].id)
    with pytest.raises(InvalidTransition):
        season_service.start_draft(db_conn, bare.id, users["comm"].id)


def test_start_draft_assigns_positions_and_cursor(db_conn, season, users, season_service, driver):
    updated = season_service.start_draft(db_conn, season.id, users["comm"].id)
    assert updated.current_phase == SeasonPhase.DRAFTING.value
    assert [p.draft_position for p in driver.players()] == [1, 2, 3]
    view = driver.draft.get_draft_view(db_conn, season.id)
    assert view["state"]["current_round"] == 1
    assert view["current_picker_id"] == driver.players()[0].id


def test_phase_cannot_be_skipped(db_conn, season, users, season_service):
    with pytest.raises(InvalidTransition):
        season_service.start_season(db_conn, season.id, users["comm"].id)
    with pytest.raises(InvalidTransition):
        season_service.mark_ready_for_week_1(db_conn, season.id, users["comm"].id)


def test_transitions_require_commissioner(db_conn, season, users, season_service):
    with pytest.raises(Unauthorized):
        season_service.start_draft(db_conn, season.id, users["alice"].id)


def test_draft_fills_rosters_and_completes(db_conn, season, users, driver):
    driver.seasons.start_draft(db_conn, season.id, users["comm"].id)
    driver.run_draft()
    current = driver.season()
    assert current.current_phase == SeasonPhase.ADVANTAGE_SELECTION.value
    for p in driver.players():
        assert len(driver.active_roster(p.id)) == ROSTER_SIZE
    assert len(driver.open_prompts()) == len(driver.draft.list_prompts(db_conn, season.id)) - ROSTER_SIZE


def test_draft_rejects_out_of_turn_pick(db_conn, season, users, driver):
    driver.seasons.start_draft(db_conn, season.id, users["comm"].id)
    first = driver.players()[0]
    not_first = next(u for u in (users["alice"], users["bob"]) if u.id != first.user_id)
    with pytest.raises(Unauthorized):
        driver.draft.select_prompt(db_conn, season.id, driver.open_prompts()[0].id, not_first.id)


def test_draft_rejects_duplicate_artist(db_conn, season, users, driver):
    comm = users["comm"].id
    driver.seasons.start_draft(db_conn, season.id, comm)
    driver.draft.select_prompt(db_conn, season.id, driver.open_prompts()[0].id, comm)
    driver.draft.draft_artist(db_conn, season.id, "Burial", comm)
    with pytest.raises(DuplicateEntity):
        driver.draft.draft_artist(db_conn, season.id, "Burial", comm)


def test_ready_for_week_one_needs_locked_board(db_conn, season, users, driver, season_service):
    comm = users["comm"].id
    driver.build_board(lock=False)
    season_service.start_draft(db_conn, season.id, comm)
    driver.run_draft()
    with pytest.raises(InvalidTransition):
        season_service.mark_ready_for_week_1(db_conn, season.id, comm)
    driver.board.lock(db_conn, season.id, comm)
    assert season_service.mark_ready_for_week_1(db_conn, season.id, comm).current_phase == (
        SeasonPhase.READY_FOR_WEEK_1.value
    )


def test_start_season_moves_to_week_one(db_conn, driver):
    season = driver.start_season()
    assert season.current_phase == SeasonPhase.IN_SEASON_CHALLENGE_SELECTION.value
    assert season.current_week == 1
    assert season.status == SeasonStatus.IN_PROGRESS.value
    assert season.started_at is not None


def test_starting_advantage_once_per_player(db_conn, season, users, driver):
    driver.build_advantage_board()
    driver.seasons.start_draft(db_conn, season.id, users["comm"].id)
    driver.run_draft()
    alice = next(p for p in driver.players() if p.user_id == users["alice"].id)
    item = driver.weekly.grant_advantage(db_conn, season.id, alice.id, "DOUBLE_VOTE", users["alice"].id)
    assert item.source == "STARTING"
    assert item.earned_week == 0
    with pytest.raises(DuplicateEntity):
        driver.weekly.grant_advantage(db_conn, season.id, alice.id, "VETO", users["alice"].id)


def test_starting_advantage_comes_from_first_tier(db_conn, season, users, driver):
    driver.build_advantage_board()
    driver.seasons.start_draft(db_conn, season.id, users["comm"].id)
    driver.run_draft()
    bob = next(p for p in driver.players() if p.user_id == users["bob"].id)
    with pytest.raises(ValueError):
        driver.weekly.grant_advantage(db_conn, season.id, bob.id, "SECOND_CHANCE", users["bob"].id)
    with pytest.raises(NotFound):
        driver.weekly.grant_advantage(db_conn, season.id, bob.id, "TIME_TRAVEL", users["bob"].id)
    assert driver.weekly.list_inventory(db_conn, season.id) == []
    item = driver.weekly.grant_advantage(db_conn, season.id, bob.id, "VETO", users["bob"].id)
    assert item.advantage_code == "VETO"


def test_advantage_grant_needs_a_board(db_conn, season, users, driver):
    driver.seasons.start_draft(db_conn, season.id, users["comm"].id)
    driver.run_draft()
    alice = next(p for p in driver.players() if p.user_id == users["alice"].id)
    with pytest.raises(NotFound):
        driver.weekly.grant_advantage(db_conn, season.id, alice.id, "DOUBLE_VOTE", users["alice"].id)


def test_weekly_advantage_may_come_from_any_tier(db_conn, season, users, driver):
    driver.build_advantage_board()
    driver.start_season()
    driver.play_to_week_end()
    alice = next(p for p in driver.players() if p.user_id == users["alice"].id)
    item = driver.weekly.grant_advantage(db_conn, season.id, alice.id, "SPOTLIGHT", users["comm"].id)
    assert item.source == "WEEKLY"
    assert item.earned_week == 1


def test_start_presentation_waits_for_playlists(db_conn, users, driver):
    driver.start_season()
    driver.select_challenge()
    with pytest.raises(InvalidTransition):
        driver.seasons.start_presentation(db_conn, driver.season_id, users["comm"].id)


def test_players_cannot_vote_for_themselves(db_conn, users, driver):
    driver.start_season()
    driver.select_challenge()
    driver.submit_playlists()
    driver.present_all()
    driver.seasons.open_voting(db_conn, driver.season_id, users["comm"].id)
    alice = next(p for p in driver.players() if p.user_id == users["alice"].id)
    session = driver.weekly.get_session(db_conn, driver.season_id, 1)
    with pytest.raises(InvalidTransition):
        driver.weekly.cast_vote(db_conn, driver.season_id, session.categories[0].id, alice.id, users["alice"].id)


def test_close_voting_needs_every_vote(db_conn, users, driver):
    driver.start_season()
    driver.select_challenge()
    driver.submit_playlists()
    driver.present_all()
    driver.seasons.open_voting(db_conn, driver.season_id, users["comm"].id)
    with pytest.raises(InvalidTransition):
        driver.seasons.close_voting(db_conn, driver.season_id, users["comm"].id)


def test_full_week_cycle_reaches_next_week(db_conn, driver):
    driver.start_season()
    season = driver.play_week()
    assert season.current_phase == SeasonPhase.IN_SEASON_CHALLENGE_SELECTION.value
    assert season.current_week == 2
    types = [e["event_type"] for e in driver.seasons.list_events(db_conn, driver.season_id)]
    assert events.ROSTER_EVOLUTION_COMPLETE in types
    assert events.WEEKLY_RESULTS in types


def test_season_completes_after_last_week(db_conn, users, driver):
    driver.start_season()
    driver.play_until_week(CHALLENGE_COUNT)
    driver.play_to_week_end()
    driver.run_roster_evolution()
    season = driver.finish_week()
    assert season.status == SeasonStatus.COMPLETED.value
    assert season.current_week == CHALLENGE_COUNT
    with pytest.raises(InvalidTransition):
        driver.seasons.advance_week(db_conn, driver.season_id, users["comm"].id)


def test_season_view_lists_allowed_phases_and_checkpoints(db_conn, season, driver):
    view = driver.seasons.get_season_view(db_conn, season.id)
    assert view["allowed_next_phases"] == [SeasonPhase.DRAFTING.value]
    assert view["checkpoints"] == []
    assert len(view["players"]) == 3


def test_prompts_filter_by_category(db_conn, season, users, driver):
    comm = users["comm"].id
    era = driver.draft.add_prompt(db_conn, season.id, "Eighties synth", comm, category=" Era ")
    blank = driver.draft.add_prompt(db_conn, season.id, "Anything goes", comm, category="  ")
    assert era.category == "Era"
    assert blank.category == DEFAULT_PROMPT_CATEGORY
    assert [p.id for p in driver.draft.list_prompts(db_conn, season.id, category="Era")] == [era.id]
    assert len(driver.draft.list_prompts(db_conn, season.id, category=DEFAULT_PROMPT_CATEGORY)) == PROMPT_COUNT + 1
