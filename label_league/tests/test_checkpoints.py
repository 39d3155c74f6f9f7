"""
Tests for checkpoint availability and rollback cascades.
"""
from __future__ import annotations

import threading

import pytest

from label_league.models import EvolutionPhase, PoolEntryReason, PromptStatus, SeasonPhase, SeasonStatus
from label_league.persistence.db import get_connection
from label_league.persistence.repositories import RosterRepository
from label_league.services import events
from label_league.services.checkpoints import (
    CheckpointService,
    checkpoint_candidates,
    list_available_checkpoints,
    parse_checkpoint_id,
)
from label_league.services.challenge_board import ChallengeBoardService
from label_league.services.errors import InvalidTransition, RollbackFailed, Unauthorized

from conftest import ROSTER_SIZE

P = SeasonPhase


@pytest.fixture
def checkpoints():
    return CheckpointService()


def _available(phase, week, status):
    return [c.id for c in list_available_checkpoints(phase.value, week, status.value)]


def _snapshot(driver):
    """Active roster entry ids per player, pool artists by status, standings."""
    players = driver.players()
    return {
        "rosters": {p.id: sorted(e.id for e in driver.active_roster(p.id)) for p in players},
        "pool": sorted(e.artist_id for e in driver.pool.list_pool(driver.conn, driver.season_id)),
        "banished": sorted(e.artist_id for e in driver.pool.list_banished(driver.conn, driver.season_id)),
        "points": {p.id: p.total_points for p in players},
        "open_prompts": sorted(p.id for p in driver.open_prompts()),
    }


# ---------- availability ----------


def test_parse_checkpoint_ids():
    assert parse_checkpoint_id("DRAFT") == ("DRAFT", None)
    assert parse_checkpoint_id("WEEK_3") == ("WEEK", 3)
    assert parse_checkpoint_id("WEEK_2_PRESENTATION") == ("PRESENTATION", 2)
    assert parse_checkpoint_id("WEEK_2_ROSTER_EVOLUTION") == ("ROSTER_EVOLUTION", 2)
    with pytest.raises(InvalidTransition):
        parse_checkpoint_id("WEEK_X")


def test_nothing_available_during_setup():
    assert _available(P.SEASON_SETUP, 0, SeasonStatus.PRESEASON) == []


def test_drafting_offers_only_preseason():
    assert _available(P.DRAFTING, 0, SeasonStatus.PRESEASON) == ["PRESEASON"]


def test_advantage_selection_offers_preseason_and_draft():
    assert _available(P.ADVANTAGE_SELECTION, 0, SeasonStatus.PRESEASON) == ["PRESEASON", "DRAFT"]


def test_week_one_selection():
    ids = _available(P.IN_SEASON_CHALLENGE_SELECTION, 1, SeasonStatus.IN_PROGRESS)
    assert ids == ["PRESEASON", "DRAFT", "ADVANTAGE_SELECTION", "START_OF_SEASON", "WEEK_1"]


def test_week_five_offers_every_started_week():
    ids = _available(P.PLAYLIST_SUBMISSION, 5, SeasonStatus.IN_PROGRESS)
    assert [f"WEEK_{n}" for n in range(1, 6)] == [i for i in ids if i.startswith("WEEK_") and i[5:].isdigit()]
    assert "WEEK_5_PRESENTATION" not in ids
    assert "WEEK_5_ROSTER_EVOLUTION" not in ids


def test_presentation_and_evolution_checkpoints_follow_phase():
    voting = _available(P.VOTING, 2, SeasonStatus.IN_PROGRESS)
    assert "WEEK_2_PRESENTATION" in voting
    assert "WEEK_2_ROSTER_EVOLUTION" not in voting
    evolution = _available(P.ROSTER_EVOLUTION, 2, SeasonStatus.IN_PROGRESS)
    assert "WEEK_2_PRESENTATION" in evolution
    assert "WEEK_2_ROSTER_EVOLUTION" in evolution
    assert "WEEK_1_PRESENTATION" not in evolution


def test_candidates_carry_unavailable_entries():
    candidates = {c.id: c for c in checkpoint_candidates(P.DRAFTING.value, 0, SeasonStatus.PRESEASON.value)}
    assert candidates["DRAFT"].is_available is False
    assert candidates["START_OF_SEASON"].is_available is False
    assert candidates["PRESEASON"].implications


# ---------- rollback guards ----------


def test_rollback_requires_commissioner(db_conn, season, users, driver, checkpoints):
    driver.seasons.start_draft(db_conn, season.id, users["comm"].id)
    with pytest.raises(Unauthorized):
        checkpoints.rollback_to_checkpoint(db_conn, season.id, "PRESEASON", users["alice"].id)
    assert driver.season().current_phase == P.DRAFTING.value


def test_rollback_to_unavailable_checkpoint_rejected(db_conn, season, users, driver, checkpoints):
    driver.seasons.start_draft(db_conn, season.id, users["comm"].id)
    with pytest.raises(InvalidTransition):
        checkpoints.rollback_to_checkpoint(db_conn, season.id, "DRAFT", users["comm"].id)
    with pytest.raises(InvalidTransition):
        checkpoints.rollback_to_checkpoint(db_conn, season.id, "WEEK_1", users["comm"].id)


# ---------- cascades ----------


def test_rollback_to_preseason_clears_draft(db_conn, season, users, driver, checkpoints):
    driver.seasons.start_draft(db_conn, season.id, users["comm"].id)
    driver.run_draft()
    out = checkpoints.rollback_to_checkpoint(db_conn, season.id, "PRESEASON", users["comm"].id)
    assert out["phase"] == P.SEASON_SETUP.value
    assert out["week"] == 0
    assert out["cleared"]["roster_entries"] == 3 * ROSTER_SIZE
    assert all(p.draft_position is None for p in driver.players())
    assert all(driver.active_roster(p.id) == [] for p in driver.players())
    assert len(driver.open_prompts()) == len(driver.draft.list_prompts(db_conn, season.id))
    assert driver.draft.get_state(db_conn, season.id) is None


def test_rollback_to_draft_keeps_order_and_restarts(db_conn, season, users, driver, checkpoints):
    driver.seasons.start_draft(db_conn, season.id, users["comm"].id)
    order = [p.id for p in driver.players()]
    driver.run_draft()
    out = checkpoints.rollback_to_checkpoint(db_conn, season.id, "DRAFT", users["comm"].id)
    assert out["phase"] == P.DRAFTING.value
    assert [p.id for p in driver.players()] == order
    state = driver.draft.get_state(db_conn, season.id)
    assert (state.current_round, state.current_pick_index, state.is_complete) == (1, 0, False)
    assert state.draft_order == order
    # the draft can be replayed from scratch
    driver.run_draft()
    assert driver.season().current_phase == P.ADVANTAGE_SELECTION.value


def test_rollback_to_advantage_selection_keeps_draft(db_conn, season, users, driver, checkpoints):
    driver.start_season()
    drafted = {p.id: sorted(e.id for e in driver.active_roster(p.id)) for p in driver.players()}
    driver.play_week()
    out = checkpoints.rollback_to_checkpoint(db_conn, season.id, "ADVANTAGE_SELECTION", users["comm"].id)
    current = driver.season()
    assert (current.current_phase, current.current_week, current.status) == (
        P.ADVANTAGE_SELECTION.value, 0, SeasonStatus.PRESEASON.value
    )
    assert out["status"] == SeasonStatus.PRESEASON.value
    assert {p.id: sorted(e.id for e in driver.active_roster(p.id)) for p in driver.players()} == drafted
    assert driver.weekly.list_selections(db_conn, season.id) == []
    assert driver.weekly.list_inventory(db_conn, season.id) == []
    assert driver.pool.list_pool(db_conn, season.id) == []
    assert all(p.total_points == 0 and p.rank is None for p in driver.players())


def test_rollback_week_three_from_week_five(db_conn, season, users, driver, checkpoints):
    driver.start_season()
    driver.play_until_week(3)
    before = _snapshot(driver)
    driver.play_until_week(5)
    assert _snapshot(driver) != before

    out = checkpoints.rollback_to_checkpoint(db_conn, season.id, "WEEK_3", users["comm"].id)
    assert (out["phase"], out["week"], out["status"]) == (
        P.IN_SEASON_CHALLENGE_SELECTION.value, 3, SeasonStatus.IN_PROGRESS.value
    )
    assert _snapshot(driver) == before
    assert [s.week for s in driver.weekly.list_selections(db_conn, season.id)] == [1, 2]
    assert {r.week for r in driver.weekly.list_results(db_conn, season.id)} == {1, 2}
    assert driver.evolution.get_state(db_conn, season.id, week=3) is None

    types = [e["event_type"] for e in driver.seasons.list_events(db_conn, season.id)]
    assert types[-1] == events.ROLLBACK_TO_CHECKPOINT

    # week 3 plays again
    assert driver.play_week().current_week == 4


def test_rollback_to_presentation_resets_voting(db_conn, season, users, driver, checkpoints):
    driver.start_season()
    driver.select_challenge()
    driver.submit_playlists()
    driver.present_all()
    driver.seasons.open_voting(db_conn, season.id, users["comm"].id)

    out = checkpoints.rollback_to_checkpoint(db_conn, season.id, "WEEK_1_PRESENTATION", users["comm"].id)
    assert out["phase"] == P.PLAYLIST_PRESENTATION.value
    assert driver.weekly.get_session(db_conn, season.id, 1) is None
    presentation = driver.weekly.get_presentation(db_conn, season.id, 1)
    assert presentation.presented == []
    assert len(driver.weekly.list_playlists(db_conn, season.id, 1)) == 3
    assert len(driver.weekly.list_selections(db_conn, season.id)) == 1


def test_rollback_to_roster_evolution_restarts_it(db_conn, season, users, driver, checkpoints):
    driver.start_season()
    driver.play_to_week_end()
    before = _snapshot(driver)
    driver.seasons.begin_roster_evolution(db_conn, season.id, users["comm"].id)
    state = driver.evolution.get_state(db_conn, season.id)
    while state.phase == EvolutionPhase.CUTS.value:
        driver.make_next_cut(state)
        state = driver.evolution.get_state(db_conn, season.id)
    prompt = driver.open_prompts()[0]
    driver.evolution.select_redraft_prompt(db_conn, season.id, prompt.id, users["comm"].id)
    driver.evolution.redraft_artist(db_conn, season.id, "Four Tet", users["comm"].id)

    checkpoints.rollback_to_checkpoint(db_conn, season.id, "WEEK_1_ROSTER_EVOLUTION", users["comm"].id)
    state = driver.evolution.get_state(db_conn, season.id)
    assert state.phase == EvolutionPhase.CUTS.value
    assert state.prompt_id is None
    assert _snapshot(driver) == before
    prompts = {p.id: p for p in driver.draft.list_prompts(db_conn, season.id)}
    assert prompts[prompt.id].status == PromptStatus.OPEN.value

    week_events = [e for e in driver.seasons.list_events(db_conn, season.id) if e["week"] == 1]
    evolution_types = [e["event_type"] for e in week_events if e["event_type"] in events.ROSTER_EVOLUTION_EVENTS]
    assert evolution_types == [events.ROSTER_EVOLUTION_STARTED]

    # the restarted evolution runs to completion
    assert driver.complete_roster_evolution().phase == EvolutionPhase.COMPLETE.value


def _pool_drafted_entries(driver):
    return [e for p in driver.players() for e in driver.active_roster(p.id) if e.acquired_via == "POOL"]


def test_rollback_roster_evolution_returns_pool_picks(db_conn, season, users, driver, checkpoints):
    driver.start_season()
    driver.play_week()
    driver.play_to_week_end()
    before = _snapshot(driver)
    driver.run_roster_evolution()
    assert driver.evolution.get_state(db_conn, season.id).includes_pool_draft is True
    picked = _pool_drafted_entries(driver)
    assert picked

    checkpoints.rollback_to_checkpoint(db_conn, season.id, "WEEK_2_ROSTER_EVOLUTION", users["comm"].id)
    assert _snapshot(driver) == before
    assert _pool_drafted_entries(driver) == []
    assert driver.evolution.get_state(db_conn, season.id).phase == EvolutionPhase.CUTS.value

    assert driver.complete_roster_evolution().phase == EvolutionPhase.COMPLETE.value
    assert driver.finish_week().current_week == 3


def test_rollback_chaos_week_evolution_restores_opponent_cuts(db_conn, season, users, driver, checkpoints):
    driver.start_season()
    driver.play_until_week(4)
    driver.play_to_week_end()
    before = _snapshot(driver)
    driver.run_roster_evolution()
    cuts = [e for e in driver.seasons.list_events(db_conn, season.id)
            if e["event_type"] == events.ARTIST_CUT and e["week"] == 4]
    assert PoolEntryReason.OPPONENT_CUT.value in {e["payload"]["reason"] for e in cuts}

    checkpoints.rollback_to_checkpoint(db_conn, season.id, "WEEK_4_ROSTER_EVOLUTION", users["comm"].id)
    assert _snapshot(driver) == before
    assert all(e.entered_week < 4 for e in driver.pool.list_pool(db_conn, season.id))
    assert driver.pool.list_banished(db_conn, season.id) == []

    # replayed chaos week still banishes the old pool when it closes
    driver.complete_roster_evolution()
    driver.seasons.finish_roster_evolution(db_conn, season.id, users["comm"].id)
    assert driver.pool.list_banished(db_conn, season.id)


def test_failed_cascade_leaves_season_unchanged(db_conn, season, users, driver, checkpoints, monkeypatch):
    driver.start_season()
    driver.play_until_week(3)
    before = _snapshot(driver)
    selections = [s.id for s in driver.weekly.list_selections(db_conn, season.id)]
    event_count = len(driver.seasons.list_events(db_conn, season.id))

    def broken(self, conn, season_id, week):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(RosterRepository, "delete_acquired_from_week", broken)
    with pytest.raises(RollbackFailed):
        checkpoints.rollback_to_checkpoint(db_conn, season.id, "WEEK_2", users["comm"].id)

    current = driver.season()
    assert (current.current_phase, current.current_week, current.status) == (
        P.IN_SEASON_CHALLENGE_SELECTION.value, 3, SeasonStatus.IN_PROGRESS.value
    )
    assert _snapshot(driver) == before
    assert [s.id for s in driver.weekly.list_selections(db_conn, season.id)] == selections
    assert len(driver.seasons.list_events(db_conn, season.id)) == event_count
    assert not db_conn.in_transaction


def test_concurrent_board_locks_serialize(db_conn, season, users, driver):
    driver.build_board(lock=False)
    barrier = threading.Barrier(4)
    results = []
    results_guard = threading.Lock()

    def lock_board():
        conn = get_connection()
        try:
            barrier.wait()
            try:
                ChallengeBoardService().lock(conn, season.id, users["comm"].id)
                outcome = "ok"
            except InvalidTransition:
                outcome = "rejected"
        finally:
            conn.close()
        with results_guard:
            results.append(outcome)

    threads = [threading.Thread(target=lock_board) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(results) == ["ok", "rejected", "rejected", "rejected"]
    assert driver.board.get_board(db_conn, season.id).is_locked is True
    locks = [e for e in driver.seasons.list_events(db_conn, season.id) if e["event_type"] == events.BOARD_LOCKED]
    assert len(locks) == 1
