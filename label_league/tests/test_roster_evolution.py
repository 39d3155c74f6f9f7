"""
Tests for weekly roster evolution: settings, growth and chaos cut rules,
redraft order and the pool draft.
"""
from __future__ import annotations

import pytest

from label_league.config import DEFAULT_EVOLUTION_WEEKS
from label_league.models import EvolutionPhase, PoolEntryReason, PromptStatus, WeekType
from label_league.services.errors import InvalidTransition, Unauthorized
from label_league.services.roster_evolution import build_pick_sequence, default_week_types

from conftest import ROSTER_SIZE


def _begin(driver, **settings):
    """Play week 1 to week end (player 0 wins) and open roster evolution."""
    driver.start_season()
    if settings:
        driver.evolution.save_settings(driver.conn, driver.season_id, settings, driver.comm)
    driver.play_to_week_end(winner_index=0)
    driver.seasons.begin_roster_evolution(driver.conn, driver.season_id, driver.comm)
    return driver.evolution.get_state(driver.conn, driver.season_id)


def _cut(driver, cutter, owner, index=0):
    artist_id = driver.active_roster(owner.id)[index].artist_id
    return driver.evolution.cut_artist(driver.conn, driver.season_id, artist_id, driver.comm, player_id=cutter.id)


def test_default_week_types_make_every_fourth_week_chaos():
    types = default_week_types(DEFAULT_EVOLUTION_WEEKS)
    assert len(types) == DEFAULT_EVOLUTION_WEEKS
    assert [w for w, t in types.items() if t == WeekType.CHAOS.value] == [4, 8]


def test_pick_sequence_goes_round_by_round():
    assert build_pick_sequence(["a", "b", "c"], {"a": 1, "b": 2, "c": 0}) == ["a", "b", "b"]
    assert build_pick_sequence(["a", "b"], {"a": 0, "b": 0}) == []


def test_settings_default_and_partial_update(db_conn, season, users, driver):
    settings = driver.evolution.get_settings(db_conn, season.id)
    assert settings.week_type(4) == WeekType.CHAOS.value
    assert settings.self_cut_count == 1
    updated = driver.evolution.save_settings(db_conn, season.id, {"week_types": {"2": "SKIP"}, "redraft_count": 2},
                                             users["comm"].id)
    assert updated.week_type(2) == WeekType.SKIP.value
    assert updated.redraft_count == 2
    assert driver.evolution.get_settings(db_conn, season.id).to_dict() == updated.to_dict()


def test_settings_validation(db_conn, season, users, driver):
    with pytest.raises(Unauthorized):
        driver.evolution.save_settings(db_conn, season.id, {"redraft_count": 2}, users["alice"].id)
    with pytest.raises(ValueError):
        driver.evolution.save_settings(db_conn, season.id, {"self_cut_count": -1}, users["comm"].id)
    with pytest.raises(ValueError):
        driver.evolution.save_settings(db_conn, season.id, {"week_types": {"3": "PARTY"}}, users["comm"].id)


def test_started_week_type_is_frozen(db_conn, users, driver):
    _begin(driver)
    with pytest.raises(InvalidTransition):
        driver.evolution.save_settings(db_conn, driver.season_id, {"week_types": {"1": "CHAOS"}}, users["comm"].id)
    # later weeks can still change
    driver.evolution.save_settings(db_conn, driver.season_id, {"week_types": {"5": "SKIP"}}, users["comm"].id)


def test_growth_week_starts_with_cuts_in_reverse_standings(db_conn, driver):
    state = _begin(driver)
    p0, p1, p2 = driver.players()
    assert state.week_type == WeekType.GROWTH.value
    assert state.phase == EvolutionPhase.CUTS.value
    assert state.standings_order == [p2.id, p1.id, p0.id]
    assert state.prompt_picker_id == p2.id
    assert state.includes_pool_draft is False


def test_growth_week_allows_only_own_cuts(db_conn, driver):
    _begin(driver)
    p0, p1, _ = driver.players()
    with pytest.raises(Unauthorized):
        _cut(driver, p0, p1)
    entry = _cut(driver, p0, p0)
    assert entry.status == "CUT"
    assert entry.cut_at_week == 1
    with pytest.raises(InvalidTransition):
        _cut(driver, p0, p0)
    pool = driver.pool.list_pool(db_conn, driver.season_id)
    assert [(e.artist_id, e.entered_via, e.entered_week) for e in pool] == [
        (entry.artist_id, PoolEntryReason.SELF_CUT.value, 1)
    ]


def test_growth_week_redraft_and_finish(db_conn, users, driver):
    state = _begin(driver)
    p0, p1, p2 = driver.players()
    for p in (p0, p1, p2):
        _cut(driver, p, p)
    state = driver.evolution.get_state(db_conn, driver.season_id)
    assert state.phase == EvolutionPhase.PROMPT_SELECTION.value

    prompt = driver.open_prompts()[0]
    outsider = next(u for u in (users["alice"], users["bob"]) if u.id != p2.user_id)
    with pytest.raises(Unauthorized):
        driver.evolution.select_redraft_prompt(db_conn, driver.season_id, prompt.id, outsider.id)
    state = driver.evolution.select_redraft_prompt(db_conn, driver.season_id, prompt.id, p2.user_id)
    assert state.phase == EvolutionPhase.REDRAFT.value
    assert state.redraft_sequence == [p2.id, p1.id, p0.id]

    view = driver.evolution.get_view(db_conn, driver.season_id)
    assert view["current_redraft_picker_id"] == p2.id
    for _ in range(3):
        driver.evolution.redraft_artist(db_conn, driver.season_id, driver.next_artist_name(), driver.comm)
    state = driver.evolution.get_state(db_conn, driver.season_id)
    assert state.phase == EvolutionPhase.COMPLETE.value
    for p in (p0, p1, p2):
        assert len(driver.active_roster(p.id)) == ROSTER_SIZE

    driver.seasons.finish_roster_evolution(db_conn, driver.season_id, driver.comm)
    retired = driver.draft.list_prompts(db_conn, driver.season_id, status=PromptStatus.RETIRED.value)
    assert prompt.id in {p.id for p in retired}


def test_finish_rejected_until_evolution_complete(db_conn, driver):
    _begin(driver)
    with pytest.raises(InvalidTransition):
        driver.seasons.finish_roster_evolution(db_conn, driver.season_id, driver.comm)


def test_pool_draft_week_offers_pool_picks(db_conn, driver):
    driver.start_season()
    driver.play_week()
    driver.play_to_week_end()
    driver.seasons.begin_roster_evolution(db_conn, driver.season_id, driver.comm)
    state = driver.evolution.get_state(db_conn, driver.season_id)
    assert state.week == 2
    assert state.includes_pool_draft is True

    while state.phase != EvolutionPhase.POOL_DRAFT.value:
        if state.phase == EvolutionPhase.CUTS.value:
            driver.make_next_cut(state)
        elif state.phase == EvolutionPhase.PROMPT_SELECTION.value:
            driver.evolution.select_redraft_prompt(db_conn, driver.season_id, driver.open_prompts()[0].id, driver.comm)
        else:
            driver.evolution.redraft_artist(db_conn, driver.season_id, driver.next_artist_name(), driver.comm)
        state = driver.evolution.get_state(db_conn, driver.season_id)

    assert state.pool_sequence == state.standings_order
    first = state.pool_sequence[0]
    entry = driver.pool.list_pool(db_conn, driver.season_id)[0]
    drafted = driver.evolution.draft_from_pool(db_conn, driver.season_id, entry.id, driver.comm)
    assert drafted.season_player_id == first
    assert drafted.acquired_via == "POOL"
    with pytest.raises(InvalidTransition):
        driver.evolution.draft_from_pool(db_conn, driver.season_id, entry.id, driver.comm)

    driver.evolution.skip_pool_pick(db_conn, driver.season_id, driver.comm)
    state = driver.evolution.skip_pool_pick(db_conn, driver.season_id, driver.comm)
    assert state.phase == EvolutionPhase.COMPLETE.value


def test_chaos_week_opponent_cuts_and_protection(db_conn, driver):
    _begin(driver, week_types={"1": "CHAOS"}, chaos_includes_pool_draft=False)
    p0, p1, p2 = driver.players()

    own = _cut(driver, p0, p0)
    taken = _cut(driver, p0, p1)
    pool = {e.artist_id: e for e in driver.pool.list_pool(db_conn, driver.season_id)}
    assert pool[own.artist_id].entered_via == PoolEntryReason.CHAOS_CUT.value
    assert pool[taken.artist_id].entered_via == PoolEntryReason.OPPONENT_CUT.value
    assert pool[taken.artist_id].cut_by_player_id == p0.id
    assert pool[taken.artist_id].cut_from_player_id == p1.id

    # p1 is down to the protected base
    with pytest.raises(InvalidTransition):
        _cut(driver, p2, p1)

    state = driver.complete_roster_evolution()
    assert state.phase == EvolutionPhase.COMPLETE.value
    for p in (p0, p1, p2):
        assert len(driver.active_roster(p.id)) == ROSTER_SIZE


def test_chaos_week_limits_cuts_per_opponent(db_conn, driver):
    _begin(driver, week_types={"1": "CHAOS"}, base_protection_count=1)
    p0, p1, _ = driver.players()
    _cut(driver, p0, p1)
    with pytest.raises(InvalidTransition):
        _cut(driver, p0, p1)


def test_skip_week_has_nothing_to_do(db_conn, driver):
    state = _begin(driver, week_types={"1": "SKIP"})
    assert state.phase == EvolutionPhase.COMPLETE.value
    season = driver.finish_week()
    assert season.current_week == 2
