"""
Tests for weekly scoring: voting points, tied placements, victory points and
season standings.
"""
from __future__ import annotations

from label_league.config import VICTORY_POINTS
from label_league.models import AwardCategory, SeasonPhase, Vote
from label_league.services.standings import (
    dense_ranks,
    placements_with_ties,
    tally_voting_points,
    victory_points_for,
)

CATEGORIES = [AwardCategory("best", "Best", 3), AwardCategory("deep", "Deep Cut", 1)]


def _vote(category_id, voter, nominee):
    return Vote(id=f"{voter}-{category_id}", session_id="s", category_id=category_id,
                voter_player_id=voter, nominee_player_id=nominee)


def test_tally_uses_category_points():
    votes = [_vote("best", "b", "a"), _vote("best", "c", "a"), _vote("deep", "a", "b")]
    assert tally_voting_points(["a", "b", "c"], CATEGORIES, votes) == {"a": 6, "b": 1, "c": 0}


def test_tally_ignores_unknown_nominees_and_categories():
    votes = [_vote("best", "a", "zz"), _vote("nope", "a", "b")]
    assert tally_voting_points(["a", "b"], CATEGORIES, votes) == {"a": 0, "b": 0}


def test_placements_share_on_ties_and_skip():
    assert placements_with_ties({"a": 5, "b": 5, "c": 2}) == {"a": 1, "b": 1, "c": 3}
    assert placements_with_ties({"a": 0, "b": 0}) == {"a": 1, "b": 1}


def test_victory_points_table():
    assert victory_points_for(1) == VICTORY_POINTS[1]
    assert victory_points_for(99) == 0


def test_dense_ranks_have_no_gaps():
    assert dense_ranks({"a": 10, "b": 10, "c": 3}) == {"a": 1, "b": 1, "c": 2}


def test_week_results_update_season_standings(db_conn, driver):
    driver.start_season()
    season = driver.play_to_week_end(winner_index=0)
    assert season.current_phase == SeasonPhase.IN_SEASON_WEEK_END.value

    p0, p1, p2 = driver.players()
    results = {r.season_player_id: r for r in driver.weekly.list_results(db_conn, season.id, 1)}
    # two votes for the winner and one for the runner-up in each of the 3/2/1-point categories
    assert results[p0.id].voting_points == 12
    assert results[p1.id].voting_points == 6
    assert results[p2.id].voting_points == 0
    assert [results[p.id].placement for p in (p0, p1, p2)] == [1, 2, 3]
    assert results[p0.id].victory_points == VICTORY_POINTS[1]

    assert [p.total_points for p in (p0, p1, p2)] == [VICTORY_POINTS[1], VICTORY_POINTS[2], VICTORY_POINTS[3]]
    assert [p.rank for p in (p0, p1, p2)] == [1, 2, 3]


def test_standings_accumulate_over_weeks(db_conn, driver):
    driver.start_season()
    driver.play_week(winner_index=0)
    driver.play_to_week_end(winner_index=1)
    p0, p1, _ = driver.players()
    assert p0.total_points == VICTORY_POINTS[1] + VICTORY_POINTS[3]
    assert p1.total_points == VICTORY_POINTS[2] + VICTORY_POINTS[1]
