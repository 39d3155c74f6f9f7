"""
Weekly scoring: voting points, placements and victory points.

Voting points = sum over votes of the voted category's point value.
Placements use sports-style ties: equal points share a placement and the next
placement skips (1, 1, 3). Victory points come from config.VICTORY_POINTS.
Season rank is dense over total points (ties share a rank, no gap).
"""
from __future__ import annotations

from label_league.config import VICTORY_POINTS
from label_league.models import AwardCategory, Vote


def tally_voting_points(
    player_ids: list[str], categories: list[AwardCategory], votes: list[Vote]
) -> dict[str, int]:
    points_by_category = {c.id: c.points for c in categories}
    totals = {pid: 0 for pid in player_ids}
    for v in votes:
        if v.nominee_player_id in totals:
            totals[v.nominee_player_id] += points_by_category.get(v.category_id, 0)
    return totals


def placements_with_ties(points: dict[str, int]) -> dict[str, int]:
    """Highest points is 1st; ties share the better placement and skip the next ones."""
    ordered = sorted(points.items(), key=lambda kv: -kv[1])
    placements: dict[str, int] = {}
    prev_points: int | None = None
    prev_place = 0
    for i, (pid, pts) in enumerate(ordered):
        if pts != prev_points:
            prev_place = i + 1
            prev_points = pts
        placements[pid] = prev_place
    return placements


def victory_points_for(placement: int) -> int:
    return VICTORY_POINTS.get(placement, 0)


def dense_ranks(totals: dict[str, int]) -> dict[str, int]:
    distinct = sorted(set(totals.values()), reverse=True)
    rank_of = {pts: i + 1 for i, pts in enumerate(distinct)}
    return {pid: rank_of[pts] for pid, pts in totals.items()}
