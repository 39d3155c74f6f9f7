"""
Lookups and requester guards shared by the season services.
Every mutating operation receives an explicit requester user id.
"""
from __future__ import annotations

import sqlite3
from typing import TypeVar

from label_league.models import League, MemberRole, Season, SeasonPhase, SeasonPlayer, SeasonStatus
from label_league.persistence.repositories import LeagueRepository, SeasonRepository
from label_league.services.errors import InvalidTransition, NotFound, Unauthorized

_league_repo = LeagueRepository()
_season_repo = SeasonRepository()

T = TypeVar("T")


def found(value: T | None, what: str) -> T:
    """Unwrap a repository lookup; NotFound when the row is gone."""
    if value is None:
        raise NotFound(f"{what} not found")
    return value


def load_league(conn: sqlite3.Connection, league_id: str) -> League:
    league = _league_repo.get(conn, league_id)
    if league is None:
        raise NotFound(f"League not found: {league_id}")
    return league


def load_season(conn: sqlite3.Connection, season_id: str) -> Season:
    season = _season_repo.get(conn, season_id)
    if season is None:
        raise NotFound(f"Season not found: {season_id}")
    return season


def is_commissioner(conn: sqlite3.Connection, league_id: str, user_id: str | None) -> bool:
    if not user_id:
        return False
    member = _league_repo.get_member(conn, league_id, user_id)
    return member is not None and member.role == MemberRole.COMMISSIONER.value


def require_commissioner(conn: sqlite3.Connection, season: Season, requester_id: str | None) -> None:
    if not is_commissioner(conn, season.league_id, requester_id):
        raise Unauthorized("Only the league commissioner can perform this action")


def require_league_member(conn: sqlite3.Connection, league_id: str, requester_id: str | None) -> None:
    if not requester_id or _league_repo.get_member(conn, league_id, requester_id) is None:
        raise Unauthorized("Not a member of this league")


def require_phase(season: Season, *phases: SeasonPhase) -> None:
    if season.status == SeasonStatus.COMPLETED.value:
        raise InvalidTransition("Season is completed")
    if season.current_phase not in {p.value for p in phases}:
        allowed = ", ".join(p.value for p in phases)
        raise InvalidTransition(f"Season must be in {allowed} (current: {season.current_phase})")


def resolve_player(
    conn: sqlite3.Connection,
    season: Season,
    requester_id: str | None,
    player_id: str | None = None,
) -> SeasonPlayer:
    """
    Season player the requester acts as.
    Without player_id: the requester's own player. With player_id: the requester
    must own that player or be the commissioner.
    """
    if not requester_id:
        raise Unauthorized("Login required")
    if player_id is None:
        player = _season_repo.get_player_by_user(conn, season.id, requester_id)
        if player is None:
            raise Unauthorized("Requester is not a player in this season")
        return player
    player = _season_repo.get_player(conn, player_id)
    if player is None or player.season_id != season.id:
        raise NotFound(f"Season player not found: {player_id}")
    if player.user_id != requester_id and not is_commissioner(conn, season.league_id, requester_id):
        raise Unauthorized("Cannot act for another player")
    return player


def acting_as_commissioner(conn: sqlite3.Connection, season: Season, requester_id: str | None, player: SeasonPlayer) -> bool:
    """True when the commissioner acts on behalf of someone else's player."""
    return player.user_id != requester_id and is_commissioner(conn, season.league_id, requester_id)
