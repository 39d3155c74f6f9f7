"""
Leagues, membership and season creation.
The user who creates a league is its commissioner.
"""
from __future__ import annotations

import logging
import sqlite3

from label_league.models import League, LeagueMember, MemberRole, Season, SeasonPhase, SeasonPlayer
from label_league.persistence.db import unit_of_work
from label_league.persistence.repositories import LeagueRepository, SeasonRepository, UserRepository
from label_league.services.access import found, is_commissioner, load_league, load_season, require_league_member
from label_league.services.errors import DuplicateEntity, InvalidTransition, NotFound, Unauthorized

logger = logging.getLogger(__name__)

# Members that get a label (season player) in every new season
_PLAYING_ROLES = {MemberRole.COMMISSIONER.value, MemberRole.PLAYER.value}


class LeagueService:
    def __init__(self) -> None:
        self._user_repo = UserRepository()
        self._league_repo = LeagueRepository()
        self._season_repo = SeasonRepository()

    def create_league(self, conn: sqlite3.Connection, name: str, creator_id: str) -> League:
        name = name.strip()
        if not name:
            raise ValueError("League name is required")
        if self._user_repo.get(conn, creator_id) is None:
            raise NotFound(f"User not found: {creator_id}")
        with unit_of_work(conn):
            league = self._league_repo.create(conn, name, creator_id)
            self._league_repo.add_member(conn, league.id, creator_id, MemberRole.COMMISSIONER.value)
        logger.info("LEAGUE_CREATED league_id=%s commissioner=%s", league.id, creator_id)
        return league

    def list_leagues(self, conn: sqlite3.Connection, user_id: str) -> list[League]:
        return self._league_repo.list_for_user(conn, user_id)

    def add_member(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        email: str,
        requester_id: str | None,
        role: MemberRole = MemberRole.PLAYER,
    ) -> LeagueMember:
        """Commissioner adds an existing user by email."""
        league = load_league(conn, league_id)
        if not is_commissioner(conn, league.id, requester_id):
            raise Unauthorized("Only the league commissioner can add members")
        user = self._user_repo.get_by_email(conn, email.strip())
        if user is None:
            raise NotFound(f"No user with email {email}")
        with unit_of_work(conn):
            if self._league_repo.get_member(conn, league_id, user.id) is not None:
                raise DuplicateEntity(f"{user.username} is already a member of this league")
            member = self._league_repo.add_member(conn, league_id, user.id, role.value)
        logger.info("LEAGUE_MEMBER_ADDED league_id=%s user_id=%s role=%s", league_id, user.id, role.value)
        return member

    def list_members(self, conn: sqlite3.Connection, league_id: str, requester_id: str | None) -> list[LeagueMember]:
        load_league(conn, league_id)
        require_league_member(conn, league_id, requester_id)
        return self._league_repo.list_members(conn, league_id)

    # ---------- Seasons ----------

    def create_season(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        name: str,
        roster_size: int,
        challenge_count: int,
        requester_id: str | None,
    ) -> Season:
        """
        New season in SEASON_SETUP / week 0. Every commissioner or player member
        joins as a season player with a default label name; spectators do not.
        """
        name = name.strip()
        if not name:
            raise ValueError("Season name is required")
        if roster_size < 1:
            raise ValueError("roster_size must be >= 1")
        if challenge_count < 1:
            raise ValueError("challenge_count must be >= 1")
        league = load_league(conn, league_id)
        if not is_commissioner(conn, league.id, requester_id):
            raise Unauthorized("Only the league commissioner can create seasons")
        with unit_of_work(conn):
            season = self._season_repo.create(conn, league_id, name, roster_size, challenge_count)
            for m in self._league_repo.list_members(conn, league_id):
                if m.role not in _PLAYING_ROLES:
                    continue
                user = found(self._user_repo.get(conn, m.user_id), "User")
                self._season_repo.add_player(conn, season.id, user.id, f"{user.display_name}'s Label")
        logger.info("SEASON_CREATED league_id=%s season_id=%s", league_id, season.id)
        return season

    def list_seasons(self, conn: sqlite3.Connection, league_id: str, requester_id: str | None) -> list[Season]:
        load_league(conn, league_id)
        require_league_member(conn, league_id, requester_id)
        return self._season_repo.list_by_league(conn, league_id)

    def join_season(self, conn: sqlite3.Connection, season_id: str, requester_id: str) -> SeasonPlayer:
        """A member who joined the league after the season was created takes a label before the draft."""
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            member = self._league_repo.get_member(conn, season.league_id, requester_id)
            if member is None or member.role not in _PLAYING_ROLES:
                raise Unauthorized("Only league players can join a season")
            if season.current_phase != SeasonPhase.SEASON_SETUP.value:
                raise InvalidTransition("Players can only join during season setup")
            if self._season_repo.get_player_by_user(conn, season_id, requester_id) is not None:
                raise DuplicateEntity("Already a player in this season")
            user = found(self._user_repo.get(conn, requester_id), "User")
            return self._season_repo.add_player(conn, season_id, user.id, f"{user.display_name}'s Label")
