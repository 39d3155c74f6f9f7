"""
Per-season advantage board.

Advantages from the canonical library are placed in one of ADVANTAGE_TIERS,
each tier an ordered list; a library advantage appears at most once per board.
Starting advantages are picked from tier STARTING_ADVANTAGE_TIER; weekly
grants may come from any tier. While locked, everything except unlock is rejected.
"""
from __future__ import annotations

import logging
import sqlite3

from label_league.config import ADVANTAGE_TIERS, STARTING_ADVANTAGE_TIER
from label_league.models import AdvantageBoard, BoardAdvantage, Season
from label_league.persistence.db import unit_of_work
from label_league.persistence.repositories import AdvantageBoardRepository, AdvantageRepository
from label_league.services import events
from label_league.services.access import found, load_season, require_commissioner
from label_league.services.errors import Conflict, DuplicateEntity, InvalidTransition, NotFound

logger = logging.getLogger(__name__)


def check_tier(tier: int) -> int:
    if tier not in ADVANTAGE_TIERS:
        raise ValueError(f"Advantage tier must be one of {ADVANTAGE_TIERS} (got {tier})")
    return tier


class AdvantageBoardService:
    """Board mutations are commissioner-only and each runs as one unit of work."""

    def __init__(self) -> None:
        self._board_repo = AdvantageBoardRepository()
        self._advantage_repo = AdvantageRepository()

    def get_or_create_board(self, conn: sqlite3.Connection, season_id: str) -> AdvantageBoard:
        board = self._board_repo.get_by_season(conn, season_id)
        if board is not None:
            return board
        with unit_of_work(conn, season_id):
            load_season(conn, season_id)
            if self._board_repo.get_by_season(conn, season_id) is None:
                self._board_repo.create(conn, season_id)
            return found(self._board_repo.get_by_season(conn, season_id), "Advantage board")

    def get_board(self, conn: sqlite3.Connection, season_id: str) -> AdvantageBoard | None:
        return self._board_repo.get_by_season(conn, season_id)

    # ---------- Advantages ----------

    def add_advantage(
        self, conn: sqlite3.Connection, season_id: str, tier: int, code: str, requester_id: str | None
    ) -> BoardAdvantage:
        """Appends the library advantage with this code to the end of the tier."""
        check_tier(tier)
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            canonical = self._advantage_repo.get_by_code(conn, code.strip())
            if canonical is None:
                raise NotFound(f"Canonical advantage not found: {code}")
            if board.find_code(canonical.code) is not None:
                raise DuplicateEntity(f"Advantage already on board: {canonical.code}")
            return self._board_repo.add_advantage(conn, board.id, tier, canonical.id, order=len(board.tier(tier)))

    def remove_advantage(
        self, conn: sqlite3.Connection, season_id: str, board_advantage_id: str, requester_id: str | None
    ) -> AdvantageBoard:
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            advantage = self._board_repo.get_advantage(conn, board_advantage_id)
            if advantage is None or advantage.board_id != board.id:
                raise NotFound(f"Board advantage not found: {board_advantage_id}")
            self._board_repo.delete_advantage(conn, advantage.id)
            for i, a in enumerate(self._board_repo.list_tier(conn, board.id, advantage.tier)):
                self._board_repo.set_order(conn, a.id, i)
            return found(self._board_repo.get_by_season(conn, season_id), "Advantage board")

    def reorder_advantages(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        tier: int,
        ordered_ids: list[str],
        requester_id: str | None,
    ) -> AdvantageBoard:
        """ordered_ids must be exactly the tier's advantage ids; order := index."""
        check_tier(tier)
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            current = {a.id for a in board.tier(tier)}
            if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != current:
                raise Conflict("Reorder list does not match the tier's advantages")
            for i, aid in enumerate(ordered_ids):
                self._board_repo.set_order(conn, aid, i)
            return found(self._board_repo.get_by_season(conn, season_id), "Advantage board")

    def duplicate_from_season(
        self, conn: sqlite3.Connection, season_id: str, source_season_id: str, requester_id: str | None
    ) -> AdvantageBoard:
        """Replace this season's advantages with a copy of another season's board (unlocked)."""
        if season_id == source_season_id:
            raise ValueError("Cannot duplicate a board from the same season")
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            load_season(conn, source_season_id)
            source = self._board_repo.get_by_season(conn, source_season_id)
            if source is None:
                raise NotFound("Source season has no advantage board")
            self._board_repo.delete_all_advantages(conn, board.id)
            for a in source.advantages:
                self._board_repo.add_advantage(conn, board.id, a.tier, a.canonical_advantage_id, order=a.order)
            logger.info("ADVANTAGE_BOARD_DUPLICATED season_id=%s source=%s", season_id, source_season_id)
            return found(self._board_repo.get_by_season(conn, season_id), "Advantage board")

    # ---------- Lock ----------

    def lock(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> AdvantageBoard:
        """Needs at least one starting-tier advantage so every player has something to pick."""
        with unit_of_work(conn, season_id):
            season, board = self._load(conn, season_id, requester_id)
            if board.is_locked:
                raise InvalidTransition("Advantage board is already locked")
            if not board.tier(STARTING_ADVANTAGE_TIER):
                raise InvalidTransition(f"Advantage board needs a tier {STARTING_ADVANTAGE_TIER} advantage to lock")
            self._board_repo.set_locked(conn, board.id, True)
            events.log_event(conn, season, events.ADVANTAGE_BOARD_LOCKED,
                             {"advantage_count": len(board.advantages)}, actor_id=requester_id)
            logger.info("ADVANTAGE_BOARD_LOCKED season_id=%s advantages=%s", season_id, len(board.advantages))
            return found(self._board_repo.get_by_season(conn, season_id), "Advantage board")

    def unlock(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> AdvantageBoard:
        with unit_of_work(conn, season_id):
            season, board = self._load(conn, season_id, requester_id)
            if board.is_locked:
                self._board_repo.set_locked(conn, board.id, False)
                events.log_event(conn, season, events.ADVANTAGE_BOARD_UNLOCKED, {}, actor_id=requester_id)
            return found(self._board_repo.get_by_season(conn, season_id), "Advantage board")

    # ---------- helpers ----------

    def _load(
        self, conn: sqlite3.Connection, season_id: str, requester_id: str | None
    ) -> tuple[Season, AdvantageBoard]:
        season = load_season(conn, season_id)
        require_commissioner(conn, season, requester_id)
        board = self._board_repo.get_by_season(conn, season_id)
        if board is None:
            self._board_repo.create(conn, season_id)
            board = found(self._board_repo.get_by_season(conn, season_id), "Advantage board")
        return season, board

    def _editable_board(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> AdvantageBoard:
        _, board = self._load(conn, season_id, requester_id)
        if board.is_locked:
            raise InvalidTransition("Advantage board is locked")
        return board
