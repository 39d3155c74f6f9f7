"""
Per-season challenge board.

A board holds categories named after canonical categories, each with an ordered
list of canonical challenges. Canonical-challenge uniqueness is board-wide.
Order within a category is dense and zero-based after every mutation.
While locked, everything except unlock is rejected; lock requires at least
BOARD_LOCK_MIN_CHALLENGES challenges.
"""
from __future__ import annotations

import logging
import sqlite3

from label_league.config import BOARD_LOCK_MIN_CHALLENGES
from label_league.models import BoardCategory, BoardChallenge, ChallengeBoard, Season
from label_league.persistence.db import unit_of_work
from label_league.persistence.repositories import BoardRepository, LibraryRepository
from label_league.services import events
from label_league.services.access import found, load_season, require_commissioner
from label_league.services.errors import Conflict, DuplicateEntity, InvalidTransition, NotFound

logger = logging.getLogger(__name__)


class ChallengeBoardService:
    """Board mutations are commissioner-only and each runs as one unit of work."""

    def __init__(self) -> None:
        self._board_repo = BoardRepository()
        self._library_repo = LibraryRepository()

    def get_or_create_board(self, conn: sqlite3.Connection, season_id: str) -> ChallengeBoard:
        """Idempotent; the board is created the first time it is viewed."""
        board = self._board_repo.get_by_season(conn, season_id)
        if board is not None:
            return board
        with unit_of_work(conn, season_id):
            load_season(conn, season_id)
            board = self._board_repo.get_by_season(conn, season_id)
            if board is None:
                self._board_repo.create(conn, season_id)
            return found(self._board_repo.get_by_season(conn, season_id), "Challenge board")

    def get_board(self, conn: sqlite3.Connection, season_id: str) -> ChallengeBoard | None:
        return self._board_repo.get_by_season(conn, season_id)

    # ---------- Categories ----------

    def add_category(
        self, conn: sqlite3.Connection, season_id: str, title: str, requester_id: str | None
    ) -> BoardCategory:
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            canonical = self._library_repo.get_category_by_name(conn, title)
            if canonical is None:
                raise NotFound(f"Canonical category not found: {title}")
            if any(c.title == canonical.name for c in board.categories):
                raise DuplicateEntity(f"Category already on board: {canonical.name}")
            return self._board_repo.add_category(conn, board.id, canonical.name)

    def delete_category(
        self, conn: sqlite3.Connection, season_id: str, category_id: str, requester_id: str | None
    ) -> ChallengeBoard:
        """Removes the category and every challenge in it."""
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            category = self._category_on_board(conn, board, category_id)
            if self._board_repo.count_selections_for_category(conn, category.id):
                raise Conflict("Category has challenges already selected this season")
            self._board_repo.delete_category(conn, category.id)
            self._board_repo.renumber_categories(conn, board.id)
            return found(self._board_repo.get_by_season(conn, season_id), "Challenge board")

    # ---------- Challenges ----------

    def add_challenge(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        category_id: str,
        canonical_challenge_id: str,
        requester_id: str | None,
    ) -> BoardChallenge:
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            category = self._category_on_board(conn, board, category_id)
            if self._library_repo.get_challenge(conn, canonical_challenge_id) is None:
                raise NotFound(f"Canonical challenge not found: {canonical_challenge_id}")
            if self._board_repo.find_canonical(conn, board.id, canonical_challenge_id) is not None:
                raise DuplicateEntity("Challenge is already on this board")
            return self._board_repo.add_challenge(
                conn, board.id, category.id, canonical_challenge_id, order=len(category.challenges)
            )

    def remove_challenge(
        self, conn: sqlite3.Connection, season_id: str, challenge_id: str, requester_id: str | None
    ) -> BoardCategory:
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            challenge = self._board_repo.get_challenge(conn, challenge_id)
            if challenge is None or challenge.board_id != board.id:
                raise NotFound(f"Board challenge not found: {challenge_id}")
            if self._board_repo.count_selections_for_challenge(conn, challenge_id):
                raise Conflict("Challenge was already selected this season")
            self._board_repo.delete_challenge(conn, challenge_id)
            remaining = self._board_repo.list_challenges(conn, challenge.category_id)
            for i, c in enumerate(remaining):
                self._board_repo.set_challenge_order(conn, c.id, i)
            return found(self._board_repo.get_category(conn, challenge.category_id), "Board category")

    def reorder_challenges(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        category_id: str,
        ordered_ids: list[str],
        requester_id: str | None,
    ) -> BoardCategory:
        """ordered_ids must be exactly the category's challenge ids; order := index."""
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            category = self._category_on_board(conn, board, category_id)
            current = {c.id for c in category.challenges}
            if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != current:
                raise Conflict("Reorder list does not match the category's challenges")
            for i, cid in enumerate(ordered_ids):
                self._board_repo.set_challenge_order(conn, cid, i)
            return found(self._board_repo.get_category(conn, category.id), "Board category")

    def duplicate_from_season(
        self, conn: sqlite3.Connection, season_id: str, source_season_id: str, requester_id: str | None
    ) -> ChallengeBoard:
        """Replace this season's board with a copy of another season's board (unlocked)."""
        if season_id == source_season_id:
            raise ValueError("Cannot duplicate a board from the same season")
        with unit_of_work(conn, season_id):
            board = self._editable_board(conn, season_id, requester_id)
            load_season(conn, source_season_id)
            source = self._board_repo.get_by_season(conn, source_season_id)
            if source is None:
                raise NotFound("Source season has no challenge board")
            for category in board.categories:
                if self._board_repo.count_selections_for_category(conn, category.id):
                    raise Conflict("Board has challenges already selected this season")
            for category in board.categories:
                self._board_repo.delete_category(conn, category.id)
            for src_category in source.categories:
                copy = self._board_repo.add_category(conn, board.id, src_category.title)
                for c in src_category.challenges:
                    self._board_repo.add_challenge(conn, board.id, copy.id, c.canonical_challenge_id, order=c.order)
            logger.info("BOARD_DUPLICATED season_id=%s source=%s", season_id, source_season_id)
            return found(self._board_repo.get_by_season(conn, season_id), "Challenge board")

    # ---------- Lock ----------

    def lock(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> ChallengeBoard:
        with unit_of_work(conn, season_id):
            season, board = self._load(conn, season_id, requester_id)
            if board.is_locked:
                raise InvalidTransition("Board is already locked")
            count = self._board_repo.count_challenges(conn, board.id)
            if count < BOARD_LOCK_MIN_CHALLENGES:
                raise InvalidTransition(
                    f"Board needs at least {BOARD_LOCK_MIN_CHALLENGES} challenges to lock (has {count})"
                )
            self._board_repo.set_locked(conn, board.id, True)
            events.log_event(conn, season, events.BOARD_LOCKED, {"challenge_count": count}, actor_id=requester_id)
            logger.info("BOARD_LOCKED season_id=%s challenges=%s", season_id, count)
            return found(self._board_repo.get_by_season(conn, season_id), "Challenge board")

    def unlock(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> ChallengeBoard:
        with unit_of_work(conn, season_id):
            season, board = self._load(conn, season_id, requester_id)
            if board.is_locked:
                self._board_repo.set_locked(conn, board.id, False)
                events.log_event(conn, season, events.BOARD_UNLOCKED, {}, actor_id=requester_id)
            return found(self._board_repo.get_by_season(conn, season_id), "Challenge board")

    # ---------- helpers ----------

    def _load(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> tuple[Season, ChallengeBoard]:
        season = load_season(conn, season_id)
        require_commissioner(conn, season, requester_id)
        board = self._board_repo.get_by_season(conn, season_id)
        if board is None:
            self._board_repo.create(conn, season_id)
            board = found(self._board_repo.get_by_season(conn, season_id), "Challenge board")
        return season, board

    def _editable_board(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> ChallengeBoard:
        _, board = self._load(conn, season_id, requester_id)
        if board.is_locked:
            raise InvalidTransition("Board is locked")
        return board

    def _category_on_board(self, conn: sqlite3.Connection, board: ChallengeBoard, category_id: str) -> BoardCategory:
        for c in board.categories:
            if c.id == category_id:
                return c
        raise NotFound(f"Board category not found: {category_id}")
