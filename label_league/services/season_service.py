"""
Season-level orchestration: draft order, the commissioner-driven phase
transitions and the aggregate season view.

Each transition checks its preconditions, applies its side effects and moves the
phase in one unit of work. Transitions owned by a sub-flow live with that flow
(complete_draft in DraftService, select_challenge in WeeklyService) and are
re-exported here so callers have one entry point.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any

from label_league.config import MIN_SEASON_PLAYERS
from label_league.models import PromptStatus, Season, SeasonPhase, SeasonPlayer, SeasonStatus
from label_league.persistence.db import unit_of_work
from label_league.persistence.repositories import BoardRepository, DraftRepository, RosterRepository, SeasonRepository
from label_league.services import events, phases
from label_league.services.access import found, load_season, require_commissioner, require_phase, resolve_player
from label_league.services.checkpoints import list_available_checkpoints
from label_league.services.draft_order import assign_draft_positions
from label_league.services.draft_service import DraftService
from label_league.services.errors import Conflict, InvalidTransition
from label_league.services.roster_evolution import RosterEvolutionService
from label_league.services.weekly_service import WeeklyService

logger = logging.getLogger(__name__)


class SeasonService:
    def __init__(self) -> None:
        self._season_repo = SeasonRepository()
        self._draft_repo = DraftRepository()
        self._board_repo = BoardRepository()
        self._roster_repo = RosterRepository()
        self._draft = DraftService()
        self._weekly = WeeklyService()
        self._evolution = RosterEvolutionService()

    # ---------- Views ----------

    def get_season(self, conn: sqlite3.Connection, season_id: str) -> Season:
        return load_season(conn, season_id)

    def list_players(self, conn: sqlite3.Connection, season_id: str) -> list[SeasonPlayer]:
        load_season(conn, season_id)
        return self._season_repo.list_players(conn, season_id)

    def get_season_view(self, conn: sqlite3.Connection, season_id: str) -> dict[str, Any]:
        season = load_season(conn, season_id)
        board = self._board_repo.get_by_season(conn, season_id)
        return {
            "season": season.to_dict(),
            "players": [p.to_dict() for p in self._season_repo.list_players(conn, season_id)],
            "allowed_next_phases": sorted(phases.allowed_next(season.current_phase))
            if season.status != SeasonStatus.COMPLETED.value else [],
            "checkpoints": [
                c.to_dict()
                for c in list_available_checkpoints(season.current_phase, season.current_week, season.status)
            ],
            "board": board.to_dict() if board else None,
        }

    def get_rosters(self, conn: sqlite3.Connection, season_id: str) -> dict[str, list[dict[str, Any]]]:
        """Active roster per season player id."""
        load_season(conn, season_id)
        return {
            p.id: [e.to_dict() for e in self._roster_repo.list_by_player(conn, p.id)]
            for p in self._season_repo.list_players(conn, season_id)
        }

    def list_events(self, conn: sqlite3.Connection, season_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        load_season(conn, season_id)
        return [e.to_dict() for e in events.list_events(conn, season_id, limit=limit)]

    # ---------- Players & draft order ----------

    def reorder_season_players(
        self, conn: sqlite3.Connection, season_id: str, ordered_player_ids: list[str], requester_id: str | None
    ) -> list[SeasonPlayer]:
        """
        Assign draft positions 1..P in the given order. The list must be exactly
        the season's players. Reapplying the same order is a no-op.
        """
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            require_phase(season, SeasonPhase.SEASON_SETUP)
            players = self._season_repo.list_players(conn, season_id)
            current = {p.id for p in players}
            if len(ordered_player_ids) != len(set(ordered_player_ids)) or set(ordered_player_ids) != current:
                raise Conflict("Draft order does not match the season's players")
            positions = assign_draft_positions(ordered_player_ids)
            for pid, pos in positions.items():
                self._season_repo.set_draft_position(conn, pid, pos)
            events.log_event(conn, season, events.DRAFT_ORDER_SET, {"order": list(ordered_player_ids)},
                             actor_id=requester_id)
            logger.info("DRAFT_ORDER_SET season_id=%s players=%s", season_id, len(ordered_player_ids))
            return self._season_repo.list_players(conn, season_id)

    def update_label_name(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        label_name: str,
        requester_id: str | None,
        player_id: str | None = None,
    ) -> SeasonPlayer:
        label_name = label_name.strip()
        if not label_name:
            raise ValueError("Label name is required")
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            if season.status == SeasonStatus.COMPLETED.value:
                raise InvalidTransition("Season is completed")
            player = resolve_player(conn, season, requester_id, player_id)
            self._season_repo.update_label_name(conn, player.id, label_name)
            return found(self._season_repo.get_player(conn, player.id), "Season player")

    # ---------- Preseason transitions ----------

    def start_draft(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        """SEASON_SETUP -> DRAFTING. Unpositioned players go to the back in join order."""
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            phases.assert_can_transition(season, SeasonPhase.DRAFTING)
            players = self._season_repo.list_players(conn, season_id)
            if len(players) < MIN_SEASON_PLAYERS:
                raise InvalidTransition(f"A season needs at least {MIN_SEASON_PLAYERS} players to draft")
            open_prompts = self._draft_repo.list_prompts(conn, season_id, status=PromptStatus.OPEN.value)
            if len(open_prompts) < season.roster_size:
                raise InvalidTransition(
                    f"Need at least {season.roster_size} open draft prompts (have {len(open_prompts)})"
                )
            for pid, pos in assign_draft_positions([p.id for p in players]).items():
                self._season_repo.set_draft_position(conn, pid, pos)
            self._draft.initialize_state(conn, season)
            return phases.transition(conn, season, SeasonPhase.DRAFTING, requester_id)

    def complete_draft(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        return self._draft.complete_draft(conn, season_id, requester_id)

    def mark_ready_for_week_1(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        """ADVANTAGE_SELECTION -> READY_FOR_WEEK_1 once the challenge board is locked."""
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            phases.assert_can_transition(season, SeasonPhase.READY_FOR_WEEK_1)
            board = self._board_repo.get_by_season(conn, season_id)
            if board is None or not board.is_locked:
                raise InvalidTransition("The challenge board must be locked before week 1")
            return phases.transition(conn, season, SeasonPhase.READY_FOR_WEEK_1, requester_id)

    def start_season(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            return phases.transition(
                conn, season, SeasonPhase.IN_SEASON_CHALLENGE_SELECTION, requester_id,
                week=1, status=SeasonStatus.IN_PROGRESS, mark_started=True,
            )

    # ---------- Weekly transitions ----------

    def select_challenge(
        self, conn: sqlite3.Connection, season_id: str, board_challenge_id: str, requester_id: str | None
    ) -> Season:
        self._weekly.select_challenge(conn, season_id, board_challenge_id, requester_id)
        return load_season(conn, season_id)

    def start_presentation(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            phases.assert_can_transition(season, SeasonPhase.PLAYLIST_PRESENTATION)
            missing = self._weekly.missing_playlists(conn, season)
            if missing:
                labels = ", ".join(p.label_name for p in missing)
                raise InvalidTransition(f"Waiting on playlists from: {labels}")
            self._weekly.create_presentation(conn, season)
            return phases.transition(conn, season, SeasonPhase.PLAYLIST_PRESENTATION, requester_id)

    def open_voting(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            phases.assert_can_transition(season, SeasonPhase.VOTING)
            presentation = self._weekly.get_presentation(conn, season_id, season.current_week)
            if presentation is None or not presentation.is_complete:
                raise InvalidTransition("Every playlist must be presented before voting opens")
            self._weekly.open_session(conn, season)
            return phases.transition(conn, season, SeasonPhase.VOTING, requester_id)

    def close_voting(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            phases.assert_can_transition(season, SeasonPhase.IN_SEASON_WEEK_END)
            session = self._weekly.get_session(conn, season_id, season.current_week)
            if session is None:
                raise InvalidTransition("Voting has not been opened")
            missing = self._weekly.missing_votes(conn, season, session)
            if missing:
                raise InvalidTransition(f"{len(missing)} vote(s) still missing")
            self._weekly.record_results(conn, season, session)
            return phases.transition(conn, season, SeasonPhase.IN_SEASON_WEEK_END, requester_id)

    def begin_roster_evolution(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            updated = phases.transition(conn, season, SeasonPhase.ROSTER_EVOLUTION, requester_id)
            self._evolution.initialize_state(conn, updated)
            return updated

    def finish_roster_evolution(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            phases.assert_can_transition(season, SeasonPhase.WEEK_TRANSITION)
            self._evolution.finalize(conn, season)
            return phases.transition(conn, season, SeasonPhase.WEEK_TRANSITION, requester_id)

    def advance_week(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> Season:
        """Next week's challenge selection, or season completion after the last week."""
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            if season.current_week >= season.challenge_count:
                return phases.complete_season(conn, season, requester_id)
            return phases.transition(
                conn, season, SeasonPhase.IN_SEASON_CHALLENGE_SELECTION, requester_id,
                week=season.current_week + 1,
            )
