"""
Checkpoints: named rewind targets for a season, and the rollback cascade.

Static checkpoints (PRESEASON, DRAFT, ADVANTAGE_SELECTION, START_OF_SEASON) plus
dynamic ones derived from the current week:

    WEEK_<n>                  IN_SEASON_CHALLENGE_SELECTION / n   (n = 1..current week)
    WEEK_<n>_PRESENTATION     PLAYLIST_PRESENTATION / n           (n = current week)
    WEEK_<n>_ROSTER_EVOLUTION ROSTER_EVOLUTION / n                (n = current week)

A rollback runs as one unit of work: cascades first, dependents before the rows
they reference, then the season's phase/week/status. Anything unexpected rolls
the whole thing back and surfaces as RollbackFailed.
"""
from __future__ import annotations

import logging
import re
import sqlite3
from typing import Any

from label_league.models import Checkpoint, Season, SeasonPhase, SeasonStatus, phase_position
from label_league.persistence.db import unit_of_work
from label_league.persistence.repositories import (
    DraftRepository,
    GameEventRepository,
    InventoryRepository,
    PoolRepository,
    RosterEvolutionRepository,
    RosterRepository,
    SeasonDataRepository,
    SeasonRepository,
    WeeklyRepository,
)
from label_league.services import events
from label_league.services.access import load_season, require_commissioner
from label_league.services.errors import InvalidTransition, RollbackFailed, SeasonEngineError

logger = logging.getLogger(__name__)

PRESEASON = "PRESEASON"
DRAFT = "DRAFT"
ADVANTAGE_SELECTION = "ADVANTAGE_SELECTION"
START_OF_SEASON = "START_OF_SEASON"
WEEK = "WEEK"
WEEK_PRESENTATION = "PRESENTATION"
WEEK_ROSTER_EVOLUTION = "ROSTER_EVOLUTION"

_WEEK_ID = re.compile(r"^WEEK_(\d+)(?:_(PRESENTATION|ROSTER_EVOLUTION))?$")

_PRESENTATION_PHASES = {
    SeasonPhase.PLAYLIST_PRESENTATION.value,
    SeasonPhase.VOTING.value,
    SeasonPhase.IN_SEASON_WEEK_END.value,
    SeasonPhase.ROSTER_EVOLUTION.value,
}

# (id, title, phase, week, description, implications)
_STATIC: list[tuple[str, str, SeasonPhase, int, str, list[str]]] = [
    (
        PRESEASON, "Preseason", SeasonPhase.SEASON_SETUP, 0,
        "Back to season setup, before the draft order was set.",
        [
            "Draft order is cleared",
            "All draft picks and rosters are deleted",
            "All advantages are removed",
            "All challenge selections and weekly results are deleted",
            "Every draft prompt is reopened",
        ],
    ),
    (
        DRAFT, "Draft", SeasonPhase.DRAFTING, 0,
        "Restart the draft from round 1 with the same draft order.",
        [
            "Draft order is kept",
            "All draft picks and rosters are deleted",
            "All advantages are removed",
            "All challenge selections and weekly results are deleted",
            "Every draft prompt is reopened",
        ],
    ),
    (
        ADVANTAGE_SELECTION, "Advantage selection", SeasonPhase.ADVANTAGE_SELECTION, 0,
        "Redo starting advantages; the draft stands.",
        [
            "Draft picks and rosters are kept",
            "All advantages are removed",
            "All challenge selections and weekly results are deleted",
        ],
    ),
    (
        START_OF_SEASON, "Start of season", SeasonPhase.IN_SEASON_CHALLENGE_SELECTION, 1,
        "Replay the season from week 1.",
        [
            "Draft, rosters and starting advantages are kept",
            "Challenge selections and advantages from week 1 on are deleted",
            "Roster changes from week 1 on are reverted",
        ],
    ),
]


def parse_checkpoint_id(checkpoint_id: str) -> tuple[str, int | None]:
    """(kind, week). Static ids have no week. Raises InvalidTransition for unknown ids."""
    if checkpoint_id in {c[0] for c in _STATIC}:
        return checkpoint_id, None
    m = _WEEK_ID.match(checkpoint_id)
    if m is None:
        raise InvalidTransition(f"Unknown checkpoint: {checkpoint_id}")
    return (m.group(2) or WEEK), int(m.group(1))


def checkpoint_candidates(current_phase: str, current_week: int, season_status: str) -> list[Checkpoint]:
    """Every candidate for the current position, each with its availability. Static first."""
    current = phase_position(current_phase, current_week)
    in_progress = season_status == SeasonStatus.IN_PROGRESS.value
    out: list[Checkpoint] = []
    for cid, title, phase, week, description, implications in _STATIC:
        if cid == START_OF_SEASON:
            available = in_progress
        else:
            available = phase_position(phase.value, week) < current
        out.append(Checkpoint(cid, title, phase.value, week, description, list(implications), available))

    for n in range(1, current_week + 1):
        out.append(Checkpoint(
            f"WEEK_{n}", f"Week {n}", SeasonPhase.IN_SEASON_CHALLENGE_SELECTION.value, n,
            f"Replay week {n} from challenge selection.",
            [
                f"Weeks 1-{n - 1} are kept" if n > 1 else "Draft and starting advantages are kept",
                f"Challenge selections, playlists and results from week {n} on are deleted",
                f"Advantages earned from week {n} on are removed",
                f"Roster changes from week {n} on are reverted",
            ],
            in_progress,
        ))
    if current_week >= 1:
        n = current_week
        out.append(Checkpoint(
            f"WEEK_{n}_PRESENTATION", f"Week {n} presentation", SeasonPhase.PLAYLIST_PRESENTATION.value, n,
            f"Restart week {n}'s playlist presentations.",
            [
                f"Week {n} challenge selection and playlists are kept",
                "Presentation progress is reset",
                f"Week {n} voting, results and weekly advantages are deleted",
                f"Week {n} roster evolution is reverted",
            ],
            in_progress and current_phase in _PRESENTATION_PHASES,
        ))
        out.append(Checkpoint(
            f"WEEK_{n}_ROSTER_EVOLUTION", f"Week {n} roster evolution", SeasonPhase.ROSTER_EVOLUTION.value, n,
            f"Restart week {n}'s roster evolution.",
            [
                "Cut artists return to their original rosters",
                "Redrafted artists are removed",
                "Artists drafted from the pool return to the pool",
                "The redraft prompt selection is cleared",
                f"Week {n} roster evolution events are deleted",
            ],
            in_progress and current_phase == SeasonPhase.ROSTER_EVOLUTION.value,
        ))
    return out


def list_available_checkpoints(current_phase: str, current_week: int, season_status: str) -> list[Checkpoint]:
    return [c for c in checkpoint_candidates(current_phase, current_week, season_status) if c.is_available]


class CheckpointService:
    def __init__(self) -> None:
        self._season_repo = SeasonRepository()
        self._draft_repo = DraftRepository()
        self._roster_repo = RosterRepository()
        self._pool_repo = PoolRepository()
        self._inventory_repo = InventoryRepository()
        self._weekly_repo = WeeklyRepository()
        self._evolution_repo = RosterEvolutionRepository()
        self._event_repo = GameEventRepository()
        self._season_data_repo = SeasonDataRepository()

    def list_checkpoints(self, conn: sqlite3.Connection, season_id: str) -> list[Checkpoint]:
        season = load_season(conn, season_id)
        return list_available_checkpoints(season.current_phase, season.current_week, season.status)

    def rollback_to_checkpoint(
        self, conn: sqlite3.Connection, season_id: str, checkpoint_id: str, requester_id: str | None
    ) -> dict[str, Any]:
        """
        Commissioner only. Returns {checkpoint, phase, week, status, cleared}
        where cleared maps row kinds to deleted/restored counts.
        """
        before = load_season(conn, season_id)
        try:
            with unit_of_work(conn, season_id):
                season = load_season(conn, season_id)
                require_commissioner(conn, season, requester_id)
                target = self._require_available(season, checkpoint_id)
                kind, _ = parse_checkpoint_id(checkpoint_id)
                cleared = self._cascade(conn, season, kind, target)
                updated = load_season(conn, season_id)
                events.log_event(
                    conn, updated, events.ROLLBACK_TO_CHECKPOINT,
                    {"checkpoint": checkpoint_id,
                     "from": {"phase": season.current_phase, "week": season.current_week, "status": season.status},
                     "to": {"phase": updated.current_phase, "week": updated.current_week, "status": updated.status}},
                    actor_id=requester_id,
                )
        except SeasonEngineError:
            logger.warning("ROLLBACK_REJECTED season_id=%s checkpoint=%s", season_id, checkpoint_id)
            raise
        except Exception as exc:
            logger.warning("ROLLBACK_FAILED season_id=%s checkpoint=%s", season_id, checkpoint_id, exc_info=True)
            self._verify_unchanged(conn, before)
            raise RollbackFailed("Rollback failed; the season was not changed") from exc

        logger.info(
            "ROLLBACK_TO_CHECKPOINT season_id=%s checkpoint=%s %s/%s -> %s/%s",
            season_id, checkpoint_id, season.current_phase, season.current_week,
            updated.current_phase, updated.current_week,
        )
        return {
            "checkpoint": checkpoint_id,
            "phase": updated.current_phase,
            "week": updated.current_week,
            "status": updated.status,
            "cleared": cleared,
        }

    def _require_available(self, season: Season, checkpoint_id: str) -> Checkpoint:
        parse_checkpoint_id(checkpoint_id)
        for c in list_available_checkpoints(season.current_phase, season.current_week, season.status):
            if c.id == checkpoint_id:
                return c
        raise InvalidTransition(
            f"Checkpoint {checkpoint_id} is not available at {season.current_phase} week {season.current_week}"
        )

    def _verify_unchanged(self, conn: sqlite3.Connection, before: Season) -> None:
        after = self._season_repo.get(conn, before.id)
        if after is None or (after.current_phase, after.current_week, after.status) != (
            before.current_phase, before.current_week, before.status
        ):
            logger.error("ROLLBACK_STATE_MISMATCH season_id=%s", before.id)

    # ---------- Cascades ----------

    def _cascade(self, conn: sqlite3.Connection, season: Season, kind: str, target: Checkpoint) -> dict[str, int]:
        if kind in (PRESEASON, DRAFT):
            return self._to_draft_start(conn, season, keep_order=(kind == DRAFT))
        if kind == ADVANTAGE_SELECTION:
            return self._to_advantage_selection(conn, season)
        if kind in (START_OF_SEASON, WEEK):
            return self._to_week_start(conn, season, target.week)
        if kind == WEEK_PRESENTATION:
            return self._to_presentation(conn, season, target.week)
        if kind == WEEK_ROSTER_EVOLUTION:
            return self._to_roster_evolution(conn, season, target.week)
        raise InvalidTransition(f"Unknown checkpoint: {target.id}")

    def _to_draft_start(self, conn: sqlite3.Connection, season: Season, keep_order: bool) -> dict[str, int]:
        from label_league.services.draft_service import DraftService

        cleared = self._season_data_repo.delete_preseason_gameplay(conn, season.id)
        cleared["prompts_reopened"] = self._draft_repo.reset_prompts(conn, season.id)
        self._draft_repo.delete_state(conn, season.id)
        for p in self._season_repo.list_players(conn, season.id):
            self._season_repo.update_standing(conn, p.id, 0, None)
        if keep_order:
            self._season_repo.update_progress(
                conn, season.id, SeasonPhase.DRAFTING.value, 0, SeasonStatus.PRESEASON.value, clear_started_at=True
            )
            DraftService().initialize_state(conn, load_season(conn, season.id))
        else:
            cleared["draft_positions"] = self._season_repo.clear_draft_positions(conn, season.id)
            self._season_repo.update_progress(
                conn, season.id, SeasonPhase.SEASON_SETUP.value, 0, SeasonStatus.PRESEASON.value,
                clear_started_at=True,
            )
        return cleared

    def _to_advantage_selection(self, conn: sqlite3.Connection, season: Season) -> dict[str, int]:
        cleared = self._clear_from_week(conn, season.id, 1)
        cleared["inventory_items"] += self._inventory_repo.delete_from_week(conn, season.id, 0)
        cleared["challenge_selections"] += self._weekly_repo.delete_selections_from_week(conn, season.id, 0)
        self._season_repo.update_progress(
            conn, season.id, SeasonPhase.ADVANTAGE_SELECTION.value, 0, SeasonStatus.PRESEASON.value,
            clear_started_at=True,
        )
        return cleared

    def _to_week_start(self, conn: sqlite3.Connection, season: Season, week: int) -> dict[str, int]:
        cleared = self._clear_from_week(conn, season.id, week)
        self._season_repo.update_progress(
            conn, season.id, SeasonPhase.IN_SEASON_CHALLENGE_SELECTION.value, week, SeasonStatus.IN_PROGRESS.value
        )
        return cleared

    def _to_presentation(self, conn: sqlite3.Connection, season: Season, week: int) -> dict[str, int]:
        """Keeps week's selection and playlists; everything after them in the week goes."""
        from label_league.services.weekly_service import WeeklyService

        cleared: dict[str, int] = {}
        cleared["votes"], cleared["voting_sessions"] = self._weekly_repo.delete_voting_from_week(conn, season.id, week)
        cleared["presentation_states"] = self._weekly_repo.delete_presentations_from_week(conn, season.id, week)
        cleared["weekly_results"] = self._weekly_repo.delete_results_from_week(conn, season.id, week)
        cleared["inventory_items"] = self._inventory_repo.delete_from_week(conn, season.id, week)
        cleared.update(self._revert_roster_changes(conn, season.id, week))
        cleared["roster_evolution_states"] = self._evolution_repo.delete_states_from_week(conn, season.id, week)
        weekly = WeeklyService()
        weekly.recompute_standings(conn, season.id)
        self._season_repo.update_progress(
            conn, season.id, SeasonPhase.PLAYLIST_PRESENTATION.value, week, SeasonStatus.IN_PROGRESS.value
        )
        weekly.create_presentation(conn, load_season(conn, season.id))
        return cleared

    def _to_roster_evolution(self, conn: sqlite3.Connection, season: Season, week: int) -> dict[str, int]:
        """Undo every roster change of the week's evolution and start it over."""
        from label_league.services.roster_evolution import RosterEvolutionService

        cleared = self._revert_roster_changes(conn, season.id, week)
        cleared["roster_evolution_states"] = self._evolution_repo.delete_states_from_week(conn, season.id, week)
        cleared["game_events"] = self._event_repo.delete_types_for_week(
            conn, season.id, week, events.ROSTER_EVOLUTION_EVENTS
        )
        RosterEvolutionService().initialize_state(conn, season)
        return cleared

    def _clear_from_week(self, conn: sqlite3.Connection, season_id: str, week: int) -> dict[str, int]:
        """Delete every in-season row dated week or later and restore what it displaced."""
        from label_league.services.weekly_service import WeeklyService

        cleared: dict[str, int] = {}
        cleared["votes"], cleared["voting_sessions"] = self._weekly_repo.delete_voting_from_week(conn, season_id, week)
        cleared["presentation_states"] = self._weekly_repo.delete_presentations_from_week(conn, season_id, week)
        cleared["playlist_submissions"] = self._weekly_repo.delete_playlists_from_week(conn, season_id, week)
        cleared["weekly_results"] = self._weekly_repo.delete_results_from_week(conn, season_id, week)
        WeeklyService().recompute_standings(conn, season_id)
        cleared["challenge_selections"] = self._weekly_repo.delete_selections_from_week(conn, season_id, week)
        cleared["inventory_items"] = self._inventory_repo.delete_from_week(conn, season_id, week)
        cleared.update(self._revert_roster_changes(conn, season_id, week))
        cleared["roster_evolution_states"] = self._evolution_repo.delete_states_from_week(conn, season_id, week)
        return cleared

    def _revert_roster_changes(self, conn: sqlite3.Connection, season_id: str, week: int) -> dict[str, int]:
        """
        Pool first, then the roster entries it restores, then orphaned artists.
        Newer pool entries go before older ones are released: an artist holds at
        most one AVAILABLE entry.
        """
        cleared: dict[str, int] = {}
        cleared["pool_entries"] = self._pool_repo.delete_entered_from_week(conn, season_id, week)
        cleared["pool_released"] = self._pool_repo.release_drafted_from_week(conn, season_id, week)
        cleared["pool_unbanished"] = self._pool_repo.unbanish_from_week(conn, season_id, week)
        cleared["cuts_restored"] = self._roster_repo.restore_cuts_from_week(conn, season_id, week)
        cleared["roster_entries"] = self._roster_repo.delete_acquired_from_week(conn, season_id, week)
        cleared["prompts_reopened"] = self._draft_repo.reset_prompts_from_week(conn, season_id, week)
        cleared["artists"] = self._roster_repo.delete_orphan_artists(conn, season_id)
        return cleared
