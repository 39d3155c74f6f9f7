"""
Season phase transition table.
Only the checkpoint engine writes a phase outside this table.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone

from label_league.models import Season, SeasonPhase, SeasonStatus
from label_league.persistence.repositories import SeasonRepository
from label_league.services import events
from label_league.services.access import load_season
from label_league.services.errors import InvalidTransition

logger = logging.getLogger(__name__)

P = SeasonPhase

# ---------- Valid transitions ----------

_VALID_TRANSITIONS: dict[str, set[str]] = {
    P.SEASON_SETUP: {P.DRAFTING},
    P.DRAFTING: {P.ADVANTAGE_SELECTION},
    P.ADVANTAGE_SELECTION: {P.READY_FOR_WEEK_1},
    P.READY_FOR_WEEK_1: {P.IN_SEASON_CHALLENGE_SELECTION},
    P.IN_SEASON_CHALLENGE_SELECTION: {P.PLAYLIST_SUBMISSION},
    P.PLAYLIST_SUBMISSION: {P.PLAYLIST_PRESENTATION},
    P.PLAYLIST_PRESENTATION: {P.VOTING},
    P.VOTING: {P.IN_SEASON_WEEK_END},
    P.IN_SEASON_WEEK_END: {P.ROSTER_EVOLUTION},
    P.ROSTER_EVOLUTION: {P.WEEK_TRANSITION},
    P.WEEK_TRANSITION: {P.IN_SEASON_CHALLENGE_SELECTION},
}

_season_repo = SeasonRepository()


def allowed_next(phase: str) -> set[str]:
    return {p.value for p in _VALID_TRANSITIONS.get(P(phase), set())}


def assert_can_transition(season: Season, to_phase: SeasonPhase) -> None:
    """Raise if season cannot move from its current phase to to_phase."""
    if season.status == SeasonStatus.COMPLETED.value:
        raise InvalidTransition("Season is completed")
    allowed = allowed_next(season.current_phase)
    if to_phase.value not in allowed:
        raise InvalidTransition(
            f"Invalid transition: {season.current_phase} -> {to_phase.value}. "
            f"Allowed from {season.current_phase}: {sorted(allowed)}"
        )


def transition(
    conn: sqlite3.Connection,
    season: Season,
    to_phase: SeasonPhase,
    actor_id: str | None,
    week: int | None = None,
    status: SeasonStatus | None = None,
    mark_started: bool = False,
) -> Season:
    """
    Move season to to_phase (optionally setting week/status), log PHASE_ADVANCED.
    Caller owns the unit of work and has already applied the transition's side effects.
    """
    assert_can_transition(season, to_phase)
    new_week = season.current_week if week is None else week
    new_status = season.status if status is None else status.value
    started_at = datetime.now(timezone.utc).isoformat() if mark_started else None
    _season_repo.update_progress(conn, season.id, to_phase.value, new_week, new_status, started_at=started_at)
    updated = load_season(conn, season.id)
    events.log_event(
        conn, updated, events.PHASE_ADVANCED,
        {"from_phase": season.current_phase, "from_week": season.current_week,
         "to_phase": updated.current_phase, "to_week": updated.current_week},
        actor_id=actor_id,
    )
    logger.info(
        "PHASE_ADVANCED season_id=%s %s/%s -> %s/%s",
        season.id, season.current_phase, season.current_week, updated.current_phase, updated.current_week,
    )
    return updated


def complete_season(conn: sqlite3.Connection, season: Season, actor_id: str | None) -> Season:
    """Terminal state: status COMPLETED, phase and week left as they are."""
    if season.status == SeasonStatus.COMPLETED.value:
        raise InvalidTransition("Season is already completed")
    if season.current_phase != P.WEEK_TRANSITION.value:
        raise InvalidTransition(f"Season can only complete from {P.WEEK_TRANSITION.value}")
    _season_repo.update_progress(
        conn, season.id, season.current_phase, season.current_week, SeasonStatus.COMPLETED.value
    )
    updated = load_season(conn, season.id)
    events.log_event(conn, updated, events.PHASE_ADVANCED,
                     {"from_phase": season.current_phase, "status": SeasonStatus.COMPLETED.value},
                     actor_id=actor_id)
    logger.info("SEASON_COMPLETED season_id=%s week=%s", season.id, season.current_week)
    return updated
