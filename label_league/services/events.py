"""
Game event log. Every committed state change appends one event stamped with
the season's week and phase at the time it happened.
"""
from __future__ import annotations

import sqlite3
from typing import Any

from label_league.models import GameEvent, Season
from label_league.persistence.repositories import GameEventRepository

PHASE_ADVANCED = "PHASE_ADVANCED"
DRAFT_ORDER_SET = "DRAFT_ORDER_SET"
DRAFT_PROMPT_SELECTED = "DRAFT_PROMPT_SELECTED"
ARTIST_DRAFTED = "ARTIST_DRAFTED"
DRAFT_COMPLETE = "DRAFT_COMPLETE"
BOARD_LOCKED = "BOARD_LOCKED"
BOARD_UNLOCKED = "BOARD_UNLOCKED"
ADVANTAGE_BOARD_LOCKED = "ADVANTAGE_BOARD_LOCKED"
ADVANTAGE_BOARD_UNLOCKED = "ADVANTAGE_BOARD_UNLOCKED"
CHALLENGE_SELECTED = "CHALLENGE_SELECTED"
PLAYLIST_SUBMITTED = "PLAYLIST_SUBMITTED"
PLAYLIST_PRESENTED = "PLAYLIST_PRESENTED"
VOTE_CAST = "VOTE_CAST"
WEEKLY_RESULTS = "WEEKLY_RESULTS"
ADVANTAGE_GRANTED = "ADVANTAGE_GRANTED"
POOL_BANISHED = "POOL_BANISHED"
ROLLBACK_TO_CHECKPOINT = "ROLLBACK_TO_CHECKPOINT"

# Roster evolution events; rolled back together with the evolution itself
ROSTER_EVOLUTION_STARTED = "ROSTER_EVOLUTION_STARTED"
ARTIST_CUT = "ARTIST_CUT"
REDRAFT_PROMPT_SELECTED = "REDRAFT_PROMPT_SELECTED"
ARTIST_REDRAFTED = "ARTIST_REDRAFTED"
ARTIST_DRAFTED_FROM_POOL = "ARTIST_DRAFTED_FROM_POOL"
ROSTER_EVOLUTION_COMPLETE = "ROSTER_EVOLUTION_COMPLETE"

ROSTER_EVOLUTION_EVENTS = (
    ROSTER_EVOLUTION_STARTED,
    ARTIST_CUT,
    REDRAFT_PROMPT_SELECTED,
    ARTIST_REDRAFTED,
    ARTIST_DRAFTED_FROM_POOL,
    ROSTER_EVOLUTION_COMPLETE,
)

_event_repo = GameEventRepository()


def log_event(
    conn: sqlite3.Connection,
    season: Season,
    event_type: str,
    payload: dict[str, Any] | None = None,
    actor_id: str | None = None,
) -> GameEvent:
    return _event_repo.create(
        conn, season.id, season.current_week, season.current_phase, event_type, actor_id, payload or {}
    )


def list_events(conn: sqlite3.Connection, season_id: str, limit: int | None = None) -> list[GameEvent]:
    return _event_repo.list_by_season(conn, season_id, limit=limit)
