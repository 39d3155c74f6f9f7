"""
Data models for the Record Label League engine.
Domain objects only; no persistence or API logic.

Leagues own seasons; a season runs a snake draft, then a weekly loop of
challenge selection, playlists, voting and roster evolution.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from label_league.config import ADVANTAGE_TIERS, DEFAULT_PROMPT_CATEGORY


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


# ---------- Enums ----------
class MemberRole(str, Enum):
    COMMISSIONER = "COMMISSIONER"
    PLAYER = "PLAYER"
    SPECTATOR = "SPECTATOR"


class SeasonStatus(str, Enum):
    """Season lifecycle: PRESEASON → IN_PROGRESS → COMPLETED."""
    PRESEASON = "PRESEASON"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class SeasonPhase(str, Enum):
    """Canonical forward order. The last seven repeat once per week."""
    SEASON_SETUP = "SEASON_SETUP"
    DRAFTING = "DRAFTING"
    ADVANTAGE_SELECTION = "ADVANTAGE_SELECTION"
    READY_FOR_WEEK_1 = "READY_FOR_WEEK_1"
    IN_SEASON_CHALLENGE_SELECTION = "IN_SEASON_CHALLENGE_SELECTION"
    PLAYLIST_SUBMISSION = "PLAYLIST_SUBMISSION"
    PLAYLIST_PRESENTATION = "PLAYLIST_PRESENTATION"
    VOTING = "VOTING"
    IN_SEASON_WEEK_END = "IN_SEASON_WEEK_END"
    ROSTER_EVOLUTION = "ROSTER_EVOLUTION"
    WEEK_TRANSITION = "WEEK_TRANSITION"


PHASE_ORDER: list[SeasonPhase] = list(SeasonPhase)


def phase_position(phase: str, week: int) -> tuple[int, int]:
    """Sortable position of (phase, week) in the season timeline."""
    return (week, PHASE_ORDER.index(SeasonPhase(phase)))


class PromptStatus(str, Enum):
    OPEN = "OPEN"
    SELECTED = "SELECTED"
    RETIRED = "RETIRED"


class RosterEntryStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CUT = "CUT"


class AcquiredVia(str, Enum):
    DRAFT = "DRAFT"
    REDRAFT = "REDRAFT"
    POOL = "POOL"


class PoolEntryStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    DRAFTED = "DRAFTED"
    BANISHED = "BANISHED"


class PoolEntryReason(str, Enum):
    SELF_CUT = "SELF_CUT"
    CHAOS_CUT = "CHAOS_CUT"
    OPPONENT_CUT = "OPPONENT_CUT"


class PoolCategory(str, Enum):
    """Chaos-week partition. Derived per week, never stored."""
    OLD = "OLD"
    NEW = "NEW"


class AdvantageSource(str, Enum):
    STARTING = "STARTING"
    WEEKLY = "WEEKLY"


class WeekType(str, Enum):
    GROWTH = "GROWTH"
    CHAOS = "CHAOS"
    SKIP = "SKIP"


class EvolutionPhase(str, Enum):
    CUTS = "CUTS"
    PROMPT_SELECTION = "PROMPT_SELECTION"
    REDRAFT = "REDRAFT"
    POOL_DRAFT = "POOL_DRAFT"
    COMPLETE = "COMPLETE"


class VotingStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


# ---------- User ----------
@dataclass
class User:
    """An account. password_hash is never serialized."""
    id: str
    username: str
    display_name: str
    email: str
    created_at: datetime
    password_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
        }


# ---------- League ----------
@dataclass
class League:
    id: str
    name: str
    commissioner_id: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "commissioner_id": self.commissioner_id,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class LeagueMember:
    league_id: str
    user_id: str
    role: str
    joined_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "league_id": self.league_id,
            "user_id": self.user_id,
            "role": self.role,
            "joined_at": self.joined_at.isoformat(),
        }


# ---------- Season ----------
@dataclass
class Season:
    """
    One season of a league. current_phase / current_week / status change only
    through phase transitions and checkpoint rollback.
    challenge_count is the number of in-season weeks.
    """
    id: str
    league_id: str
    name: str
    roster_size: int
    challenge_count: int
    current_phase: str
    current_week: int
    status: str
    created_at: datetime
    started_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "league_id": self.league_id,
            "name": self.name,
            "roster_size": self.roster_size,
            "challenge_count": self.challenge_count,
            "current_phase": self.current_phase,
            "current_week": self.current_week,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "started_at": _iso(self.started_at),
        }


@dataclass
class SeasonPlayer:
    id: str
    season_id: str
    user_id: str
    label_name: str
    draft_position: int | None
    total_points: int
    rank: int | None
    joined_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "user_id": self.user_id,
            "label_name": self.label_name,
            "draft_position": self.draft_position,
            "total_points": self.total_points,
            "rank": self.rank,
            "joined_at": self.joined_at.isoformat(),
        }


# ---------- Canonical library ----------
@dataclass
class CanonicalCategory:
    id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class AwardCategory:
    """Voting category declared by a canonical challenge. points is 1, 2 or 3."""
    id: str
    name: str
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "points": self.points}


@dataclass
class CanonicalChallenge:
    id: str
    category_id: str
    title: str
    description: str
    award_categories: list[AwardCategory] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "title": self.title,
            "description": self.description,
            "award_categories": [a.to_dict() for a in self.award_categories],
        }


# ---------- Challenge board ----------
@dataclass
class BoardChallenge:
    id: str
    board_id: str
    category_id: str
    canonical_challenge_id: str
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "board_id": self.board_id,
            "category_id": self.category_id,
            "canonical_challenge_id": self.canonical_challenge_id,
            "order": self.order,
        }


@dataclass
class BoardCategory:
    id: str
    board_id: str
    title: str
    position: int
    challenges: list[BoardChallenge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "board_id": self.board_id,
            "title": self.title,
            "position": self.position,
            "challenges": [c.to_dict() for c in self.challenges],
        }


@dataclass
class ChallengeBoard:
    """Season board; categories are filled in by the repository when loading a view."""
    id: str
    season_id: str
    is_locked: bool
    created_at: datetime
    categories: list[BoardCategory] = field(default_factory=list)

    @property
    def challenge_count(self) -> int:
        return sum(len(c.challenges) for c in self.categories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "is_locked": self.is_locked,
            "challenge_count": self.challenge_count,
            "categories": [c.to_dict() for c in self.categories],
            "created_at": self.created_at.isoformat(),
        }


# ---------- Advantage board ----------
@dataclass
class CanonicalAdvantage:
    """Library advantage, referenced by code from boards and inventories."""
    id: str
    code: str
    name: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "code": self.code, "name": self.name, "description": self.description}


@dataclass
class BoardAdvantage:
    id: str
    board_id: str
    tier: int
    canonical_advantage_id: str
    order: int
    code: str = ""
    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "board_id": self.board_id,
            "tier": self.tier,
            "canonical_advantage_id": self.canonical_advantage_id,
            "code": self.code,
            "name": self.name,
            "order": self.order,
        }


@dataclass
class AdvantageBoard:
    """Season advantage board: fixed tiers, each an ordered list. Tier 1 feeds starting picks."""
    id: str
    season_id: str
    is_locked: bool
    created_at: datetime
    advantages: list[BoardAdvantage] = field(default_factory=list)

    def tier(self, tier: int) -> list[BoardAdvantage]:
        return sorted((a for a in self.advantages if a.tier == tier), key=lambda a: a.order)

    def find_code(self, code: str) -> BoardAdvantage | None:
        return next((a for a in self.advantages if a.code == code), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "is_locked": self.is_locked,
            "advantage_count": len(self.advantages),
            "tiers": {str(t): [a.to_dict() for a in self.tier(t)] for t in ADVANTAGE_TIERS},
            "created_at": self.created_at.isoformat(),
        }


# ---------- Draft ----------
@dataclass
class DraftPrompt:
    id: str
    season_id: str
    text: str
    status: str
    category: str = DEFAULT_PROMPT_CATEGORY
    selected_by_player_id: str | None = None
    selected_at_round: int | None = None
    selected_at_week: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "text": self.text,
            "category": self.category,
            "status": self.status,
            "selected_by_player_id": self.selected_by_player_id,
            "selected_at_round": self.selected_at_round,
            "selected_at_week": self.selected_at_week,
        }


@dataclass
class DraftState:
    """Live draft cursor. draft_order holds season player ids by draft position."""
    season_id: str
    draft_order: list[str]
    current_round: int
    current_pick_index: int
    is_complete: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "season_id": self.season_id,
            "draft_order": list(self.draft_order),
            "current_round": self.current_round,
            "current_pick_index": self.current_pick_index,
            "is_complete": self.is_complete,
        }


@dataclass
class DraftSelection:
    id: str
    season_id: str
    prompt_id: str
    selected_by_player_id: str
    round: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "prompt_id": self.prompt_id,
            "selected_by_player_id": self.selected_by_player_id,
            "round": self.round,
        }


# ---------- Artists & rosters ----------
@dataclass
class Artist:
    id: str
    season_id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "season_id": self.season_id, "name": self.name}


@dataclass
class RosterEntry:
    id: str
    season_id: str
    season_player_id: str
    artist_id: str
    prompt_id: str | None
    status: str
    acquired_via: str
    acquired_at_week: int
    acquired_at_round: int | None = None
    cut_at_week: int | None = None
    artist_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "season_player_id": self.season_player_id,
            "artist_id": self.artist_id,
            "artist_name": self.artist_name,
            "prompt_id": self.prompt_id,
            "status": self.status,
            "acquired_via": self.acquired_via,
            "acquired_at_week": self.acquired_at_week,
            "acquired_at_round": self.acquired_at_round,
            "cut_at_week": self.cut_at_week,
        }


# ---------- Artist pool ----------
@dataclass
class PoolEntry:
    """
    An artist cut from a roster. category is only set when listing the pool
    during a chaos week (OLD = entered before the chaos week).
    """
    id: str
    season_id: str
    artist_id: str
    entered_week: int
    entered_via: str
    status: str
    cut_by_player_id: str | None = None
    cut_from_player_id: str | None = None
    drafted_by_player_id: str | None = None
    drafted_at_week: int | None = None
    banished_at_week: int | None = None
    artist_name: str | None = None
    category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "season_id": self.season_id,
            "artist_id": self.artist_id,
            "artist_name": self.artist_name,
            "entered_week": self.entered_week,
            "entered_via": self.entered_via,
            "status": self.status,
            "cut_by_player_id": self.cut_by_player_id,
            "cut_from_player_id": self.cut_from_player_id,
            "drafted_by_player_id": self.drafted_by_player_id,
            "drafted_at_week": self.drafted_at_week,
            "banished_at_week": self.banished_at_week,
        }
        if self.category is not None:
            d["category"] = self.category
        return d


# ---------- Advantage inventory ----------
@dataclass
class InventoryItem:
    id: str
    season_id: str
    season_player_id: str
    advantage_code: str
    source: str
    earned_week: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "season_player_id": self.season_player_id,
            "advantage_code": self.advantage_code,
            "source": self.source,
            "earned_week": self.earned_week,
        }


# ---------- Weekly play ----------
@dataclass
class ChallengeSelection:
    id: str
    season_id: str
    week: int
    board_challenge_id: str
    selected_by_player_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "week": self.week,
            "board_challenge_id": self.board_challenge_id,
            "selected_by_player_id": self.selected_by_player_id,
        }


@dataclass
class PlaylistSubmission:
    id: str
    season_id: str
    week: int
    season_player_id: str
    tracks: list[str]
    submitted_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "week": self.week,
            "season_player_id": self.season_player_id,
            "tracks": list(self.tracks),
            "submitted_at": self.submitted_at.isoformat(),
        }


@dataclass
class PresentationState:
    id: str
    season_id: str
    week: int
    presenter_order: list[str]
    presented: list[str]

    @property
    def is_complete(self) -> bool:
        return set(self.presenter_order) <= set(self.presented)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "week": self.week,
            "presenter_order": list(self.presenter_order),
            "presented": list(self.presented),
            "is_complete": self.is_complete,
        }


@dataclass
class VotingSession:
    id: str
    season_id: str
    week: int
    categories: list[AwardCategory]
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "week": self.week,
            "categories": [c.to_dict() for c in self.categories],
            "status": self.status,
        }


@dataclass
class Vote:
    id: str
    session_id: str
    category_id: str
    voter_player_id: str
    nominee_player_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "category_id": self.category_id,
            "voter_player_id": self.voter_player_id,
            "nominee_player_id": self.nominee_player_id,
        }


@dataclass
class WeeklyResult:
    id: str
    season_id: str
    week: int
    season_player_id: str
    voting_points: int
    placement: int
    victory_points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "week": self.week,
            "season_player_id": self.season_player_id,
            "voting_points": self.voting_points,
            "placement": self.placement,
            "victory_points": self.victory_points,
        }


# ---------- Roster evolution ----------
@dataclass
class RosterEvolutionSettings:
    """
    Per-season weekly schedule. week_types maps week number -> WeekType;
    weeks missing from the map are GROWTH.
    chaos_redraft_target None means "refill to roster_size".
    """
    season_id: str
    week_types: dict[int, str]
    self_cut_count: int
    redraft_count: int
    pool_draft_weeks: list[int]
    pool_draft_count: int
    base_protection_count: int
    opponent_cuts_per_player: int
    chaos_redraft_target: int | None
    chaos_includes_pool_draft: bool
    chaos_banish_old_pool: bool

    def week_type(self, week: int) -> str:
        return self.week_types.get(week, WeekType.GROWTH.value)

    def is_chaos_week(self, week: int) -> bool:
        return self.week_type(week) == WeekType.CHAOS.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "season_id": self.season_id,
            "week_types": {str(k): v for k, v in sorted(self.week_types.items())},
            "self_cut_count": self.self_cut_count,
            "redraft_count": self.redraft_count,
            "pool_draft_weeks": list(self.pool_draft_weeks),
            "pool_draft_count": self.pool_draft_count,
            "base_protection_count": self.base_protection_count,
            "opponent_cuts_per_player": self.opponent_cuts_per_player,
            "chaos_redraft_target": self.chaos_redraft_target,
            "chaos_includes_pool_draft": self.chaos_includes_pool_draft,
            "chaos_banish_old_pool": self.chaos_banish_old_pool,
        }


@dataclass
class RosterEvolutionState:
    """
    Progress of one week's roster evolution.
    cuts: player id -> {"self": n, "opponents": {player id: n}}
    redraft_sequence / pool_sequence: flattened pick order, consumed by index.
    """
    id: str
    season_id: str
    week: int
    week_type: str
    phase: str
    prompt_picker_id: str | None
    prompt_id: str | None
    standings_order: list[str]
    cuts: dict[str, Any]
    redraft_sequence: list[str]
    redraft_index: int
    pool_sequence: list[str]
    pool_index: int
    includes_pool_draft: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "week": self.week,
            "week_type": self.week_type,
            "phase": self.phase,
            "prompt_picker_id": self.prompt_picker_id,
            "prompt_id": self.prompt_id,
            "standings_order": list(self.standings_order),
            "cuts": self.cuts,
            "redraft_sequence": list(self.redraft_sequence),
            "redraft_index": self.redraft_index,
            "pool_sequence": list(self.pool_sequence),
            "pool_index": self.pool_index,
            "includes_pool_draft": self.includes_pool_draft,
        }


# ---------- Events ----------
@dataclass
class GameEvent:
    id: str
    season_id: str
    week: int
    phase: str
    event_type: str
    actor_id: str | None
    payload: dict[str, Any]
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "week": self.week,
            "phase": self.phase,
            "event_type": self.event_type,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Checkpoint (derived, not persisted) ----------
@dataclass
class Checkpoint:
    id: str
    title: str
    phase: str
    week: int
    description: str
    implications: list[str]
    is_available: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "phase": self.phase,
            "week": self.week,
            "description": self.description,
            "implications": list(self.implications),
            "is_available": self.is_available,
        }
