"""
REST API for the Record Label League season engine.
Thin wrappers around the services; requester identity comes from the JWT.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncGenerator, Generator

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from label_league.auth import create_access_token, decode_token, hash_password, verify_password
from label_league.config import CORS_ORIGINS, DEFAULT_PROMPT_CATEGORY
from label_league.models import MemberRole
from label_league.persistence import UserRepository, get_connection, init_db, unit_of_work
from label_league.persistence.db import get_db_path
from label_league.services.advantage_board import AdvantageBoardService
from label_league.services.challenge_board import ChallengeBoardService
from label_league.services.checkpoints import CheckpointService
from label_league.services.draft_service import DraftService
from label_league.services.errors import (
    Conflict,
    DuplicateEntity,
    InvalidTransition,
    NotFound,
    RollbackFailed,
    SeasonEngineError,
    Unauthorized,
)
from label_league.services.league_service import LeagueService
from label_league.services.library_service import LibraryService
from label_league.services.pool_service import PoolService
from label_league.services.roster_evolution import RosterEvolutionService
from label_league.services.season_service import SeasonService
from label_league.services.weekly_service import WeeklyService

logger = logging.getLogger(__name__)


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    init_db(db_path=get_db_path())
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="Record Label League API",
    description="Season lifecycle engine: draft, challenge board, weekly play, roster evolution and checkpoints",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Error mapping ----------

_ERROR_STATUS: dict[type[SeasonEngineError], int] = {
    Unauthorized: 403,
    NotFound: 404,
    InvalidTransition: 400,
    DuplicateEntity: 409,
    Conflict: 409,
    RollbackFailed: 500,
}


@app.exception_handler(SeasonEngineError)
async def season_engine_error_handler(request: Request, exc: SeasonEngineError) -> JSONResponse:
    status = next((s for cls, s in _ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    if status >= 500:
        logger.error("REQUEST_FAILED path=%s error=%s", request.url.path, type(exc).__name__)
    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc), "error": "ValueError"})


# ---------- Auth ----------

security = HTTPBearer(auto_error=False)


def _get_current_user_id(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str | None:
    """user_id from JWT or None if no/invalid token."""
    if credentials is None:
        return None
    return decode_token(credentials.credentials)


def _require_user_id(user_id: str | None = Depends(_get_current_user_id)) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="Login required")
    return user_id


# ---------- Request models ----------


class SignupRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=6)
    display_name: str | None = Field(None, max_length=100)


class LoginRequest(BaseModel):
    username: str
    password: str


class CreateLeagueRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class AddMemberRequest(BaseModel):
    email: str
    role: MemberRole = MemberRole.PLAYER


class CreateSeasonRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    roster_size: int = Field(..., ge=1, le=30)
    challenge_count: int = Field(..., ge=1, le=52)


class DraftOrderRequest(BaseModel):
    player_ids: list[str]


class LabelNameRequest(BaseModel):
    label_name: str = Field(..., min_length=1, max_length=100)
    player_id: str | None = None


class PromptRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)
    category: str = Field(default=DEFAULT_PROMPT_CATEGORY, min_length=1, max_length=100)


class SelectPromptRequest(BaseModel):
    prompt_id: str


class ArtistRequest(BaseModel):
    artist_name: str = Field(..., min_length=1, max_length=200)


class BoardCategoryRequest(BaseModel):
    title: str = Field(..., min_length=1)


class BoardChallengeRequest(BaseModel):
    category_id: str
    canonical_challenge_id: str


class ReorderRequest(BaseModel):
    ordered_ids: list[str]


class DuplicateBoardRequest(BaseModel):
    source_season_id: str


class BoardAdvantageRequest(BaseModel):
    tier: int
    code: str = Field(..., min_length=1)


class LibraryAdvantageRequest(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""


class LibraryCategoryRequest(BaseModel):
    name: str = Field(..., min_length=1)


class AwardCategoryRequest(BaseModel):
    name: str = Field(..., min_length=1)
    points: int = Field(..., ge=1, le=3)


class LibraryChallengeRequest(BaseModel):
    category_name: str
    title: str = Field(..., min_length=1)
    description: str = ""
    award_categories: list[AwardCategoryRequest] = Field(default_factory=list)


class SelectChallengeRequest(BaseModel):
    board_challenge_id: str


class PlaylistRequest(BaseModel):
    tracks: list[str] = Field(..., min_length=1)
    player_id: str | None = None


class PresentedRequest(BaseModel):
    player_id: str


class VoteRequest(BaseModel):
    category_id: str
    nominee_player_id: str
    voter_player_id: str | None = None


class AdvantageRequest(BaseModel):
    player_id: str
    advantage_code: str = Field(..., min_length=1)


class RollbackRequest(BaseModel):
    checkpoint_id: str


class CutRequest(BaseModel):
    artist_id: str
    player_id: str | None = Field(None, description="Cutting player; defaults to the requester's own label")


class PoolPickRequest(BaseModel):
    pool_entry_id: str


class EvolutionSettingsRequest(BaseModel):
    week_types: dict[int, str] | None = None
    self_cut_count: int | None = Field(None, ge=0)
    redraft_count: int | None = Field(None, ge=0)
    pool_draft_weeks: list[int] | None = None
    pool_draft_count: int | None = Field(None, ge=0)
    base_protection_count: int | None = Field(None, ge=0)
    opponent_cuts_per_player: int | None = Field(None, ge=0)
    chaos_redraft_target: int | None = Field(None, ge=1)
    chaos_includes_pool_draft: bool | None = None
    chaos_banish_old_pool: bool | None = None


# ---------- Accounts ----------


@app.post("/signup")
def signup(req: SignupRequest) -> dict[str, Any]:
    """Create account. Passwords hashed, never stored plain."""
    with db_conn() as conn:
        user_repo = UserRepository()
        if user_repo.get_by_username(conn, req.username):
            raise HTTPException(status_code=400, detail="Username already taken")
        if user_repo.get_by_email(conn, req.email):
            raise HTTPException(status_code=400, detail="Email already registered")
        with unit_of_work(conn):
            user = user_repo.create(
                conn, req.username, req.email, hash_password(req.password), display_name=req.display_name
            )
        token = create_access_token(user.id)
        return {"user_id": user.id, "username": user.username, "token": token}


@app.post("/login")
def login(req: LoginRequest) -> dict[str, Any]:
    """Returns JWT token."""
    with db_conn() as conn:
        user = UserRepository().get_by_username(conn, req.username)
        if user is None or not user.password_hash or not verify_password(req.password, user.password_hash):
            raise HTTPException(status_code=401, detail="Invalid username or password")
        token = create_access_token(user.id)
        return {"user_id": user.id, "username": user.username, "token": token}


@app.get("/me")
def me(user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        user = UserRepository().get(conn, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user.to_dict()


# ---------- Library ----------


@app.get("/library")
def get_library() -> dict[str, Any]:
    with db_conn() as conn:
        return LibraryService().list_library(conn)


@app.post("/library/categories")
def create_library_category(req: LibraryCategoryRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return LibraryService().create_category(conn, req.name).to_dict()


@app.post("/library/challenges")
def create_library_challenge(req: LibraryChallengeRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        challenge = LibraryService().create_challenge(
            conn, req.category_name, req.title, req.description, [a.model_dump() for a in req.award_categories]
        )
        return challenge.to_dict()


@app.post("/library/advantages")
def create_library_advantage(req: LibraryAdvantageRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return LibraryService().create_advantage(conn, req.code, req.name, req.description).to_dict()


@app.post("/library/import")
def import_library(doc: dict[str, Any], user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"created": LibraryService().import_library(conn, doc)}


# ---------- Leagues ----------


@app.post("/leagues")
def create_league(req: CreateLeagueRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return LeagueService().create_league(conn, req.name, user_id).to_dict()


@app.get("/leagues")
def list_leagues(user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"leagues": [lg.to_dict() for lg in LeagueService().list_leagues(conn, user_id)]}


@app.post("/leagues/{league_id}/members")
def add_league_member(league_id: str, req: AddMemberRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return LeagueService().add_member(conn, league_id, req.email, user_id, role=req.role).to_dict()


@app.get("/leagues/{league_id}/members")
def list_league_members(league_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"members": [m.to_dict() for m in LeagueService().list_members(conn, league_id, user_id)]}


@app.post("/leagues/{league_id}/seasons")
def create_season(league_id: str, req: CreateSeasonRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        season = LeagueService().create_season(
            conn, league_id, req.name, req.roster_size, req.challenge_count, user_id
        )
        return season.to_dict()


@app.get("/leagues/{league_id}/seasons")
def list_seasons(league_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"seasons": [s.to_dict() for s in LeagueService().list_seasons(conn, league_id, user_id)]}


# ---------- Season ----------


@app.get("/seasons/{season_id}")
def get_season(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return SeasonService().get_season_view(conn, season_id)


@app.get("/seasons/{season_id}/events")
def list_season_events(season_id: str, limit: int | None = Query(default=None, ge=1, le=1000)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"events": SeasonService().list_events(conn, season_id, limit=limit)}


@app.get("/seasons/{season_id}/rosters")
def get_rosters(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return {"rosters": SeasonService().get_rosters(conn, season_id)}


@app.post("/seasons/{season_id}/join")
def join_season(season_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return LeagueService().join_season(conn, season_id, user_id).to_dict()


@app.post("/seasons/{season_id}/draft-order")
def set_draft_order(season_id: str, req: DraftOrderRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        players = SeasonService().reorder_season_players(conn, season_id, req.player_ids, user_id)
        return {"players": [p.to_dict() for p in players]}


@app.post("/seasons/{season_id}/label")
def update_label(season_id: str, req: LabelNameRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return SeasonService().update_label_name(conn, season_id, req.label_name, user_id, req.player_id).to_dict()


_PHASE_ACTIONS = {
    "start-draft": "start_draft",
    "complete-draft": "complete_draft",
    "ready-for-week-1": "mark_ready_for_week_1",
    "start-season": "start_season",
    "start-presentation": "start_presentation",
    "open-voting": "open_voting",
    "close-voting": "close_voting",
    "begin-roster-evolution": "begin_roster_evolution",
    "finish-roster-evolution": "finish_roster_evolution",
    "advance-week": "advance_week",
}


@app.post("/seasons/{season_id}/phase/{action}")
def advance_phase(season_id: str, action: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    """Commissioner-driven transitions, e.g. POST /seasons/{id}/phase/start-draft."""
    method = _PHASE_ACTIONS.get(action)
    if method is None:
        raise HTTPException(status_code=404, detail=f"Unknown phase action: {action}")
    with db_conn() as conn:
        season = getattr(SeasonService(), method)(conn, season_id, user_id)
        return season.to_dict()


# ---------- Checkpoints ----------


@app.get("/seasons/{season_id}/checkpoints")
def list_checkpoints(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return {"checkpoints": [c.to_dict() for c in CheckpointService().list_checkpoints(conn, season_id)]}


@app.post("/seasons/{season_id}/rollback")
def rollback(season_id: str, req: RollbackRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return CheckpointService().rollback_to_checkpoint(conn, season_id, req.checkpoint_id, user_id)


# ---------- Draft ----------


@app.get("/seasons/{season_id}/prompts")
def list_prompts(season_id: str, status: str | None = None, category: str | None = None) -> dict[str, Any]:
    with db_conn() as conn:
        prompts = DraftService().list_prompts(conn, season_id, status=status, category=category)
        return {"prompts": [p.to_dict() for p in prompts]}


@app.post("/seasons/{season_id}/prompts")
def add_prompt(season_id: str, req: PromptRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return DraftService().add_prompt(conn, season_id, req.text, user_id, category=req.category).to_dict()


@app.get("/seasons/{season_id}/draft")
def get_draft(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return DraftService().get_draft_view(conn, season_id)


@app.post("/seasons/{season_id}/draft/prompt")
def select_draft_prompt(season_id: str, req: SelectPromptRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return DraftService().select_prompt(conn, season_id, req.prompt_id, user_id).to_dict()


@app.post("/seasons/{season_id}/draft/pick")
def draft_pick(season_id: str, req: ArtistRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return DraftService().draft_artist(conn, season_id, req.artist_name, user_id).to_dict()


# ---------- Challenge board ----------


@app.get("/seasons/{season_id}/board")
def get_board(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return ChallengeBoardService().get_or_create_board(conn, season_id).to_dict()


@app.post("/seasons/{season_id}/board/categories")
def add_board_category(season_id: str, req: BoardCategoryRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return ChallengeBoardService().add_category(conn, season_id, req.title, user_id).to_dict()


@app.delete("/seasons/{season_id}/board/categories/{category_id}")
def delete_board_category(season_id: str, category_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return ChallengeBoardService().delete_category(conn, season_id, category_id, user_id).to_dict()


@app.post("/seasons/{season_id}/board/challenges")
def add_board_challenge(season_id: str, req: BoardChallengeRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        challenge = ChallengeBoardService().add_challenge(
            conn, season_id, req.category_id, req.canonical_challenge_id, user_id
        )
        return challenge.to_dict()


@app.delete("/seasons/{season_id}/board/challenges/{challenge_id}")
def remove_board_challenge(season_id: str, challenge_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return ChallengeBoardService().remove_challenge(conn, season_id, challenge_id, user_id).to_dict()


@app.post("/seasons/{season_id}/board/categories/{category_id}/order")
def reorder_board_challenges(
    season_id: str, category_id: str, req: ReorderRequest, user_id: str = Depends(_require_user_id)
) -> dict[str, Any]:
    with db_conn() as conn:
        return ChallengeBoardService().reorder_challenges(conn, season_id, category_id, req.ordered_ids, user_id).to_dict()


@app.post("/seasons/{season_id}/board/duplicate")
def duplicate_board(season_id: str, req: DuplicateBoardRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return ChallengeBoardService().duplicate_from_season(conn, season_id, req.source_season_id, user_id).to_dict()


@app.post("/seasons/{season_id}/board/lock")
def lock_board(season_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return ChallengeBoardService().lock(conn, season_id, user_id).to_dict()


@app.post("/seasons/{season_id}/board/unlock")
def unlock_board(season_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return ChallengeBoardService().unlock(conn, season_id, user_id).to_dict()


# ---------- Advantage board ----------


@app.get("/seasons/{season_id}/advantage-board")
def get_advantage_board(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return AdvantageBoardService().get_or_create_board(conn, season_id).to_dict()


@app.post("/seasons/{season_id}/advantage-board/advantages")
def add_board_advantage(season_id: str, req: BoardAdvantageRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return AdvantageBoardService().add_advantage(conn, season_id, req.tier, req.code, user_id).to_dict()


@app.delete("/seasons/{season_id}/advantage-board/advantages/{advantage_id}")
def remove_board_advantage(season_id: str, advantage_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return AdvantageBoardService().remove_advantage(conn, season_id, advantage_id, user_id).to_dict()


@app.post("/seasons/{season_id}/advantage-board/tiers/{tier}/order")
def reorder_board_advantages(
    season_id: str, tier: int, req: ReorderRequest, user_id: str = Depends(_require_user_id)
) -> dict[str, Any]:
    with db_conn() as conn:
        return AdvantageBoardService().reorder_advantages(conn, season_id, tier, req.ordered_ids, user_id).to_dict()


@app.post("/seasons/{season_id}/advantage-board/duplicate")
def duplicate_advantage_board(
    season_id: str, req: DuplicateBoardRequest, user_id: str = Depends(_require_user_id)
) -> dict[str, Any]:
    with db_conn() as conn:
        return AdvantageBoardService().duplicate_from_season(conn, season_id, req.source_season_id, user_id).to_dict()


@app.post("/seasons/{season_id}/advantage-board/lock")
def lock_advantage_board(season_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return AdvantageBoardService().lock(conn, season_id, user_id).to_dict()


@app.post("/seasons/{season_id}/advantage-board/unlock")
def unlock_advantage_board(season_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return AdvantageBoardService().unlock(conn, season_id, user_id).to_dict()


# ---------- Weekly play ----------


@app.get("/seasons/{season_id}/week")
def get_week(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return WeeklyService().get_week_view(conn, season_id)


@app.post("/seasons/{season_id}/challenge")
def select_challenge(season_id: str, req: SelectChallengeRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return SeasonService().select_challenge(conn, season_id, req.board_challenge_id, user_id).to_dict()


@app.post("/seasons/{season_id}/playlists")
def submit_playlist(season_id: str, req: PlaylistRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return WeeklyService().submit_playlist(conn, season_id, req.tracks, user_id, req.player_id).to_dict()


@app.post("/seasons/{season_id}/presented")
def mark_presented(season_id: str, req: PresentedRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return WeeklyService().mark_presented(conn, season_id, req.player_id, user_id).to_dict()


@app.post("/seasons/{season_id}/votes")
def cast_vote(season_id: str, req: VoteRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        vote = WeeklyService().cast_vote(
            conn, season_id, req.category_id, req.nominee_player_id, user_id, req.voter_player_id
        )
        return vote.to_dict()


@app.get("/seasons/{season_id}/results")
def list_results(season_id: str, week: int | None = Query(default=None, ge=1)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"results": [r.to_dict() for r in WeeklyService().list_results(conn, season_id, week)]}


@app.get("/seasons/{season_id}/advantages")
def list_advantages(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return {"inventory": [i.to_dict() for i in WeeklyService().list_inventory(conn, season_id)]}


@app.post("/seasons/{season_id}/advantages")
def grant_advantage(season_id: str, req: AdvantageRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return WeeklyService().grant_advantage(conn, season_id, req.player_id, req.advantage_code, user_id).to_dict()


# ---------- Pool ----------


@app.get("/seasons/{season_id}/pool")
def get_pool(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        view = PoolService().get_pool_view(conn, season_id)
        view["banished"] = [e.to_dict() for e in PoolService().list_banished(conn, season_id)]
        return view


# ---------- Roster evolution ----------


@app.get("/seasons/{season_id}/roster-evolution")
def get_roster_evolution(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return RosterEvolutionService().get_view(conn, season_id)


@app.get("/seasons/{season_id}/roster-evolution/settings")
def get_roster_evolution_settings(season_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return RosterEvolutionService().get_settings(conn, season_id).to_dict()


@app.post("/seasons/{season_id}/roster-evolution/settings")
def save_roster_evolution_settings(
    season_id: str, req: EvolutionSettingsRequest, user_id: str = Depends(_require_user_id)
) -> dict[str, Any]:
    changes = req.model_dump(exclude_none=True)
    with db_conn() as conn:
        return RosterEvolutionService().save_settings(conn, season_id, changes, user_id).to_dict()


@app.post("/seasons/{season_id}/roster-evolution/cut")
def cut_artist(season_id: str, req: CutRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return RosterEvolutionService().cut_artist(conn, season_id, req.artist_id, user_id, req.player_id).to_dict()


@app.post("/seasons/{season_id}/roster-evolution/prompt")
def select_redraft_prompt(season_id: str, req: SelectPromptRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return RosterEvolutionService().select_redraft_prompt(conn, season_id, req.prompt_id, user_id).to_dict()


@app.post("/seasons/{season_id}/roster-evolution/redraft")
def redraft_artist(season_id: str, req: ArtistRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return RosterEvolutionService().redraft_artist(conn, season_id, req.artist_name, user_id).to_dict()


@app.post("/seasons/{season_id}/roster-evolution/pool-pick")
def draft_from_pool(season_id: str, req: PoolPickRequest, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return RosterEvolutionService().draft_from_pool(conn, season_id, req.pool_entry_id, user_id).to_dict()


@app.post("/seasons/{season_id}/roster-evolution/pool-skip")
def skip_pool_pick(season_id: str, user_id: str = Depends(_require_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        return RosterEvolutionService().skip_pool_pick(conn, season_id, user_id).to_dict()


# ---------- Run with: uvicorn label_league.api:app --reload ----------
