"""
Service layer: season state machine, draft, board, weekly play, roster evolution
and checkpoint rollback. Services own transactions; repositories never commit.
"""
from .advantage_board import AdvantageBoardService
from .challenge_board import ChallengeBoardService
from .checkpoints import CheckpointService
from .draft_service import DraftService
from .errors import (
    Conflict,
    DuplicateEntity,
    InvalidTransition,
    NotFound,
    RollbackFailed,
    SeasonEngineError,
    Unauthorized,
)
from .league_service import LeagueService
from .library_service import LibraryService
from .pool_service import PoolService
from .roster_evolution import RosterEvolutionService
from .season_service import SeasonService
from .weekly_service import WeeklyService

__all__ = [
    "AdvantageBoardService",
    "ChallengeBoardService",
    "CheckpointService",
    "DraftService",
    "LeagueService",
    "LibraryService",
    "PoolService",
    "RosterEvolutionService",
    "SeasonService",
    "WeeklyService",
    "SeasonEngineError",
    "Unauthorized",
    "InvalidTransition",
    "NotFound",
    "DuplicateEntity",
    "Conflict",
    "RollbackFailed",
]
