"""
Persistence layer for league data.
Repositories and the unit-of-work helper; no business logic.
"""
from .db import get_connection, init_db, set_db_path, unit_of_work
from .repositories import (
    UserRepository,
    LeagueRepository,
    SeasonRepository,
    LibraryRepository,
    BoardRepository,
    AdvantageRepository,
    AdvantageBoardRepository,
    DraftRepository,
    RosterRepository,
    PoolRepository,
    InventoryRepository,
    WeeklyRepository,
    RosterEvolutionRepository,
    GameEventRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "set_db_path",
    "unit_of_work",
    "UserRepository",
    "LeagueRepository",
    "SeasonRepository",
    "LibraryRepository",
    "BoardRepository",
    "AdvantageRepository",
    "AdvantageBoardRepository",
    "DraftRepository",
    "RosterRepository",
    "PoolRepository",
    "InventoryRepository",
    "WeeklyRepository",
    "RosterEvolutionRepository",
    "GameEventRepository",
]
