"""
Runtime configuration and game-rule constants.
Environment variables are read once at import time.
"""
from __future__ import annotations

import os
from pathlib import Path

# ---------- Environment ----------

DB_PATH_ENV = "LABEL_LEAGUE_DB_PATH"
JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "label-league-dev-secret-change-in-production")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
CORS_ORIGINS = [
    o.strip()
    for o in os.environ.get("LABEL_LEAGUE_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]


def default_db_path() -> Path:
    """LABEL_LEAGUE_DB_PATH, else <project root>/data/label_league.db."""
    env = os.environ.get(DB_PATH_ENV)
    if env:
        return Path(env)
    return Path(__file__).resolve().parent.parent / "data" / "label_league.db"


# ---------- Season rules ----------

MIN_SEASON_PLAYERS = 2
BOARD_LOCK_MIN_CHALLENGES = 15

# Placement -> victory points; anything below 4th scores nothing
VICTORY_POINTS = {1: 5, 2: 3, 3: 2, 4: 1}

# Award category values a canonical challenge may declare
AWARD_POINT_VALUES = (1, 2, 3)

# Advantage board tiers; starting advantages come from the first
ADVANTAGE_TIERS = (1, 2, 3)
STARTING_ADVANTAGE_TIER = 1

DEFAULT_PROMPT_CATEGORY = "General"

# ---------- Roster evolution defaults ----------

DEFAULT_EVOLUTION_WEEKS = 8
CHAOS_WEEK_INTERVAL = 4
DEFAULT_POOL_DRAFT_WEEKS = (2, 6)
DEFAULT_SELF_CUT_COUNT = 1
DEFAULT_REDRAFT_COUNT = 1
DEFAULT_POOL_DRAFT_COUNT = 1
DEFAULT_BASE_PROTECTION_COUNT = 3
DEFAULT_OPPONENT_CUTS_PER_PLAYER = 1
