"""
Database connection, initialization and per-season units of work.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from label_league.config import default_db_path

from .schema import all_schema_sql

logger = logging.getLogger(__name__)

_db_path: Path | None = None


def set_db_path(path: str | Path) -> None:
    """Set the database path. Call before first get_connection if not using default."""
    global _db_path
    _db_path = Path(path)


def get_db_path() -> Path:
    """Return the current database path."""
    if _db_path is not None:
        return _db_path
    return default_db_path()


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """
    Return a new SQLite connection with foreign keys enforced.
    Use as context manager or ensure close() is called.
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=30.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str | Path | None = None) -> None:
    """Create or ensure all tables exist."""
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(all_schema_sql())
        conn.commit()
    finally:
        conn.close()


# ---------- Units of work ----------

_season_locks: dict[str, threading.RLock] = {}
_season_locks_guard = threading.Lock()


def season_lock(season_id: str) -> threading.RLock:
    """Process-wide lock serializing mutations of one season."""
    with _season_locks_guard:
        lock = _season_locks.get(season_id)
        if lock is None:
            lock = threading.RLock()
            _season_locks[season_id] = lock
        return lock


@contextmanager
def unit_of_work(conn: sqlite3.Connection, season_id: str | None = None) -> Iterator[sqlite3.Connection]:
    """
    Run the body as one all-or-nothing transaction.
    Holds the season lock (when season_id is given) for the whole transaction.
    Nested use joins the outer transaction; only the outermost commits.
    """
    lock = season_lock(season_id) if season_id else None
    if lock is not None:
        lock.acquire()
    try:
        if conn.in_transaction:
            yield conn
            return
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except Exception:
            conn.rollback()
            logger.debug("UNIT_OF_WORK_ROLLED_BACK season_id=%s", season_id)
            raise
        conn.commit()
    finally:
        if lock is not None:
            lock.release()
