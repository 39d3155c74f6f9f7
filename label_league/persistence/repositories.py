"""
Repository interfaces for league data.
No business logic, only reads and writes.
Repositories never commit; callers wrap writes in db.unit_of_work.
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime
from typing import Any, Iterable

from label_league.config import DEFAULT_PROMPT_CATEGORY
from label_league.models import (
    AcquiredVia,
    AdvantageBoard,
    Artist,
    AwardCategory,
    BoardAdvantage,
    BoardCategory,
    BoardChallenge,
    CanonicalAdvantage,
    CanonicalCategory,
    CanonicalChallenge,
    ChallengeBoard,
    ChallengeSelection,
    DraftPrompt,
    DraftSelection,
    DraftState,
    GameEvent,
    InventoryItem,
    League,
    LeagueMember,
    PlaylistSubmission,
    PoolEntry,
    PoolEntryStatus,
    PresentationState,
    PromptStatus,
    RosterEntry,
    RosterEntryStatus,
    RosterEvolutionSettings,
    RosterEvolutionState,
    Season,
    SeasonPhase,
    SeasonPlayer,
    SeasonStatus,
    User,
    Vote,
    VotingSession,
    VotingStatus,
    WeeklyResult,
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.utcnow().isoformat()


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _parse_optional_datetime(s: str | None) -> datetime | None:
    return _parse_datetime(s) if s else None


def _placeholders(values: Iterable[Any]) -> str:
    return ", ".join("?" for _ in values)


def _award_categories(raw: str) -> list[AwardCategory]:
    return [AwardCategory(id=a["id"], name=a["name"], points=int(a["points"])) for a in json.loads(raw)]


def _dump_award_categories(categories: list[AwardCategory]) -> str:
    return json.dumps([c.to_dict() for c in categories])


# ---------- UserRepository ----------


class UserRepository:
    """CRUD for users. Usernames and emails are unique."""

    _COLS = "id, username, display_name, email, password_hash, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        username: str,
        email: str,
        password_hash: str = "",
        display_name: str | None = None,
    ) -> User:
        uid = _new_id()
        now = _now()
        name = display_name or username
        conn.execute(
            "INSERT INTO users (id, username, display_name, email, password_hash, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (uid, username, name, email.lower(), password_hash, now),
        )
        return User(
            id=uid, username=username, display_name=name, email=email.lower(),
            created_at=_parse_datetime(now), password_hash=password_hash,
        )

    def _from_row(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            display_name=row["display_name"],
            email=row["email"],
            created_at=_parse_datetime(row["created_at"]),
            password_hash=row["password_hash"],
        )

    def get(self, conn: sqlite3.Connection, user_id: str) -> User | None:
        row = conn.execute(f"SELECT {self._COLS} FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._from_row(row) if row else None

    def get_by_username(self, conn: sqlite3.Connection, username: str) -> User | None:
        row = conn.execute(f"SELECT {self._COLS} FROM users WHERE username = ?", (username,)).fetchone()
        return self._from_row(row) if row else None

    def get_by_email(self, conn: sqlite3.Connection, email: str) -> User | None:
        row = conn.execute(f"SELECT {self._COLS} FROM users WHERE email = ?", (email.lower(),)).fetchone()
        return self._from_row(row) if row else None


# ---------- LeagueRepository ----------


class LeagueRepository:
    """Leagues and league membership."""

    def create(self, conn: sqlite3.Connection, name: str, commissioner_id: str) -> League:
        lid = _new_id()
        now = _now()
        conn.execute(
            "INSERT INTO leagues (id, name, commissioner_id, created_at) VALUES (?, ?, ?, ?)",
            (lid, name, commissioner_id, now),
        )
        return League(id=lid, name=name, commissioner_id=commissioner_id, created_at=_parse_datetime(now))

    def get(self, conn: sqlite3.Connection, league_id: str) -> League | None:
        row = conn.execute(
            "SELECT id, name, commissioner_id, created_at FROM leagues WHERE id = ?", (league_id,)
        ).fetchone()
        if row is None:
            return None
        return League(
            id=row["id"], name=row["name"], commissioner_id=row["commissioner_id"],
            created_at=_parse_datetime(row["created_at"]),
        )

    def list_for_user(self, conn: sqlite3.Connection, user_id: str) -> list[League]:
        rows = conn.execute(
            """SELECT l.id, l.name, l.commissioner_id, l.created_at FROM leagues l
               JOIN league_members m ON m.league_id = l.id
               WHERE m.user_id = ? ORDER BY l.created_at""",
            (user_id,),
        ).fetchall()
        return [
            League(id=r["id"], name=r["name"], commissioner_id=r["commissioner_id"],
                   created_at=_parse_datetime(r["created_at"]))
            for r in rows
        ]

    def add_member(self, conn: sqlite3.Connection, league_id: str, user_id: str, role: str) -> LeagueMember:
        now = _now()
        conn.execute(
            "INSERT INTO league_members (league_id, user_id, role, joined_at) VALUES (?, ?, ?, ?)",
            (league_id, user_id, role, now),
        )
        return LeagueMember(league_id=league_id, user_id=user_id, role=role, joined_at=_parse_datetime(now))

    def get_member(self, conn: sqlite3.Connection, league_id: str, user_id: str) -> LeagueMember | None:
        row = conn.execute(
            "SELECT league_id, user_id, role, joined_at FROM league_members WHERE league_id = ? AND user_id = ?",
            (league_id, user_id),
        ).fetchone()
        if row is None:
            return None
        return LeagueMember(
            league_id=row["league_id"], user_id=row["user_id"], role=row["role"],
            joined_at=_parse_datetime(row["joined_at"]),
        )

    def list_members(self, conn: sqlite3.Connection, league_id: str) -> list[LeagueMember]:
        rows = conn.execute(
            "SELECT league_id, user_id, role, joined_at FROM league_members WHERE league_id = ? ORDER BY joined_at, rowid",
            (league_id,),
        ).fetchall()
        return [
            LeagueMember(league_id=r["league_id"], user_id=r["user_id"], role=r["role"],
                         joined_at=_parse_datetime(r["joined_at"]))
            for r in rows
        ]


# ---------- SeasonRepository ----------


class SeasonRepository:
    """Seasons and their players. Phase writes go through update_progress only."""

    _COLS = "id, league_id, name, roster_size, challenge_count, current_phase, current_week, status, created_at, started_at"

    def create(
        self, conn: sqlite3.Connection, league_id: str, name: str, roster_size: int, challenge_count: int
    ) -> Season:
        sid = _new_id()
        now = _now()
        conn.execute(
            """INSERT INTO seasons (id, league_id, name, roster_size, challenge_count,
               current_phase, current_week, status, created_at) VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)""",
            (sid, league_id, name, roster_size, challenge_count,
             SeasonPhase.SEASON_SETUP.value, SeasonStatus.PRESEASON.value, now),
        )
        return self._from_row(self._row(conn, sid))

    def _from_row(self, row: sqlite3.Row) -> Season:
        return Season(
            id=row["id"],
            league_id=row["league_id"],
            name=row["name"],
            roster_size=row["roster_size"],
            challenge_count=row["challenge_count"],
            current_phase=row["current_phase"],
            current_week=row["current_week"],
            status=row["status"],
            created_at=_parse_datetime(row["created_at"]),
            started_at=_parse_optional_datetime(row["started_at"]),
        )

    def _row(self, conn: sqlite3.Connection, season_id: str) -> Any:
        return conn.execute(f"SELECT {self._COLS} FROM seasons WHERE id = ?", (season_id,)).fetchone()

    def get(self, conn: sqlite3.Connection, season_id: str) -> Season | None:
        row = self._row(conn, season_id)
        return self._from_row(row) if row else None

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[Season]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM seasons WHERE league_id = ? ORDER BY created_at", (league_id,)
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def update_progress(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        phase: str,
        week: int,
        status: str,
        started_at: str | None = None,
        clear_started_at: bool = False,
    ) -> None:
        conn.execute(
            "UPDATE seasons SET current_phase = ?, current_week = ?, status = ? WHERE id = ?",
            (phase, week, status, season_id),
        )
        if started_at is not None:
            conn.execute("UPDATE seasons SET started_at = ? WHERE id = ?", (started_at, season_id))
        elif clear_started_at:
            conn.execute("UPDATE seasons SET started_at = NULL WHERE id = ?", (season_id,))

    # ---------- season players ----------

    _PLAYER_COLS = "id, season_id, user_id, label_name, draft_position, total_points, rank, joined_at"

    def add_player(self, conn: sqlite3.Connection, season_id: str, user_id: str, label_name: str) -> SeasonPlayer:
        pid = _new_id()
        now = _now()
        conn.execute(
            "INSERT INTO season_players (id, season_id, user_id, label_name, total_points, joined_at) VALUES (?, ?, ?, ?, 0, ?)",
            (pid, season_id, user_id, label_name, now),
        )
        return SeasonPlayer(
            id=pid, season_id=season_id, user_id=user_id, label_name=label_name,
            draft_position=None, total_points=0, rank=None, joined_at=_parse_datetime(now),
        )

    def _player_from_row(self, row: sqlite3.Row) -> SeasonPlayer:
        return SeasonPlayer(
            id=row["id"],
            season_id=row["season_id"],
            user_id=row["user_id"],
            label_name=row["label_name"],
            draft_position=row["draft_position"],
            total_points=row["total_points"],
            rank=row["rank"],
            joined_at=_parse_datetime(row["joined_at"]),
        )

    def get_player(self, conn: sqlite3.Connection, player_id: str) -> SeasonPlayer | None:
        row = conn.execute(f"SELECT {self._PLAYER_COLS} FROM season_players WHERE id = ?", (player_id,)).fetchone()
        return self._player_from_row(row) if row else None

    def get_player_by_user(self, conn: sqlite3.Connection, season_id: str, user_id: str) -> SeasonPlayer | None:
        row = conn.execute(
            f"SELECT {self._PLAYER_COLS} FROM season_players WHERE season_id = ? AND user_id = ?",
            (season_id, user_id),
        ).fetchone()
        return self._player_from_row(row) if row else None

    def list_players(self, conn: sqlite3.Connection, season_id: str) -> list[SeasonPlayer]:
        """Players by draft position; unpositioned players last, in join order."""
        rows = conn.execute(
            f"""SELECT {self._PLAYER_COLS} FROM season_players WHERE season_id = ?
                ORDER BY draft_position IS NULL, draft_position, joined_at, rowid""",
            (season_id,),
        ).fetchall()
        return [self._player_from_row(r) for r in rows]

    def set_draft_position(self, conn: sqlite3.Connection, player_id: str, position: int | None) -> None:
        conn.execute("UPDATE season_players SET draft_position = ? WHERE id = ?", (position, player_id))

    def clear_draft_positions(self, conn: sqlite3.Connection, season_id: str) -> int:
        cur = conn.execute("UPDATE season_players SET draft_position = NULL WHERE season_id = ?", (season_id,))
        return cur.rowcount

    def update_label_name(self, conn: sqlite3.Connection, player_id: str, label_name: str) -> None:
        conn.execute("UPDATE season_players SET label_name = ? WHERE id = ?", (label_name, player_id))

    def update_standing(self, conn: sqlite3.Connection, player_id: str, total_points: int, rank: int | None) -> None:
        conn.execute(
            "UPDATE season_players SET total_points = ?, rank = ? WHERE id = ?", (total_points, rank, player_id)
        )


# ---------- LibraryRepository ----------


class LibraryRepository:
    """Canonical categories and challenges shared by every season."""

    def create_category(self, conn: sqlite3.Connection, name: str) -> CanonicalCategory:
        cid = _new_id()
        conn.execute(
            "INSERT INTO canonical_categories (id, name, created_at) VALUES (?, ?, ?)", (cid, name, _now())
        )
        return CanonicalCategory(id=cid, name=name)

    def get_category_by_name(self, conn: sqlite3.Connection, name: str) -> CanonicalCategory | None:
        row = conn.execute("SELECT id, name FROM canonical_categories WHERE name = ?", (name,)).fetchone()
        return CanonicalCategory(id=row["id"], name=row["name"]) if row else None

    def list_categories(self, conn: sqlite3.Connection) -> list[CanonicalCategory]:
        rows = conn.execute("SELECT id, name FROM canonical_categories ORDER BY name").fetchall()
        return [CanonicalCategory(id=r["id"], name=r["name"]) for r in rows]

    def create_challenge(
        self,
        conn: sqlite3.Connection,
        category_id: str,
        title: str,
        description: str = "",
        award_categories: list[AwardCategory] | None = None,
    ) -> CanonicalChallenge:
        cid = _new_id()
        awards = award_categories or []
        conn.execute(
            """INSERT INTO canonical_challenges (id, category_id, title, description, award_categories, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (cid, category_id, title, description, _dump_award_categories(awards), _now()),
        )
        return CanonicalChallenge(
            id=cid, category_id=category_id, title=title, description=description, award_categories=awards
        )

    def _challenge_from_row(self, row: sqlite3.Row) -> CanonicalChallenge:
        return CanonicalChallenge(
            id=row["id"],
            category_id=row["category_id"],
            title=row["title"],
            description=row["description"],
            award_categories=_award_categories(row["award_categories"]),
        )

    def get_challenge(self, conn: sqlite3.Connection, challenge_id: str) -> CanonicalChallenge | None:
        row = conn.execute(
            "SELECT id, category_id, title, description, award_categories FROM canonical_challenges WHERE id = ?",
            (challenge_id,),
        ).fetchone()
        return self._challenge_from_row(row) if row else None

    def list_challenges(self, conn: sqlite3.Connection, category_id: str | None = None) -> list[CanonicalChallenge]:
        sql = "SELECT id, category_id, title, description, award_categories FROM canonical_challenges"
        args: tuple = ()
        if category_id is not None:
            sql += " WHERE category_id = ?"
            args = (category_id,)
        rows = conn.execute(sql + " ORDER BY title", args).fetchall()
        return [self._challenge_from_row(r) for r in rows]


# ---------- BoardRepository ----------


class BoardRepository:
    """Challenge boards, board categories and board challenges."""

    def create(self, conn: sqlite3.Connection, season_id: str) -> ChallengeBoard:
        bid = _new_id()
        now = _now()
        conn.execute(
            "INSERT INTO challenge_boards (id, season_id, is_locked, created_at) VALUES (?, ?, 0, ?)",
            (bid, season_id, now),
        )
        return ChallengeBoard(id=bid, season_id=season_id, is_locked=False, created_at=_parse_datetime(now))

    def get_by_season(self, conn: sqlite3.Connection, season_id: str) -> ChallengeBoard | None:
        """Board with categories and challenges loaded, in display order."""
        row = conn.execute(
            "SELECT id, season_id, is_locked, created_at FROM challenge_boards WHERE season_id = ?", (season_id,)
        ).fetchone()
        if row is None:
            return None
        board = ChallengeBoard(
            id=row["id"], season_id=row["season_id"], is_locked=bool(row["is_locked"]),
            created_at=_parse_datetime(row["created_at"]),
        )
        board.categories = self.list_categories(conn, board.id)
        return board

    def set_locked(self, conn: sqlite3.Connection, board_id: str, locked: bool) -> None:
        conn.execute("UPDATE challenge_boards SET is_locked = ? WHERE id = ?", (1 if locked else 0, board_id))

    def add_category(self, conn: sqlite3.Connection, board_id: str, title: str) -> BoardCategory:
        cid = _new_id()
        pos = conn.execute(
            "SELECT COUNT(*) FROM board_categories WHERE board_id = ?", (board_id,)
        ).fetchone()[0]
        conn.execute(
            "INSERT INTO board_categories (id, board_id, title, position, created_at) VALUES (?, ?, ?, ?, ?)",
            (cid, board_id, title, pos, _now()),
        )
        return BoardCategory(id=cid, board_id=board_id, title=title, position=pos)

    def get_category(self, conn: sqlite3.Connection, category_id: str) -> BoardCategory | None:
        row = conn.execute(
            "SELECT id, board_id, title, position FROM board_categories WHERE id = ?", (category_id,)
        ).fetchone()
        if row is None:
            return None
        cat = BoardCategory(id=row["id"], board_id=row["board_id"], title=row["title"], position=row["position"])
        cat.challenges = self.list_challenges(conn, cat.id)
        return cat

    def list_categories(self, conn: sqlite3.Connection, board_id: str) -> list[BoardCategory]:
        rows = conn.execute(
            "SELECT id, board_id, title, position FROM board_categories WHERE board_id = ? ORDER BY position",
            (board_id,),
        ).fetchall()
        cats = [BoardCategory(id=r["id"], board_id=r["board_id"], title=r["title"], position=r["position"]) for r in rows]
        for c in cats:
            c.challenges = self.list_challenges(conn, c.id)
        return cats

    def delete_category(self, conn: sqlite3.Connection, category_id: str) -> None:
        conn.execute("DELETE FROM board_challenges WHERE category_id = ?", (category_id,))
        conn.execute("DELETE FROM board_categories WHERE id = ?", (category_id,))

    def renumber_categories(self, conn: sqlite3.Connection, board_id: str) -> None:
        rows = conn.execute(
            "SELECT id FROM board_categories WHERE board_id = ? ORDER BY position", (board_id,)
        ).fetchall()
        for i, r in enumerate(rows):
            conn.execute("UPDATE board_categories SET position = ? WHERE id = ?", (i, r["id"]))

    def add_challenge(
        self, conn: sqlite3.Connection, board_id: str, category_id: str, canonical_challenge_id: str, order: int
    ) -> BoardChallenge:
        cid = _new_id()
        conn.execute(
            """INSERT INTO board_challenges (id, board_id, category_id, canonical_challenge_id, sort_order, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (cid, board_id, category_id, canonical_challenge_id, order, _now()),
        )
        return BoardChallenge(
            id=cid, board_id=board_id, category_id=category_id,
            canonical_challenge_id=canonical_challenge_id, order=order,
        )

    def _challenge_from_row(self, row: sqlite3.Row) -> BoardChallenge:
        return BoardChallenge(
            id=row["id"],
            board_id=row["board_id"],
            category_id=row["category_id"],
            canonical_challenge_id=row["canonical_challenge_id"],
            order=row["sort_order"],
        )

    def get_challenge(self, conn: sqlite3.Connection, challenge_id: str) -> BoardChallenge | None:
        row = conn.execute(
            "SELECT id, board_id, category_id, canonical_challenge_id, sort_order FROM board_challenges WHERE id = ?",
            (challenge_id,),
        ).fetchone()
        return self._challenge_from_row(row) if row else None

    def find_canonical(self, conn: sqlite3.Connection, board_id: str, canonical_challenge_id: str) -> BoardChallenge | None:
        row = conn.execute(
            """SELECT id, board_id, category_id, canonical_challenge_id, sort_order FROM board_challenges
               WHERE board_id = ? AND canonical_challenge_id = ?""",
            (board_id, canonical_challenge_id),
        ).fetchone()
        return self._challenge_from_row(row) if row else None

    def list_challenges(self, conn: sqlite3.Connection, category_id: str) -> list[BoardChallenge]:
        rows = conn.execute(
            """SELECT id, board_id, category_id, canonical_challenge_id, sort_order FROM board_challenges
               WHERE category_id = ? ORDER BY sort_order, created_at""",
            (category_id,),
        ).fetchall()
        return [self._challenge_from_row(r) for r in rows]

    def count_challenges(self, conn: sqlite3.Connection, board_id: str) -> int:
        return conn.execute("SELECT COUNT(*) FROM board_challenges WHERE board_id = ?", (board_id,)).fetchone()[0]

    def delete_challenge(self, conn: sqlite3.Connection, challenge_id: str) -> None:
        conn.execute("DELETE FROM board_challenges WHERE id = ?", (challenge_id,))

    def set_challenge_order(self, conn: sqlite3.Connection, challenge_id: str, order: int) -> None:
        conn.execute("UPDATE board_challenges SET sort_order = ? WHERE id = ?", (order, challenge_id))

    def count_selections_for_category(self, conn: sqlite3.Connection, category_id: str) -> int:
        return conn.execute(
            """SELECT COUNT(*) FROM challenge_selections s JOIN board_challenges c ON c.id = s.board_challenge_id
               WHERE c.category_id = ?""",
            (category_id,),
        ).fetchone()[0]

    def count_selections_for_challenge(self, conn: sqlite3.Connection, challenge_id: str) -> int:
        return conn.execute(
            "SELECT COUNT(*) FROM challenge_selections WHERE board_challenge_id = ?", (challenge_id,)
        ).fetchone()[0]


# ---------- AdvantageRepository ----------


class AdvantageRepository:
    """Canonical advantages shared by every season."""

    def create(self, conn: sqlite3.Connection, code: str, name: str, description: str = "") -> CanonicalAdvantage:
        aid = _new_id()
        conn.execute(
            "INSERT INTO canonical_advantages (id, code, name, description, created_at) VALUES (?, ?, ?, ?, ?)",
            (aid, code, name, description, _now()),
        )
        return CanonicalAdvantage(id=aid, code=code, name=name, description=description)

    def _from_row(self, row: sqlite3.Row) -> CanonicalAdvantage:
        return CanonicalAdvantage(id=row["id"], code=row["code"], name=row["name"], description=row["description"])

    def get(self, conn: sqlite3.Connection, advantage_id: str) -> CanonicalAdvantage | None:
        row = conn.execute(
            "SELECT id, code, name, description FROM canonical_advantages WHERE id = ?", (advantage_id,)
        ).fetchone()
        return self._from_row(row) if row else None

    def get_by_code(self, conn: sqlite3.Connection, code: str) -> CanonicalAdvantage | None:
        row = conn.execute(
            "SELECT id, code, name, description FROM canonical_advantages WHERE code = ?", (code,)
        ).fetchone()
        return self._from_row(row) if row else None

    def list_advantages(self, conn: sqlite3.Connection) -> list[CanonicalAdvantage]:
        rows = conn.execute("SELECT id, code, name, description FROM canonical_advantages ORDER BY code").fetchall()
        return [self._from_row(r) for r in rows]


# ---------- AdvantageBoardRepository ----------

_BOARD_ADVANTAGE_SELECT = """SELECT b.id, b.board_id, b.tier, b.canonical_advantage_id, b.sort_order, a.code, a.name
    FROM board_advantages b JOIN canonical_advantages a ON a.id = b.canonical_advantage_id"""


class AdvantageBoardRepository:
    """Advantage boards and their tiered advantages."""

    def create(self, conn: sqlite3.Connection, season_id: str) -> AdvantageBoard:
        bid = _new_id()
        now = _now()
        conn.execute(
            "INSERT INTO advantage_boards (id, season_id, is_locked, created_at) VALUES (?, ?, 0, ?)",
            (bid, season_id, now),
        )
        return AdvantageBoard(id=bid, season_id=season_id, is_locked=False, created_at=_parse_datetime(now))

    def get_by_season(self, conn: sqlite3.Connection, season_id: str) -> AdvantageBoard | None:
        row = conn.execute(
            "SELECT id, season_id, is_locked, created_at FROM advantage_boards WHERE season_id = ?", (season_id,)
        ).fetchone()
        if row is None:
            return None
        board = AdvantageBoard(
            id=row["id"], season_id=row["season_id"], is_locked=bool(row["is_locked"]),
            created_at=_parse_datetime(row["created_at"]),
        )
        rows = conn.execute(
            _BOARD_ADVANTAGE_SELECT + " WHERE b.board_id = ? ORDER BY b.tier, b.sort_order", (board.id,)
        ).fetchall()
        board.advantages = [self._advantage_from_row(r) for r in rows]
        return board

    def set_locked(self, conn: sqlite3.Connection, board_id: str, locked: bool) -> None:
        conn.execute("UPDATE advantage_boards SET is_locked = ? WHERE id = ?", (1 if locked else 0, board_id))

    def _advantage_from_row(self, row: sqlite3.Row) -> BoardAdvantage:
        return BoardAdvantage(
            id=row["id"],
            board_id=row["board_id"],
            tier=row["tier"],
            canonical_advantage_id=row["canonical_advantage_id"],
            order=row["sort_order"],
            code=row["code"],
            name=row["name"],
        )

    def add_advantage(
        self, conn: sqlite3.Connection, board_id: str, tier: int, canonical_advantage_id: str, order: int
    ) -> BoardAdvantage:
        aid = _new_id()
        conn.execute(
            """INSERT INTO board_advantages (id, board_id, tier, canonical_advantage_id, sort_order, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (aid, board_id, tier, canonical_advantage_id, order, _now()),
        )
        return self._advantage_from_row(self._advantage_row(conn, aid))

    def _advantage_row(self, conn: sqlite3.Connection, board_advantage_id: str) -> Any:
        return conn.execute(_BOARD_ADVANTAGE_SELECT + " WHERE b.id = ?", (board_advantage_id,)).fetchone()

    def get_advantage(self, conn: sqlite3.Connection, board_advantage_id: str) -> BoardAdvantage | None:
        row = self._advantage_row(conn, board_advantage_id)
        return self._advantage_from_row(row) if row else None

    def list_tier(self, conn: sqlite3.Connection, board_id: str, tier: int) -> list[BoardAdvantage]:
        rows = conn.execute(
            _BOARD_ADVANTAGE_SELECT + " WHERE b.board_id = ? AND b.tier = ? ORDER BY b.sort_order, b.created_at",
            (board_id, tier),
        ).fetchall()
        return [self._advantage_from_row(r) for r in rows]

    def set_order(self, conn: sqlite3.Connection, board_advantage_id: str, order: int) -> None:
        conn.execute("UPDATE board_advantages SET sort_order = ? WHERE id = ?", (order, board_advantage_id))

    def delete_advantage(self, conn: sqlite3.Connection, board_advantage_id: str) -> None:
        conn.execute("DELETE FROM board_advantages WHERE id = ?", (board_advantage_id,))

    def delete_all_advantages(self, conn: sqlite3.Connection, board_id: str) -> None:
        conn.execute("DELETE FROM board_advantages WHERE board_id = ?", (board_id,))


# ---------- DraftRepository ----------


class DraftRepository:
    """Draft prompts, draft cursor and per-round prompt selections."""

    _PROMPT_COLS = "id, season_id, text, category, status, selected_by_player_id, selected_at_round, selected_at_week"

    def create_prompt(
        self, conn: sqlite3.Connection, season_id: str, text: str, category: str = DEFAULT_PROMPT_CATEGORY
    ) -> DraftPrompt:
        pid = _new_id()
        conn.execute(
            "INSERT INTO draft_prompts (id, season_id, text, category, status, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (pid, season_id, text, category, PromptStatus.OPEN.value, _now()),
        )
        return DraftPrompt(id=pid, season_id=season_id, text=text, category=category, status=PromptStatus.OPEN.value)

    def _prompt_from_row(self, row: sqlite3.Row) -> DraftPrompt:
        return DraftPrompt(
            id=row["id"],
            season_id=row["season_id"],
            text=row["text"],
            category=row["category"],
            status=row["status"],
            selected_by_player_id=row["selected_by_player_id"],
            selected_at_round=row["selected_at_round"],
            selected_at_week=row["selected_at_week"],
        )

    def get_prompt(self, conn: sqlite3.Connection, prompt_id: str) -> DraftPrompt | None:
        row = conn.execute(f"SELECT {self._PROMPT_COLS} FROM draft_prompts WHERE id = ?", (prompt_id,)).fetchone()
        return self._prompt_from_row(row) if row else None

    def list_prompts(
        self, conn: sqlite3.Connection, season_id: str, status: str | None = None, category: str | None = None
    ) -> list[DraftPrompt]:
        sql = f"SELECT {self._PROMPT_COLS} FROM draft_prompts WHERE season_id = ?"
        args: list[Any] = [season_id]
        if status is not None:
            sql += " AND status = ?"
            args.append(status)
        if category is not None:
            sql += " AND category = ?"
            args.append(category)
        rows = conn.execute(sql + " ORDER BY created_at, rowid", tuple(args)).fetchall()
        return [self._prompt_from_row(r) for r in rows]

    def mark_prompt_selected(
        self,
        conn: sqlite3.Connection,
        prompt_id: str,
        player_id: str,
        round_number: int | None = None,
        week: int | None = None,
    ) -> None:
        conn.execute(
            """UPDATE draft_prompts SET status = ?, selected_by_player_id = ?, selected_at_round = ?, selected_at_week = ?
               WHERE id = ?""",
            (PromptStatus.SELECTED.value, player_id, round_number, week, prompt_id),
        )

    def set_prompt_status(self, conn: sqlite3.Connection, prompt_id: str, status: str) -> None:
        conn.execute("UPDATE draft_prompts SET status = ? WHERE id = ?", (status, prompt_id))

    def reset_prompts(self, conn: sqlite3.Connection, season_id: str) -> int:
        cur = conn.execute(
            """UPDATE draft_prompts SET status = ?, selected_by_player_id = NULL, selected_at_round = NULL,
               selected_at_week = NULL WHERE season_id = ?""",
            (PromptStatus.OPEN.value, season_id),
        )
        return cur.rowcount

    def reset_prompts_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        cur = conn.execute(
            """UPDATE draft_prompts SET status = ?, selected_by_player_id = NULL, selected_at_round = NULL,
               selected_at_week = NULL WHERE season_id = ? AND selected_at_week >= ?""",
            (PromptStatus.OPEN.value, season_id, from_week),
        )
        return cur.rowcount

    # ---------- draft state ----------

    def save_state(self, conn: sqlite3.Connection, state: DraftState) -> None:
        conn.execute(
            """INSERT INTO draft_states (season_id, draft_order, current_round, current_pick_index, is_complete, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(season_id) DO UPDATE SET draft_order = excluded.draft_order,
                   current_round = excluded.current_round, current_pick_index = excluded.current_pick_index,
                   is_complete = excluded.is_complete, updated_at = excluded.updated_at""",
            (state.season_id, json.dumps(state.draft_order), state.current_round,
             state.current_pick_index, 1 if state.is_complete else 0, _now()),
        )

    def get_state(self, conn: sqlite3.Connection, season_id: str) -> DraftState | None:
        row = conn.execute(
            "SELECT season_id, draft_order, current_round, current_pick_index, is_complete FROM draft_states WHERE season_id = ?",
            (season_id,),
        ).fetchone()
        if row is None:
            return None
        return DraftState(
            season_id=row["season_id"],
            draft_order=json.loads(row["draft_order"]),
            current_round=row["current_round"],
            current_pick_index=row["current_pick_index"],
            is_complete=bool(row["is_complete"]),
        )

    def delete_state(self, conn: sqlite3.Connection, season_id: str) -> int:
        return conn.execute("DELETE FROM draft_states WHERE season_id = ?", (season_id,)).rowcount

    # ---------- selections ----------

    def create_selection(
        self, conn: sqlite3.Connection, season_id: str, prompt_id: str, player_id: str, round_number: int
    ) -> DraftSelection:
        sid = _new_id()
        conn.execute(
            """INSERT INTO draft_selections (id, season_id, prompt_id, selected_by_player_id, round, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (sid, season_id, prompt_id, player_id, round_number, _now()),
        )
        return DraftSelection(id=sid, season_id=season_id, prompt_id=prompt_id,
                              selected_by_player_id=player_id, round=round_number)

    def get_selection_for_round(self, conn: sqlite3.Connection, season_id: str, round_number: int) -> DraftSelection | None:
        row = conn.execute(
            "SELECT id, season_id, prompt_id, selected_by_player_id, round FROM draft_selections WHERE season_id = ? AND round = ?",
            (season_id, round_number),
        ).fetchone()
        if row is None:
            return None
        return DraftSelection(
            id=row["id"], season_id=row["season_id"], prompt_id=row["prompt_id"],
            selected_by_player_id=row["selected_by_player_id"], round=row["round"],
        )

    def delete_selections(self, conn: sqlite3.Connection, season_id: str) -> int:
        return conn.execute("DELETE FROM draft_selections WHERE season_id = ?", (season_id,)).rowcount


# ---------- RosterRepository ----------


class RosterRepository:
    """Artists and roster entries."""

    _ENTRY_COLS = (
        "e.id, e.season_id, e.season_player_id, e.artist_id, e.prompt_id, e.status, e.acquired_via, "
        "e.acquired_at_week, e.acquired_at_round, e.cut_at_week, a.name AS artist_name"
    )

    def create_artist(self, conn: sqlite3.Connection, season_id: str, name: str) -> Artist:
        aid = _new_id()
        conn.execute(
            "INSERT INTO artists (id, season_id, name, created_at) VALUES (?, ?, ?, ?)", (aid, season_id, name, _now())
        )
        return Artist(id=aid, season_id=season_id, name=name)

    def get_artist(self, conn: sqlite3.Connection, artist_id: str) -> Artist | None:
        row = conn.execute("SELECT id, season_id, name FROM artists WHERE id = ?", (artist_id,)).fetchone()
        return Artist(id=row["id"], season_id=row["season_id"], name=row["name"]) if row else None

    def find_artist_by_name(self, conn: sqlite3.Connection, season_id: str, name: str) -> Artist | None:
        row = conn.execute(
            "SELECT id, season_id, name FROM artists WHERE season_id = ? AND lower(name) = lower(?)", (season_id, name)
        ).fetchone()
        return Artist(id=row["id"], season_id=row["season_id"], name=row["name"]) if row else None

    def count_artists(self, conn: sqlite3.Connection, season_id: str) -> int:
        return conn.execute("SELECT COUNT(*) FROM artists WHERE season_id = ?", (season_id,)).fetchone()[0]

    def create_entry(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        player_id: str,
        artist_id: str,
        acquired_via: str,
        acquired_at_week: int,
        prompt_id: str | None = None,
        acquired_at_round: int | None = None,
    ) -> RosterEntry:
        eid = _new_id()
        conn.execute(
            """INSERT INTO roster_entries (id, season_id, season_player_id, artist_id, prompt_id, status,
               acquired_via, acquired_at_week, acquired_at_round, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (eid, season_id, player_id, artist_id, prompt_id, RosterEntryStatus.ACTIVE.value,
             acquired_via, acquired_at_week, acquired_at_round, _now()),
        )
        return self._entry_from_row(self._entry_row(conn, eid))

    def _entry_from_row(self, row: sqlite3.Row) -> RosterEntry:
        return RosterEntry(
            id=row["id"],
            season_id=row["season_id"],
            season_player_id=row["season_player_id"],
            artist_id=row["artist_id"],
            prompt_id=row["prompt_id"],
            status=row["status"],
            acquired_via=row["acquired_via"],
            acquired_at_week=row["acquired_at_week"],
            acquired_at_round=row["acquired_at_round"],
            cut_at_week=row["cut_at_week"],
            artist_name=row["artist_name"],
        )

    def _entry_row(self, conn: sqlite3.Connection, entry_id: str) -> Any:
        return conn.execute(
            f"SELECT {self._ENTRY_COLS} FROM roster_entries e JOIN artists a ON a.id = e.artist_id WHERE e.id = ?",
            (entry_id,),
        ).fetchone()

    def get_entry(self, conn: sqlite3.Connection, entry_id: str) -> RosterEntry | None:
        row = self._entry_row(conn, entry_id)
        return self._entry_from_row(row) if row else None

    def get_active_entry_for_artist(self, conn: sqlite3.Connection, season_id: str, artist_id: str) -> RosterEntry | None:
        row = conn.execute(
            f"""SELECT {self._ENTRY_COLS} FROM roster_entries e JOIN artists a ON a.id = e.artist_id
                WHERE e.season_id = ? AND e.artist_id = ? AND e.status = ?""",
            (season_id, artist_id, RosterEntryStatus.ACTIVE.value),
        ).fetchone()
        return self._entry_from_row(row) if row else None

    def list_by_player(
        self, conn: sqlite3.Connection, player_id: str, status: str | None = RosterEntryStatus.ACTIVE.value
    ) -> list[RosterEntry]:
        sql = f"SELECT {self._ENTRY_COLS} FROM roster_entries e JOIN artists a ON a.id = e.artist_id WHERE e.season_player_id = ?"
        args: tuple = (player_id,)
        if status is not None:
            sql += " AND e.status = ?"
            args = (player_id, status)
        rows = conn.execute(sql + " ORDER BY e.acquired_at_week, e.acquired_at_round, e.created_at", args).fetchall()
        return [self._entry_from_row(r) for r in rows]

    def list_by_season(self, conn: sqlite3.Connection, season_id: str) -> list[RosterEntry]:
        rows = conn.execute(
            f"""SELECT {self._ENTRY_COLS} FROM roster_entries e JOIN artists a ON a.id = e.artist_id
                WHERE e.season_id = ? ORDER BY e.season_player_id, e.acquired_at_week, e.created_at""",
            (season_id,),
        ).fetchall()
        return [self._entry_from_row(r) for r in rows]

    def count_active(self, conn: sqlite3.Connection, player_id: str) -> int:
        return conn.execute(
            "SELECT COUNT(*) FROM roster_entries WHERE season_player_id = ? AND status = ?",
            (player_id, RosterEntryStatus.ACTIVE.value),
        ).fetchone()[0]

    def mark_cut(self, conn: sqlite3.Connection, entry_id: str, week: int) -> None:
        conn.execute(
            "UPDATE roster_entries SET status = ?, cut_at_week = ? WHERE id = ?",
            (RosterEntryStatus.CUT.value, week, entry_id),
        )

    def restore_cuts_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        cur = conn.execute(
            "UPDATE roster_entries SET status = ?, cut_at_week = NULL WHERE season_id = ? AND status = ? AND cut_at_week >= ?",
            (RosterEntryStatus.ACTIVE.value, season_id, RosterEntryStatus.CUT.value, from_week),
        )
        return cur.rowcount

    def delete_acquired_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        """Delete in-season acquisitions; draft picks (week 0) are never touched."""
        cur = conn.execute(
            "DELETE FROM roster_entries WHERE season_id = ? AND acquired_via != ? AND acquired_at_week >= ?",
            (season_id, AcquiredVia.DRAFT.value, max(from_week, 1)),
        )
        return cur.rowcount

    def delete_all_entries(self, conn: sqlite3.Connection, season_id: str) -> int:
        return conn.execute("DELETE FROM roster_entries WHERE season_id = ?", (season_id,)).rowcount

    def delete_orphan_artists(self, conn: sqlite3.Connection, season_id: str) -> int:
        """Remove artists referenced by neither a roster entry nor a pool entry."""
        cur = conn.execute(
            """DELETE FROM artists WHERE season_id = ?
               AND id NOT IN (SELECT artist_id FROM roster_entries WHERE season_id = ?)
               AND id NOT IN (SELECT artist_id FROM pool_entries WHERE season_id = ?)""",
            (season_id, season_id, season_id),
        )
        return cur.rowcount


# ---------- PoolRepository ----------


class PoolRepository:
    """Artist pool entries. Category (OLD/NEW) is computed by the service, never stored."""

    _COLS = (
        "p.id, p.season_id, p.artist_id, p.entered_week, p.entered_via, p.status, p.cut_by_player_id, "
        "p.cut_from_player_id, p.drafted_by_player_id, p.drafted_at_week, p.banished_at_week, a.name AS artist_name"
    )

    def create(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        artist_id: str,
        entered_week: int,
        entered_via: str,
        cut_by_player_id: str | None = None,
        cut_from_player_id: str | None = None,
    ) -> PoolEntry:
        pid = _new_id()
        conn.execute(
            """INSERT INTO pool_entries (id, season_id, artist_id, entered_week, entered_via, status,
               cut_by_player_id, cut_from_player_id, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (pid, season_id, artist_id, entered_week, entered_via, PoolEntryStatus.AVAILABLE.value,
             cut_by_player_id, cut_from_player_id, _now()),
        )
        return self._from_row(self._row(conn, pid))

    def _from_row(self, row: sqlite3.Row) -> PoolEntry:
        return PoolEntry(
            id=row["id"],
            season_id=row["season_id"],
            artist_id=row["artist_id"],
            entered_week=row["entered_week"],
            entered_via=row["entered_via"],
            status=row["status"],
            cut_by_player_id=row["cut_by_player_id"],
            cut_from_player_id=row["cut_from_player_id"],
            drafted_by_player_id=row["drafted_by_player_id"],
            drafted_at_week=row["drafted_at_week"],
            banished_at_week=row["banished_at_week"],
            artist_name=row["artist_name"],
        )

    def _row(self, conn: sqlite3.Connection, entry_id: str) -> Any:
        return conn.execute(
            f"SELECT {self._COLS} FROM pool_entries p JOIN artists a ON a.id = p.artist_id WHERE p.id = ?", (entry_id,)
        ).fetchone()

    def get(self, conn: sqlite3.Connection, entry_id: str) -> PoolEntry | None:
        row = self._row(conn, entry_id)
        return self._from_row(row) if row else None

    def list_by_status(self, conn: sqlite3.Connection, season_id: str, status: str) -> list[PoolEntry]:
        rows = conn.execute(
            f"""SELECT {self._COLS} FROM pool_entries p JOIN artists a ON a.id = p.artist_id
                WHERE p.season_id = ? AND p.status = ? ORDER BY p.entered_week, p.created_at, p.rowid""",
            (season_id, status),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def find_available_for_artist(self, conn: sqlite3.Connection, season_id: str, artist_id: str) -> PoolEntry | None:
        row = conn.execute(
            f"""SELECT {self._COLS} FROM pool_entries p JOIN artists a ON a.id = p.artist_id
                WHERE p.season_id = ? AND p.artist_id = ? AND p.status = ?""",
            (season_id, artist_id, PoolEntryStatus.AVAILABLE.value),
        ).fetchone()
        return self._from_row(row) if row else None

    def mark_drafted(self, conn: sqlite3.Connection, entry_id: str, player_id: str, week: int) -> None:
        conn.execute(
            "UPDATE pool_entries SET status = ?, drafted_by_player_id = ?, drafted_at_week = ? WHERE id = ?",
            (PoolEntryStatus.DRAFTED.value, player_id, week, entry_id),
        )

    def banish_entered_before(self, conn: sqlite3.Connection, season_id: str, week: int) -> int:
        """Banish every AVAILABLE entry that entered the pool before week."""
        cur = conn.execute(
            "UPDATE pool_entries SET status = ?, banished_at_week = ? WHERE season_id = ? AND status = ? AND entered_week < ?",
            (PoolEntryStatus.BANISHED.value, week, season_id, PoolEntryStatus.AVAILABLE.value, week),
        )
        return cur.rowcount

    def release_drafted_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        cur = conn.execute(
            """UPDATE pool_entries SET status = ?, drafted_by_player_id = NULL, drafted_at_week = NULL
               WHERE season_id = ? AND status = ? AND drafted_at_week >= ?""",
            (PoolEntryStatus.AVAILABLE.value, season_id, PoolEntryStatus.DRAFTED.value, from_week),
        )
        return cur.rowcount

    def unbanish_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        cur = conn.execute(
            """UPDATE pool_entries SET status = ?, banished_at_week = NULL
               WHERE season_id = ? AND status = ? AND banished_at_week >= ?""",
            (PoolEntryStatus.AVAILABLE.value, season_id, PoolEntryStatus.BANISHED.value, from_week),
        )
        return cur.rowcount

    def delete_entered_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        return conn.execute(
            "DELETE FROM pool_entries WHERE season_id = ? AND entered_week >= ?", (season_id, from_week)
        ).rowcount

    def delete_all(self, conn: sqlite3.Connection, season_id: str) -> int:
        return conn.execute("DELETE FROM pool_entries WHERE season_id = ?", (season_id,)).rowcount


# ---------- InventoryRepository ----------


class InventoryRepository:
    """Advantages held by season players."""

    def create(
        self, conn: sqlite3.Connection, season_id: str, player_id: str, advantage_code: str, source: str, earned_week: int
    ) -> InventoryItem:
        iid = _new_id()
        conn.execute(
            """INSERT INTO inventory_items (id, season_id, season_player_id, advantage_code, source, earned_week, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (iid, season_id, player_id, advantage_code, source, earned_week, _now()),
        )
        return InventoryItem(id=iid, season_id=season_id, season_player_id=player_id,
                             advantage_code=advantage_code, source=source, earned_week=earned_week)

    def list_by_season(self, conn: sqlite3.Connection, season_id: str) -> list[InventoryItem]:
        rows = conn.execute(
            """SELECT id, season_id, season_player_id, advantage_code, source, earned_week FROM inventory_items
               WHERE season_id = ? ORDER BY earned_week, created_at""",
            (season_id,),
        ).fetchall()
        return [
            InventoryItem(id=r["id"], season_id=r["season_id"], season_player_id=r["season_player_id"],
                          advantage_code=r["advantage_code"], source=r["source"], earned_week=r["earned_week"])
            for r in rows
        ]

    def delete_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        return conn.execute(
            "DELETE FROM inventory_items WHERE season_id = ? AND earned_week >= ?", (season_id, from_week)
        ).rowcount


# ---------- WeeklyRepository ----------


class WeeklyRepository:
    """Challenge selections, playlists, presentation, voting and weekly results."""

    # ---------- challenge selections ----------

    def create_selection(
        self, conn: sqlite3.Connection, season_id: str, week: int, board_challenge_id: str, player_id: str
    ) -> ChallengeSelection:
        sid = _new_id()
        conn.execute(
            """INSERT INTO challenge_selections (id, season_id, week, board_challenge_id, selected_by_player_id, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (sid, season_id, week, board_challenge_id, player_id, _now()),
        )
        return ChallengeSelection(id=sid, season_id=season_id, week=week,
                                  board_challenge_id=board_challenge_id, selected_by_player_id=player_id)

    def list_selections(self, conn: sqlite3.Connection, season_id: str) -> list[ChallengeSelection]:
        rows = conn.execute(
            """SELECT id, season_id, week, board_challenge_id, selected_by_player_id FROM challenge_selections
               WHERE season_id = ? ORDER BY week""",
            (season_id,),
        ).fetchall()
        return [
            ChallengeSelection(id=r["id"], season_id=r["season_id"], week=r["week"],
                               board_challenge_id=r["board_challenge_id"], selected_by_player_id=r["selected_by_player_id"])
            for r in rows
        ]

    def get_selection(self, conn: sqlite3.Connection, season_id: str, week: int) -> ChallengeSelection | None:
        for s in self.list_selections(conn, season_id):
            if s.week == week:
                return s
        return None

    def delete_selections_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        return conn.execute(
            "DELETE FROM challenge_selections WHERE season_id = ? AND week >= ?", (season_id, from_week)
        ).rowcount

    # ---------- playlists ----------

    def upsert_playlist(
        self, conn: sqlite3.Connection, season_id: str, week: int, player_id: str, tracks: list[str]
    ) -> PlaylistSubmission:
        now = _now()
        conn.execute(
            """INSERT INTO playlist_submissions (id, season_id, week, season_player_id, tracks, submitted_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(season_id, week, season_player_id) DO UPDATE SET
                   tracks = excluded.tracks, submitted_at = excluded.submitted_at""",
            (_new_id(), season_id, week, player_id, json.dumps(tracks), now),
        )
        return next(p for p in self.list_playlists(conn, season_id, week) if p.season_player_id == player_id)

    def list_playlists(self, conn: sqlite3.Connection, season_id: str, week: int) -> list[PlaylistSubmission]:
        rows = conn.execute(
            """SELECT id, season_id, week, season_player_id, tracks, submitted_at FROM playlist_submissions
               WHERE season_id = ? AND week = ? ORDER BY submitted_at""",
            (season_id, week),
        ).fetchall()
        return [
            PlaylistSubmission(id=r["id"], season_id=r["season_id"], week=r["week"],
                               season_player_id=r["season_player_id"], tracks=json.loads(r["tracks"]),
                               submitted_at=_parse_datetime(r["submitted_at"]))
            for r in rows
        ]

    def delete_playlists_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        return conn.execute(
            "DELETE FROM playlist_submissions WHERE season_id = ? AND week >= ?", (season_id, from_week)
        ).rowcount

    # ---------- presentation ----------

    def create_presentation(
        self, conn: sqlite3.Connection, season_id: str, week: int, presenter_order: list[str]
    ) -> PresentationState:
        pid = _new_id()
        conn.execute(
            """INSERT INTO presentation_states (id, season_id, week, presenter_order, presented, created_at)
               VALUES (?, ?, ?, ?, '[]', ?)""",
            (pid, season_id, week, json.dumps(presenter_order), _now()),
        )
        return PresentationState(id=pid, season_id=season_id, week=week,
                                 presenter_order=list(presenter_order), presented=[])

    def get_presentation(self, conn: sqlite3.Connection, season_id: str, week: int) -> PresentationState | None:
        row = conn.execute(
            "SELECT id, season_id, week, presenter_order, presented FROM presentation_states WHERE season_id = ? AND week = ?",
            (season_id, week),
        ).fetchone()
        if row is None:
            return None
        return PresentationState(
            id=row["id"], season_id=row["season_id"], week=row["week"],
            presenter_order=json.loads(row["presenter_order"]), presented=json.loads(row["presented"]),
        )

    def set_presented(self, conn: sqlite3.Connection, presentation_id: str, presented: list[str]) -> None:
        conn.execute(
            "UPDATE presentation_states SET presented = ? WHERE id = ?", (json.dumps(presented), presentation_id)
        )

    def delete_presentations_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        return conn.execute(
            "DELETE FROM presentation_states WHERE season_id = ? AND week >= ?", (season_id, from_week)
        ).rowcount

    # ---------- voting ----------

    def create_session(
        self, conn: sqlite3.Connection, season_id: str, week: int, categories: list[AwardCategory]
    ) -> VotingSession:
        sid = _new_id()
        conn.execute(
            "INSERT INTO voting_sessions (id, season_id, week, categories, status, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (sid, season_id, week, _dump_award_categories(categories), VotingStatus.OPEN.value, _now()),
        )
        return VotingSession(id=sid, season_id=season_id, week=week, categories=list(categories),
                             status=VotingStatus.OPEN.value)

    def get_session(self, conn: sqlite3.Connection, season_id: str, week: int) -> VotingSession | None:
        row = conn.execute(
            "SELECT id, season_id, week, categories, status FROM voting_sessions WHERE season_id = ? AND week = ?",
            (season_id, week),
        ).fetchone()
        if row is None:
            return None
        return VotingSession(
            id=row["id"], season_id=row["season_id"], week=row["week"],
            categories=_award_categories(row["categories"]), status=row["status"],
        )

    def close_session(self, conn: sqlite3.Connection, session_id: str) -> None:
        conn.execute(
            "UPDATE voting_sessions SET status = ?, closed_at = ? WHERE id = ?",
            (VotingStatus.CLOSED.value, _now(), session_id),
        )

    def create_vote(
        self, conn: sqlite3.Connection, session_id: str, category_id: str, voter_id: str, nominee_id: str
    ) -> Vote:
        vid = _new_id()
        conn.execute(
            """INSERT INTO votes (id, session_id, category_id, voter_player_id, nominee_player_id, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (vid, session_id, category_id, voter_id, nominee_id, _now()),
        )
        return Vote(id=vid, session_id=session_id, category_id=category_id,
                    voter_player_id=voter_id, nominee_player_id=nominee_id)

    def list_votes(self, conn: sqlite3.Connection, session_id: str) -> list[Vote]:
        rows = conn.execute(
            "SELECT id, session_id, category_id, voter_player_id, nominee_player_id FROM votes WHERE session_id = ?",
            (session_id,),
        ).fetchall()
        return [
            Vote(id=r["id"], session_id=r["session_id"], category_id=r["category_id"],
                 voter_player_id=r["voter_player_id"], nominee_player_id=r["nominee_player_id"])
            for r in rows
        ]

    def delete_voting_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> tuple[int, int]:
        """Votes first, then their sessions. Returns (votes, sessions) deleted."""
        votes = conn.execute(
            """DELETE FROM votes WHERE session_id IN
               (SELECT id FROM voting_sessions WHERE season_id = ? AND week >= ?)""",
            (season_id, from_week),
        ).rowcount
        sessions = conn.execute(
            "DELETE FROM voting_sessions WHERE season_id = ? AND week >= ?", (season_id, from_week)
        ).rowcount
        return votes, sessions

    # ---------- results ----------

    def create_result(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        week: int,
        player_id: str,
        voting_points: int,
        placement: int,
        victory_points: int,
    ) -> WeeklyResult:
        rid = _new_id()
        conn.execute(
            """INSERT INTO weekly_results (id, season_id, week, season_player_id, voting_points, placement,
               victory_points, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (rid, season_id, week, player_id, voting_points, placement, victory_points, _now()),
        )
        return WeeklyResult(id=rid, season_id=season_id, week=week, season_player_id=player_id,
                            voting_points=voting_points, placement=placement, victory_points=victory_points)

    def list_results(self, conn: sqlite3.Connection, season_id: str, week: int | None = None) -> list[WeeklyResult]:
        sql = """SELECT id, season_id, week, season_player_id, voting_points, placement, victory_points
                 FROM weekly_results WHERE season_id = ?"""
        args: tuple = (season_id,)
        if week is not None:
            sql += " AND week = ?"
            args = (season_id, week)
        rows = conn.execute(sql + " ORDER BY week, placement", args).fetchall()
        return [
            WeeklyResult(id=r["id"], season_id=r["season_id"], week=r["week"], season_player_id=r["season_player_id"],
                         voting_points=r["voting_points"], placement=r["placement"], victory_points=r["victory_points"])
            for r in rows
        ]

    def delete_results_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        return conn.execute(
            "DELETE FROM weekly_results WHERE season_id = ? AND week >= ?", (season_id, from_week)
        ).rowcount


# ---------- RosterEvolutionRepository ----------


class RosterEvolutionRepository:
    """Per-season evolution settings (JSON document) and per-week evolution state."""

    def get_settings_doc(self, conn: sqlite3.Connection, season_id: str) -> dict[str, Any] | None:
        row = conn.execute(
            "SELECT settings FROM roster_evolution_settings WHERE season_id = ?", (season_id,)
        ).fetchone()
        return json.loads(row["settings"]) if row else None

    def save_settings(self, conn: sqlite3.Connection, settings: RosterEvolutionSettings) -> None:
        doc = settings.to_dict()
        doc.pop("season_id")
        conn.execute(
            """INSERT INTO roster_evolution_settings (season_id, settings, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(season_id) DO UPDATE SET settings = excluded.settings, updated_at = excluded.updated_at""",
            (settings.season_id, json.dumps(doc), _now()),
        )

    _STATE_COLS = (
        "id, season_id, week, week_type, phase, prompt_picker_id, prompt_id, standings_order, cuts, "
        "redraft_sequence, redraft_index, pool_sequence, pool_index, includes_pool_draft"
    )

    def create_state(self, conn: sqlite3.Connection, state: RosterEvolutionState) -> RosterEvolutionState:
        state.id = state.id or _new_id()
        conn.execute(
            f"""INSERT INTO roster_evolution_states ({self._STATE_COLS}, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (state.id, state.season_id, state.week, state.week_type, state.phase, state.prompt_picker_id,
             state.prompt_id, json.dumps(state.standings_order), json.dumps(state.cuts),
             json.dumps(state.redraft_sequence), state.redraft_index, json.dumps(state.pool_sequence),
             state.pool_index, 1 if state.includes_pool_draft else 0, _now()),
        )
        return state

    def update_state(self, conn: sqlite3.Connection, state: RosterEvolutionState) -> None:
        conn.execute(
            """UPDATE roster_evolution_states SET phase = ?, prompt_picker_id = ?, prompt_id = ?, cuts = ?,
               redraft_sequence = ?, redraft_index = ?, pool_sequence = ?, pool_index = ? WHERE id = ?""",
            (state.phase, state.prompt_picker_id, state.prompt_id, json.dumps(state.cuts),
             json.dumps(state.redraft_sequence), state.redraft_index, json.dumps(state.pool_sequence),
             state.pool_index, state.id),
        )

    def get_state(self, conn: sqlite3.Connection, season_id: str, week: int) -> RosterEvolutionState | None:
        row = conn.execute(
            f"SELECT {self._STATE_COLS} FROM roster_evolution_states WHERE season_id = ? AND week = ?",
            (season_id, week),
        ).fetchone()
        if row is None:
            return None
        return RosterEvolutionState(
            id=row["id"],
            season_id=row["season_id"],
            week=row["week"],
            week_type=row["week_type"],
            phase=row["phase"],
            prompt_picker_id=row["prompt_picker_id"],
            prompt_id=row["prompt_id"],
            standings_order=json.loads(row["standings_order"]),
            cuts=json.loads(row["cuts"]),
            redraft_sequence=json.loads(row["redraft_sequence"]),
            redraft_index=row["redraft_index"],
            pool_sequence=json.loads(row["pool_sequence"]),
            pool_index=row["pool_index"],
            includes_pool_draft=bool(row["includes_pool_draft"]),
        )

    def delete_states_from_week(self, conn: sqlite3.Connection, season_id: str, from_week: int) -> int:
        return conn.execute(
            "DELETE FROM roster_evolution_states WHERE season_id = ? AND week >= ?", (season_id, from_week)
        ).rowcount


# ---------- GameEventRepository ----------


class GameEventRepository:
    """Append-only season audit log."""

    def create(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        week: int,
        phase: str,
        event_type: str,
        actor_id: str | None,
        payload: dict[str, Any],
    ) -> GameEvent:
        eid = _new_id()
        now = _now()
        conn.execute(
            """INSERT INTO game_events (id, season_id, week, phase, event_type, actor_id, payload, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (eid, season_id, week, phase, event_type, actor_id, json.dumps(payload, default=str), now),
        )
        return GameEvent(id=eid, season_id=season_id, week=week, phase=phase, event_type=event_type,
                         actor_id=actor_id, payload=payload, created_at=_parse_datetime(now))

    def list_by_season(self, conn: sqlite3.Connection, season_id: str, limit: int | None = None) -> list[GameEvent]:
        sql = """SELECT id, season_id, week, phase, event_type, actor_id, payload, created_at FROM game_events
                 WHERE season_id = ? ORDER BY created_at, rowid"""
        args: tuple = (season_id,)
        if limit is not None:
            sql += " LIMIT ?"
            args = (season_id, limit)
        rows = conn.execute(sql, args).fetchall()
        return [
            GameEvent(id=r["id"], season_id=r["season_id"], week=r["week"], phase=r["phase"],
                      event_type=r["event_type"], actor_id=r["actor_id"], payload=json.loads(r["payload"]),
                      created_at=_parse_datetime(r["created_at"]))
            for r in rows
        ]

    def delete_types_for_week(
        self, conn: sqlite3.Connection, season_id: str, week: int, event_types: Iterable[str]
    ) -> int:
        types = list(event_types)
        if not types:
            return 0
        cur = conn.execute(
            f"DELETE FROM game_events WHERE season_id = ? AND week = ? AND event_type IN ({_placeholders(types)})",
            (season_id, week, *types),
        )
        return cur.rowcount


# ---------- Season-wide cascades ----------


class SeasonDataRepository:
    """Bulk deletes used when a season rewinds to before its draft."""

    def delete_preseason_gameplay(self, conn: sqlite3.Connection, season_id: str) -> dict[str, int]:
        """
        Remove everything produced from the draft onward, dependents first.
        Seasons, players, board and prompts survive.
        """
        counts: dict[str, int] = {}
        weekly = WeeklyRepository()
        counts["votes"], counts["voting_sessions"] = weekly.delete_voting_from_week(conn, season_id, 0)
        counts["presentation_states"] = weekly.delete_presentations_from_week(conn, season_id, 0)
        counts["playlist_submissions"] = weekly.delete_playlists_from_week(conn, season_id, 0)
        counts["weekly_results"] = weekly.delete_results_from_week(conn, season_id, 0)
        counts["challenge_selections"] = weekly.delete_selections_from_week(conn, season_id, 0)
        counts["inventory_items"] = InventoryRepository().delete_from_week(conn, season_id, 0)
        counts["roster_evolution_states"] = RosterEvolutionRepository().delete_states_from_week(conn, season_id, 0)
        counts["pool_entries"] = PoolRepository().delete_all(conn, season_id)
        roster = RosterRepository()
        counts["roster_entries"] = roster.delete_all_entries(conn, season_id)
        counts["artists"] = roster.delete_orphan_artists(conn, season_id)
        counts["draft_selections"] = DraftRepository().delete_selections(conn, season_id)
        return counts
