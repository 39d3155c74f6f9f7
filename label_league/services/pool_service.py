"""
Artist pool: artists cut from rosters, available for re-draft.

During a chaos week (read from the season's roster-evolution settings) the
available entries are partitioned into OLD (entered before the chaos week) and
NEW (entered during it). When the chaos-week redraft window closes every OLD
entry is banished; NEW entries stay in the pool.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any

from label_league.models import PoolCategory, PoolEntry, PoolEntryReason, PoolEntryStatus, Season, SeasonPlayer
from label_league.persistence.repositories import PoolRepository, RosterRepository
from label_league.services import events
from label_league.services.access import load_season
from label_league.services.errors import DuplicateEntity, InvalidTransition, NotFound

logger = logging.getLogger(__name__)


def categorize_pool_entry(entered_week: int, chaos_week: int) -> PoolCategory:
    """OLD if the artist entered the pool before the chaos week, otherwise NEW."""
    return PoolCategory.OLD if entered_week < chaos_week else PoolCategory.NEW


def partition_pool(entries: list[PoolEntry], chaos_week: int) -> dict[str, list[PoolEntry]]:
    out: dict[str, list[PoolEntry]] = {PoolCategory.OLD.value: [], PoolCategory.NEW.value: []}
    for e in entries:
        out[categorize_pool_entry(e.entered_week, chaos_week).value].append(e)
    return out


class PoolService:
    """Pool reads and writes. Callers that mutate rosters own the unit of work."""

    def __init__(self) -> None:
        self._pool_repo = PoolRepository()
        self._roster_repo = RosterRepository()

    def add_to_pool(
        self,
        conn: sqlite3.Connection,
        season: Season,
        artist_id: str,
        reason: PoolEntryReason,
        week: int,
        cut_by: SeasonPlayer | None = None,
        cut_from: SeasonPlayer | None = None,
    ) -> PoolEntry:
        if self._roster_repo.get_artist(conn, artist_id) is None:
            raise NotFound(f"Artist not found: {artist_id}")
        if self._pool_repo.find_available_for_artist(conn, season.id, artist_id) is not None:
            raise DuplicateEntity("Artist is already in the pool")
        return self._pool_repo.create(
            conn, season.id, artist_id, week, reason.value,
            cut_by_player_id=cut_by.id if cut_by else None,
            cut_from_player_id=cut_from.id if cut_from else None,
        )

    def list_pool(self, conn: sqlite3.Connection, season_id: str, chaos_week: int | None = None) -> list[PoolEntry]:
        """AVAILABLE entries; tagged OLD/NEW when chaos_week is given."""
        entries = self._pool_repo.list_by_status(conn, season_id, PoolEntryStatus.AVAILABLE.value)
        if chaos_week is not None:
            for e in entries:
                e.category = categorize_pool_entry(e.entered_week, chaos_week).value
        return entries

    def get_pool_view(self, conn: sqlite3.Connection, season_id: str) -> dict[str, Any]:
        """Pool for the season's current week, partitioned when that week is a chaos week."""
        from label_league.services.roster_evolution import RosterEvolutionService

        season = load_season(conn, season_id)
        settings = RosterEvolutionService().get_settings(conn, season_id)
        chaos_week = season.current_week if settings.is_chaos_week(season.current_week) else None
        entries = self.list_pool(conn, season_id, chaos_week=chaos_week)
        view: dict[str, Any] = {
            "season_id": season_id,
            "week": season.current_week,
            "is_chaos_week": chaos_week is not None,
            "entries": [e.to_dict() for e in entries],
            "count": len(entries),
        }
        if chaos_week is not None:
            parts = partition_pool(entries, chaos_week)
            view["old"] = [e.to_dict() for e in parts[PoolCategory.OLD.value]]
            view["new"] = [e.to_dict() for e in parts[PoolCategory.NEW.value]]
        return view

    def list_banished(self, conn: sqlite3.Connection, season_id: str) -> list[PoolEntry]:
        return self._pool_repo.list_by_status(conn, season_id, PoolEntryStatus.BANISHED.value)

    def pool_count(self, conn: sqlite3.Connection, season_id: str) -> int:
        return len(self._pool_repo.list_by_status(conn, season_id, PoolEntryStatus.AVAILABLE.value))

    def get_entry(self, conn: sqlite3.Connection, season_id: str, entry_id: str) -> PoolEntry:
        entry = self._pool_repo.get(conn, entry_id)
        if entry is None or entry.season_id != season_id:
            raise NotFound(f"Pool entry not found: {entry_id}")
        return entry

    def take_from_pool(
        self, conn: sqlite3.Connection, season: Season, entry_id: str, player: SeasonPlayer, week: int
    ) -> PoolEntry:
        """Mark an AVAILABLE entry DRAFTED by player. Roster entry is created by the caller."""
        entry = self.get_entry(conn, season.id, entry_id)
        if entry.status != PoolEntryStatus.AVAILABLE.value:
            raise InvalidTransition(f"Pool entry is not available (status: {entry.status})")
        self._pool_repo.mark_drafted(conn, entry.id, player.id, week)
        return self.get_entry(conn, season.id, entry.id)

    def banish_old_pool(self, conn: sqlite3.Connection, season: Season, chaos_week: int) -> int:
        """Banish every AVAILABLE entry that entered before chaos_week. Returns count."""
        count = self._pool_repo.banish_entered_before(conn, season.id, chaos_week)
        events.log_event(conn, season, events.POOL_BANISHED, {"chaos_week": chaos_week, "count": count})
        logger.info("POOL_BANISHED season_id=%s chaos_week=%s count=%s", season.id, chaos_week, count)
        return count
