"""
Roster evolution: the end-of-week cycle that reshapes rosters.

Week types come from per-season settings (default: every 4th week CHAOS, the
rest GROWTH). Phases of one week's evolution:

    CUTS -> PROMPT_SELECTION -> REDRAFT -> [POOL_DRAFT] -> COMPLETE

GROWTH: each player cuts self_cut_count of their own artists (SELF_CUT), then
redrafts redraft_count new artists under a prompt chosen by the last-placed
player. Pool-draft weeks add one pool pick per player per pool_draft_count.

CHAOS: each player cuts self_cut_count of their own artists (CHAOS_CUT) and
opponent_cuts_per_player from every opponent (OPPONENT_CUT). Opponent cuts
cannot take a roster below base_protection_count. Redraft refills each
roster to the chaos target. The pool is shown split OLD/NEW and OLD entries
are banished when the week's evolution is finished.

SKIP: the week's evolution starts COMPLETE.

Redraft and pool-draft order is reverse weekly standings (worst placement first).
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any

from label_league.config import (
    CHAOS_WEEK_INTERVAL,
    DEFAULT_BASE_PROTECTION_COUNT,
    DEFAULT_EVOLUTION_WEEKS,
    DEFAULT_OPPONENT_CUTS_PER_PLAYER,
    DEFAULT_POOL_DRAFT_COUNT,
    DEFAULT_POOL_DRAFT_WEEKS,
    DEFAULT_REDRAFT_COUNT,
    DEFAULT_SELF_CUT_COUNT,
)
from label_league.models import (
    AcquiredVia,
    EvolutionPhase,
    PoolEntryReason,
    PromptStatus,
    RosterEntry,
    RosterEvolutionSettings,
    RosterEvolutionState,
    Season,
    SeasonPhase,
    SeasonPlayer,
    SeasonStatus,
    WeekType,
)
from label_league.persistence.db import unit_of_work
from label_league.persistence.repositories import (
    DraftRepository,
    RosterEvolutionRepository,
    RosterRepository,
    SeasonRepository,
    WeeklyRepository,
)
from label_league.services import events
from label_league.services.access import (
    found,
    is_commissioner,
    load_season,
    require_commissioner,
    require_phase,
    resolve_player,
)
from label_league.services.errors import DuplicateEntity, InvalidTransition, NotFound, Unauthorized
from label_league.services.pool_service import PoolService

logger = logging.getLogger(__name__)


def default_week_types(weeks: int) -> dict[int, str]:
    return {
        w: (WeekType.CHAOS.value if w % CHAOS_WEEK_INTERVAL == 0 else WeekType.GROWTH.value)
        for w in range(1, weeks + 1)
    }


def default_settings(season: Season) -> RosterEvolutionSettings:
    weeks = max(season.challenge_count, DEFAULT_EVOLUTION_WEEKS)
    return RosterEvolutionSettings(
        season_id=season.id,
        week_types=default_week_types(weeks),
        self_cut_count=DEFAULT_SELF_CUT_COUNT,
        redraft_count=DEFAULT_REDRAFT_COUNT,
        pool_draft_weeks=list(DEFAULT_POOL_DRAFT_WEEKS),
        pool_draft_count=DEFAULT_POOL_DRAFT_COUNT,
        base_protection_count=DEFAULT_BASE_PROTECTION_COUNT,
        opponent_cuts_per_player=DEFAULT_OPPONENT_CUTS_PER_PLAYER,
        chaos_redraft_target=None,
        chaos_includes_pool_draft=True,
        chaos_banish_old_pool=True,
    )


def build_pick_sequence(order: list[str], needed: dict[str, int]) -> list[str]:
    """Round by round in `order`; a player appears in round r while they still need a pick."""
    rounds = max(needed.values(), default=0)
    return [pid for r in range(rounds) for pid in order if needed.get(pid, 0) > r]


class RosterEvolutionService:
    def __init__(self) -> None:
        self._season_repo = SeasonRepository()
        self._roster_repo = RosterRepository()
        self._draft_repo = DraftRepository()
        self._weekly_repo = WeeklyRepository()
        self._evolution_repo = RosterEvolutionRepository()
        self._pool = PoolService()

    # ---------- Settings ----------

    def get_settings(self, conn: sqlite3.Connection, season_id: str) -> RosterEvolutionSettings:
        season = load_season(conn, season_id)
        settings = default_settings(season)
        doc = self._evolution_repo.get_settings_doc(conn, season_id)
        if doc is None:
            return settings
        return self._apply(settings, doc)

    def save_settings(
        self, conn: sqlite3.Connection, season_id: str, changes: dict[str, Any], requester_id: str | None
    ) -> RosterEvolutionSettings:
        """
        Partial update. Week types of weeks whose evolution has already started
        cannot change.
        """
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            if season.status == SeasonStatus.COMPLETED.value:
                raise InvalidTransition("Season is completed")
            current = self.get_settings(conn, season_id)
            updated = self._apply(current, changes)
            for week in set(current.week_types) | set(updated.week_types):
                if current.week_type(week) == updated.week_type(week):
                    continue
                if self._week_locked(conn, season, week):
                    raise InvalidTransition(f"Week {week} roster evolution already started")
            self._evolution_repo.save_settings(conn, updated)
            return updated

    def _week_locked(self, conn: sqlite3.Connection, season: Season, week: int) -> bool:
        if season.status != SeasonStatus.IN_PROGRESS.value:
            return False
        if week < season.current_week:
            return True
        return week == season.current_week and self._evolution_repo.get_state(conn, season.id, week) is not None

    def _apply(self, settings: RosterEvolutionSettings, doc: dict[str, Any]) -> RosterEvolutionSettings:
        week_types = dict(settings.week_types)
        for k, v in (doc.get("week_types") or {}).items():
            week_types[int(k)] = WeekType(v).value
        counts = {}
        for key in ("self_cut_count", "redraft_count", "pool_draft_count", "base_protection_count",
                    "opponent_cuts_per_player"):
            value = doc.get(key, getattr(settings, key))
            if int(value) < 0:
                raise ValueError(f"{key} must be >= 0")
            counts[key] = int(value)
        target = doc.get("chaos_redraft_target", settings.chaos_redraft_target)
        return RosterEvolutionSettings(
            season_id=settings.season_id,
            week_types=week_types,
            pool_draft_weeks=[int(w) for w in doc.get("pool_draft_weeks", settings.pool_draft_weeks)],
            chaos_redraft_target=int(target) if target is not None else None,
            chaos_includes_pool_draft=bool(doc.get("chaos_includes_pool_draft", settings.chaos_includes_pool_draft)),
            chaos_banish_old_pool=bool(doc.get("chaos_banish_old_pool", settings.chaos_banish_old_pool)),
            **counts,
        )

    # ---------- State ----------

    def initialize_state(self, conn: sqlite3.Connection, season: Season) -> RosterEvolutionState:
        """Fresh evolution state for the season's current week. Caller owns the unit of work."""
        settings = self.get_settings(conn, season.id)
        week = season.current_week
        week_type = settings.week_type(week)
        players = self._season_repo.list_players(conn, season.id)
        draft_index = {p.id: i for i, p in enumerate(players)}
        results = self._weekly_repo.list_results(conn, season.id, week)
        if results:
            ranked = sorted(results, key=lambda r: (-r.placement, -draft_index.get(r.season_player_id, 0)))
            standings_order = [r.season_player_id for r in ranked]
        else:
            standings_order = [p.id for p in players]
        if week_type == WeekType.CHAOS.value:
            includes_pool = settings.chaos_includes_pool_draft
        else:
            includes_pool = week in settings.pool_draft_weeks
        state = RosterEvolutionState(
            id="",
            season_id=season.id,
            week=week,
            week_type=week_type,
            phase=EvolutionPhase.COMPLETE.value if week_type == WeekType.SKIP.value else EvolutionPhase.CUTS.value,
            prompt_picker_id=standings_order[0] if standings_order else None,
            prompt_id=None,
            standings_order=standings_order,
            cuts={pid: {"self": 0, "opponents": {}} for pid in standings_order},
            redraft_sequence=[],
            redraft_index=0,
            pool_sequence=[],
            pool_index=0,
            includes_pool_draft=includes_pool and week_type != WeekType.SKIP.value,
        )
        self._evolution_repo.create_state(conn, state)
        events.log_event(conn, season, events.ROSTER_EVOLUTION_STARTED,
                         {"week_type": week_type, "includes_pool_draft": state.includes_pool_draft,
                          "order": standings_order})
        if state.phase == EvolutionPhase.CUTS.value:
            self._advance_after_cuts(conn, season, state, settings)
        return state

    def get_state(self, conn: sqlite3.Connection, season_id: str, week: int | None = None) -> RosterEvolutionState | None:
        season = load_season(conn, season_id)
        return self._evolution_repo.get_state(conn, season_id, season.current_week if week is None else week)

    def get_view(self, conn: sqlite3.Connection, season_id: str) -> dict[str, Any]:
        season = load_season(conn, season_id)
        state = self._evolution_repo.get_state(conn, season_id, season.current_week)
        settings = self.get_settings(conn, season_id)
        view: dict[str, Any] = {
            "season_id": season_id,
            "week": season.current_week,
            "week_type": settings.week_type(season.current_week),
            "state": state.to_dict() if state else None,
        }
        if state is not None:
            view["current_redraft_picker_id"] = (
                state.redraft_sequence[state.redraft_index]
                if state.phase == EvolutionPhase.REDRAFT.value else None
            )
            view["current_pool_picker_id"] = (
                state.pool_sequence[state.pool_index]
                if state.phase == EvolutionPhase.POOL_DRAFT.value else None
            )
        return view

    # ---------- Cuts ----------

    def cut_artist(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        artist_id: str,
        requester_id: str | None,
        player_id: str | None = None,
    ) -> RosterEntry:
        with unit_of_work(conn, season_id):
            season, state, settings = self._load_active(conn, season_id, EvolutionPhase.CUTS)
            cutter = resolve_player(conn, season, requester_id, player_id)
            entry = self._roster_repo.get_active_entry_for_artist(conn, season_id, artist_id)
            if entry is None:
                raise NotFound(f"Artist is not on an active roster: {artist_id}")
            owner = found(self._season_repo.get_player(conn, entry.season_player_id), "Season player")
            progress = state.cuts.setdefault(cutter.id, {"self": 0, "opponents": {}})
            chaos = state.week_type == WeekType.CHAOS.value

            if owner.id == cutter.id:
                if progress["self"] >= settings.self_cut_count:
                    raise InvalidTransition("All required self cuts are done")
                reason = PoolEntryReason.CHAOS_CUT if chaos else PoolEntryReason.SELF_CUT
                progress["self"] += 1
            else:
                if not chaos:
                    raise Unauthorized("Only your own artists can be cut in a growth week")
                done = progress["opponents"].get(owner.id, 0)
                if done >= settings.opponent_cuts_per_player:
                    raise InvalidTransition(f"Already cut {done} artist(s) from {owner.label_name}")
                if self._roster_repo.count_active(conn, owner.id) <= settings.base_protection_count:
                    raise InvalidTransition(f"{owner.label_name}'s remaining artists are protected")
                reason = PoolEntryReason.OPPONENT_CUT
                progress["opponents"][owner.id] = done + 1

            self._roster_repo.mark_cut(conn, entry.id, state.week)
            self._pool.add_to_pool(conn, season, artist_id, reason, state.week, cut_by=cutter, cut_from=owner)
            events.log_event(conn, season, events.ARTIST_CUT,
                             {"artist_id": artist_id, "artist": entry.artist_name, "from": owner.label_name,
                              "by": cutter.label_name, "reason": reason.value},
                             actor_id=requester_id)
            self._advance_after_cuts(conn, season, state, settings)
            return found(self._roster_repo.get_entry(conn, entry.id), "Roster entry")

    def remaining_cuts(
        self, conn: sqlite3.Connection, state: RosterEvolutionState, settings: RosterEvolutionSettings
    ) -> dict[str, dict[str, Any]]:
        """Outstanding cuts per player; players with nothing left are omitted."""
        active = {pid: self._roster_repo.count_active(conn, pid) for pid in state.standings_order}
        out: dict[str, dict[str, Any]] = {}
        for pid in state.standings_order:
            progress = state.cuts.get(pid, {"self": 0, "opponents": {}})
            self_left = 0 if active[pid] == 0 else max(0, settings.self_cut_count - progress["self"])
            opponents_left: dict[str, int] = {}
            if state.week_type == WeekType.CHAOS.value:
                for other in state.standings_order:
                    if other == pid or active[other] <= settings.base_protection_count:
                        continue
                    left = settings.opponent_cuts_per_player - progress["opponents"].get(other, 0)
                    if left > 0:
                        opponents_left[other] = left
            if self_left or opponents_left:
                out[pid] = {"self": self_left, "opponents": opponents_left}
        return out

    def _advance_after_cuts(
        self,
        conn: sqlite3.Connection,
        season: Season,
        state: RosterEvolutionState,
        settings: RosterEvolutionSettings,
    ) -> None:
        if not self.remaining_cuts(conn, state, settings):
            state.phase = EvolutionPhase.PROMPT_SELECTION.value
        self._evolution_repo.update_state(conn, state)

    # ---------- Redraft ----------

    def select_redraft_prompt(
        self, conn: sqlite3.Connection, season_id: str, prompt_id: str, requester_id: str | None
    ) -> RosterEvolutionState:
        """Last-placed player (or the commissioner) picks the redraft prompt."""
        with unit_of_work(conn, season_id):
            season, state, settings = self._load_active(conn, season_id, EvolutionPhase.PROMPT_SELECTION)
            self._require_turn(conn, season, state.prompt_picker_id, requester_id)
            prompt = self._draft_repo.get_prompt(conn, prompt_id)
            if prompt is None or prompt.season_id != season_id:
                raise NotFound(f"Draft prompt not found: {prompt_id}")
            if prompt.status != PromptStatus.OPEN.value:
                raise InvalidTransition(f"Prompt is not open (status: {prompt.status})")
            if state.prompt_picker_id is None:
                raise InvalidTransition("No redraft prompt picker this week")
            self._draft_repo.mark_prompt_selected(conn, prompt_id, state.prompt_picker_id, week=state.week)
            state.prompt_id = prompt_id
            state.redraft_sequence = build_pick_sequence(state.standings_order, self._redraft_needs(conn, season, state, settings))
            state.redraft_index = 0
            state.phase = EvolutionPhase.REDRAFT.value
            events.log_event(conn, season, events.REDRAFT_PROMPT_SELECTED, {"prompt_id": prompt_id},
                             actor_id=requester_id)
            if not state.redraft_sequence:
                self._after_redraft(conn, season, state, settings)
            self._evolution_repo.update_state(conn, state)
            return state

    def _redraft_needs(
        self,
        conn: sqlite3.Connection,
        season: Season,
        state: RosterEvolutionState,
        settings: RosterEvolutionSettings,
    ) -> dict[str, int]:
        if state.week_type == WeekType.CHAOS.value:
            target = settings.chaos_redraft_target or season.roster_size
            return {pid: max(0, target - self._roster_repo.count_active(conn, pid)) for pid in state.standings_order}
        return {pid: settings.redraft_count for pid in state.standings_order}

    def redraft_artist(
        self, conn: sqlite3.Connection, season_id: str, artist_name: str, requester_id: str | None
    ) -> RosterEntry:
        name = artist_name.strip()
        if not name:
            raise ValueError("Artist name is required")
        with unit_of_work(conn, season_id):
            season, state, settings = self._load_active(conn, season_id, EvolutionPhase.REDRAFT)
            picker = self._require_turn(conn, season, state.redraft_sequence[state.redraft_index], requester_id)
            if self._roster_repo.find_artist_by_name(conn, season_id, name) is not None:
                raise DuplicateEntity(f"Artist already exists this season: {name}")
            artist = self._roster_repo.create_artist(conn, season_id, name)
            entry = self._roster_repo.create_entry(
                conn, season_id, picker.id, artist.id, AcquiredVia.REDRAFT.value, state.week,
                prompt_id=state.prompt_id,
            )
            events.log_event(conn, season, events.ARTIST_REDRAFTED,
                             {"artist_id": artist.id, "artist": name, "player": picker.label_name},
                             actor_id=requester_id)
            state.redraft_index += 1
            if state.redraft_index >= len(state.redraft_sequence):
                self._after_redraft(conn, season, state, settings)
            self._evolution_repo.update_state(conn, state)
            return entry

    def _after_redraft(
        self,
        conn: sqlite3.Connection,
        season: Season,
        state: RosterEvolutionState,
        settings: RosterEvolutionSettings,
    ) -> None:
        if state.includes_pool_draft and settings.pool_draft_count > 0 and self._pool.pool_count(conn, season.id):
            state.pool_sequence = build_pick_sequence(
                state.standings_order, {pid: settings.pool_draft_count for pid in state.standings_order}
            )
            state.pool_index = 0
            state.phase = EvolutionPhase.POOL_DRAFT.value
        else:
            self._complete(conn, season, state)

    # ---------- Pool draft ----------

    def draft_from_pool(
        self, conn: sqlite3.Connection, season_id: str, pool_entry_id: str, requester_id: str | None
    ) -> RosterEntry:
        with unit_of_work(conn, season_id):
            season, state, _ = self._load_active(conn, season_id, EvolutionPhase.POOL_DRAFT)
            picker = self._require_turn(conn, season, state.pool_sequence[state.pool_index], requester_id)
            pool_entry = self._pool.take_from_pool(conn, season, pool_entry_id, picker, state.week)
            entry = self._roster_repo.create_entry(
                conn, season_id, picker.id, pool_entry.artist_id, AcquiredVia.POOL.value, state.week
            )
            events.log_event(conn, season, events.ARTIST_DRAFTED_FROM_POOL,
                             {"artist_id": pool_entry.artist_id, "artist": pool_entry.artist_name,
                              "player": picker.label_name, "pool_entry_id": pool_entry.id},
                             actor_id=requester_id)
            state.pool_index += 1
            if state.pool_index >= len(state.pool_sequence) or not self._pool.pool_count(conn, season_id):
                self._complete(conn, season, state)
            self._evolution_repo.update_state(conn, state)
            return entry

    def skip_pool_pick(self, conn: sqlite3.Connection, season_id: str, requester_id: str | None) -> RosterEvolutionState:
        """Current pool picker passes."""
        with unit_of_work(conn, season_id):
            season, state, _ = self._load_active(conn, season_id, EvolutionPhase.POOL_DRAFT)
            self._require_turn(conn, season, state.pool_sequence[state.pool_index], requester_id)
            state.pool_index += 1
            if state.pool_index >= len(state.pool_sequence):
                self._complete(conn, season, state)
            self._evolution_repo.update_state(conn, state)
            return state

    # ---------- Finish ----------

    def _complete(self, conn: sqlite3.Connection, season: Season, state: RosterEvolutionState) -> None:
        state.phase = EvolutionPhase.COMPLETE.value
        events.log_event(conn, season, events.ROSTER_EVOLUTION_COMPLETE, {"week": state.week})
        logger.info("ROSTER_EVOLUTION_COMPLETE season_id=%s week=%s", season.id, state.week)

    def finalize(self, conn: sqlite3.Connection, season: Season) -> RosterEvolutionState:
        """
        Close the week's evolution: retire the redraft prompt and, on a chaos
        week, banish OLD pool entries. Caller owns the unit of work.
        """
        state = self._evolution_repo.get_state(conn, season.id, season.current_week)
        if state is None:
            raise InvalidTransition("Roster evolution has not started")
        if state.phase != EvolutionPhase.COMPLETE.value:
            raise InvalidTransition(f"Roster evolution is not complete (phase: {state.phase})")
        if state.prompt_id:
            self._draft_repo.set_prompt_status(conn, state.prompt_id, PromptStatus.RETIRED.value)
        settings = self.get_settings(conn, season.id)
        if state.week_type == WeekType.CHAOS.value and settings.chaos_banish_old_pool:
            self._pool.banish_old_pool(conn, season, state.week)
        return state

    # ---------- helpers ----------

    def _load_active(
        self, conn: sqlite3.Connection, season_id: str, phase: EvolutionPhase
    ) -> tuple[Season, RosterEvolutionState, RosterEvolutionSettings]:
        season = load_season(conn, season_id)
        require_phase(season, SeasonPhase.ROSTER_EVOLUTION)
        state = self._evolution_repo.get_state(conn, season_id, season.current_week)
        if state is None:
            raise InvalidTransition("Roster evolution has not started")
        if state.phase != phase.value:
            raise InvalidTransition(f"Roster evolution is in {state.phase}, not {phase.value}")
        return season, state, self.get_settings(conn, season_id)

    def _require_turn(
        self, conn: sqlite3.Connection, season: Season, player_id: str | None, requester_id: str | None
    ) -> SeasonPlayer:
        player = self._season_repo.get_player(conn, player_id) if player_id else None
        if player is None:
            raise NotFound("No player is due to pick")
        if player.user_id != requester_id and not is_commissioner(conn, season.league_id, requester_id):
            raise Unauthorized("It is not your turn")
        return player
