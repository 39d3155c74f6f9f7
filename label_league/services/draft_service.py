"""
Live draft: prompts, per-round prompt selection and artist picks in snake order.
Round count equals the season's roster size.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any

from label_league.config import DEFAULT_PROMPT_CATEGORY
from label_league.models import (
    AcquiredVia,
    DraftPrompt,
    DraftState,
    PromptStatus,
    RosterEntry,
    Season,
    SeasonPhase,
    SeasonPlayer,
    SeasonStatus,
)
from label_league.persistence.db import unit_of_work
from label_league.persistence.repositories import DraftRepository, RosterRepository, SeasonRepository
from label_league.services import events, phases
from label_league.services.access import (
    found,
    is_commissioner,
    load_season,
    require_commissioner,
    require_phase,
)
from label_league.services.draft_order import snake_round_order
from label_league.services.errors import DuplicateEntity, InvalidTransition, NotFound, Unauthorized

logger = logging.getLogger(__name__)


class DraftService:
    """Draft prompts, draft cursor and picks. Completes the draft after the final pick."""

    def __init__(self) -> None:
        self._season_repo = SeasonRepository()
        self._draft_repo = DraftRepository()
        self._roster_repo = RosterRepository()

    # ---------- Prompts ----------

    def add_prompt(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        text: str,
        requester_id: str | None,
        category: str = DEFAULT_PROMPT_CATEGORY,
    ) -> DraftPrompt:
        """Prompts stay addable until the season completes; redraft rounds draw from the same list."""
        text = text.strip()
        category = category.strip() or DEFAULT_PROMPT_CATEGORY
        if not text:
            raise ValueError("Prompt text is required")
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_commissioner(conn, season, requester_id)
            if season.status == SeasonStatus.COMPLETED.value:
                raise InvalidTransition("Season is completed")
            return self._draft_repo.create_prompt(conn, season_id, text, category)

    def list_prompts(
        self, conn: sqlite3.Connection, season_id: str, status: str | None = None, category: str | None = None
    ) -> list[DraftPrompt]:
        load_season(conn, season_id)
        return self._draft_repo.list_prompts(conn, season_id, status=status, category=category)

    # ---------- Draft state ----------

    def initialize_state(self, conn: sqlite3.Connection, season: Season) -> DraftState:
        """Fresh cursor at round 1, pick 0, using current draft positions."""
        players = self._season_repo.list_players(conn, season.id)
        state = DraftState(
            season_id=season.id,
            draft_order=[p.id for p in players],
            current_round=1,
            current_pick_index=0,
            is_complete=False,
        )
        self._draft_repo.save_state(conn, state)
        return state

    def get_state(self, conn: sqlite3.Connection, season_id: str) -> DraftState | None:
        return self._draft_repo.get_state(conn, season_id)

    def current_picker_id(self, state: DraftState) -> str | None:
        if state.is_complete or not state.draft_order:
            return None
        return snake_round_order(state.draft_order, state.current_round)[state.current_pick_index]

    def get_draft_view(self, conn: sqlite3.Connection, season_id: str) -> dict[str, Any]:
        season = load_season(conn, season_id)
        state = self._draft_repo.get_state(conn, season_id)
        selection = (
            self._draft_repo.get_selection_for_round(conn, season_id, state.current_round) if state else None
        )
        players = self._season_repo.list_players(conn, season_id)
        return {
            "season_id": season_id,
            "phase": season.current_phase,
            "state": state.to_dict() if state else None,
            "current_picker_id": self.current_picker_id(state) if state else None,
            "current_round_order": snake_round_order(state.draft_order, state.current_round) if state else [],
            "current_prompt_id": selection.prompt_id if selection else None,
            "rosters": {
                p.id: [e.to_dict() for e in self._roster_repo.list_by_player(conn, p.id)] for p in players
            },
        }

    # ---------- Picks ----------

    def select_prompt(
        self, conn: sqlite3.Connection, season_id: str, prompt_id: str, requester_id: str | None
    ) -> DraftPrompt:
        """First picker of the round (or the commissioner) chooses the round's prompt."""
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_phase(season, SeasonPhase.DRAFTING)
            state = self._require_state(conn, season_id)
            if self._draft_repo.get_selection_for_round(conn, season_id, state.current_round) is not None:
                raise InvalidTransition(f"A prompt is already selected for round {state.current_round}")
            round_first = snake_round_order(state.draft_order, state.current_round)[0]
            player = found(self._season_repo.get_player(conn, round_first), "Season player")
            if player.user_id != requester_id and not is_commissioner(conn, season.league_id, requester_id):
                raise Unauthorized("Only the first picker of the round can select the prompt")
            prompt = self._draft_repo.get_prompt(conn, prompt_id)
            if prompt is None or prompt.season_id != season_id:
                raise NotFound(f"Draft prompt not found: {prompt_id}")
            if prompt.status != PromptStatus.OPEN.value:
                raise InvalidTransition(f"Prompt is not open (status: {prompt.status})")
            self._draft_repo.mark_prompt_selected(conn, prompt_id, player.id, round_number=state.current_round)
            self._draft_repo.create_selection(conn, season_id, prompt_id, player.id, state.current_round)
            events.log_event(conn, season, events.DRAFT_PROMPT_SELECTED,
                             {"prompt_id": prompt_id, "round": state.current_round}, actor_id=requester_id)
            return found(self._draft_repo.get_prompt(conn, prompt_id), "Draft prompt")

    def draft_artist(
        self, conn: sqlite3.Connection, season_id: str, artist_name: str, requester_id: str | None
    ) -> RosterEntry:
        """
        Current picker (or the commissioner) drafts a new artist under the round's prompt.
        The last pick of a round retires the prompt; the last pick of the draft completes it.
        """
        name = artist_name.strip()
        if not name:
            raise ValueError("Artist name is required")
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_phase(season, SeasonPhase.DRAFTING)
            state = self._require_state(conn, season_id)
            picker_id = self.current_picker_id(state)
            if picker_id is None:
                raise InvalidTransition("Draft is already complete")
            picker = found(self._season_repo.get_player(conn, picker_id), "Season player")
            if picker.user_id != requester_id and not is_commissioner(conn, season.league_id, requester_id):
                raise Unauthorized("It is not your turn to pick")
            selection = self._draft_repo.get_selection_for_round(conn, season_id, state.current_round)
            if selection is None:
                raise InvalidTransition(f"No prompt selected for round {state.current_round}")
            if self._roster_repo.find_artist_by_name(conn, season_id, name) is not None:
                raise DuplicateEntity(f"Artist already drafted this season: {name}")

            artist = self._roster_repo.create_artist(conn, season_id, name)
            entry = self._roster_repo.create_entry(
                conn, season_id, picker.id, artist.id, AcquiredVia.DRAFT.value, 0,
                prompt_id=selection.prompt_id, acquired_at_round=state.current_round,
            )
            events.log_event(conn, season, events.ARTIST_DRAFTED,
                             {"artist": name, "player": picker.label_name, "round": state.current_round},
                             actor_id=requester_id)

            state.current_pick_index += 1
            if state.current_pick_index >= len(state.draft_order):
                self._draft_repo.set_prompt_status(conn, selection.prompt_id, PromptStatus.RETIRED.value)
                state.current_round += 1
                state.current_pick_index = 0
                if state.current_round > season.roster_size:
                    state.is_complete = True
            self._draft_repo.save_state(conn, state)
            if state.is_complete:
                self.complete_draft(conn, season_id, requester_id, auto=True)
            return entry

    def complete_draft(
        self, conn: sqlite3.Connection, season_id: str, requester_id: str | None, auto: bool = False
    ) -> Season:
        """DRAFTING -> ADVANTAGE_SELECTION once every roster is full."""
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            if not auto:
                require_commissioner(conn, season, requester_id)
            phases.assert_can_transition(season, SeasonPhase.ADVANTAGE_SELECTION)
            short = self.players_missing_picks(conn, season)
            if short:
                labels = ", ".join(p.label_name for p in short)
                raise InvalidTransition(f"Rosters are not full: {labels}")
            state = self._draft_repo.get_state(conn, season_id)
            if state is not None and not state.is_complete:
                state.is_complete = True
                self._draft_repo.save_state(conn, state)
            events.log_event(conn, season, events.DRAFT_COMPLETE, {}, actor_id=requester_id)
            logger.info("DRAFT_COMPLETE season_id=%s", season_id)
            return phases.transition(conn, season, SeasonPhase.ADVANTAGE_SELECTION, requester_id)

    def players_missing_picks(self, conn: sqlite3.Connection, season: Season) -> list[SeasonPlayer]:
        return [
            p for p in self._season_repo.list_players(conn, season.id)
            if self._roster_repo.count_active(conn, p.id) < season.roster_size
        ]

    def _require_state(self, conn: sqlite3.Connection, season_id: str) -> DraftState:
        state = self._draft_repo.get_state(conn, season_id)
        if state is None:
            raise InvalidTransition("Draft has not started")
        return state
