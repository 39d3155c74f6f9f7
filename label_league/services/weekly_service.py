"""
Weekly play inside a season: challenge selection by the rotating picker,
playlist submission, presentation, voting, weekly results and advantages.
Phase changes go through services.phases; the commissioner-driven ones are
exposed by SeasonService.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any

from label_league.config import STARTING_ADVANTAGE_TIER
from label_league.models import (
    AdvantageSource,
    ChallengeSelection,
    InventoryItem,
    PlaylistSubmission,
    PresentationState,
    Season,
    SeasonPhase,
    SeasonPlayer,
    Vote,
    VotingSession,
    VotingStatus,
    WeeklyResult,
)
from label_league.persistence.db import unit_of_work
from label_league.persistence.repositories import (
    AdvantageBoardRepository,
    BoardRepository,
    InventoryRepository,
    LibraryRepository,
    SeasonRepository,
    WeeklyRepository,
)
from label_league.services import events, phases
from label_league.services.access import (
    acting_as_commissioner,
    found,
    load_season,
    require_commissioner,
    require_phase,
    resolve_player,
)
from label_league.services.errors import DuplicateEntity, InvalidTransition, NotFound
from label_league.services.standings import (
    dense_ranks,
    placements_with_ties,
    tally_voting_points,
    victory_points_for,
)

logger = logging.getLogger(__name__)


def picker_index_for_week(week: int, player_count: int) -> int:
    """Week w is picked by the player at draft index (w - 1) mod P."""
    if player_count < 1:
        raise ValueError("player_count must be >= 1")
    return (week - 1) % player_count


class WeeklyService:
    def __init__(self) -> None:
        self._season_repo = SeasonRepository()
        self._weekly_repo = WeeklyRepository()
        self._board_repo = BoardRepository()
        self._library_repo = LibraryRepository()
        self._inventory_repo = InventoryRepository()
        self._advantage_board_repo = AdvantageBoardRepository()

    # ---------- Challenge selection ----------

    def picker_for_week(self, conn: sqlite3.Connection, season_id: str, week: int) -> SeasonPlayer:
        players = self._season_repo.list_players(conn, season_id)
        if not players:
            raise NotFound("Season has no players")
        return players[picker_index_for_week(week, len(players))]

    def select_challenge(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        board_challenge_id: str,
        requester_id: str | None,
    ) -> ChallengeSelection:
        """IN_SEASON_CHALLENGE_SELECTION -> PLAYLIST_SUBMISSION."""
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            phases.assert_can_transition(season, SeasonPhase.PLAYLIST_SUBMISSION)
            picker = self.picker_for_week(conn, season_id, season.current_week)
            if picker.user_id != requester_id:
                require_commissioner(conn, season, requester_id)
            board = self._board_repo.get_by_season(conn, season_id)
            if board is None or not board.is_locked:
                raise InvalidTransition("Challenge board must be locked")
            challenge = self._board_repo.get_challenge(conn, board_challenge_id)
            if challenge is None or challenge.board_id != board.id:
                raise NotFound(f"Board challenge not found: {board_challenge_id}")
            if any(s.board_challenge_id == board_challenge_id for s in self._weekly_repo.list_selections(conn, season_id)):
                raise DuplicateEntity("Challenge was already played this season")
            selection = self._weekly_repo.create_selection(
                conn, season_id, season.current_week, board_challenge_id, picker.id
            )
            events.log_event(conn, season, events.CHALLENGE_SELECTED,
                             {"board_challenge_id": board_challenge_id, "picker": picker.label_name},
                             actor_id=requester_id)
            phases.transition(conn, season, SeasonPhase.PLAYLIST_SUBMISSION, requester_id)
            return selection

    def list_selections(self, conn: sqlite3.Connection, season_id: str) -> list[ChallengeSelection]:
        return self._weekly_repo.list_selections(conn, season_id)

    # ---------- Playlists ----------

    def submit_playlist(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        tracks: list[str],
        requester_id: str | None,
        player_id: str | None = None,
    ) -> PlaylistSubmission:
        """Resubmitting replaces the earlier playlist for the week."""
        cleaned = [t.strip() for t in tracks if t and t.strip()]
        if not cleaned:
            raise ValueError("A playlist needs at least one track")
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_phase(season, SeasonPhase.PLAYLIST_SUBMISSION)
            player = resolve_player(conn, season, requester_id, player_id)
            submission = self._weekly_repo.upsert_playlist(conn, season_id, season.current_week, player.id, cleaned)
            events.log_event(conn, season, events.PLAYLIST_SUBMITTED,
                             {"player": player.label_name, "tracks": len(cleaned)}, actor_id=requester_id)
            return submission

    def list_playlists(self, conn: sqlite3.Connection, season_id: str, week: int) -> list[PlaylistSubmission]:
        return self._weekly_repo.list_playlists(conn, season_id, week)

    def missing_playlists(self, conn: sqlite3.Connection, season: Season) -> list[SeasonPlayer]:
        submitted = {p.season_player_id for p in self._weekly_repo.list_playlists(conn, season.id, season.current_week)}
        return [p for p in self._season_repo.list_players(conn, season.id) if p.id not in submitted]

    # ---------- Presentation ----------

    def create_presentation(self, conn: sqlite3.Connection, season: Season) -> PresentationState:
        """Presenter order follows draft order."""
        order = [p.id for p in self._season_repo.list_players(conn, season.id)]
        return self._weekly_repo.create_presentation(conn, season.id, season.current_week, order)

    def get_presentation(self, conn: sqlite3.Connection, season_id: str, week: int) -> PresentationState | None:
        return self._weekly_repo.get_presentation(conn, season_id, week)

    def mark_presented(
        self, conn: sqlite3.Connection, season_id: str, player_id: str, requester_id: str | None
    ) -> PresentationState:
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_phase(season, SeasonPhase.PLAYLIST_PRESENTATION)
            player = resolve_player(conn, season, requester_id, player_id)
            state = self._weekly_repo.get_presentation(conn, season_id, season.current_week)
            if state is None:
                raise NotFound("Presentation has not started")
            if player.id not in state.presenter_order:
                raise NotFound(f"Player is not presenting this week: {player.id}")
            if player.id not in state.presented:
                state.presented.append(player.id)
                self._weekly_repo.set_presented(conn, state.id, state.presented)
                events.log_event(conn, season, events.PLAYLIST_PRESENTED, {"player": player.label_name},
                                 actor_id=requester_id)
            return state

    # ---------- Voting ----------

    def open_session(self, conn: sqlite3.Connection, season: Season) -> VotingSession:
        """Voting categories come from the week's canonical challenge."""
        selection = self._weekly_repo.get_selection(conn, season.id, season.current_week)
        if selection is None:
            raise InvalidTransition(f"No challenge selected for week {season.current_week}")
        board_challenge = found(self._board_repo.get_challenge(conn, selection.board_challenge_id), "Board challenge")
        canonical = self._library_repo.get_challenge(conn, board_challenge.canonical_challenge_id)
        if canonical is None or not canonical.award_categories:
            raise InvalidTransition("Selected challenge has no award categories to vote on")
        return self._weekly_repo.create_session(conn, season.id, season.current_week, canonical.award_categories)

    def get_session(self, conn: sqlite3.Connection, season_id: str, week: int) -> VotingSession | None:
        return self._weekly_repo.get_session(conn, season_id, week)

    def cast_vote(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        category_id: str,
        nominee_player_id: str,
        requester_id: str | None,
        voter_player_id: str | None = None,
    ) -> Vote:
        """One vote per voter per category; players cannot vote for themselves."""
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_phase(season, SeasonPhase.VOTING)
            voter = resolve_player(conn, season, requester_id, voter_player_id)
            session = self._weekly_repo.get_session(conn, season_id, season.current_week)
            if session is None or session.status != VotingStatus.OPEN.value:
                raise InvalidTransition("Voting is not open")
            if category_id not in {c.id for c in session.categories}:
                raise NotFound(f"Voting category not found: {category_id}")
            nominee = self._season_repo.get_player(conn, nominee_player_id)
            if nominee is None or nominee.season_id != season_id:
                raise NotFound(f"Season player not found: {nominee_player_id}")
            if nominee.id == voter.id:
                raise InvalidTransition("Players cannot vote for themselves")
            for v in self._weekly_repo.list_votes(conn, session.id):
                if v.category_id == category_id and v.voter_player_id == voter.id:
                    raise DuplicateEntity("Already voted in this category")
            vote = self._weekly_repo.create_vote(conn, session.id, category_id, voter.id, nominee.id)
            events.log_event(conn, season, events.VOTE_CAST, {"category_id": category_id}, actor_id=requester_id)
            return vote

    def missing_votes(self, conn: sqlite3.Connection, season: Season, session: VotingSession) -> list[dict[str, str]]:
        cast = {(v.voter_player_id, v.category_id) for v in self._weekly_repo.list_votes(conn, session.id)}
        return [
            {"player_id": p.id, "category_id": c.id}
            for p in self._season_repo.list_players(conn, season.id)
            for c in session.categories
            if (p.id, c.id) not in cast
        ]

    # ---------- Results ----------

    def record_results(self, conn: sqlite3.Connection, season: Season, session: VotingSession) -> list[WeeklyResult]:
        """Close the session, write weekly results and refresh season standings."""
        players = self._season_repo.list_players(conn, season.id)
        votes = self._weekly_repo.list_votes(conn, session.id)
        points = tally_voting_points([p.id for p in players], session.categories, votes)
        placements = placements_with_ties(points)
        results = [
            self._weekly_repo.create_result(
                conn, season.id, season.current_week, pid, points[pid], placements[pid],
                victory_points_for(placements[pid]),
            )
            for pid in sorted(points, key=lambda p: placements[p])
        ]
        self._weekly_repo.close_session(conn, session.id)
        self.recompute_standings(conn, season.id)
        events.log_event(conn, season, events.WEEKLY_RESULTS,
                         {"results": [r.to_dict() for r in results]})
        return results

    def recompute_standings(self, conn: sqlite3.Connection, season_id: str) -> None:
        """total_points and rank from every surviving weekly result."""
        players = self._season_repo.list_players(conn, season_id)
        totals = {p.id: 0 for p in players}
        for r in self._weekly_repo.list_results(conn, season_id):
            totals[r.season_player_id] = totals.get(r.season_player_id, 0) + r.victory_points
        has_results = bool(self._weekly_repo.list_results(conn, season_id))
        ranks = dense_ranks(totals) if has_results else {}
        for p in players:
            self._season_repo.update_standing(conn, p.id, totals[p.id], ranks.get(p.id))

    def list_results(self, conn: sqlite3.Connection, season_id: str, week: int | None = None) -> list[WeeklyResult]:
        return self._weekly_repo.list_results(conn, season_id, week)

    # ---------- Advantages ----------

    def grant_advantage(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        player_id: str,
        advantage_code: str,
        requester_id: str | None,
    ) -> InventoryItem:
        """
        STARTING advantages during ADVANTAGE_SELECTION (earned week 0),
        WEEKLY advantages during IN_SEASON_WEEK_END (earned this week).
        Players pick their own starting advantage; weekly ones are commissioner-granted.
        The code must be on the season's advantage board, and starting picks come
        from tier STARTING_ADVANTAGE_TIER.
        """
        code = advantage_code.strip()
        if not code:
            raise ValueError("advantage_code is required")
        with unit_of_work(conn, season_id):
            season = load_season(conn, season_id)
            require_phase(season, SeasonPhase.ADVANTAGE_SELECTION, SeasonPhase.IN_SEASON_WEEK_END)
            player = resolve_player(conn, season, requester_id, player_id)
            board = self._advantage_board_repo.get_by_season(conn, season_id)
            on_board = board.find_code(code) if board is not None else None
            if on_board is None:
                raise NotFound(f"Advantage not on this season's board: {code}")
            if season.current_phase == SeasonPhase.ADVANTAGE_SELECTION.value:
                source, week = AdvantageSource.STARTING, 0
                if on_board.tier != STARTING_ADVANTAGE_TIER:
                    raise ValueError(f"Starting advantages come from tier {STARTING_ADVANTAGE_TIER}")
                held = [i for i in self._inventory_repo.list_by_season(conn, season_id)
                        if i.season_player_id == player.id and i.source == source.value]
                if held and not acting_as_commissioner(conn, season, requester_id, player):
                    raise DuplicateEntity("Starting advantage already selected")
            else:
                require_commissioner(conn, season, requester_id)
                source, week = AdvantageSource.WEEKLY, season.current_week
            item = self._inventory_repo.create(conn, season_id, player.id, code, source.value, week)
            events.log_event(conn, season, events.ADVANTAGE_GRANTED,
                             {"player": player.label_name, "advantage_code": code, "source": source.value},
                             actor_id=requester_id)
            return item

    def list_inventory(self, conn: sqlite3.Connection, season_id: str) -> list[InventoryItem]:
        return self._inventory_repo.list_by_season(conn, season_id)

    def get_week_view(self, conn: sqlite3.Connection, season_id: str) -> dict[str, Any]:
        season = load_season(conn, season_id)
        week = season.current_week
        selection = self._weekly_repo.get_selection(conn, season_id, week)
        presentation = self._weekly_repo.get_presentation(conn, season_id, week)
        session = self._weekly_repo.get_session(conn, season_id, week)
        picker = self.picker_for_week(conn, season_id, week) if week >= 1 else None
        return {
            "season_id": season_id,
            "week": week,
            "phase": season.current_phase,
            "picker_id": picker.id if picker else None,
            "selection": selection.to_dict() if selection else None,
            "playlists": [p.to_dict() for p in self._weekly_repo.list_playlists(conn, season_id, week)],
            "presentation": presentation.to_dict() if presentation else None,
            "voting": session.to_dict() if session else None,
            "results": [r.to_dict() for r in self._weekly_repo.list_results(conn, season_id, week)],
        }
