"""
Shared fixtures: a temporary database, a seeded challenge library, a league of
three playing members and a SeasonDriver that plays a season forward with the
commissioner acting for everyone.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from label_league.models import EvolutionPhase, MemberRole, PromptStatus, SeasonPhase
from label_league.persistence.db import get_connection, init_db, set_db_path, unit_of_work
from label_league.persistence.repositories import (
    LibraryRepository,
    RosterRepository,
    UserRepository,
)
from label_league.services.advantage_board import AdvantageBoardService
from label_league.services.challenge_board import ChallengeBoardService
from label_league.services.draft_service import DraftService
from label_league.services.league_service import LeagueService
from label_league.services.library_service import LibraryService
from label_league.services.pool_service import PoolService
from label_league.services.roster_evolution import RosterEvolutionService
from label_league.services.season_service import SeasonService
from label_league.services.weekly_service import WeeklyService

AWARDS = [
    {"name": "Best Overall", "points": 3},
    {"name": "Best Transition", "points": 2},
    {"name": "Deep Cut", "points": 1},
]

LIBRARY_DOC = {
    "categories": [
        {
            "name": name,
            "challenges": [
                {"title": f"{name} #{i}", "description": f"{name} challenge {i}", "award_categories": AWARDS}
                for i in range(1, 7)
            ],
        }
        for name in ("Genre", "Era", "Mood")
    ],
    "advantages": [
        {"code": "DOUBLE_VOTE", "name": "Double Vote", "description": "Your votes count twice for one week"},
        {"code": "VETO", "name": "Veto", "description": "Strike one challenge from the picker's options"},
        {"code": "SECOND_CHANCE", "name": "Second Chance", "description": "Replace one track after presenting"},
        {"code": "SHIELD", "name": "Shield", "description": "One extra protected artist at the next cut"},
        {"code": "SPOTLIGHT", "name": "Spotlight", "description": "Present last this week"},
    ],
}

# tier -> codes placed by SeasonDriver.build_advantage_board
ADVANTAGE_LAYOUT = {1: ["DOUBLE_VOTE", "VETO"], 2: ["SECOND_CHANCE", "SHIELD"], 3: ["SPOTLIGHT"]}

ROSTER_SIZE = 4
CHALLENGE_COUNT = 6
PROMPT_COUNT = 14


@pytest.fixture
def db_conn(tmp_path):
    """Temporary DB with the full schema."""
    db_path = tmp_path / "label_league_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def library(db_conn):
    LibraryService().import_library(db_conn, LIBRARY_DOC)
    return LibraryRepository()


def make_user(conn, username):
    with unit_of_work(conn):
        return UserRepository().create(conn, username, f"{username}@example.com", display_name=username.title())


@pytest.fixture
def users(db_conn):
    return {name: make_user(db_conn, name) for name in ("comm", "alice", "bob", "sam")}


@pytest.fixture
def league(db_conn, users):
    """comm is commissioner; alice and bob play; sam only watches."""
    service = LeagueService()
    league = service.create_league(db_conn, "Friday Crate Diggers", users["comm"].id)
    service.add_member(db_conn, league.id, "alice@example.com", users["comm"].id)
    service.add_member(db_conn, league.id, "bob@example.com", users["comm"].id)
    service.add_member(db_conn, league.id, "sam@example.com", users["comm"].id, role=MemberRole.SPECTATOR)
    return league


@pytest.fixture
def season(db_conn, league, users, library):
    """SEASON_SETUP season with three players and enough open prompts for draft and redrafts."""
    season = LeagueService().create_season(
        db_conn, league.id, "Season 1", ROSTER_SIZE, CHALLENGE_COUNT, users["comm"].id
    )
    draft = DraftService()
    for i in range(1, PROMPT_COUNT + 1):
        draft.add_prompt(db_conn, season.id, f"Prompt {i}", users["comm"].id)
    return season


@pytest.fixture
def driver(db_conn, season, users):
    return SeasonDriver(db_conn, season.id, users["comm"].id)


class SeasonDriver:
    """Plays a season forward. Every action is taken by the commissioner."""

    def __init__(self, conn, season_id, commissioner_id):
        self.conn = conn
        self.season_id = season_id
        self.comm = commissioner_id
        self.seasons = SeasonService()
        self.draft = DraftService()
        self.board = ChallengeBoardService()
        self.advantages = AdvantageBoardService()
        self.weekly = WeeklyService()
        self.evolution = RosterEvolutionService()
        self.pool = PoolService()
        self.rosters = RosterRepository()
        self._artist_seq = 0

    # ---------- lookups ----------

    def season(self):
        return self.seasons.get_season(self.conn, self.season_id)

    def players(self):
        return self.seasons.list_players(self.conn, self.season_id)

    def active_roster(self, player_id):
        return self.rosters.list_by_player(self.conn, player_id)

    def open_prompts(self):
        return self.draft.list_prompts(self.conn, self.season_id, status=PromptStatus.OPEN.value)

    def next_artist_name(self):
        self._artist_seq += 1
        return f"Artist {self._artist_seq}"

    # ---------- preseason ----------

    def build_board(self, count=15, lock=True):
        library = LibraryRepository()
        added = 0
        for category in library.list_categories(self.conn):
            board_category = self.board.add_category(self.conn, self.season_id, category.name, self.comm)
            for challenge in library.list_challenges(self.conn, category.id):
                if added >= count:
                    break
                self.board.add_challenge(self.conn, self.season_id, board_category.id, challenge.id, self.comm)
                added += 1
        if lock:
            self.board.lock(self.conn, self.season_id, self.comm)
        return self.board.get_board(self.conn, self.season_id)

    def build_advantage_board(self, lock=True):
        for tier, codes in ADVANTAGE_LAYOUT.items():
            for code in codes:
                self.advantages.add_advantage(self.conn, self.season_id, tier, code, self.comm)
        if lock:
            self.advantages.lock(self.conn, self.season_id, self.comm)
        return self.advantages.get_board(self.conn, self.season_id)

    def run_draft(self):
        while self.season().current_phase == SeasonPhase.DRAFTING.value:
            view = self.draft.get_draft_view(self.conn, self.season_id)
            if view["current_prompt_id"] is None:
                self.draft.select_prompt(self.conn, self.season_id, self.open_prompts()[0].id, self.comm)
            else:
                self.draft.draft_artist(self.conn, self.season_id, self.next_artist_name(), self.comm)

    def start_season(self):
        """SEASON_SETUP -> week 1 challenge selection."""
        self.build_board()
        self.seasons.start_draft(self.conn, self.season_id, self.comm)
        self.run_draft()
        self.seasons.mark_ready_for_week_1(self.conn, self.season_id, self.comm)
        return self.seasons.start_season(self.conn, self.season_id, self.comm)

    # ---------- one week ----------

    def unplayed_challenge_id(self):
        played = {s.board_challenge_id for s in self.weekly.list_selections(self.conn, self.season_id)}
        board = self.board.get_board(self.conn, self.season_id)
        for category in board.categories:
            for challenge in category.challenges:
                if challenge.id not in played:
                    return challenge.id
        raise AssertionError("board exhausted")

    def select_challenge(self):
        return self.seasons.select_challenge(self.conn, self.season_id, self.unplayed_challenge_id(), self.comm)

    def submit_playlists(self):
        week = self.season().current_week
        for p in self.players():
            self.weekly.submit_playlist(
                self.conn, self.season_id, [f"{p.label_name} week {week} track {i}" for i in range(1, 4)],
                self.comm, player_id=p.id,
            )

    def present_all(self):
        self.seasons.start_presentation(self.conn, self.season_id, self.comm)
        for p in self.players():
            self.weekly.mark_presented(self.conn, self.season_id, p.id, self.comm)

    def vote_all(self, winner_index=0):
        """Everyone votes for the winner in every category; the winner votes for the next player."""
        self.seasons.open_voting(self.conn, self.season_id, self.comm)
        players = self.players()
        winner = players[winner_index]
        runner_up = players[(winner_index + 1) % len(players)]
        session = self.weekly.get_session(self.conn, self.season_id, self.season().current_week)
        for category in session.categories:
            for voter in players:
                nominee = runner_up if voter.id == winner.id else winner
                self.weekly.cast_vote(
                    self.conn, self.season_id, category.id, nominee.id, self.comm, voter_player_id=voter.id
                )
        return self.seasons.close_voting(self.conn, self.season_id, self.comm)

    def play_to_week_end(self, winner_index=0):
        self.select_challenge()
        self.submit_playlists()
        self.present_all()
        return self.vote_all(winner_index)

    def run_roster_evolution(self):
        self.seasons.begin_roster_evolution(self.conn, self.season_id, self.comm)
        self.complete_roster_evolution()

    def complete_roster_evolution(self):
        while True:
            state = self.evolution.get_state(self.conn, self.season_id)
            if state.phase == EvolutionPhase.CUTS.value:
                self.make_next_cut(state)
            elif state.phase == EvolutionPhase.PROMPT_SELECTION.value:
                self.evolution.select_redraft_prompt(self.conn, self.season_id, self.open_prompts()[0].id, self.comm)
            elif state.phase == EvolutionPhase.REDRAFT.value:
                self.evolution.redraft_artist(self.conn, self.season_id, self.next_artist_name(), self.comm)
            elif state.phase == EvolutionPhase.POOL_DRAFT.value:
                entry = self.pool.list_pool(self.conn, self.season_id)[0]
                self.evolution.draft_from_pool(self.conn, self.season_id, entry.id, self.comm)
            else:
                return state

    def make_next_cut(self, state):
        settings = self.evolution.get_settings(self.conn, self.season_id)
        remaining = self.evolution.remaining_cuts(self.conn, state, settings)
        cutter_id, need = next(iter(remaining.items()))
        owner_id = cutter_id if need["self"] else next(iter(need["opponents"]))
        artist_id = self.active_roster(owner_id)[0].artist_id
        return self.evolution.cut_artist(self.conn, self.season_id, artist_id, self.comm, player_id=cutter_id)

    def finish_week(self):
        self.seasons.finish_roster_evolution(self.conn, self.season_id, self.comm)
        return self.seasons.advance_week(self.conn, self.season_id, self.comm)

    def play_week(self, winner_index=0):
        self.play_to_week_end(winner_index)
        self.run_roster_evolution()
        return self.finish_week()

    def play_until_week(self, week):
        """Play full weeks until the season sits at challenge selection of week."""
        while self.season().current_week < week:
            self.play_week()
        return self.season()
