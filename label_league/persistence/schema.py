"""
SQLite schema for league entities.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def users_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        username TEXT NOT NULL,
        display_name TEXT NOT NULL,
        email TEXT NOT NULL,
        password_hash TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_users_username ON users(username);
    CREATE UNIQUE INDEX IF NOT EXISTS ix_users_email ON users(email);
    """


def leagues_schema() -> str:
    """League plus membership. role: COMMISSIONER | PLAYER | SPECTATOR."""
    return """
    CREATE TABLE IF NOT EXISTS leagues (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        commissioner_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (commissioner_id) REFERENCES users(id)
    );
    CREATE INDEX IF NOT EXISTS ix_leagues_commissioner ON leagues(commissioner_id);

    CREATE TABLE IF NOT EXISTS league_members (
        league_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        role TEXT NOT NULL,
        joined_at TEXT NOT NULL,
        PRIMARY KEY (league_id, user_id),
        FOREIGN KEY (league_id) REFERENCES leagues(id),
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
    CREATE INDEX IF NOT EXISTS ix_league_members_user ON league_members(user_id);
    """


def seasons_schema() -> str:
    """Season owns current_phase, current_week and status. Players get a label per season."""
    return """
    CREATE TABLE IF NOT EXISTS seasons (
        id TEXT PRIMARY KEY,
        league_id TEXT NOT NULL,
        name TEXT NOT NULL,
        roster_size INTEGER NOT NULL,
        challenge_count INTEGER NOT NULL,
        current_phase TEXT NOT NULL DEFAULT 'SEASON_SETUP',
        current_week INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'PRESEASON',
        created_at TEXT NOT NULL,
        started_at TEXT,
        FOREIGN KEY (league_id) REFERENCES leagues(id)
    );
    CREATE INDEX IF NOT EXISTS ix_seasons_league ON seasons(league_id);

    CREATE TABLE IF NOT EXISTS season_players (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        label_name TEXT NOT NULL,
        draft_position INTEGER,
        total_points INTEGER NOT NULL DEFAULT 0,
        rank INTEGER,
        joined_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_season_players_season_user ON season_players(season_id, user_id);
    """


def library_schema() -> str:
    """Shared canonical challenge library. award_categories is JSON [{id, name, points}]."""
    return """
    CREATE TABLE IF NOT EXISTS canonical_categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_canonical_categories_name ON canonical_categories(name);

    CREATE TABLE IF NOT EXISTS canonical_challenges (
        id TEXT PRIMARY KEY,
        category_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        award_categories TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        FOREIGN KEY (category_id) REFERENCES canonical_categories(id)
    );
    CREATE INDEX IF NOT EXISTS ix_canonical_challenges_category ON canonical_challenges(category_id);
    """


def board_schema() -> str:
    """One board per season. sort_order is dense and zero-based within a category."""
    return """
    CREATE TABLE IF NOT EXISTS challenge_boards (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        is_locked INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_challenge_boards_season ON challenge_boards(season_id);

    CREATE TABLE IF NOT EXISTS board_categories (
        id TEXT PRIMARY KEY,
        board_id TEXT NOT NULL,
        title TEXT NOT NULL,
        position INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (board_id) REFERENCES challenge_boards(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_board_categories_title ON board_categories(board_id, title);

    CREATE TABLE IF NOT EXISTS board_challenges (
        id TEXT PRIMARY KEY,
        board_id TEXT NOT NULL,
        category_id TEXT NOT NULL,
        canonical_challenge_id TEXT NOT NULL,
        sort_order INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (board_id) REFERENCES challenge_boards(id),
        FOREIGN KEY (category_id) REFERENCES board_categories(id),
        FOREIGN KEY (canonical_challenge_id) REFERENCES canonical_challenges(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_board_challenges_canonical ON board_challenges(board_id, canonical_challenge_id);
    CREATE INDEX IF NOT EXISTS ix_board_challenges_category ON board_challenges(category_id);
    """


def advantage_schema() -> str:
    """Canonical advantages and one advantage board per season. sort_order is dense within a tier."""
    return """
    CREATE TABLE IF NOT EXISTS canonical_advantages (
        id TEXT PRIMARY KEY,
        code TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_canonical_advantages_code ON canonical_advantages(code);

    CREATE TABLE IF NOT EXISTS advantage_boards (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        is_locked INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_advantage_boards_season ON advantage_boards(season_id);

    CREATE TABLE IF NOT EXISTS board_advantages (
        id TEXT PRIMARY KEY,
        board_id TEXT NOT NULL,
        tier INTEGER NOT NULL,
        canonical_advantage_id TEXT NOT NULL,
        sort_order INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (board_id) REFERENCES advantage_boards(id),
        FOREIGN KEY (canonical_advantage_id) REFERENCES canonical_advantages(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_board_advantages_canonical ON board_advantages(board_id, canonical_advantage_id);
    CREATE INDEX IF NOT EXISTS ix_board_advantages_tier ON board_advantages(board_id, tier);
    """


def draft_schema() -> str:
    """Draft prompts, live draft cursor, prompt selections per round."""
    return """
    CREATE TABLE IF NOT EXISTS draft_prompts (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        text TEXT NOT NULL,
        category TEXT NOT NULL DEFAULT 'General',
        status TEXT NOT NULL DEFAULT 'OPEN',
        selected_by_player_id TEXT,
        selected_at_round INTEGER,
        selected_at_week INTEGER,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (selected_by_player_id) REFERENCES season_players(id)
    );
    CREATE INDEX IF NOT EXISTS ix_draft_prompts_season ON draft_prompts(season_id);

    CREATE TABLE IF NOT EXISTS draft_states (
        season_id TEXT PRIMARY KEY,
        draft_order TEXT NOT NULL,
        current_round INTEGER NOT NULL DEFAULT 1,
        current_pick_index INTEGER NOT NULL DEFAULT 0,
        is_complete INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );

    CREATE TABLE IF NOT EXISTS draft_selections (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        prompt_id TEXT NOT NULL,
        selected_by_player_id TEXT NOT NULL,
        round INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (prompt_id) REFERENCES draft_prompts(id),
        FOREIGN KEY (selected_by_player_id) REFERENCES season_players(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_draft_selections_round ON draft_selections(season_id, round);
    """


def roster_schema() -> str:
    """Artists (unique name per season) and the roster entries that hold them."""
    return """
    CREATE TABLE IF NOT EXISTS artists (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_artists_season_name ON artists(season_id, name);

    CREATE TABLE IF NOT EXISTS roster_entries (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        season_player_id TEXT NOT NULL,
        artist_id TEXT NOT NULL,
        prompt_id TEXT,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        acquired_via TEXT NOT NULL,
        acquired_at_week INTEGER NOT NULL,
        acquired_at_round INTEGER,
        cut_at_week INTEGER,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (season_player_id) REFERENCES season_players(id),
        FOREIGN KEY (artist_id) REFERENCES artists(id),
        FOREIGN KEY (prompt_id) REFERENCES draft_prompts(id)
    );
    CREATE INDEX IF NOT EXISTS ix_roster_entries_player ON roster_entries(season_player_id);
    CREATE INDEX IF NOT EXISTS ix_roster_entries_season ON roster_entries(season_id);
    """


def pool_schema() -> str:
    """Cut artists. status: AVAILABLE | DRAFTED | BANISHED."""
    return """
    CREATE TABLE IF NOT EXISTS pool_entries (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        artist_id TEXT NOT NULL,
        entered_week INTEGER NOT NULL,
        entered_via TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'AVAILABLE',
        cut_by_player_id TEXT,
        cut_from_player_id TEXT,
        drafted_by_player_id TEXT,
        drafted_at_week INTEGER,
        banished_at_week INTEGER,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (artist_id) REFERENCES artists(id)
    );
    CREATE INDEX IF NOT EXISTS ix_pool_entries_season ON pool_entries(season_id, status);
    CREATE UNIQUE INDEX IF NOT EXISTS ix_pool_entries_available_artist
        ON pool_entries(season_id, artist_id) WHERE status = 'AVAILABLE';
    """


def weekly_schema() -> str:
    """Advantages, challenge selections, playlists, presentation, voting, results."""
    return """
    CREATE TABLE IF NOT EXISTS inventory_items (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        season_player_id TEXT NOT NULL,
        advantage_code TEXT NOT NULL,
        source TEXT NOT NULL,
        earned_week INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (season_player_id) REFERENCES season_players(id)
    );
    CREATE INDEX IF NOT EXISTS ix_inventory_items_season ON inventory_items(season_id);

    CREATE TABLE IF NOT EXISTS challenge_selections (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        week INTEGER NOT NULL,
        board_challenge_id TEXT NOT NULL,
        selected_by_player_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (board_challenge_id) REFERENCES board_challenges(id),
        FOREIGN KEY (selected_by_player_id) REFERENCES season_players(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_challenge_selections_week ON challenge_selections(season_id, week);

    CREATE TABLE IF NOT EXISTS playlist_submissions (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        week INTEGER NOT NULL,
        season_player_id TEXT NOT NULL,
        tracks TEXT NOT NULL,
        submitted_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (season_player_id) REFERENCES season_players(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_playlist_submissions_week ON playlist_submissions(season_id, week, season_player_id);

    CREATE TABLE IF NOT EXISTS presentation_states (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        week INTEGER NOT NULL,
        presenter_order TEXT NOT NULL,
        presented TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_presentation_states_week ON presentation_states(season_id, week);

    CREATE TABLE IF NOT EXISTS voting_sessions (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        week INTEGER NOT NULL,
        categories TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'OPEN',
        created_at TEXT NOT NULL,
        closed_at TEXT,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_voting_sessions_week ON voting_sessions(season_id, week);

    CREATE TABLE IF NOT EXISTS votes (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        category_id TEXT NOT NULL,
        voter_player_id TEXT NOT NULL,
        nominee_player_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (session_id) REFERENCES voting_sessions(id),
        FOREIGN KEY (voter_player_id) REFERENCES season_players(id),
        FOREIGN KEY (nominee_player_id) REFERENCES season_players(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_votes_voter ON votes(session_id, category_id, voter_player_id);

    CREATE TABLE IF NOT EXISTS weekly_results (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        week INTEGER NOT NULL,
        season_player_id TEXT NOT NULL,
        voting_points INTEGER NOT NULL,
        placement INTEGER NOT NULL,
        victory_points INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (season_player_id) REFERENCES season_players(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_weekly_results_player ON weekly_results(season_id, week, season_player_id);
    """


def roster_evolution_schema() -> str:
    """Settings are one JSON document per season; state is one row per season-week."""
    return """
    CREATE TABLE IF NOT EXISTS roster_evolution_settings (
        season_id TEXT PRIMARY KEY,
        settings TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );

    CREATE TABLE IF NOT EXISTS roster_evolution_states (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        week INTEGER NOT NULL,
        week_type TEXT NOT NULL,
        phase TEXT NOT NULL,
        prompt_picker_id TEXT,
        prompt_id TEXT,
        standings_order TEXT NOT NULL,
        cuts TEXT NOT NULL,
        redraft_sequence TEXT NOT NULL DEFAULT '[]',
        redraft_index INTEGER NOT NULL DEFAULT 0,
        pool_sequence TEXT NOT NULL DEFAULT '[]',
        pool_index INTEGER NOT NULL DEFAULT 0,
        includes_pool_draft INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_roster_evolution_states_week ON roster_evolution_states(season_id, week);
    """


def game_events_schema() -> str:
    """Append-only audit log. payload is JSON."""
    return """
    CREATE TABLE IF NOT EXISTS game_events (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        week INTEGER NOT NULL,
        phase TEXT NOT NULL,
        event_type TEXT NOT NULL,
        actor_id TEXT,
        payload TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE INDEX IF NOT EXISTS ix_game_events_season ON game_events(season_id, week);
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Referenced tables come first."""
    return "\n".join([
        users_schema(),
        leagues_schema(),
        seasons_schema(),
        library_schema(),
        board_schema(),
        advantage_schema(),
        draft_schema(),
        roster_schema(),
        pool_schema(),
        weekly_schema(),
        roster_evolution_schema(),
        game_events_schema(),
    ])
