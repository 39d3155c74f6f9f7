#!/usr/bin/env python3
"""
Demo seed: library -> users -> league -> season -> prompts -> locked boards.
Leaves the season in SEASON_SETUP, ready for the commissioner to start the draft.
Run from project root: python3 scripts/seed_demo.py [--db data/demo.db]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from label_league.auth import hash_password
from label_league.persistence.db import get_connection, init_db, set_db_path, unit_of_work
from label_league.persistence.repositories import LibraryRepository, UserRepository
from label_league.services import (
    AdvantageBoardService,
    ChallengeBoardService,
    DraftService,
    LeagueService,
    LibraryService,
)

AWARDS = [
    {"name": "Best Overall", "points": 3},
    {"name": "Smoothest Transition", "points": 2},
    {"name": "Deepest Cut", "points": 1},
]

CATEGORIES = {
    "Genre": ["Shoegaze", "Afrobeat", "Bossa Nova", "Drum and Bass", "Outlaw Country"],
    "Era": ["Pre-1960", "The 70s", "The 80s", "The 90s", "Last Five Years"],
    "Mood": ["Rainy Day", "Road Trip", "Late Night", "Workout", "Heartbreak"],
}

PROMPTS = [
    ("An artist with a one-word name", "Names"),
    ("A band from your home town", "Places"),
    ("Someone who debuted after 2015", "Eras"),
    ("A producer first, artist second", "Roles"),
    ("An artist you saw live", "Personal"),
    ("Someone with a number in their name", "Names"),
    ("A cover band that made it", "Roles"),
    ("A one-hit wonder", "Eras"),
    ("A duo", "Roles"),
    ("Someone outside the English-language charts", "Places"),
    ("An artist your parents love", "Personal"),
    ("A soundtrack composer", "Roles"),
]

ADVANTAGES = {
    1: [("DOUBLE_VOTE", "Double Vote"), ("VETO", "Veto")],
    2: [("SECOND_CHANCE", "Second Chance"), ("SHIELD", "Shield")],
    3: [("SPOTLIGHT", "Spotlight")],
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo league and season")
    parser.add_argument("--db", default=str(PROJECT_ROOT / "data" / "demo.db"), help="SQLite file to seed")
    parser.add_argument("--password", default="demo-password", help="Password for every demo user")
    args = parser.parse_args()

    db_path = Path(args.db)
    set_db_path(db_path)
    init_db(db_path=db_path)

    conn = get_connection()
    try:
        # 1. Library
        doc = {
            "categories": [
                {
                    "name": name,
                    "challenges": [
                        {"title": t, "description": f"{name}: {t}", "award_categories": AWARDS} for t in titles
                    ],
                }
                for name, titles in CATEGORIES.items()
            ],
            "advantages": [
                {"code": code, "name": name} for tier in ADVANTAGES.values() for code, name in tier
            ],
        }
        created = LibraryService().import_library(conn, doc)
        print(
            f"Library: {created['categories']} new categories, {created['challenges']} new challenges, "
            f"{created['advantages']} new advantages"
        )

        # 2. Users
        user_repo = UserRepository()
        users = {}
        for username in ("commish", "vinyl_vic", "b_side_bea", "crate_carl"):
            user = user_repo.get_by_username(conn, username)
            if user is None:
                with unit_of_work(conn):
                    user = user_repo.create(
                        conn, username, f"{username}@example.com", hash_password(args.password),
                        display_name=username.replace("_", " ").title(),
                    )
            users[username] = user
        commissioner_id = users["commish"].id

        # 3. League and season
        leagues = LeagueService()
        league = leagues.create_league(conn, "Demo Listening Club", commissioner_id)
        for username in ("vinyl_vic", "b_side_bea", "crate_carl"):
            leagues.add_member(conn, league.id, users[username].email, commissioner_id)
        season = leagues.create_season(conn, league.id, "Demo Season", 5, 8, commissioner_id)
        print(f"Created league {league.name} (id={league.id}) and season {season.name} (id={season.id})")

        draft = DraftService()
        for text, category in PROMPTS:
            draft.add_prompt(conn, season.id, text, commissioner_id, category=category)

        # 4. Board: every library challenge, then lock
        board = ChallengeBoardService()
        library = LibraryRepository()
        for category in library.list_categories(conn):
            board_category = board.add_category(conn, season.id, category.name, commissioner_id)
            for challenge in library.list_challenges(conn, category.id):
                board.add_challenge(conn, season.id, board_category.id, challenge.id, commissioner_id)
        locked = board.lock(conn, season.id, commissioner_id)
        total = sum(len(c.challenges) for c in locked.categories)
        print(f"Board locked with {total} challenges in {len(locked.categories)} categories")

        # 5. Advantage board: tier 1 feeds starting picks
        advantages = AdvantageBoardService()
        for tier, entries in ADVANTAGES.items():
            for code, _ in entries:
                advantages.add_advantage(conn, season.id, tier, code, commissioner_id)
        advantage_board = advantages.lock(conn, season.id, commissioner_id)
        print(f"Advantage board locked with {len(advantage_board.advantages)} advantages")

        print(f"\nLog in as 'commish' / '{args.password}' and POST /seasons/{season.id}/phase/start-draft")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
