"""
Canonical library shared by every season: categories and challenges with
their award categories, plus advantages keyed by code. Boards reference it;
nothing in a season edits it.
"""
from __future__ import annotations

import logging
import re
import sqlite3
from typing import Any

from label_league.config import AWARD_POINT_VALUES
from label_league.models import AwardCategory, CanonicalAdvantage, CanonicalCategory, CanonicalChallenge
from label_league.persistence.db import unit_of_work
from label_league.persistence.repositories import AdvantageRepository, LibraryRepository
from label_league.services.errors import DuplicateEntity, NotFound

logger = logging.getLogger(__name__)


def award_category_id(name: str) -> str:
    """Stable id from the award name: 'Best Opener' -> 'best_opener'."""
    return re.sub(r"[^a-z0-9]+", "_", name.strip().lower()).strip("_")


def advantage_code(raw: str) -> str:
    """Codes are upper snake case: 'double vote' -> 'DOUBLE_VOTE'."""
    return re.sub(r"[^A-Z0-9]+", "_", raw.strip().upper()).strip("_")


def build_award_categories(raw: list[dict[str, Any]]) -> list[AwardCategory]:
    out: list[AwardCategory] = []
    for a in raw:
        name = str(a.get("name", "")).strip()
        if not name:
            raise ValueError("Award category name is required")
        points = int(a.get("points", 0))
        if points not in AWARD_POINT_VALUES:
            raise ValueError(f"Award points must be one of {AWARD_POINT_VALUES} (got {points})")
        out.append(AwardCategory(id=award_category_id(name), name=name, points=points))
    ids = [a.id for a in out]
    if len(ids) != len(set(ids)):
        raise DuplicateEntity("Award category names must be unique within a challenge")
    return out


class LibraryService:
    def __init__(self) -> None:
        self._library_repo = LibraryRepository()
        self._advantage_repo = AdvantageRepository()

    def list_library(self, conn: sqlite3.Connection) -> dict[str, Any]:
        categories = self._library_repo.list_categories(conn)
        return {
            "categories": [
                {**c.to_dict(), "challenges": [ch.to_dict() for ch in self._library_repo.list_challenges(conn, c.id)]}
                for c in categories
            ],
            "advantages": [a.to_dict() for a in self._advantage_repo.list_advantages(conn)],
        }

    def create_category(self, conn: sqlite3.Connection, name: str) -> CanonicalCategory:
        name = name.strip()
        if not name:
            raise ValueError("Category name is required")
        with unit_of_work(conn):
            if self._library_repo.get_category_by_name(conn, name) is not None:
                raise DuplicateEntity(f"Category already exists: {name}")
            return self._library_repo.create_category(conn, name)

    def create_challenge(
        self,
        conn: sqlite3.Connection,
        category_name: str,
        title: str,
        description: str,
        award_categories: list[dict[str, Any]],
    ) -> CanonicalChallenge:
        title = title.strip()
        if not title:
            raise ValueError("Challenge title is required")
        awards = build_award_categories(award_categories)
        with unit_of_work(conn):
            category = self._library_repo.get_category_by_name(conn, category_name.strip())
            if category is None:
                raise NotFound(f"Canonical category not found: {category_name}")
            if any(c.title == title for c in self._library_repo.list_challenges(conn, category.id)):
                raise DuplicateEntity(f"Challenge already exists in {category.name}: {title}")
            return self._library_repo.create_challenge(conn, category.id, title, description, awards)

    def create_advantage(self, conn: sqlite3.Connection, code: str, name: str, description: str = "") -> CanonicalAdvantage:
        code = advantage_code(code)
        name = name.strip()
        if not code or not name:
            raise ValueError("Advantage code and name are required")
        with unit_of_work(conn):
            if self._advantage_repo.get_by_code(conn, code) is not None:
                raise DuplicateEntity(f"Advantage already exists: {code}")
            return self._advantage_repo.create(conn, code, name, description)

    def import_library(self, conn: sqlite3.Connection, doc: dict[str, Any]) -> dict[str, int]:
        """
        Bulk import {"categories": [{"name", "challenges": [{"title", "description",
        "award_categories": [{"name", "points"}]}]}], "advantages": [{"code", "name",
        "description"}]}. Existing categories, challenges and advantages (matched by
        name, title or code) are skipped, so re-importing is safe.
        """
        created = {"categories": 0, "challenges": 0, "advantages": 0}
        with unit_of_work(conn):
            for raw_category in doc.get("categories", []):
                name = str(raw_category.get("name", "")).strip()
                if not name:
                    raise ValueError("Category name is required")
                category = self._library_repo.get_category_by_name(conn, name)
                if category is None:
                    category = self._library_repo.create_category(conn, name)
                    created["categories"] += 1
                existing = {c.title for c in self._library_repo.list_challenges(conn, category.id)}
                for raw in raw_category.get("challenges", []):
                    title = str(raw.get("title", "")).strip()
                    if not title or title in existing:
                        continue
                    awards = build_award_categories(raw.get("award_categories", []))
                    self._library_repo.create_challenge(conn, category.id, title, raw.get("description", ""), awards)
                    existing.add(title)
                    created["challenges"] += 1
            for raw in doc.get("advantages", []):
                code = advantage_code(str(raw.get("code", "")))
                name = str(raw.get("name", "")).strip() or code
                if not code or self._advantage_repo.get_by_code(conn, code) is not None:
                    continue
                self._advantage_repo.create(conn, code, name, raw.get("description", ""))
                created["advantages"] += 1
        logger.info(
            "LIBRARY_IMPORTED categories=%s challenges=%s advantages=%s",
            created["categories"], created["challenges"], created["advantages"],
        )
        return created
