"""
Error taxonomy for the season engine.
Raised inside services; translated to HTTP responses at the API boundary.
"""
from __future__ import annotations


class SeasonEngineError(ValueError):
    """Base class. A failed operation leaves season state unchanged."""


class Unauthorized(SeasonEngineError):
    """Requester lacks commissioner or player standing for the operation."""


class InvalidTransition(SeasonEngineError):
    """Phase, checkpoint or lock precondition unmet."""


class NotFound(SeasonEngineError):
    """Referenced league, season, board, category, challenge or pool entry is absent."""


class DuplicateEntity(SeasonEngineError):
    """Category, challenge, artist or member already present where it must be unique."""


class Conflict(SeasonEngineError):
    """Client view is stale, e.g. a reorder list that no longer matches the stored set."""


class RollbackFailed(SeasonEngineError):
    """Checkpoint cascade failed internally; nothing was committed."""
