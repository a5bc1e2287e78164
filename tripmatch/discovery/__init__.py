"""
Itinerary discovery and matching engine.

Main components:
- viewed_cache: per-device set of already-decided itinerary IDs
- quota: daily action counter with premium bypass
- search_cursor: paginated candidate search with a current-candidate view
- matching: accept/reject actions and mutual-match detection
- connections: idempotent connection creation
- session: the per-user facade the UI drives

Usage:
    from tripmatch.discovery import SessionRegistry

    registry = SessionRegistry(store)
    session = registry.new_session(profile)
    await session.search(my_itinerary)
    candidate = session.current()
    outcome = await session.accept()
"""

from .viewed_cache import ViewedCache, VIEWED_STORAGE_KEY
from .quota import QuotaTracker, FREE_DAILY_LIMIT, effective_count, is_premium
from .search_cursor import SearchCursor, PAGE_SIZE
from .connections import ConnectionFactory, connection_id
from .matching import (
    MatchCoordinator,
    MatchOutcome,
    MatchStatus,
    RejectOutcome,
    RejectStatus,
    ErrorKind,
)
from .session import DiscoverySession, SessionRegistry

__all__ = [
    "ViewedCache",
    "VIEWED_STORAGE_KEY",
    "QuotaTracker",
    "FREE_DAILY_LIMIT",
    "effective_count",
    "is_premium",
    "SearchCursor",
    "PAGE_SIZE",
    "ConnectionFactory",
    "connection_id",
    "MatchCoordinator",
    "MatchOutcome",
    "MatchStatus",
    "RejectOutcome",
    "RejectStatus",
    "ErrorKind",
    "DiscoverySession",
    "SessionRegistry",
]
