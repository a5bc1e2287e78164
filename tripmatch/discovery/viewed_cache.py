"""Per-device set of itinerary IDs already shown to the user"""
import json
import logging
from typing import Any, Iterable, List, Optional, Set

from ..utils.storage import KeyValueStorage

logger = logging.getLogger(__name__)

VIEWED_STORAGE_KEY = "VIEWED_ITINERARIES"


def _normalize(entry: Any) -> Optional[str]:
    """Plain string IDs, or legacy {"id": ...} wrappers; anything else is dropped"""
    if isinstance(entry, dict):
        entry = entry.get("id")
    if isinstance(entry, str) and entry.strip():
        return entry
    return None


def _valid_id(itinerary_id: Any) -> bool:
    return isinstance(itinerary_id, str) and bool(itinerary_id.strip())


class ViewedCache:
    """
    Client-side dedup set backed by key-value storage.

    The in-memory mirror is hydrated lazily on first access and is
    authoritative for the rest of the process lifetime; call invalidate() to
    force a re-read. Every change rewrites the whole set. The set is a UX
    optimization only and never consulted for matching.
    """

    def __init__(self, storage: KeyValueStorage, key: str = VIEWED_STORAGE_KEY):
        self.storage = storage
        self.key = key
        self.hydrated = False
        self._ids: Set[str] = set()
        # Insertion order, so the persisted list is stable
        self._order: List[str] = []

    async def hydrate(self) -> None:
        """Load the persisted set; unreadable state degrades to empty"""
        ids: List[str] = []
        try:
            raw = await self.storage.get_item(self.key)
            if raw:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    for entry in parsed:
                        normalized = _normalize(entry)
                        if normalized is not None and normalized not in ids:
                            ids.append(normalized)
                else:
                    logger.warning("Invalid viewed-itineraries format, expected a list")
        except (ValueError, TypeError) as e:
            logger.warning(f"Unparsable viewed-itineraries state, starting empty: {e}")
            ids = []
        except Exception as e:
            logger.error(f"Error reading viewed itineraries: {e}")
            ids = []

        self._order = ids
        self._ids = set(ids)
        self.hydrated = True

    def invalidate(self) -> None:
        """Drop the mirror; the next access re-reads storage"""
        self.hydrated = False
        self._ids = set()
        self._order = []

    async def _ensure_hydrated(self) -> None:
        if not self.hydrated:
            await self.hydrate()

    async def _persist(self) -> None:
        try:
            await self.storage.set_item(self.key, json.dumps(self._order))
        except Exception as e:
            # The mirror stays authoritative; the next successful write catches up
            logger.error(f"Error saving viewed itineraries: {e}")

    async def has(self, itinerary_id: str) -> bool:
        if not _valid_id(itinerary_id):
            return False
        await self._ensure_hydrated()
        return itinerary_id in self._ids

    async def add(self, itinerary_id: str) -> None:
        """Record one ID; a no-op without a storage write if already present"""
        if not _valid_id(itinerary_id):
            logger.warning("Invalid itinerary ID, skipping save")
            return
        await self.add_all([itinerary_id])

    async def add_all(self, itinerary_ids: Iterable[str]) -> None:
        """Record several IDs with at most one storage write"""
        await self._ensure_hydrated()
        changed = False
        for itinerary_id in itinerary_ids:
            if _valid_id(itinerary_id) and itinerary_id not in self._ids:
                self._ids.add(itinerary_id)
                self._order.append(itinerary_id)
                changed = True
        if changed:
            await self._persist()

    async def clear(self) -> None:
        await self.storage.remove_item(self.key)
        self._ids = set()
        self._order = []
        self.hydrated = True

    async def count(self) -> int:
        await self._ensure_hydrated()
        return len(self._ids)

    async def snapshot(self) -> frozenset:
        """Current IDs, for exclusion filters"""
        await self._ensure_hydrated()
        return frozenset(self._ids)
