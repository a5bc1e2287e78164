"""
Paginated candidate search with a single "current candidate" view.

A session holds the searching itinerary, an ordered buffer of candidates,
the store cursor of the last fetched page and a read index into the buffer.
Pages are fetched lazily: advance() only touches the store when the read
index runs off the end of the buffer and more pages exist.
"""
import logging
import re
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError

from ..models.itinerary import Itinerary
from ..models.search import SearchCriteria
from ..repositories.itineraries import ItineraryRepository
from ..store.query import Cursor
from ..utils.errors import InvalidInputError, StoreError, require_id
from .viewed_cache import ViewedCache

logger = logging.getLogger(__name__)

PAGE_SIZE = 50

SEARCH_FAILED_MESSAGE = "Failed to search itineraries. Please try again later."

# Store errors whose text is useful to the user as-is
TRANSIENT_ERROR_PATTERNS = [
    re.compile(r"timeout", re.IGNORECASE),
    re.compile(r"network", re.IGNORECASE),
    re.compile(r"connection|ECONNREFUSED", re.IGNORECASE),
    re.compile(r"proxy", re.IGNORECASE),
    re.compile(r"RPC unavailable", re.IGNORECASE),
]


def search_error_message(error: Exception) -> str:
    """User-facing message for a failed initial search"""
    message = getattr(error, "message", None) or str(error)
    if message and any(pattern.search(message) for pattern in TRANSIENT_ERROR_PATTERNS):
        return message
    return SEARCH_FAILED_MESSAGE


class SearchCursor:
    """Builds and re-issues candidate queries and tracks the read position"""

    def __init__(
        self,
        itineraries: ItineraryRepository,
        viewed: Optional[ViewedCache] = None,
        page_size: int = PAGE_SIZE
    ):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.itineraries = itineraries
        self.viewed = viewed
        self.page_size = page_size

        self.itinerary: Optional[Itinerary] = None
        self.user_id: Optional[str] = None
        self.criteria: Optional[SearchCriteria] = None
        self.buffer: List[Itinerary] = []
        self.index = 0
        self.has_more = False
        self.error: Optional[str] = None
        self.loading = False
        self._cursor: Optional[Cursor] = None
        self._buffered_ids: Set[str] = set()

    def _reset(self) -> None:
        self.buffer = []
        self.index = 0
        self._cursor = None
        self._buffered_ids = set()
        self.error = None

    async def search(self, itinerary: Itinerary, user_id: str) -> None:
        """
        Start a new session for `itinerary` and load the first page

        On a store failure the buffer is left empty, `error` holds a
        user-facing message and `has_more` keeps its value from before the call.

        Raises:
            InvalidInputError: If the itinerary or user ID is missing or the
                itinerary has no destination or start day
        """
        if itinerary is None:
            raise InvalidInputError("An itinerary is required to search")
        user_id = require_id(user_id, "user ID")
        if not itinerary.destination:
            raise InvalidInputError("Itinerary must have a destination")
        if itinerary.start_day is None or itinerary.end_day is None:
            raise InvalidInputError("Itinerary must have start and end dates")

        previous_has_more = self.has_more
        self._reset()
        self.itinerary = itinerary
        self.user_id = user_id

        excluded = await self.viewed.snapshot() if self.viewed is not None else frozenset()
        self.criteria = SearchCriteria.from_itinerary(itinerary, user_id, excluded)
        self.has_more = True

        logger.info(
            f"Searching candidates for itinerary {itinerary.id} "
            f"(destination={itinerary.destination}, page_size={self.page_size})"
        )
        self.loading = True
        try:
            await self._fill()
        except StoreError as e:
            logger.error(f"Search failed for itinerary {itinerary.id}: {e.message}")
            self._reset()
            self.error = search_error_message(e)
            self.has_more = previous_has_more
        finally:
            self.loading = False

    async def refresh(self) -> None:
        """Re-run the current search from the first page"""
        if self.itinerary is None or self.user_id is None:
            raise InvalidInputError("No search to refresh")
        await self.search(self.itinerary, self.user_id)

    def current(self) -> Optional[Itinerary]:
        """Candidate at the read index, or None past the end of the buffer"""
        if self.index < len(self.buffer):
            return self.buffer[self.index]
        return None

    async def advance(self) -> None:
        """
        Move to the next candidate, fetching the next page when needed

        Fetch failures are logged and swallowed; the caller sees an empty
        current() and may advance again later to retry.
        """
        if self.index < len(self.buffer):
            self.index += 1
        if self.index < len(self.buffer) or not self.has_more or self.criteria is None:
            return

        self.loading = True
        try:
            await self._fill()
        except StoreError as e:
            logger.error(f"Loading more candidates failed: {e.message}")
        finally:
            self.loading = False

    async def _fill(self) -> int:
        """
        Fetch pages until at least one new candidate is buffered or the result
        set is exhausted

        Returns:
            Number of candidates appended
        """
        while self.has_more:
            page = await self.itineraries.search_candidates(self.criteria, self.page_size, self._cursor)
            if page.cursor is not None:
                self._cursor = page.cursor
            self.has_more = len(page.documents) >= self.page_size

            added = self._append(page.documents)
            logger.info(
                f"Fetched {len(page.documents)} candidates, kept {added} "
                f"(buffer={len(self.buffer)}, has_more={self.has_more})"
            )
            if added:
                return added
        return 0

    def _append(self, documents: List[Dict[str, Any]]) -> int:
        added = 0
        for document in documents:
            try:
                candidate = Itinerary.model_validate(document)
            except ValidationError:
                logger.warning(f"Dropping malformed candidate {document.get('id') if isinstance(document, dict) else None}")
                continue
            if candidate.id in self._buffered_ids or not self._accepts(candidate):
                continue
            self.buffer.append(candidate)
            self._buffered_ids.add(candidate.id)
            added += 1
        return added

    def _accepts(self, candidate: Itinerary) -> bool:
        """Client-side filters; store predicates are re-checked as well"""
        criteria = self.criteria
        owner = candidate.owner_uid
        if not owner or owner == criteria.current_user_id:
            return False
        if candidate.id in criteria.excluded_ids or owner in criteria.blocked_user_ids:
            return False
        if candidate.destination != criteria.destination:
            return False
        if candidate.end_day is None or candidate.end_day < criteria.min_end_day:
            return False
        if (
            criteria.max_start_day is not None
            and candidate.start_day is not None
            and candidate.start_day > criteria.max_start_day
        ):
            return False
        info = candidate.user_info
        if not criteria.gender.accepts(info.gender if info else None):
            return False
        if not criteria.status.accepts(info.status if info else None):
            return False
        if not criteria.sexual_orientation.accepts(info.sexual_orientation if info else None):
            return False
        return criteria.accepts_age(candidate.owner_age())
