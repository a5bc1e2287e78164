"""
Itinerary data access.

Search and like-updates can go either straight to the document store or
through the RPC layer; both paths honour the same success/failure contract
(results or StoreError).
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..models.itinerary import Itinerary
from ..models.search import PREFERENCE_FIELDS, SearchCriteria
from ..store.base import ITINERARIES, DocumentStore
from ..store.query import DOCUMENT_ID, ArrayUnion, Cursor, FieldFilter, OrderBy, Page, Query, cursor_for
from ..store.rpc import SEARCH_ITINERARIES, UPDATE_ITINERARY, RpcClient, array_union, unwrap
from ..utils.errors import require_id

logger = logging.getLogger(__name__)

# endDay ascending, document ID as tiebreak: cursors need a total order
CANDIDATE_ORDER = [OrderBy("endDay"), OrderBy(DOCUMENT_ID)]


class ItineraryRepository:
    """Reads and writes the `itineraries` collection"""

    def __init__(self, store: DocumentStore, rpc: Optional[RpcClient] = None, use_rpc: bool = False):
        if use_rpc and rpc is None:
            raise ValueError("use_rpc requires an RPC client")
        self.store = store
        self.rpc = rpc
        self.use_rpc = use_rpc

    async def get(self, itinerary_id: str) -> Optional[Itinerary]:
        """
        Fetch one itinerary fresh from the store

        Returns:
            The itinerary, or None if missing or unparsable

        Raises:
            StoreError: If the read fails
        """
        itinerary_id = require_id(itinerary_id, "itinerary ID")
        document = await self.store.get(ITINERARIES, itinerary_id)
        if document is None:
            return None
        try:
            return Itinerary.model_validate(document)
        except ValidationError as e:
            logger.warning(f"Stored itinerary {itinerary_id} is malformed: {e.error_count()} errors")
            return None

    async def list_for_user(self, user_id: str) -> List[Itinerary]:
        """All itineraries owned by a user, soonest-ending first"""
        user_id = require_id(user_id, "user ID")
        page = await self.store.query(Query(
            collection=ITINERARIES,
            filters=[FieldFilter("userInfo.uid", "==", user_id)],
            order_by=list(CANDIDATE_ORDER),
        ))
        itineraries = []
        for document in page.documents:
            try:
                itineraries.append(Itinerary.model_validate(document))
            except ValidationError:
                logger.warning(f"Skipping malformed itinerary {document.get('id')} of user {user_id}")
        return itineraries

    def candidate_query(self, criteria: SearchCriteria, page_size: int, start_after: Optional[Cursor] = None) -> Query:
        """
        Store query for one page of candidates

        Preference fields set to Any contribute no predicate.
        """
        filters = [FieldFilter("destination", "==", criteria.destination)]
        for name, preference in criteria.preferences().items():
            if not preference.is_any:
                filters.append(FieldFilter(PREFERENCE_FIELDS[name], "==", preference.value))
        filters.append(FieldFilter("endDay", ">=", criteria.min_end_day))

        return Query(
            collection=ITINERARIES,
            filters=filters,
            order_by=list(CANDIDATE_ORDER),
            limit=page_size,
            start_after=start_after,
        )

    async def search_candidates(
        self,
        criteria: SearchCriteria,
        page_size: int,
        start_after: Optional[Cursor] = None
    ) -> Page:
        """
        Fetch one raw page of candidate documents

        The page is unfiltered beyond the store predicates; callers apply the
        client-side filters. `len(page.documents) < page_size` means the result
        set is exhausted.

        Raises:
            StoreError: If the store or RPC call fails
        """
        if not self.use_rpc:
            return await self.store.query(self.candidate_query(criteria, page_size, start_after))

        params = criteria.to_rpc_params(page_size)
        if start_after is not None:
            params["startAfter"] = list(start_after.values)
        data = unwrap(SEARCH_ITINERARIES, await self.rpc.call(SEARCH_ITINERARIES, params))

        documents = _normalize_rpc_results(data)
        cursor = cursor_for(documents[-1], CANDIDATE_ORDER) if documents else None
        return Page(documents=documents, cursor=cursor)

    async def add_like(self, itinerary: Itinerary, user_id: str) -> None:
        """
        Add a user to an itinerary's likes set

        Duplicate likes are absorbed (set-union semantics).

        Raises:
            StoreError: If the update fails
        """
        user_id = require_id(user_id, "user ID")
        if not self.use_rpc:
            await self.store.update(ITINERARIES, itinerary.id, {"likes": ArrayUnion((user_id,))})
            return

        unwrap(UPDATE_ITINERARY, await self.rpc.call(
            UPDATE_ITINERARY,
            {"itineraryId": itinerary.id, "updates": {"likes": array_union(user_id)}}
        ))


def _normalize_rpc_results(data: Any) -> List[Dict[str, Any]]:
    """Accept the payload shapes the search callable has shipped with"""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("itineraries", "data"):
            if isinstance(data.get(key), list):
                return data[key]
    logger.warning(f"Unexpected searchItineraries payload shape: {type(data).__name__}")
    return []
