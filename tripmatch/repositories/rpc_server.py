"""
In-process implementation of the itinerary callables.

Serves `searchItineraries` and `updateItinerary` straight from a
DocumentStore, returning the same envelopes the deployed functions do. Used
when STORE_BACKEND=memory and USE_RPC=true, and in tests.
"""
import logging
from typing import Any, Dict

from ..models.search import SearchCriteria
from ..store.base import ITINERARIES, DocumentStore
from ..store.query import Cursor
from ..store.rpc import SEARCH_ITINERARIES, UPDATE_ITINERARY, decode_updates
from ..utils.errors import DiscoveryError
from .itineraries import ItineraryRepository

logger = logging.getLogger(__name__)


class LocalRpcClient:
    """RpcClient over a local DocumentStore"""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.itineraries = ItineraryRepository(store)

    async def call(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            if name == SEARCH_ITINERARIES:
                return await self._search(payload)
            if name == UPDATE_ITINERARY:
                return await self._update(payload)
        except DiscoveryError as e:
            return {"success": False, "error": e.message}
        return {"success": False, "error": f"RPC unavailable: {name}"}

    async def _search(self, params: Dict[str, Any]) -> Dict[str, Any]:
        criteria = SearchCriteria.from_rpc_params(params)
        page_size = params.get("pageSize") or 10
        start_after = params.get("startAfter")
        cursor = Cursor(tuple(start_after)) if start_after else None

        # Exclusions stay client-side so a short page still means end-of-results
        page = await self.itineraries.search_candidates(criteria, page_size, cursor)
        return {"success": True, "data": page.documents}

    async def _update(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        itinerary_id = payload.get("itineraryId")
        updates = payload.get("updates")
        if not itinerary_id or not isinstance(updates, dict):
            return {"success": False, "error": "Invalid itinerary ID or updates"}
        updated = await self.store.update(ITINERARIES, itinerary_id, decode_updates(updates))
        return {"success": True, "data": updated}
