"""Callable RPC layer fronting the document store"""
import logging
from typing import Any, Dict, List, Optional, Protocol

from supabase import Client

from ..utils.errors import StoreError
from .query import ArrayUnion

logger = logging.getLogger(__name__)

SEARCH_ITINERARIES = "searchItineraries"
UPDATE_ITINERARY = "updateItinerary"

# Update-map marker for an array union: {"likes": {"arrayUnion": ["uid"]}}
ARRAY_UNION = "arrayUnion"


class RpcClient(Protocol):
    """
    Invokes a named server function and returns its response envelope:
    {"success": bool, "data": ..., "error": str}
    """

    async def call(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]: ...


def unwrap(name: str, envelope: Any) -> Any:
    """
    Return the data of a successful envelope

    Raises:
        StoreError: If the envelope is malformed or reports failure
    """
    if not isinstance(envelope, dict):
        raise StoreError(f"Unexpected RPC response from {name}")
    if not envelope.get("success"):
        message = envelope.get("error") or envelope.get("message") or f"{name} failed"
        raise StoreError(message, details={"rpc": name})
    return envelope.get("data")


def array_union(*values: Any) -> Dict[str, List[Any]]:
    """Wire form of an ArrayUnion for `updateItinerary` payloads"""
    return {ARRAY_UNION: list(values)}


def decode_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Turn arrayUnion markers of an RPC update map back into ArrayUnion sentinels"""
    decoded = {}
    for path, value in updates.items():
        if isinstance(value, dict) and set(value) == {ARRAY_UNION} and isinstance(value[ARRAY_UNION], list):
            decoded[path] = ArrayUnion(tuple(value[ARRAY_UNION]))
        else:
            decoded[path] = value
    return decoded


class SupabaseRpcClient:
    """RPC client calling Postgres functions through Supabase"""

    # Callable name -> Postgres function name
    FUNCTION_NAMES = {
        SEARCH_ITINERARIES: "search_itineraries",
        UPDATE_ITINERARY: "update_itinerary",
    }

    def __init__(self, client: Optional[Client] = None):
        if client is None:
            from .supabase_store import SupabaseClient
            client = SupabaseClient.get_client()
        self.supabase = client

    async def call(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        function = self.FUNCTION_NAMES.get(name)
        if function is None:
            raise StoreError(f"RPC unavailable: {name}")
        try:
            response = self.supabase.rpc(function, payload).execute()
        except Exception as e:
            logger.error(f"RPC {name} failed: {e}")
            raise StoreError(f"RPC {name} failed: {e}") from e
        return response.data
