"""Document store interface"""
from typing import Any, Dict, Optional, Protocol

from .query import Page, Query

ITINERARIES = "itineraries"
USERS = "users"
CONNECTIONS = "connections"


class DocumentStore(Protocol):
    """
    Async document store with Firestore-like semantics.

    Documents are plain dicts keyed by ID within a collection; returned
    documents always carry their ID under "id". Backends raise StoreError on
    any transport or server failure.
    """

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]: ...

    async def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> bool:
        """Write only if no document with this ID exists; True if written"""
        ...

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None: ...

    async def update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Apply field updates to an existing document and return it"""
        ...

    async def query(self, query: Query) -> Page: ...
