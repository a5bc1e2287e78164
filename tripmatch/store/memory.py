"""In-process document store, used for local development and tests"""
import copy
import functools
import logging
from typing import Any, Dict, List, Optional

from ..utils.errors import StoreError
from .query import FieldFilter, OrderBy, Page, Query, apply_updates, cursor_for, get_path

logger = logging.getLogger(__name__)


def _matches(document: Dict[str, Any], flt: FieldFilter) -> bool:
    value = get_path(document, flt.field)
    try:
        if flt.op == "==":
            return value == flt.value
        if flt.op == "!=":
            return value is not None and value != flt.value
        if flt.op == "array-contains":
            return isinstance(value, list) and flt.value in value
        if flt.op == "in":
            return value in flt.value
        if value is None:
            return False
        if flt.op == ">":
            return value > flt.value
        if flt.op == ">=":
            return value >= flt.value
        if flt.op == "<":
            return value < flt.value
        if flt.op == "<=":
            return value <= flt.value
    except TypeError:
        # Mixed types never match, as in Firestore
        return False
    return False


def _compare_values(a: Any, b: Any) -> int:
    # None sorts first
    if a is None or b is None:
        return (a is not None) - (b is not None)
    try:
        return (a > b) - (a < b)
    except TypeError:
        return (str(type(a)) > str(type(b))) - (str(type(a)) < str(type(b)))


def _compare_keys(a: tuple, b: tuple, order_by: List[OrderBy]) -> int:
    for left, right, order in zip(a, b, order_by):
        result = _compare_values(left, right)
        if result:
            return -result if order.descending else result
    return 0


class InMemoryDocumentStore:
    """
    Dict-backed DocumentStore.

    Reads and writes deep-copy documents so callers never share state with
    the store.
    """

    def __init__(self, collections: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for name, docs in (collections or {}).items():
            for doc_id, data in docs.items():
                self._collection(name)[doc_id] = {**copy.deepcopy(data), "id": doc_id}

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self.collections.setdefault(name, {})

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        document = self._collection(collection).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> bool:
        docs = self._collection(collection)
        if doc_id in docs:
            return False
        docs[doc_id] = {**copy.deepcopy(data), "id": doc_id}
        return True

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._collection(collection)[doc_id] = {**copy.deepcopy(data), "id": doc_id}

    async def update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise StoreError(f"No document to update: {collection}/{doc_id}")
        docs[doc_id] = apply_updates(docs[doc_id], copy.deepcopy(updates))
        return copy.deepcopy(docs[doc_id])

    async def query(self, query: Query) -> Page:
        documents = [
            doc for doc in self._collection(query.collection).values()
            if all(_matches(doc, flt) for flt in query.filters)
        ]

        if query.order_by:
            keyed = [(cursor_for(doc, query.order_by).values, doc) for doc in documents]
            keyed.sort(key=functools.cmp_to_key(lambda a, b: _compare_keys(a[0], b[0], query.order_by)))
            if query.start_after is not None:
                keyed = [
                    item for item in keyed
                    if _compare_keys(item[0], query.start_after.values, query.order_by) > 0
                ]
            documents = [doc for _, doc in keyed]
        elif query.start_after is not None:
            raise StoreError("start_after requires an order_by clause")

        if query.limit is not None:
            documents = documents[:query.limit]

        cursor = cursor_for(documents[-1], query.order_by) if documents and query.order_by else None
        return Page(documents=copy.deepcopy(documents), cursor=cursor)
