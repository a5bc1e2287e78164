"""
Supabase-backed document store.

Each collection is a table with two columns:

    id   text primary key
    data jsonb not null

Field paths are translated to PostgREST JSON operators
("userInfo.gender" -> "data->userInfo->>gender"). Updates go through the
`apply_document_update` database function (sql/discovery.sql) so that array
unions are applied under a row lock.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from supabase import create_client, Client

from ..config import settings
from ..utils.errors import StoreError
from .query import DOCUMENT_ID, Cursor, FieldFilter, OrderBy, Page, Query, cursor_for, split_updates

logger = logging.getLogger(__name__)

UPDATE_FUNCTION = "apply_document_update"


class SupabaseClient:
    """Singleton Supabase client wrapper"""
    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Get or create Supabase client instance"""
        if cls._instance is None:
            if not settings.supabase_url or not settings.supabase_key:
                raise StoreError("SUPABASE_URL and SUPABASE_KEY must be set for the supabase store")
            cls._instance = create_client(
                supabase_url=settings.supabase_url,
                supabase_key=settings.supabase_key
            )
        return cls._instance


def column_for(path: str, as_text: bool) -> str:
    """
    PostgREST column expression for a dotted document path

    Args:
        path: Dotted field path, or DOCUMENT_ID
        as_text: Use ->> on the last segment (string comparisons)

    Returns:
        Column expression, e.g. "data->userInfo->>gender"
    """
    if path == DOCUMENT_ID or path == "id":
        return "id"
    parts = path.split(".")
    head = "".join(f"->{p}" for p in parts[:-1])
    arrow = "->>" if as_text else "->"
    return f"data{head}{arrow}{parts[-1]}"


def _literal(value: Any) -> str:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return json.dumps(value)


def keyset_condition(order_by: List[OrderBy], cursor: Cursor) -> str:
    """
    PostgREST `or` expression selecting rows strictly after the cursor

    For (endDay asc, id asc) and cursor (e, i) this yields
    "data->endDay.gt.e,and(data->endDay.eq.e,id.gt.i)".
    """
    clauses = []
    for k, order in enumerate(order_by):
        op = "lt" if order.descending else "gt"
        value = cursor.values[k]
        terms = [
            f"{column_for(prev.field, isinstance(v, str))}.eq.{_literal(v)}"
            for prev, v in zip(order_by[:k], cursor.values[:k])
        ]
        terms.append(f"{column_for(order.field, isinstance(value, str))}.{op}.{_literal(value)}")
        clauses.append(terms[0] if len(terms) == 1 else f"and({','.join(terms)})")
    return ",".join(clauses)


class SupabaseDocumentStore:
    """DocumentStore over Supabase tables of (id, data jsonb) rows"""

    def __init__(self, client: Optional[Client] = None):
        self.supabase = client or SupabaseClient.get_client()

    @staticmethod
    def _to_document(row: Dict[str, Any]) -> Dict[str, Any]:
        return {**(row.get("data") or {}), "id": row["id"]}

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.table(collection)\
                .select("id, data")\
                .eq("id", doc_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to get {collection}/{doc_id}: {e}")
            raise StoreError(f"Failed to read {collection}/{doc_id}") from e

        if response.data:
            return self._to_document(response.data[0])
        return None

    async def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> bool:
        try:
            response = self.supabase.table(collection)\
                .upsert({"id": doc_id, "data": data}, on_conflict="id", ignore_duplicates=True)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to create {collection}/{doc_id}: {e}")
            raise StoreError(f"Failed to create {collection}/{doc_id}") from e

        return bool(response.data)

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        try:
            self.supabase.table(collection)\
                .upsert({"id": doc_id, "data": data}, on_conflict="id")\
                .execute()
        except Exception as e:
            logger.error(f"Failed to set {collection}/{doc_id}: {e}")
            raise StoreError(f"Failed to write {collection}/{doc_id}") from e

    async def update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Atomic field update

        Field writes and array unions are applied server-side in one locked
        read-modify-write, so concurrent unions on the same array all land.
        """
        fields, unions = split_updates(updates)
        try:
            response = self.supabase.rpc(UPDATE_FUNCTION, {
                "p_table": collection,
                "p_id": doc_id,
                "p_set": fields,
                "p_union": unions,
            }).execute()
        except Exception as e:
            logger.error(f"Failed to update {collection}/{doc_id}: {e}")
            raise StoreError(f"Failed to update {collection}/{doc_id}") from e

        if not response.data:
            raise StoreError(f"No document to update: {collection}/{doc_id}")
        return {**response.data, "id": doc_id}

    async def query(self, query: Query) -> Page:
        request = self.supabase.table(query.collection).select("id, data")

        for flt in query.filters:
            text = isinstance(flt.value, str)
            column = column_for(flt.field, text)
            if flt.op == "==":
                request = request.eq(column, flt.value)
            elif flt.op == "!=":
                request = request.neq(column, flt.value)
            elif flt.op == ">":
                request = request.gt(column, flt.value)
            elif flt.op == ">=":
                request = request.gte(column, flt.value)
            elif flt.op == "<":
                request = request.lt(column, flt.value)
            elif flt.op == "<=":
                request = request.lte(column, flt.value)
            elif flt.op == "array-contains":
                request = request.contains(column_for(flt.field, False), json.dumps([flt.value]))
            elif flt.op == "in":
                request = request.in_(column, list(flt.value))

        if query.start_after is not None:
            request = request.or_(keyset_condition(query.order_by, query.start_after))

        for order in query.order_by:
            request = request.order(column_for(order.field, False), desc=order.descending)

        if query.limit is not None:
            request = request.limit(query.limit)

        try:
            response = request.execute()
        except Exception as e:
            logger.error(f"Query on {query.collection} failed: {e}")
            raise StoreError(f"Query on {query.collection} failed") from e

        documents = [self._to_document(row) for row in (response.data or [])]
        cursor = cursor_for(documents[-1], query.order_by) if documents and query.order_by else None
        return Page(documents=documents, cursor=cursor)
