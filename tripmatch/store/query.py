"""Query value types shared by every document store backend"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Order-by field name that sorts on the document ID
DOCUMENT_ID = "__name__"

OPERATORS = ("==", "!=", ">", ">=", "<", "<=", "array-contains", "in")


@dataclass(frozen=True)
class FieldFilter:
    """Predicate on a dotted field path, e.g. ("userInfo.gender", "==", "Female")"""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op}")


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Cursor:
    """
    Opaque pagination token: the order-by values of the last document of a page.

    Only meaningful for a query with the same order-by clause.
    """
    values: Tuple[Any, ...]


@dataclass
class Query:
    collection: str
    filters: List[FieldFilter] = field(default_factory=list)
    order_by: List[OrderBy] = field(default_factory=list)
    limit: Optional[int] = None
    start_after: Optional[Cursor] = None


@dataclass
class Page:
    """One page of query results; `cursor` points at the last document"""
    documents: List[Dict[str, Any]]
    cursor: Optional[Cursor] = None


@dataclass(frozen=True)
class ArrayUnion:
    """Update sentinel: append values to an array field, skipping ones already present"""
    values: Tuple[Any, ...]


def get_path(document: Dict[str, Any], path: str) -> Any:
    """Resolve a dotted field path; DOCUMENT_ID resolves to the document's id"""
    if path == DOCUMENT_ID:
        return document.get("id")
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def cursor_for(document: Dict[str, Any], order_by: List[OrderBy]) -> Cursor:
    return Cursor(tuple(get_path(document, o.field) for o in order_by))


def apply_updates(document: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply a field update map to a document copy

    Keys may be dotted paths ("unreadCounts.uid1"); values may be ArrayUnion.
    """
    result = dict(document)
    for path, value in updates.items():
        parts = path.split(".")
        target = result
        for part in parts[:-1]:
            child = target.get(part)
            child = dict(child) if isinstance(child, dict) else {}
            target[part] = child
            target = child
        leaf = parts[-1]
        if isinstance(value, ArrayUnion):
            current = target.get(leaf)
            merged = list(current) if isinstance(current, list) else []
            for item in value.values:
                if item not in merged:
                    merged.append(item)
            target[leaf] = merged
        else:
            target[leaf] = value
    return result


def split_updates(updates: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, List[Any]]]:
    """
    Separate plain field writes from array unions

    Returns:
        (fields, unions): both keyed by dotted path, unions holding plain value lists
    """
    fields: Dict[str, Any] = {}
    unions: Dict[str, List[Any]] = {}
    for path, value in updates.items():
        if isinstance(value, ArrayUnion):
            unions[path] = list(value.values)
        else:
            fields[path] = value
    return fields, unions
