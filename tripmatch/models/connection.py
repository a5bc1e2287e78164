"""Connection document model"""
from datetime import datetime
from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict, Field


class Connection(BaseModel):
    """
    Mutual match between two users, stored in the `connections` collection.

    The document ID is derived from the sorted user pair, so there is at most
    one connection per pair.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    users: List[str] = Field(..., min_length=2, max_length=2)
    itinerary_ids: List[str] = Field(..., alias="itineraryIds")
    itineraries: List[Dict[str, Any]] = Field(default_factory=list, description="Full snapshots of both itineraries")
    created_at: datetime = Field(..., alias="createdAt")
    unread_counts: Dict[str, int] = Field(default_factory=dict, alias="unreadCounts")

    def to_document(self) -> Dict[str, Any]:
        """Serialize with store field names"""
        return self.model_dump(by_alias=True, mode="json")
