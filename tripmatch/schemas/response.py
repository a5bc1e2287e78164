"""Response schemas for API endpoints"""
from typing import List, Optional
from pydantic import BaseModel, Field

from ..discovery.matching import ErrorKind, MatchStatus, RejectStatus
from ..models.connection import Connection
from ..models.itinerary import Itinerary


class CandidateResponse(BaseModel):
    """Current candidate and pagination state"""
    current: Optional[Itinerary] = Field(None, description="Candidate to decide on, null at end of results")
    has_more: bool = Field(..., description="More pages may exist in the store")
    error: Optional[str] = Field(None, description="Search failure message, if the first page failed")


class AcceptResponse(BaseModel):
    """Response for /discovery/accept"""
    status: MatchStatus
    connection: Optional[Connection] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    next: Optional[Itinerary] = Field(None, description="Current candidate after the action")


class RejectResponse(BaseModel):
    """Response for /discovery/reject"""
    status: RejectStatus
    message: Optional[str] = None
    next: Optional[Itinerary] = Field(None, description="Current candidate after the action")


class QuotaResponse(BaseModel):
    """Daily quota state for the caller"""
    has_reached_limit: bool
    remaining_today: Optional[int] = Field(None, description="Null for premium users (unlimited)")
    daily_limit: int
    is_premium: bool


class ConnectionsResponse(BaseModel):
    connections: List[Connection] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error response"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[dict] = Field(None, description="Additional error details")
