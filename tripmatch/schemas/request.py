"""Request schemas for API endpoints"""
from pydantic import BaseModel, Field, field_validator


class SearchRequest(BaseModel):
    """Request body for /discovery/search"""
    itinerary_id: str = Field(..., min_length=1, max_length=200, description="ID of one of the caller's itineraries")

    @field_validator("itinerary_id")
    @classmethod
    def strip_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("itinerary_id must not be blank")
        return v

    class Config:
        json_schema_extra = {
            "example": {"itinerary_id": "itin_8f2c1a"}
        }
