"""User profile document model"""
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class DailyUsage(BaseModel):
    """Per-user daily action counter stored on the profile"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    date: str = Field(..., description="Calendar day, YYYY-MM-DD")
    view_count: int = Field(0, alias="viewCount", ge=0)


class UserProfile(BaseModel):
    """User profile as stored in the `users` collection"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    uid: str = Field(..., min_length=1)
    username: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[str] = None
    status: Optional[str] = None
    sexual_orientation: Optional[str] = Field(None, alias="sexualOrientation")
    blocked: List[str] = Field(default_factory=list)
    subscription_type: Optional[str] = Field(None, alias="subscriptionType")
    # Firestore Timestamp, {seconds, nanoseconds}, epoch millis or ISO string
    subscription_end_date: Any = Field(None, alias="subscriptionEndDate")
    daily_usage: Optional[DailyUsage] = Field(None, alias="dailyUsage")
